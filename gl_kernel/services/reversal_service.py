"""
ReversalService -- undo a posted journal entry with a mirror entry.

Responsibility:
    Reverses a POSTED entry by writing a new POSTED entry whose lines swap
    every debit and credit of the original, then linking the two.  Nothing
    is ever deleted or edited in place; the ledger corrects itself only by
    appending.

Architecture position:
    Kernel > Services -- imperative shell.  Shares SequenceService,
    PeriodService and the AuditSink with JournalService.

Invariants enforced:
    - Only POSTED, never-reversed entries can be reversed, exactly once.
    - The reversal entry mirrors the original line for line: debit and
      credit swapped, tax negated, dimensions and counterparty kept.
    - The reversal date passes the period gate.
    - Both entries are written in one savepoint.

Failure modes:
    - JournalEntryNotFoundError: unknown entry.
    - EntryAlreadyReversedError: a reversal link already exists.
    - InvalidStateTransitionError: the entry is not POSTED.
    - PeriodNotFoundError / ClosedPeriodError / LockedPeriodError: the
      reversal date is not writable.

Audit relevance:
    One REVERSE record against the original entry, naming the reversal
    entry and the reason.
"""

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from gl_kernel.domain.clock import Clock
from gl_kernel.domain.dtos import (
    AuditAction,
    AuditRecord,
    JournalEntryStatus,
    SourceDocumentType,
)
from gl_kernel.domain.policy import DEFAULT_POLICY, LedgerPolicy
from gl_kernel.exceptions import (
    EntryAlreadyReversedError,
    InvalidStateTransitionError,
    JournalEntryNotFoundError,
)
from gl_kernel.logging_config import get_logger
from gl_kernel.models.journal import JournalEntry, JournalEntryLine
from gl_kernel.services.auditor_service import AuditSink
from gl_kernel.services.base import BaseService
from gl_kernel.services.period_service import PeriodService
from gl_kernel.services.sequence_service import SequenceService

logger = get_logger("services.reversal")


@dataclass(frozen=True)
class ReversalResult:
    """The reversed original and the new reversal entry."""

    original_entry: JournalEntry
    reversal_entry: JournalEntry


class ReversalService(BaseService[JournalEntry]):
    """
    Reverses posted journal entries.

    Contract:
        ``reverse()`` locks the original row, checks it is reversible,
        writes the mirror entry and links both directions.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT support partial reversal of individual lines.
    """

    def __init__(
        self,
        session: Session,
        sequence_service: SequenceService,
        period_service: PeriodService,
        auditor: AuditSink,
        clock: Clock | None = None,
        policy: LedgerPolicy = DEFAULT_POLICY,
    ):
        super().__init__(session, clock)
        self._sequence_service = sequence_service
        self._period_service = period_service
        self._auditor = auditor
        self._policy = policy

    def reverse(
        self,
        journal_entry_id: UUID,
        reversed_by: str,
        reversal_date: date | None = None,
        reason: str | None = None,
    ) -> ReversalResult:
        """
        Reverse a posted journal entry.

        Preconditions:
            - The entry exists, is POSTED and has no reversal link.

        Postconditions:
            - A new POSTED entry dated ``reversal_date`` (today when
              omitted) with source REVERSAL referencing the original.
            - The original is REVERSED and points at the new entry.

        Raises:
            JournalEntryNotFoundError: Unknown entry.
            EntryAlreadyReversedError: Already reversed.
            InvalidStateTransitionError: Not POSTED.
            PeriodNotFoundError / ClosedPeriodError / LockedPeriodError:
                Reversal date refused by the period gate.
        """
        original = self.session.execute(
            select(JournalEntry)
            .where(JournalEntry.id == journal_entry_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if original is None:
            raise JournalEntryNotFoundError(str(journal_entry_id))

        if original.is_reversed:
            logger.warning(
                "journal_reversal_rejected_already_reversed",
                extra={"entry_number": original.number},
            )
            raise EntryAlreadyReversedError(
                str(original.id),
                str(original.reversed_by_id) if original.reversed_by_id else None,
            )
        if not original.is_posted:
            raise InvalidStateTransitionError(
                str(original.id),
                "reverse",
                original.status.value,
                JournalEntryStatus.POSTED.value,
            )

        effective_date = reversal_date or self._clock.today()
        period = self._period_service.validate(effective_date)

        with self.session.begin_nested():
            reversal = self._build_reversal(
                original,
                reversed_by=reversed_by,
                reversal_date=effective_date,
                reason=reason,
                period_id=period.id if period else None,
            )
            self.session.add(reversal)
            # The reversal row must exist before the original points at it.
            self.session.flush()

            original.status = JournalEntryStatus.REVERSED
            original.reversed_by_id = reversal.id
            original.reversal_date = effective_date
            original.reversal_reason = reason
            self.session.flush()

        self._auditor.record(
            AuditRecord(
                table_name="journal_entries",
                record_id=str(original.id),
                action=AuditAction.REVERSE,
                user_id=reversed_by,
                description=(
                    f"Reversed journal entry {original.number} "
                    f"with {reversal.number}"
                ),
                previous_values={"status": JournalEntryStatus.POSTED},
                new_values={
                    "status": original.status,
                    "reversed_by_id": reversal.id,
                    "reversal_number": reversal.number,
                    "reversal_date": effective_date,
                    "reason": reason,
                },
            )
        )

        logger.info(
            "journal_entry_reversed",
            extra={
                "entry_number": original.number,
                "reversal_number": reversal.number,
                "reversal_date": str(effective_date),
                "actor_id": reversed_by,
            },
        )
        return ReversalResult(original_entry=original, reversal_entry=reversal)

    def _build_reversal(
        self,
        original: JournalEntry,
        *,
        reversed_by: str,
        reversal_date: date,
        reason: str | None,
        period_id: UUID | None,
    ) -> JournalEntry:
        now = self._clock.now()
        reversal = JournalEntry(
            number=self._sequence_service.next_number(self._policy.journal_prefix),
            entry_date=reversal_date,
            description=f"Reversal of {original.number}: {reason or original.description}",
            status=JournalEntryStatus.POSTED,
            source_document=SourceDocumentType.REVERSAL,
            source_document_id=str(original.id),
            period_id=period_id,
            total_debit=original.total_credit,
            total_credit=original.total_debit,
            is_auto_generated=True,
            created_by=reversed_by,
            approved_by=reversed_by,
            approved_at=now,
            posted_by=reversed_by,
            posted_at=now,
            reversal_of_id=original.id,
        )

        for line in sorted(original.lines, key=lambda ln: ln.line_number):
            reversal.lines.append(
                JournalEntryLine(
                    line_number=line.line_number,
                    account_id=line.account_id,
                    description=f"Reversal: {line.description or original.description}",
                    debit_amount=line.credit_amount,
                    credit_amount=line.debit_amount,
                    cost_center_id=line.cost_center_id,
                    project_id=line.project_id,
                    tax_code_id=line.tax_code_id,
                    tax_amount=-line.tax_amount if line.tax_amount else line.tax_amount,
                    entity_type=line.entity_type,
                    entity_id=line.entity_id,
                )
            )
        return reversal
