"""
JournalService -- the journal engine: create, approve and post entries.

Responsibility:
    Turns caller-supplied lines into a balanced, numbered journal entry and
    drives it through the maker-checker lifecycle.  Every write that can
    affect balances passes through here (reversals are in ReversalService
    and rounding adjustments delegate to ``create``).

Architecture position:
    Kernel > Services -- imperative shell.  Collaborators: SequenceService
    (numbers), PeriodService (period gate), an AuditSink (audit trail).

Invariants enforced:
    - Every entry has at least two lines; each line is strictly one-sided
      with a non-negative amount.
    - |total_debit - total_credit| <= balance tolerance at creation.
    - Every referenced account exists and is active.
    - The entry date passes the period gate at creation and again at post.
    - Approver != creator (maker-checker).
    - A repeated ``idempotency_key`` returns the existing entry; no second
      entry is ever written for the same key.
    - Flush-only: never commits or rolls back the session.

Failure modes:
    - InvalidEntryError, UnbalancedEntryError, AccountNotFoundError: bad
      request, nothing written.
    - PeriodNotFoundError, ClosedPeriodError, LockedPeriodError: the period
      gate refused the date.
    - JournalEntryNotFoundError, InvalidStateTransitionError,
      SelfApprovalError: lifecycle violations on approve/post.

Audit relevance:
    Creation is audited as CREATE (POST when auto-posted); approve and post
    as APPROVE and POST.  Each record carries the entry number and totals.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gl_kernel.domain.clock import Clock
from gl_kernel.domain.dtos import (
    AuditAction,
    AuditRecord,
    EntityType,
    JournalEntryStatus,
    LineInput,
    SourceDocumentType,
)
from gl_kernel.domain.policy import DEFAULT_POLICY, LedgerPolicy
from gl_kernel.exceptions import (
    AccountNotFoundError,
    InvalidEntryError,
    InvalidStateTransitionError,
    JournalEntryNotFoundError,
    SelfApprovalError,
    UnbalancedEntryError,
)
from gl_kernel.logging_config import get_logger
from gl_kernel.models.account import Account
from gl_kernel.models.journal import JournalEntry, JournalEntryLine
from gl_kernel.services.auditor_service import AuditSink
from gl_kernel.services.base import BaseService
from gl_kernel.services.period_service import PeriodService
from gl_kernel.services.sequence_service import SequenceService

logger = get_logger("services.journal")

ZERO = Decimal("0")


@dataclass(frozen=True)
class PreparedLine:
    """A line that passed shape validation, with amounts as Decimal."""

    account_id: UUID | str
    debit_amount: Decimal
    credit_amount: Decimal
    description: str | None
    cost_center_id: str | None
    project_id: str | None
    tax_code_id: str | None
    tax_amount: Decimal
    entity_type: EntityType | None
    entity_id: str | None


def _to_amount(value: Any, line_number: int, field_name: str) -> Decimal:
    if value is None:
        return ZERO
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidEntryError(
            f"{field_name} {value!r} is not a number", line_number
        ) from None
    if not amount.is_finite():
        raise InvalidEntryError(f"{field_name} {value!r} is not a number", line_number)
    return amount


def _to_uuid(value: UUID | str) -> UUID | None:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


def prepare_lines(lines: Sequence[LineInput | Mapping[str, Any]]) -> list[PreparedLine]:
    """
    Validate line shape and convert amounts.

    Pure: no I/O.  Line numbers in errors are 1-based.

    Raises:
        InvalidEntryError: Fewer than two lines, a negative or non-numeric
            amount, a two-sided or empty line, or a bad entity reference.
    """
    if lines is None or len(lines) < 2:
        count = 0 if lines is None else len(lines)
        raise InvalidEntryError(f"a journal entry needs at least 2 lines, got {count}")

    prepared: list[PreparedLine] = []
    for line_number, raw in enumerate(lines, start=1):
        if isinstance(raw, LineInput):
            line = raw
        else:
            try:
                line = LineInput.from_mapping(raw)
            except (KeyError, TypeError) as exc:
                raise InvalidEntryError(f"malformed line: {exc}", line_number) from None

        debit = _to_amount(line.debit_amount, line_number, "debit_amount")
        credit = _to_amount(line.credit_amount, line_number, "credit_amount")
        tax = _to_amount(line.tax_amount, line_number, "tax_amount")

        if debit < ZERO or credit < ZERO:
            raise InvalidEntryError("amounts must not be negative", line_number)
        if debit > ZERO and credit > ZERO:
            raise InvalidEntryError(
                "a line cannot carry both a debit and a credit", line_number
            )
        if debit == ZERO and credit == ZERO:
            raise InvalidEntryError(
                "a line must carry either a debit or a credit", line_number
            )

        entity_type = None
        if line.entity_type is not None:
            try:
                entity_type = EntityType(line.entity_type)
            except ValueError:
                raise InvalidEntryError(
                    f"unknown entity type {line.entity_type!r}", line_number
                ) from None
            if not line.entity_id:
                raise InvalidEntryError(
                    "entity_type requires an entity_id", line_number
                )

        prepared.append(
            PreparedLine(
                account_id=line.account_id,
                debit_amount=debit,
                credit_amount=credit,
                description=line.description,
                cost_center_id=line.cost_center_id,
                project_id=line.project_id,
                tax_code_id=line.tax_code_id,
                tax_amount=tax,
                entity_type=entity_type,
                entity_id=line.entity_id if entity_type is not None else None,
            )
        )
    return prepared


class JournalService(BaseService[JournalEntry]):
    """
    Journal engine for create / approve / post.

    Contract:
        ``create()`` validates completely before writing anything, then
        writes header, lines and number in one savepoint.  ``approve()``
        and ``post()`` lock the entry row before checking its status.

    Guarantees:
        - A failed call leaves no partial entry and consumes no number
          once the caller rolls back.
        - Returned entries are attached ORM objects with lines loaded.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT reverse entries (ReversalService).
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

    # =========================================================================
    # Lookups
    # =========================================================================

    def get(self, journal_entry_id: UUID) -> JournalEntry | None:
        return self.session.get(JournalEntry, journal_entry_id)

    def _find_by_idempotency_key(self, idempotency_key: str) -> JournalEntry | None:
        return self.session.execute(
            select(JournalEntry).where(JournalEntry.idempotency_key == idempotency_key)
        ).scalar_one_or_none()

    def _get_for_update(self, journal_entry_id: UUID) -> JournalEntry:
        entry = self.session.execute(
            select(JournalEntry)
            .where(JournalEntry.id == journal_entry_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if entry is None:
            raise JournalEntryNotFoundError(str(journal_entry_id))
        return entry

    # =========================================================================
    # Create
    # =========================================================================

    def create(
        self,
        entry_date: date,
        description: str,
        lines: Sequence[LineInput | Mapping[str, Any]],
        source_document: SourceDocumentType | str | None = None,
        source_document_id: str | None = None,
        auto_post: bool = False,
        created_by: str | None = None,
        idempotency_key: str | None = None,
        notes: str | None = None,
    ) -> JournalEntry:
        """
        Create a journal entry.

        Preconditions:
            - Caller is inside an active transaction.

        Postconditions:
            - A DRAFT entry (POSTED when ``auto_post``) with lines numbered
              1..n in input order, or the pre-existing entry for
              ``idempotency_key``.

        Args:
            entry_date: Transaction date; must pass the period gate.
            description: Entry description, also the default line
                description.
            lines: LineInput objects or plain mappings with the same keys.
            source_document: Originating document type (default MANUAL).
            source_document_id: Id of the originating document.
            auto_post: Skip DRAFT/APPROVED for system-generated entries.
            created_by: Maker identity.
            idempotency_key: Retry token; a repeat returns the first entry.
            notes: Free-form internal notes.

        Raises:
            InvalidEntryError: Malformed request.
            UnbalancedEntryError: Debits and credits differ beyond tolerance.
            AccountNotFoundError: Missing or inactive accounts.
            PeriodNotFoundError / ClosedPeriodError / LockedPeriodError:
                Period gate refusal.
        """
        if idempotency_key is not None:
            existing = self._find_by_idempotency_key(idempotency_key)
            if existing is not None:
                logger.info(
                    "journal_entry_idempotent_replay",
                    extra={
                        "idempotency_key": idempotency_key,
                        "entry_number": existing.number,
                    },
                )
                return existing

        if entry_date is None:
            raise InvalidEntryError("entry date is required")
        if not description:
            raise InvalidEntryError("description is required")

        try:
            source = SourceDocumentType(source_document or SourceDocumentType.MANUAL)
        except ValueError:
            raise InvalidEntryError(
                f"unknown source document type {source_document!r}"
            ) from None

        try:
            prepared = prepare_lines(lines)
        except InvalidEntryError as exc:
            logger.warning(
                "journal_entry_invalid",
                extra={"reason": exc.reason, "line_number": exc.line_number},
            )
            raise

        total_debit = sum((line.debit_amount for line in prepared), ZERO)
        total_credit = sum((line.credit_amount for line in prepared), ZERO)
        difference = total_debit - total_credit
        if abs(difference) > self._policy.balance_tolerance:
            logger.warning(
                "journal_entry_unbalanced",
                extra={
                    "total_debit": str(total_debit),
                    "total_credit": str(total_credit),
                    "difference": str(difference),
                },
            )
            raise UnbalancedEntryError(
                str(total_debit), str(total_credit), str(difference)
            )

        account_ids = self._resolve_accounts(prepared)
        period = self._period_service.validate(entry_date)

        try:
            with self.session.begin_nested():
                entry = self._insert_entry(
                    entry_date=entry_date,
                    description=description,
                    prepared=prepared,
                    account_ids=account_ids,
                    source=source,
                    source_document_id=source_document_id,
                    period_id=period.id if period else None,
                    total_debit=total_debit,
                    total_credit=total_credit,
                    auto_post=auto_post,
                    created_by=created_by,
                    idempotency_key=idempotency_key,
                    notes=notes,
                )
        except IntegrityError:
            # A concurrent writer committed the same key first.
            if idempotency_key is not None:
                existing = self._find_by_idempotency_key(idempotency_key)
                if existing is not None:
                    logger.info(
                        "journal_entry_idempotent_race",
                        extra={
                            "idempotency_key": idempotency_key,
                            "entry_number": existing.number,
                        },
                    )
                    return existing
            raise

        self._auditor.record(
            AuditRecord(
                table_name="journal_entries",
                record_id=str(entry.id),
                action=AuditAction.POST if auto_post else AuditAction.CREATE,
                user_id=created_by or self._policy.system_actor,
                description=(
                    f"{'Created and posted' if auto_post else 'Created'} "
                    f"journal entry {entry.number}"
                ),
                new_values={
                    "number": entry.number,
                    "status": entry.status,
                    "total_debit": total_debit,
                    "total_credit": total_credit,
                    "line_count": len(prepared),
                },
            )
        )

        logger.info(
            "journal_entry_created",
            extra={
                "entry_id": str(entry.id),
                "entry_number": entry.number,
                "status": entry.status.value,
                "source_document": source.value,
                "line_count": len(prepared),
                "total_debit": str(total_debit),
            },
        )
        return entry

    def _resolve_accounts(self, prepared: list[PreparedLine]) -> list[UUID]:
        """
        Check every referenced account exists and is active.

        Returns:
            The account id of each line as UUID, in line order.

        Raises:
            AccountNotFoundError: Listing offending ids in first-seen order.
        """
        requested: list[str] = []
        resolved: dict[str, UUID | None] = {}
        for line in prepared:
            key = str(line.account_id)
            if key not in resolved:
                requested.append(key)
                resolved[key] = _to_uuid(line.account_id)

        valid_ids = [uid for uid in resolved.values() if uid is not None]
        active = set()
        if valid_ids:
            active = set(
                self.session.execute(
                    select(Account.id).where(
                        Account.id.in_(valid_ids),
                        Account.is_active.is_(True),
                    )
                ).scalars()
            )

        missing = [key for key in requested if resolved[key] not in active]
        if missing:
            logger.warning("journal_accounts_not_found", extra={"account_ids": missing})
            raise AccountNotFoundError(missing)

        return [resolved[str(line.account_id)] for line in prepared]

    def _insert_entry(
        self,
        *,
        entry_date: date,
        description: str,
        prepared: list[PreparedLine],
        account_ids: list[UUID],
        source: SourceDocumentType,
        source_document_id: str | None,
        period_id: UUID | None,
        total_debit: Decimal,
        total_credit: Decimal,
        auto_post: bool,
        created_by: str | None,
        idempotency_key: str | None,
        notes: str | None,
    ) -> JournalEntry:
        number = self._sequence_service.next_number(self._policy.journal_prefix)

        entry = JournalEntry(
            number=number,
            entry_date=entry_date,
            description=description,
            status=JournalEntryStatus.DRAFT,
            source_document=source,
            source_document_id=source_document_id,
            period_id=period_id,
            total_debit=total_debit,
            total_credit=total_credit,
            is_auto_generated=source != SourceDocumentType.MANUAL,
            created_by=created_by,
            idempotency_key=idempotency_key,
            notes=notes,
        )

        for line_number, (line, account_id) in enumerate(
            zip(prepared, account_ids), start=1
        ):
            entry.lines.append(
                JournalEntryLine(
                    line_number=line_number,
                    account_id=account_id,
                    description=line.description or description,
                    debit_amount=line.debit_amount,
                    credit_amount=line.credit_amount,
                    cost_center_id=line.cost_center_id,
                    project_id=line.project_id,
                    tax_code_id=line.tax_code_id,
                    tax_amount=line.tax_amount,
                    entity_type=line.entity_type,
                    entity_id=line.entity_id,
                )
            )

        if auto_post:
            actor = created_by or self._policy.system_actor
            now = self._clock.now()
            entry.status = JournalEntryStatus.POSTED
            entry.approved_by = actor
            entry.approved_at = now
            entry.posted_by = actor
            entry.posted_at = now

        self.session.add(entry)
        self.session.flush()
        return entry

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def approve(self, journal_entry_id: UUID, approved_by: str) -> JournalEntry:
        """
        Approve a DRAFT entry.

        Raises:
            JournalEntryNotFoundError: Unknown entry.
            InvalidStateTransitionError: Entry is not DRAFT.
            SelfApprovalError: ``approved_by`` created the entry.
        """
        entry = self._get_for_update(journal_entry_id)

        if not entry.is_draft:
            raise InvalidStateTransitionError(
                str(entry.id), "approve", entry.status.value, JournalEntryStatus.DRAFT.value
            )
        if entry.created_by and entry.created_by == approved_by:
            logger.warning(
                "journal_self_approval_rejected",
                extra={"entry_number": entry.number, "actor_id": approved_by},
            )
            raise SelfApprovalError(str(entry.id), approved_by)

        entry.status = JournalEntryStatus.APPROVED
        entry.approved_by = approved_by
        entry.approved_at = self._clock.now()
        self.session.flush()

        self._auditor.record(
            AuditRecord(
                table_name="journal_entries",
                record_id=str(entry.id),
                action=AuditAction.APPROVE,
                user_id=approved_by,
                description=f"Approved journal entry {entry.number}",
                previous_values={"status": JournalEntryStatus.DRAFT},
                new_values={"status": entry.status, "approved_by": approved_by},
            )
        )
        logger.info(
            "journal_entry_approved",
            extra={"entry_number": entry.number, "actor_id": approved_by},
        )
        return entry

    def post(self, journal_entry_id: UUID, posted_by: str) -> JournalEntry:
        """
        Post an APPROVED entry after re-checking its period.

        Raises:
            JournalEntryNotFoundError: Unknown entry.
            InvalidStateTransitionError: Entry is not APPROVED.
            PeriodNotFoundError / ClosedPeriodError / LockedPeriodError:
                The period changed since approval; the entry stays APPROVED.
        """
        entry = self._get_for_update(journal_entry_id)

        if entry.status != JournalEntryStatus.APPROVED:
            raise InvalidStateTransitionError(
                str(entry.id), "post", entry.status.value, JournalEntryStatus.APPROVED.value
            )

        period = self._period_service.validate(entry.entry_date)

        if period is not None:
            entry.period_id = period.id
        entry.status = JournalEntryStatus.POSTED
        entry.posted_by = posted_by
        entry.posted_at = self._clock.now()
        self.session.flush()

        self._auditor.record(
            AuditRecord(
                table_name="journal_entries",
                record_id=str(entry.id),
                action=AuditAction.POST,
                user_id=posted_by,
                description=f"Posted journal entry {entry.number}",
                previous_values={"status": JournalEntryStatus.APPROVED},
                new_values={
                    "status": entry.status,
                    "posted_by": posted_by,
                    "total_debit": entry.total_debit,
                    "total_credit": entry.total_credit,
                },
            )
        )
        logger.info(
            "journal_entry_posted",
            extra={"entry_number": entry.number, "actor_id": posted_by},
        )
        return entry
