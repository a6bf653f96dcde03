"""
gl_services.general_ledger -- the public GeneralLedger facade.

Responsibility:
    One method per ledger operation.  Each call is one unit of work: it
    opens a session, builds a LedgerOrchestrator, runs the operation,
    converts the result to frozen DTOs, and commits -- or rolls back and
    re-raises on any error.

Architecture position:
    Services -- outermost layer of this package.  Collaborators (invoice,
    bill and payment workflows) call the facade, or use the kernel services
    directly inside their own transaction via ``LedgerOrchestrator``.

Invariants enforced:
    - Atomicity: a failed call leaves nothing behind, including the
      sequence number it allocated.
    - No ORM object escapes a call; results are DTOs.
    - Every call runs under a fresh ``correlation_id`` in ``LogContext``.

Failure modes:
    - Any ``GeneralLedgerError`` from the kernel propagates unchanged
      after rollback.
"""

from __future__ import annotations

from collections.abc import Callable, Generator, Mapping, Sequence
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.orm import Session, sessionmaker

from gl_config.bridges import build_ledger_policy
from gl_config.schema import LedgerSettings
from gl_kernel.db.engine import session_scope
from gl_kernel.domain.clock import Clock, SystemClock
from gl_kernel.domain.dtos import (
    AccountingPeriodInfo,
    BalanceFilters,
    EntityType,
    FiscalYearInfo,
    JournalEntryRecord,
    JournalEntryStatus,
    LineInput,
    ReversalRecord,
    SourceDocumentType,
)
from gl_kernel.domain.policy import DEFAULT_POLICY, LedgerPolicy
from gl_kernel.logging_config import LogContext, get_logger
from gl_kernel.selectors.ledger_selector import AccountBalance, AccountBalanceRow, TrialBalance
from gl_kernel.selectors.subledger_selector import SubledgerBalance
from gl_kernel.services.auditor_service import AuditSink
from gl_services.ledger_orchestrator import LedgerOrchestrator

logger = get_logger("services.general_ledger")


class GeneralLedger:
    """Transactional facade over the ledger kernel.

    Contract:
        Construct once per process with a session factory; call from any
        thread.  Each method commits its own transaction.

    Non-goals:
        - Does NOT batch several operations into one transaction; use
          ``LedgerOrchestrator`` inside ``session_scope`` for that.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        policy: LedgerPolicy = DEFAULT_POLICY,
        audit_sink_factory: Callable[[Session], AuditSink] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._policy = policy
        self._audit_sink_factory = audit_sink_factory

    @classmethod
    def from_settings(
        cls,
        session_factory: sessionmaker[Session],
        settings: LedgerSettings,
        clock: Clock | None = None,
        audit_sink_factory: Callable[[Session], AuditSink] | None = None,
    ) -> GeneralLedger:
        return cls(session_factory, clock, build_ledger_policy(settings), audit_sink_factory)

    @property
    def policy(self) -> LedgerPolicy:
        return self._policy

    @contextmanager
    def _unit_of_work(
        self, operation: str, actor: str | None = None
    ) -> Generator[LedgerOrchestrator, None, None]:
        with LogContext.bind(
            correlation_id=str(uuid4()), operation=operation, actor_id=actor
        ):
            with session_scope(self._session_factory) as session:
                audit_sink = (
                    self._audit_sink_factory(session) if self._audit_sink_factory else None
                )
                yield LedgerOrchestrator(session, self._policy, self._clock, audit_sink)

    # =========================================================================
    # Journal engine
    # =========================================================================

    def create_journal_entry(
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
    ) -> JournalEntryRecord:
        with self._unit_of_work("create_journal_entry", created_by) as ledger:
            entry = ledger.journal_service.create(
                entry_date=entry_date,
                description=description,
                lines=lines,
                source_document=source_document,
                source_document_id=source_document_id,
                auto_post=auto_post,
                created_by=created_by,
                idempotency_key=idempotency_key,
                notes=notes,
            )
            return JournalEntryRecord.from_model(entry)

    def approve_journal_entry(self, journal_entry_id: UUID, approved_by: str) -> JournalEntryRecord:
        with self._unit_of_work("approve_journal_entry", approved_by) as ledger:
            with LogContext.bind(entry_id=str(journal_entry_id)):
                entry = ledger.journal_service.approve(journal_entry_id, approved_by)
                return JournalEntryRecord.from_model(entry)

    def post_journal_entry(self, journal_entry_id: UUID, posted_by: str) -> JournalEntryRecord:
        with self._unit_of_work("post_journal_entry", posted_by) as ledger:
            with LogContext.bind(entry_id=str(journal_entry_id)):
                entry = ledger.journal_service.post(journal_entry_id, posted_by)
                return JournalEntryRecord.from_model(entry)

    def reverse_journal_entry(
        self,
        journal_entry_id: UUID,
        reversed_by: str,
        reversal_date: date | None = None,
        reason: str | None = None,
    ) -> ReversalRecord:
        with self._unit_of_work("reverse_journal_entry", reversed_by) as ledger:
            with LogContext.bind(entry_id=str(journal_entry_id)):
                result = ledger.reversal_service.reverse(
                    journal_entry_id,
                    reversed_by,
                    reversal_date=reversal_date,
                    reason=reason,
                )
                return ReversalRecord(
                    original_entry=JournalEntryRecord.from_model(result.original_entry),
                    reversal_entry=JournalEntryRecord.from_model(result.reversal_entry),
                )

    def get_journal_entry(self, journal_entry_id: UUID) -> JournalEntryRecord | None:
        with self._unit_of_work("get_journal_entry") as ledger:
            return ledger.journal_selector.get_entry(journal_entry_id)

    def list_journal_entries(
        self,
        status: JournalEntryStatus | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        source_document: SourceDocumentType | None = None,
        source_document_id: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[JournalEntryRecord]:
        with self._unit_of_work("list_journal_entries") as ledger:
            return ledger.journal_selector.list_entries(
                status=status,
                start_date=start_date,
                end_date=end_date,
                source_document=source_document,
                source_document_id=source_document_id,
                limit=limit,
                offset=offset,
            )

    # =========================================================================
    # Balances
    # =========================================================================

    def get_account_balance(
        self, account_id: UUID, filters: BalanceFilters | None = None
    ) -> AccountBalance:
        with self._unit_of_work("get_account_balance") as ledger:
            return ledger.ledger_selector.account_balance(account_id, filters)

    def get_all_account_balances(
        self, filters: BalanceFilters | None = None
    ) -> list[AccountBalanceRow]:
        with self._unit_of_work("get_all_account_balances") as ledger:
            return ledger.ledger_selector.all_account_balances(filters)

    def get_trial_balance(self, filters: BalanceFilters | None = None) -> TrialBalance:
        with self._unit_of_work("get_trial_balance") as ledger:
            return ledger.ledger_selector.trial_balance(filters)

    def get_subledger_balances(
        self,
        entity_type: EntityType | str,
        filters: BalanceFilters | None = None,
        entity_id: str | None = None,
    ) -> list[SubledgerBalance]:
        with self._unit_of_work("get_subledger_balances") as ledger:
            return ledger.subledger_selector.subledger_balances(
                entity_type, filters, entity_id=entity_id
            )

    # =========================================================================
    # Fiscal years and periods
    # =========================================================================

    def create_fiscal_year(
        self, name: str, start_date: date, end_date: date, created_by: str
    ) -> FiscalYearInfo:
        with self._unit_of_work("create_fiscal_year", created_by) as ledger:
            return ledger.fiscal_year_service.create_fiscal_year(
                name, start_date, end_date, created_by
            )

    def lock_accounting_period(self, period_id: UUID, locked_by: str) -> AccountingPeriodInfo:
        with self._unit_of_work("lock_accounting_period", locked_by) as ledger:
            return ledger.fiscal_year_service.lock_period(period_id, locked_by)

    def close_accounting_period(self, period_id: UUID, closed_by: str) -> AccountingPeriodInfo:
        with self._unit_of_work("close_accounting_period", closed_by) as ledger:
            return ledger.fiscal_year_service.close_period(period_id, closed_by)

    def reopen_accounting_period(self, period_id: UUID, reopened_by: str) -> AccountingPeriodInfo:
        with self._unit_of_work("reopen_accounting_period", reopened_by) as ledger:
            return ledger.fiscal_year_service.reopen_period(period_id, reopened_by)

    def list_accounting_periods(
        self, fiscal_year_id: UUID | None = None
    ) -> list[AccountingPeriodInfo]:
        with self._unit_of_work("list_accounting_periods") as ledger:
            return ledger.fiscal_year_service.list_periods(fiscal_year_id)

    # =========================================================================
    # Rounding
    # =========================================================================

    def handle_rounding_difference(
        self,
        amount: Decimal | int | str,
        description: str | None = None,
        related_document_type: str | None = None,
        related_document_id: str | None = None,
        entry_date: date | None = None,
        created_by: str | None = None,
    ) -> JournalEntryRecord:
        with self._unit_of_work("handle_rounding_difference", created_by) as ledger:
            entry = ledger.rounding_service.handle_rounding_difference(
                amount,
                description=description,
                related_document_type=related_document_type,
                related_document_id=related_document_id,
                entry_date=entry_date,
                created_by=created_by,
            )
            return JournalEntryRecord.from_model(entry)
