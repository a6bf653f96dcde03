"""
gl_services.ledger_orchestrator -- Central DI container for kernel services.

Responsibility:
    Creates every kernel service and selector exactly once for a session
    and wires them together.  No kernel service creates other services
    internally.

Architecture position:
    Services -- the only place where kernel services are constructed and
    composed.

Invariants enforced:
    - Single-instance lifecycle: one SequenceService, one audit sink and
      one PeriodService per session, shared by every writer.
    - DI transparency: all service wiring is visible in ``__init__``.
    - Immutability listeners are registered before any service runs, even
      when the session comes from an engine built outside gl_kernel.

Usage:
    orchestrator = LedgerOrchestrator(session, policy=policy, clock=clock)
    orchestrator.journal_service.create(...)
    orchestrator.ledger_selector.trial_balance()
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from gl_config.bridges import build_ledger_policy
from gl_config.schema import LedgerSettings
from gl_kernel.db.immutability import register_immutability_listeners
from gl_kernel.domain.clock import Clock, SystemClock
from gl_kernel.domain.policy import DEFAULT_POLICY, LedgerPolicy
from gl_kernel.selectors.journal_selector import JournalSelector
from gl_kernel.selectors.ledger_selector import LedgerSelector
from gl_kernel.selectors.subledger_selector import SubledgerSelector
from gl_kernel.services.auditor_service import AuditorService, AuditSink
from gl_kernel.services.fiscal_year_service import FiscalYearService
from gl_kernel.services.journal_service import JournalService
from gl_kernel.services.period_service import PeriodService
from gl_kernel.services.reversal_service import ReversalService
from gl_kernel.services.rounding_service import RoundingService
from gl_kernel.services.sequence_service import SequenceService


class LedgerOrchestrator:
    """Central factory for kernel services.

    Contract:
        Receives a Session and optional policy, clock and audit sink.
        Constructs every service in dependency order and exposes them as
        public attributes.

    Non-goals:
        - Does NOT manage transaction boundaries (caller's responsibility).
    """

    def __init__(
        self,
        session: Session,
        policy: LedgerPolicy = DEFAULT_POLICY,
        clock: Clock | None = None,
        audit_sink: AuditSink | None = None,
    ) -> None:
        register_immutability_listeners()
        self.session = session
        self.policy = policy
        self.clock = clock or SystemClock()

        # Foundational
        self.sequence_service = SequenceService(session, default_padding=policy.sequence_padding)
        self.auditor: AuditSink = audit_sink or AuditorService(
            session, self.clock, self.sequence_service
        )
        self.period_service = PeriodService(session, self.clock, policy)

        # Administration
        self.fiscal_year_service = FiscalYearService(session, self.auditor, self.clock)

        # Journal engine
        self.journal_service = JournalService(
            session,
            sequence_service=self.sequence_service,
            period_service=self.period_service,
            auditor=self.auditor,
            clock=self.clock,
            policy=policy,
        )
        self.reversal_service = ReversalService(
            session,
            sequence_service=self.sequence_service,
            period_service=self.period_service,
            auditor=self.auditor,
            clock=self.clock,
            policy=policy,
        )
        self.rounding_service = RoundingService(
            session, self.journal_service, clock=self.clock, policy=policy
        )

        # Read side
        self.journal_selector = JournalSelector(session)
        self.ledger_selector = LedgerSelector(session)
        self.subledger_selector = SubledgerSelector(session)

    @classmethod
    def from_settings(
        cls,
        session: Session,
        settings: LedgerSettings,
        clock: Clock | None = None,
        audit_sink: AuditSink | None = None,
    ) -> LedgerOrchestrator:
        return cls(session, build_ledger_policy(settings), clock, audit_sink)
