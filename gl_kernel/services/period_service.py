"""
PeriodService -- the period registry: which period owns a date, and may
it be written to.

Responsibility:
    Resolves a transaction date to the accounting period whose inclusive
    bounds contain it, and decides whether a journal write dated there is
    permitted.  Consulted by JournalService at creation and again at post,
    and by ReversalService for the reversal date.

Architecture position:
    Kernel > Services -- imperative shell, read-mostly.  Periods are
    created and transitioned by FiscalYearService only.

Invariants enforced:
    - No journal write lands in a CLOSED or LOCKED period.
    - A date that no period covers is handled by the injected
      UnmatchedPeriodPolicy (bootstrap / reject / allow).
    - Returns frozen ``AccountingPeriodInfo`` DTOs, never ORM entities.

Failure modes:
    - PeriodNotFoundError: no period covers the date and the policy
      forbids unmatched dates.
    - ClosedPeriodError: the covering period is CLOSED.
    - LockedPeriodError: the covering period is LOCKED.

Audit relevance:
    Gate failures are logged at WARNING with the date and period name.
"""

from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from gl_kernel.domain.clock import Clock
from gl_kernel.domain.dtos import AccountingPeriodInfo, PeriodStatus
from gl_kernel.domain.policy import DEFAULT_POLICY, LedgerPolicy, UnmatchedPeriodPolicy
from gl_kernel.exceptions import (
    AccountingPeriodNotFoundError,
    ClosedPeriodError,
    LockedPeriodError,
    PeriodNotFoundError,
)
from gl_kernel.logging_config import get_logger
from gl_kernel.models.fiscal_period import AccountingPeriod
from gl_kernel.services.base import BaseService

logger = get_logger("services.period")


class PeriodService(BaseService[AccountingPeriod]):
    """
    Period registry.

    Contract:
        ``find_for_date()`` answers "which period", ``validate()`` answers
        "may I write here" and raises a typed error when not.

    Guarantees:
        - Pure lookup: never creates or transitions periods.

    Non-goals:
        - Does NOT call ``session.commit()``.
        - Does NOT lock, close or reopen periods (FiscalYearService).
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        policy: LedgerPolicy = DEFAULT_POLICY,
    ):
        super().__init__(session, clock)
        self._policy = policy

    def _find_orm(self, entry_date: date) -> AccountingPeriod | None:
        return self.session.execute(
            select(AccountingPeriod)
            .where(
                AccountingPeriod.start_date <= entry_date,
                AccountingPeriod.end_date >= entry_date,
            )
            .order_by(AccountingPeriod.start_date)
            .limit(1)
        ).scalar_one_or_none()

    def _any_periods_exist(self) -> bool:
        return self.session.execute(
            select(AccountingPeriod.id).limit(1)
        ).first() is not None

    def find_for_date(self, entry_date: date) -> AccountingPeriodInfo | None:
        """Return the period whose inclusive bounds contain ``entry_date``."""
        period = self._find_orm(entry_date)
        return AccountingPeriodInfo.from_model(period) if period else None

    def get_period(self, period_id) -> AccountingPeriodInfo:
        """
        Raises:
            AccountingPeriodNotFoundError: If no period has this id.
        """
        period = self.session.get(AccountingPeriod, period_id)
        if period is None:
            raise AccountingPeriodNotFoundError(str(period_id))
        return AccountingPeriodInfo.from_model(period)

    def validate(self, entry_date: date) -> AccountingPeriodInfo | None:
        """
        Check that a journal write dated ``entry_date`` is permitted.

        Postconditions:
            - Returns the covering OPEN period, or None when no period
              covers the date and the unmatched-date policy allows it.

        Raises:
            PeriodNotFoundError: No covering period and the policy forbids it.
            LockedPeriodError: Covering period is LOCKED.
            ClosedPeriodError: Covering period is CLOSED.
        """
        period = self._find_orm(entry_date)

        if period is None:
            if self._unmatched_date_allowed():
                logger.debug(
                    "period_unmatched_date_allowed",
                    extra={
                        "entry_date": str(entry_date),
                        "policy": self._policy.unmatched_period_policy.value,
                    },
                )
                return None
            logger.warning(
                "period_not_found",
                extra={"entry_date": str(entry_date)},
            )
            raise PeriodNotFoundError(str(entry_date))

        if period.is_locked:
            logger.warning(
                "period_locked_rejection",
                extra={"entry_date": str(entry_date), "period_name": period.name},
            )
            raise LockedPeriodError(period.name, str(entry_date))

        if period.status == PeriodStatus.CLOSED:
            logger.warning(
                "period_closed_rejection",
                extra={"entry_date": str(entry_date), "period_name": period.name},
            )
            raise ClosedPeriodError(period.name, str(entry_date))

        return AccountingPeriodInfo.from_model(period)

    def _unmatched_date_allowed(self) -> bool:
        policy = self._policy.unmatched_period_policy
        if policy == UnmatchedPeriodPolicy.ALLOW:
            return True
        if policy == UnmatchedPeriodPolicy.REJECT:
            return False
        return not self._any_periods_exist()
