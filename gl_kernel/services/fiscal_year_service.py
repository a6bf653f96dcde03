"""
FiscalYearService -- fiscal year creation and accounting period lifecycle.

Responsibility:
    Creates a fiscal year together with its monthly accounting periods and
    drives the period lifecycle (close, reopen, lock).  It is the only
    component that creates or mutates FiscalYear and AccountingPeriod rows;
    PeriodService only reads them.

Architecture position:
    Kernel > Services -- imperative shell, invoked by administrative
    operations only.

Invariants enforced:
    - A fiscal year spans at most twelve calendar months and its periods
      never overlap existing periods.
    - Periods are consecutive, inclusive, and the last one is clipped so
      it never ends after the fiscal year.
    - LOCKED is terminal: a locked period can be neither closed nor
      reopened.
    - Flush-only: never commits or rolls back the session.

Failure modes:
    - InvalidFiscalYearError: start after end, range longer than twelve
      months, or duplicate fiscal year name.
    - PeriodOverlapError: the new range collides with existing periods.
    - AccountingPeriodNotFoundError: unknown period id.
    - PeriodAlreadyLockedError / LockedPeriodError / PeriodAlreadyOpenError:
      illegal lifecycle transition.

Audit relevance:
    Creation is audited as CREATE, lock and close as LOCK, reopen as UPDATE,
    each with before/after status snapshots.
"""

import calendar
from datetime import date, timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from gl_kernel.domain.clock import Clock
from gl_kernel.domain.dtos import (
    AccountingPeriodInfo,
    AuditAction,
    AuditRecord,
    FiscalYearInfo,
    FiscalYearStatus,
    PeriodStatus,
)
from gl_kernel.exceptions import (
    AccountingPeriodNotFoundError,
    InvalidFiscalYearError,
    LockedPeriodError,
    PeriodAlreadyLockedError,
    PeriodAlreadyOpenError,
    PeriodOverlapError,
)
from gl_kernel.logging_config import get_logger
from gl_kernel.models.fiscal_period import AccountingPeriod, FiscalYear
from gl_kernel.services.auditor_service import AuditSink
from gl_kernel.services.base import BaseService

logger = get_logger("services.fiscal_year")

MAX_PERIODS_PER_YEAR = 12


def _month_end(day: date) -> date:
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def _next_month_start(day: date) -> date:
    return _month_end(day) + timedelta(days=1)


def monthly_ranges(start_date: date, end_date: date) -> list[tuple[date, date]]:
    """
    Split ``[start_date, end_date]`` into calendar-month ranges.

    The first range starts on ``start_date``; every later range starts on
    the 1st of its month.  The last range is clipped to ``end_date``.
    Stops after MAX_PERIODS_PER_YEAR ranges.
    """
    ranges: list[tuple[date, date]] = []
    cursor = start_date
    while cursor <= end_date and len(ranges) < MAX_PERIODS_PER_YEAR:
        ranges.append((cursor, min(_month_end(cursor), end_date)))
        cursor = _next_month_start(cursor)
    return ranges


class FiscalYearService(BaseService[FiscalYear]):
    """
    Administrator for fiscal years and accounting periods.

    Contract:
        ``create_fiscal_year()`` is atomic: the year and all its periods
        are written in one savepoint or not at all.  Period transitions
        take a row lock on the period first.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT post closing entries or roll balances forward.
    """

    def __init__(self, session: Session, auditor: AuditSink, clock: Clock | None = None):
        super().__init__(session, clock)
        self._auditor = auditor

    # =========================================================================
    # Fiscal years
    # =========================================================================

    def create_fiscal_year(
        self,
        name: str,
        start_date: date,
        end_date: date,
        created_by: str,
    ) -> FiscalYearInfo:
        """
        Create a fiscal year and its monthly periods.

        Preconditions:
            - ``start_date <= end_date``.
            - The range covers at most twelve calendar months.  A longer
              range is rejected outright rather than truncated to its
              first twelve periods.

        Postconditions:
            - One OPEN FiscalYear and one OPEN AccountingPeriod per month,
              named "Month YYYY" and numbered from 1.

        Raises:
            InvalidFiscalYearError: Bad range or duplicate name.
            PeriodOverlapError: Range overlaps existing periods.
        """
        if start_date > end_date:
            raise InvalidFiscalYearError(
                name, f"start date {start_date} is after end date {end_date}"
            )

        ranges = monthly_ranges(start_date, end_date)
        if ranges[-1][1] < end_date:
            raise InvalidFiscalYearError(
                name,
                f"range {start_date} to {end_date} spans more than "
                f"{MAX_PERIODS_PER_YEAR} months",
            )

        existing_year = self.session.execute(
            select(FiscalYear.id).where(FiscalYear.name == name)
        ).first()
        if existing_year is not None:
            raise InvalidFiscalYearError(name, "a fiscal year with this name already exists")

        self._validate_no_overlap(name, start_date, end_date)

        with self.session.begin_nested():
            fiscal_year = FiscalYear(
                name=name,
                start_date=start_date,
                end_date=end_date,
                status=FiscalYearStatus.OPEN,
                created_by=created_by,
            )
            self.session.add(fiscal_year)

            for number, (period_start, period_end) in enumerate(ranges, start=1):
                fiscal_year.periods.append(
                    AccountingPeriod(
                        name=f"{calendar.month_name[period_start.month]} {period_start.year}",
                        period_number=number,
                        start_date=period_start,
                        end_date=period_end,
                        status=PeriodStatus.OPEN,
                    )
                )

            self.session.flush()

        self._auditor.record(
            AuditRecord(
                table_name="fiscal_years",
                record_id=str(fiscal_year.id),
                action=AuditAction.CREATE,
                user_id=created_by,
                description=f"Created fiscal year {name} with {len(ranges)} periods",
                new_values={
                    "name": name,
                    "start_date": start_date,
                    "end_date": end_date,
                    "period_count": len(ranges),
                },
            )
        )

        logger.info(
            "fiscal_year_created",
            extra={
                "fiscal_year": name,
                "start_date": str(start_date),
                "end_date": str(end_date),
                "period_count": len(ranges),
            },
        )

        return FiscalYearInfo.from_model(fiscal_year)

    def _validate_no_overlap(self, name: str, start_date: date, end_date: date) -> None:
        """
        Two ranges overlap if: start1 <= end2 AND start2 <= end1

        Raises:
            PeriodOverlapError: If any existing period overlaps.
        """
        overlapping = self.session.execute(
            select(AccountingPeriod)
            .where(
                AccountingPeriod.start_date <= end_date,
                AccountingPeriod.end_date >= start_date,
            )
            .order_by(AccountingPeriod.start_date)
            .limit(1)
        ).scalar_one_or_none()

        if overlapping is not None:
            raise PeriodOverlapError(
                new_period_name=name,
                existing_period_name=overlapping.name,
                overlap_start=str(max(start_date, overlapping.start_date)),
                overlap_end=str(min(end_date, overlapping.end_date)),
            )

    def get_fiscal_year(self, fiscal_year_id: UUID) -> FiscalYearInfo | None:
        fiscal_year = self.session.get(FiscalYear, fiscal_year_id)
        return FiscalYearInfo.from_model(fiscal_year) if fiscal_year else None

    def list_periods(self, fiscal_year_id: UUID | None = None) -> list[AccountingPeriodInfo]:
        """All periods (optionally of one fiscal year) ordered by start date."""
        query = select(AccountingPeriod).order_by(AccountingPeriod.start_date)
        if fiscal_year_id is not None:
            query = query.where(AccountingPeriod.fiscal_year_id == fiscal_year_id)
        return [
            AccountingPeriodInfo.from_model(p)
            for p in self.session.execute(query).scalars().all()
        ]

    # =========================================================================
    # Period lifecycle
    # =========================================================================

    def _get_period_for_update(self, period_id: UUID) -> AccountingPeriod:
        period = self.session.execute(
            select(AccountingPeriod)
            .where(AccountingPeriod.id == period_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if period is None:
            raise AccountingPeriodNotFoundError(str(period_id))
        return period

    def lock_period(self, period_id: UUID, locked_by: str) -> AccountingPeriodInfo:
        """
        Irreversibly lock a period.

        Raises:
            AccountingPeriodNotFoundError: Unknown period.
            PeriodAlreadyLockedError: Period is already locked.
        """
        period = self._get_period_for_update(period_id)
        if period.is_locked:
            raise PeriodAlreadyLockedError(period.name)

        previous_status = period.status
        period.status = PeriodStatus.LOCKED
        period.closed_by = locked_by
        period.closed_at = self._clock.now()
        self.session.flush()

        self._record_transition(
            period,
            AuditAction.LOCK,
            locked_by,
            previous_status,
            f"Locked accounting period {period.name}",
        )
        logger.info(
            "period_locked",
            extra={"period_name": period.name, "actor_id": locked_by},
        )
        return AccountingPeriodInfo.from_model(period)

    def close_period(self, period_id: UUID, closed_by: str) -> AccountingPeriodInfo:
        """
        Close a period (soft: it may be reopened later).

        Closing an already closed period is allowed and refreshes the close
        metadata.  Unlike a plain soft close, this does not apply to every
        prior state: a LOCKED period is refused rather than moved back to
        CLOSED, where reopen_period could then return it to OPEN.

        Raises:
            AccountingPeriodNotFoundError: Unknown period.
            LockedPeriodError: Period is locked; closing it would open a
                path back to OPEN.
        """
        period = self._get_period_for_update(period_id)
        if period.is_locked:
            raise LockedPeriodError(period.name)

        previous_status = period.status
        period.status = PeriodStatus.CLOSED
        period.closed_by = closed_by
        period.closed_at = self._clock.now()
        self.session.flush()

        self._record_transition(
            period,
            AuditAction.LOCK,
            closed_by,
            previous_status,
            f"Closed accounting period {period.name}",
        )
        logger.info(
            "period_closed",
            extra={"period_name": period.name, "actor_id": closed_by},
        )
        return AccountingPeriodInfo.from_model(period)

    def reopen_period(self, period_id: UUID, reopened_by: str) -> AccountingPeriodInfo:
        """
        Reopen a closed period and clear its close metadata.

        Raises:
            AccountingPeriodNotFoundError: Unknown period.
            LockedPeriodError: Locked periods never reopen.
            PeriodAlreadyOpenError: Period is already open.
        """
        period = self._get_period_for_update(period_id)
        if period.is_locked:
            raise LockedPeriodError(period.name)
        if period.is_open:
            raise PeriodAlreadyOpenError(period.name)

        previous_status = period.status
        period.status = PeriodStatus.OPEN
        period.closed_by = None
        period.closed_at = None
        self.session.flush()

        self._record_transition(
            period,
            AuditAction.UPDATE,
            reopened_by,
            previous_status,
            f"Reopened accounting period {period.name}",
        )
        logger.info(
            "period_reopened",
            extra={"period_name": period.name, "actor_id": reopened_by},
        )
        return AccountingPeriodInfo.from_model(period)

    def _record_transition(
        self,
        period: AccountingPeriod,
        action: AuditAction,
        actor: str,
        previous_status: PeriodStatus,
        description: str,
    ) -> None:
        self._auditor.record(
            AuditRecord(
                table_name="accounting_periods",
                record_id=str(period.id),
                action=action,
                user_id=actor,
                description=description,
                previous_values={"status": previous_status},
                new_values={"status": period.status, "closed_by": period.closed_by},
            )
        )
