"""
Module: gl_kernel.models.fiscal_period
Responsibility: ORM persistence for fiscal years and their monthly
    accounting periods -- the date ranges that gate which entries may be
    written.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/dtos.py only.

Invariants enforced:
    - Periods of one fiscal year are numbered uniquely
      (uq_period_year_number).
    - A LOCKED period never returns to OPEN (enforced by
      FiscalYearService and by the period listener in db/immutability.py).

Failure modes:
    - ClosedPeriodError / LockedPeriodError when a journal date falls in a
      period that does not accept writes.
    - PeriodNotFoundError when no period covers a date (subject to the
      unmatched-date policy).

Audit relevance:
    closed_by and closed_at record who closed or locked a period and when;
    reopening clears them.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gl_kernel.db.base import EnumString, TrackedBase, UUIDString
from gl_kernel.domain.dtos import FiscalYearStatus, PeriodStatus


class FiscalYear(TrackedBase):
    """
    Fiscal year container for up to twelve monthly periods.

    Guarantees:
        - name is unique (uq_fiscal_year_name).
        - periods are ordered by period_number.
    """

    __tablename__ = "fiscal_years"

    __table_args__ = (
        UniqueConstraint("name", name="uq_fiscal_year_name"),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)

    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[FiscalYearStatus] = mapped_column(
        EnumString(FiscalYearStatus, 10),
        default=FiscalYearStatus.OPEN,
        nullable=False,
    )

    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    periods: Mapped[list["AccountingPeriod"]] = relationship(
        back_populates="fiscal_year",
        cascade="all, delete-orphan",
        order_by="AccountingPeriod.period_number",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<FiscalYear {self.name}: {self.start_date}..{self.end_date}>"


class AccountingPeriod(TrackedBase):
    """
    One accounting period (normally a calendar month).

    Contract:
        start_date and end_date are both inclusive.  Only OPEN periods
        accept journal writes.
    """

    __tablename__ = "accounting_periods"

    __table_args__ = (
        UniqueConstraint(
            "fiscal_year_id", "period_number", name="uq_period_year_number"
        ),
        Index("idx_period_dates", "start_date", "end_date"),
        Index("idx_period_status", "status"),
    )

    fiscal_year_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("fiscal_years.id"),
        nullable=False,
    )

    # e.g. "January 2025"
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    period_number: Mapped[int] = mapped_column(Integer, nullable=False)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)

    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[PeriodStatus] = mapped_column(
        EnumString(PeriodStatus, 10),
        default=PeriodStatus.OPEN,
        nullable=False,
    )

    closed_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    closed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    fiscal_year: Mapped["FiscalYear"] = relationship(back_populates="periods")

    def __repr__(self) -> str:
        return f"<AccountingPeriod {self.name}: {self.status.value}>"

    @property
    def is_open(self) -> bool:
        return self.status == PeriodStatus.OPEN

    @property
    def is_locked(self) -> bool:
        return self.status == PeriodStatus.LOCKED
