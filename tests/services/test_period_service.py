"""
Period registry tests.

Verifies:
- find_for_date uses inclusive bounds
- validate refuses closed and locked periods
- Unmatched dates follow the configured policy (bootstrap/reject/allow)
"""

from datetime import date

import pytest

from gl_kernel.domain.policy import LedgerPolicy, UnmatchedPeriodPolicy
from gl_kernel.exceptions import (
    AccountingPeriodNotFoundError,
    ClosedPeriodError,
    LockedPeriodError,
    PeriodNotFoundError,
)
from gl_kernel.services.period_service import PeriodService
from tests.conftest import TEST_ACTOR


class TestFindForDate:
    def test_inclusive_bounds(self, period_service, create_fiscal_year):
        create_fiscal_year()

        assert period_service.find_for_date(date(2025, 1, 1)).name == "January 2025"
        assert period_service.find_for_date(date(2025, 1, 31)).name == "January 2025"
        assert period_service.find_for_date(date(2025, 2, 1)).name == "February 2025"

    def test_no_match_returns_none(self, period_service, create_fiscal_year):
        create_fiscal_year()
        assert period_service.find_for_date(date(2026, 1, 1)) is None

    def test_get_period_unknown_id(self, period_service):
        from uuid import uuid4

        with pytest.raises(AccountingPeriodNotFoundError):
            period_service.get_period(uuid4())


class TestValidate:
    def test_open_period_returned(self, period_service, create_fiscal_year):
        create_fiscal_year()
        period = period_service.validate(date(2025, 3, 15))
        assert period.name == "March 2025"
        assert period.accepts_postings

    def test_closed_period_refused(
        self, period_service, fiscal_year_service, create_fiscal_year, captured_logs
    ):
        fy = create_fiscal_year()
        fiscal_year_service.close_period(fy.periods[2].id, TEST_ACTOR)

        with pytest.raises(ClosedPeriodError) as exc_info:
            period_service.validate(date(2025, 3, 15))

        assert exc_info.value.period_name == "March 2025"
        assert any(r["message"] == "period_closed_rejection" for r in captured_logs())

    def test_locked_period_refused(self, period_service, fiscal_year_service, create_fiscal_year):
        fy = create_fiscal_year()
        fiscal_year_service.lock_period(fy.periods[0].id, TEST_ACTOR)

        with pytest.raises(LockedPeriodError):
            period_service.validate(date(2025, 1, 10))


class TestUnmatchedDatePolicy:
    def test_bootstrap_allows_when_no_periods_exist(self, period_service):
        assert period_service.validate(date(2025, 6, 1)) is None

    def test_bootstrap_refuses_once_periods_exist(self, period_service, create_fiscal_year):
        create_fiscal_year()
        with pytest.raises(PeriodNotFoundError):
            period_service.validate(date(2030, 1, 1))

    def test_reject_policy_always_refuses(self, session):
        service = PeriodService(
            session, policy=LedgerPolicy(unmatched_period_policy=UnmatchedPeriodPolicy.REJECT)
        )
        with pytest.raises(PeriodNotFoundError):
            service.validate(date(2025, 6, 1))

    def test_allow_policy_always_allows(self, session, create_fiscal_year):
        create_fiscal_year()
        service = PeriodService(
            session, policy=LedgerPolicy(unmatched_period_policy=UnmatchedPeriodPolicy.ALLOW)
        )
        assert service.validate(date(2030, 1, 1)) is None
