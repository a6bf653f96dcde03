"""
Append-only persistence tests.

Verifies:
- Posted and reversed journal entries cannot be edited or deleted
- Lines under a posted entry cannot be edited or deleted
- Audit rows are never updated or deleted
- Locked periods cannot be changed
- The workflow's own transitions still go through
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select

from gl_kernel.domain.dtos import JournalEntryStatus, PeriodStatus
from gl_kernel.exceptions import ImmutabilityViolationError
from gl_kernel.models.audit_log import AuditLogEntry
from gl_kernel.models.fiscal_period import AccountingPeriod
from tests.conftest import TEST_ACTOR, TEST_APPROVER


@pytest.fixture
def posted_entry(journal_service, standard_accounts, make_lines):
    return journal_service.create(
        date(2025, 1, 15),
        "Cash sale",
        make_lines(standard_accounts["cash"], standard_accounts["revenue"]),
        auto_post=True,
        created_by=TEST_ACTOR,
    )


class TestJournalEntryImmutability:
    def test_draft_can_be_edited(self, session, journal_service, standard_accounts, make_lines):
        draft = journal_service.create(
            date(2025, 1, 15),
            "Draft",
            make_lines(standard_accounts["cash"], standard_accounts["revenue"]),
        )
        draft.description = "Draft, corrected"
        session.flush()

    def test_posted_entry_update_blocked(self, session, posted_entry):
        posted_entry.description = "Tampered"
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert "description" in exc_info.value.reason

    def test_posted_entry_delete_blocked(self, session, posted_entry):
        session.delete(posted_entry)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_reversal_link_allowed(self, reversal_service, posted_entry):
        result = reversal_service.reverse(posted_entry.id, TEST_APPROVER)
        assert result.original_entry.status == JournalEntryStatus.REVERSED

    def test_reversed_entry_update_blocked(self, session, reversal_service, posted_entry):
        reversal_service.reverse(posted_entry.id, TEST_APPROVER)
        posted_entry.reversal_reason = "Rewritten"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_posted_to_reversed_with_other_fields_blocked(self, session, posted_entry):
        posted_entry.status = JournalEntryStatus.REVERSED
        posted_entry.total_debit = Decimal("1.00")
        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestJournalLineImmutability:
    def test_line_update_blocked(self, session, posted_entry):
        posted_entry.lines[0].debit_amount = Decimal("999.00")
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_line_delete_blocked(self, session, posted_entry):
        session.delete(posted_entry.lines[0])
        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestAuditLogImmutability:
    def test_update_blocked(self, session, posted_entry):
        row = session.execute(select(AuditLogEntry)).scalars().first()
        row.description = "Nothing happened"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_delete_blocked(self, session, posted_entry):
        row = session.execute(select(AuditLogEntry)).scalars().first()
        session.delete(row)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestLockedPeriodImmutability:
    def test_locked_period_update_blocked(
        self, session, fiscal_year_service, create_fiscal_year
    ):
        info = create_fiscal_year().periods[0]
        fiscal_year_service.lock_period(info.id, TEST_ACTOR)

        period = session.get(AccountingPeriod, info.id)
        period.status = PeriodStatus.OPEN
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_closed_period_can_change(self, session, fiscal_year_service, create_fiscal_year):
        info = create_fiscal_year().periods[0]
        fiscal_year_service.close_period(info.id, TEST_ACTOR)

        period = session.get(AccountingPeriod, info.id)
        period.name = "January 2025 (adjusted)"
        session.flush()
