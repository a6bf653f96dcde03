"""
Reversal tests.

Verifies:
- The reversal mirrors the original line for line
- Both entries are linked and the original becomes REVERSED
- Only POSTED, never-reversed entries can be reversed
- The reversal date passes the period gate
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from gl_kernel.domain.dtos import (
    AuditAction,
    EntityType,
    JournalEntryStatus,
    LineInput,
    SourceDocumentType,
)
from gl_kernel.exceptions import (
    ClosedPeriodError,
    EntryAlreadyReversedError,
    InvalidStateTransitionError,
    JournalEntryNotFoundError,
)
from tests.conftest import TEST_ACTOR, TEST_APPROVER


@pytest.fixture
def fiscal_year(create_fiscal_year):
    return create_fiscal_year()


@pytest.fixture
def posted_invoice(journal_service, standard_accounts, fiscal_year):
    return journal_service.create(
        date(2025, 1, 10),
        "Invoice INV-7",
        [
            LineInput.debit(
                standard_accounts["receivables"].id,
                "121.00",
                entity_type=EntityType.CUSTOMER,
                entity_id="C-7",
            ),
            LineInput.credit(standard_accounts["revenue"].id, "100.00", cost_center_id="CC-1"),
            LineInput.credit(
                standard_accounts["payables"].id,
                "21.00",
                tax_code_id="VAT21",
                tax_amount="21.00",
                description="Output VAT",
            ),
        ],
        source_document=SourceDocumentType.INVOICE,
        source_document_id="INV-7",
        auto_post=True,
        created_by=TEST_ACTOR,
    )


class TestReverse:
    def test_mirror_lines(self, reversal_service, posted_invoice):
        result = reversal_service.reverse(posted_invoice.id, TEST_APPROVER, reason="Wrong customer")
        reversal = result.reversal_entry

        assert len(reversal.lines) == len(posted_invoice.lines)
        for original_line, reversed_line in zip(posted_invoice.lines, reversal.lines):
            assert reversed_line.line_number == original_line.line_number
            assert reversed_line.account_id == original_line.account_id
            assert reversed_line.debit_amount == original_line.credit_amount
            assert reversed_line.credit_amount == original_line.debit_amount
            assert reversed_line.cost_center_id == original_line.cost_center_id
            assert reversed_line.entity_type == original_line.entity_type
            assert reversed_line.entity_id == original_line.entity_id

        tax_line = reversal.lines[2]
        assert tax_line.tax_amount == Decimal("-21.00")
        assert tax_line.description == "Reversal: Output VAT"
        assert reversal.lines[0].description == "Reversal: Invoice INV-7"

    def test_header_and_links(self, reversal_service, posted_invoice, deterministic_clock):
        result = reversal_service.reverse(posted_invoice.id, TEST_APPROVER, reason="Wrong customer")
        original, reversal = result.original_entry, result.reversal_entry

        assert reversal.number == "JE-00002"
        assert reversal.status == JournalEntryStatus.POSTED
        assert reversal.source_document == SourceDocumentType.REVERSAL
        assert reversal.source_document_id == str(original.id)
        assert reversal.description == f"Reversal of {original.number}: Wrong customer"
        assert reversal.is_auto_generated is True
        assert reversal.reversal_of_id == original.id
        assert reversal.total_debit == original.total_credit
        assert reversal.total_credit == original.total_debit
        assert reversal.posted_by == TEST_APPROVER
        assert reversal.posted_at == deterministic_clock.now()

        assert original.status == JournalEntryStatus.REVERSED
        assert original.reversed_by_id == reversal.id
        assert original.reversal_reason == "Wrong customer"

    def test_description_defaults_to_original(self, reversal_service, posted_invoice):
        result = reversal_service.reverse(posted_invoice.id, TEST_APPROVER)
        assert result.reversal_entry.description == "Reversal of JE-00001: Invoice INV-7"
        assert result.original_entry.reversal_reason is None

    def test_date_defaults_to_today(self, reversal_service, posted_invoice, deterministic_clock):
        result = reversal_service.reverse(posted_invoice.id, TEST_APPROVER)
        assert result.reversal_entry.entry_date == deterministic_clock.today()
        assert result.original_entry.reversal_date == deterministic_clock.today()

    def test_explicit_date_lands_in_its_period(
        self, reversal_service, posted_invoice, fiscal_year
    ):
        result = reversal_service.reverse(
            posted_invoice.id, TEST_APPROVER, reversal_date=date(2025, 2, 3)
        )
        assert result.reversal_entry.entry_date == date(2025, 2, 3)
        assert result.reversal_entry.period_id == fiscal_year.periods[1].id

    def test_audited_on_original(self, reversal_service, auditor, posted_invoice):
        result = reversal_service.reverse(posted_invoice.id, TEST_APPROVER, reason="Duplicate")

        trace = auditor.trace("journal_entries", str(posted_invoice.id))
        assert trace.actions == [AuditAction.POST, AuditAction.REVERSE]
        reverse_record = trace.entries[-1]
        assert reverse_record.user_id == TEST_APPROVER
        assert reverse_record.new_values["reversal_number"] == result.reversal_entry.number
        assert reverse_record.new_values["reason"] == "Duplicate"


class TestReverseRejections:
    def test_already_reversed(self, reversal_service, posted_invoice, captured_logs):
        reversal_service.reverse(posted_invoice.id, TEST_APPROVER)

        with pytest.raises(EntryAlreadyReversedError):
            reversal_service.reverse(posted_invoice.id, TEST_APPROVER)
        assert any(
            r["message"] == "journal_reversal_rejected_already_reversed"
            for r in captured_logs()
        )

    def test_already_reversed_is_a_state_error(self, reversal_service, posted_invoice):
        reversal_service.reverse(posted_invoice.id, TEST_APPROVER)
        with pytest.raises(InvalidStateTransitionError):
            reversal_service.reverse(posted_invoice.id, TEST_APPROVER)

    def test_draft_cannot_be_reversed(
        self, reversal_service, journal_service, standard_accounts, make_lines, fiscal_year
    ):
        draft = journal_service.create(
            date(2025, 1, 10),
            "Draft",
            make_lines(standard_accounts["cash"], standard_accounts["revenue"]),
            created_by=TEST_ACTOR,
        )
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            reversal_service.reverse(draft.id, TEST_APPROVER)
        assert exc_info.value.current_status == "draft"

    def test_reversal_can_itself_be_reversed(self, reversal_service, posted_invoice):
        first = reversal_service.reverse(posted_invoice.id, TEST_APPROVER)
        second = reversal_service.reverse(first.reversal_entry.id, TEST_ACTOR)
        assert second.original_entry.status == JournalEntryStatus.REVERSED
        assert second.reversal_entry.lines[0].debit_amount == posted_invoice.lines[0].debit_amount

    def test_unknown_entry(self, reversal_service):
        with pytest.raises(JournalEntryNotFoundError):
            reversal_service.reverse(uuid4(), TEST_APPROVER)

    def test_closed_reversal_period(
        self, reversal_service, fiscal_year_service, posted_invoice, fiscal_year, sequence_service
    ):
        fiscal_year_service.close_period(fiscal_year.periods[1].id, TEST_ACTOR)

        with pytest.raises(ClosedPeriodError):
            reversal_service.reverse(
                posted_invoice.id, TEST_APPROVER, reversal_date=date(2025, 2, 10)
            )
        assert posted_invoice.status == JournalEntryStatus.POSTED
        assert sequence_service.current_value("JE") == 1
