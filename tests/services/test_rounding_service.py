"""
Rounding adjustment tests.

Verifies:
- Direction of the adjustment follows the sign of the amount
- The threshold and zero checks
- System accounts are created once, or required when auto-creation is off
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from gl_kernel.domain.dtos import JournalEntryStatus, SourceDocumentType
from gl_kernel.domain.policy import LedgerPolicy
from gl_kernel.exceptions import (
    AccountNotFoundError,
    InvalidEntryError,
    RoundingThresholdExceededError,
)
from gl_kernel.models.account import Account
from gl_services.ledger_orchestrator import LedgerOrchestrator


def _account_by_code(session, code) -> Account:
    return session.execute(select(Account).where(Account.code == code)).scalar_one()


class TestRoundingDirection:
    def test_positive_amount_debits_rounding(self, rounding_service, session):
        entry = rounding_service.handle_rounding_difference(
            "0.03", related_document_type="invoice", related_document_id="INV-9"
        )

        rounding = _account_by_code(session, "SYS-ROUNDING")
        suspense = _account_by_code(session, "SYS-SUSPENSE")
        debit_line, credit_line = entry.lines
        assert debit_line.account_id == rounding.id
        assert debit_line.debit_amount == Decimal("0.03")
        assert credit_line.account_id == suspense.id
        assert credit_line.credit_amount == Decimal("0.03")

        assert entry.status == JournalEntryStatus.POSTED
        assert entry.source_document == SourceDocumentType.ROUNDING_ADJUSTMENT
        assert entry.source_document_id == "INV-9"
        assert entry.description == "Rounding difference for invoice INV-9"

    def test_negative_amount_debits_suspense(self, rounding_service, session):
        entry = rounding_service.handle_rounding_difference(Decimal("-0.02"))

        suspense = _account_by_code(session, "SYS-SUSPENSE")
        assert entry.lines[0].account_id == suspense.id
        assert entry.lines[0].debit_amount == Decimal("0.02")
        assert entry.description == "Rounding difference"

    def test_custom_description_and_date(self, rounding_service, deterministic_clock):
        entry = rounding_service.handle_rounding_difference(
            "0.01", description="Bill rounding", entry_date=date(2025, 1, 20)
        )
        assert entry.description == "Bill rounding"
        assert entry.entry_date == date(2025, 1, 20)

        default_dated = rounding_service.handle_rounding_difference("0.01")
        assert default_dated.entry_date == deterministic_clock.today()

    def test_threshold_is_inclusive(self, rounding_service):
        entry = rounding_service.handle_rounding_difference("1.00")
        assert entry.total_debit == Decimal("1.00")


class TestRoundingRejections:
    def test_above_threshold(self, rounding_service, captured_logs):
        with pytest.raises(RoundingThresholdExceededError) as exc_info:
            rounding_service.handle_rounding_difference("1.01")
        assert exc_info.value.threshold == "1.00"
        assert any(r["message"] == "rounding_threshold_exceeded" for r in captured_logs())

    def test_negative_above_threshold(self, rounding_service):
        with pytest.raises(RoundingThresholdExceededError):
            rounding_service.handle_rounding_difference("-5")

    def test_zero_rejected(self, rounding_service):
        with pytest.raises(InvalidEntryError):
            rounding_service.handle_rounding_difference("0.00")

    def test_non_numeric_rejected(self, rounding_service):
        with pytest.raises(InvalidEntryError):
            rounding_service.handle_rounding_difference("a few cents")

    def test_configured_threshold(self, session, deterministic_clock):
        orchestrator = LedgerOrchestrator(
            session,
            policy=LedgerPolicy(rounding_threshold=Decimal("0.05")),
            clock=deterministic_clock,
        )
        with pytest.raises(RoundingThresholdExceededError):
            orchestrator.rounding_service.handle_rounding_difference("0.06")


class TestSystemAccounts:
    def test_created_once(self, rounding_service, session):
        rounding_service.handle_rounding_difference("0.01")
        rounding_service.handle_rounding_difference("-0.01")

        count = session.execute(
            select(func.count()).select_from(Account).where(Account.is_system_account.is_(True))
        ).scalar_one()
        assert count == 2
        assert _account_by_code(session, "SYS-ROUNDING").name == "Rounding Differences"

    def test_existing_account_reused(self, rounding_service, create_account, session):
        existing = create_account("SYS-ROUNDING", name="Penny differences")
        entry = rounding_service.handle_rounding_difference("0.04")
        assert entry.lines[0].account_id == existing.id

    def test_missing_accounts_without_auto_create(self, session, deterministic_clock):
        orchestrator = LedgerOrchestrator(
            session,
            policy=LedgerPolicy(auto_create_system_accounts=False),
            clock=deterministic_clock,
        )
        with pytest.raises(AccountNotFoundError) as exc_info:
            orchestrator.rounding_service.handle_rounding_difference("0.01")
        assert exc_info.value.account_ids == ["SYS-ROUNDING"]
