"""
Concurrent writer tests.

Each worker thread drives the GeneralLedger facade, so every call runs in
its own session and transaction.  On SQLite, BEGIN IMMEDIATE serialises the
writers; on PostgreSQL (DATABASE_URL) the counter row lock does.

Verifies:
- Concurrent creates never share or skip a journal number
- Concurrent creates with one idempotency key produce exactly one entry
- A double reversal race leaves exactly one reversal
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal
from threading import Barrier

import pytest

from gl_kernel.domain.dtos import AccountType, JournalEntryStatus, LineInput
from gl_kernel.exceptions import EntryAlreadyReversedError
from tests.conftest import TEST_ACTOR

pytestmark = pytest.mark.slow_locks

WORKERS = 8


@pytest.fixture
def accounts(seed_account):
    return (
        seed_account("1000", AccountType.ASSET, "Cash"),
        seed_account("4000", AccountType.INCOME, "Sales"),
    )


def _lines(accounts, amount="10.00"):
    cash, revenue = accounts
    return [LineInput.debit(cash.id, amount), LineInput.credit(revenue.id, amount)]


def _run_together(worker, count=WORKERS):
    """Start ``count`` workers at the same moment and return results or errors."""
    barrier = Barrier(count)

    def _wrapped(index):
        barrier.wait()
        try:
            return worker(index)
        except Exception as exc:  # collected and asserted on by the caller
            return exc

    with ThreadPoolExecutor(max_workers=count) as pool:
        return list(pool.map(_wrapped, range(count)))


class TestConcurrentNumbering:
    def test_numbers_unique_and_gapless(self, ledger, accounts):
        results = _run_together(
            lambda i: ledger.create_journal_entry(
                date(2025, 1, 15), f"Sale {i}", _lines(accounts), auto_post=True
            )
        )

        errors = [r for r in results if isinstance(r, Exception)]
        assert errors == []
        numbers = sorted(r.number for r in results)
        assert numbers == [f"JE-{n:05d}" for n in range(1, WORKERS + 1)]

    def test_balances_add_up(self, ledger, accounts):
        _run_together(
            lambda i: ledger.create_journal_entry(
                date(2025, 1, 15), f"Sale {i}", _lines(accounts, "2.50"), auto_post=True
            )
        )
        trial = ledger.get_trial_balance()
        assert trial.is_balanced
        assert trial.total_debit == Decimal("2.50") * WORKERS


class TestConcurrentIdempotency:
    def test_same_key_creates_one_entry(self, ledger, accounts):
        results = _run_together(
            lambda i: ledger.create_journal_entry(
                date(2025, 1, 15),
                "Invoice INV-1",
                _lines(accounts),
                created_by=TEST_ACTOR,
                idempotency_key="invoice:INV-1",
            )
        )

        errors = [r for r in results if isinstance(r, Exception)]
        assert errors == []
        assert len({r.id for r in results}) == 1
        assert len(ledger.list_journal_entries()) == 1


class TestConcurrentReversal:
    def test_only_one_reversal_wins(self, ledger, accounts):
        original = ledger.create_journal_entry(
            date(2025, 1, 15), "Sale", _lines(accounts), auto_post=True
        )

        results = _run_together(
            lambda i: ledger.reverse_journal_entry(original.id, f"user-{i}"), count=4
        )

        successes = [r for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, Exception)]
        assert len(successes) == 1
        assert all(isinstance(f, EntryAlreadyReversedError) for f in failures)
        assert ledger.get_journal_entry(original.id).status == JournalEntryStatus.REVERSED
        assert len(ledger.list_journal_entries()) == 2
