"""Selectors for the general ledger kernel (read side)."""

from gl_kernel.selectors.journal_selector import JournalSelector
from gl_kernel.selectors.ledger_selector import (
    AccountBalance,
    AccountBalanceRow,
    LedgerSelector,
    TrialBalance,
)
from gl_kernel.selectors.subledger_selector import SubledgerBalance, SubledgerSelector

__all__ = [
    "AccountBalance",
    "AccountBalanceRow",
    "JournalSelector",
    "LedgerSelector",
    "SubledgerBalance",
    "SubledgerSelector",
    "TrialBalance",
]
