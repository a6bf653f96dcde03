"""
Pure domain layer.

Enumerations, input and read-model DTOs, the injectable clock and the
ledger policy.  Nothing here touches the database.
"""

from gl_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from gl_kernel.domain.dtos import (
    AccountingPeriodInfo,
    AccountType,
    AuditAction,
    AuditRecord,
    BalanceFilters,
    EntityType,
    FiscalYearInfo,
    FiscalYearStatus,
    JournalEntryRecord,
    JournalEntryStatus,
    JournalLineRecord,
    LineInput,
    NormalBalance,
    PeriodStatus,
    ReversalRecord,
    SourceDocumentType,
)
from gl_kernel.domain.policy import DEFAULT_POLICY, LedgerPolicy, UnmatchedPeriodPolicy

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "AccountingPeriodInfo",
    "AccountType",
    "AuditAction",
    "AuditRecord",
    "BalanceFilters",
    "EntityType",
    "FiscalYearInfo",
    "FiscalYearStatus",
    "JournalEntryRecord",
    "JournalEntryStatus",
    "JournalLineRecord",
    "LineInput",
    "NormalBalance",
    "PeriodStatus",
    "ReversalRecord",
    "SourceDocumentType",
    "DEFAULT_POLICY",
    "LedgerPolicy",
    "UnmatchedPeriodPolicy",
]
