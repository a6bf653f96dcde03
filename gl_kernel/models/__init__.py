"""ORM models for the GL kernel."""

from gl_kernel.models.account import Account
from gl_kernel.models.audit_log import AuditLogEntry
from gl_kernel.models.fiscal_period import AccountingPeriod, FiscalYear
from gl_kernel.models.journal import JournalEntry, JournalEntryLine
from gl_kernel.services.sequence_service import SequenceCounter

__all__ = [
    "Account",
    "AccountingPeriod",
    "AuditLogEntry",
    "FiscalYear",
    "JournalEntry",
    "JournalEntryLine",
    "SequenceCounter",
]
