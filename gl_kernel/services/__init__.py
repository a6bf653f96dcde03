"""Services for the general ledger kernel (write side)."""

from gl_kernel.services.sequence_service import SequenceCounter, SequenceService
from gl_kernel.services.auditor_service import AuditorService, AuditSink, AuditTrace
from gl_kernel.services.period_service import PeriodService
from gl_kernel.services.fiscal_year_service import FiscalYearService
from gl_kernel.services.journal_service import JournalService, prepare_lines
from gl_kernel.services.reversal_service import ReversalResult, ReversalService
from gl_kernel.services.rounding_service import RoundingService

__all__ = [
    "AuditSink",
    "AuditTrace",
    "AuditorService",
    "FiscalYearService",
    "JournalService",
    "PeriodService",
    "ReversalResult",
    "ReversalService",
    "RoundingService",
    "SequenceCounter",
    "SequenceService",
    "prepare_lines",
]
