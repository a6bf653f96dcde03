"""
gl_services -- Package init and public API.

Responsibility:
    Composition and transaction boundaries over the ledger kernel.
    ``LedgerOrchestrator`` wires kernel services for one session;
    ``GeneralLedger`` runs each operation as its own unit of work.

Architecture position:
    Services -- outermost layer.

    Dependency direction:
        gl_services/ -> gl_kernel/, gl_config/  (allowed)
        gl_kernel/   -> gl_services/            (FORBIDDEN)
"""

from gl_services.general_ledger import GeneralLedger
from gl_services.ledger_orchestrator import LedgerOrchestrator

__all__ = ["GeneralLedger", "LedgerOrchestrator"]
