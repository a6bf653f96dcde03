"""
GL Kernel - double-entry general-ledger engine

A period-disciplined, append-mostly journal with:
- Balanced entries (debits == credits within tolerance)
- Draft -> Approved -> Posted -> Reversed lifecycle with maker-checker
- Idempotent creation for retried operations
- Locked-counter sequence numbering
- Balances derived from posted lines at query time
"""

__version__ = "0.1.0"
