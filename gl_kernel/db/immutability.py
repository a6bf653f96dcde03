"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

Posted journal entries are the ledger.  Financial statements are built from
them, so once posted they may only be neutralised by a new reversing entry,
never edited.  These listeners catch modifications made through SQLAlchemy
before any SQL reaches the database.

    session.flush()
         |
         v
    [before_update event] --> _check_*() --> ImmutabilityViolationError
         |
    [before_delete event] --> _check_*() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity            | When Immutable                 | What may still change
------------------|--------------------------------|-------------------------------
JournalEntry      | status POSTED or REVERSED      | POSTED -> REVERSED with the
                  |                                | reversal link fields
JournalEntryLine  | parent POSTED or REVERSED      | nothing
AuditLogEntry     | always                         | nothing
AccountingPeriod  | status LOCKED                  | nothing (never reopens)

===============================================================================
DESIGN DECISIONS
===============================================================================

1. WHY CHECK "WAS POSTED" NOT "IS POSTED"?
   The posting workflow itself sets status=POSTED.  The attribute history
   tells us whether the row was already posted before this flush.

2. WHY INLINE IMPORTS?
   Models import from db; db imports models only when listeners register.

===============================================================================
USAGE
===============================================================================

    from gl_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup (idempotent)

    unregister_immutability_listeners()  # TESTS ONLY
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from gl_kernel.exceptions import ImmutabilityViolationError
from gl_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

# Row metadata, not financial data
_ALWAYS_MUTABLE = frozenset({"updated_at"})

# Fields the POSTED -> REVERSED transition is allowed to set
_REVERSAL_LINK_FIELDS = frozenset(
    {"status", "reversed_by_id", "reversal_date", "reversal_reason"}
)

_FINAL_STATUSES = frozenset({"posted", "reversed"})


def _status_value(status) -> str | None:
    if status is None:
        return None
    return getattr(status, "value", status)


def _previous_status(target) -> str | None:
    """Status as stored before this flush."""
    history = get_history(target, "status")
    if history.deleted:
        return _status_value(history.deleted[0])
    if history.added:
        # Status set for the first time on this instance; not persisted yet
        return None
    return _status_value(target.status)


def _changed_fields(target) -> set[str]:
    insp = inspect(target)
    return {
        attr.key
        for attr in insp.attrs
        if attr.key not in _ALWAYS_MUTABLE and attr.history.has_changes()
    }


def _blocked(entity_type: str, entity_id, operation: str, reason: str):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
            "reason": reason,
        },
    )
    return ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _check_journal_entry_update(mapper, connection, target):
    """
    Block changes to a posted or reversed entry.

    Allowed:
        DRAFT -> APPROVED -> POSTED (the workflow itself)
        POSTED -> REVERSED, touching only the reversal link fields
    """
    previous = _previous_status(target)
    if previous not in _FINAL_STATUSES:
        return

    changed = _changed_fields(target)
    if not changed:
        return

    current = _status_value(target.status)
    if previous == "posted" and current == "reversed" and changed <= _REVERSAL_LINK_FIELDS:
        return

    disallowed = sorted(changed - (_REVERSAL_LINK_FIELDS if previous == "posted" else set()))
    if not disallowed:
        disallowed = ["status"]
    raise _blocked(
        "JournalEntry",
        target.id,
        "UPDATE",
        f"Cannot modify field '{disallowed[0]}' on {previous} journal entry",
    )


def _check_journal_entry_delete(mapper, connection, target):
    if _status_value(target.status) in _FINAL_STATUSES:
        raise _blocked(
            "JournalEntry",
            target.id,
            "DELETE",
            "Posted journal entries cannot be deleted",
        )


def _parent_is_final(line) -> bool:
    entry = line.entry
    return entry is not None and _status_value(entry.status) in _FINAL_STATUSES


def _check_journal_line_update(mapper, connection, target):
    if _parent_is_final(target) and _changed_fields(target):
        raise _blocked(
            "JournalEntryLine",
            target.id,
            "UPDATE",
            "Journal lines cannot be modified after the entry is posted",
        )


def _check_journal_line_delete(mapper, connection, target):
    if _parent_is_final(target):
        raise _blocked(
            "JournalEntryLine",
            target.id,
            "DELETE",
            "Journal lines cannot be deleted after the entry is posted",
        )


def _check_audit_log_update(mapper, connection, target):
    raise _blocked("AuditLogEntry", target.id, "UPDATE", "Audit log is append-only")


def _check_audit_log_delete(mapper, connection, target):
    raise _blocked("AuditLogEntry", target.id, "DELETE", "Audit log is append-only")


def _check_period_update(mapper, connection, target):
    if _previous_status(target) == "locked" and _changed_fields(target):
        raise _blocked(
            "AccountingPeriod",
            target.id,
            "UPDATE",
            "Locked accounting periods cannot be changed",
        )


def _listeners():
    from gl_kernel.models.audit_log import AuditLogEntry
    from gl_kernel.models.fiscal_period import AccountingPeriod
    from gl_kernel.models.journal import JournalEntry, JournalEntryLine

    return (
        (JournalEntry, "before_update", _check_journal_entry_update),
        (JournalEntry, "before_delete", _check_journal_entry_delete),
        (JournalEntryLine, "before_update", _check_journal_line_update),
        (JournalEntryLine, "before_delete", _check_journal_line_delete),
        (AuditLogEntry, "before_update", _check_audit_log_update),
        (AuditLogEntry, "before_delete", _check_audit_log_delete),
        (AccountingPeriod, "before_update", _check_period_update),
    )


def register_immutability_listeners() -> None:
    """
    Register all immutability enforcement event listeners.

    Idempotent: listeners already registered are left alone.
    """
    for target, event_name, fn in _listeners():
        if not event.contains(target, event_name, fn):
            event.listen(target, event_name, fn)


def unregister_immutability_listeners() -> None:
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that must write forbidden changes.
    """
    for target, event_name, fn in _listeners():
        if event.contains(target, event_name, fn):
            event.remove(target, event_name, fn)
