"""
AuditorService -- default append-only audit sink.

Responsibility:
    Persists one ``AuditLogEntry`` per successful ledger mutation, with
    the affected table and record, action, actor, before/after value
    snapshots and a human-readable description.  Any object with a
    ``record(AuditRecord)`` method satisfies ``AuditSink`` and may replace
    it (e.g. a sink that forwards to an external audit service).

Architecture position:
    Kernel > Services -- called by JournalService, ReversalService,
    FiscalYearService and RoundingService after their own writes, in the
    same transaction.

Invariants enforced:
    - Append-only: rows are never updated or deleted (ORM listeners).
    - Audit ``seq`` comes from the locked "AUDIT" counter.
    - Snapshots are JSON-safe (Decimal and UUID as strings, dates ISO).

Failure modes:
    - IntegrityError on an audit seq collision (cannot happen while the
      counter row lock is honoured).
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Protocol, runtime_checkable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from gl_kernel.domain.clock import Clock, SystemClock
from gl_kernel.domain.dtos import AuditAction, AuditRecord
from gl_kernel.logging_config import get_logger
from gl_kernel.models.audit_log import AuditLogEntry
from gl_kernel.services.sequence_service import SequenceService

logger = get_logger("services.auditor")


@runtime_checkable
class AuditSink(Protocol):
    """Anything that can accept an audit record."""

    def record(self, audit_record: AuditRecord) -> None: ...


@dataclass(frozen=True)
class AuditTraceEntry:
    """A single entry in an audit trace."""

    seq: int
    action: AuditAction
    user_id: str
    occurred_at: datetime
    description: str
    previous_values: dict[str, Any] | None
    new_values: dict[str, Any] | None


@dataclass(frozen=True)
class AuditTrace:
    """All audit entries for one record, oldest first."""

    table_name: str
    record_id: str
    entries: tuple[AuditTraceEntry, ...]

    @property
    def actions(self) -> list[AuditAction]:
        return [e.action for e in self.entries]

    @property
    def last_action(self) -> AuditAction | None:
        return self.entries[-1].action if self.entries else None


def to_json_safe(value: Any) -> Any:
    """Convert snapshot values into JSON-serialisable primitives."""
    if isinstance(value, dict):
        return {str(k): to_json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_safe(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class AuditorService:
    """
    Default ``AuditSink``: writes audit rows into the caller's session.

    Contract:
        ``record()`` appends exactly one row and flushes.  It never reads
        or changes existing rows; ``trace()`` exists for forensic review
        and tests.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        sequence_service: SequenceService | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._sequence_service = sequence_service or SequenceService(session)

    def record(self, audit_record: AuditRecord) -> None:
        """Append one audit row for ``audit_record``."""
        seq = self._sequence_service.next_value(SequenceService.AUDIT_LOG)

        entry = AuditLogEntry(
            seq=seq,
            table_name=audit_record.table_name,
            record_id=audit_record.record_id,
            action=audit_record.action,
            user_id=audit_record.user_id,
            occurred_at=self._clock.now(),
            previous_values=to_json_safe(audit_record.previous_values),
            new_values=to_json_safe(audit_record.new_values),
            description=audit_record.description,
        )
        self._session.add(entry)
        self._session.flush()

        logger.info(
            "audit_record_created",
            extra={
                "table_name": audit_record.table_name,
                "record_id": audit_record.record_id,
                "action": audit_record.action.value,
                "user_id": audit_record.user_id,
                "seq": seq,
            },
        )

    def trace(self, table_name: str, record_id: str) -> AuditTrace:
        """Get every audit entry for a record, oldest first."""
        rows = self._session.execute(
            select(AuditLogEntry)
            .where(
                AuditLogEntry.table_name == table_name,
                AuditLogEntry.record_id == str(record_id),
            )
            .order_by(AuditLogEntry.seq)
        ).scalars().all()

        return AuditTrace(
            table_name=table_name,
            record_id=str(record_id),
            entries=tuple(
                AuditTraceEntry(
                    seq=row.seq,
                    action=row.action,
                    user_id=row.user_id,
                    occurred_at=row.occurred_at,
                    description=row.description,
                    previous_values=row.previous_values,
                    new_values=row.new_values,
                )
                for row in rows
            ),
        )
