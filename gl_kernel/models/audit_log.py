"""
Module: gl_kernel.models.audit_log
Responsibility: Append-only audit log rows written by the default audit sink
    (AuditorService).  One row per successful ledger mutation.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/dtos.py only.

Invariants enforced:
    - Rows are never updated or deleted (ORM listeners in db/immutability.py).
    - seq is strictly increasing, allocated from the locked "AUDIT" counter.
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from gl_kernel.db.base import Base, EnumString
from gl_kernel.domain.dtos import AuditAction


class AuditLogEntry(Base):
    """One audit record: who did what to which row, with before/after values."""

    __tablename__ = "audit_log"

    __table_args__ = (
        UniqueConstraint("seq", name="uq_audit_seq"),
        Index("idx_audit_record", "table_name", "record_id"),
    )

    seq: Mapped[int] = mapped_column(nullable=False)

    table_name: Mapped[str] = mapped_column(String(100), nullable=False)

    record_id: Mapped[str] = mapped_column(String(100), nullable=False)

    action: Mapped[AuditAction] = mapped_column(
        EnumString(AuditAction, 20),
        nullable=False,
    )

    user_id: Mapped[str] = mapped_column(String(100), nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    previous_values: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    new_values: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    description: Mapped[str] = mapped_column(String(500), nullable=False)

    def __repr__(self) -> str:
        return f"<AuditLogEntry #{self.seq} {self.action.value} {self.table_name}:{self.record_id}>"
