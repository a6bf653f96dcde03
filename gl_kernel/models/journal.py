"""
Module: gl_kernel.models.journal
Responsibility: ORM persistence for journal entries and their debit/credit
    lines -- the atomic unit of double-entry accounting.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/dtos.py only.

Invariants enforced:
    - number is unique (uq_journal_number); idempotency_key is unique when
      present (uq_journal_idempotency).
    - total_debit and total_credit are computed and stored at creation and
      differ by no more than the balance tolerance (checked by
      JournalService before insert).
    - Once POSTED, monetary fields, date and lines never change; only the
      status and reversal linkage may move on reversal (ORM listeners in
      db/immutability.py).

Failure modes:
    - IntegrityError on duplicate number or idempotency key (the latter is
      turned into an idempotent replay by JournalService).
    - ImmutabilityViolationError on an attempt to modify a posted entry.

Audit relevance:
    created_by/approved_by/posted_by with their timestamps record the
    maker-checker trail; reversal_of_id and reversed_by_id link an entry
    to its reversing entry in both directions.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gl_kernel.db.base import EnumString, TrackedBase, UUIDString
from gl_kernel.domain.dtos import EntityType, JournalEntryStatus, SourceDocumentType

if TYPE_CHECKING:
    from gl_kernel.models.account import Account


class JournalEntry(TrackedBase):
    """
    Journal entry header.

    Contract:
        An entry is created Draft (or Posted when auto-posted), approved by
        someone other than its creator, posted into an open period, and may
        be reversed exactly once by a new Posted entry.

    Guarantees:
        - |total_debit - total_credit| <= tolerance from creation onwards.
        - Lines are numbered 1..n in input order.

    Non-goals:
        - This model does NOT enforce balance at the ORM level; enforcement
          lives in JournalService.  is_balanced is a read-side convenience.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        UniqueConstraint("number", name="uq_journal_number"),
        UniqueConstraint("idempotency_key", name="uq_journal_idempotency"),
        Index("idx_journal_entry_date", "entry_date"),
        Index("idx_journal_status", "status"),
        Index("idx_journal_source", "source_document", "source_document_id"),
    )

    # Human sequence number, e.g. "JE-00001"
    number: Mapped[str] = mapped_column(String(50), nullable=False)

    entry_date: Mapped[date] = mapped_column(Date, nullable=False)

    description: Mapped[str] = mapped_column(String(500), nullable=False)

    status: Mapped[JournalEntryStatus] = mapped_column(
        EnumString(JournalEntryStatus, 10),
        default=JournalEntryStatus.DRAFT,
        nullable=False,
    )

    source_document: Mapped[SourceDocumentType] = mapped_column(
        EnumString(SourceDocumentType, 30),
        default=SourceDocumentType.MANUAL,
        nullable=False,
    )

    source_document_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Null only while no periods exist (bootstrap) or under the ALLOW policy
    period_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("accounting_periods.id"),
        nullable=True,
    )

    total_debit: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    total_credit: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    is_auto_generated: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    approved_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    posted_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    posted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    idempotency_key: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Set on a reversal entry: the entry it reverses
    reversal_of_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=True,
    )

    # Set on a reversed entry: the entry that reversed it
    reversed_by_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=True,
    )

    reversal_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    reversal_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    lines: Mapped[list["JournalEntryLine"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="JournalEntryLine.line_number",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<JournalEntry {self.number} status={self.status.value}>"

    @property
    def is_draft(self) -> bool:
        return self.status == JournalEntryStatus.DRAFT

    @property
    def is_posted(self) -> bool:
        return self.status == JournalEntryStatus.POSTED

    @property
    def is_reversed(self) -> bool:
        return self.status == JournalEntryStatus.REVERSED or self.reversed_by_id is not None

    @property
    def is_balanced(self) -> bool:
        """Stored totals agree exactly (read-side convenience)."""
        return self.total_debit == self.total_credit


class JournalEntryLine(TrackedBase):
    """
    Individual debit or credit line within a journal entry.

    Contract:
        Exactly one of debit_amount / credit_amount is strictly positive;
        the other is zero.  Dimensions (cost center, project, tax code) and
        the subledger counterparty are optional.

    Non-goals:
        - This model does not validate account existence or activity;
          JournalService does that before insert.
    """

    __tablename__ = "journal_entry_lines"

    __table_args__ = (
        UniqueConstraint("journal_entry_id", "line_number", name="uq_line_number"),
        Index("idx_line_entry", "journal_entry_id"),
        Index("idx_line_account", "account_id"),
        Index("idx_line_entity", "entity_type", "entity_id"),
    )

    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=False,
    )

    line_number: Mapped[int] = mapped_column(Integer, nullable=False)

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    debit_amount: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        default=Decimal("0"),
        nullable=False,
    )

    credit_amount: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        default=Decimal("0"),
        nullable=False,
    )

    cost_center_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    project_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    tax_code_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    tax_amount: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        default=Decimal("0"),
        nullable=False,
    )

    entity_type: Mapped[EntityType | None] = mapped_column(
        EnumString(EntityType, 20),
        nullable=True,
    )

    entity_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    entry: Mapped["JournalEntry"] = relationship(back_populates="lines")

    account: Mapped["Account"] = relationship(back_populates="journal_lines")

    def __repr__(self) -> str:
        return (
            f"<JournalEntryLine #{self.line_number} "
            f"Dr {self.debit_amount} Cr {self.credit_amount}>"
        )
