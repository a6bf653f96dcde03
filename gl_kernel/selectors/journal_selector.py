"""
Journal entry query selector.

Read-only lookups and listings of journal entries, returned as frozen
``JournalEntryRecord`` snapshots with their lines.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from gl_kernel.domain.dtos import JournalEntryRecord, JournalEntryStatus, SourceDocumentType
from gl_kernel.models.journal import JournalEntry
from gl_kernel.selectors.base import BaseSelector


class JournalSelector(BaseSelector[JournalEntry]):
    """Selector for journal entries in any status."""

    def __init__(self, session: Session):
        super().__init__(session)

    def get_entry(self, journal_entry_id: UUID) -> JournalEntryRecord | None:
        entry = self.session.get(JournalEntry, journal_entry_id)
        return JournalEntryRecord.from_model(entry) if entry else None

    def get_by_number(self, number: str) -> JournalEntryRecord | None:
        entry = self.session.execute(
            select(JournalEntry).where(JournalEntry.number == number)
        ).scalar_one_or_none()
        return JournalEntryRecord.from_model(entry) if entry else None

    def list_entries(
        self,
        status: JournalEntryStatus | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        source_document: SourceDocumentType | None = None,
        source_document_id: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[JournalEntryRecord]:
        """
        List entries ordered by date then number.

        Args:
            status: Only entries in this status.
            start_date: Inclusive lower bound on entry date.
            end_date: Inclusive upper bound on entry date.
            source_document: Only entries from this document type.
            source_document_id: Only entries for this document id.
            limit: Maximum number of results.
            offset: Number of results to skip.
        """
        query = select(JournalEntry).order_by(JournalEntry.entry_date, JournalEntry.number)

        if status is not None:
            query = query.where(JournalEntry.status == status)
        if start_date is not None:
            query = query.where(JournalEntry.entry_date >= start_date)
        if end_date is not None:
            query = query.where(JournalEntry.entry_date <= end_date)
        if source_document is not None:
            query = query.where(JournalEntry.source_document == source_document)
        if source_document_id is not None:
            query = query.where(JournalEntry.source_document_id == source_document_id)
        if limit is not None:
            query = query.limit(limit)
        if offset is not None:
            query = query.offset(offset)

        return [
            JournalEntryRecord.from_model(entry)
            for entry in self.session.execute(query).scalars().all()
        ]

    def count_entries(self, status: JournalEntryStatus | None = None) -> int:
        query = select(func.count(JournalEntry.id))
        if status is not None:
            query = query.where(JournalEntry.status == status)
        return self.session.execute(query).scalar_one()
