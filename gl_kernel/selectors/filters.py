"""Shared WHERE-clause builder for balance queries."""

from sqlalchemy import Select

from gl_kernel.domain.dtos import BalanceFilters, JournalEntryStatus
from gl_kernel.models.journal import JournalEntry, JournalEntryLine


def posted_lines_only(query: Select, filters: BalanceFilters | None) -> Select:
    """
    Restrict a query that already joins JournalEntry to posted lines
    matching ``filters``.

    Only POSTED entries count.  Draft, approved and reversed entries never
    contribute to a balance.
    """
    query = query.where(JournalEntry.status == JournalEntryStatus.POSTED)
    if filters is None:
        return query

    if filters.start_date is not None:
        query = query.where(JournalEntry.entry_date >= filters.start_date)
    if filters.end_date is not None:
        query = query.where(JournalEntry.entry_date <= filters.end_date)
    if filters.as_of_date is not None:
        query = query.where(JournalEntry.entry_date <= filters.as_of_date)
    if filters.cost_center_id is not None:
        query = query.where(JournalEntryLine.cost_center_id == filters.cost_center_id)
    if filters.project_id is not None:
        query = query.where(JournalEntryLine.project_id == filters.project_id)
    return query
