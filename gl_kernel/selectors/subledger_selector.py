"""
Subledger query selector.

Balances grouped by counterparty (customer or vendor) rather than by
account, derived from posted journal lines that carry an entity type.
Used for AR/AP aging.

Invariants:
- Only lines on POSTED entries are counted.
- balance = debit - credit for every counterparty, regardless of the
  accounts involved.
- Uses the caller's Session; never creates its own.
"""

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from gl_kernel.domain.dtos import BalanceFilters, EntityType
from gl_kernel.exceptions import InvalidEntryError
from gl_kernel.models.journal import JournalEntry, JournalEntryLine
from gl_kernel.selectors.base import BaseSelector
from gl_kernel.selectors.filters import posted_lines_only


@dataclass(frozen=True)
class SubledgerBalance:
    """Posted totals for one counterparty."""

    entity_type: EntityType
    entity_id: str
    debit_total: Decimal
    credit_total: Decimal
    line_count: int

    @property
    def balance(self) -> Decimal:
        return self.debit_total - self.credit_total


class SubledgerSelector(BaseSelector[JournalEntryLine]):
    """Read-only counterparty balances."""

    def __init__(self, session: Session):
        super().__init__(session)

    def subledger_balances(
        self,
        entity_type: EntityType | str,
        filters: BalanceFilters | None = None,
        entity_id: str | None = None,
    ) -> list[SubledgerBalance]:
        """
        Posted balances per counterparty of ``entity_type``, ordered by id.

        Args:
            entity_type: CUSTOMER or VENDOR.
            filters: Optional date and dimension bounds.
            entity_id: Restrict to a single counterparty.

        Raises:
            InvalidEntryError: ``entity_type`` is not a known EntityType.
        """
        try:
            kind = EntityType(entity_type)
        except ValueError:
            raise InvalidEntryError(f"unknown entity type {entity_type!r}") from None

        query = (
            select(
                JournalEntryLine.entity_id,
                func.sum(JournalEntryLine.debit_amount).label("debit_total"),
                func.sum(JournalEntryLine.credit_amount).label("credit_total"),
                func.count(JournalEntryLine.id).label("line_count"),
            )
            .join(JournalEntry, JournalEntryLine.journal_entry_id == JournalEntry.id)
            .where(
                JournalEntryLine.entity_type == kind,
                JournalEntryLine.entity_id.is_not(None),
            )
            .group_by(JournalEntryLine.entity_id)
            .order_by(JournalEntryLine.entity_id)
        )
        query = posted_lines_only(query, filters)
        if entity_id is not None:
            query = query.where(JournalEntryLine.entity_id == entity_id)

        return [
            SubledgerBalance(
                entity_type=kind,
                entity_id=row.entity_id,
                debit_total=row.debit_total or Decimal("0"),
                credit_total=row.credit_total or Decimal("0"),
                line_count=row.line_count,
            )
            for row in self.session.execute(query).all()
        ]
