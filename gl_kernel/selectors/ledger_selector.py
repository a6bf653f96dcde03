"""
Module: gl_kernel.selectors.ledger_selector
Responsibility: Read-only account balance queries and the trial balance.
    The ledger is a derived view over posted journal lines -- there are no
    stored balances anywhere in the system.
Architecture position: Kernel > Selectors.  May import from models/,
    domain/dtos.py and selectors/.  MUST NOT import from services/.

Invariants enforced:
    - Only lines of POSTED entries are summed.  Draft, approved and
      reversed entries never contribute.
    - balance = debit - credit for asset and expense accounts, and
      credit - debit otherwise (normal-balance convention).
    - All amounts are Decimal; empty sums are Decimal("0").

Failure modes:
    - Returns zero balances when no posted lines match.

Audit relevance:
    LedgerSelector is the only source reports may read balances from.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from gl_kernel.domain.dtos import AccountType, BalanceFilters
from gl_kernel.models.account import Account
from gl_kernel.models.journal import JournalEntry, JournalEntryLine
from gl_kernel.selectors.base import BaseSelector
from gl_kernel.selectors.filters import posted_lines_only

ZERO = Decimal("0")


def signed_balance(account_type: AccountType | None, debit: Decimal, credit: Decimal) -> Decimal:
    """Net balance in the account's normal direction (debit-normal if unknown)."""
    if account_type is None or account_type.is_debit_normal:
        return debit - credit
    return credit - debit


@dataclass(frozen=True)
class AccountBalance:
    """Debit and credit totals for a single account."""

    account_id: UUID
    debit_total: Decimal
    credit_total: Decimal
    balance: Decimal


@dataclass(frozen=True)
class AccountBalanceRow:
    """A single row in an all-accounts listing or trial balance."""

    account_id: UUID
    account_code: str
    account_name: str
    account_type: AccountType
    debit_total: Decimal
    credit_total: Decimal
    balance: Decimal


@dataclass(frozen=True)
class TrialBalance:
    rows: tuple[AccountBalanceRow, ...]
    total_debit: Decimal
    total_credit: Decimal

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit

    @property
    def difference(self) -> Decimal:
        return self.total_debit - self.total_credit


class LedgerSelector(BaseSelector[JournalEntryLine]):
    """
    Selector for account balances -- the authoritative balance engine.

    Contract:
        Every figure is computed at query time from posted journal lines,
        optionally bounded by ``BalanceFilters``.

    Non-goals:
        - No currency conversion; the ledger is single-currency.
        - No caching of balances.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def _totals_by_account(
        self,
        filters: BalanceFilters | None,
        account_ids: Iterable[UUID] | None = None,
    ) -> dict[UUID, tuple[Decimal, Decimal]]:
        query = (
            select(
                JournalEntryLine.account_id,
                func.sum(JournalEntryLine.debit_amount).label("debit_total"),
                func.sum(JournalEntryLine.credit_amount).label("credit_total"),
            )
            .join(JournalEntry, JournalEntryLine.journal_entry_id == JournalEntry.id)
            .group_by(JournalEntryLine.account_id)
        )
        query = posted_lines_only(query, filters)
        if account_ids is not None:
            query = query.where(JournalEntryLine.account_id.in_(list(account_ids)))

        return {
            row.account_id: (row.debit_total or ZERO, row.credit_total or ZERO)
            for row in self.session.execute(query).all()
        }

    def account_balance(
        self,
        account_id: UUID,
        filters: BalanceFilters | None = None,
    ) -> AccountBalance:
        """
        Get the balance of one account.

        Postconditions: an unknown account, or one without posted activity,
            yields zero totals.

        Args:
            account_id: Account to query.
            filters: Optional date and dimension bounds.
        """
        account_type = self.session.execute(
            select(Account.account_type).where(Account.id == account_id)
        ).scalar_one_or_none()

        debit, credit = self._totals_by_account(filters, [account_id]).get(
            account_id, (ZERO, ZERO)
        )
        return AccountBalance(
            account_id=account_id,
            debit_total=debit,
            credit_total=credit,
            balance=signed_balance(account_type, debit, credit),
        )

    def all_account_balances(
        self,
        filters: BalanceFilters | None = None,
    ) -> list[AccountBalanceRow]:
        """
        One row per active account, ordered by account code.

        Accounts without posted activity appear with zero totals.
        """
        totals = self._totals_by_account(filters)
        accounts = self.session.execute(
            select(Account).where(Account.is_active.is_(True)).order_by(Account.code)
        ).scalars().all()

        rows = []
        for account in accounts:
            debit, credit = totals.get(account.id, (ZERO, ZERO))
            rows.append(
                AccountBalanceRow(
                    account_id=account.id,
                    account_code=account.code,
                    account_name=account.name,
                    account_type=account.account_type,
                    debit_total=debit,
                    credit_total=credit,
                    balance=signed_balance(account.account_type, debit, credit),
                )
            )
        return rows

    def trial_balance(self, filters: BalanceFilters | None = None) -> TrialBalance:
        """
        Trial balance over all active accounts.

        Total debits equal total credits whenever every posted entry is
        balanced (within tolerance for each entry).
        """
        rows = self.all_account_balances(filters)
        return TrialBalance(
            rows=tuple(rows),
            total_debit=sum((r.debit_total for r in rows), ZERO),
            total_credit=sum((r.credit_total for r in rows), ZERO),
        )
