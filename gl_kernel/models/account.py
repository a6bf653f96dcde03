"""
Module: gl_kernel.models.account
Responsibility: ORM persistence for the chart of accounts.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/dtos.py only.

Invariants enforced:
    - code is globally unique (uq_account_code).
    - Only active accounts may receive postings (checked by JournalService
      before any write).

Audit relevance:
    The ledger core treats Account rows as read-only reference data; the
    only accounts it ever creates are the system rounding and suspense
    accounts, flagged with is_system_account.
"""

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gl_kernel.db.base import EnumString, TrackedBase
from gl_kernel.domain.dtos import AccountType, NormalBalance

if TYPE_CHECKING:
    from gl_kernel.models.journal import JournalEntryLine


class Account(TrackedBase):
    """
    Chart of Accounts entry.

    Contract:
        Account.code is unique.  account_type drives the sign convention of
        balance queries (asset/expense are debit-normal).

    Non-goals:
        - No hierarchy, currency restriction, or tagging; the chart is
          maintained outside the ledger core.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("code", name="uq_account_code"),
        Index("idx_account_type", "account_type"),
        Index("idx_account_active", "is_active"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    account_type: Mapped[AccountType] = mapped_column(
        EnumString(AccountType, 20),
        nullable=False,
    )

    normal_balance: Mapped[NormalBalance] = mapped_column(
        EnumString(NormalBalance, 10),
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Created by the ledger itself (rounding, suspense)
    is_system_account: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    journal_lines: Mapped[list["JournalEntryLine"]] = relationship(
        back_populates="account",
        lazy="dynamic",
    )

    def __repr__(self) -> str:
        return f"<Account {self.code}: {self.name}>"

    @property
    def is_debit_normal(self) -> bool:
        return AccountType(self.account_type).is_debit_normal
