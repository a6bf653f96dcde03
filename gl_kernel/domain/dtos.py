"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the closed enumerations shared by models, services and
    selectors, the caller-facing line input (``LineInput``), the balance
    query filter (``BalanceFilters``), the audit record handed to the
    audit sink, and the frozen read models (``JournalEntryRecord``,
    ``AccountingPeriodInfo``, ``FiscalYearInfo``) returned across the
    transaction boundary.

Architecture position:
    Kernel > Domain -- zero I/O.  ``from_model()`` class methods are
    boundary converters invoked from the service layer only.

Failure modes:
    - ValueError when an enum is constructed from an unknown value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any, Mapping
from uuid import UUID

if TYPE_CHECKING:
    from gl_kernel.models.fiscal_period import AccountingPeriod, FiscalYear
    from gl_kernel.models.journal import JournalEntry, JournalEntryLine


# =============================================================================
# Enumerations
# =============================================================================


class AccountType(str, Enum):
    """Accounting type of a chart account."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    INCOME = "income"
    EXPENSE = "expense"

    @property
    def is_debit_normal(self) -> bool:
        """Asset and expense balances grow on the debit side."""
        return self in (AccountType.ASSET, AccountType.EXPENSE)


class NormalBalance(str, Enum):
    """Normal balance side for an account."""

    DEBIT = "debit"
    CREDIT = "credit"


class JournalEntryStatus(str, Enum):
    """Journal entry lifecycle.

    Contract: DRAFT -> APPROVED -> POSTED -> REVERSED.  Auto-posted and
    reversal entries start at POSTED.
    """

    DRAFT = "draft"
    APPROVED = "approved"
    POSTED = "posted"
    REVERSED = "reversed"


class _DocumentKeyEnum(str, Enum):
    """str Enum that also accepts display spellings such as "CreditNote".

    Lookup ignores case and underscores, so "Customer", "customer" and
    "CUSTOMER" all resolve to the same member.
    """

    @classmethod
    def _missing_(cls, value):
        if not isinstance(value, str):
            return None
        key = value.replace("_", "").lower()
        for member in cls:
            if member.value.replace("_", "") == key:
                return member
        return None


class SourceDocumentType(_DocumentKeyEnum):
    """Kind of business document a journal entry was produced from."""

    MANUAL = "manual"
    INVOICE = "invoice"
    BILL = "bill"
    PAYMENT = "payment"
    CREDIT_NOTE = "credit_note"
    VENDOR_CREDIT = "vendor_credit"
    JOURNAL_IMPORT = "journal_import"
    REVERSAL = "reversal"
    ROUNDING_ADJUSTMENT = "rounding_adjustment"


class EntityType(_DocumentKeyEnum):
    """Counterparty kind carried on subledger lines."""

    CUSTOMER = "customer"
    VENDOR = "vendor"


class PeriodStatus(str, Enum):
    """Accounting period status.

    Contract: OPEN <-> CLOSED, OPEN/CLOSED -> LOCKED.  LOCKED is terminal.
    """

    OPEN = "open"
    CLOSED = "closed"
    LOCKED = "locked"


class FiscalYearStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class AuditAction(str, Enum):
    """Action kinds written to the audit sink."""

    CREATE = "CREATE"
    APPROVE = "APPROVE"
    POST = "POST"
    REVERSE = "REVERSE"
    LOCK = "LOCK"
    UPDATE = "UPDATE"


# =============================================================================
# Inputs
# =============================================================================


@dataclass(frozen=True)
class LineInput:
    """
    One caller-supplied journal line.

    Amounts are kept as supplied; JournalService validates and converts
    them, so a malformed request is reported as InvalidEntryError rather
    than failing at construction.
    """

    account_id: UUID | str
    debit_amount: Decimal | int | str | None = None
    credit_amount: Decimal | int | str | None = None
    description: str | None = None
    cost_center_id: str | None = None
    project_id: str | None = None
    tax_code_id: str | None = None
    tax_amount: Decimal | int | str | None = None
    entity_type: EntityType | str | None = None
    entity_id: str | None = None

    @classmethod
    def debit(cls, account_id: UUID | str, amount: Decimal | int | str, **kwargs: Any) -> LineInput:
        return cls(account_id=account_id, debit_amount=amount, **kwargs)

    @classmethod
    def credit(cls, account_id: UUID | str, amount: Decimal | int | str, **kwargs: Any) -> LineInput:
        return cls(account_id=account_id, credit_amount=amount, **kwargs)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> LineInput:
        """Build from a plain dict (e.g. a decoded request body)."""
        if "account_id" not in data:
            raise KeyError("account_id")
        known = cls.__dataclass_fields__.keys()
        unknown = set(data) - set(known)
        if unknown:
            raise KeyError(f"Unknown line fields: {sorted(unknown)}")
        return cls(**dict(data))


@dataclass(frozen=True)
class BalanceFilters:
    """
    Optional bounds for balance queries.

    ``start_date``/``end_date`` bound the entry date inclusively;
    ``as_of_date`` is an inclusive upper bound applied in addition.
    Dimension filters match lines exactly.
    """

    start_date: date | None = None
    end_date: date | None = None
    as_of_date: date | None = None
    cost_center_id: str | None = None
    project_id: str | None = None


@dataclass(frozen=True)
class AuditRecord:
    """One append-only audit record handed to the audit sink."""

    table_name: str
    record_id: str
    action: AuditAction
    user_id: str
    description: str
    previous_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None


# =============================================================================
# Read models
# =============================================================================


@dataclass(frozen=True)
class JournalLineRecord:
    line_number: int
    account_id: UUID
    description: str | None
    debit_amount: Decimal
    credit_amount: Decimal
    cost_center_id: str | None
    project_id: str | None
    tax_code_id: str | None
    tax_amount: Decimal
    entity_type: EntityType | None
    entity_id: str | None

    @classmethod
    def from_model(cls, line: JournalEntryLine) -> JournalLineRecord:
        return cls(
            line_number=line.line_number,
            account_id=line.account_id,
            description=line.description,
            debit_amount=line.debit_amount,
            credit_amount=line.credit_amount,
            cost_center_id=line.cost_center_id,
            project_id=line.project_id,
            tax_code_id=line.tax_code_id,
            tax_amount=line.tax_amount,
            entity_type=line.entity_type,
            entity_id=line.entity_id,
        )


@dataclass(frozen=True)
class JournalEntryRecord:
    """Immutable snapshot of a journal entry and its lines."""

    id: UUID
    number: str
    entry_date: date
    description: str
    status: JournalEntryStatus
    source_document: SourceDocumentType
    source_document_id: str | None
    period_id: UUID | None
    total_debit: Decimal
    total_credit: Decimal
    is_auto_generated: bool
    created_by: str | None
    approved_by: str | None
    approved_at: datetime | None
    posted_by: str | None
    posted_at: datetime | None
    idempotency_key: str | None
    reversal_of_id: UUID | None
    reversed_by_id: UUID | None
    reversal_date: date | None
    reversal_reason: str | None
    notes: str | None
    lines: tuple[JournalLineRecord, ...] = field(default_factory=tuple)

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit

    @classmethod
    def from_model(cls, entry: JournalEntry) -> JournalEntryRecord:
        return cls(
            id=entry.id,
            number=entry.number,
            entry_date=entry.entry_date,
            description=entry.description,
            status=entry.status,
            source_document=entry.source_document,
            source_document_id=entry.source_document_id,
            period_id=entry.period_id,
            total_debit=entry.total_debit,
            total_credit=entry.total_credit,
            is_auto_generated=entry.is_auto_generated,
            created_by=entry.created_by,
            approved_by=entry.approved_by,
            approved_at=entry.approved_at,
            posted_by=entry.posted_by,
            posted_at=entry.posted_at,
            idempotency_key=entry.idempotency_key,
            reversal_of_id=entry.reversal_of_id,
            reversed_by_id=entry.reversed_by_id,
            reversal_date=entry.reversal_date,
            reversal_reason=entry.reversal_reason,
            notes=entry.notes,
            lines=tuple(
                JournalLineRecord.from_model(line)
                for line in sorted(entry.lines, key=lambda ln: ln.line_number)
            ),
        )


@dataclass(frozen=True)
class ReversalRecord:
    original_entry: JournalEntryRecord
    reversal_entry: JournalEntryRecord


@dataclass(frozen=True)
class AccountingPeriodInfo:
    """Immutable snapshot of an accounting period."""

    id: UUID
    fiscal_year_id: UUID
    name: str
    period_number: int
    start_date: date
    end_date: date
    status: PeriodStatus
    closed_by: str | None = None
    closed_at: datetime | None = None

    @property
    def accepts_postings(self) -> bool:
        return self.status == PeriodStatus.OPEN

    @classmethod
    def from_model(cls, period: AccountingPeriod) -> AccountingPeriodInfo:
        return cls(
            id=period.id,
            fiscal_year_id=period.fiscal_year_id,
            name=period.name,
            period_number=period.period_number,
            start_date=period.start_date,
            end_date=period.end_date,
            status=period.status,
            closed_by=period.closed_by,
            closed_at=period.closed_at,
        )


@dataclass(frozen=True)
class FiscalYearInfo:
    """Immutable snapshot of a fiscal year and its periods."""

    id: UUID
    name: str
    start_date: date
    end_date: date
    status: FiscalYearStatus
    created_by: str | None
    periods: tuple[AccountingPeriodInfo, ...] = field(default_factory=tuple)

    @classmethod
    def from_model(cls, fiscal_year: FiscalYear) -> FiscalYearInfo:
        return cls(
            id=fiscal_year.id,
            name=fiscal_year.name,
            start_date=fiscal_year.start_date,
            end_date=fiscal_year.end_date,
            status=fiscal_year.status,
            created_by=fiscal_year.created_by,
            periods=tuple(
                AccountingPeriodInfo.from_model(p)
                for p in sorted(fiscal_year.periods, key=lambda p: p.period_number)
            ),
        )
