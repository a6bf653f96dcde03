"""
Typed Exception Hierarchy for the GL Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the ledger (HTTP layers, document workflows, batch jobs) need to
tell a malformed request apart from a lifecycle conflict without parsing
message text.  Every error raised by the kernel therefore:

  1. Has its own class (catch by type, not message)
  2. Carries a CODE class attribute (machine-readable, API-safe)
  3. Carries a CATEGORY class attribute (bad_request / not_found / conflict)
  4. Stores its structured context as instance attributes

Example:
    try:
        ledger.post_journal_entry(entry_id, posted_by="bob")
    except ClosedPeriodError as e:
        return {"error": e.code, "period": e.period_name}, 409
    except GeneralLedgerError as e:
        return {"error": e.code}, e.category.http_status

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    GeneralLedgerError (base)
    |
    +-- LedgerValidationError                     [bad_request]
    |   +-- InvalidEntryError
    |   +-- UnbalancedEntryError
    |   +-- AccountNotFoundError
    |   +-- RoundingThresholdExceededError
    |   +-- InvalidFiscalYearError
    |
    +-- JournalError
    |   +-- JournalEntryNotFoundError             [not_found]
    |   +-- InvalidStateTransitionError           [conflict]
    |   |   +-- EntryAlreadyReversedError
    |   +-- SelfApprovalError                     [conflict]
    |
    +-- PeriodError                               [conflict]
    |   +-- PeriodNotFoundError
    |   +-- ClosedPeriodError
    |   +-- LockedPeriodError
    |   +-- PeriodAlreadyLockedError
    |   +-- PeriodAlreadyOpenError
    |   +-- PeriodOverlapError
    |   +-- AccountingPeriodNotFoundError         [not_found]
    |
    +-- ImmutabilityViolationError                [conflict]

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                          | When Raised
--------------|-------------------------------|---------------------------------------
Validation    | INVALID_ENTRY                 | Malformed line set or header field
              | UNBALANCED_ENTRY              | |debits - credits| above tolerance
              | ACCOUNT_NOT_FOUND             | Line references missing/inactive account
              | ROUNDING_THRESHOLD_EXCEEDED   | Rounding difference too large
              | INVALID_FISCAL_YEAR           | Bad fiscal year date range
--------------|-------------------------------|---------------------------------------
Journal       | JOURNAL_ENTRY_NOT_FOUND       | Entry id does not exist
              | INVALID_STATE_TRANSITION      | approve/post/reverse from wrong status
              | ENTRY_ALREADY_REVERSED        | Entry already has a reversal
              | SELF_APPROVAL                 | Creator tried to approve own entry
--------------|-------------------------------|---------------------------------------
Period        | PERIOD_NOT_FOUND              | No period covers the date
              | CLOSED_PERIOD                 | Date falls in a closed period
              | LOCKED_PERIOD                 | Date/period is locked
              | PERIOD_ALREADY_LOCKED         | lock() on a locked period
              | PERIOD_ALREADY_OPEN           | reopen() on an open period
              | PERIOD_OVERLAP                | New range collides with existing periods
              | ACCOUNTING_PERIOD_NOT_FOUND   | Period id does not exist
--------------|-------------------------------|---------------------------------------
Immutability  | IMMUTABILITY_VIOLATION        | Modifying posted lines or audit rows

===============================================================================
DESIGN DECISIONS
===============================================================================

1. EntryAlreadyReversedError subclasses InvalidStateTransitionError.
   Reversing twice is a lifecycle conflict; callers that only care about
   "wrong state" can catch the parent.

2. ClosedPeriodError and LockedPeriodError are distinct.
   A closed period can be reopened by an administrator; a locked one
   never can, so the remediation offered to the user differs.

===============================================================================
"""

from enum import Enum


class ErrorCategory(str, Enum):
    """Coarse classification used by outer layers to pick a response."""

    BAD_REQUEST = "bad_request"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"

    @property
    def http_status(self) -> int:
        return {
            ErrorCategory.BAD_REQUEST: 400,
            ErrorCategory.NOT_FOUND: 404,
            ErrorCategory.CONFLICT: 409,
        }[self]


class GeneralLedgerError(Exception):
    """
    Base exception for all GL kernel errors.

    All subclasses must define a `code` class attribute for machine-readable
    error identification and a `category` for coarse handling.
    """

    code: str = "GENERAL_LEDGER_ERROR"
    category: ErrorCategory = ErrorCategory.BAD_REQUEST


# Validation exceptions (rejected before any persistence attempt)


class LedgerValidationError(GeneralLedgerError):
    """Base exception for request shape and invariant violations."""

    code: str = "LEDGER_VALIDATION_ERROR"
    category: ErrorCategory = ErrorCategory.BAD_REQUEST


class InvalidEntryError(LedgerValidationError):
    """Journal entry request is malformed."""

    code: str = "INVALID_ENTRY"

    def __init__(self, reason: str, line_number: int | None = None):
        self.reason = reason
        self.line_number = line_number
        if line_number is not None:
            super().__init__(f"Line {line_number}: {reason}")
        else:
            super().__init__(reason)


class UnbalancedEntryError(LedgerValidationError):
    """Debits and credits differ by more than the balance tolerance."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, total_debit: str, total_credit: str, difference: str):
        self.total_debit = total_debit
        self.total_credit = total_credit
        self.difference = difference
        super().__init__(
            f"Journal entry is not balanced. Debits: {total_debit}, "
            f"Credits: {total_credit}, Difference: {difference}"
        )


class AccountNotFoundError(LedgerValidationError):
    """One or more referenced accounts are missing or inactive."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_ids: list[str]):
        self.account_ids = account_ids
        super().__init__(
            f"Accounts not found or inactive: {', '.join(account_ids)}"
        )


class RoundingThresholdExceededError(LedgerValidationError):
    """Rounding difference is too large to be booked automatically."""

    code: str = "ROUNDING_THRESHOLD_EXCEEDED"

    def __init__(self, amount: str, threshold: str):
        self.amount = amount
        self.threshold = threshold
        super().__init__(
            f"Rounding difference {amount} exceeds threshold of {threshold}"
        )


class InvalidFiscalYearError(LedgerValidationError):
    """Fiscal year date range is invalid."""

    code: str = "INVALID_FISCAL_YEAR"

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid fiscal year {name}: {reason}")


# Journal lifecycle exceptions


class JournalError(GeneralLedgerError):
    """Base exception for journal entry lifecycle errors."""

    code: str = "JOURNAL_ERROR"
    category: ErrorCategory = ErrorCategory.CONFLICT


class JournalEntryNotFoundError(JournalError):
    """Journal entry with given id was not found."""

    code: str = "JOURNAL_ENTRY_NOT_FOUND"
    category: ErrorCategory = ErrorCategory.NOT_FOUND

    def __init__(self, journal_entry_id: str):
        self.journal_entry_id = journal_entry_id
        super().__init__(f"Journal entry not found: {journal_entry_id}")


class InvalidStateTransitionError(JournalError):
    """Requested transition is not legal from the entry's current status."""

    code: str = "INVALID_STATE_TRANSITION"

    def __init__(
        self,
        journal_entry_id: str,
        action: str,
        current_status: str,
        required_status: str,
        message: str | None = None,
    ):
        self.journal_entry_id = journal_entry_id
        self.action = action
        self.current_status = current_status
        self.required_status = required_status
        super().__init__(
            message
            or f"Cannot {action} journal entry {journal_entry_id}: status is "
            f"{current_status}, expected {required_status}"
        )


class EntryAlreadyReversedError(InvalidStateTransitionError):
    """Entry has already been reversed."""

    code: str = "ENTRY_ALREADY_REVERSED"

    def __init__(self, journal_entry_id: str, reversed_by_id: str | None = None):
        self.reversed_by_id = reversed_by_id
        super().__init__(
            journal_entry_id=journal_entry_id,
            action="reverse",
            current_status="reversed",
            required_status="posted",
            message=f"Journal entry {journal_entry_id} has already been reversed",
        )


class SelfApprovalError(JournalError):
    """Maker-checker violation: the creator cannot approve their own entry."""

    code: str = "SELF_APPROVAL"

    def __init__(self, journal_entry_id: str, actor: str):
        self.journal_entry_id = journal_entry_id
        self.actor = actor
        super().__init__(
            f"User {actor} cannot approve journal entry {journal_entry_id} "
            "they created"
        )


# Period-related exceptions


class PeriodError(GeneralLedgerError):
    """Base exception for period-related errors."""

    code: str = "PERIOD_ERROR"
    category: ErrorCategory = ErrorCategory.CONFLICT


class PeriodNotFoundError(PeriodError):
    """No accounting period covers the given date."""

    code: str = "PERIOD_NOT_FOUND"

    def __init__(self, entry_date: str):
        self.entry_date = entry_date
        super().__init__(f"No accounting period found for date: {entry_date}")


class ClosedPeriodError(PeriodError):
    """Attempted to write into a closed period."""

    code: str = "CLOSED_PERIOD"

    def __init__(self, period_name: str, entry_date: str):
        self.period_name = period_name
        self.entry_date = entry_date
        super().__init__(
            f"Accounting period {period_name} is closed. Reopen it first "
            f"(date: {entry_date})"
        )


class LockedPeriodError(PeriodError):
    """Attempted to write into, or reopen, a locked period."""

    code: str = "LOCKED_PERIOD"

    def __init__(self, period_name: str, entry_date: str | None = None):
        self.period_name = period_name
        self.entry_date = entry_date
        if entry_date is not None:
            super().__init__(
                f"Accounting period {period_name} is locked (date: {entry_date})"
            )
        else:
            super().__init__(
                f"Accounting period {period_name} is locked and cannot be changed"
            )


class PeriodAlreadyLockedError(PeriodError):
    """Period is already locked."""

    code: str = "PERIOD_ALREADY_LOCKED"

    def __init__(self, period_name: str):
        self.period_name = period_name
        super().__init__(f"Accounting period {period_name} is already locked")


class PeriodAlreadyOpenError(PeriodError):
    """Period is already open."""

    code: str = "PERIOD_ALREADY_OPEN"

    def __init__(self, period_name: str):
        self.period_name = period_name
        super().__init__(f"Accounting period {period_name} is already open")


class PeriodOverlapError(PeriodError):
    """New period date range overlaps with an existing period."""

    code: str = "PERIOD_OVERLAP"

    def __init__(
        self,
        new_period_name: str,
        existing_period_name: str,
        overlap_start: str,
        overlap_end: str,
    ):
        self.new_period_name = new_period_name
        self.existing_period_name = existing_period_name
        self.overlap_start = overlap_start
        self.overlap_end = overlap_end
        super().__init__(
            f"Period {new_period_name} overlaps with {existing_period_name} "
            f"({overlap_start} to {overlap_end})"
        )


class AccountingPeriodNotFoundError(PeriodError):
    """Accounting period with given id was not found."""

    code: str = "ACCOUNTING_PERIOD_NOT_FOUND"
    category: ErrorCategory = ErrorCategory.NOT_FOUND

    def __init__(self, period_id: str):
        self.period_id = period_id
        super().__init__(f"Accounting period not found: {period_id}")


# Immutability exceptions


class ImmutabilityViolationError(GeneralLedgerError):
    """
    Attempted to modify or delete an immutable record.

    Posted journal entries, their lines, and audit log rows are protected.
    """

    code: str = "IMMUTABILITY_VIOLATION"
    category: ErrorCategory = ErrorCategory.CONFLICT

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
