"""
RoundingService -- books sub-unit rounding differences.

Responsibility:
    When a document total and the sum of its computed lines or tax differ
    by a small amount, posts a balancing entry between the system rounding
    account and the suspense account so the document's own entry can
    balance.

Architecture position:
    Kernel > Services -- thin helper over ``JournalService.create``.

Invariants enforced:
    - |amount| <= rounding threshold (1.00 by default).
    - Entries are auto-posted with source ROUNDING_ADJUSTMENT.
    - System accounts are located by configured code and created on first
      use when the policy allows it.

Failure modes:
    - RoundingThresholdExceededError: difference too large to book
      automatically.
    - InvalidEntryError: zero or non-numeric amount.
    - AccountNotFoundError: a system account is missing and auto-creation
      is disabled.
"""

from datetime import date
from decimal import Decimal, InvalidOperation

from sqlalchemy import select
from sqlalchemy.orm import Session

from gl_kernel.domain.clock import Clock
from gl_kernel.domain.dtos import (
    AccountType,
    LineInput,
    NormalBalance,
    SourceDocumentType,
)
from gl_kernel.domain.policy import DEFAULT_POLICY, LedgerPolicy
from gl_kernel.exceptions import (
    AccountNotFoundError,
    InvalidEntryError,
    RoundingThresholdExceededError,
)
from gl_kernel.logging_config import get_logger
from gl_kernel.models.account import Account
from gl_kernel.models.journal import JournalEntry
from gl_kernel.services.base import BaseService
from gl_kernel.services.journal_service import JournalService

logger = get_logger("services.rounding")


class RoundingService(BaseService[JournalEntry]):
    """
    Posts rounding adjustments through the journal engine.

    Non-goals:
        - Does NOT decide whether a difference is a rounding artefact;
          callers pass the amount they want booked.
    """

    def __init__(
        self,
        session: Session,
        journal_service: JournalService,
        clock: Clock | None = None,
        policy: LedgerPolicy = DEFAULT_POLICY,
    ):
        super().__init__(session, clock)
        self._journal_service = journal_service
        self._policy = policy

    def handle_rounding_difference(
        self,
        amount: Decimal | int | str,
        description: str | None = None,
        related_document_type: str | None = None,
        related_document_id: str | None = None,
        entry_date: date | None = None,
        created_by: str | None = None,
    ) -> JournalEntry:
        """
        Book ``amount`` as a rounding adjustment.

        A positive amount debits the rounding account and credits suspense;
        a negative amount does the opposite.

        Raises:
            RoundingThresholdExceededError: ``|amount|`` above the threshold.
            InvalidEntryError: Zero or non-numeric amount.
        """
        try:
            value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
        except (InvalidOperation, ValueError):
            raise InvalidEntryError(f"rounding amount {amount!r} is not a number") from None
        if not value.is_finite():
            raise InvalidEntryError(f"rounding amount {amount!r} is not a number")

        if abs(value) > self._policy.rounding_threshold:
            logger.warning(
                "rounding_threshold_exceeded",
                extra={
                    "amount": str(value),
                    "threshold": str(self._policy.rounding_threshold),
                },
            )
            raise RoundingThresholdExceededError(
                str(value), str(self._policy.rounding_threshold)
            )
        if value == 0:
            raise InvalidEntryError("rounding amount must not be zero")

        rounding = self._system_account(
            self._policy.rounding_account_code,
            self._policy.rounding_account_name,
            AccountType.EXPENSE,
            NormalBalance.DEBIT,
        )
        suspense = self._system_account(
            self._policy.suspense_account_code,
            self._policy.suspense_account_name,
            AccountType.LIABILITY,
            NormalBalance.CREDIT,
        )

        magnitude = abs(value)
        if value > 0:
            lines = [LineInput.debit(rounding.id, magnitude), LineInput.credit(suspense.id, magnitude)]
        else:
            lines = [LineInput.debit(suspense.id, magnitude), LineInput.credit(rounding.id, magnitude)]

        if description is None:
            description = "Rounding difference"
            if related_document_type:
                description += f" for {related_document_type} {related_document_id or ''}".rstrip()

        entry = self._journal_service.create(
            entry_date=entry_date or self._clock.today(),
            description=description,
            lines=lines,
            source_document=SourceDocumentType.ROUNDING_ADJUSTMENT,
            source_document_id=related_document_id,
            auto_post=True,
            created_by=created_by,
        )
        logger.info(
            "rounding_difference_posted",
            extra={"entry_number": entry.number, "amount": str(value)},
        )
        return entry

    def _system_account(
        self,
        code: str,
        name: str,
        account_type: AccountType,
        normal_balance: NormalBalance,
    ) -> Account:
        account = self.session.execute(
            select(Account).where(Account.code == code)
        ).scalar_one_or_none()
        if account is not None:
            return account

        if not self._policy.auto_create_system_accounts:
            raise AccountNotFoundError([code])

        account = Account(
            code=code,
            name=name,
            account_type=account_type,
            normal_balance=normal_balance,
            is_active=True,
            is_system_account=True,
        )
        self.session.add(account)
        self.session.flush()
        logger.info("system_account_created", extra={"account_code": code})
        return account
