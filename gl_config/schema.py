"""
LedgerSettings schema.

The human-authored YAML settings file is parsed by the loader into these
frozen dataclasses.  ``gl_config.bridges`` turns them into the kernel's
``LedgerPolicy``; the kernel never sees this module.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class SystemAccountDef:
    """Code and display name of a system-managed account."""

    code: str
    name: str


@dataclass(frozen=True)
class JournalSettings:
    prefix: str = "JE"
    sequence_padding: int = 5
    balance_tolerance: Decimal = Decimal("0.01")


@dataclass(frozen=True)
class PeriodSettings:
    # bootstrap | reject | allow
    unmatched_date_policy: str = "bootstrap"


@dataclass(frozen=True)
class RoundingSettings:
    threshold: Decimal = Decimal("1.00")
    rounding_account: SystemAccountDef = field(
        default_factory=lambda: SystemAccountDef("SYS-ROUNDING", "Rounding Differences")
    )
    suspense_account: SystemAccountDef = field(
        default_factory=lambda: SystemAccountDef("SYS-SUSPENSE", "Suspense Account")
    )
    auto_create_system_accounts: bool = True


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class LedgerSettings:
    """Complete, validated ledger settings."""

    config_id: str
    version: int
    journal: JournalSettings = field(default_factory=JournalSettings)
    periods: PeriodSettings = field(default_factory=PeriodSettings)
    rounding: RoundingSettings = field(default_factory=RoundingSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    system_actor: str = "system"
    checksum: str = ""

    # Flat accessors matching the documented setting names.

    @property
    def balance_tolerance(self) -> Decimal:
        return self.journal.balance_tolerance

    @property
    def rounding_threshold(self) -> Decimal:
        return self.rounding.threshold

    @property
    def journal_prefix(self) -> str:
        return self.journal.prefix

    @property
    def sequence_padding(self) -> int:
        return self.journal.sequence_padding

    @property
    def unmatched_period_policy(self) -> str:
        return self.periods.unmatched_date_policy

    @property
    def rounding_account_code(self) -> str:
        return self.rounding.rounding_account.code

    @property
    def suspense_account_code(self) -> str:
        return self.rounding.suspense_account.code

    @property
    def auto_create_system_accounts(self) -> bool:
        return self.rounding.auto_create_system_accounts
