"""
LedgerPolicy -- the tunable rules the kernel runs under.

Responsibility:
    Carries balance tolerance, rounding threshold, numbering, the
    unmatched-date period policy and system account codes into services
    via constructor injection.  The kernel never reads configuration files
    or environment variables; ``gl_config`` builds a LedgerPolicy from
    YAML and hands it in.

Architecture position:
    Kernel > Domain -- zero I/O.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class UnmatchedPeriodPolicy(str, Enum):
    """What to do with a date that no accounting period covers.

    BOOTSTRAP: allow only while no periods exist at all (new installs).
    REJECT: always raise PeriodNotFoundError.
    ALLOW: always allow; the entry carries no period reference.
    """

    BOOTSTRAP = "bootstrap"
    REJECT = "reject"
    ALLOW = "allow"


@dataclass(frozen=True)
class LedgerPolicy:
    balance_tolerance: Decimal = Decimal("0.01")
    rounding_threshold: Decimal = Decimal("1.00")
    journal_prefix: str = "JE"
    sequence_padding: int = 5
    unmatched_period_policy: UnmatchedPeriodPolicy = UnmatchedPeriodPolicy.BOOTSTRAP
    system_actor: str = "system"
    rounding_account_code: str = "SYS-ROUNDING"
    rounding_account_name: str = "Rounding Differences"
    suspense_account_code: str = "SYS-SUSPENSE"
    suspense_account_name: str = "Suspense Account"
    auto_create_system_accounts: bool = True

    def __post_init__(self) -> None:
        if self.balance_tolerance < 0:
            raise ValueError("balance_tolerance must be >= 0")
        if self.rounding_threshold < 0:
            raise ValueError("rounding_threshold must be >= 0")
        if not self.journal_prefix:
            raise ValueError("journal_prefix must be non-empty")
        if self.sequence_padding < 1:
            raise ValueError("sequence_padding must be >= 1")


DEFAULT_POLICY = LedgerPolicy()
