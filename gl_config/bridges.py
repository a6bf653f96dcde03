"""
Config -> Kernel bridges.

Converts ``LedgerSettings`` into the kernel's ``LedgerPolicy``.  This lives
in gl_config (the producer) because the kernel must never import gl_config.

Usage:
    from gl_config import get_active_settings
    from gl_config.bridges import build_ledger_policy

    policy = build_ledger_policy(get_active_settings())

Logging is configured separately with ``configure_logging_from_settings``.
"""

from __future__ import annotations

import logging

from gl_config.schema import LedgerSettings
from gl_kernel.domain.policy import LedgerPolicy, UnmatchedPeriodPolicy
from gl_kernel.logging_config import configure_logging


def build_ledger_policy(settings: LedgerSettings) -> LedgerPolicy:
    """Translate validated settings into a kernel ``LedgerPolicy``."""
    return LedgerPolicy(
        balance_tolerance=settings.journal.balance_tolerance,
        rounding_threshold=settings.rounding.threshold,
        journal_prefix=settings.journal.prefix,
        sequence_padding=settings.journal.sequence_padding,
        unmatched_period_policy=UnmatchedPeriodPolicy(settings.periods.unmatched_date_policy),
        system_actor=settings.system_actor,
        rounding_account_code=settings.rounding.rounding_account.code,
        rounding_account_name=settings.rounding.rounding_account.name,
        suspense_account_code=settings.rounding.suspense_account.code,
        suspense_account_name=settings.rounding.suspense_account.name,
        auto_create_system_accounts=settings.rounding.auto_create_system_accounts,
    )


def configure_logging_from_settings(settings: LedgerSettings, **kwargs) -> None:
    """Configure the gl_kernel logger hierarchy at the configured level.

    Extra keyword arguments (``stream``, ``handler``) pass through to
    ``configure_logging``.  Like ``configure_logging``, only the first call
    in a process has any effect.
    """
    configure_logging(level=logging.getLevelName(settings.logging.level), **kwargs)
