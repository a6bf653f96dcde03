"""
Settings Loader (``gl_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into the frozen
``gl_config.schema`` dataclasses.  Runtime callers go through
``gl_config.get_active_settings()``; this module is the parsing layer
behind it and is used directly by tests.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Invalid values raise ``ValueError`` with a descriptive message; unknown
  top-level or section keys are rejected rather than ignored.
* ``compute_checksum`` is a deterministic SHA-256 over the parsed data.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``config_id``/``version``  -> ``KeyError`` propagates.
* Bad value  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from gl_config.schema import (
    JournalSettings,
    LedgerSettings,
    LoggingSettings,
    PeriodSettings,
    RoundingSettings,
    SystemAccountDef,
)

UNMATCHED_DATE_POLICIES = ("bootstrap", "reject", "allow")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_TOP_LEVEL_KEYS = {
    "config_id",
    "version",
    "system_actor",
    "journal",
    "periods",
    "rounding",
    "logging",
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: settings document must be a mapping")
    return data


def parse_decimal(value: Any, name: str) -> Decimal:
    """
    Parse a non-negative Decimal from YAML.

    Floats are converted through ``str`` so 0.01 stays 0.01.
    """
    if isinstance(value, bool):
        raise ValueError(f"{name}: expected a number, got {value!r}")
    try:
        result = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"{name}: expected a number, got {value!r}") from None
    if not result.is_finite() or result < 0:
        raise ValueError(f"{name}: must be a finite number >= 0, got {value!r}")
    return result


def _section(data: dict[str, Any], key: str, allowed: set[str]) -> dict[str, Any]:
    section = data.get(key) or {}
    if not isinstance(section, dict):
        raise ValueError(f"{key}: expected a mapping, got {type(section).__name__}")
    unknown = set(section) - allowed
    if unknown:
        raise ValueError(f"{key}: unknown keys {sorted(unknown)}")
    return section


def _non_empty_str(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{name}: expected a non-empty string, got {value!r}")
    return value


def parse_system_account(data: Any, name: str, default: SystemAccountDef) -> SystemAccountDef:
    if data is None:
        return default
    if not isinstance(data, dict):
        raise ValueError(f"{name}: expected a mapping with code and name")
    return SystemAccountDef(
        code=_non_empty_str(data.get("code", default.code), f"{name}.code"),
        name=_non_empty_str(data.get("name", default.name), f"{name}.name"),
    )


def parse_journal(data: dict[str, Any]) -> JournalSettings:
    defaults = JournalSettings()
    padding = data.get("sequence_padding", defaults.sequence_padding)
    if isinstance(padding, bool) or not isinstance(padding, int) or padding < 1:
        raise ValueError(f"journal.sequence_padding: expected an integer >= 1, got {padding!r}")
    return JournalSettings(
        prefix=_non_empty_str(data.get("prefix", defaults.prefix), "journal.prefix"),
        sequence_padding=padding,
        balance_tolerance=parse_decimal(
            data.get("balance_tolerance", defaults.balance_tolerance),
            "journal.balance_tolerance",
        ),
    )


def parse_periods(data: dict[str, Any]) -> PeriodSettings:
    policy = str(data.get("unmatched_date_policy", PeriodSettings().unmatched_date_policy)).lower()
    if policy not in UNMATCHED_DATE_POLICIES:
        raise ValueError(
            f"periods.unmatched_date_policy: expected one of "
            f"{UNMATCHED_DATE_POLICIES}, got {policy!r}"
        )
    return PeriodSettings(unmatched_date_policy=policy)


def parse_rounding(data: dict[str, Any]) -> RoundingSettings:
    defaults = RoundingSettings()
    auto_create = data.get("auto_create_system_accounts", defaults.auto_create_system_accounts)
    if not isinstance(auto_create, bool):
        raise ValueError(
            f"rounding.auto_create_system_accounts: expected true/false, got {auto_create!r}"
        )
    return RoundingSettings(
        threshold=parse_decimal(data.get("threshold", defaults.threshold), "rounding.threshold"),
        rounding_account=parse_system_account(
            data.get("rounding_account"), "rounding.rounding_account", defaults.rounding_account
        ),
        suspense_account=parse_system_account(
            data.get("suspense_account"), "rounding.suspense_account", defaults.suspense_account
        ),
        auto_create_system_accounts=auto_create,
    )


def parse_logging(data: dict[str, Any]) -> LoggingSettings:
    level = str(data.get("level", LoggingSettings().level)).upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"logging.level: expected one of {LOG_LEVELS}, got {level!r}")
    return LoggingSettings(level=level)


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 over the raw settings mapping."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def parse_settings(data: dict[str, Any]) -> LedgerSettings:
    """
    Parse a ``LedgerSettings`` from a dict.

    Raises:
        KeyError: ``config_id`` or ``version`` missing.
        ValueError: Unknown keys or invalid values.
    """
    unknown = set(data) - _TOP_LEVEL_KEYS
    if unknown:
        raise ValueError(f"unknown settings keys {sorted(unknown)}")

    version = data["version"]
    if isinstance(version, bool) or not isinstance(version, int):
        raise ValueError(f"version: expected an integer, got {version!r}")

    return LedgerSettings(
        config_id=_non_empty_str(data["config_id"], "config_id"),
        version=version,
        journal=parse_journal(
            _section(data, "journal", {"prefix", "sequence_padding", "balance_tolerance"})
        ),
        periods=parse_periods(_section(data, "periods", {"unmatched_date_policy"})),
        rounding=parse_rounding(
            _section(
                data,
                "rounding",
                {
                    "threshold",
                    "rounding_account",
                    "suspense_account",
                    "auto_create_system_accounts",
                },
            )
        ),
        logging=parse_logging(_section(data, "logging", {"level"})),
        system_actor=_non_empty_str(data.get("system_actor", "system"), "system_actor"),
        checksum=compute_checksum(data),
    )


def load_settings(path: Path) -> LedgerSettings:
    """Load and parse a settings file."""
    return parse_settings(load_yaml_file(path))
