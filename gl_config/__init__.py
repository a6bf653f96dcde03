"""
gl_config -- single public entrypoint for ledger settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_settings()``.  No kernel component reads configuration
    files or environment variables; services receive a ``LedgerPolicy``
    built by ``gl_config.bridges`` through their constructors.

Architecture position:
    Configuration -- sits above ``gl_kernel`` and below ``gl_services``.
    The kernel MUST NEVER import from ``gl_config``.

Failure modes:
    - ``FileNotFoundError`` -- the requested settings file does not exist.
    - ``ValueError`` -- invalid or unknown settings.

Audit relevance:
    Every successful ``get_active_settings()`` call emits a
    ``GL_CONFIG_TRACE`` log entry with the config id, version and checksum,
    tying ledger behaviour to the exact settings that governed it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from gl_config.loader import load_settings
from gl_config.schema import LedgerSettings

_logger = logging.getLogger("gl_kernel.config")

DEFAULT_SETTINGS_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_settings(path: Path | str | None = None) -> LedgerSettings:
    """The ONLY public settings entrypoint.

    Args:
        path: Settings file to load.  Defaults to the packaged
            ``defaults.yaml``.

    Returns:
        Frozen, validated ``LedgerSettings``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If validation fails.
    """
    settings_path = Path(path) if path is not None else DEFAULT_SETTINGS_PATH
    settings = load_settings(settings_path)

    _logger.info(
        "GL_CONFIG_TRACE",
        extra={
            "trace_type": "GL_CONFIG_TRACE",
            "config_id": settings.config_id,
            "config_version": settings.version,
            "checksum": settings.checksum,
            "settings_path": str(settings_path),
        },
    )
    return settings


__all__ = ["DEFAULT_SETTINGS_PATH", "LedgerSettings", "get_active_settings"]
