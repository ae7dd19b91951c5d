"""
warehouse_config -- single public entrypoint for runtime settings.

Responsibility:
    ``get_active_settings()`` is the only way services, scripts and tests
    obtain settings.  The kernel never imports this package at runtime;
    callers pass the values it needs (see
    ``WarehouseServices.from_settings``).

Resolution order:
    1. ``path`` argument, else the ``WAREHOUSE_CONFIG`` environment
       variable, else the packaged ``defaults.yaml``.
    2. ``WAREHOUSE_DATABASE_URL`` replaces ``database.url`` when set.

Failure modes:
    - ``FileNotFoundError`` -- the chosen file does not exist.
    - ``ValueError`` -- unknown keys, wrong types, out-of-range values.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import replace
from pathlib import Path

from warehouse_config.loader import load_settings
from warehouse_config.schema import (
    DatabaseSettings,
    LoggingSettings,
    NumberingSettings,
    RateLimitSettings,
    WarehouseSettings,
)

_logger = logging.getLogger("warehouse_kernel.config")

CONFIG_ENV_VAR = "WAREHOUSE_CONFIG"
DATABASE_URL_ENV_VAR = "WAREHOUSE_DATABASE_URL"
DEFAULT_SETTINGS_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_settings(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> WarehouseSettings:
    """Resolve and load the active settings."""
    env = os.environ if environ is None else environ
    chosen = Path(path or env.get(CONFIG_ENV_VAR) or DEFAULT_SETTINGS_PATH)
    settings = load_settings(chosen)

    override = env.get(DATABASE_URL_ENV_VAR)
    if override:
        settings = replace(settings, database=replace(settings.database, url=override))

    _logger.info(
        "settings_loaded",
        extra={
            "source": settings.source,
            "checksum": settings.checksum,
            "database_url_overridden": bool(override),
        },
    )
    return settings


__all__ = [
    "CONFIG_ENV_VAR",
    "DATABASE_URL_ENV_VAR",
    "DEFAULT_SETTINGS_PATH",
    "DatabaseSettings",
    "LoggingSettings",
    "NumberingSettings",
    "RateLimitSettings",
    "WarehouseSettings",
    "get_active_settings",
]
