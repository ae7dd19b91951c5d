"""
Warehouse settings schema.

Frozen dataclasses parsed from YAML by ``warehouse_config.loader``.  Every
field has a default so a partial settings file is valid; values are
range-checked in ``__post_init__``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class DatabaseSettings:
    """Engine construction parameters."""

    url: str = "sqlite:///warehouse.db"
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("database.url must not be empty")
        if self.pool_size < 1:
            raise ValueError("database.pool_size must be at least 1")
        if self.max_overflow < 0:
            raise ValueError("database.max_overflow must not be negative")
        if self.pool_timeout < 1:
            raise ValueError("database.pool_timeout must be at least 1")


@dataclass(frozen=True)
class NumberingSettings:
    """Document number format: ``PREFIX-YYYYMMDD-NNNNN``."""

    order_prefix: str = "ORD"
    receiving_prefix: str = "RCV"
    width: int = 5

    def __post_init__(self) -> None:
        for name in ("order_prefix", "receiving_prefix"):
            value = getattr(self, name)
            if not value or not value.isalnum():
                raise ValueError(f"numbering.{name} must be alphanumeric, got {value!r}")
        if self.order_prefix == self.receiving_prefix:
            raise ValueError("numbering prefixes must differ")
        if not 3 <= self.width <= 10:
            raise ValueError("numbering.width must be between 3 and 10")


@dataclass(frozen=True)
class RateLimitSettings:
    """Per-connection notification limit."""

    window_seconds: float = 60.0
    max_events: int = 100

    def __post_init__(self) -> None:
        if self.window_seconds <= 0:
            raise ValueError("rate_limit.window_seconds must be positive")
        if self.max_events < 1:
            raise ValueError("rate_limit.max_events must be at least 1")


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"

    def __post_init__(self) -> None:
        if self.level.upper() not in _LOG_LEVELS:
            raise ValueError(f"logging.level must be one of {', '.join(_LOG_LEVELS)}")


@dataclass(frozen=True)
class WarehouseSettings:
    """Complete runtime settings."""

    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    numbering: NumberingSettings = field(default_factory=NumberingSettings)
    rate_limit: RateLimitSettings = field(default_factory=RateLimitSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    source: str | None = None
    checksum: str = ""
