"""
Settings loader (``warehouse_config.loader``).

Responsibility
--------------
Reads a YAML settings file and parses each section into the frozen
dataclasses of ``warehouse_config.schema``.  Callers normally go through
``warehouse_config.get_active_settings()`` instead.

Failure modes
-------------
* Missing file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown section or key, wrong type, out-of-range value  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from warehouse_config.schema import (
    DatabaseSettings,
    LoggingSettings,
    NumberingSettings,
    RateLimitSettings,
    WarehouseSettings,
)

_SECTIONS = {
    "database": DatabaseSettings,
    "numbering": NumberingSettings,
    "rate_limit": RateLimitSettings,
    "logging": LoggingSettings,
}

# Expected python types per annotation string (schema uses postponed annotations).
_TYPES: dict[str, tuple[type, ...]] = {
    "str": (str,),
    "bool": (bool,),
    "int": (int,),
    "float": (int, float),
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load one YAML file; an empty file yields an empty dict."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_section(name: str, data: Any):
    """Build one section dataclass, rejecting unknown keys and wrong types."""
    cls = _SECTIONS[name]
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ValueError(f"{name}: expected a mapping, got {type(data).__name__}")

    known = {f.name: f for f in fields(cls)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise ValueError(f"{name}: unknown keys {', '.join(unknown)}")

    for key, value in data.items():
        expected = _TYPES[str(known[key].type)]
        # bool is an int subclass; only accept it where bool is declared
        if isinstance(value, bool) and bool not in expected:
            raise ValueError(f"{name}.{key}: expected {known[key].type}, got bool")
        if not isinstance(value, expected):
            raise ValueError(
                f"{name}.{key}: expected {known[key].type}, got {type(value).__name__}"
            )
    return cls(**data)


def parse_settings(data: dict[str, Any], source: str | None = None) -> WarehouseSettings:
    unknown = sorted(set(data) - set(_SECTIONS))
    if unknown:
        raise ValueError(f"unknown settings sections: {', '.join(unknown)}")
    sections = {name: parse_section(name, data.get(name)) for name in _SECTIONS}
    return WarehouseSettings(**sections, source=source, checksum=compute_checksum(data))


def load_settings(path: Path) -> WarehouseSettings:
    return parse_settings(load_yaml_file(path), source=str(path))
