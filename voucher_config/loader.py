"""
Configuration Loader (``voucher_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the typed
``voucher_config.schema`` dataclasses.  Runtime code obtains configuration
through ``voucher_config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown section or key  -> ``ValueError``.
* Out-of-range value  -> ``ValueError`` from the schema.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from voucher_config.schema import (
    DatabaseSettings,
    DispatchSettings,
    LoggingSettings,
    MaterializeSettings,
    StorageSettings,
    VoucherConfig,
)

_SECTIONS: dict[str, type] = {
    "materialize": MaterializeSettings,
    "dispatch": DispatchSettings,
    "storage": StorageSettings,
    "database": DatabaseSettings,
    "logging": LoggingSettings,
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
        raise ValueError(f"Configuration root must be a mapping: {path}")
    return data


def _parse_section(name: str, cls: type, data: Any) -> Any:
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ValueError(f"Section '{name}' must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown keys in '{name}': {', '.join(sorted(unknown))}")
    return cls(**data)


def parse_config(data: dict[str, Any]) -> VoucherConfig:
    """Parse a configuration dict into a ``VoucherConfig`` with checksum."""
    unknown = set(data) - set(_SECTIONS)
    if unknown:
        raise ValueError(f"Unknown configuration sections: {', '.join(sorted(unknown))}")

    sections = {
        name: _parse_section(name, cls, data.get(name))
        for name, cls in _SECTIONS.items()
    }
    return VoucherConfig(**sections, checksum=compute_checksum(data))


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of the canonical JSON form of ``data``."""
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def load_config(path: Path) -> VoucherConfig:
    """Load and parse a YAML configuration file."""
    return parse_config(load_yaml_file(path))
