"""
voucher_config -- single public entrypoint for pipeline configuration.

Responsibility:
    ``get_active_config()`` is the only way runtime code obtains
    configuration.  It loads a YAML file (the packaged default set unless a
    path is given), validates it, and emits a ``VOUCHER_CONFIG_TRACE`` log
    entry carrying the checksum so every run can be tied to the exact
    configuration that governed it.

Failure modes:
    - ``FileNotFoundError`` -- configuration file missing.
    - ``ValueError`` -- unknown keys or out-of-range values.
"""

from __future__ import annotations

from pathlib import Path

from voucher_config.loader import compute_checksum, load_config, parse_config
from voucher_config.schema import (
    DatabaseSettings,
    DispatchSettings,
    LoggingSettings,
    MaterializeSettings,
    StorageSettings,
    VoucherConfig,
)
from voucher_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | str | None = None) -> VoucherConfig:
    """Load, validate and trace the active configuration."""
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = load_config(path)

    _logger.info(
        "VOUCHER_CONFIG_TRACE",
        extra={
            "config_path": str(path),
            "checksum": config.checksum,
            "dispatch_max_workers": config.dispatch.max_workers,
            "dispatch_max_attempts": config.dispatch.max_attempts,
            "materialize_max_workers": config.materialize.max_workers,
        },
    )
    return config


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "DatabaseSettings",
    "DispatchSettings",
    "LoggingSettings",
    "MaterializeSettings",
    "StorageSettings",
    "VoucherConfig",
    "compute_checksum",
    "get_active_config",
    "load_config",
    "parse_config",
]
