"""
Voucher pipeline configuration schema.

Frozen dataclasses parsed from YAML by ``voucher_config.loader``.  Every
section has defaults so a partial YAML document is valid; values are range
checked in ``__post_init__``.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class MaterializeSettings:
    """Worker pool and code generation for voucher materialization."""

    max_workers: int = 8
    code_attempts: int = 5  # Fresh codes tried per row on collision

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ValueError(f"materialize.max_workers must be >= 1, got {self.max_workers}")
        if self.code_attempts < 1:
            raise ValueError(f"materialize.code_attempts must be >= 1, got {self.code_attempts}")


@dataclass(frozen=True)
class DispatchSettings:
    """Admission control for the notification gateway."""

    max_workers: int = 8
    send_timeout_seconds: float = 10.0
    max_attempts: int | None = 10  # None = retry without ceiling

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ValueError(f"dispatch.max_workers must be >= 1, got {self.max_workers}")
        if self.send_timeout_seconds <= 0:
            raise ValueError(
                f"dispatch.send_timeout_seconds must be > 0, got {self.send_timeout_seconds}"
            )
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError(f"dispatch.max_attempts must be >= 1 or null, got {self.max_attempts}")


@dataclass(frozen=True)
class StorageSettings:
    root: str = "./artifacts"


@dataclass(frozen=True)
class DatabaseSettings:
    url: str = "sqlite:///vouchers.db"
    echo: bool = False


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"

    def __post_init__(self) -> None:
        if self.level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"logging.level is not a valid level: {self.level!r}")


@dataclass(frozen=True)
class VoucherConfig:
    """Complete, validated pipeline configuration."""

    materialize: MaterializeSettings = field(default_factory=MaterializeSettings)
    dispatch: DispatchSettings = field(default_factory=DispatchSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    checksum: str = ""
