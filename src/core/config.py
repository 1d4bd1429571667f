"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

import socket
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")

_DEFAULT_HOME = Path("~/.storage_monitor").expanduser()


def _expand(value: Any) -> Any:
    if isinstance(value, (str, Path)):
        return Path(value).expanduser()
    return value


class StoreConfig(BaseModel):
    """Shared event store location and partition naming."""

    root: Path = _DEFAULT_HOME
    basename: str = "events"
    partition_by_source: bool = True

    @field_validator("root", mode="before")
    @classmethod
    def _expand_root(cls, value: Any) -> Any:
        return _expand(value)


class ProducerConfig(BaseModel):
    """Identity of the emitting storage unit and probe state location."""

    source: str = "storage-01"
    hostname: str = Field(default_factory=socket.gethostname)
    state_dir: Path = _DEFAULT_HOME

    @field_validator("state_dir", mode="before")
    @classmethod
    def _expand_state_dir(cls, value: Any) -> Any:
        return _expand(value)


class ProbesConfig(BaseModel):
    """Thresholds and enable flags for the built-in resource probes."""

    storage_exists: bool = True
    storage_path: Path | None = None

    disk_usage: bool = True
    mounts: list[str] = Field(default_factory=lambda: ["/"])
    disk_warning_pct: float = 80.0
    disk_critical_pct: float = 90.0

    io_activity: bool = True
    io_tps_warning: float = 100.0
    io_sample_secs: float = 1.0

    memory_usage: bool = True
    memory_critical_pct: float = 90.0

    system_load: bool = True
    load_critical: float = 8.0

    disk_growth: bool = True
    growth_mount: str = "/"
    disk_growth_kb: int = 1_048_576

    large_logs: bool = True
    log_paths: list[Path] = Field(
        default_factory=lambda: [
            Path("/var/log/system.log"),
            Path("/var/log/install.log"),
            Path("/var/log/syslog"),
        ]
    )
    large_log_mb: int = 100

    command_timeout_secs: float = 10.0

    @field_validator("storage_path", "log_paths", mode="before")
    @classmethod
    def _expand_paths(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [_expand(v) for v in value]
        return _expand(value)


class ConsumerConfig(BaseModel):
    """Poller cadence and per-consumer delivery state."""

    poll_interval_secs: float = 60.0
    processed_path: Path = _DEFAULT_HOME / "processed_events.jsonl"
    notify_pause_secs: float = 1.0

    @field_validator("processed_path", mode="before")
    @classmethod
    def _expand_processed_path(cls, value: Any) -> Any:
        return _expand(value)


class NotifyConfig(BaseModel):
    """Desktop notification channels."""

    channels: list[str] = Field(default_factory=lambda: ["auto"])
    timeout_secs: float = 15.0
    dialog_timeout_secs: int = 10
    title_prefix: str = "Storage alert"
    speech_text: str = "Critical storage alert"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"
    file: Path | None = None
    max_bytes: int = 5 * 1024 * 1024
    backup_count: int = 1

    @field_validator("file", mode="before")
    @classmethod
    def _expand_file(cls, value: Any) -> Any:
        return _expand(value)


class Settings(BaseModel):
    """Root settings container."""

    store: StoreConfig = StoreConfig()
    producer: ProducerConfig = ProducerConfig()
    probes: ProbesConfig = ProbesConfig()
    consumer: ConsumerConfig = ConsumerConfig()
    notify: NotifyConfig = NotifyConfig()
    logging: LoggingConfig = LoggingConfig()


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file and cache globally.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    _settings = Settings(**data)
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
