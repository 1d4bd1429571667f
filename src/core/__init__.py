"""Core module — config, types, logging."""

from src.core.config import Settings, get_settings, load_settings, reset_settings
from src.core.fileio import atomic_write_text
from src.core.logging import setup_logging
from src.core.types import (
    RECORD_FIELDS,
    TIMESTAMP_FORMAT,
    DeliveryKey,
    EventRecord,
    Severity,
    make_event_id,
)

__all__ = [
    "RECORD_FIELDS",
    "TIMESTAMP_FORMAT",
    "DeliveryKey",
    "EventRecord",
    "Settings",
    "Severity",
    "atomic_write_text",
    "get_settings",
    "load_settings",
    "make_event_id",
    "reset_settings",
    "setup_logging",
]
