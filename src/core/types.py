"""Domain types shared by producers and consumers of the event store."""

from __future__ import annotations

import datetime
import hashlib
from enum import StrEnum
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, field_validator

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# The eight keys every record carries on the wire.
RECORD_FIELDS: tuple[str, ...] = (
    "event_id",
    "timestamp",
    "severity",
    "type",
    "message",
    "value",
    "source",
    "hostname",
)


class Severity(StrEnum):
    """Alert severity as written to the store."""

    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class DeliveryKey(NamedTuple):
    """Identity used by consumers to test prior delivery."""

    event_id: str
    timestamp: str


def make_event_id(event_type: str, message: str, when: datetime.datetime) -> str:
    """``<unix seconds>_<first 8 hex digits of md5(type + message)>``."""
    digest = hashlib.md5(f"{event_type}{message}".encode()).hexdigest()[:8]
    return f"{int(when.timestamp())}_{digest}"


class EventRecord(BaseModel):
    """One alert record, all fields string-typed.

    Unknown keys are ignored so that readers keep working when a newer
    producer adds fields.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    event_id: str
    timestamp: str
    severity: Severity = Severity.INFO
    type: str = ""
    message: str = ""
    value: str = ""
    source: str = ""
    hostname: str = ""

    @field_validator("event_id", "timestamp")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @field_validator("severity", mode="before")
    @classmethod
    def _normalise_severity(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator(
        "event_id", "timestamp", "type", "message", "value", "source", "hostname",
        mode="before",
    )
    @classmethod
    def _scalar_to_str(cls, v: Any) -> Any:
        # Other producers write numbers unquoted.
        if isinstance(v, (int, float)):
            return str(v)
        return v

    @property
    def key(self) -> DeliveryKey:
        return DeliveryKey(self.event_id, self.timestamp)

    @classmethod
    def create(
        cls,
        severity: Severity | str,
        event_type: str,
        message: str,
        value: str | float,
        source: str,
        hostname: str,
        now: datetime.datetime | None = None,
    ) -> EventRecord:
        """Build a new record stamped with the producer's local wall-clock time."""
        when = now or datetime.datetime.now()
        return cls(
            event_id=make_event_id(event_type, message, when),
            timestamp=when.strftime(TIMESTAMP_FORMAT),
            severity=severity,
            type=event_type,
            message=message,
            value=value,
            source=source,
            hostname=hostname,
        )
