"""Pure functions that convert store records into AlertMessage objects."""

from __future__ import annotations

from src.core.types import EventRecord
from src.notify.types import AlertMessage

DEFAULT_TITLE_PREFIX = "Storage alert"


def format_record(record: EventRecord, title_prefix: str = DEFAULT_TITLE_PREFIX) -> AlertMessage:
    """Convert an EventRecord to an AlertMessage.

    The title names the emitting storage unit; the body carries the
    message followed by ``Type:`` and ``Value:`` lines when present.
    """
    title = f"{title_prefix} - {record.source}" if record.source else title_prefix

    lines = [record.message] if record.message else []
    if record.type:
        lines.append(f"Type: {record.type}")
    if record.value:
        lines.append(f"Value: {record.value}")

    fields: dict[str, str] = {"timestamp": record.timestamp}
    if record.hostname:
        fields["hostname"] = record.hostname
    if record.source:
        fields["source"] = record.source

    return AlertMessage(
        severity=record.severity,
        title=title,
        body="\n".join(lines),
        fields=fields,
        event_type=record.type,
        event_id=record.event_id,
    )
