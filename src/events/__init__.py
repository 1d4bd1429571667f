"""Day-partitioned event store shared between producers and consumers."""

from src.events.codec import decode, decode_object, encode, parse_partition, render_partition
from src.events.exceptions import EventParseError, EventStoreError, StoreUnavailableError
from src.events.store import EventStore

__all__ = [
    "EventParseError",
    "EventStore",
    "EventStoreError",
    "StoreUnavailableError",
    "decode",
    "decode_object",
    "encode",
    "parse_partition",
    "render_partition",
]
