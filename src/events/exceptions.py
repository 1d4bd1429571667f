"""Exception hierarchy for the shared event store."""

from __future__ import annotations


class EventStoreError(Exception):
    """Base exception for all event store errors."""


class EventParseError(EventStoreError):
    """One record fragment could not be decoded."""


class StoreUnavailableError(EventStoreError):
    """The store root or a partition could not be read or written."""
