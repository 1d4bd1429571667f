"""Domain types for the notification subsystem."""

from __future__ import annotations

import abc

from pydantic import BaseModel, Field

from src.core.types import EventRecord, Severity


class AlertMessage(BaseModel):
    """Normalised alert ready for presentation by channels."""

    severity: Severity
    title: str
    body: str = ""
    fields: dict[str, str] = Field(default_factory=dict)
    event_type: str = ""
    event_id: str = ""


class Notifier(abc.ABC):
    """What the consumer needs from a notification adapter.

    ``notify`` is called once per newly observed record and must return
    within a bounded time; it reports success as a bool.
    """

    @abc.abstractmethod
    async def notify(self, record: EventRecord) -> bool:
        """Present *record* to the user. Returns True on success."""

    async def close(self) -> None:
        """Release resources."""
