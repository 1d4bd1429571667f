"""Convenience factory for wiring a consumer from settings."""

from __future__ import annotations

from src.consumer.poller import EventPoller
from src.consumer.processed import ProcessedSet
from src.core.config import Settings
from src.events.store import EventStore
from src.notify.factory import create_notifier


def create_poller(settings: Settings) -> EventPoller:
    """Build a read-side store, load the ProcessedSet and wire the notifier."""
    consumer = settings.consumer
    return EventPoller(
        store=EventStore.from_config(settings.store),
        processed=ProcessedSet.load(consumer.processed_path),
        notifier=create_notifier(settings.notify),
        poll_interval_secs=consumer.poll_interval_secs,
        notify_pause_secs=consumer.notify_pause_secs,
    )
