"""Convenience factory for wiring a producer from settings."""

from __future__ import annotations

from src.core.config import Settings
from src.events.store import EventStore
from src.producer.probes import build_probes
from src.producer.producer import Producer


def create_producer(settings: Settings) -> Producer:
    """Build a source-scoped store, the enabled probes and the producer."""
    source = settings.producer.source
    store = EventStore.from_config(settings.store, source=source)
    probes = build_probes(
        settings.probes,
        state_dir=settings.producer.state_dir,
        storage_root=settings.store.root,
        own_log=settings.logging.file,
    )
    return Producer(
        store=store,
        probes=probes,
        source=source,
        hostname=settings.producer.hostname,
    )
