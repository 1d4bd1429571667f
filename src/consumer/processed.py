"""Persisted set of delivery keys a consumer has already notified."""

from __future__ import annotations

import datetime
import json
from collections.abc import Iterator
from pathlib import Path

import structlog

from src.core.fileio import atomic_write_text
from src.core.types import TIMESTAMP_FORMAT, DeliveryKey

logger = structlog.get_logger(__name__)


class ProcessedSet:
    """Delivery keys mapped to the local time each was first observed.

    Stored as JSON lines, one ``{"event_id", "timestamp", "first_seen"}``
    object per key. The file is private to one consumer identity. ``mark``
    only changes memory; nothing reaches disk until ``save``.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._seen: dict[DeliveryKey, str] = {}
        self._dirty = False

    @classmethod
    def load(cls, path: str | Path) -> ProcessedSet:
        """Read the set from *path*; a missing or empty file gives an empty set.

        Lines that are not valid entries are skipped.
        """
        processed = cls(path)
        try:
            text = processed._path.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            logger.info("processed_set_missing", path=str(processed._path))
            return processed

        skipped = 0
        for line in text.splitlines():
            if not line.strip():
                continue
            try:
                entry = json.loads(line)
                key = DeliveryKey(str(entry["event_id"]), str(entry["timestamp"]))
            except (json.JSONDecodeError, KeyError, TypeError):
                skipped += 1
                continue
            processed._seen.setdefault(key, str(entry.get("first_seen", "")))

        if skipped:
            logger.warning("processed_entries_skipped", path=str(processed._path), skipped=skipped)
        logger.info("processed_set_loaded", path=str(processed._path), keys=len(processed._seen))
        return processed

    @property
    def path(self) -> Path:
        return self._path

    @property
    def dirty(self) -> bool:
        """True when marks exist that have not been saved yet."""
        return self._dirty

    def __len__(self) -> int:
        return len(self._seen)

    def __iter__(self) -> Iterator[DeliveryKey]:
        return iter(self._seen)

    def __contains__(self, key: object) -> bool:
        return key in self._seen

    def contains(self, key: DeliveryKey) -> bool:
        return key in self._seen

    def first_seen(self, key: DeliveryKey) -> str | None:
        return self._seen.get(key)

    def mark(self, key: DeliveryKey, seen_at: datetime.datetime | None = None) -> None:
        """Record *key* in memory; the first observation time is kept."""
        if key in self._seen:
            return
        when = seen_at or datetime.datetime.now()
        self._seen[key] = when.strftime(TIMESTAMP_FORMAT)
        self._dirty = True

    def save(self, path: str | Path | None = None) -> None:
        """Atomically replace the file with the full current set."""
        target = Path(path) if path else self._path
        target.parent.mkdir(parents=True, exist_ok=True)
        lines = [
            json.dumps(
                {"event_id": key.event_id, "timestamp": key.timestamp, "first_seen": seen},
                ensure_ascii=False,
            )
            for key, seen in self._seen.items()
        ]
        atomic_write_text(target, "".join(f"{line}\n" for line in lines), mode=0o600)
        self._dirty = False
        logger.info("processed_set_saved", path=str(target), keys=len(self._seen))
