"""Day-partitioned, append-only event store on a shared filesystem."""

from __future__ import annotations

import datetime
import os
import re
from pathlib import Path

import structlog

from src.core.config import StoreConfig
from src.core.fileio import atomic_write_text
from src.core.types import EventRecord
from src.events.codec import EMPTY_PARTITION, Partition, decode_object, parse_partition, render_partition
from src.events.exceptions import EventParseError, StoreUnavailableError

logger = structlog.get_logger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def _id_text(value: object) -> str | None:
    # Same coercion EventRecord applies on read; anything else cannot match.
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return None


class EventStore:
    """One JSON partition file per calendar day under a shared root.

    A store bound to a *source* writes ``<basename>_<source>_<YYYYMMDD>.json``
    so every producer owns its partitions outright; without a source the
    legacy ``<basename>_<YYYYMMDD>.json`` name is used. Reads always cover
    every partition of the requested day regardless of which producer
    wrote it.

    Appends rewrite the whole partition through a temp file and an atomic
    rename, so readers never see a half-written file. Two writers targeting
    the *same* partition at the same instant can still lose one append
    (last rename wins); source-scoped names avoid that by construction.
    """

    def __init__(
        self,
        root: str | Path,
        basename: str = "events",
        source: str | None = None,
    ) -> None:
        self._root = Path(root)
        self._basename = basename
        self._source = _UNSAFE_NAME_CHARS.sub("-", source) if source else None

    @classmethod
    def from_config(cls, config: StoreConfig, source: str | None = None) -> EventStore:
        return cls(
            root=config.root,
            basename=config.basename,
            source=source if config.partition_by_source else None,
        )

    @property
    def root(self) -> Path:
        return self._root

    # ── Paths ───────────────────────────────────────────────────

    def partition_path(self, day: datetime.date) -> Path:
        """Path of the partition this store writes for *day*."""
        stamp = day.strftime("%Y%m%d")
        if self._source:
            return self._root / f"{self._basename}_{self._source}_{stamp}.json"
        return self._root / f"{self._basename}_{stamp}.json"

    def partitions_for(self, day: datetime.date) -> list[Path]:
        """Every existing partition for *day*, sorted by file name."""
        stamp = day.strftime("%Y%m%d")
        prefix = f"{self._basename}_"
        suffix = f"_{stamp}.json"
        exact = f"{self._basename}_{stamp}.json"
        try:
            names = os.listdir(self._root)
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise StoreUnavailableError(f"cannot list {self._root}: {exc}") from exc
        return [
            self._root / name
            for name in sorted(names)
            if name == exact or (name.startswith(prefix) and name.endswith(suffix))
        ]

    # ── Write side ──────────────────────────────────────────────

    def open_or_create_partition(self, day: datetime.date) -> Path:
        """Ensure this store's partition for *day* exists; idempotent."""
        path = self.partition_path(day)
        if path.exists():
            return path
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            atomic_write_text(path, EMPTY_PARTITION)
        except OSError as exc:
            raise StoreUnavailableError(f"cannot create {path}: {exc}") from exc
        logger.info("partition_created", partition=str(path))
        return path

    def append(self, day: datetime.date, record: EventRecord) -> bool:
        """Append *record* to the partition for *day*.

        Returns:
            True if the record was written, False if a record with the same
            ``event_id`` was already present (a no-op, not an error).

        Raises:
            StoreUnavailableError: the partition could not be read or replaced.
        """
        path = self.open_or_create_partition(day)
        partition = self._load(path)

        existing_ids = {_id_text(obj.get("event_id")) for obj in partition.objects}
        if record.event_id in existing_ids:
            logger.info(
                "duplicate_event_ignored",
                event_id=record.event_id,
                partition=str(path),
            )
            return False

        # Keep every object already on disk, including ones this version
        # cannot decode, so other producers' records survive the rewrite.
        objects = [*partition.objects, record.model_dump(mode="json")]
        try:
            atomic_write_text(path, render_partition(objects))
        except OSError as exc:
            raise StoreUnavailableError(f"cannot write {path}: {exc}") from exc

        logger.info(
            "event_appended",
            event_id=record.event_id,
            severity=record.severity.value,
            event_type=record.type,
            partition=str(path),
        )
        return True

    # ── Read side ───────────────────────────────────────────────

    def read_all(self, day: datetime.date) -> list[EventRecord]:
        """All decodable records for *day*, in append order per partition.

        A day with no partition yields an empty list.
        """
        records: list[EventRecord] = []
        for path in self.partitions_for(day):
            records.extend(self.read_partition(path))
        return records

    def read_partition(self, path: Path) -> list[EventRecord]:
        records: list[EventRecord] = []
        for obj in self._load(path).objects:
            try:
                records.append(decode_object(obj))
            except EventParseError as exc:
                logger.warning(
                    "event_parse_failed",
                    partition=str(path),
                    event_id=obj.get("event_id"),
                    error=str(exc),
                )
        return records

    def _load(self, path: Path) -> Partition:
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return Partition([], 0)
        except OSError as exc:
            raise StoreUnavailableError(f"cannot read {path}: {exc}") from exc

        partition = parse_partition(text)
        if partition.malformed:
            logger.warning(
                "partition_fragments_skipped",
                partition=str(path),
                malformed=partition.malformed,
            )
        return partition
