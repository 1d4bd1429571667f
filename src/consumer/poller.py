"""Event poller — reads recent partitions and notifies on unseen records."""

from __future__ import annotations

import asyncio
import datetime
from collections.abc import Callable
from enum import StrEnum

import structlog
from pydantic import BaseModel

from src.consumer.processed import ProcessedSet
from src.core.types import EventRecord
from src.events.store import EventStore
from src.notify.types import Notifier

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime.datetime]


class PollerState(StrEnum):
    IDLE = "IDLE"
    POLLING = "POLLING"
    STOPPED = "STOPPED"


class PollReport(BaseModel):
    """Counters for one poll cycle."""

    records: int = 0
    dispatched: int = 0
    failed: int = 0
    skipped: int = 0
    interrupted: bool = False


class EventPoller:
    """Sequential poll loop over yesterday's and today's partitions.

    Each cycle dispatches every record whose delivery key is not yet in the
    ProcessedSet, marks it (whether or not the notifier succeeded) and
    saves the set if anything was marked. A stop request is honoured
    between records and during every wait; the set is always flushed on
    the way out.

    Usage::

        poller = EventPoller(store, processed, notifier, poll_interval_secs=60)
        await poller.start()
        # ...
        await poller.stop()
    """

    def __init__(
        self,
        store: EventStore,
        processed: ProcessedSet,
        notifier: Notifier,
        poll_interval_secs: float = 60.0,
        notify_pause_secs: float = 1.0,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._processed = processed
        self._notifier = notifier
        self._poll_interval_secs = poll_interval_secs
        self._notify_pause_secs = notify_pause_secs
        self._clock = clock or datetime.datetime.now
        self._state = PollerState.IDLE
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._error_count = 0

    @property
    def state(self) -> PollerState:
        return self._state

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    # ── Lifecycle ───────────────────────────────────────────────

    async def start(self) -> None:
        """Start the background poll loop."""
        if self._task is not None:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self.run())

    def request_stop(self) -> None:
        """Ask the loop to finish the in-flight record, flush and exit."""
        if not self._stop_event.is_set():
            logger.info("poller_stop_requested")
        self._stop_event.set()

    async def stop(self) -> None:
        """Request a stop and wait for the loop to wind down."""
        self.request_stop()
        if self._task is not None:
            await self._task
            self._task = None

    async def run(self, once: bool = False) -> None:
        """Poll until stopped (or a single cycle when *once*), then flush."""
        logger.info(
            "poller_started",
            store=str(self._store.root),
            interval_secs=self._poll_interval_secs,
            processed_keys=len(self._processed),
        )
        try:
            while not self._stop_event.is_set():
                try:
                    await self.poll_once()
                except Exception:
                    self._error_count += 1
                    logger.exception(
                        "poll_cycle_failed",
                        store=str(self._store.root),
                        error_count=self._error_count,
                    )
                if once:
                    break
                await self._wait_for_stop(self._poll_interval_secs)
        finally:
            self._state = PollerState.STOPPED
            # Flushed on the way out even when nothing changed this cycle.
            self._save()
            logger.info("poller_stopped")

    # ── Poll cycle ──────────────────────────────────────────────

    async def poll_once(self) -> PollReport:
        """Run one Idle → Polling → Idle cycle."""
        self._state = PollerState.POLLING
        report = PollReport()
        try:
            today = self._clock().date()
            # Yesterday is read too so records written just before midnight
            # are not missed when a poll lands just after it.
            records: list[EventRecord] = []
            for day in (today - datetime.timedelta(days=1), today):
                records.extend(self._store.read_all(day))
            report.records = len(records)

            for record in records:
                if self._stop_event.is_set():
                    report.interrupted = True
                    break
                key = record.key
                if key in self._processed:
                    report.skipped += 1
                    continue
                if report.dispatched and self._notify_pause_secs > 0:
                    if await self._wait_for_stop(self._notify_pause_secs):
                        report.interrupted = True
                        break
                ok = await self._dispatch(record)
                report.dispatched += 1
                if not ok:
                    report.failed += 1
        finally:
            if self._processed.dirty:
                self._save()
            self._state = PollerState.IDLE

        logger.info("poll_finished", **report.model_dump())
        return report

    async def _dispatch(self, record: EventRecord) -> bool:
        ok = False
        try:
            ok = await self._notifier.notify(record)
        except Exception:
            logger.exception("notify_failed", event_id=record.event_id)
        finally:
            # Marked even on failure or cancellation: at-most-once delivery.
            self._processed.mark(record.key)
        if ok:
            logger.info(
                "notification_dispatched",
                event_id=record.event_id,
                severity=record.severity.value,
                source=record.source,
            )
        else:
            logger.warning("notification_failed", event_id=record.event_id)
        return ok

    async def _wait_for_stop(self, timeout: float) -> bool:
        """Sleep up to *timeout*; returns True if a stop was requested."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=timeout)
        except TimeoutError:
            return False
        return True

    def _save(self) -> None:
        try:
            self._processed.save()
        except OSError:
            logger.exception("processed_set_save_failed", path=str(self._processed.path))
