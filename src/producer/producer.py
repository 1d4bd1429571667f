"""Producer — runs probes once and appends triggered alerts to the store."""

from __future__ import annotations

import datetime
from collections.abc import Callable

import structlog
from pydantic import BaseModel

from src.core.types import EventRecord, Severity
from src.events.exceptions import StoreUnavailableError
from src.events.store import EventStore
from src.producer.probes import Probe, ProbeResult, ProbeUnavailableError

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime.datetime]

# Synthetic alerts for exercising the store and notification path.
TEST_RESULTS: tuple[ProbeResult, ...] = (
    ProbeResult(
        triggered=True,
        severity=Severity.WARNING,
        type="TEST_WARNING",
        message="Test warning message",
        value="50",
    ),
    ProbeResult(
        triggered=True,
        severity=Severity.CRITICAL,
        type="TEST_CRITICAL",
        message="Test critical message",
        value="95",
    ),
    ProbeResult(
        triggered=True,
        severity=Severity.INFO,
        type="TEST_INFO",
        message="Test info message",
        value="10",
    ),
)


class ProduceReport(BaseModel):
    """Counters for one producer invocation."""

    appended: int = 0
    duplicates: int = 0
    probe_errors: int = 0
    aborted: bool = False


class Producer:
    """Single-shot, externally scheduled alert producer.

    Holds no state between invocations; probes that need history (disk
    growth) keep their own.

    Usage::

        producer = Producer(store, probes, source="storage-01", hostname="nas1")
        report = producer.run_once()
    """

    def __init__(
        self,
        store: EventStore,
        probes: list[Probe],
        source: str,
        hostname: str,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._probes = probes
        self._source = source
        self._hostname = hostname
        self._clock = clock or datetime.datetime.now

    @property
    def probes(self) -> list[Probe]:
        return list(self._probes)

    def run_once(self) -> ProduceReport:
        """Run every probe and append a record for each triggered result."""
        report = ProduceReport()
        now = self._clock()
        logger.info("produce_started", source=self._source, probes=len(self._probes))

        try:
            self._store.open_or_create_partition(now.date())
            for probe in self._probes:
                try:
                    results = probe.check()
                except ProbeUnavailableError as exc:
                    logger.info("probe_unavailable", probe=probe.name, reason=str(exc))
                    continue
                except Exception:
                    report.probe_errors += 1
                    logger.exception("probe_failed", probe=probe.name)
                    continue
                for result in results:
                    if result.triggered:
                        self._emit(result, now, report)
        except StoreUnavailableError:
            report.aborted = True
            logger.exception("produce_cycle_failed", store=str(self._store.root))

        logger.info("produce_finished", **report.model_dump())
        return report

    def run_test(self) -> ProduceReport:
        """Append the synthetic WARNING/CRITICAL/INFO records."""
        report = ProduceReport()
        now = self._clock()
        logger.info("produce_test_mode", source=self._source)
        try:
            for result in TEST_RESULTS:
                self._emit(result, now, report)
        except StoreUnavailableError:
            report.aborted = True
            logger.exception("produce_cycle_failed", store=str(self._store.root))
        logger.info(
            "produce_test_finished",
            partition=str(self._store.partition_path(now.date())),
            **report.model_dump(),
        )
        return report

    def _emit(self, result: ProbeResult, now: datetime.datetime, report: ProduceReport) -> None:
        record = EventRecord.create(
            severity=result.severity,
            event_type=result.type,
            message=result.message,
            value=result.value,
            source=self._source,
            hostname=self._hostname,
            now=now,
        )
        if self._store.append(now.date(), record):
            report.appended += 1
        else:
            report.duplicates += 1
