"""Resource probes — each check decides whether to raise an alert.

A probe returns zero or more :class:`ProbeResult` objects per run; only
results with ``triggered=True`` become store records. A probe that cannot
run on this host raises :class:`ProbeUnavailableError` and is skipped by
the producer for that invocation.
"""

from __future__ import annotations

import abc
import os
import re
import shutil
import subprocess
import time
from pathlib import Path

import structlog
from pydantic import BaseModel

from src.core.config import ProbesConfig
from src.core.types import Severity

logger = structlog.get_logger(__name__)

# Whole block devices only; partitions would double-count.
_WHOLE_DISK = re.compile(r"sd[a-z]+|vd[a-z]+|xvd[a-z]+|nvme\d+n\d+|mmcblk\d+")


class ProbeError(Exception):
    """A probe failed while collecting its sample."""


class ProbeUnavailableError(ProbeError):
    """The data source a probe relies on does not exist on this host."""


class ProbeResult(BaseModel):
    """Outcome of one check."""

    triggered: bool
    severity: Severity = Severity.INFO
    type: str = ""
    message: str = ""
    value: str = ""


class Probe(abc.ABC):
    """Base class for resource checks."""

    name: str = "probe"

    @abc.abstractmethod
    def check(self) -> list[ProbeResult]:
        """Run the check once."""


def _alert(severity: Severity, event_type: str, message: str, value: object) -> ProbeResult:
    return ProbeResult(
        triggered=True,
        severity=severity,
        type=event_type,
        message=message,
        value=str(value),
    )


def _run_command(args: list[str], timeout: float) -> str:
    if shutil.which(args[0]) is None:
        raise ProbeUnavailableError(f"{args[0]} not found")
    try:
        proc = subprocess.run(
            args,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=True,
        )
    except (subprocess.SubprocessError, OSError) as exc:
        raise ProbeError(f"{args[0]} failed: {exc}") from exc
    return proc.stdout


# ── Storage ─────────────────────────────────────────────────────


class StorageExistsProbe(Probe):
    """Warns when the monitored storage directory is gone."""

    name = "storage_exists"

    def __init__(self, path: Path) -> None:
        self._path = path

    def check(self) -> list[ProbeResult]:
        if self._path.is_dir():
            logger.debug("storage_present", path=str(self._path))
            return []
        return [
            _alert(
                Severity.WARNING,
                "STORAGE_MISSING",
                f"Storage directory does not exist: {self._path}",
                0,
            )
        ]


class DiskUsageProbe(Probe):
    """Per-mount usage against warning/critical percentages."""

    name = "disk_usage"

    def __init__(self, mounts: list[str], warning_pct: float, critical_pct: float) -> None:
        self._mounts = mounts
        self._warning_pct = warning_pct
        self._critical_pct = critical_pct

    def check(self) -> list[ProbeResult]:
        results: list[ProbeResult] = []
        for mount in self._mounts:
            try:
                usage = shutil.disk_usage(mount)
            except OSError as exc:
                logger.warning("disk_usage_unreadable", mount=mount, error=str(exc))
                continue
            if usage.total == 0:
                continue
            percent = round(usage.used * 100 / usage.total)
            logger.debug("disk_usage_sampled", mount=mount, percent=percent)
            if percent >= self._critical_pct:
                results.append(_alert(
                    Severity.CRITICAL,
                    "DISK_USAGE",
                    f"Disk usage critical: {mount} ({percent}%)",
                    percent,
                ))
            elif percent >= self._warning_pct:
                results.append(_alert(
                    Severity.WARNING,
                    "DISK_USAGE",
                    f"Disk usage high: {mount} ({percent}%)",
                    percent,
                ))
        return results


class DiskGrowthProbe(Probe):
    """Warns when used space grew by more than a threshold since the last run.

    The previous sample lives in a small state file owned by this probe.
    The first run only records a baseline.
    """

    name = "disk_growth"

    def __init__(self, mount: str, state_file: Path, threshold_kb: int) -> None:
        self._mount = mount
        self._state_file = state_file
        self._threshold_kb = threshold_kb

    def check(self) -> list[ProbeResult]:
        try:
            current_kb = shutil.disk_usage(self._mount).used // 1024
        except OSError as exc:
            raise ProbeError(f"cannot stat {self._mount}: {exc}") from exc

        previous_kb = self._read_previous()
        self._state_file.parent.mkdir(parents=True, exist_ok=True)
        self._state_file.write_text(f"{current_kb}\n")

        if previous_kb is None:
            return []
        growth_kb = current_kb - previous_kb
        logger.debug("disk_growth_sampled", mount=self._mount, growth_kb=growth_kb)
        if growth_kb > self._threshold_kb:
            return [_alert(
                Severity.WARNING,
                "DISK_GROWTH",
                f"Disk usage grew sharply: {growth_kb // 1024}MB/interval",
                growth_kb,
            )]
        return []

    def _read_previous(self) -> int | None:
        try:
            return int(self._state_file.read_text().strip())
        except (FileNotFoundError, ValueError):
            return None


class LargeLogProbe(Probe):
    """Warns about log files over a size limit."""

    name = "large_logs"

    def __init__(self, paths: list[Path], threshold_mb: int) -> None:
        self._paths = paths
        self._threshold_mb = threshold_mb

    def check(self) -> list[ProbeResult]:
        results: list[ProbeResult] = []
        for path in self._paths:
            try:
                size_mb = path.stat().st_size // (1024 * 1024)
            except OSError:
                continue
            if size_mb > self._threshold_mb:
                results.append(_alert(
                    Severity.WARNING,
                    "LARGE_LOG",
                    f"Large log file: {path} ({size_mb}MB)",
                    size_mb,
                ))
        return results


# ── System ──────────────────────────────────────────────────────


class MemoryUsageProbe(Probe):
    """Used-memory percentage from /proc/meminfo, or vm_stat on macOS."""

    name = "memory_usage"

    def __init__(
        self,
        critical_pct: float,
        meminfo: Path = Path("/proc/meminfo"),
        timeout: float = 10.0,
    ) -> None:
        self._critical_pct = critical_pct
        self._meminfo = meminfo
        self._timeout = timeout

    def check(self) -> list[ProbeResult]:
        percent = self.usage_percent()
        logger.debug("memory_usage_sampled", percent=percent)
        if percent >= self._critical_pct:
            return [_alert(
                Severity.CRITICAL,
                "MEMORY_USAGE",
                f"Memory usage critical: {percent}%",
                percent,
            )]
        return []

    def usage_percent(self) -> int:
        if self._meminfo.exists():
            return self._from_meminfo()
        return self._from_vm_stat()

    def _from_meminfo(self) -> int:
        fields: dict[str, int] = {}
        for line in self._meminfo.read_text().splitlines():
            name, _, rest = line.partition(":")
            parts = rest.split()
            if parts and parts[0].isdigit():
                fields[name.strip()] = int(parts[0])
        total = fields.get("MemTotal", 0)
        if total == 0:
            raise ProbeError("MemTotal missing from meminfo")
        available = fields.get("MemAvailable", fields.get("MemFree", 0))
        return (total - available) * 100 // total

    def _from_vm_stat(self) -> int:
        total = int(_run_command(["sysctl", "-n", "hw.memsize"], self._timeout).strip() or 0)
        if total == 0:
            raise ProbeError("hw.memsize unavailable")
        output = _run_command(["vm_stat"], self._timeout)

        page_size = 4096
        size_match = re.search(r"page size of (\d+) bytes", output)
        if size_match:
            page_size = int(size_match.group(1))

        pages: dict[str, int] = {}
        for line in output.splitlines():
            name, _, rest = line.partition(":")
            rest = rest.strip().rstrip(".")
            if rest.isdigit():
                pages[name.strip()] = int(rest)
        available_pages = sum(
            pages.get(k, 0) for k in ("Pages free", "Pages inactive", "Pages speculative")
        )
        used = total - available_pages * page_size
        return used * 100 // total


class SystemLoadProbe(Probe):
    """1-minute load average against a critical ceiling."""

    name = "system_load"

    def __init__(self, critical: float) -> None:
        self._critical = critical

    def check(self) -> list[ProbeResult]:
        try:
            load_1m = os.getloadavg()[0]
        except (AttributeError, OSError) as exc:
            raise ProbeUnavailableError("load average unavailable") from exc
        logger.debug("system_load_sampled", load=load_1m)
        if load_1m > self._critical:
            return [_alert(
                Severity.CRITICAL,
                "HIGH_LOAD",
                f"System load too high: {load_1m:.2f}",
                f"{load_1m:.2f}",
            )]
        return []


class IoActivityProbe(Probe):
    """Transfers per second across block devices.

    Linux hosts sample /proc/diskstats twice; elsewhere ``iostat -d`` is
    used, reading the tps column of its second report.
    """

    name = "io_activity"

    def __init__(
        self,
        tps_warning: float,
        sample_secs: float = 1.0,
        diskstats: Path = Path("/proc/diskstats"),
        timeout: float = 10.0,
    ) -> None:
        self._tps_warning = tps_warning
        self._sample_secs = sample_secs
        self._diskstats = diskstats
        self._timeout = timeout

    def check(self) -> list[ProbeResult]:
        tps = self.transfers_per_sec()
        logger.debug("io_activity_sampled", tps=tps)
        if tps > self._tps_warning:
            return [_alert(
                Severity.WARNING,
                "HIGH_IO",
                f"High I/O activity: {tps:.1f} TPS",
                f"{tps:.1f}",
            )]
        return []

    def transfers_per_sec(self) -> float:
        if self._diskstats.exists():
            first = self._completed_ios()
            time.sleep(self._sample_secs)
            second = self._completed_ios()
            return max(second - first, 0) / self._sample_secs
        return self._from_iostat()

    def _completed_ios(self) -> int:
        total = 0
        for line in self._diskstats.read_text().splitlines():
            parts = line.split()
            # major minor name reads_completed ... writes_completed(7) ...
            if len(parts) < 8 or not _WHOLE_DISK.fullmatch(parts[2]):
                continue
            total += int(parts[3]) + int(parts[7])
        return total

    def _from_iostat(self) -> float:
        output = _run_command(
            ["iostat", "-d", "-c", "2", "-w", str(max(int(self._sample_secs), 1))],
            self._timeout,
        )
        lines = [line for line in output.splitlines() if line.strip()]
        if not lines:
            raise ProbeError("iostat produced no output")
        columns = lines[-1].split()
        try:
            return float(columns[1])
        except (IndexError, ValueError) as exc:
            raise ProbeError(f"unexpected iostat line: {lines[-1]!r}") from exc


def build_probes(
    config: ProbesConfig,
    state_dir: Path,
    storage_root: Path,
    own_log: Path | None = None,
) -> list[Probe]:
    """Instantiate the enabled built-in probes.

    *own_log* is the operational log file; when set it is size-checked
    along with the configured log paths.
    """
    probes: list[Probe] = []
    if config.storage_exists:
        probes.append(StorageExistsProbe(config.storage_path or storage_root))
    if config.disk_usage:
        probes.append(DiskUsageProbe(
            config.mounts, config.disk_warning_pct, config.disk_critical_pct,
        ))
    if config.io_activity:
        probes.append(IoActivityProbe(
            config.io_tps_warning,
            sample_secs=config.io_sample_secs,
            timeout=config.command_timeout_secs,
        ))
    if config.memory_usage:
        probes.append(MemoryUsageProbe(
            config.memory_critical_pct, timeout=config.command_timeout_secs,
        ))
    if config.system_load:
        probes.append(SystemLoadProbe(config.load_critical))
    if config.disk_growth:
        probes.append(DiskGrowthProbe(
            config.growth_mount, state_dir / "disk_growth.state", config.disk_growth_kb,
        ))
    if config.large_logs:
        log_paths = list(config.log_paths)
        if own_log is not None and own_log not in log_paths:
            log_paths.append(own_log)
        probes.append(LargeLogProbe(log_paths, config.large_log_mb))
    return probes
