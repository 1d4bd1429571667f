"""Tests for the built-in resource probes."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from src.core.config import ProbesConfig
from src.core.types import Severity
from src.producer.probes import (
    DiskGrowthProbe,
    DiskUsageProbe,
    IoActivityProbe,
    LargeLogProbe,
    MemoryUsageProbe,
    ProbeError,
    ProbeUnavailableError,
    StorageExistsProbe,
    SystemLoadProbe,
    _run_command,
    build_probes,
)


def _usage(used: int, total: int = 100) -> SimpleNamespace:
    return SimpleNamespace(total=total, used=used, free=total - used)


def _diskstats(reads: int, writes: int) -> str:
    return "\n".join([
        f"   8       0 sda {reads} 0 0 0 {writes} 0 0 0 0 0 0",
        "   8       1 sda1 999 0 0 0 999 0 0 0 0 0 0",
        "   7       0 loop0 999 0 0 0 999 0 0 0 0 0 0",
    ]) + "\n"


# ── Storage ────────────────────────────────────────────────────


class TestStorageExists:
    def test_present(self, tmp_path: Path) -> None:
        assert StorageExistsProbe(tmp_path).check() == []

    def test_missing(self, tmp_path: Path) -> None:
        [result] = StorageExistsProbe(tmp_path / "gone").check()
        assert result.triggered
        assert result.severity == Severity.WARNING
        assert result.type == "STORAGE_MISSING"
        assert str(tmp_path / "gone") in result.message


class TestDiskUsage:
    def _check(self, used: int) -> list:
        probe = DiskUsageProbe(["/data"], warning_pct=80, critical_pct=90)
        with patch("src.producer.probes.shutil.disk_usage", return_value=_usage(used)):
            return probe.check()

    def test_below_warning(self) -> None:
        assert self._check(50) == []

    def test_warning(self) -> None:
        [result] = self._check(85)
        assert result.severity == Severity.WARNING
        assert result.value == "85"

    def test_critical(self) -> None:
        [result] = self._check(97)
        assert result.severity == Severity.CRITICAL
        assert result.type == "DISK_USAGE"
        assert "/data" in result.message
        assert result.value == "97"

    def test_unreadable_mount_skipped(self) -> None:
        probe = DiskUsageProbe(["/a", "/b"], warning_pct=80, critical_pct=90)
        side_effect = [OSError("gone"), _usage(95)]
        with patch("src.producer.probes.shutil.disk_usage", side_effect=side_effect):
            results = probe.check()
        assert len(results) == 1
        assert "/b" in results[0].message


class TestDiskGrowth:
    def test_first_run_records_baseline(self, tmp_path: Path) -> None:
        state = tmp_path / "state" / "growth"
        probe = DiskGrowthProbe("/", state, threshold_kb=1024)
        with patch("src.producer.probes.shutil.disk_usage", return_value=_usage(10 * 1024, 10**9)):
            assert probe.check() == []
        assert state.read_text().strip() == "10"

    def test_growth_over_threshold(self, tmp_path: Path) -> None:
        state = tmp_path / "growth"
        state.write_text("100\n")
        probe = DiskGrowthProbe("/", state, threshold_kb=1024)
        used = (100 + 4096) * 1024
        with patch("src.producer.probes.shutil.disk_usage", return_value=_usage(used, 10**9)):
            [result] = probe.check()
        assert result.type == "DISK_GROWTH"
        assert result.severity == Severity.WARNING
        assert result.value == "4096"
        assert "4MB" in result.message
        assert state.read_text().strip() == "4196"

    def test_small_growth_ignored(self, tmp_path: Path) -> None:
        state = tmp_path / "growth"
        state.write_text("100\n")
        probe = DiskGrowthProbe("/", state, threshold_kb=1024)
        with patch("src.producer.probes.shutil.disk_usage", return_value=_usage(200 * 1024, 10**9)):
            assert probe.check() == []

    def test_corrupt_state_treated_as_first_run(self, tmp_path: Path) -> None:
        state = tmp_path / "growth"
        state.write_text("garbage")
        probe = DiskGrowthProbe("/", state, threshold_kb=1)
        with patch("src.producer.probes.shutil.disk_usage", return_value=_usage(10**8, 10**9)):
            assert probe.check() == []

    def test_stat_failure(self, tmp_path: Path) -> None:
        probe = DiskGrowthProbe("/missing", tmp_path / "growth", threshold_kb=1)
        with patch("src.producer.probes.shutil.disk_usage", side_effect=OSError("gone")):
            with pytest.raises(ProbeError):
                probe.check()


class TestLargeLog:
    def test_large_file(self, tmp_path: Path) -> None:
        log = tmp_path / "big.log"
        with open(log, "wb") as f:
            f.truncate(3 * 1024 * 1024)
        [result] = LargeLogProbe([log], threshold_mb=2).check()
        assert result.type == "LARGE_LOG"
        assert result.value == "3"

    def test_small_and_missing_files(self, tmp_path: Path) -> None:
        small = tmp_path / "small.log"
        small.write_text("x")
        assert LargeLogProbe([small, tmp_path / "missing.log"], threshold_mb=1).check() == []


# ── System ─────────────────────────────────────────────────────


class TestMemoryUsage:
    def test_meminfo_critical(self, tmp_path: Path) -> None:
        meminfo = tmp_path / "meminfo"
        meminfo.write_text("MemTotal:  1000 kB\nMemFree:  10 kB\nMemAvailable:  50 kB\n")
        [result] = MemoryUsageProbe(90, meminfo=meminfo).check()
        assert result.severity == Severity.CRITICAL
        assert result.type == "MEMORY_USAGE"
        assert result.value == "95"

    def test_meminfo_healthy(self, tmp_path: Path) -> None:
        meminfo = tmp_path / "meminfo"
        meminfo.write_text("MemTotal:  1000 kB\nMemAvailable:  600 kB\n")
        assert MemoryUsageProbe(90, meminfo=meminfo).check() == []

    def test_meminfo_without_total(self, tmp_path: Path) -> None:
        meminfo = tmp_path / "meminfo"
        meminfo.write_text("MemFree:  10 kB\n")
        with pytest.raises(ProbeError):
            MemoryUsageProbe(90, meminfo=meminfo).check()

    def test_vm_stat_fallback(self, tmp_path: Path) -> None:
        vm_stat = (
            "Mach Virtual Memory Statistics: (page size of 4096 bytes)\n"
            "Pages free:                               10.\n"
            "Pages active:                            800.\n"
            "Pages inactive:                           10.\n"
            "Pages speculative:                         5.\n"
        )

        def fake_run(args: list[str], timeout: float) -> str:
            if args[0] == "sysctl":
                return f"{1000 * 4096}\n"
            return vm_stat

        probe = MemoryUsageProbe(90, meminfo=tmp_path / "absent")
        with patch("src.producer.probes._run_command", side_effect=fake_run):
            assert probe.usage_percent() == 97


class TestSystemLoad:
    def test_high_load(self) -> None:
        with patch("src.producer.probes.os.getloadavg", return_value=(9.5, 4.0, 2.0)):
            [result] = SystemLoadProbe(8.0).check()
        assert result.type == "HIGH_LOAD"
        assert result.severity == Severity.CRITICAL
        assert result.value == "9.50"

    def test_normal_load(self) -> None:
        with patch("src.producer.probes.os.getloadavg", return_value=(0.5, 0.4, 0.2)):
            assert SystemLoadProbe(8.0).check() == []

    def test_unavailable(self) -> None:
        with patch("src.producer.probes.os.getloadavg", side_effect=OSError):
            with pytest.raises(ProbeUnavailableError):
                SystemLoadProbe(8.0).check()


class TestIoActivity:
    def test_diskstats_counts_whole_disks(self, tmp_path: Path) -> None:
        stats = tmp_path / "diskstats"
        stats.write_text(_diskstats(100, 200))

        def advance(_secs: float) -> None:
            stats.write_text(_diskstats(400, 300))

        probe = IoActivityProbe(100, sample_secs=2.0, diskstats=stats)
        with patch("src.producer.probes.time.sleep", side_effect=advance):
            [result] = probe.check()
        assert result.type == "HIGH_IO"
        assert result.severity == Severity.WARNING
        assert result.value == "200.0"

    def test_quiet_disks(self, tmp_path: Path) -> None:
        stats = tmp_path / "diskstats"
        stats.write_text(_diskstats(100, 200))
        probe = IoActivityProbe(100, sample_secs=1.0, diskstats=stats)
        with patch("src.producer.probes.time.sleep"):
            assert probe.check() == []

    def test_iostat_fallback(self, tmp_path: Path) -> None:
        output = (
            "              disk0 \n"
            "    KB/t  tps  MB/s \n"
            "   20.00   10  0.20 \n"
            "   16.00  150  2.34 \n"
        )
        probe = IoActivityProbe(100, diskstats=tmp_path / "absent")
        with patch("src.producer.probes._run_command", return_value=output):
            assert probe.transfers_per_sec() == 150.0

    def test_iostat_garbage(self, tmp_path: Path) -> None:
        probe = IoActivityProbe(100, diskstats=tmp_path / "absent")
        with patch("src.producer.probes._run_command", return_value="nothing useful\n"):
            with pytest.raises(ProbeError):
                probe.transfers_per_sec()


class TestRunCommand:
    def test_missing_binary(self) -> None:
        with patch("src.producer.probes.shutil.which", return_value=None):
            with pytest.raises(ProbeUnavailableError):
                _run_command(["iostat"], timeout=1)


class TestBuildProbes:
    def test_all_enabled_by_default(self, tmp_path: Path) -> None:
        probes = build_probes(ProbesConfig(), state_dir=tmp_path, storage_root=tmp_path)
        assert [p.name for p in probes] == [
            "storage_exists",
            "disk_usage",
            "io_activity",
            "memory_usage",
            "system_load",
            "disk_growth",
            "large_logs",
        ]

    def test_disabled_probes_left_out(self, tmp_path: Path) -> None:
        config = ProbesConfig(io_activity=False, memory_usage=False, large_logs=False)
        probes = build_probes(config, state_dir=tmp_path, storage_root=tmp_path)
        assert "io_activity" not in [p.name for p in probes]
        assert len(probes) == 4

    def test_operational_log_watched(self, tmp_path: Path) -> None:
        own_log = tmp_path / "storage_monitor.log"
        with open(own_log, "wb") as f:
            f.truncate(2 * 1024 * 1024)
        config = ProbesConfig(log_paths=[], large_log_mb=1)
        probes = build_probes(config, state_dir=tmp_path, storage_root=tmp_path, own_log=own_log)
        [result] = probes[-1].check()
        assert result.type == "LARGE_LOG"
        assert str(own_log) in result.message
