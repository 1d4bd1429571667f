"""Tests for the produce/consume entrypoints."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
import structlog
import yaml

from scripts import consume, produce
from src.core.config import reset_settings


@pytest.fixture(autouse=True)
def _restore_logging():
    reset_settings()
    root = logging.getLogger()
    saved = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in saved[0]:
            handler.close()
    root.handlers[:] = saved[0]
    root.setLevel(saved[1])
    structlog.reset_defaults()
    reset_settings()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.safe_dump({
        "store": {"root": str(tmp_path / "store")},
        "producer": {"source": "unit-7", "hostname": "h7", "state_dir": str(tmp_path / "state")},
        "consumer": {
            "processed_path": str(tmp_path / "processed.jsonl"),
            "notify_pause_secs": 0,
        },
        "notify": {"channels": ["log"]},
        "logging": {"level": "WARNING"},
    }))
    return path


class TestParsers:
    def test_produce_defaults(self) -> None:
        args = produce.build_parser().parse_args([])
        assert args.config is None
        assert args.test is False

    def test_produce_test_flag(self) -> None:
        args = produce.build_parser().parse_args(["--test", "--config", "x.yaml"])
        assert args.test is True
        assert args.config == "x.yaml"

    def test_consume_flags(self) -> None:
        args = consume.build_parser().parse_args(["--once", "--interval", "5", "--log-level", "DEBUG"])
        assert args.once is True
        assert args.interval == 5.0
        assert args.log_level == "DEBUG"


class TestProduce:
    def test_test_mode_writes_three_records(self, config_file: Path, tmp_path: Path) -> None:
        args = produce.build_parser().parse_args(["--test", "--config", str(config_file)])
        assert produce.run(args) == 0
        [partition] = list((tmp_path / "store").glob("events_unit-7_*.json"))
        doc = json.loads(partition.read_text())
        assert [o["type"] for o in doc] == ["TEST_WARNING", "TEST_CRITICAL", "TEST_INFO"]
        assert {o["source"] for o in doc} == {"unit-7"}

    def test_unusable_store_exits_non_zero(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.safe_dump({"store": {"root": str(blocker / "store")}}))
        args = produce.build_parser().parse_args(["--test", "--config", str(path)])
        assert produce.run(args) == 1


class TestConsume:
    async def test_once_delivers_and_records(self, config_file: Path, tmp_path: Path) -> None:
        produce.run(produce.build_parser().parse_args(["--test", "--config", str(config_file)]))
        reset_settings()

        args = consume.build_parser().parse_args(["--once", "--config", str(config_file)])
        assert await consume.run(args) == 0
        lines = (tmp_path / "processed.jsonl").read_text().splitlines()
        assert len(lines) == 3

    async def test_once_with_empty_store(self, config_file: Path, tmp_path: Path) -> None:
        args = consume.build_parser().parse_args(["--once", "--config", str(config_file)])
        assert await consume.run(args) == 0
        assert (tmp_path / "processed.jsonl").read_text() == ""
