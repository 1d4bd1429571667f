"""Tests for format_record — EventRecord → AlertMessage conversion."""

from __future__ import annotations

from src.core.types import EventRecord, Severity
from src.notify.formatters import DEFAULT_TITLE_PREFIX, format_record


def _record(**kw: object) -> EventRecord:
    defaults: dict[str, object] = {
        "event_id": "E1",
        "timestamp": "2024-01-01 10:00:00",
        "severity": "CRITICAL",
        "type": "DISK_USAGE",
        "message": "disk full",
        "value": "97",
        "source": "storage-01",
        "hostname": "h1",
    }
    defaults.update(kw)
    return EventRecord(**defaults)  # type: ignore[arg-type]


class TestFormatRecord:
    def test_title_names_source(self) -> None:
        msg = format_record(_record())
        assert msg.title == f"{DEFAULT_TITLE_PREFIX} - storage-01"

    def test_custom_prefix(self) -> None:
        assert format_record(_record(), "NAS").title == "NAS - storage-01"

    def test_title_without_source(self) -> None:
        assert format_record(_record(source="")).title == DEFAULT_TITLE_PREFIX

    def test_body_lines(self) -> None:
        msg = format_record(_record())
        assert msg.body == "disk full\nType: DISK_USAGE\nValue: 97"

    def test_body_omits_empty_parts(self) -> None:
        msg = format_record(_record(type="", value=""))
        assert msg.body == "disk full"

    def test_severity_and_ids_carried(self) -> None:
        msg = format_record(_record(severity="warning"))
        assert msg.severity == Severity.WARNING
        assert msg.event_id == "E1"
        assert msg.event_type == "DISK_USAGE"

    def test_fields(self) -> None:
        msg = format_record(_record())
        assert msg.fields == {
            "timestamp": "2024-01-01 10:00:00",
            "hostname": "h1",
            "source": "storage-01",
        }

    def test_fields_skip_blank_hostname(self) -> None:
        msg = format_record(_record(hostname=""))
        assert "hostname" not in msg.fields
