"""EventRecord codec and partition text format.

A partition is a JSON array holding one compact record per line::

    [
    {"event_id":"1704099600_3f2a9c1e","timestamp":"2024-01-01 10:00:00",...},
    {"event_id":"1704099660_b81d0e44","timestamp":"2024-01-01 10:01:00",...}
    ]

which ``jq`` and line-oriented readers both understand. Parsing tries the
whole document first; if its syntax is broken (a torn write, or a writer
that does not use atomic replacement) the objects are recovered one at a
time so a single bad fragment never hides the rest.
"""

from __future__ import annotations

import json
from typing import Any, NamedTuple

from pydantic import ValidationError

from src.core.types import EventRecord
from src.events.exceptions import EventParseError

EMPTY_PARTITION = "[]\n"

_decoder = json.JSONDecoder()


class Partition(NamedTuple):
    """Raw JSON objects found in a partition plus the count of unusable fragments."""

    objects: list[dict[str, Any]]
    malformed: int


def encode(record: EventRecord) -> str:
    """Serialise *record* to a single line of compact JSON."""
    return _dump(record.model_dump(mode="json"))


def decode_object(obj: Any) -> EventRecord:
    """Validate an already-parsed JSON value as an EventRecord."""
    if not isinstance(obj, dict):
        raise EventParseError(f"expected a JSON object, got {type(obj).__name__}")
    try:
        return EventRecord.model_validate(obj)
    except ValidationError as exc:
        raise EventParseError(str(exc)) from exc


def decode(text: str) -> EventRecord:
    """Decode one record from its textual form.

    Surrounding whitespace and the array separators a line may carry in a
    partition (leading ``[``/``,``, trailing ``,``/``]``) are tolerated.
    """
    fragment = text.strip().lstrip("[,").rstrip(",]").strip()
    try:
        obj = json.loads(fragment)
    except json.JSONDecodeError as exc:
        raise EventParseError(f"invalid JSON: {exc.msg}") from exc
    return decode_object(obj)


def parse_partition(text: str) -> Partition:
    """Split partition text into raw JSON objects.

    Array elements that are not objects, and syntactically broken
    fragments, are counted in ``malformed`` and otherwise dropped.
    """
    stripped = text.strip()
    if not stripped:
        return Partition([], 0)

    try:
        doc = json.loads(stripped)
    except json.JSONDecodeError:
        return _scan_fragments(stripped)

    if isinstance(doc, dict):
        return Partition([doc], 0)
    if isinstance(doc, list):
        objects = [item for item in doc if isinstance(item, dict)]
        return Partition(objects, len(doc) - len(objects))
    return Partition([], 1)


def render_partition(objects: list[dict[str, Any]]) -> str:
    """Serialise raw objects back to partition text."""
    if not objects:
        return EMPTY_PARTITION
    return "[\n" + ",\n".join(_dump(obj) for obj in objects) + "\n]\n"


def _dump(obj: dict[str, Any]) -> str:
    # ensure_ascii=False keeps producer-locale messages readable in the file;
    # json escapes control characters so a record never spans two lines.
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))


def _scan_fragments(text: str) -> Partition:
    objects: list[dict[str, Any]] = []
    malformed = 0
    pos = 0
    while True:
        start = text.find("{", pos)
        if start == -1:
            break
        try:
            obj, end = _decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            malformed += 1
            # Resume on the next line: records never span lines when we
            # write them, and pretty-printed objects resume at their next "{".
            newline = text.find("\n", start)
            if newline == -1:
                break
            pos = newline + 1
            continue
        objects.append(obj)
        pos = end
    return Partition(objects, malformed)
