"""Reader for the single-document (version 1) recording format."""

from __future__ import annotations

import json
import re
from decimal import Decimal, InvalidOperation
from typing import Any

from .cast import AsciicastError, Event, Header, Recording

_UNSIGNED = re.compile(r"\+?[0-9]+")
_U64_MAX = 2**64 - 1


def _parse_u64(text: str) -> int:
    if not _UNSIGNED.fullmatch(text):
        raise AsciicastError(f"invalid digit found in string: {text!r}")
    value = int(text)
    if value > _U64_MAX:
        raise AsciicastError("number too large to fit in target type")
    return value


def _float_text(value: float) -> str:
    """Shortest round-trip decimal form of ``value``, never in exponent notation."""
    try:
        return format(Decimal(repr(value)), "f")
    except (InvalidOperation, ValueError) as exc:
        raise AsciicastError(f"invalid time format: {value}") from exc


def parse_time(value: Any) -> int:
    """Convert a JSON number of seconds into whole microseconds.

    Only the first six fractional digits are kept; the rest are dropped.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise AsciicastError("expected number")
    try:
        number = _float_text(float(value))
    except OverflowError as exc:
        raise AsciicastError(f"invalid time format: {value}") from exc

    parts = number.split(".")
    if len(parts) == 2:
        left, right = parts
        secs = _parse_u64(left)
        right = right.strip()
        micros = _parse_u64(right[:6].ljust(6, "0"))
        return secs * 1_000_000 + micros
    if len(parts) == 1:
        return _parse_u64(parts[0]) * 1_000_000
    raise AsciicastError(f"invalid time format: {value}")


def _required(doc: dict, key: str) -> Any:
    if key not in doc:
        raise AsciicastError(f"missing field `{key}`")
    return doc[key]


def _uint(doc: dict, key: str, maximum: int) -> int:
    value = _required(doc, key)
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= maximum:
        raise AsciicastError(f"invalid value for `{key}`: {value!r}")
    return value


def _optional_str(doc: dict, key: str) -> str | None:
    value = doc.get(key)
    if value is not None and not isinstance(value, str):
        raise AsciicastError(f"invalid value for `{key}`: {value!r}")
    return value


def _optional_env(doc: dict) -> dict[str, str] | None:
    value = doc.get("env")
    if value is None:
        return None
    if not isinstance(value, dict) or not all(isinstance(v, str) for v in value.values()):
        raise AsciicastError(f"invalid value for `env`: {value!r}")
    return dict(value)


def _output_event(item: Any) -> Event:
    if isinstance(item, list):
        if len(item) != 2:
            raise AsciicastError(f"invalid stdout event: {item!r}")
        time, data = item
    elif isinstance(item, dict):
        time = _required(item, "time")
        data = _required(item, "data")
    else:
        raise AsciicastError(f"invalid stdout event: {item!r}")
    if not isinstance(data, str):
        raise AsciicastError(f"invalid stdout event data: {data!r}")
    return Event.output(parse_time(time), data)


def load(text: str) -> Recording:
    """Parse a whole version 1 recording document."""
    try:
        doc = json.loads(text)
    except json.JSONDecodeError as exc:
        raise AsciicastError(str(exc)) from exc
    if not isinstance(doc, dict):
        raise AsciicastError("expected a JSON object")

    version = _uint(doc, "version", 0xFF)
    cols = _uint(doc, "width", 0xFFFF)
    rows = _uint(doc, "height", 0xFFFF)
    command = _optional_str(doc, "command")
    title = _optional_str(doc, "title")
    env = _optional_env(doc)
    stdout = _required(doc, "stdout")
    if not isinstance(stdout, list):
        raise AsciicastError("invalid value for `stdout`")
    events = [_output_event(item) for item in stdout]

    if version != 1:
        raise AsciicastError("unsupported asciicast version")

    header = Header(
        version=1,
        cols=cols,
        rows=rows,
        command=command,
        title=title,
        env=env,
    )
    return Recording(header, iter(events))