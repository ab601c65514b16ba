"""Reader and writer for the newline-delimited (version 2) recording format."""

from __future__ import annotations

import dataclasses
import json
import re
from typing import Any, Iterable, Iterator

from .cast import INPUT, MARKER, OUTPUT, RESIZE, AsciicastError, Event, Header, Recording
from .tty import Color, Theme, TtySize
from .v1 import parse_time

_HEX_PAIR = re.compile(r"[0-9a-fA-F]{2}")
_UNSIGNED = re.compile(r"\+?[0-9]+")


def _required(doc: dict, key: str) -> Any:
    if key not in doc:
        raise AsciicastError(f"missing field `{key}`")
    return doc[key]


def _uint(value: Any, key: str, maximum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= maximum:
        raise AsciicastError(f"invalid value for `{key}`: {value!r}")
    return value


def _optional_str(doc: dict, key: str) -> str | None:
    value = doc.get(key)
    if value is not None and not isinstance(value, str):
        raise AsciicastError(f"invalid value for `{key}`: {value!r}")
    return value


def parse_hex_color(rgb: str) -> Color | None:
    """Parse a ``#rrggbb`` triplet; the first character is not checked."""
    if len(rgb.encode("utf-8")) != 7 or not rgb.isascii():
        return None
    pairs = (rgb[1:3], rgb[3:5], rgb[5:7])
    if not all(_HEX_PAIR.fullmatch(p) for p in pairs):
        return None
    r, g, b = (int(p, 16) for p in pairs)
    return (r, g, b)


def format_hex_color(color: Color) -> str:
    r, g, b = color
    return f"#{r:02x}{g:02x}{b:02x}"


def _color_field(doc: dict, key: str) -> Color:
    value = _required(doc, key)
    color = parse_hex_color(value) if isinstance(value, str) else None
    if color is None:
        raise AsciicastError("invalid hex triplet")
    return color


def _parse_theme(doc: Any) -> Theme:
    if not isinstance(doc, dict):
        raise AsciicastError("invalid value for `theme`")
    fg = _color_field(doc, "fg")
    bg = _color_field(doc, "bg")
    value = _required(doc, "palette")
    if not isinstance(value, str):
        raise AsciicastError("expected 8 or 16 hex triplets")
    colors = [c for c in map(parse_hex_color, value.split(":")) if c is not None]
    if len(colors) == 8:
        colors = colors + colors
    elif len(colors) != 16:
        raise AsciicastError("expected 8 or 16 hex triplets")
    return Theme(fg=fg, bg=bg, palette=colors)


class Parser:
    """Holds a parsed version 2 header and turns the remaining lines into events."""

    def __init__(self, header: Header) -> None:
        self.header = header

    def parse(self, lines: Iterable[str]) -> Recording:
        header = dataclasses.replace(
            self.header,
            env=dict(self.header.env) if self.header.env is not None else None,
            theme=dataclasses.replace(self.header.theme, palette=list(self.header.theme.palette))
            if self.header.theme is not None
            else None,
        )
        return Recording(header, _events(lines))


def open_header(line: str) -> Parser:
    """Parse the header line of a version 2 recording."""
    try:
        doc = json.loads(line)
    except json.JSONDecodeError as exc:
        raise AsciicastError(str(exc)) from exc
    if not isinstance(doc, dict):
        raise AsciicastError("expected a JSON object")

    version = _uint(_required(doc, "version"), "version", 0xFF)
    cols = _uint(_required(doc, "width"), "width", 0xFFFF)
    rows = _uint(_required(doc, "height"), "height", 0xFFFF)

    timestamp = doc.get("timestamp")
    if timestamp is not None:
        timestamp = _uint(timestamp, "timestamp", 2**64 - 1)

    idle_time_limit = doc.get("idle_time_limit")
    if idle_time_limit is not None:
        if isinstance(idle_time_limit, bool) or not isinstance(idle_time_limit, (int, float)):
            raise AsciicastError(f"invalid value for `idle_time_limit`: {idle_time_limit!r}")
        idle_time_limit = float(idle_time_limit)

    command = _optional_str(doc, "command")
    title = _optional_str(doc, "title")

    env = doc.get("env")
    if env is not None:
        if not isinstance(env, dict) or not all(isinstance(v, str) for v in env.values()):
            raise AsciicastError(f"invalid value for `env`: {env!r}")
        env = dict(env)

    theme = doc.get("theme")
    if theme is not None:
        theme = _parse_theme(theme)

    if version != 2:
        raise AsciicastError("unsupported asciicast version")

    return Parser(
        Header(
            version=2,
            cols=cols,
            rows=rows,
            timestamp=timestamp,
            idle_time_limit=idle_time_limit,
            command=command,
            title=title,
            env=env,
            theme=theme,
        )
    )


def _strip_line_ending(line: str) -> str:
    if line.endswith("\n"):
        line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]
    return line


def _events(lines: Iterable[str]) -> Iterator[Event]:
    iterator = iter(lines)
    while True:
        try:
            line = next(iterator)
        except StopIteration:
            return
        except (OSError, UnicodeDecodeError) as exc:
            raise AsciicastError(str(exc)) from exc
        line = _strip_line_ending(line)
        if line:
            yield parse_event(line)


def _parse_u16(text: str, what: str) -> int:
    if not text:
        raise AsciicastError(f"invalid {what} value in resize event: cannot parse integer from empty string")
    if not _UNSIGNED.fullmatch(text):
        raise AsciicastError(f"invalid {what} value in resize event: invalid digit found in string")
    value = int(text)
    if value > 0xFFFF:
        raise AsciicastError(f"invalid {what} value in resize event: number too large to fit in target type")
    return value


def parse_event(line: str) -> Event:
    """Parse a single ``[time, code, data]`` event line."""
    try:
        item = json.loads(line)
    except json.JSONDecodeError as exc:
        raise AsciicastError(str(exc)) from exc

    if isinstance(item, list):
        if len(item) != 3:
            raise AsciicastError(f"invalid event: {line}")
        time, code, data = item
    elif isinstance(item, dict):
        time = _required(item, "time")
        code = _required(item, "code")
        data = _required(item, "data")
    else:
        raise AsciicastError(f"invalid event: {line}")

    time = parse_time(time)
    if not isinstance(code, str):
        raise AsciicastError(f"invalid event code: {code!r}")
    if code == "":
        raise AsciicastError("missing event code")
    if not isinstance(data, str):
        raise AsciicastError(f"invalid event data: {data!r}")

    if code == OUTPUT:
        return Event.output(time, data)
    if code == INPUT:
        return Event.input(time, data)
    if code == RESIZE:
        if "x" not in data:
            raise AsciicastError("invalid size value in resize event")
        cols, _, rows = data.partition("x")
        return Event.resize(time, (_parse_u16(cols, "cols"), _parse_u16(rows, "rows")))
    if code == MARKER:
        return Event.marker(time, data)
    return Event(time, code[0], data)


def format_time(time: int) -> str:
    """Format microseconds as seconds with exactly six fractional digits."""
    return f"{time // 1_000_000}.{time % 1_000_000:06d}"


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


class Encoder:
    """Serialises headers and events as version 2 lines, shifting event times by an offset."""

    def __init__(self, time_offset: int = 0) -> None:
        self.time_offset = time_offset

    def header(self, header: Header) -> bytes:
        doc: dict[str, Any] = {"version": 2, "width": header.cols, "height": header.rows}
        if header.timestamp is not None:
            doc["timestamp"] = header.timestamp
        if header.idle_time_limit is not None:
            doc["idle_time_limit"] = float(header.idle_time_limit)
        if header.command is not None:
            doc["command"] = header.command
        if header.title is not None:
            doc["title"] = header.title
        if header.env:
            doc["env"] = header.env
        if header.theme is not None:
            doc["theme"] = {
                "fg": format_hex_color(header.theme.fg),
                "bg": format_hex_color(header.theme.bg),
                "palette": ":".join(format_hex_color(c) for c in header.theme.palette),
            }
        return (_dumps(doc) + "\n").encode("utf-8")

    def event(self, event: Event) -> bytes:
        if event.code == RESIZE:
            cols, rows = event.data
            data = f"{cols}x{rows}"
        else:
            data = event.data
        time = format_time(event.time + self.time_offset).rstrip("0")
        line = f"[{time}, {_dumps(event.code)}, {_dumps(data)}]\n"
        return line.encode("utf-8")


__all__ = [
    "Encoder",
    "Parser",
    "TtySize",
    "format_hex_color",
    "format_time",
    "open_header",
    "parse_event",
    "parse_hex_color",
]