"""Opening recordings in either format."""

from __future__ import annotations

import os
from typing import IO, Iterable, Iterator

from . import v1, v2
from .cast import AsciicastError, Event, Recording


def _strip_line_ending(line: str) -> str:
    if line.endswith("\n"):
        line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]
    return line


def open_cast(stream: Iterable[str]) -> Recording:
    """Read a recording from a text stream, detecting the format from the first line."""
    lines = iter(stream)
    try:
        first = next(lines)
    except StopIteration:
        raise AsciicastError("empty file") from None
    except UnicodeDecodeError as exc:
        raise AsciicastError(str(exc)) from exc
    first = _strip_line_ending(first)

    try:
        parser = v2.open_header(first)
    except AsciicastError:
        try:
            rest = [_strip_line_ending(line) for line in lines]
        except UnicodeDecodeError as exc:
            raise AsciicastError(str(exc)) from exc
        return v1.load("".join([first, *rest]))

    return parser.parse(lines)


def _closing(events: Iterator[Event], file: IO[str]) -> Iterator[Event]:
    with file:
        yield from events


def open_path(path: str | os.PathLike) -> Recording:
    """Open a recording file; the file stays open until its events are consumed."""
    try:
        file = open(path, encoding="utf-8", newline="")
    except OSError as exc:
        raise AsciicastError(f"can't open asciicast file: {exc}") from exc

    try:
        recording = open_cast(file)
    except (AsciicastError, OSError) as exc:
        file.close()
        raise AsciicastError(f"can't open asciicast file: {exc}") from exc

    if recording.header.version == 1:
        file.close()
        return recording

    return Recording(recording.header, _closing(recording.events, file))


def get_duration(path: str | os.PathLike) -> int:
    """Time of the last event in microseconds, or 0 for a recording without events."""
    last = 0
    for event in open_path(path).events:
        last = event.time
    return last