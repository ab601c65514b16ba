"""Recording data model and event stream transforms."""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from typing import Iterable, Iterator

from .tty import Theme, TtySize

OUTPUT = "o"
INPUT = "i"
RESIZE = "r"
MARKER = "m"


class AsciicastError(Exception):
    """Raised when a recording cannot be read or is malformed."""


@dataclass
class Header:
    """Recording header."""

    version: int
    cols: int
    rows: int
    timestamp: int | None = None
    idle_time_limit: float | None = None
    command: str | None = None
    title: str | None = None
    env: dict[str, str] | None = None
    theme: Theme | None = None


@dataclass(frozen=True)
class Event:
    """A timed event; time is in microseconds.

    ``code`` is "o", "i", "r", "m" or any other single character.
    ``data`` is a ``TtySize`` for resize events and text otherwise.
    """

    time: int
    code: str
    data: str | TtySize

    @classmethod
    def output(cls, time: int, text: str) -> Event:
        return cls(time, OUTPUT, text)

    @classmethod
    def input(cls, time: int, text: str) -> Event:
        return cls(time, INPUT, text)

    @classmethod
    def resize(cls, time: int, size: tuple[int, int]) -> Event:
        return cls(time, RESIZE, TtySize(*size))

    @classmethod
    def marker(cls, time: int, label: str) -> Event:
        return cls(time, MARKER, label)


@dataclass
class Recording:
    """A header plus a (possibly lazy) stream of events."""

    header: Header
    events: Iterator[Event]

    def __iter__(self) -> Iterator[Event]:
        return iter(self.events)


def limit_idle_time(events: Iterable[Event], limit: float) -> Iterator[Event]:
    """Shorten every pause longer than ``limit`` seconds down to ``limit``."""
    scaled = limit * 1_000_000.0
    limit_us = int(scaled) if math.isfinite(scaled) else None
    prev_time = 0
    offset = 0

    for event in events:
        delay = event.time - prev_time
        if limit_us is not None and delay > limit_us:
            offset += delay - limit_us
        prev_time = event.time
        yield dataclasses.replace(event, time=event.time - offset)


def accelerate(events: Iterable[Event], speed: float) -> Iterator[Event]:
    """Divide every event time by ``speed``."""
    for event in events:
        yield dataclasses.replace(event, time=int(event.time / speed))