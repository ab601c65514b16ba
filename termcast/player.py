"""Replaying a recording to a terminal, with pause, step and marker navigation."""

from __future__ import annotations

import select
import sys
import time as _time
from dataclasses import dataclass
from typing import BinaryIO, Iterator

from .cast import MARKER, OUTPUT, Event, Recording, accelerate, limit_idle_time
from .config import Key
from .tty import Tty

_READ_SIZE = 1024


@dataclass
class KeyBindings:
    """Keys that control playback; None disables a binding."""

    quit: Key = b"\x03"
    pause: Key = b" "
    step: Key = b"."
    next_marker: Key = b"]"


def _matches(key: Key, data: bytes) -> bool:
    return key is not None and data == key


def _open_recording(
    recording: Recording, speed: float, idle_time_limit: float | None
) -> Iterator[Event]:
    limit = idle_time_limit
    if limit is None:
        limit = recording.header.idle_time_limit
    if limit is None:
        limit = sys.float_info.max
    return accelerate(limit_idle_time(recording.events, limit), speed)


def _read_input(tty: Tty, timeout_us: int) -> bytes | None:
    """Wait up to ``timeout_us`` microseconds for input and return all that is available."""
    try:
        readable, _, _ = select.select([tty.fileno()], [], [], max(timeout_us, 0) / 1_000_000)
    except InterruptedError:
        return None
    if not readable:
        return None

    data = bytearray()
    while True:
        try:
            chunk = tty.read(_READ_SIZE)
        except OSError:
            break
        if not chunk:
            break
        data += chunk
    return bytes(data) if data else None


def play(
    recording: Recording,
    tty: Tty,
    speed: float = 1.0,
    idle_time_limit: float | None = None,
    pause_on_markers: bool = False,
    keys: KeyBindings | None = None,
    out: BinaryIO | None = None,
) -> bool:
    """Replay ``recording`` to ``out``; returns True if it ended, False if the user quit."""
    keys = keys if keys is not None else KeyBindings()
    out = out if out is not None else sys.stdout.buffer
    events = _open_recording(recording, speed, idle_time_limit)
    epoch = _time.monotonic()
    pause_elapsed: int | None = None

    def elapsed_us() -> int:
        return int((_time.monotonic() - epoch) * 1_000_000)

    def quit_playback() -> bool:
        out.write(b"\r\n")
        out.flush()
        return False

    next_event = next(events, None)

    while next_event is not None:
        if pause_elapsed is not None:
            data = _read_input(tty, 1_000_000)
            if data is None:
                continue

            if _matches(keys.quit, data):
                return quit_playback()

            if _matches(keys.pause, data):
                epoch = _time.monotonic() - pause_elapsed / 1_000_000
                pause_elapsed = None
            elif _matches(keys.step, data):
                pause_elapsed = next_event.time
                if next_event.code == OUTPUT:
                    out.write(next_event.data.encode("utf-8"))
                    out.flush()
                next_event = next(events, None)
            elif _matches(keys.next_marker, data):
                while next_event is not None:
                    event = next_event
                    next_event = next(events, None)
                    if event.code == OUTPUT:
                        out.write(event.data.encode("utf-8"))
                    elif event.code == MARKER:
                        pause_elapsed = event.time
                        break
                out.flush()
        else:
            while next_event is not None:
                delay = next_event.time - elapsed_us()

                if delay > 0:
                    out.flush()
                    data = _read_input(tty, delay)
                    if data is not None:
                        if _matches(keys.quit, data):
                            return quit_playback()
                        if _matches(keys.pause, data):
                            pause_elapsed = elapsed_us()
                            break
                        continue

                if next_event.code == OUTPUT:
                    out.write(next_event.data.encode("utf-8"))
                elif next_event.code == MARKER and pause_on_markers:
                    pause_elapsed = next_event.time
                    next_event = next(events, None)
                    break

                next_event = next(events, None)

    out.flush()
    return True