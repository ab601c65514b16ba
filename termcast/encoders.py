"""Encoders that turn a recording's events into an output file format."""

from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO, Protocol

from .cast import OUTPUT, Event, Header, Recording
from .tty import Theme, TtySize
from .v2 import Encoder as _V2Encoder


class _Encoder(Protocol):
    def start(self, timestamp: int | None, tty_size: TtySize) -> bytes: ...

    def event(self, event: Event) -> bytes: ...

    def finish(self) -> bytes: ...


@dataclass
class Metadata:
    """Header fields carried into a newly written recording."""

    idle_time_limit: float | None = None
    command: str | None = None
    title: str | None = None
    env: dict[str, str] | None = None
    theme: Theme | None = None

    @classmethod
    def from_header(cls, header: Header) -> Metadata:
        return cls(
            idle_time_limit=header.idle_time_limit,
            command=header.command,
            title=header.title,
            env=dict(header.env) if header.env is not None else None,
            theme=header.theme,
        )


class AsciicastEncoder:
    """Writes the version 2 recording format."""

    def __init__(self, append: bool, time_offset: int, metadata: Metadata) -> None:
        self._inner = _V2Encoder(time_offset)
        self.append = append
        self.metadata = metadata

    def _build_header(self, timestamp: int | None, tty_size: TtySize) -> Header:
        return Header(
            version=2,
            cols=tty_size[0],
            rows=tty_size[1],
            timestamp=timestamp,
            idle_time_limit=self.metadata.idle_time_limit,
            command=self.metadata.command,
            title=self.metadata.title,
            env=dict(self.metadata.env) if self.metadata.env is not None else None,
            theme=self.metadata.theme,
        )

    def start(self, timestamp: int | None, tty_size: TtySize) -> bytes:
        if self.append:
            return b""
        return self._inner.header(self._build_header(timestamp, tty_size))

    def event(self, event: Event) -> bytes:
        return self._inner.event(event)

    def finish(self) -> bytes:
        return b""


class RawEncoder:
    """Writes terminal output only, preceded by a resize escape sequence."""

    def __init__(self, append: bool) -> None:
        self.append = append

    def start(self, timestamp: int | None, tty_size: TtySize) -> bytes:
        if self.append:
            return b""
        cols, rows = tty_size
        return f"\x1b[8;{rows};{cols}t".encode("utf-8")

    def event(self, event: Event) -> bytes:
        if event.code == OUTPUT:
            return event.data.encode("utf-8")
        return b""

    def finish(self) -> bytes:
        return b""


def encode_to_file(encoder: _Encoder, recording: Recording, file: BinaryIO) -> None:
    """Encode a whole recording into a binary file object."""
    header = recording.header
    file.write(encoder.start(header.timestamp, TtySize(header.cols, header.rows)))
    for event in recording.events:
        file.write(encoder.event(event))
    file.write(encoder.finish())