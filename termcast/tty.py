"""Terminal abstractions: the controlling terminal, a null terminal and a size override."""

from __future__ import annotations

import fcntl
import os
import re
import select
import struct
import termios
import tty as stdtty
from dataclasses import dataclass, field
from typing import NamedTuple, Protocol

Color = tuple[int, int, int]

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")

COLORS_QUERY = (
    b"\x1b]10;?\x07\x1b]11;?\x07"
    + b"".join(b"\x1b]4;%d;?\x07" % i for i in range(16))
)


class TtySize(NamedTuple):
    """Terminal size as columns and rows."""

    cols: int
    rows: int


@dataclass
class Theme:
    """Terminal colour theme: foreground, background and palette."""

    fg: Color
    bg: Color
    palette: list[Color] = field(default_factory=list)


class Tty(Protocol):
    def get_size(self) -> TtySize: ...

    def get_theme(self) -> Theme | None: ...

    def read(self, size: int) -> bytes: ...

    def write(self, data: bytes) -> int: ...

    def fileno(self) -> int: ...

    def close(self) -> None: ...


def _hex_byte(component: str) -> int | None:
    if len(component) < 2:
        return None
    pair = component[:2]
    if not all(c in _HEX_DIGITS for c in pair):
        return None
    return int(pair, 16)


def parse_color(rgb: str) -> Color | None:
    """Parse an XParseColor-style ``rr../gg../bb..`` value; only the high byte is kept."""
    components = rgb.split("/")
    if len(components) < 3:
        return None
    values = [_hex_byte(c) for c in components[:3]]
    if any(v is None for v in values):
        return None
    r, g, b = values
    return (r, g, b)


class _TtyBase:
    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class DevTty(_TtyBase):
    """The controlling terminal, opened in raw, non-blocking mode."""

    def __init__(self, path: str = "/dev/tty") -> None:
        self._fd = os.open(path, os.O_RDWR | os.O_NOCTTY)
        try:
            self._saved_attrs = termios.tcgetattr(self._fd)
            stdtty.setraw(self._fd)
            flags = fcntl.fcntl(self._fd, fcntl.F_GETFL)
            fcntl.fcntl(self._fd, fcntl.F_SETFL, flags | os.O_NONBLOCK)
        except BaseException:
            os.close(self._fd)
            raise
        self._closed = False

    def get_size(self) -> TtySize:
        try:
            packed = fcntl.ioctl(self._fd, termios.TIOCGWINSZ, struct.pack("HHHH", 24, 80, 0, 0))
        except OSError:
            return TtySize(80, 24)
        rows, cols, _, _ = struct.unpack("HHHH", packed)
        return TtySize(cols, rows)

    def get_theme(self) -> Theme | None:
        query = COLORS_QUERY
        response = bytearray()
        terminators = 0

        while True:
            wlist = [self._fd] if query else []
            try:
                readable, writable, _ = select.select([self._fd], wlist, [], 0.1)
            except InterruptedError:
                continue
            except OSError:
                return None

            if not readable and not writable:
                return None

            if readable:
                try:
                    chunk = os.read(self._fd, 1024)
                except OSError:
                    return None
                response.extend(chunk)
                terminators += sum(1 for b in chunk if b in (0x07, ord("\\")))
                if terminators == 18:
                    break

            if writable:
                try:
                    written = os.write(self._fd, query)
                except OSError:
                    return None
                query = query[written:]

        text = response.decode("utf-8", errors="replace")
        colors = []
        for match in re.finditer("rgb:", text):
            color = parse_color(text[match.end():])
            if color is None:
                return None
            colors.append(color)
            if len(colors) == 18:
                break

        if len(colors) < 18:
            return None

        return Theme(fg=colors[0], bg=colors[1], palette=colors[2:18])

    def read(self, size: int) -> bytes:
        return os.read(self._fd, size)

    def write(self, data: bytes) -> int:
        return os.write(self._fd, data)

    def fileno(self) -> int:
        return self._fd

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            termios.tcsetattr(self._fd, termios.TCSAFLUSH, self._saved_attrs)
        finally:
            os.close(self._fd)


class NullTty(_TtyBase):
    """A terminal stand-in for headless sessions: fixed 80x24, output discarded."""

    def __init__(self) -> None:
        self._rx, self._tx = os.pipe()
        self._closed = False

    def get_size(self) -> TtySize:
        return TtySize(80, 24)

    def get_theme(self) -> Theme | None:
        return None

    def read(self, size: int) -> bytes:
        raise RuntimeError("read attempt from NullTty")

    def write(self, data: bytes) -> int:
        return len(data)

    def fileno(self) -> int:
        return self._tx

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        os.close(self._tx)
        os.close(self._rx)


class FixedSizeTty(_TtyBase):
    """Wraps another terminal, overriding its columns and/or rows."""

    def __init__(self, inner: Tty, cols: int | None = None, rows: int | None = None) -> None:
        self.inner = inner
        self.cols = cols
        self.rows = rows

    def get_size(self) -> TtySize:
        size = self.inner.get_size()
        return TtySize(
            self.cols if self.cols is not None else size.cols,
            self.rows if self.rows is not None else size.rows,
        )

    def get_theme(self) -> Theme | None:
        return self.inner.get_theme()

    def read(self, size: int) -> bytes:
        return self.inner.read(size)

    def write(self, data: bytes) -> int:
        return self.inner.write(data)

    def fileno(self) -> int:
        return self.inner.fileno()

    def close(self) -> None:
        self.inner.close()