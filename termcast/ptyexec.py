"""Running a command in a pseudo-terminal while relaying its I/O through a terminal."""

from __future__ import annotations

import errno
import fcntl
import os
import pty
import select
import signal
import struct
import termios
import time
from abc import ABC, abstractmethod
from typing import Callable, Mapping, Sequence

from .tty import Tty, TtySize

BUF_SIZE = 128 * 1024

_WATCHED_SIGNALS = (
    signal.SIGWINCH,
    signal.SIGINT,
    signal.SIGTERM,
    signal.SIGQUIT,
    signal.SIGHUP,
    signal.SIGALRM,
    signal.SIGCHLD,
)
_TERMINATING_SIGNALS = frozenset(
    {signal.SIGINT, signal.SIGTERM, signal.SIGQUIT, signal.SIGHUP}
)
_POLL_INTERVAL = 0.1


class Handler(ABC):
    """Receives a session's events; times are microseconds since the session began.

    ``output``, ``input`` and ``resize`` return whether the data should be passed on.
    """

    @abstractmethod
    def start(self, tty_size: TtySize) -> None:
        """Called once, before the command starts."""

    @abstractmethod
    def output(self, time: int, data: bytes) -> bool:
        """Output produced by the command."""

    @abstractmethod
    def input(self, time: int, data: bytes) -> bool:
        """Input typed at the terminal."""

    @abstractmethod
    def resize(self, time: int, tty_size: TtySize) -> bool:
        """The terminal was resized."""


def set_non_blocking(fd: int) -> None:
    """Put a file descriptor into non-blocking mode."""
    os.set_blocking(fd, False)


class _SignalWatcher:
    """Turns the watched signals into bytes on a pipe that can be selected on."""

    def __init__(self) -> None:
        self._rx, self._tx = os.pipe()
        set_non_blocking(self._rx)
        set_non_blocking(self._tx)
        self._previous: dict[int, object] = {}
        self._previous_wakeup = -1
        self._pending: set[int] = set()
        self.active = False

    def __enter__(self) -> _SignalWatcher:
        try:
            for signum in _WATCHED_SIGNALS:
                self._previous[signum] = signal.signal(signum, self._on_signal)
            self._previous_wakeup = signal.set_wakeup_fd(self._tx, warn_on_full_buffer=False)
            self.active = True
        except ValueError:
            # Signal handlers can only be installed from the main thread.
            self._restore_handlers()
        return self

    def __exit__(self, *exc_info) -> None:
        if self.active:
            signal.set_wakeup_fd(self._previous_wakeup)
            self.active = False
        self._restore_handlers()
        os.close(self._rx)
        os.close(self._tx)

    def _on_signal(self, signum, frame) -> None:
        self._pending.add(signum)

    def _restore_handlers(self) -> None:
        for signum, previous in self._previous.items():
            signal.signal(signum, previous if previous is not None else signal.SIG_DFL)
        self._previous.clear()

    def fileno(self) -> int:
        return self._rx

    def drain(self) -> set[int]:
        received, self._pending = self._pending, set()
        while True:
            try:
                chunk = os.read(self._rx, 256)
            except BlockingIOError:
                break
            if not chunk:
                break
            received.update(chunk)
        return received


def _set_winsize(fd: int, size: TtySize) -> None:
    cols, rows = size
    fcntl.ioctl(fd, termios.TIOCSWINSZ, struct.pack("HHHH", rows, cols, 0, 0))


def _read_non_blocking(read: Callable[[int], bytes]) -> bytes | None:
    """Read a chunk; None when nothing is available, empty at end of input."""
    try:
        return read(BUF_SIZE)
    except BlockingIOError:
        return None
    except OSError as exc:
        if exc.errno == errno.EIO:
            return b""
        raise


def _write_non_blocking(write: Callable[[bytes], int], data: bytes) -> int | None:
    """Write what can be written; None when the sink would block."""
    try:
        return write(data)
    except BlockingIOError:
        return None
    except OSError as exc:
        if exc.errno == errno.EIO:
            return 0
        raise


def _drain_to(write: Callable[[bytes], int], buffer: bytearray) -> None:
    while buffer:
        written = _write_non_blocking(write, bytes(buffer))
        if not written:
            break
        del buffer[:written]


def _run_child(command: list[str], extra_env: Mapping[str, str], size: TtySize) -> None:
    try:
        _set_winsize(0, size)
        os.environ.update(extra_env)
        signal.signal(signal.SIGPIPE, signal.SIG_DFL)
        os.execvp(command[0], command)
    except BaseException:
        pass
    finally:
        os._exit(1)


def _copy(
    master: int,
    child: int,
    tty: Tty,
    handler: Handler,
    clock: Callable[[], int],
    signals: _SignalWatcher,
) -> int | None:
    """Relay data until the session ends; returns the wait status if the child was reaped."""
    pending_input = bytearray()
    pending_output = bytearray()
    master_closed = False
    tty_fd = tty.fileno()
    set_non_blocking(master)

    while True:
        rlist = [tty_fd]
        wlist = []
        if signals.active:
            rlist.append(signals.fileno())
        if not master_closed:
            rlist.append(master)
            if pending_input:
                wlist.append(master)
        if pending_output:
            wlist.append(tty_fd)

        try:
            readable, writable, _ = select.select(
                rlist, wlist, [], None if signals.active else _POLL_INTERVAL
            )
        except InterruptedError:
            continue

        if not master_closed and master in readable:
            while (chunk := _read_non_blocking(lambda n: os.read(master, n))) is not None:
                if chunk:
                    if handler.output(clock(), chunk):
                        pending_output += chunk
                elif not pending_output:
                    return None
                else:
                    master_closed = True
                    break

        if not master_closed and master in writable:
            _drain_to(lambda data: os.write(master, data), pending_input)

        if tty_fd in writable:
            _drain_to(tty.write, pending_output)
            if not pending_output and master_closed:
                return None

        if tty_fd in readable:
            while (chunk := _read_non_blocking(tty.read)) is not None:
                if not chunk:
                    return None
                if handler.input(clock(), chunk):
                    pending_input += chunk

        received: set[int] = set()
        if signals.active and signals.fileno() in readable:
            received = signals.drain()

        if signal.SIGWINCH in received:
            size = TtySize(*tty.get_size())
            if handler.resize(clock(), size):
                try:
                    _set_winsize(master, size)
                except OSError:
                    pass

        if signal.SIGCHLD in received or not signals.active:
            try:
                pid, status = os.waitpid(child, os.WNOHANG)
            except ChildProcessError:
                pid, status = 0, 0
            if pid:
                return status

        if received & _TERMINATING_SIGNALS:
            try:
                os.kill(child, signal.SIGTERM)
            except OSError:
                pass
            return None


def _exit_code(status: int) -> int:
    if os.WIFEXITED(status):
        return os.WEXITSTATUS(status)
    if os.WIFSIGNALED(status):
        return 128 + os.WTERMSIG(status)
    return 1


def exec_command(
    command: Sequence[str],
    extra_env: Mapping[str, str],
    tty: Tty,
    handler: Handler,
) -> int:
    """Run ``command`` in a new pseudo-terminal and return its exit code.

    A command killed by a signal yields 128 plus the signal number.
    """
    argv = list(command)
    if not argv:
        raise ValueError("empty command")
    if any("\0" in arg for arg in argv):
        raise ValueError("command argument contains a NUL character")

    size = TtySize(*tty.get_size())
    epoch = time.monotonic_ns()
    handler.start(size)

    def clock() -> int:
        return (time.monotonic_ns() - epoch) // 1000

    with _SignalWatcher() as signals:
        pid, master = pty.fork()
        if pid == 0:
            _run_child(argv, extra_env, size)

        try:
            try:
                status = _copy(master, pid, tty, handler, clock, signals)
            finally:
                os.close(master)
        except BaseException:
            try:
                os.waitpid(pid, 0)
            except ChildProcessError:
                pass
            raise

        if status is None:
            _, status = os.waitpid(pid, 0)

    return _exit_code(status)