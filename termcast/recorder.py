"""Recording a pseudo-terminal session into an output sink."""

from __future__ import annotations

import codecs
import queue
import threading
import time as _time
from abc import ABC, abstractmethod
from dataclasses import dataclass

from .cast import Event
from .config import Key
from .notifier import Notifier
from .ptyexec import Handler
from .tty import TtySize

_OUTPUT = "output"
_INPUT = "input"
_RESIZE = "resize"
_MARKER = "marker"
_NOTIFICATION = "notification"
_STOP = object()


@dataclass
class KeyBindings:
    """Keys that control recording; None disables a binding."""

    prefix: Key = None
    pause: Key = b"\x1c"  # ^\
    add_marker: Key = None


class Output(ABC):
    """Destination for a recording."""

    @abstractmethod
    def header(self, time: float, tty_size: TtySize) -> None:
        """Start the recording; ``time`` is seconds since the epoch."""

    @abstractmethod
    def event(self, event: Event) -> None:
        """Write one event."""

    @abstractmethod
    def flush(self) -> None:
        """Finish the recording."""


def _utf8_decoder():
    return codecs.getincrementaldecoder("utf-8")(errors="replace")


class Recorder(Handler):
    """Session handler that writes events to an output on a background thread.

    Supports pausing and adding markers via key bindings, optionally behind a prefix key.
    """

    def __init__(
        self,
        output: Output,
        record_input: bool,
        keys: KeyBindings,
        notifier: Notifier,
    ) -> None:
        self._output: Output | None = output
        self.record_input = record_input
        self.keys = keys
        self._notifier = notifier
        self._queue: queue.Queue = queue.Queue()
        self._thread: threading.Thread | None = None
        self._started = False
        self._time_offset = 0
        self._pause_time: int | None = None
        self._prefix_mode = False

    def __enter__(self) -> Recorder:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _elapsed_time(self, time: int) -> int:
        if self._pause_time is not None:
            return self._pause_time
        return time - self._time_offset

    def _notify(self, text: str) -> None:
        self._queue.put((_NOTIFICATION, text))

    def start(self, tty_size: TtySize) -> None:
        if self._started:
            raise RuntimeError("recorder already started")
        self._started = True
        output = self._output
        self._output = None
        try:
            output.header(_time.time(), tty_size)
        except OSError:
            pass
        self._thread = threading.Thread(
            target=self._run, args=(output, TtySize(*tty_size)), daemon=True
        )
        self._thread.start()

    def _run(self, output: Output, tty_size: TtySize) -> None:
        last_tty_size = tty_size
        input_decoder = _utf8_decoder()
        output_decoder = _utf8_decoder()

        def write(event: Event) -> None:
            try:
                output.event(event)
            except OSError:
                pass

        while (message := self._queue.get()) is not _STOP:
            match message:
                case (tag, time, data) if tag == _OUTPUT:
                    text = output_decoder.decode(data)
                    if text:
                        write(Event.output(time, text))
                case (tag, time, data) if tag == _INPUT:
                    text = input_decoder.decode(data)
                    if text:
                        write(Event.input(time, text))
                case (tag, time, new_size) if tag == _RESIZE:
                    if new_size != last_tty_size:
                        write(Event.resize(time, tuple(new_size)))
                        last_tty_size = new_size
                case (tag, time) if tag == _MARKER:
                    write(Event.marker(time, ""))
                case (tag, text) if tag == _NOTIFICATION:
                    try:
                        self._notifier.notify(text)
                    except OSError:
                        pass

        try:
            output.flush()
        except OSError:
            pass

    def output(self, time: int, data: bytes) -> bool:
        if self._pause_time is None:
            self._queue.put((_OUTPUT, self._elapsed_time(time), bytes(data)))
        return True

    def input(self, time: int, data: bytes) -> bool:
        data = bytes(data)
        prefix_key = self.keys.prefix
        pause_key = self.keys.pause
        add_marker_key = self.keys.add_marker

        if not self._prefix_mode and prefix_key is not None and data == prefix_key:
            self._prefix_mode = True
            return False

        if self._prefix_mode or prefix_key is None:
            self._prefix_mode = False

            if pause_key is not None and data == pause_key:
                if self._pause_time is not None:
                    paused_at = self._pause_time
                    self._pause_time = None
                    self._time_offset += self._elapsed_time(time) - paused_at
                    self._notify("Resumed recording")
                else:
                    self._pause_time = self._elapsed_time(time)
                    self._notify("Paused recording")
                return False

            if add_marker_key is not None and data == add_marker_key:
                self._queue.put((_MARKER, self._elapsed_time(time)))
                self._notify("Marker added")
                return False

        if self.record_input and self._pause_time is None:
            self._queue.put((_INPUT, self._elapsed_time(time), data))

        return True

    def resize(self, time: int, tty_size: TtySize) -> bool:
        self._queue.put((_RESIZE, self._elapsed_time(time), TtySize(*tty_size)))
        return True

    def close(self) -> None:
        """Stop the writer thread after it has handled everything queued, then flush."""
        if self._thread is None:
            return
        self._queue.put(_STOP)
        self._thread.join()
        self._thread = None