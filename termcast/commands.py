"""Implementations of the command-line subcommands."""

from __future__ import annotations

import dataclasses
import os
import socket
import sys
import termios
from argparse import Namespace
from datetime import datetime
from enum import StrEnum
from pathlib import Path
from typing import BinaryIO, Iterable, TypeVar
from urllib.parse import urlsplit

from . import api, localecheck, logger, notifier, player, ptyexec, reader, recorder
from .cast import Event
from .config import Config, parse_key
from .encoders import AsciicastEncoder, Metadata, RawEncoder, encode_to_file
from .recorder import Output, Recorder
from .tty import DevTty, FixedSizeTty, NullTty, TtySize
from .v2 import Encoder as V2Encoder

_T = TypeVar("_T")

DEFAULT_ENV_VARS = "TERM,SHELL"


class Format(StrEnum):
    """Output file format."""

    ASCIICAST = "asciicast"
    RAW = "raw"


class CommandError(Exception):
    """Raised when a command cannot do what was asked."""


def _first(*values: _T | None) -> _T | None:
    return next((value for value in values if value is not None), None)


class FileOutput(Output):
    """Recorder output that encodes events into a binary file."""

    def __init__(self, file: BinaryIO, encoder, line_buffered: bool = False) -> None:
        self.file = file
        self.encoder = encoder
        self.line_buffered = line_buffered

    def _write(self, data: bytes) -> None:
        if data:
            self.file.write(data)
            if self.line_buffered:
                self.file.flush()

    def header(self, time: float, tty_size: TtySize) -> None:
        self._write(self.encoder.start(int(time), TtySize(*tty_size)))

    def event(self, event: Event) -> None:
        self._write(self.encoder.event(event))

    def flush(self) -> None:
        self._write(self.encoder.finish())
        self.file.flush()


def _get_notifier(config: Config) -> notifier.Notifier:
    if config.notifications.enabled:
        return notifier.get_notifier(config.notifications.command)
    return notifier.NullNotifier()


def build_exec_command(command: str | None) -> list[str]:
    """Shell invocation running ``command``, or the user's shell when none is given."""
    command = _first(command, os.environ.get("SHELL"), "/bin/sh")
    return ["/bin/sh", "-c", command]


def build_exec_extra_env(pairs: Iterable[tuple[str, str]] = ()) -> dict[str, str]:
    """Variables added to the recorded command's environment."""
    env = {"ASCIINEMA_REC": "1"}
    env.update(pairs)
    return env


def capture_env(names: str) -> dict[str, str]:
    """Values of the comma-separated environment variables that are set."""
    wanted = set(names.split(","))
    return {key: value for key, value in os.environ.items() if key in wanted}


def expand_filename_template(template: str) -> str:
    """Fill in ``{pid}``, ``{user}``, ``{hostname}`` and strftime fields."""
    if "{pid}" in template:
        template = template.replace("{pid}", str(os.getpid()))
    if "{user}" in template:
        template = template.replace("{user}", os.environ.get("USER", "unknown"))
    if "{hostname}" in template:
        template = template.replace("{hostname}", socket.gethostname() or "unknown")
    return datetime.now().strftime(template)


def _open_tty(headless: bool, cols: int | None, rows: int | None, activity: str) -> FixedSizeTty:
    if headless:
        return FixedSizeTty(NullTty(), cols, rows)
    try:
        dev_tty = DevTty()
    except (OSError, termios.error):
        logger.info(f"TTY not available, {activity} in headless mode")
        return FixedSizeTty(NullTty(), cols, rows)
    return FixedSizeTty(dev_tty, cols, rows)


def _apply_keys(keys, overrides: dict[str, str | None]) -> None:
    for attr, definition in overrides.items():
        if definition is not None:
            setattr(keys, attr, parse_key(definition))


def _rec_keys(config: Config) -> recorder.KeyBindings:
    keys = recorder.KeyBindings()
    _apply_keys(
        keys,
        {
            "prefix": config.rec.prefix_key,
            "pause": config.rec.pause_key,
            "add_marker": config.rec.add_marker_key,
        },
    )
    return keys


def _play_keys(config: Config) -> player.KeyBindings:
    keys = player.KeyBindings()
    _apply_keys(
        keys,
        {
            "pause": config.play.pause_key,
            "step": config.play.step_key,
            "next_marker": config.play.next_marker_key,
        },
    )
    return keys


def _rec_path(path: str, template: str | None, config: Config) -> str:
    directory = Path(path)
    if not directory.is_dir():
        return path
    target = directory / expand_filename_template(_first(template, config.rec.filename))
    target.parent.mkdir(parents=True, exist_ok=True)
    return str(target)


def _rec_mode(path: str, append: bool, overwrite: bool) -> tuple[bool, bool]:
    target = Path(path)
    if target.exists():
        if target.stat().st_size == 0:
            overwrite = True
            append = False
        if not append and not overwrite:
            raise CommandError("file exists, use --overwrite or --append")
    else:
        append = False
    return append, overwrite


def _rec_file_mode(append: bool, overwrite: bool) -> str:
    if append:
        return "ab"
    return "wb" if overwrite else "xb"


def run_rec(args: Namespace, config: Config) -> None:
    """Record a terminal session into a file."""
    localecheck.check_utf8_locale()

    path = _rec_path(args.path, args.filename, config)
    fmt = args.format or (Format.RAW if args.raw else Format.ASCIICAST)
    append, overwrite = _rec_mode(path, args.append, args.overwrite)
    command = _first(args.command, config.rec.command)
    keys = _rec_keys(config)
    session_notifier = _get_notifier(config)
    record_input = args.input or config.rec.input
    exec_command = build_exec_command(command)
    exec_extra_env = build_exec_extra_env()

    with open(path, _rec_file_mode(append, overwrite)) as file:
        time_offset = reader.get_duration(path) if append and fmt is Format.ASCIICAST else 0

        logger.info(f"Recording session started, writing to {path}")
        if command is None:
            logger.info("Press <ctrl+d> or type 'exit' to end")

        cols, rows = args.tty_size or (None, None)
        tty = _open_tty(args.headless, _first(cols, args.cols), _first(rows, args.rows), "recording")
        try:
            theme = tty.get_theme()
            if fmt is Format.ASCIICAST:
                metadata = Metadata(
                    idle_time_limit=_first(args.idle_time_limit, config.rec.idle_time_limit),
                    command=command,
                    title=args.title,
                    env=capture_env(_first(args.env, config.rec.env, DEFAULT_ENV_VARS)),
                    theme=theme,
                )
                output = FileOutput(file, AsciicastEncoder(append, time_offset, metadata), True)
            else:
                output = FileOutput(file, RawEncoder(append))

            with Recorder(output, record_input, keys, session_notifier) as handler:
                ptyexec.exec_command(exec_command, exec_extra_env, tty, handler)
        finally:
            tty.close()

    logger.info("Recording session ended")


def run_play(args: Namespace, config: Config) -> None:
    """Replay a recording in the terminal."""
    speed = _first(args.speed, config.play.speed, 1.0)
    idle_time_limit = _first(args.idle_time_limit, config.play.idle_time_limit)

    logger.info(f"Replaying session from {args.filename}")

    while True:
        recording = reader.open_path(args.filename)
        tty = DevTty()
        try:
            keys = _play_keys(config)
            ended = player.play(
                recording, tty, speed, idle_time_limit, args.pause_on_markers, keys
            )
        finally:
            tty.close()
        if not args.loop:
            break

    logger.info("Playback ended" if ended else "Playback interrupted")


def run_cat(args: Namespace, config: Config) -> None:
    """Write the concatenation of several recordings to standard output."""
    out = sys.stdout.buffer
    encoder = V2Encoder(0)
    time_offset = 0
    first = True

    for path in args.filename:
        recording = reader.open_path(path)
        time = time_offset
        if first:
            out.write(encoder.header(recording.header))
            first = False
        for event in recording.events:
            time = time_offset + event.time
            out.write(encoder.event(dataclasses.replace(event, time=time)))
        time_offset = time

    out.flush()


def _convert_overwrite(path: str, overwrite: bool) -> bool:
    target = Path(path)
    if target.exists():
        if target.stat().st_size == 0:
            overwrite = True
        if not overwrite:
            raise CommandError("file exists, use --overwrite option to overwrite the file")
    return overwrite


def run_convert(args: Namespace, config: Config) -> None:
    """Convert a recording into another format."""
    recording = reader.open_path(args.input_filename)
    fmt = args.format or Format.ASCIICAST
    if fmt is Format.RAW:
        encoder = RawEncoder(False)
    else:
        encoder = AsciicastEncoder(False, 0, Metadata.from_header(recording.header))

    overwrite = _convert_overwrite(args.output_filename, args.overwrite)
    with open(args.output_filename, "wb" if overwrite else "xb") as file:
        encode_to_file(encoder, recording, file)


def run_upload(args: Namespace, config) -> None:
    """Upload a recording to the server."""
    reader.open_path(args.filename)
    response = api.upload_asciicast(args.filename, config)
    print(response.message if response.message is not None else response.url)


def run_auth(args: Namespace, config) -> None:
    """Print the URL that links this installation with a server account."""
    server_url = config.get_server_url()
    hostname = urlsplit(server_url).hostname
    auth_url = api.get_auth_url(config)

    print(
        "Open the following URL in a web browser to authenticate this asciinema CLI "
        f"with your {hostname} user account:\n"
    )
    print(f"{auth_url}\n")
    print(
        "This action will associate all recordings uploaded from this machine "
        "(past and future ones) with your account, allowing you to manage them "
        f"(change the title/theme, delete) at {hostname}."
    )