"""Command-line entry point."""

from __future__ import annotations

import argparse
import re
import sys
from importlib.metadata import PackageNotFoundError, version

from . import commands, logger
from .api import ApiError
from .cast import AsciicastError
from .commands import CommandError, Format
from .config import Config, ConfigError

_UNSIGNED = re.compile(r"\+?[0-9]+")

_COMMANDS = {
    "rec": commands.run_rec,
    "play": commands.run_play,
    "cat": commands.run_cat,
    "convert": commands.run_convert,
    "upload": commands.run_upload,
    "auth": commands.run_auth,
}

_ERRORS = (CommandError, AsciicastError, ConfigError, ApiError, OSError, RuntimeError)


def _parse_u16(text: str) -> int:
    if not text:
        raise argparse.ArgumentTypeError("cannot parse integer from empty string")
    if not _UNSIGNED.fullmatch(text):
        raise argparse.ArgumentTypeError("invalid digit found in string")
    value = int(text)
    if value > 0xFFFF:
        raise argparse.ArgumentTypeError("number too large to fit in target type")
    return value


def parse_tty_size(text: str) -> tuple[int | None, int | None]:
    """Parse ``COLSxROWS``, where either side may be left out."""
    cols, sep, rows = text.partition("x")
    if not sep:
        raise argparse.ArgumentTypeError(text)
    if rows == "":
        return _parse_u16(cols), None
    if cols == "":
        return None, _parse_u16(rows)
    return _parse_u16(cols), _parse_u16(rows)


def _package_version() -> str:
    try:
        return version("termcast")
    except PackageNotFoundError:
        return "0.0.0"


def _global_options(parser: argparse.ArgumentParser, default_none: bool) -> None:
    parser.add_argument(
        "--server-url",
        default=None if default_none else argparse.SUPPRESS,
        help="asciinema server URL",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        default=False if default_none else argparse.SUPPRESS,
        help="Quiet mode, i.e. suppress diagnostic messages",
    )


def build_parser() -> argparse.ArgumentParser:
    """Argument parser for all subcommands."""
    parser = argparse.ArgumentParser(prog="termcast")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {_package_version()}")
    _global_options(parser, True)

    common = argparse.ArgumentParser(add_help=False)
    _global_options(common, False)

    sub = parser.add_subparsers(dest="subcommand", required=True)

    rec = sub.add_parser("rec", parents=[common], help="Record a terminal session")
    rec.add_argument("path", help="Output path - either a file or a directory path")
    rec.add_argument("-I", "--input", "--stdin", action="store_true", help="Enable input recording")
    mode = rec.add_mutually_exclusive_group()
    mode.add_argument("-a", "--append", action="store_true", help="Append to an existing recording file")
    mode.add_argument("--overwrite", action="store_true", help="Overwrite target file if it already exists")
    rec.add_argument("-f", "--format", type=Format, choices=list(Format), help="Recording file format [default: asciicast]")
    rec.add_argument("--raw", action="store_true", help=argparse.SUPPRESS)
    rec.add_argument("-c", "--command", help="Command to record [default: $SHELL]")
    rec.add_argument("--filename", metavar="TEMPLATE", help="Filename template, used when recording to a directory")
    rec.add_argument("--env", help="List of env vars to save [default: TERM,SHELL]")
    rec.add_argument("-t", "--title", help="Title of the recording")
    rec.add_argument("-i", "--idle-time-limit", type=float, metavar="SECS", help="Limit idle time to a given number of seconds")
    rec.add_argument("--headless", action="store_true", help="Use headless mode - don't use TTY for input/output")
    rec.add_argument("--tty-size", type=parse_tty_size, metavar="COLSxROWS", help="Override terminal size for the recorded command")
    rec.add_argument("--cols", type=_parse_u16, help=argparse.SUPPRESS)
    rec.add_argument("--rows", type=_parse_u16, help=argparse.SUPPRESS)

    play = sub.add_parser("play", parents=[common], help="Replay a terminal session")
    play.add_argument("filename", metavar="FILENAME")
    play.add_argument("-i", "--idle-time-limit", type=float, metavar="SECS", help="Limit idle time to a given number of seconds")
    play.add_argument("-s", "--speed", type=float, help="Set playback speed")
    play.add_argument("-l", "--loop", action="store_true", help="Loop loop loop loop")
    play.add_argument("-m", "--pause-on-markers", action="store_true", help="Automatically pause on markers")

    cat = sub.add_parser("cat", parents=[common], help="Concatenate multiple recordings")
    cat.add_argument("filename", nargs="+")

    convert = sub.add_parser("convert", parents=[common], help="Convert a recording into another format")
    convert.add_argument("input_filename", metavar="INPUT_FILENAME")
    convert.add_argument("output_filename")
    convert.add_argument("-f", "--format", type=Format, choices=list(Format), help="Output file format [default: asciicast]")
    convert.add_argument("--overwrite", action="store_true", help="Overwrite target file if it already exists")

    upload = sub.add_parser("upload", parents=[common], help="Upload a recording to an asciinema server")
    upload.add_argument("filename", help="Filename/path of asciicast to upload")

    sub.add_parser("auth", parents=[common], help="Authenticate this CLI with an asciinema server account")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the command line; returns the process exit status."""
    args = build_parser().parse_args(argv)
    try:
        config = Config.load(args.server_url)
        if args.quiet:
            logger.disable()
        _COMMANDS[args.subcommand](args, config)
    except _ERRORS as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())