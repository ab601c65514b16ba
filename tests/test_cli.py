import argparse
import json

import pytest

from termcast import cli
from termcast.commands import Format

CAST = '{"version": 2, "width": 80, "height": 24}\n[1.0, "o", "a"]\n'


@pytest.mark.parametrize(
    "text, expected",
    [
        ("80x24", (80, 24)),
        ("80x", (80, None)),
        ("x24", (None, 24)),
        ("+80x24", (80, 24)),
    ],
)
def test_parse_tty_size(text, expected):
    assert cli.parse_tty_size(text) == expected


@pytest.mark.parametrize("text", ["80", "x", "axb", "70000x24", "80x-1"])
def test_parse_tty_size_errors(text):
    with pytest.raises(argparse.ArgumentTypeError):
        cli.parse_tty_size(text)


def test_parse_tty_size_without_separator_reports_text():
    with pytest.raises(argparse.ArgumentTypeError, match="^80$"):
        cli.parse_tty_size("80")


def test_global_options_before_and_after_subcommand():
    args = cli.build_parser().parse_args(
        ["--server-url", "https://example.com", "rec", "demo.cast", "-I", "--overwrite", "-q"]
    )
    assert args.subcommand == "rec"
    assert args.server_url == "https://example.com"
    assert args.quiet is True
    assert args.input is True
    assert args.overwrite is True
    assert args.path == "demo.cast"


def test_rec_defaults_and_tty_size():
    args = cli.build_parser().parse_args(["rec", "demo.cast", "--tty-size", "100x50", "-c", "ls"])
    assert args.tty_size == (100, 50)
    assert args.command == "ls"
    assert args.quiet is False
    assert args.format is None


def test_rec_append_conflicts_with_overwrite():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["rec", "demo.cast", "--append", "--overwrite"])


def test_play_options():
    args = cli.build_parser().parse_args(["play", "demo.cast", "-s", "2", "--loop", "-m"])
    assert (args.speed, args.loop, args.pause_on_markers) == (2.0, True, True)


def test_convert_format():
    args = cli.build_parser().parse_args(["convert", "a.cast", "b.raw", "-f", "raw"])
    assert args.format is Format.RAW


def test_cat_requires_filename():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["cat"])


def test_main_cat(tmp_path, monkeypatch, capsysbinary):
    monkeypatch.setenv("ASCIINEMA_CONFIG_HOME", str(tmp_path))
    source = tmp_path / "a.cast"
    source.write_text(CAST, encoding="utf-8")
    assert cli.main(["cat", str(source)]) == 0
    lines = capsysbinary.readouterr().out.decode().splitlines()
    assert json.loads(lines[0])["width"] == 80
    assert json.loads(lines[1])[2] == "a"


def test_main_reports_errors(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("ASCIINEMA_CONFIG_HOME", str(tmp_path))
    assert cli.main(["cat", str(tmp_path / "missing.cast")]) == 1
    assert "can't open asciicast file" in capsys.readouterr().err