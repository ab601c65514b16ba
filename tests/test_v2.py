import json

import pytest

from termcast.cast import AsciicastError, Event, Header
from termcast.tty import Theme, TtySize
from termcast.v2 import (
    Encoder,
    format_hex_color,
    format_time,
    open_header,
    parse_event,
    parse_hex_color,
)

PALETTE16 = (
    "#241f31:#c01c28:#2ec27e:#f5c211:#1e78e4:#9841bb:#0ab9dc:#c0bfbc:"
    "#5e5c64:#ed333b:#57e389:#f8e45c:#51a1ff:#c061cb:#4fd2fd:#f6f5f4"
)


def parse_lines(data: bytes):
    return [json.loads(s) for s in data.decode("utf-8").split("\n") if s]


def test_open_header_minimal():
    recording = open_header('{"version": 2, "width": 100, "height": 50}').parse([])
    assert recording.header.version == 2
    assert (recording.header.cols, recording.header.rows) == (100, 50)
    assert recording.header.theme is None
    assert list(recording.events) == []


def test_open_header_full_theme():
    line = json.dumps(
        {
            "version": 2,
            "width": 100,
            "height": 50,
            "timestamp": 1704719152,
            "idle_time_limit": 1.5,
            "theme": {"fg": "#000000", "bg": "#ffffff", "palette": PALETTE16},
        }
    )
    header = open_header(line).parse([]).header
    assert header.theme.fg == (0, 0, 0)
    assert header.theme.bg == (0xFF, 0xFF, 0xFF)
    assert header.theme.palette[0] == (0x24, 0x1F, 0x31)
    assert len(header.theme.palette) == 16
    assert header.timestamp == 1704719152
    assert header.idle_time_limit == 1.5


def test_eight_colour_palette_is_doubled():
    palette = ":".join(PALETTE16.split(":")[:8])
    line = json.dumps(
        {"version": 2, "width": 80, "height": 24, "theme": {"fg": "#000000", "bg": "#ffffff", "palette": palette}}
    )
    theme = open_header(line).parse([]).header.theme
    assert len(theme.palette) == 16
    assert theme.palette[8:] == theme.palette[:8]


@pytest.mark.parametrize(
    "line",
    [
        '{"version": 1, "width": 80, "height": 24}',
        '{"version": 2, "height": 24}',
        '{"version": 2, "width": -1, "height": 24}',
        '{"version": 2, "width": 80, "height": 24, "theme": {"fg": "#000000", "bg": "#ffffff", "palette": "#000000:#111111"}}',
        '{"version": 2, "width": 80, "height": 24, "theme": {"fg": "black", "bg": "#ffffff", "palette": ""}}',
        "[1, 2]",
        "nope",
    ],
)
def test_open_header_rejects(line):
    with pytest.raises(AsciicastError):
        open_header(line)


def test_parse_event_variants():
    assert parse_event('[0.000001, "o", "ż"]') == Event.output(1, "ż")
    assert parse_event('[2.3, "i", "\\n"]') == Event.input(2_300_000, "\n")
    assert parse_event('[5.600001, "r", "80x40"]') == Event.resize(5_600_001, (80, 40))
    assert parse_event('[1.0, "m", "chapter"]') == Event.marker(1_000_000, "chapter")
    assert parse_event('[1.0, "xyz", "d"]') == Event(1_000_000, "x", "d")


def test_resize_event_holds_size():
    event = parse_event('[5.600001, "r", "80x40"]')
    assert event.data == TtySize(80, 40)


@pytest.mark.parametrize(
    "line",
    [
        '[1.0, "r", "80"]',
        '[1.0, "r", "80xabc"]',
        '[1.0, "r", "70000x1"]',
        '[1.0, "", "x"]',
        '[1.0, "o"]',
        '[1.0, "o", "a", "b"]',
        '["1.0", "o", "a"]',
        '[1.0, "o", 5]',
        '{"foo": 1}',
    ],
)
def test_parse_event_rejects(line):
    with pytest.raises(AsciicastError):
        parse_event(line)


def test_parse_skips_empty_lines_and_strips_newlines():
    parser = open_header('{"version": 2, "width": 100, "height": 50}')
    lines = ['[1.23, "o", "hello"]\n', "\n", '[10.5, "o", "\\r\\n"]\r\n', ""]
    assert list(parser.parse(lines).events) == [
        Event.output(1230000, "hello"),
        Event.output(10_500_000, "\r\n"),
    ]


def test_parse_hex_color():
    assert parse_hex_color("#241f31") == (0x24, 0x1F, 0x31)
    assert parse_hex_color("#24f31") is None
    assert parse_hex_color("#zz0000") is None
    assert parse_hex_color("") is None


def test_format_hex_color():
    assert format_hex_color((0, 100, 200)) == "#0064c8"
    assert format_hex_color((0, 1, 2)) == "#000102"


def test_format_time():
    assert format_time(1000001) == "1.000001"
    assert format_time(4000004) == "4.000004"


def test_encoder():
    data = bytearray()
    header = Header(version=2, cols=80, rows=24)

    enc = Encoder(0)
    data += enc.header(header)
    data += enc.event(Event.output(1000001, "hello\r\n"))

    enc = Encoder(1000001)
    data += enc.event(Event.output(1000001, "world"))
    data += enc.event(Event.input(2000002, " "))
    data += enc.event(Event.resize(3000003, (100, 40)))
    data += enc.event(Event.output(4000004, "żółć"))

    lines = parse_lines(bytes(data))

    assert lines[0]["version"] == 2
    assert lines[0]["width"] == 80
    assert lines[0]["height"] == 24
    assert lines[0].get("timestamp") is None
    assert lines[1] == [1.000001, "o", "hello\r\n"]
    assert lines[2] == [2.000002, "o", "world"]
    assert lines[3] == [3.000003, "i", " "]
    assert lines[4] == [4.000004, "r", "100x40"]
    assert lines[5] == [5.000005, "o", "żółć"]


def test_header_encoding():
    theme = Theme(
        fg=(0, 1, 2),
        bg=(0, 100, 200),
        palette=[(i * 10, i * 10 + 1, i * 10 + 2) for i in range(16)],
    )
    header = Header(
        version=2,
        cols=80,
        rows=24,
        timestamp=1704719152,
        idle_time_limit=1.5,
        command="/bin/bash",
        title="Demo",
        env={"SHELL": "/usr/bin/fish", "TERM": "xterm256-color"},
        theme=theme,
    )

    line = parse_lines(Encoder(0).header(header))[0]

    assert line["version"] == 2
    assert line["width"] == 80
    assert line["height"] == 24
    assert line["timestamp"] == 1704719152
    assert line["idle_time_limit"] == 1.5
    assert line["command"] == "/bin/bash"
    assert line["title"] == "Demo"
    assert len(line["env"]) == 2
    assert line["env"]["SHELL"] == "/usr/bin/fish"
    assert line["env"]["TERM"] == "xterm256-color"
    assert line["theme"]["fg"] == "#000102"
    assert line["theme"]["bg"] == "#0064c8"
    assert line["theme"]["palette"] == (
        "#000000:#0a0b0c:#141516:#1e1f20:#28292a:#323334:#3c3d3e:#464748:"
        "#505152:#5a5b5c:#646566:#6e6f70:#78797a:#828384:#8c8d8e:#969798"
    )


def test_header_encoding_omits_absent_fields():
    header = Header(version=2, cols=80, rows=24, env={})
    line = parse_lines(Encoder().header(header))[0]
    assert list(line) == ["version", "width", "height"]


def test_header_round_trip():
    header = Header(version=2, cols=120, rows=30, title="Demo", env={"TERM": "xterm"})
    encoded = Encoder().header(header).decode("utf-8")
    parsed = open_header(encoded).parse([]).header
    assert parsed == header


def test_event_time_trailing_zeros_trimmed():
    assert Encoder().event(Event.output(1500000, "a")).startswith(b"[1.5, ")


@pytest.mark.parametrize(
    "event",
    [
        Event.output(1000001, "he\x1b[1mllo\r\n"),
        Event.input(2300000, "\n"),
        Event.resize(5600001, (80, 40)),
        Event.marker(10500000, "label"),
        Event(1230000, "x", "other"),
    ],
)
def test_event_round_trip(event):
    line = Encoder().event(event).decode("utf-8")
    assert parse_event(line.rstrip("\n")) == event