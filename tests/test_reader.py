import io

import pytest

from termcast.cast import AsciicastError, Event
from termcast.reader import get_duration, open_cast, open_path

MINIMAL_JSON = '{"version": 1, "width": 100, "height": 50, "stdout": [[1.23, "hello"]]}\n'

FULL_JSON = r"""{
  "version": 1,
  "width": 100,
  "height": 50,
  "stdout": [
    [0.000001, "ż"],
    [1.0, "ółć"],
    [10.5, "\r\n"]
  ]
}
"""

MINIMAL_CAST = '{"version": 2, "width": 100, "height": 50}\n[1.23, "o", "hello"]\n'

FULL_CAST = (
    '{"version": 2, "width": 100, "height": 50, "timestamp": 1509091818, '
    '"theme": {"fg": "#000000", "bg": "#ffffff", "palette": '
    '"#241f31:#c01c28:#2ec27e:#f5c211:#1e78e4:#9841bb:#0ab9dc:#c0bfbc:'
    '#5e5c64:#ed333b:#57e389:#f8e45c:#51a1ff:#c061cb:#4fd2fd:#f6f5f4"}}\n'
    '[0.000001, "o", "ż"]\n'
    '[1.0, "o", "ółć"]\n'
    "\n"
    '[2.3, "i", "\\n"]\n'
    '[5.600001, "r", "80x40"]\n'
    '[10.5, "o", "\\r\\n"]\n'
)


@pytest.fixture
def write_file(tmp_path):
    def write(name, content):
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return write


def test_open_v1_minimal(write_file):
    recording = open_path(write_file("minimal.json", MINIMAL_JSON))
    events = list(recording.events)

    assert recording.header.version == 1
    assert (recording.header.cols, recording.header.rows) == (100, 50)
    assert recording.header.theme is None
    assert events[0] == Event.output(1230000, "hello")


def test_open_v1_full(write_file):
    recording = open_path(write_file("full.json", FULL_JSON))
    events = list(recording.events)

    assert recording.header.version == 1
    assert (recording.header.cols, recording.header.rows) == (100, 50)
    assert events == [
        Event.output(1, "ż"),
        Event.output(1000000, "ółć"),
        Event.output(10500000, "\r\n"),
    ]


def test_open_v2_minimal(write_file):
    recording = open_path(write_file("minimal.cast", MINIMAL_CAST))
    events = list(recording.events)

    assert (recording.header.cols, recording.header.rows) == (100, 50)
    assert recording.header.theme is None
    assert events[0] == Event.output(1230000, "hello")


def test_open_v2_full(write_file):
    recording = open_path(write_file("full.cast", FULL_CAST))
    events = list(recording.events)[:5]
    theme = recording.header.theme

    assert (recording.header.cols, recording.header.rows) == (100, 50)
    assert theme.fg == (0, 0, 0)
    assert theme.bg == (0xFF, 0xFF, 0xFF)
    assert theme.palette[0] == (0x24, 0x1F, 0x31)
    assert events == [
        Event.output(1, "ż"),
        Event.output(1_000_000, "ółć"),
        Event.input(2_300_000, "\n"),
        Event.resize(5_600_001, (80, 40)),
        Event.output(10_500_000, "\r\n"),
    ]


def test_open_cast_from_stream():
    recording = open_cast(io.StringIO(MINIMAL_CAST))
    assert recording.header.version == 2
    assert list(recording.events) == [Event.output(1230000, "hello")]


def test_open_cast_v1_from_stream():
    recording = open_cast(io.StringIO(FULL_JSON))
    assert recording.header.version == 1
    assert len(list(recording.events)) == 3


def test_open_cast_empty():
    with pytest.raises(AsciicastError, match="empty file"):
        open_cast(io.StringIO(""))


def test_open_path_empty_file(write_file):
    with pytest.raises(AsciicastError, match="can't open asciicast file: empty file"):
        open_path(write_file("empty.cast", ""))


def test_open_path_missing(tmp_path):
    with pytest.raises(AsciicastError, match="can't open asciicast file"):
        open_path(tmp_path / "missing.cast")


def test_open_path_garbage(write_file):
    with pytest.raises(AsciicastError, match="can't open asciicast file"):
        open_path(write_file("garbage.cast", "hello world\n"))


def test_open_path_unsupported_version(write_file):
    path = write_file("v3.json", '{"version": 3, "width": 80, "height": 24, "stdout": []}')
    with pytest.raises(AsciicastError, match="unsupported asciicast version"):
        open_path(path)


def test_bad_event_line_raises_on_iteration(write_file):
    recording = open_path(write_file("bad.cast", MINIMAL_CAST + '[1.0, "r", "80"]\n'))
    events = iter(recording.events)
    assert next(events) == Event.output(1230000, "hello")
    with pytest.raises(AsciicastError):
        next(events)


def test_get_duration_v2(write_file):
    assert get_duration(write_file("full.cast", FULL_CAST)) == 10_500_000


def test_get_duration_v1(write_file):
    assert get_duration(write_file("full.json", FULL_JSON)) == 10_500_000


def test_get_duration_without_events(write_file):
    path = write_file("header.cast", '{"version": 2, "width": 100, "height": 50}\n')
    assert get_duration(path) == 0