import pytest

from termcast.notifier import (
    AppleScriptNotifier,
    CustomNotifier,
    LibNotifyNotifier,
    NullNotifier,
    TmuxNotifier,
    get_notifier,
)


def _fake_program(tmp_path, name):
    bindir = tmp_path / "bin"
    bindir.mkdir(exist_ok=True)
    out = tmp_path / f"{name}.out"
    script = bindir / name
    script.write_text(
        '#!/bin/sh\nfor a in "$@"; do printf \'%s\\n\' "$a"; done > "' + str(out) + '"\n'
    )
    script.chmod(0o755)
    return script, out


def test_tmux_notifier_args(tmp_path, monkeypatch):
    script, out = _fake_program(tmp_path, "tmux")
    monkeypatch.setenv("PATH", str(script.parent))
    monkeypatch.setenv("TMUX", "/tmp/tmux-sock,1,0")
    notifier = get_notifier(None)
    assert notifier == TmuxNotifier(str(script))
    notifier.notify("hello")
    assert out.read_text().splitlines() == ["display-message", "asciinema: hello"]


def test_libnotify_notifier_args(tmp_path, monkeypatch):
    script, out = _fake_program(tmp_path, "notify-send")
    monkeypatch.setenv("PATH", str(script.parent))
    monkeypatch.delenv("TMUX", raising=False)
    notifier = get_notifier(None)
    assert notifier == LibNotifyNotifier(str(script))
    notifier.notify("Paused recording")
    assert out.read_text().splitlines() == ["asciinema", "Paused recording"]


def test_applescript_notifier_escapes_quotes(tmp_path, monkeypatch):
    script, out = _fake_program(tmp_path, "osascript")
    monkeypatch.setenv("PATH", str(script.parent))
    monkeypatch.delenv("TMUX", raising=False)
    notifier = get_notifier(None)
    assert notifier == AppleScriptNotifier(str(script))
    notifier.notify('say "hi"')
    assert out.read_text().splitlines() == [
        "-e",
        'display notification "say \\"hi\\"" with title "asciinema"',
    ]


def test_custom_notifier_passes_text(tmp_path):
    out = tmp_path / "text.out"
    command = f'printf %s "$TEXT" > "{out}"'
    notifier = get_notifier(command)
    assert notifier == CustomNotifier(command)
    notifier.notify("Marker added")
    assert out.read_text() == "Marker added"


def test_get_notifier_custom_command():
    assert get_notifier("true") == CustomNotifier("true")


def test_get_notifier_nothing_available(tmp_path, monkeypatch):
    empty = tmp_path / "empty"
    empty.mkdir()
    monkeypatch.setenv("PATH", str(empty))
    monkeypatch.delenv("TMUX", raising=False)
    assert get_notifier(None) == NullNotifier()


def test_get_notifier_prefers_tmux(tmp_path, monkeypatch):
    tmux, out = _fake_program(tmp_path, "tmux")
    _fake_program(tmp_path, "notify-send")
    monkeypatch.setenv("PATH", str(tmux.parent))
    monkeypatch.setenv("TMUX", "/tmp/tmux-sock,1,0")

    notifier = get_notifier(None)
    assert notifier == TmuxNotifier(str(tmux))
    notifier.notify("hi")
    assert out.read_text().splitlines() == ["display-message", "asciinema: hi"]


@pytest.mark.parametrize("with_tmux_env", [False])
def test_get_notifier_without_tmux_env_uses_notify_send(tmp_path, monkeypatch, with_tmux_env):
    _fake_program(tmp_path, "tmux")
    send, out = _fake_program(tmp_path, "notify-send")
    monkeypatch.setenv("PATH", str(send.parent))
    monkeypatch.delenv("TMUX", raising=False)

    notifier = get_notifier(None)
    assert notifier == LibNotifyNotifier(str(send))
    notifier.notify("hi")
    assert out.read_text().splitlines() == ["asciinema", "hi"]