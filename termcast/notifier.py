"""Desktop and terminal-multiplexer notifications."""

from __future__ import annotations

import os
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Mapping, Sequence


def _run(argv: Sequence[str], env: Mapping[str, str] | None = None) -> None:
    subprocess.run(
        list(argv),
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        env=env,
        check=False,
    )


class Notifier(ABC):
    """Something that shows a short message to the user."""

    @abstractmethod
    def notify(self, message: str) -> None:
        """Deliver ``message`` to the user."""


@dataclass
class TmuxNotifier(Notifier):
    path: str

    @classmethod
    def find(cls) -> TmuxNotifier | None:
        if os.environ.get("TMUX") is None:
            return None
        path = shutil.which("tmux")
        return cls(path) if path else None

    def notify(self, message: str) -> None:
        _run([self.path, "display-message", f"asciinema: {message}"])


@dataclass
class LibNotifyNotifier(Notifier):
    path: str

    @classmethod
    def find(cls) -> LibNotifyNotifier | None:
        path = shutil.which("notify-send")
        return cls(path) if path else None

    def notify(self, message: str) -> None:
        _run([self.path, "asciinema", message])


@dataclass
class AppleScriptNotifier(Notifier):
    path: str

    @classmethod
    def find(cls) -> AppleScriptNotifier | None:
        path = shutil.which("osascript")
        return cls(path) if path else None

    def notify(self, message: str) -> None:
        text = message.replace('"', '\\"')
        script = f'display notification "{text}" with title "asciinema"'
        _run([self.path, "-e", script])


@dataclass
class CustomNotifier(Notifier):
    """Runs a shell command with the message in ``$TEXT``."""

    command: str

    def notify(self, message: str) -> None:
        _run(["/bin/sh", "-c", self.command], env={**os.environ, "TEXT": message})


@dataclass
class NullNotifier(Notifier):
    def notify(self, message: str) -> None:
        return None


def get_notifier(custom_command: str | None = None) -> Notifier:
    """Pick the custom command if given, else the first available notifier."""
    if custom_command is not None:
        return CustomNotifier(custom_command)
    return (
        TmuxNotifier.find()
        or LibNotifyNotifier.find()
        or AppleScriptNotifier.find()
        or NullNotifier()
    )