"""Check that the locale uses an encoding the recorder can handle."""

from __future__ import annotations

import locale
import os

_ACCEPTED = ("US-ASCII", "UTF-8")


def _initialize_from_env() -> None:
    try:
        locale.setlocale(locale.LC_ALL, "")
    except locale.Error:
        pass


def get_encoding() -> str:
    """Character set name of the current locale."""
    encoding = locale.nl_langinfo(locale.CODESET)
    if encoding == "ANSI_X3.4-1968":
        encoding = "US-ASCII"
    return encoding


def _describe_env() -> str:
    for name in ("LC_ALL", "LC_CTYPE", "LANG"):
        value = os.environ.get(name)
        if value is not None:
            return f"{name}={value}"
    return ""


def check_utf8_locale() -> None:
    """Apply the environment's locale and raise RuntimeError unless it is ASCII or UTF-8."""
    _initialize_from_env()
    encoding = get_encoding()
    if encoding in _ACCEPTED:
        return
    raise RuntimeError(
        "asciinema requires ASCII or UTF-8 character encoding. "
        f"The environment ({_describe_env()}) specifies the character set \"{encoding}\". "
        "Check the output of `locale` command."
    )