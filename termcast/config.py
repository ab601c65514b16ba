"""User configuration: layered TOML files, environment variables and install id."""

from __future__ import annotations

import os
import tomllib
import uuid
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlsplit, urlunsplit

DEFAULT_SERVER_URL = "https://asciinema.org"
DEFAULT_FILENAME_TEMPLATE = "%Y-%m-%d-%H-%M-%S-{pid}.cast"
INSTALL_ID_FILENAME = "install-id"
SYSTEM_CONFIG_PATH = Path("/etc/asciinema/config.toml")
ENV_PREFIX = "ASCIINEMA_"

Key = bytes | None

_TRUE = {"1", "true", "on", "yes"}
_FALSE = {"0", "false", "off", "no"}
_BOOL_FIELDS = {"input", "enabled"}
_FLOAT_FIELDS = {"speed", "idle_time_limit"}


class ConfigError(Exception):
    """Raised for unreadable or invalid configuration."""


@dataclass
class RecSettings:
    command: str | None = None
    filename: str = DEFAULT_FILENAME_TEMPLATE
    input: bool = False
    env: str | None = None
    idle_time_limit: float | None = None
    prefix_key: str | None = None
    pause_key: str | None = None
    add_marker_key: str | None = None


@dataclass
class PlaySettings:
    speed: float | None = None
    idle_time_limit: float | None = None
    pause_key: str | None = None
    step_key: str | None = None
    next_marker_key: str | None = None


@dataclass
class StreamSettings:
    command: str | None = None
    input: bool = False
    env: str | None = None
    prefix_key: str | None = None
    pause_key: str | None = None


@dataclass
class NotificationSettings:
    enabled: bool = True
    command: str | None = None


def _to_bool(value: Any, path: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
    raise ConfigError(f"invalid boolean value for `{path}`: {value!r}")


def _to_float(value: Any, path: str) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"invalid number for `{path}`: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            pass
    raise ConfigError(f"invalid number for `{path}`: {value!r}")


def _to_str(value: Any, path: str) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ConfigError(f"invalid string for `{path}`: {value!r}")


def _table(value: Any, path: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"`{path}` must be a table")
    return value


def _section(cls, table: dict, path: str):
    kwargs = {}
    for f in fields(cls):
        if f.name not in table:
            continue
        value = table[f.name]
        key = f"{path}.{f.name}"
        if f.name in _BOOL_FIELDS:
            kwargs[f.name] = _to_bool(value, key)
        elif f.name in _FLOAT_FIELDS:
            kwargs[f.name] = _to_float(value, key)
        else:
            kwargs[f.name] = _to_str(value, key)
    return cls(**kwargs)


def _merge(base: dict, layer: Mapping) -> None:
    for key, value in layer.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        elif isinstance(value, Mapping):
            base[key] = {}
            _merge(base[key], value)
        else:
            base[key] = value


def _set_path(tree: dict, parts: list[str], value: Any) -> None:
    node = tree
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = node[part] = {}
        node = child
    node[parts[-1]] = value


def _read_toml(path: Path) -> dict:
    try:
        with open(path, "rb") as file:
            return tomllib.load(file)
    except FileNotFoundError:
        return {}
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"{path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"cannot read {path}: {exc}") from exc


def _env_layer(env: Mapping[str, str]) -> dict:
    layer: dict = {}
    for name, value in env.items():
        if not name.upper().startswith(ENV_PREFIX):
            continue
        parts = name[len(ENV_PREFIX):].lower().split("_")
        if any(not part for part in parts):
            continue
        _set_path(layer, parts, value)
    if "ASCIINEMA_SERVER_URL" not in env and "ASCIINEMA_API_URL" in env:
        _set_path(layer, ["server", "url"], env["ASCIINEMA_API_URL"])
    return layer


def config_home(env: Mapping[str, str] | None = None) -> Path:
    """Directory holding the user's configuration files."""
    env = os.environ if env is None else env
    if "ASCIINEMA_CONFIG_HOME" in env:
        return Path(env["ASCIINEMA_CONFIG_HOME"])
    if "XDG_CONFIG_HOME" in env:
        return Path(env["XDG_CONFIG_HOME"]) / "asciinema"
    if "HOME" in env:
        return Path(env["HOME"]) / ".config" / "asciinema"
    raise ConfigError("need $HOME or $XDG_CONFIG_HOME or $ASCIINEMA_CONFIG_HOME")


def parse_server_url(url: str) -> str:
    """Validate a server URL and return it in normalised form."""
    parts = urlsplit(url.strip())
    if not parts.scheme:
        raise ConfigError(f"invalid server URL: {url}")
    if not parts.hostname:
        raise ConfigError("server URL is missing a host")
    path = parts.path or "/"
    return urlunsplit((parts.scheme.lower(), parts.netloc, path, parts.query, parts.fragment))


def read_install_id(path: str | os.PathLike) -> str | None:
    """Read a stored install id, or None when none was stored yet."""
    try:
        return Path(path).read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise ConfigError(f"cannot read install id: {exc}") from exc


def _write_file(path: Path, content: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot write {path}: {exc}") from exc


def _ask_for_server_url() -> str:
    print("No asciinema server configured for this CLI.")
    try:
        answer = input(f"Enter the server URL to use by default [{DEFAULT_SERVER_URL}]: ")
    except (EOFError, KeyboardInterrupt) as exc:
        raise ConfigError("no server URL given") from exc
    print()
    return answer.strip() or DEFAULT_SERVER_URL


def parse_key(key: str) -> Key:
    """Parse a key definition: a single character, ``^x`` or ``C-x``/``C+x``.

    An empty definition disables the binding and yields None.
    """

    def ctrl(c: str) -> bytes:
        return bytes([ord(c.upper()) - 0x40])

    def alpha(c: str) -> bool:
        return c.isascii() and c.isalpha()

    match len(key):
        case 0:
            return None
        case 1:
            return key.encode("utf-8")
        case 2 if key[0] == "^" and alpha(key[1]):
            return ctrl(key[1])
        case 3 if key[0].upper() == "C" and key[1] in "+-" and alpha(key[2]):
            return ctrl(key[2])
    raise ConfigError(f"invalid key definition '{key}'")


@dataclass
class Config:
    """Effective configuration after merging every source."""

    home: Path
    server_url: str | None = None
    rec: RecSettings = field(default_factory=RecSettings)
    play: PlaySettings = field(default_factory=PlaySettings)
    stream: StreamSettings = field(default_factory=StreamSettings)
    notifications: NotificationSettings = field(default_factory=NotificationSettings)

    @classmethod
    def load(cls, server_url: str | None = None, env: Mapping[str, str] | None = None) -> Config:
        """Merge the system file, user defaults, user config, environment and override."""
        env = os.environ if env is None else env
        home = config_home(env)

        merged: dict = {}
        for path in (SYSTEM_CONFIG_PATH, home / "defaults.toml", home / "config.toml"):
            _merge(merged, _read_toml(path))
        _merge(merged, _env_layer(env))
        if server_url is not None:
            _set_path(merged, ["server", "url"], server_url)

        server = _table(merged.get("server"), "server")
        cmd = _table(merged.get("cmd"), "cmd")
        url = server.get("url")

        return cls(
            home=home,
            server_url=_to_str(url, "server.url") if url is not None else None,
            rec=_section(RecSettings, _table(cmd.get("rec"), "cmd.rec"), "cmd.rec"),
            play=_section(PlaySettings, _table(cmd.get("play"), "cmd.play"), "cmd.play"),
            stream=_section(StreamSettings, _table(cmd.get("stream"), "cmd.stream"), "cmd.stream"),
            notifications=_section(
                NotificationSettings,
                _table(merged.get("notifications"), "notifications"),
                "notifications",
            ),
        )

    def get_server_url(self) -> str:
        """The configured server URL, asking for and saving one when none is set."""
        if self.server_url is not None:
            return parse_server_url(self.server_url)
        url = parse_server_url(_ask_for_server_url())
        _write_file(self.home / "defaults.toml", f'[server]\nurl = "{url}"\n')
        self.server_url = url
        return url

    def get_install_id(self) -> str:
        """The install id of this machine, created and stored on first use."""
        path = self.home / INSTALL_ID_FILENAME
        install_id = read_install_id(path)
        if install_id is None:
            install_id = str(uuid.uuid4())
            _write_file(path, install_id)
        return install_id