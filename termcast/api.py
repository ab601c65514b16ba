"""Client for the recording server's HTTP API."""

from __future__ import annotations

import os
import platform
import sys
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version
from typing import Protocol
from urllib.parse import urlsplit, urlunsplit

import requests


class ApiError(Exception):
    """Raised when a request to the server fails."""


class _ServerConfig(Protocol):
    def get_server_url(self) -> str: ...

    def get_install_id(self) -> str: ...


@dataclass
class UploadResponse:
    url: str
    message: str | None = None


@dataclass
class StreamResponse:
    ws_producer_url: str
    url: str


def _with_path(url: str, path: str) -> str:
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, "/" + path.lstrip("/"), parts.query, parts.fragment))


def _hostname(url: str) -> str:
    return urlsplit(url).hostname or ""


def _username() -> str:
    return os.environ.get("USER", "")


def _package_version() -> str:
    try:
        return version("termcast")
    except PackageNotFoundError:
        return "0.0.0"


def build_user_agent() -> str:
    """User-Agent header value sent with every request."""
    target = f"{platform.machine() or 'unknown'}-{sys.platform}"
    return f"asciinema/{_package_version()} target/{target}"


def _headers() -> dict[str, str]:
    return {"User-Agent": build_user_agent(), "Accept": "application/json"}


def _json(response: requests.Response) -> dict:
    try:
        doc = response.json()
    except ValueError as exc:
        raise ApiError(f"invalid response from server: {exc}") from exc
    if not isinstance(doc, dict):
        raise ApiError("invalid response from server: expected a JSON object")
    return doc


def _raise_for_status(response: requests.Response) -> None:
    try:
        response.raise_for_status()
    except requests.HTTPError as exc:
        raise ApiError(str(exc)) from exc


def get_auth_url(config: _ServerConfig) -> str:
    """URL the user opens to link this installation with an account."""
    return _with_path(config.get_server_url(), f"connect/{config.get_install_id()}")


def upload_asciicast(path: str | os.PathLike, config: _ServerConfig) -> UploadResponse:
    """Upload a recording file and return the server's answer."""
    server_url = config.get_server_url()
    install_id = config.get_install_id()
    url = _with_path(server_url, "api/asciicasts")

    try:
        with open(path, "rb") as file:
            response = requests.post(
                url,
                files={"asciicast": (os.path.basename(os.fspath(path)), file)},
                auth=(_username(), install_id),
                headers=_headers(),
            )
    except OSError as exc:
        raise ApiError(str(exc)) from exc

    if response.status_code == 413:
        raise ApiError("The size of the recording exceeds the server's configured limit")

    _raise_for_status(response)
    doc = _json(response)
    if not isinstance(doc.get("url"), str):
        raise ApiError("invalid response from server: missing field `url`")
    message = doc.get("message")
    return UploadResponse(url=doc["url"], message=message if isinstance(message, str) else None)


def create_user_stream(stream_id: str, config: _ServerConfig) -> StreamResponse:
    """Create a new stream (empty id) or look up an existing one."""
    server_url = config.get_server_url()
    hostname = _hostname(server_url)
    install_id = config.get_install_id()

    if stream_id:
        method, url = "GET", _with_path(server_url, f"api/user/streams/{stream_id}")
    else:
        method, url = "POST", _with_path(server_url, "api/streams")

    try:
        response = requests.request(
            method, url, auth=(_username(), install_id), headers=_headers()
        )
    except requests.RequestException as exc:
        raise ApiError(f"cannot obtain stream producer endpoint: {exc}") from exc

    if response.status_code == 401:
        raise ApiError(
            f"this CLI hasn't been authenticated with {hostname} - run `ascinema auth` first"
        )

    if response.status_code == 404:
        try:
            reason = response.json().get("reason")
        except (ValueError, AttributeError):
            reason = None
        if isinstance(reason, str):
            raise ApiError(reason)
        raise ApiError(f"{hostname} doesn't support streaming")

    _raise_for_status(response)
    doc = _json(response)
    for key in ("ws_producer_url", "url"):
        if not isinstance(doc.get(key), str):
            raise ApiError(f"invalid response from server: missing field `{key}`")
    return StreamResponse(ws_producer_url=doc["ws_producer_url"], url=doc["url"])