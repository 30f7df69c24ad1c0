"""
webcase - Request & Naming Utilities.

Helpers for building ASGI scopes and receive callables used by the
in-process :class:`~webcase.client.TestClient`, plus the small name
conversions shared by the client and the fixture loader.
"""

from __future__ import annotations

import re
from typing import List, Mapping, Optional


def make_test_scope(
    method: str = "GET",
    path: str = "/",
    query_string: str = "",
    headers: Optional[List[tuple]] = None,
    scheme: str = "http",
    client: Optional[tuple] = None,
    server: Optional[tuple] = None,
    root_path: str = "",
    http_version: str = "1.1",
) -> dict:
    """
    Build a minimal ASGI HTTP scope.

    Args:
        method: HTTP method.
        path: Request path.
        query_string: Raw query string (without ``?``).
        headers: List of ``(name, value)`` tuples (strings or bytes).
        scheme: URL scheme (``http`` or ``https``).
        client: ``(host, port)`` tuple.
        server: ``(host, port)`` tuple.
        root_path: ASGI root path.
        http_version: HTTP protocol version.

    Returns:
        ASGI scope dictionary.
    """
    raw_headers: list[tuple[bytes, bytes]] = []
    for name, value in headers or ():
        raw_headers.append((
            name.encode("latin-1") if isinstance(name, str) else name,
            value.encode("latin-1") if isinstance(value, str) else value,
        ))

    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": http_version,
        "method": method.upper(),
        "path": path,
        "raw_path": path.encode("utf-8"),
        "query_string": (
            query_string.encode("utf-8")
            if isinstance(query_string, str)
            else query_string
        ),
        "headers": raw_headers,
        "scheme": scheme,
        "server": server or ("testserver", 80),
        "client": client or ("127.0.0.1", 12345),
        "root_path": root_path,
    }


def make_test_receive(body: bytes = b""):
    """
    Create an ASGI receive callable that yields *body* once, then
    ``http.disconnect`` on every later call.
    """
    sent = False

    async def receive():
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        return {"type": "http.disconnect"}

    return receive


def header_name(key: str) -> str:
    """
    Normalise a server parameter key to a lower-case header name.

    CGI-style keys are accepted: ``HTTP_X_REQUESTED_WITH`` becomes
    ``x-requested-with`` and ``CONTENT_TYPE`` becomes ``content-type``.
    Plain header names are only lower-cased.
    """
    if key.startswith("HTTP_"):
        return key[5:].replace("_", "-").lower()
    if key in ("CONTENT_TYPE", "CONTENT_LENGTH"):
        return key.replace("_", "-").lower()
    return key.lower()


def normalize_headers(params: Optional[Mapping[str, str]]) -> dict[str, str]:
    """Return *params* keyed by normalised header name."""
    return {header_name(k): str(v) for k, v in (params or {}).items()}


def parse_set_cookie(header: str) -> tuple[str, str, bool]:
    """
    Split one ``Set-Cookie`` header into ``(name, value, expired)``.

    A cookie is expired when it carries ``Max-Age`` <= 0 or an empty value.
    """
    pair, *attrs = header.split(";")
    name, _, value = pair.partition("=")
    value = value.strip()
    expired = not value or value == '""'
    for attr in attrs:
        key, _, arg = attr.strip().partition("=")
        if key.lower() == "max-age" and arg.strip().lstrip("-").isdigit():
            expired = expired or int(arg) <= 0
    return name.strip(), value, expired


_CAMEL_BOUNDARY =re.compile(r"(?<=[a-z0-9])([A-Z])")


def to_snake_case(name: str) -> str:
    """``createdAt`` -> ``created_at``; snake_case input is returned as-is."""
    return _CAMEL_BOUNDARY.sub(r"_\1", name).lower()


def to_camel_case(name: str) -> str:
    """``created_at`` -> ``createdAt``."""
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)
