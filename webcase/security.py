"""
webcase - Security Tokens & Credentials.

:class:`SecurityToken` is what :meth:`Harness.authenticate` stores in the
session under :func:`security_key`; applications under test decode it
with :meth:`SecurityToken.loads` to recover the authenticated user.
"""

from __future__ import annotations

import base64
import json
from dataclasses import asdict, dataclass, field
from typing import Any, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class UserInterface(Protocol):
    """Anything with a ``username`` and a ``password`` can be authenticated."""

    username: str
    password: str


def security_key(firewall: str) -> str:
    """Session key under which the token for *firewall* is stored."""
    return f"_security_{firewall}"


@dataclass
class SecurityToken:
    """
    A pre-authenticated username/password token scoped to one firewall.

    The password is never part of the token.
    """

    username: str
    firewall: str
    roles: List[str] = field(default_factory=list)
    user_id: Optional[Any] = None

    @classmethod
    def for_user(cls, user: UserInterface, firewall: str) -> "SecurityToken":
        roles = getattr(user, "roles", None) or []
        return cls(
            username=user.username,
            firewall=firewall,
            roles=list(roles),
            user_id=getattr(user, "id", None),
        )

    def dumps(self) -> str:
        return json.dumps(asdict(self), sort_keys=True, default=str)

    @classmethod
    def loads(cls, raw: str) -> "SecurityToken":
        return cls(**json.loads(raw))

    def has_role(self, role: str) -> bool:
        return role in self.roles


def basic_auth_header(username: str, password: str) -> str:
    """``Authorization`` value for HTTP basic authentication."""
    credentials = f"{username}:{password}".encode("utf-8")
    return "Basic " + base64.b64encode(credentials).decode("ascii")


def parse_basic_auth(header: Optional[str]) -> Optional[tuple[str, str]]:
    """
    Decode a basic ``Authorization`` header into ``(username, password)``.

    Returns ``None`` for a missing, non-basic or malformed header.
    """
    if not header or not header.lower().startswith("basic "):
        return None
    try:
        decoded = base64.b64decode(header[6:].strip()).decode("utf-8")
    except (ValueError, UnicodeDecodeError):
        return None
    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return username, password
