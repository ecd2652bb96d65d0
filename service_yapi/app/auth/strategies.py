"""
Authentication strategies for reaching YApi.

Exactly one strategy is chosen when the client is built and it never
changes afterwards. Session state for credential logins lives on the
``CredentialAuth`` instance and is only changed by the client's login and
session-invalidation steps.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from shared.config import YApiSettings


@dataclass(frozen=True)
class TokenAuth:
    """Static project token attached to every request."""

    token: str

    def query_params(self) -> Dict[str, Any]:
        return {"token": self.token}

    def body_fields(self) -> Dict[str, Any]:
        return {"token": self.token}


@dataclass
class CredentialAuth:
    """Username/password login producing a cookie-backed session."""

    username: str
    password: str = field(repr=False)
    authenticated: bool = False
    session_cookie: Optional[str] = field(default=None, repr=False)

    def query_params(self) -> Dict[str, Any]:
        return {}

    def body_fields(self) -> Dict[str, Any]:
        return {}


@dataclass(frozen=True)
class NoAuth:
    """No usable credentials; every remote call fails."""

    def query_params(self) -> Dict[str, Any]:
        return {}

    def body_fields(self) -> Dict[str, Any]:
        return {}


AuthStrategy = Union[TokenAuth, CredentialAuth, NoAuth]


def select_auth(settings: YApiSettings) -> AuthStrategy:
    """Pick the strategy for ``settings``; a token always wins over credentials."""
    if settings.token:
        return TokenAuth(token=settings.token)
    if settings.username and settings.password:
        return CredentialAuth(username=settings.username, password=settings.password)
    return NoAuth()
