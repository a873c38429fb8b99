"""Session-cookie authentication against Supabase Auth.

The browser client stores its session in a cookie named
``sb-<project-ref>-auth-token``.  Large sessions are split across
``<name>.0``, ``<name>.1``, … and newer clients prefix the value with
``base64-``.  Both layouts are accepted here.
"""

from __future__ import annotations

import base64
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any
from urllib.parse import unquote

from pydantic import BaseModel

from personal_brain.errors import UnauthorizedError

if TYPE_CHECKING:
    from supabase import Client

logger = logging.getLogger(__name__)

BASE64_PREFIX = "base64-"


class AuthenticatedUser(BaseModel):
    """The caller, as confirmed by the auth provider."""

    id: str
    email: str | None = None


def read_session_cookie(cookies: Mapping[str, str], name: str) -> str | None:
    """Return the raw session cookie value, reassembling chunked cookies."""
    if cookies.get(name):
        return cookies[name]

    parts: list[str] = []
    index = 0
    while f"{name}.{index}" in cookies:
        parts.append(cookies[f"{name}.{index}"])
        index += 1
    return "".join(parts) or None


def extract_access_token(raw: str) -> str:
    """Pull the JWT access token out of a serialized Supabase session.

    Raises
    ------
    UnauthorizedError
        When the value cannot be decoded or holds no access token.
    """
    value = unquote(raw)
    try:
        if value.startswith(BASE64_PREFIX):
            encoded = value[len(BASE64_PREFIX) :]
            encoded += "=" * (-len(encoded) % 4)
            value = base64.urlsafe_b64decode(encoded).decode("utf-8")
        session: Any = json.loads(value)
    except ValueError as exc:
        raise UnauthorizedError("Malformed session cookie") from exc

    # Older auth-helpers stored ``[access_token, refresh_token, ...]``.
    if isinstance(session, list):
        token = session[0] if session else None
    elif isinstance(session, dict):
        token = session.get("access_token")
    else:
        token = None

    if not isinstance(token, str) or not token:
        raise UnauthorizedError("Session cookie has no access token")
    return token


class AuthGate(ABC):
    """Resolve request cookies to an :class:`AuthenticatedUser` or refuse."""

    @abstractmethod
    def authenticate(self, cookies: Mapping[str, str]) -> AuthenticatedUser:
        """Return the caller or raise :class:`UnauthorizedError`.  Read-only."""
        ...


class SupabaseAuthGate(AuthGate):
    """Verify the session's access token with Supabase Auth.

    Parameters
    ----------
    client:
        Shared ``supabase.Client``; only its ``auth.get_user`` is used.
    cookie_name:
        Base name of the session cookie (see
        :attr:`personal_brain.config.Settings.session_cookie_name`).
    """

    def __init__(self, client: Client, *, cookie_name: str) -> None:
        self._client = client
        self.cookie_name = cookie_name

    def authenticate(self, cookies: Mapping[str, str]) -> AuthenticatedUser:
        raw = read_session_cookie(cookies, self.cookie_name)
        if raw is None:
            logger.info("No session cookie (%s) on request", self.cookie_name)
            raise UnauthorizedError("No user found", details="Missing session cookie")

        token = extract_access_token(raw)
        try:
            response = self._client.auth.get_user(token)
        except Exception as exc:  # noqa: BLE001 - any provider failure is a rejection
            logger.info("Auth provider rejected session: %s", exc)
            raise UnauthorizedError("Invalid session", details=str(exc)) from exc

        user = getattr(response, "user", None)
        if user is None or not getattr(user, "id", None):
            raise UnauthorizedError("No user found")

        logger.debug("Authenticated user %s", user.id)
        return AuthenticatedUser(id=str(user.id), email=getattr(user, "email", None))
