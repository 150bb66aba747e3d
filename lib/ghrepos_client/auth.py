from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Generator

import httpx

logger = logging.getLogger(__name__)

AUTH_HEADER = "Authorization"
AUTH_SCHEME = "token"


@dataclass(frozen=True)
class AuthToken:
    value: str = ""
    present: bool = False

    @classmethod
    def from_value(cls, raw: str | None) -> "AuthToken":
        value = (raw or "").strip()
        return cls(value=value, present=bool(value))


class TokenAuth(httpx.Auth):
    """Sets `Authorization: token <value>` on every outgoing request."""

    def __init__(self, token: AuthToken):
        self._token = token

    @property
    def token(self) -> AuthToken:
        return self._token

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        if self._token.present:
            # assignment replaces any earlier value, so the header appears once
            request.headers[AUTH_HEADER] = f"{AUTH_SCHEME} {self._token.value}"
        yield request


def attach_auth(client: httpx.AsyncClient, token: AuthToken) -> bool:
    """Install TokenAuth on the client at most once. Returns True if installed now."""
    if not token.present:
        return False
    if isinstance(client.auth, TokenAuth):
        return False
    client.auth = TokenAuth(token)
    logger.debug("token auth attached")
    return True
