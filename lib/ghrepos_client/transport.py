from __future__ import annotations

import logging
import os
import tempfile

import httpx

from .auth import AUTH_HEADER, AuthToken, attach_auth
from .cache import AsyncCacheTransport, DiskCache
from .config_types import ClientConfig
from .tls import cleartext_guard, enable_tls12

logger = logging.getLogger(__name__)

CACHED = "cached"
NON_CACHED = "non_cached"
CLIENT_NAMES = (CACHED, NON_CACHED)

_BODY_LOG_LIMIT = 4000


def build_timeout(cfg: ClientConfig) -> httpx.Timeout:
    return httpx.Timeout(
        cfg.read_timeout_s,
        connect=cfg.connect_timeout_s,
        write=cfg.write_timeout_s,
        read=cfg.read_timeout_s,
    )


def _redact(headers: httpx.Headers) -> dict[str, str]:
    out = {}
    for name, value in headers.items():
        out[name] = "***" if name.lower() == AUTH_HEADER.lower() else value
    return out


def _clip(body: bytes) -> str:
    text = body.decode("utf-8", errors="replace")
    if len(text) > _BODY_LOG_LIMIT:
        return text[:_BODY_LOG_LIMIT] + f"... ({len(text)} chars)"
    return text


def make_log_hooks(log_body: bool) -> dict[str, list]:
    async def log_request(request: httpx.Request) -> None:
        if not logger.isEnabledFor(logging.DEBUG):
            return
        logger.debug("--> %s %s %s", request.method, request.url, _redact(request.headers))
        if log_body and request.content:
            logger.debug("--> body %s", _clip(request.content))

    async def log_response(response: httpx.Response) -> None:
        if not logger.isEnabledFor(logging.DEBUG):
            return
        request = response.request
        logger.debug("<-- %s %s %s", response.status_code, request.url, dict(response.headers))
        if log_body:
            body = await response.aread()
            logger.debug("<-- body %s", _clip(body))

    return {"request": [log_request], "response": [log_response]}


def default_cache_dir() -> str:
    return os.path.join(tempfile.gettempdir(), "ghrepos-http-cache")


class ClientFactory:
    """
    Builds the two named httpx client configurations.

    Each configuration is constructed on first use and then reused until
    aclose(). The bearer token is read once, at factory construction.
    """

    def __init__(self, cfg: ClientConfig, *, transport: httpx.AsyncBaseTransport | None = None):
        self._cfg = cfg
        self._token = AuthToken.from_value(cfg.token)
        # injectable inner transport, used by tests
        self._transport = transport
        self._clients: dict[str, httpx.AsyncClient] = {}

    @property
    def config(self) -> ClientConfig:
        return self._cfg

    @property
    def token(self) -> AuthToken:
        return self._token

    def get(self, name: str) -> httpx.AsyncClient:
        if name not in CLIENT_NAMES:
            raise ValueError(f"unknown client configuration: {name!r}")
        client = self._clients.get(name)
        if client is None:
            client = self._build_cached() if name == CACHED else self._build_non_cached()
            attach_auth(client, self._token)
            self._clients[name] = client
        return client

    def cached(self) -> httpx.AsyncClient:
        return self.get(CACHED)

    def non_cached(self) -> httpx.AsyncClient:
        return self.get(NON_CACHED)

    async def aclose(self) -> None:
        clients = list(self._clients.values())
        self._clients.clear()
        for client in clients:
            await client.aclose()

    def _headers(self) -> dict[str, str]:
        return {
            "User-Agent": self._cfg.user_agent,
            "Accept": "application/vnd.github+json",
        }

    def _build_cached(self) -> httpx.AsyncClient:
        cfg = self._cfg
        inner = self._transport or httpx.AsyncHTTPTransport()
        transport: httpx.AsyncBaseTransport = inner
        if cfg.cache_enabled:
            cache = DiskCache(cfg.cache_dir or default_cache_dir(), cfg.cache_size_bytes)
            transport = AsyncCacheTransport(inner, cache)
        logger.debug("building %s client for %s", CACHED, cfg.base_url)
        return httpx.AsyncClient(
            base_url=cfg.base_url.rstrip("/"),
            timeout=build_timeout(cfg),
            headers=self._headers(),
            transport=transport,
            event_hooks=make_log_hooks(cfg.log_body),
        )

    def _build_non_cached(self) -> httpx.AsyncClient:
        cfg = self._cfg
        hooks = make_log_hooks(cfg.log_body)
        ssl_context = enable_tls12(cfg)
        if ssl_context is not None:
            hooks["request"].insert(0, cleartext_guard(cfg.allow_cleartext))

        if self._transport is not None:
            transport = self._transport
        elif ssl_context is not None:
            transport = httpx.AsyncHTTPTransport(verify=ssl_context, retries=cfg.connect_retries)
        else:
            transport = httpx.AsyncHTTPTransport(retries=cfg.connect_retries)

        logger.debug("building %s client for %s", NON_CACHED, cfg.base_url)
        return httpx.AsyncClient(
            base_url=cfg.base_url.rstrip("/"),
            timeout=build_timeout(cfg),
            headers=self._headers(),
            transport=transport,
            follow_redirects=True,
            event_hooks=hooks,
        )
