from __future__ import annotations

import asyncio
import json
import logging
from typing import Callable
from urllib.parse import quote

import httpx

from .config_types import ClientConfig
from .errors import DeserializationError, NetworkError, ServerError
from .models import Failure, RepositoryListResult, Success, parse_repositories
from .transport import CLIENT_NAMES, NON_CACHED, ClientFactory

logger = logging.getLogger(__name__)

REPOS_PATH = "/users/{user}/repos"


def repos_path(user: str) -> str:
    user = (user or "").strip()
    if not user:
        raise ValueError("user is required")
    return REPOS_PATH.format(user=quote(user, safe=""))


def _server_error(r: httpx.Response) -> ServerError:
    msg = f"GET {r.request.url.path} failed with {r.status_code}"
    details = None
    try:
        data = r.json()
    except (ValueError, RecursionError):
        data = None
    if isinstance(data, dict) and data.get("message"):
        msg = str(data["message"])
        details = json.dumps(data, ensure_ascii=False)
    elif r.text:
        details = r.text[:1000]
    return ServerError(r.status_code, msg, details)


class GitHubClient:
    def __init__(self, factory: ClientFactory, *, configuration: str = NON_CACHED):
        if configuration not in CLIENT_NAMES:
            raise ValueError(f"unknown client configuration: {configuration!r}")
        self._factory = factory
        self._configuration = configuration

    @property
    def configuration(self) -> str:
        return self._configuration

    @property
    def factory(self) -> ClientFactory:
        return self._factory

    async def aclose(self) -> None:
        await self._factory.aclose()

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def list_repositories(self, user: str) -> RepositoryListResult:
        """
        GET /users/{user}/repos and map the outcome to Success or Failure.

        Transport problems, non-2xx statuses and malformed bodies are all
        returned as Failure; nothing is raised for them.
        """
        path = repos_path(user)
        client = self._factory.get(self._configuration)
        try:
            r = await client.get(path)
        except httpx.DecodingError as e:
            logger.info("GET %s returned an undecodable body: %r", path, e)
            err = DeserializationError(f"response body could not be decoded: {e}")
            err.__cause__ = e
            return Failure(err)
        except httpx.RequestError as e:
            logger.info("GET %s failed: %r", path, e)
            err = NetworkError(str(e) or type(e).__name__)
            err.__cause__ = e
            return Failure(err)

        if not r.is_success:
            logger.info("GET %s returned %s", path, r.status_code)
            return Failure(_server_error(r))

        try:
            payload = r.json()
        except (ValueError, RecursionError) as e:
            err = DeserializationError(f"response body is not valid JSON: {e}")
            err.__cause__ = e
            return Failure(err)

        try:
            repositories = parse_repositories(payload)
        except DeserializationError as e:
            logger.info("GET %s returned an unexpected payload: %s", path, e)
            return Failure(e)
        return Success(repositories)

    def enqueue(
            self,
            user: str,
            callback: Callable[[RepositoryListResult], None],
    ) -> asyncio.Task:
        """
        Schedule list_repositories on the running loop.

        The callback receives the result exactly once when the task completes.
        It is not called if the task is cancelled. A blank user raises
        ValueError here, before anything is scheduled.
        """
        repos_path(user)
        loop = asyncio.get_running_loop()
        task = loop.create_task(self.list_repositories(user))

        def _done(t: asyncio.Task) -> None:
            if t.cancelled():
                logger.debug("repository request for %s cancelled", user)
                return
            exc = t.exception()
            if exc is not None:
                logger.error("repository request for %s crashed", user, exc_info=exc)
                return
            callback(t.result())

        task.add_done_callback(_done)
        return task


def build_client(
        cfg: ClientConfig,
        *,
        configuration: str = NON_CACHED,
        transport: httpx.AsyncBaseTransport | None = None,
) -> GitHubClient:
    return GitHubClient(ClientFactory(cfg, transport=transport), configuration=configuration)
