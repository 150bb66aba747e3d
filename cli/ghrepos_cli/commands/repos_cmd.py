from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict

import typer

from ghrepos_client import Failure, NetworkError, RepositoryListResult

from .. import console
from ..config import AppConfig, load_config
from ..http import make_client

logger = logging.getLogger(__name__)

MSG_NETWORK = "Check Internet connection"
MSG_RESPONSE = "Failed to get response"


def failure_message(result: Failure) -> str:
    if isinstance(result.reason, NetworkError):
        return MSG_NETWORK
    return MSG_RESPONSE


async def fetch_repositories(
        cfg: AppConfig,
        user: str,
        *,
        cached: bool = False,
        base_url: str | None = None,
) -> RepositoryListResult:
    async with make_client(cfg, base_url_override=base_url, cached=cached) as client:
        return await client.list_repositories(user)


def repos(
        user: str | None = typer.Argument(None, help="GitHub user (defaults to the configured user)."),
        cached: bool = typer.Option(False, "--cached", help="Use the disk-cached client."),
        json_output: bool = typer.Option(False, "--json", help="Output JSON only."),
        base_url: str | None = typer.Option(None, "--base-url", help="Override base URL."),
) -> None:
    cfg = load_config()
    target = (user or cfg.user or "").strip()
    if not target:
        console.err("User is required. Pass USER or run `ghrepos config set --user ...`.")
        raise typer.Exit(code=2)

    if not json_output:
        console.info(f"Getting github repos for {target}")
    result = asyncio.run(fetch_repositories(cfg, target, cached=cached, base_url=base_url))

    if isinstance(result, Failure):
        logger.debug("repository listing failed: %r", result.reason)
        console.err(failure_message(result))
        raise typer.Exit(code=2)

    if json_output:
        console.print_json([asdict(r) for r in result.repositories])
        return
    if not result.repositories:
        console.info("No repositories.")
        return
    console.print_plain(result.names)
