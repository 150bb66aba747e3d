from __future__ import annotations

import typer

from .. import console
from ..config import load_config, normalize_base_url, save_config

app = typer.Typer(help="Show or change the stored configuration.")


@app.command("show")
def show() -> None:
    cfg = load_config()
    if cfg.auth.api_key is None:
        token_state = "(absent)"
    else:
        token_state = "(set)" if cfg.auth.api_key.strip() else "(empty)"
    console.print_plain([f"base_url={cfg.base_url} user={cfg.user} api_key={token_state}"])


@app.command("set")
def set_value(
        base_url: str | None = typer.Option(None, "--base-url", help="GitHub API base URL."),
        user: str | None = typer.Option(None, "--user", help="Default GitHub user."),
        api_key: str | None = typer.Option(None, "--api-key", help="API token sent as `Authorization: token ...`."),
) -> None:
    if base_url is None and user is None and api_key is None:
        console.err("Nothing to set. Pass --base-url, --user or --api-key.")
        raise typer.Exit(code=2)
    cfg = load_config()
    if base_url is not None:
        normalized = normalize_base_url(base_url, warn=True)
        if not normalized:
            console.err("base_url cannot be empty.")
            raise typer.Exit(code=2)
        cfg.base_url = normalized
    if user is not None:
        cfg.user = user.strip()
    if api_key is not None:
        cfg.auth.api_key = api_key.strip()
    path = save_config(cfg)
    console.ok(f"Config updated: {path}")


@app.command("clear-api-key")
def clear_api_key() -> None:
    cfg = load_config()
    cfg.auth.api_key = None
    path = save_config(cfg)
    console.ok(f"API key cleared from {path}.")
