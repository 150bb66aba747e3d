from __future__ import annotations

from ghrepos_client import CACHED, NON_CACHED, GitHubClient, build_client
from ghrepos_client.config_types import ClientConfig

from .config import AppConfig, cache_path, normalize_base_url, resolve_base_url, resolve_token


def client_config(cfg: AppConfig, *, base_url_override: str | None = None) -> ClientConfig:
    base_url = normalize_base_url(base_url_override, warn=True) if base_url_override else resolve_base_url(cfg)
    return ClientConfig(
        base_url=base_url,
        token=resolve_token(cfg),
        cache_dir=cache_path(),
    )


def make_client(
    cfg: AppConfig,
    *,
    base_url_override: str | None = None,
    cached: bool = False,
) -> GitHubClient:
    return build_client(
        client_config(cfg, base_url_override=base_url_override),
        configuration=CACHED if cached else NON_CACHED,
    )
