from __future__ import annotations

import os
import sys
import tomllib
from dataclasses import dataclass
from typing import Any

import tomli_w
from platformdirs import user_cache_dir, user_config_dir

from . import console

APP_NAME = "ghrepos"
CONFIG_FILENAME = "config.toml"
BASE_URL_DEFAULT = "https://api.github.com"
USER_DEFAULT = "NimzyMaina"
API_KEY = "api_key"
ENV_BASE_URL = "GHREPOS_BASE_URL"
ENV_API_KEY = "GHREPOS_API_KEY"

_WARNED_HOSTS: set[str] = set()


@dataclass
class AuthConfig:
    api_key: str | None = None


@dataclass
class AppConfig:
    base_url: str
    user: str
    auth: AuthConfig


def config_path() -> str:
    return f"{user_config_dir(APP_NAME)}/{CONFIG_FILENAME}"


def cache_path() -> str:
    return os.path.join(user_cache_dir(APP_NAME), "http")


def default_config() -> AppConfig:
    return AppConfig(
        base_url=BASE_URL_DEFAULT,
        user=USER_DEFAULT,
        auth=AuthConfig(api_key=None),
    )


def normalize_base_url(raw: str | None, *, warn: bool = False) -> str:
    """Strip trailing slashes; a bare host (GitHub Enterprise included) is assumed https."""
    value = (raw or "").strip().rstrip("/")
    if not value:
        return ""
    scheme, sep, _ = value.partition("://")
    if sep and scheme.lower() in ("http", "https"):
        return value
    normalized = f"https://{value}"
    if warn and sys.stderr.isatty() and value not in _WARNED_HOSTS:
        _WARNED_HOSTS.add(value)
        console.warn(f"base_url missing scheme, assuming {normalized}")
    return normalized


def ensure_parent_dir(path: str) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)


def to_toml(cfg: AppConfig) -> dict[str, Any]:
    data: dict[str, Any] = {
        "base_url": cfg.base_url,
        "user": cfg.user,
    }
    # a cleared key is dropped so that the token reads as absent
    if cfg.auth.api_key is not None:
        data["auth"] = {API_KEY: cfg.auth.api_key}
    return data


def from_toml(data: dict[str, Any]) -> AppConfig:
    cfg = default_config()
    base_url = normalize_base_url(str(data.get("base_url") or ""), warn=True)
    if base_url:
        cfg.base_url = base_url
    user = str(data.get("user") or "").strip()
    if user:
        cfg.user = user
    auth_raw = data.get("auth") or {}
    if isinstance(auth_raw, dict) and API_KEY in auth_raw:
        cfg.auth.api_key = str(auth_raw.get(API_KEY) or "")
    return cfg


def load_config() -> AppConfig:
    path = config_path()
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
        return from_toml(data)
    except FileNotFoundError:
        return default_config()


def resolve_base_url(cfg: AppConfig) -> str:
    env_value = os.getenv(ENV_BASE_URL, "").strip()
    if env_value:
        return normalize_base_url(env_value)
    return normalize_base_url(cfg.base_url) or BASE_URL_DEFAULT


def resolve_token(cfg: AppConfig) -> str | None:
    env_value = os.getenv(ENV_API_KEY, "").strip()
    if env_value:
        return env_value
    value = (cfg.auth.api_key or "").strip()
    return value or None


def save_config(cfg: AppConfig) -> str:
    path = config_path()
    ensure_parent_dir(path)
    with open(path, "wb") as f:
        f.write(tomli_w.dumps(to_toml(cfg)).encode("utf-8"))
    os.chmod(path, 0o600)
    return path
