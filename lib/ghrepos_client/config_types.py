from __future__ import annotations
from dataclasses import dataclass

CACHE_SIZE_DEFAULT = 10 * 1024 * 1024  # 10 MiB


@dataclass(frozen=True)
class ClientConfig:
    base_url: str
    token: str | None = None
    connect_timeout_s: float = 30.0
    write_timeout_s: float = 40.0
    read_timeout_s: float = 60.0
    cache_enabled: bool = True
    cache_dir: str | None = None
    cache_size_bytes: int = CACHE_SIZE_DEFAULT
    log_body: bool = True
    connect_retries: int = 1
    allow_cleartext: bool = False
    legacy_tls: bool | None = None
    user_agent: str = "ghrepos-client/0.1.0"

    def __post_init__(self) -> None:
        if self.cache_enabled and self.cache_size_bytes <= 0:
            raise ValueError("cache_size_bytes must be positive when the cache is enabled")
