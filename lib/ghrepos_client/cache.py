from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import os
import time
from dataclasses import dataclass, field, replace
from pathlib import Path

import httpx

logger = logging.getLogger(__name__)

META_SUFFIX = ".meta.json"
BODY_SUFFIX = ".body"
CACHE_HEADER = "X-Cache"

# headers a 304 is allowed to refresh on the stored entry
_REFRESHABLE = ("cache-control", "date", "etag", "expires", "last-modified")


def parse_cache_control(value: str | None) -> dict[str, str | None]:
    directives: dict[str, str | None] = {}
    for part in (value or "").split(","):
        part = part.strip()
        if not part:
            continue
        name, sep, arg = part.partition("=")
        directives[name.strip().lower()] = arg.strip().strip('"') if sep else None
    return directives


def vary_fingerprint(request: httpx.Request, vary: str | None) -> dict[str, str] | None:
    """
    Digest the request headers named by a Vary value.

    None means the response varies on everything (`Vary: *`) and cannot be
    reused. Values are hashed so tokens never reach the disk.
    """
    names = sorted({n.strip().lower() for n in (vary or "").split(",") if n.strip()})
    if "*" in names:
        return None
    return {
        name: hashlib.sha256(request.headers.get(name, "").encode("utf-8")).hexdigest()
        for name in names
    }


def _max_age(directives: dict[str, str | None]) -> int | None:
    raw = directives.get("max-age")
    if raw is None:
        return None
    try:
        return max(0, int(raw))
    except ValueError:
        return None


@dataclass
class CacheEntry:
    url: str
    status_code: int
    headers: list[tuple[str, str]]
    stored_at: float
    vary: dict[str, str] = field(default_factory=dict)
    body: bytes = field(default=b"", repr=False)

    @property
    def cache_control(self) -> dict[str, str | None]:
        return parse_cache_control(httpx.Headers(self.headers).get("cache-control"))

    def is_fresh(self, now: float | None = None) -> bool:
        directives = self.cache_control
        if "no-cache" in directives:
            return False
        max_age = _max_age(directives)
        if max_age is None:
            return False
        age = (now if now is not None else time.time()) - self.stored_at
        return age < max_age

    def matches(self, request: httpx.Request) -> bool:
        return vary_fingerprint(request, httpx.Headers(self.headers).get("vary")) == self.vary

    def validators(self) -> dict[str, str]:
        headers = httpx.Headers(self.headers)
        out: dict[str, str] = {}
        if "etag" in headers:
            out["If-None-Match"] = headers["etag"]
        if "last-modified" in headers:
            out["If-Modified-Since"] = headers["last-modified"]
        return out

    def refreshed(self, response_headers: httpx.Headers) -> "CacheEntry":
        headers = httpx.Headers(self.headers)
        for name in _REFRESHABLE:
            if name in response_headers:
                headers[name] = response_headers[name]
        return replace(self, headers=list(headers.multi_items()), stored_at=time.time())

    def to_response(self, request: httpx.Request) -> httpx.Response:
        headers = httpx.Headers(self.headers)
        headers[CACHE_HEADER] = "HIT"
        return httpx.Response(
            self.status_code,
            headers=headers,
            stream=httpx.ByteStream(self.body),
            request=request,
        )


class DiskCache:
    """Size-bounded response store; least recently used entries are evicted first."""

    def __init__(self, directory: str | os.PathLike[str], max_size_bytes: int):
        if max_size_bytes <= 0:
            raise ValueError("max_size_bytes must be positive")
        self.directory = Path(directory)
        self.max_size_bytes = max_size_bytes
        self._lock = asyncio.Lock()

    @staticmethod
    def key(url: httpx.URL | str) -> str:
        return hashlib.sha256(str(url).encode("utf-8")).hexdigest()

    def _paths(self, key: str) -> tuple[Path, Path]:
        return self.directory / f"{key}{META_SUFFIX}", self.directory / f"{key}{BODY_SUFFIX}"

    def load(self, url: httpx.URL | str) -> CacheEntry | None:
        meta_path, body_path = self._paths(self.key(url))
        try:
            with meta_path.open("r", encoding="utf-8") as f:
                meta = json.load(f)
            body = body_path.read_bytes()
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            logger.warning("dropping unreadable cache entry %s: %s", meta_path.name, exc)
            self.remove(url)
            return None
        now = time.time()
        os.utime(meta_path, (now, now))
        return CacheEntry(
            url=str(meta.get("url") or url),
            status_code=int(meta.get("status_code") or 200),
            headers=[(str(k), str(v)) for k, v in meta.get("headers") or []],
            stored_at=float(meta.get("stored_at") or 0.0),
            vary={str(k): str(v) for k, v in (meta.get("vary") or {}).items()},
            body=body,
        )

    async def store(self, entry: CacheEntry) -> None:
        meta_path, body_path = self._paths(self.key(entry.url))
        meta = {
            "url": entry.url,
            "status_code": entry.status_code,
            "headers": entry.headers,
            "stored_at": entry.stored_at,
            "vary": entry.vary,
        }
        async with self._lock:
            self.directory.mkdir(parents=True, exist_ok=True)
            _atomic_write(body_path, entry.body)
            _atomic_write(meta_path, json.dumps(meta).encode("utf-8"))
            self._evict()

    def remove(self, url: httpx.URL | str) -> None:
        for path in self._paths(self.key(url)):
            try:
                path.unlink()
            except FileNotFoundError:
                pass

    def size(self) -> int:
        if not self.directory.exists():
            return 0
        return sum(p.stat().st_size for p in self.directory.iterdir() if p.is_file())

    def _evict(self) -> None:
        entries = []
        total = 0
        for meta_path in self.directory.glob(f"*{META_SUFFIX}"):
            key = meta_path.name[: -len(META_SUFFIX)]
            body_path = self.directory / f"{key}{BODY_SUFFIX}"
            try:
                size = meta_path.stat().st_size + (body_path.stat().st_size if body_path.exists() else 0)
                last_used = meta_path.stat().st_mtime
            except FileNotFoundError:
                continue
            entries.append((last_used, size, meta_path, body_path))
            total += size

        entries.sort(key=lambda item: item[0])
        while total > self.max_size_bytes and entries:
            _, size, meta_path, body_path = entries.pop(0)
            for path in (meta_path, body_path):
                try:
                    path.unlink()
                except FileNotFoundError:
                    pass
            total -= size
            logger.debug("evicted cache entry %s", meta_path.name)


def _atomic_write(path: Path, data: bytes) -> None:
    tmp = path.with_name(f"{path.name}.tmp")
    with tmp.open("wb") as f:
        f.write(data)
    os.replace(tmp, path)


class AsyncCacheTransport(httpx.AsyncBaseTransport):
    def __init__(self, transport: httpx.AsyncBaseTransport, cache: DiskCache):
        self._transport = transport
        self._cache = cache

    @property
    def cache(self) -> DiskCache:
        return self._cache

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if request.method != "GET":
            return await self._transport.handle_async_request(request)

        request_cc = parse_cache_control(request.headers.get("cache-control"))
        entry = None if "no-store" in request_cc else self._cache.load(request.url)
        if entry is not None and not entry.matches(request):
            logger.debug("cache entry for %s varies, treating as miss", request.url)
            entry = None
        if entry is not None and "no-cache" not in request_cc and entry.is_fresh():
            logger.debug("cache hit %s", request.url)
            return entry.to_response(request)

        if entry is not None:
            for name, value in entry.validators().items():
                request.headers[name] = value

        response = await self._transport.handle_async_request(request)

        if response.status_code == 304 and entry is not None:
            await response.aclose()
            entry = entry.refreshed(response.headers)
            await self._cache.store(entry)
            logger.debug("cache revalidated %s", request.url)
            return entry.to_response(request)

        response_cc = parse_cache_control(response.headers.get("cache-control"))
        if response.status_code != 200 or "no-store" in response_cc or "no-store" in request_cc:
            return response
        vary = vary_fingerprint(request, response.headers.get("vary"))
        if vary is None:
            return response

        raw = b"".join([chunk async for chunk in response.stream])
        await response.aclose()
        await self._cache.store(
            CacheEntry(
                url=str(request.url),
                status_code=response.status_code,
                headers=list(response.headers.multi_items()),
                stored_at=time.time(),
                vary=vary,
                body=raw,
            )
        )
        return httpx.Response(
            response.status_code,
            headers=response.headers,
            stream=httpx.ByteStream(raw),
            request=request,
            extensions=response.extensions,
        )

    async def aclose(self) -> None:
        await self._transport.aclose()
