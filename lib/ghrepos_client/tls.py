from __future__ import annotations

import logging
import ssl

import httpx

from .config_types import ClientConfig

logger = logging.getLogger(__name__)

# first OpenSSL release with TLS 1.2
_OPENSSL_TLS12 = (1, 0, 1)


def needs_tls12_shim(ctx: ssl.SSLContext | None = None) -> bool:
    """True when the default secure transport may still negotiate below TLS 1.2."""
    if tuple(ssl.OPENSSL_VERSION_INFO[:3]) < _OPENSSL_TLS12:
        return True
    if ctx is None:
        ctx = ssl.create_default_context()
    return ctx.minimum_version < ssl.TLSVersion.TLSv1_2


def enable_tls12(cfg: ClientConfig) -> ssl.SSLContext | None:
    """
    Build an SSL context pinned to TLS 1.2 or newer.

    Returns None when the platform default is already adequate, or when the
    context cannot be created; in the latter case the failure is logged and
    the caller keeps the default transport.
    """
    try:
        legacy = cfg.legacy_tls if cfg.legacy_tls is not None else needs_tls12_shim()
        if not legacy:
            return None
        ctx = ssl.create_default_context()
        ctx.minimum_version = ssl.TLSVersion.TLSv1_2
        ctx.set_ciphers("DEFAULT")
    except (ssl.SSLError, ValueError, AttributeError, OSError):
        logger.exception("Error while setting TLS 1.2")
        return None
    logger.debug("TLS 1.2 compatibility context enabled")
    return ctx


def cleartext_guard(allow_cleartext: bool):
    """Request hook that refuses plain http:// while the TLS shim is active."""

    async def _guard(request: httpx.Request) -> None:
        if allow_cleartext or request.url.scheme != "http":
            return
        raise httpx.UnsupportedProtocol(
            f"cleartext request refused: {request.url}",
            request=request,
        )

    return _guard
