"""
Request rate limiting with slowapi.

Every route gets the default limit through ``SlowAPIMiddleware``; routes that
are attractive to brute force (login, registration, invitation tokens) carry a
tighter ``@limiter.limit``. Buckets are keyed by client IP and stored in Redis
when ``REDIS_URL`` is set, otherwise in process memory.
"""

import ipaddress
import logging
from typing import Optional

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)

RATE_LIMITS = {
    "login": "5/minute",
    "register": "3/minute",
    "invite": "20/hour",
    "accept_invitation": "10/minute",
    "export": "10/minute",
    "default": "100/minute",
}

# Proxy headers checked in order; the first public address wins
_FORWARDING_HEADERS = ("x-forwarded-for", "x-real-ip")


def _public_ip(value: str) -> Optional[str]:
    """Return the normalised address, or None for garbage and non-routable addresses.

    Private ranges are ignored because any client can put them in a header.
    """
    try:
        addr = ipaddress.ip_address(value.strip())
    except ValueError:
        return None
    if addr.is_private or addr.is_loopback or addr.is_link_local:
        return None
    return str(addr)


def client_ip(request: Request) -> str:
    """Client address behind a reverse proxy. Also recorded on audit entries."""
    for header in _FORWARDING_HEADERS:
        raw = request.headers.get(header)
        if not raw:
            continue
        # X-Forwarded-For is "client, proxy1, proxy2"
        ip = _public_ip(raw.split(",")[0])
        if ip is not None:
            return ip
    return get_remote_address(request)


def _storage_uri() -> str:
    if settings.redis_url:
        return settings.redis_url
    logger.warning("Rate limiter using in-memory storage; limits are per process")
    if settings.is_production:
        logger.critical("REDIS_URL is not set in production; rate limits are not shared")
    return "memory://"


limiter = Limiter(
    key_func=client_ip,
    storage_uri=_storage_uri(),
    default_limits=[RATE_LIMITS["default"]],
)


def get_rate_limit(endpoint: str) -> str:
    """Limit string for a named endpoint, e.g. ``"5/minute"`` for ``"login"``."""
    return RATE_LIMITS.get(endpoint, RATE_LIMITS["default"])
