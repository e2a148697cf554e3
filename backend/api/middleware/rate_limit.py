"""
Rate limiting middleware using slowapi.

Every route gets the default limit through SlowAPIMiddleware. Keyword
lookups spend DataForSEO credit on a cache miss, so they carry their own
tighter per-endpoint limit.

Rate Limits:
- Keyword lookups: 30 requests per minute
- Default: RATE_LIMIT_DEFAULT (100 requests per minute)
"""

import ipaddress
import logging
import re

from starlette.requests import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)

# Simple pattern to quickly reject obviously invalid IPs before parsing
_IP_LIKE = re.compile(r"^[\d.:a-fA-F]+$")


def _is_valid_ip(value: str) -> bool:
    """Return True if *value* looks like a valid IPv4 or IPv6 address."""
    if not _IP_LIKE.match(value):
        return False
    try:
        ipaddress.ip_address(value)
        return True
    except ValueError:
        return False


def _is_private_ip(value: str) -> bool:
    """Return True if *value* is a private, loopback, or link-local address.

    Private IPs in X-Forwarded-For are spoofable and are ignored.
    """
    try:
        addr = ipaddress.ip_address(value)
        return addr.is_private or addr.is_loopback or addr.is_link_local
    except ValueError:
        return False


def _get_real_ip(request: Request) -> str:
    """Extract real client IP from proxy headers, falling back to remote address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        # X-Forwarded-For can be a comma-separated list; first entry is the client
        candidate = forwarded.split(",")[0].strip()
        if _is_valid_ip(candidate) and not _is_private_ip(candidate):
            return candidate
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        candidate = real_ip.strip()
        if _is_valid_ip(candidate) and not _is_private_ip(candidate):
            return candidate
    return get_remote_address(request)


def _rate_limit_key(request: Request) -> str:
    """Bucket by API key when one is sent, otherwise by client IP."""
    api_key = request.headers.get("x-api-key")
    if api_key:
        return f"key:{api_key}"
    return _get_real_ip(request)


# Format: "count/period" where period can be: second, minute, hour, day
RATE_LIMITS = {
    "keyword_lookup": "30/minute",
    "default": settings.rate_limit_default,
}

if settings.rate_limit_storage_uri.startswith("memory://"):
    logger.warning(
        "Rate limiter using in-memory storage; not suitable for multi-worker production"
    )

limiter = Limiter(
    key_func=_rate_limit_key,
    storage_uri=settings.rate_limit_storage_uri,
    default_limits=[RATE_LIMITS["default"]],
)


def get_rate_limit(endpoint: str) -> str:
    """
    Get rate limit configuration for a specific endpoint.

    Example:
        >>> get_rate_limit("keyword_lookup")
        "30/minute"
        >>> get_rate_limit("unknown")
        "100/minute"
    """
    return RATE_LIMITS.get(endpoint, RATE_LIMITS["default"])
