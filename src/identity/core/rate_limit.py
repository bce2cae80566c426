"""Endpoint throttling with slowapi.

This is a coarse per-IP guard on unauthenticated endpoints (login,
registration). Brute-force protection per (IP, identifier) pair is enforced by
the persistent RateLimiter service, which survives restarts and is shared by
all workers.
"""

from ipaddress import ip_address

from slowapi import Limiter
from starlette.requests import Request

from src.identity.core.config import get_settings
from src.identity.core.logging import get_logger

logger = get_logger(__name__)


def get_client_ip(request: Request) -> str:
    """Resolve the client IP, honoring X-Forwarded-For only from trusted proxies.

    SECURITY: X-Forwarded-For is user-controlled. Trusting it from arbitrary
    peers lets an attacker rotate addresses and escape per-IP limits.
    """
    peer = request.client.host if request.client else "unknown"
    settings = get_settings()
    if peer not in settings.trusted_proxy_ips:
        return peer

    forwarded = request.headers.get("x-forwarded-for")
    if not forwarded:
        return peer

    # Right-most address not added by one of our proxies is the client
    for candidate in reversed([part.strip() for part in forwarded.split(",")]):
        if candidate in settings.trusted_proxy_ips:
            continue
        try:
            ip_address(candidate)
        except ValueError:
            logger.warning("Malformed X-Forwarded-For entry", value=candidate[:64])
            return peer
        return candidate
    return peer


def create_limiter() -> Limiter:
    """Create the endpoint limiter. Disabled in testing environment."""
    settings = get_settings()

    if settings.app_env == "testing":
        logger.info("Endpoint limiter disabled (testing environment)")
        return Limiter(key_func=get_client_ip, enabled=False)

    return Limiter(key_func=get_client_ip, storage_uri=settings.rate_limit_storage_uri)


limiter = create_limiter()
