"""
Rate Limiter Configuration

slowapi limiter keyed by the real client IP. Storage is any `limits`
storage URI (memory:// by default, redis://... for several instances).
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request

from ..config import settings


def get_real_client_ip(request: Request) -> str:
    """Get real client IP behind a reverse proxy"""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # First entry is the original client
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


def create_limiter() -> Limiter:
    return Limiter(
        key_func=get_real_client_ip,
        storage_uri=settings.rate_limit_storage_uri,
        enabled=settings.rate_limit_enabled,
        default_limits=["300/minute"],
    )


# Global rate limiter instance
limiter = create_limiter()


# ================================
# RATE LIMIT CONFIGURATIONS
# ================================

RATE_LIMITS = {
    # Public writes
    "booking_create": "10/minute",
    "booking_update": "30/minute",
    "booking_delete": "20/minute",
    "hold_create": "60/minute",

    # Live price display while the form is edited
    "quote": "120/minute",

    # Reads
    "availability": "300/minute",
}


def get_rate_limit(operation: str) -> str:
    """Get rate limit for a specific operation."""
    return RATE_LIMITS.get(operation, "100/minute")
