"""Global rate limiter instance for SlowAPI."""

from slowapi import Limiter
from slowapi.util import get_remote_address
from common.core.config import settings

# Per-IP limits; point rate_limit_storage_uri at Redis when running several pods
# so callers can't bypass limits by hitting a different one.
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],
    storage_uri=settings.rate_limit_storage_uri,
)
