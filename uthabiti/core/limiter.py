from slowapi import Limiter
from slowapi.util import get_remote_address

from uthabiti.core.settings import settings

# Redis-backed so counters are shared between workers.
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.rate_limit_per_minute}/minute"],
    storage_uri=settings.redis_url,
)


def login_rate() -> str:
    return f"{settings.rate_limit_per_minute}/minute"


__all__ = ["limiter", "login_rate"]
