from datetime import datetime, timezone

from fastapi import HTTPException, status
from redis.exceptions import RedisError

from uthabiti.core.settings import settings
from uthabiti.utils.redis_client import get_redis_client


def _ttl(seconds: int) -> int:
    return max(1, seconds)


def _identifier(email: str) -> str:
    return email.strip().lower()


async def check_lockout(email: str) -> None:
    redis = get_redis_client()
    try:
        locked = await redis.get(f"login_lock:{_identifier(email)}")
    except RedisError:
        return
    if locked:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many login attempts; try again later",
        )


async def register_login_attempt(email: str, success: bool) -> None:
    redis = get_redis_client()
    identifier = _identifier(email)
    fail_key = f"login_fail:{identifier}"
    lock_key = f"login_lock:{identifier}"
    window = _ttl(settings.login_lockout_minutes * 60)
    try:
        if success:
            await redis.delete(fail_key, lock_key)
            return
        attempts = await redis.incr(fail_key)
        await redis.expire(fail_key, window)
        if attempts >= settings.login_attempt_limit:
            await redis.setex(lock_key, window, 1)
            await redis.delete(fail_key)
    except RedisError:
        return


async def is_refresh_used(jti: str) -> bool:
    redis = get_redis_client()
    try:
        return bool(await redis.get(f"refresh_used:{jti}"))
    except RedisError:
        return False


async def mark_refresh_used(jti: str, expires_at: datetime) -> None:
    ttl = int((expires_at - datetime.now(timezone.utc)).total_seconds())
    if ttl <= 0:
        return
    redis = get_redis_client()
    try:
        await redis.setex(f"refresh_used:{jti}", ttl, 1)
    except RedisError:
        return
