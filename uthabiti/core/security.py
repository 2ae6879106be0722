from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from uthabiti.core.settings import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"
PASSWORD_CHANGE_TOKEN = "password_change"
PASSWORD_RESET_TOKEN = "password_reset"


def get_password_hash(password: str) -> str:
    min_len = settings.password_min_length
    if len(password) < min_len:
        raise ValueError(f"Password must be at least {min_len} characters long!")
    return pwd_context.hash(password)


def hash_provisional_secret(secret: str) -> str:
    """Hash a system-issued provisional password (membership or id number).

    These are not user-chosen, so the length policy does not apply.
    """
    return pwd_context.hash(str(secret))


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def generate_verification_code() -> str:
    return f"{secrets.randbelow(900000) + 100000}"


def months_between(earlier: datetime, later: datetime) -> int:
    """Calendar-month distance, ignoring the day of month."""
    return (later.year - earlier.year) * 12 + (later.month - earlier.month)


def password_expired(password_changed_at: datetime | None, now: datetime | None = None) -> bool:
    if password_changed_at is None:
        return False
    now = now or datetime.now(timezone.utc)
    return months_between(password_changed_at, now) >= settings.password_max_age_months


class JWTKeyError(RuntimeError):
    pass


@lru_cache(maxsize=1)
def _load_private_key() -> str:
    if settings.jwt_private_key:
        return settings.jwt_private_key
    if settings.jwt_private_key_path:
        return _read_key(settings.jwt_private_key_path)
    raise JWTKeyError("JWT private key not configured")


@lru_cache(maxsize=1)
def _load_public_key() -> str:
    if settings.jwt_public_key:
        return settings.jwt_public_key
    if settings.jwt_public_key_path:
        return _read_key(settings.jwt_public_key_path)
    raise JWTKeyError("JWT public key not configured")


def _read_key(path: str) -> str:
    with open(path, "r", encoding="utf-8") as key_file:
        return key_file.read()


def _encode(subject: str, token_type: str, expires_delta: timedelta, token_version: int | None) -> str:
    now = datetime.now(timezone.utc)
    to_encode: dict[str, Any] = {
        "sub": subject,
        "type": token_type,
        "iat": now,
        "exp": now + expires_delta,
        "jti": str(uuid.uuid4()),
    }
    if token_version is not None:
        to_encode["tv"] = token_version
    return jwt.encode(to_encode, _load_private_key(), algorithm=settings.jwt_algorithm)


def create_access_token(
    subject: str, expires_delta: timedelta | None = None, token_version: int | None = None
) -> str:
    return _encode(
        subject,
        ACCESS_TOKEN,
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes),
        token_version,
    )


def create_refresh_token(
    subject: str, expires_delta: timedelta | None = None, token_version: int | None = None
) -> str:
    return _encode(
        subject,
        REFRESH_TOKEN,
        expires_delta or timedelta(minutes=settings.refresh_token_expire_minutes),
        token_version,
    )


def create_action_token(subject: str, token_type: str, token_version: int | None = None) -> str:
    """Short-lived token for the password change and password reset steps."""
    return _encode(
        subject,
        token_type,
        timedelta(minutes=settings.action_token_expire_minutes),
        token_version,
    )


def decode_token(token: str, expected_type: str | tuple[str, ...] | None = None) -> dict[str, Any]:
    try:
        payload = jwt.decode(token, _load_public_key(), algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
    if expected_type:
        allowed = (expected_type,) if isinstance(expected_type, str) else expected_type
        if payload.get("type") not in allowed:
            raise ValueError(f"Unexpected token type: {payload.get('type')}")
    return payload
