from datetime import datetime, timedelta, timezone

import pytest

from uthabiti.core import security
from uthabiti.core.security import (
    PASSWORD_CHANGE_TOKEN,
    create_access_token,
    create_action_token,
    create_refresh_token,
    decode_token,
    get_password_hash,
    hash_provisional_secret,
    months_between,
    password_expired,
    verify_password,
)
from uthabiti.core.settings import settings


def test_password_hashing_and_verify():
    password = "S0meP@ss!WithLength"
    hashed = get_password_hash(password)
    assert hashed != password
    assert verify_password(password, hashed)
    assert verify_password("S0meP@ss!", hashed) is False


def test_password_hash_enforces_min_length():
    with pytest.raises(ValueError, match="at least 8 characters"):
        get_password_hash("short")


def test_provisional_secret_skips_length_policy():
    hashed = hash_provisional_secret("001-001-01-0007")
    assert verify_password("001-001-01-0007", hashed)
    assert verify_password("anything", None) is False


def test_verification_code_is_six_digits():
    for _ in range(20):
        code = security.generate_verification_code()
        assert len(code) == 6
        assert code.isdigit()
        assert not code.startswith("0")


def test_months_between_ignores_day_of_month():
    assert months_between(datetime(2026, 1, 31), datetime(2026, 2, 1)) == 1
    assert months_between(datetime(2025, 11, 1), datetime(2026, 2, 28)) == 3


def test_password_expired_after_max_age(monkeypatch):
    monkeypatch.setattr(settings, "password_max_age_months", 3)
    now = datetime(2026, 5, 10, tzinfo=timezone.utc)
    assert password_expired(datetime(2026, 2, 28, tzinfo=timezone.utc), now) is True
    assert password_expired(datetime(2026, 3, 1, tzinfo=timezone.utc), now) is False
    assert password_expired(None, now) is False


def test_access_and_refresh_tokens(monkeypatch, patch_jwt_keys):
    monkeypatch.setattr(settings, "access_token_expire_minutes", 1)

    access = create_access_token("42", token_version=0)
    refresh = create_refresh_token("42", expires_delta=timedelta(minutes=2), token_version=3)

    decoded_access = decode_token(access, expected_type="access")
    decoded_refresh = decode_token(refresh, expected_type="refresh")

    assert decoded_access["sub"] == "42"
    assert decoded_access["tv"] == 0
    assert decoded_refresh["type"] == "refresh"
    assert decoded_refresh["tv"] == 3
    assert decoded_access["jti"] != decoded_refresh["jti"]


def test_decode_rejects_unexpected_type(patch_jwt_keys):
    token = create_action_token("7", PASSWORD_CHANGE_TOKEN, token_version=1)
    with pytest.raises(ValueError, match="Unexpected token type"):
        decode_token(token, expected_type="access")
    claims = decode_token(token, expected_type=("access", PASSWORD_CHANGE_TOKEN))
    assert claims["sub"] == "7"


def test_decode_rejects_garbage(patch_jwt_keys):
    with pytest.raises(ValueError, match="Invalid token"):
        decode_token("not-a-token")
