import pytest
from fastapi import HTTPException, status

from conftest import FakeResult, entity_handler, make_user

from uthabiti.api.v1.routers import auth as auth_router
from uthabiti.core.errors import AuthenticationFailed, ValidationFailure
from uthabiti.models import User
from uthabiti.services import accounts


@pytest.fixture
def login_attempts(monkeypatch):
    attempts = []

    async def _noop(*_args, **_kwargs):
        return None

    async def _record(email, success):
        attempts.append((email, success))

    async def _unused(_jti):
        return False

    monkeypatch.setattr(auth_router, "check_lockout", _noop)
    monkeypatch.setattr(auth_router, "register_login_attempt", _record)
    monkeypatch.setattr(auth_router, "is_refresh_used", _unused)
    monkeypatch.setattr(auth_router, "mark_refresh_used", _noop)
    return attempts


def test_login_flashes_welcome_and_landing_view(client, fake_db, login_attempts, patch_jwt_keys):
    user = make_user(full_name="Grace Admin")
    fake_db.on_execute(entity_handler(User, FakeResult(scalar=user)))

    response = client.post("/api/v1/auth/login", json={"email": "admin@example.com", "password": "Password123!"})

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Welcome back, Grace Admin!"
    assert body["details"]["next_view"] == "dashboard"
    assert body["data"]["access_token"]
    assert body["data"]["role"] == "Admin"
    assert login_attempts == [("admin@example.com", True)]
    assert fake_db.committed


def test_login_failure_counts_attempt(client, login_attempts):
    response = client.post("/api/v1/auth/login", json={"email": "ghost@example.com", "password": "Password123!"})

    assert response.status_code == 401
    body = response.json()
    assert body["message"] == "Account not found!"
    assert body["details"]["next_view"] == "login"
    assert login_attempts == [("ghost@example.com", False)]


def test_login_when_locked_out(client, monkeypatch, login_attempts):
    async def _locked(_email):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many login attempts; try again later",
        )

    monkeypatch.setattr(auth_router, "check_lockout", _locked)

    response = client.post("/api/v1/auth/login", json={"email": "admin@example.com", "password": "Password123!"})

    assert response.status_code == 429
    assert response.json()["code"] == "rate_limited"
    assert login_attempts == []


def test_pending_login_returns_action_token(client, fake_db, login_attempts, patch_jwt_keys):
    fake_db.on_execute(entity_handler(User, FakeResult(scalar=make_user(status="Pending"))))

    response = client.post("/api/v1/auth/login", json={"email": "admin@example.com", "password": "Password123!"})

    assert response.status_code == 200
    body = response.json()
    assert body["details"]["next_view"] == "change-password"
    assert body["data"]["access_token"] is None
    assert body["data"]["action_token"]


def test_refresh_rotates_tokens(client, fake_db, login_attempts, patch_jwt_keys):
    user = make_user()
    fake_db.on_execute(entity_handler(User, FakeResult(scalar=user)))
    _, refresh = accounts.issue_tokens(user)

    response = client.post("/api/v1/auth/refresh", json={"refresh_token": refresh})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["access_token"]
    assert data["refresh_token"] != refresh


def test_refresh_rejects_revoked_token(client, fake_db, login_attempts, patch_jwt_keys):
    user = make_user(token_version=0)
    _, refresh = accounts.issue_tokens(user)
    user.token_version = 1
    fake_db.on_execute(entity_handler(User, FakeResult(scalar=user)))

    response = client.post("/api/v1/auth/refresh", json={"refresh_token": refresh})

    assert response.status_code == 401
    assert response.json()["message"] == "Token revoked"


def test_logout_revokes_tokens(client, fake_db, test_user):
    response = client.post("/api/v1/auth/logout")

    assert response.status_code == 200
    assert response.json()["details"]["next_view"] == "login"
    assert test_user.token_version == 1
    assert fake_db.committed


def test_forgot_password_is_generic(client, monkeypatch):
    async def _forgot(_db, _email):
        return accounts.FORGOT_PASSWORD_MESSAGE

    monkeypatch.setattr(accounts, "forgot_password", _forgot)

    response = client.post("/api/v1/auth/forgot-password", json={"email": "ghost@example.com"})

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == accounts.FORGOT_PASSWORD_MESSAGE
    assert body["details"]["next_view"] == "verify-code"


def test_failed_code_check_is_committed(client, fake_db, monkeypatch):
    async def _verify(_db, _email, _code):
        raise ValidationFailure(accounts.INVALID_CODE_MESSAGE)

    monkeypatch.setattr(accounts, "verify_reset_code", _verify)

    response = client.post("/api/v1/auth/verify-code", json={"email": "admin@example.com", "code": "000000"})

    assert response.status_code == 422
    assert response.json()["message"] == accounts.INVALID_CODE_MESSAGE
    # the attempt counter must survive the failed request
    assert fake_db.committed


def test_change_password_rejects_wrong_current(client, monkeypatch):
    async def _change(_db, _user, _payload):
        raise AuthenticationFailed("Current password is incorrect!", next_view="change-password")

    monkeypatch.setattr(accounts, "change_password", _change)

    response = client.post(
        "/api/v1/auth/change-password",
        json={"current_password": "x", "new_password": "N3wPassword!", "confirm_password": "N3wPassword!"},
    )

    assert response.status_code == 401
    assert response.json()["details"]["next_view"] == "change-password"
