from datetime import datetime, timedelta, timezone

import pytest

from conftest import FakeAsyncSession, FakeResult, entity_handler, make_member, make_user

from uthabiti.core.errors import (
    AccessDenied,
    AuthenticationFailed,
    ConflictError,
    PolicyViolation,
    ValidationFailure,
)
from uthabiti.core.permissions import Role
from uthabiti.core.security import decode_token, verify_password
from uthabiti.core.settings import settings
from uthabiti.models import ActivityLog, Member, User, VerificationCode
from uthabiti.schemas.auth import ChangePasswordRequest, RegisterRequest
from uthabiti.schemas.users import UserCreate
from uthabiti.services import accounts


def _session_for(user, code=None, member=None) -> FakeAsyncSession:
    db = FakeAsyncSession()
    db.on_execute(entity_handler(User, FakeResult(scalar=user)))
    if code is not None:
        db.on_execute(entity_handler(VerificationCode, FakeResult(scalar=code)))
    if member is not None:
        db.on_execute(entity_handler(Member, FakeResult(scalar=member)))
    return db


def _code(user, *, purpose="password_reset", code="123456", attempts=0, used=False, expires_in=10):
    return VerificationCode(
        id=1,
        user_id=user.id,
        email=user.email,
        purpose=purpose,
        code=code,
        attempts=attempts,
        used=used,
        expires_at=datetime.now(timezone.utc) + timedelta(minutes=expires_in),
    )


@pytest.fixture
def sent_mail(monkeypatch):
    sent = []

    async def _send(to, name, code, *, purpose):
        sent.append({"to": to, "code": code, "purpose": purpose})
        return True

    monkeypatch.setattr(accounts.mailer, "send_verification_code", _send)
    return sent


@pytest.mark.asyncio
async def test_authenticate_unknown_account():
    with pytest.raises(AuthenticationFailed, match="Account not found"):
        await accounts.authenticate(FakeAsyncSession(), "nobody@example.com", "Password123!")


@pytest.mark.asyncio
async def test_authenticate_wrong_password():
    db = _session_for(make_user())
    with pytest.raises(AuthenticationFailed, match="Incorrect password"):
        await accounts.authenticate(db, "admin@example.com", "WrongPassword!")


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["Blocked", "Suspended", "Deleted"])
async def test_authenticate_locked_account(status):
    db = _session_for(make_user(status=status))
    with pytest.raises(AccessDenied, match=status):
        await accounts.authenticate(db, "admin@example.com", "Password123!")


@pytest.mark.asyncio
async def test_authenticate_active_staff(patch_jwt_keys):
    user = make_user()
    db = _session_for(user)

    outcome = await accounts.authenticate(db, "admin@example.com", "Password123!")

    assert outcome.next_view == "dashboard"
    assert outcome.action_token is None
    assert decode_token(outcome.access_token, expected_type="access")["sub"] == str(user.id)
    assert decode_token(outcome.refresh_token, expected_type="refresh")["tv"] == user.token_version
    assert user.last_login_at is not None
    [entry] = db.added_of(ActivityLog)
    assert entry.action == "LOGIN"


@pytest.mark.asyncio
async def test_authenticate_active_member_lands_on_member_dashboard(patch_jwt_keys):
    db = _session_for(make_user(role=Role.MEMBER.value))
    outcome = await accounts.authenticate(db, "admin@example.com", "Password123!")
    assert outcome.next_view == "my-dashboard"


@pytest.mark.asyncio
async def test_pending_account_must_change_password(patch_jwt_keys):
    user = make_user(status="Pending")
    db = _session_for(user)

    outcome = await accounts.authenticate(db, "admin@example.com", "Password123!")

    assert outcome.next_view == "change-password"
    assert outcome.access_token is None
    claims = decode_token(outcome.action_token, expected_type="password_change")
    assert claims["sub"] == str(user.id)


@pytest.mark.asyncio
async def test_pending_self_registration_must_verify_email():
    user = make_user(status="Pending", role="Member")
    db = _session_for(user, code=_code(user, purpose="email_verification"))

    with pytest.raises(PolicyViolation) as exc_info:
        await accounts.authenticate(db, "admin@example.com", "Password123!")
    assert exc_info.value.next_view == "verify-email"


@pytest.mark.asyncio
async def test_expired_password_is_sent_to_reset(monkeypatch):
    monkeypatch.setattr(settings, "password_max_age_months", 3)
    user = make_user(password_changed_at=datetime.now(timezone.utc) - timedelta(days=130))
    db = _session_for(user)

    with pytest.raises(PolicyViolation, match="expired") as exc_info:
        await accounts.authenticate(db, "admin@example.com", "Password123!")
    assert exc_info.value.next_view == "forgot-password"


@pytest.mark.asyncio
async def test_change_password_activates_pending_account():
    user = make_user(status="Pending", token_version=2)
    db = FakeAsyncSession()

    await accounts.change_password(
        db,
        user,
        ChangePasswordRequest(
            current_password="Password123!", new_password="N3wPassword!", confirm_password="N3wPassword!"
        ),
    )

    assert user.status == "Active"
    assert user.token_version == 3
    assert verify_password("N3wPassword!", user.hashed_password)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("current", "new", "confirm", "error"),
    [
        ("", "N3wPassword!", "N3wPassword!", ValidationFailure),
        ("Password123!", "N3wPassword!", "Different1!", ValidationFailure),
        ("Password123!", "short", "short", ValidationFailure),
        ("WrongPassword!", "N3wPassword!", "N3wPassword!", AuthenticationFailed),
        ("Password123!", "Password123!", "Password123!", ValidationFailure),
    ],
)
async def test_change_password_rules(current, new, confirm, error):
    user = make_user()
    with pytest.raises(error):
        await accounts.change_password(
            FakeAsyncSession(),
            user,
            ChangePasswordRequest(current_password=current, new_password=new, confirm_password=confirm),
        )


@pytest.mark.asyncio
async def test_forgot_password_unknown_email_is_generic(sent_mail):
    message = await accounts.forgot_password(FakeAsyncSession(), "ghost@example.com")
    assert message == accounts.FORGOT_PASSWORD_MESSAGE
    assert sent_mail == []


@pytest.mark.asyncio
async def test_forgot_password_issues_code(sent_mail):
    user = make_user()
    db = _session_for(user)

    message = await accounts.forgot_password(db, "admin@example.com")

    assert message == accounts.FORGOT_PASSWORD_MESSAGE
    [record] = db.added_of(VerificationCode)
    assert record.purpose == "password_reset"
    assert record.attempts == 0
    assert sent_mail == [{"to": user.email, "code": record.code, "purpose": "password_reset"}]


@pytest.mark.asyncio
async def test_reissuing_code_replaces_previous(sent_mail):
    user = make_user()
    previous = _code(user, attempts=1, used=True)
    db = _session_for(user, code=previous)

    await accounts.forgot_password(db, "admin@example.com")

    assert previous.attempts == 0
    assert previous.used is False
    assert sent_mail[0]["code"] == previous.code


@pytest.mark.asyncio
async def test_verify_reset_code_returns_reset_token(patch_jwt_keys):
    user = make_user()
    record = _code(user)
    db = _session_for(user, code=record)

    token = await accounts.verify_reset_code(db, "admin@example.com", "123456")

    assert decode_token(token, expected_type="password_reset")["sub"] == str(user.id)
    assert record.used is True
    assert record.verified_at is not None


@pytest.mark.asyncio
async def test_wrong_code_counts_attempt():
    user = make_user()
    record = _code(user)
    db = _session_for(user, code=record)

    with pytest.raises(ValidationFailure, match="Invalid or expired code"):
        await accounts.verify_reset_code(db, "admin@example.com", "000000")
    assert record.attempts == 1
    assert user.status == "Active"


@pytest.mark.asyncio
async def test_expired_code_counts_attempt():
    user = make_user()
    record = _code(user, expires_in=-1)
    db = _session_for(user, code=record)

    with pytest.raises(ValidationFailure):
        await accounts.verify_reset_code(db, "admin@example.com", "123456")
    assert record.attempts == 1


@pytest.mark.asyncio
async def test_too_many_attempts_blocks_account(monkeypatch):
    monkeypatch.setattr(settings, "verification_max_attempts", 2)
    user = make_user()
    record = _code(user, attempts=2)
    db = _session_for(user, code=record)

    with pytest.raises(PolicyViolation, match="Too many invalid attempts"):
        await accounts.verify_reset_code(db, "admin@example.com", "123456")
    assert user.status == "Blocked"
    assert "ACCOUNT_BLOCKED" in [entry.action for entry in db.added_of(ActivityLog)]


@pytest.mark.asyncio
async def test_register_creates_pending_account_and_member(sent_mail):
    db = FakeAsyncSession()
    payload = RegisterRequest(
        first_name="Amina",
        last_name="Odhiambo",
        email="amina@example.com",
        membership_type="Individual",
        county="Mombasa",
        sub_county="Changamwe",
        ward="Port Reitz",
        password="Sup3rSecret!",
        confirm_password="Sup3rSecret!",
    )

    user, member = await accounts.register(db, payload)

    assert user.status == "Pending"
    assert user.role == "Member"
    assert member.user_id == user.id
    assert member.status == "Pending"
    assert member.hashed_password == user.hashed_password
    assert len(db.added_of(User)) == 1
    [record] = db.added_of(VerificationCode)
    assert record.purpose == "email_verification"
    assert sent_mail[0]["purpose"] == "email_verification"


@pytest.mark.asyncio
async def test_register_rejects_existing_email():
    db = _session_for(make_user(email="amina@example.com"))
    payload = RegisterRequest(
        first_name="Amina",
        last_name="Odhiambo",
        email="amina@example.com",
        membership_type="Individual",
        county="Mombasa",
        sub_county="Changamwe",
        ward="Port Reitz",
        password="Sup3rSecret!",
        confirm_password="Sup3rSecret!",
    )
    with pytest.raises(ConflictError):
        await accounts.register(db, payload)


@pytest.mark.asyncio
async def test_verify_email_activates_account_and_member():
    user = make_user(status="Pending", role="Member")
    member = make_member(status="Pending", user_id=user.id)
    db = _session_for(user, code=_code(user, purpose="email_verification"), member=member)

    await accounts.verify_email(db, "admin@example.com", "123456")

    assert user.status == "Active"
    assert member.status == "Active"


@pytest.mark.asyncio
async def test_add_user_uses_id_number_as_provisional_password():
    db = FakeAsyncSession()
    user = await accounts.add_user(
        db,
        UserCreate(full_name="Grace Clerk", email="grace@example.com", id_number="23456789", role="Data Clerk"),
        actor_id=1,
    )
    assert user.status == "Pending"
    assert user.role == "Data Clerk"
    assert verify_password("23456789", user.hashed_password)


@pytest.mark.asyncio
async def test_add_user_rejects_duplicates():
    db = FakeAsyncSession()
    db.on_execute(entity_handler(User, FakeResult(items=[make_user()])))
    with pytest.raises(ConflictError):
        await accounts.add_user(
            db,
            UserCreate(full_name="Grace", email="admin@example.com", id_number="1", role="Viewer"),
            actor_id=1,
        )


@pytest.mark.asyncio
@pytest.mark.parametrize(("current", "expected"), [("Active", "Suspended"), ("Suspended", "Deleted")])
async def test_user_status_transitions(current, expected):
    user = make_user(status=current)
    db = _session_for(user)

    updated = await accounts.change_user_status(db, user.id, actor_id=1)

    assert updated.status == expected
    assert updated.token_version == 1


@pytest.mark.asyncio
async def test_deleted_user_status_cannot_change():
    user = make_user(status="Deleted")
    with pytest.raises(PolicyViolation):
        await accounts.change_user_status(_session_for(user), user.id, actor_id=1)


@pytest.mark.asyncio
async def test_role_change_requires_active_account():
    user = make_user(status="Pending")
    with pytest.raises(PolicyViolation):
        await accounts.change_user_role(_session_for(user), user.id, Role.VIEWER, actor_id=1)

    active = make_user(role="Viewer")
    updated = await accounts.change_user_role(_session_for(active), active.id, Role.CHAMPION, actor_id=1)
    assert updated.role == "Champion"


@pytest.mark.asyncio
async def test_reset_account_requires_blocked_status():
    user = make_user(status="Active")
    with pytest.raises(PolicyViolation):
        await accounts.reset_account(_session_for(user), user.id, actor_id=1)


@pytest.mark.asyncio
async def test_reset_blocked_member_account_to_membership_number():
    user = make_user(status="Blocked", role="Member", id_number=None)
    member = make_member(user_id=user.id)
    db = _session_for(user, member=member)

    updated = await accounts.reset_account(db, user.id, actor_id=1)

    assert updated.status == "Pending"
    assert verify_password(member.membership_no, updated.hashed_password)


@pytest.mark.parametrize(("role", "view"), [("Admin", "dashboard"), ("Viewer", "dashboard"), ("Member", "my-dashboard")])
def test_landing_view(role, view):
    assert accounts.landing_view(role) == view
