from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from uthabiti.core.errors import (
    AccessDenied,
    AuthenticationFailed,
    ConflictError,
    NotFoundError,
    PolicyViolation,
    ValidationFailure,
)
from uthabiti.core.permissions import Role, is_staff
from uthabiti.core.security import (
    PASSWORD_CHANGE_TOKEN,
    PASSWORD_RESET_TOKEN,
    create_access_token,
    create_action_token,
    create_refresh_token,
    decode_token,
    generate_verification_code,
    get_password_hash,
    hash_provisional_secret,
    password_expired,
    verify_password,
)
from uthabiti.core.settings import settings
from uthabiti.models.member import Member
from uthabiti.models.user import User
from uthabiti.models.verification_code import VerificationCode
from uthabiti.schemas.auth import ChangePasswordRequest, RegisterRequest, ResetPasswordRequest
from uthabiti.schemas.common import MemberStatus, UserStatus
from uthabiti.schemas.members import MemberCreate
from uthabiti.schemas.users import UserCreate
from uthabiti.services import mailer
from uthabiti.services import members as member_service
from uthabiti.services.activity_log import record_activity

logger = logging.getLogger(__name__)

PURPOSE_PASSWORD_RESET = "password_reset"
PURPOSE_EMAIL_VERIFICATION = "email_verification"

FORGOT_PASSWORD_MESSAGE = "If an account exists for this email, a reset code has been sent."
INVALID_CODE_MESSAGE = "Invalid or expired code."
TOO_MANY_ATTEMPTS_MESSAGE = "Too many invalid attempts. Please request a new code."

USER_STATUS_TRANSITIONS = {
    UserStatus.ACTIVE.value: UserStatus.SUSPENDED.value,
    UserStatus.SUSPENDED.value: UserStatus.DELETED.value,
}
_LOCKED_STATUSES = {UserStatus.BLOCKED.value, UserStatus.DELETED.value, UserStatus.SUSPENDED.value}


@dataclass(slots=True)
class LoginOutcome:
    user: User
    message: str
    next_view: str
    access_token: str | None = None
    refresh_token: str | None = None
    action_token: str | None = None


def landing_view(role: str | None) -> str:
    return "dashboard" if is_staff(role) else "my-dashboard"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def get_user(db: AsyncSession, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("User not found", next_view="users")
    return user


def issue_tokens(user: User) -> tuple[str, str]:
    subject = str(user.id)
    return (
        create_access_token(subject, token_version=user.token_version),
        create_refresh_token(subject, token_version=user.token_version),
    )


async def _awaiting_email_verification(db: AsyncSession, user: User) -> bool:
    result = await db.execute(
        select(VerificationCode).where(
            VerificationCode.user_id == user.id,
            VerificationCode.purpose == PURPOSE_EMAIL_VERIFICATION,
            VerificationCode.used.is_(False),
        )
    )
    return result.scalar_one_or_none() is not None


async def authenticate(db: AsyncSession, email: str, password: str) -> LoginOutcome:
    user = await get_user_by_email(db, email)
    if user is None:
        raise AuthenticationFailed("Account not found!", next_view="login")
    if user.status in _LOCKED_STATUSES:
        raise AccessDenied(
            f"Your account is {user.status}. Please contact the administrator.", next_view="login"
        )
    if not verify_password(password, user.hashed_password):
        raise AuthenticationFailed("Incorrect password!", next_view="login")

    if user.status == UserStatus.PENDING.value:
        if await _awaiting_email_verification(db, user):
            raise PolicyViolation("Please verify your email address to continue.", next_view="verify-email")
        return LoginOutcome(
            user=user,
            message="Please change your password to continue.",
            next_view="change-password",
            action_token=create_action_token(str(user.id), PASSWORD_CHANGE_TOKEN, user.token_version),
        )
    if password_expired(user.password_changed_at):
        raise PolicyViolation(
            f"Your password has expired ({settings.password_max_age_months} months). "
            "Please reset your password.",
            next_view="forgot-password",
        )
    if user.status != UserStatus.ACTIVE.value:
        raise AccessDenied("Your account is not active!", next_view="login")

    now = _now()
    user.last_login_at = now
    user.last_active_at = now
    db.add(user)
    await db.flush()
    await record_activity(db, action="LOGIN", description=f"{user.email} logged in", user_id=user.id)
    access_token, refresh_token = issue_tokens(user)
    return LoginOutcome(
        user=user,
        message=f"Welcome back, {user.full_name}!",
        next_view=landing_view(user.role),
        access_token=access_token,
        refresh_token=refresh_token,
    )


def _validate_new_password(password: str, confirm: str) -> None:
    if password != confirm:
        raise ValidationFailure("New password and confirmation do not match!", next_view="change-password")
    if len(password) < settings.password_min_length:
        raise ValidationFailure(
            f"Password must be at least {settings.password_min_length} characters long!",
            next_view="change-password",
        )


async def change_password(db: AsyncSession, user: User, payload: ChangePasswordRequest) -> User:
    if not payload.current_password or not payload.new_password or not payload.confirm_password:
        raise ValidationFailure("All fields are required!", next_view="change-password")
    _validate_new_password(payload.new_password, payload.confirm_password)
    if not verify_password(payload.current_password, user.hashed_password):
        raise AuthenticationFailed("Current password is incorrect!", next_view="change-password")
    if verify_password(payload.new_password, user.hashed_password):
        raise ValidationFailure(
            "New password must be different from the current password!", next_view="change-password"
        )

    previous_status = user.status
    user.hashed_password = get_password_hash(payload.new_password)
    user.password_changed_at = _now()
    user.token_version = (user.token_version or 0) + 1
    if user.status == UserStatus.PENDING.value:
        user.status = UserStatus.ACTIVE.value
    db.add(user)
    await db.flush()
    await record_activity(
        db,
        action="USER_PASSWORD_RESET",
        description=f"{user.email} changed their password",
        user_id=user.id,
        old_value={"status": previous_status},
        new_value={"status": user.status},
    )
    return user


async def _issue_code(db: AsyncSession, user: User, purpose: str) -> VerificationCode:
    """One live code per account and purpose; a new request replaces the old one."""
    result = await db.execute(
        select(VerificationCode).where(
            VerificationCode.user_id == user.id, VerificationCode.purpose == purpose
        )
    )
    record = result.scalar_one_or_none()
    code = generate_verification_code()
    expires_at = _now() + timedelta(minutes=settings.verification_code_ttl_minutes)
    if record is None:
        record = VerificationCode(user_id=user.id, email=user.email, purpose=purpose)
    record.code = code
    record.expires_at = expires_at
    record.attempts = 0
    record.used = False
    record.verified_at = None
    db.add(record)
    await db.flush()
    return record


async def forgot_password(db: AsyncSession, email: str) -> str:
    user = await get_user_by_email(db, email)
    if user is None:
        logger.info("Password reset requested for unknown email")
        return FORGOT_PASSWORD_MESSAGE
    record = await _issue_code(db, user, PURPOSE_PASSWORD_RESET)
    await mailer.send_verification_code(user.email, user.full_name, record.code, purpose=PURPOSE_PASSWORD_RESET)
    await record_activity(
        db, action="PASSWORD_RESET", description=f"Password reset code sent to {user.email}", user_id=user.id
    )
    return FORGOT_PASSWORD_MESSAGE


async def _check_code(db: AsyncSession, email: str, code: str, purpose: str) -> User:
    """Validate a code; failures that must persist (attempts, blocking) are flushed before raising.

    Callers commit on :class:`ServiceError` from here so the attempt counter survives.
    """
    user = await get_user_by_email(db, email)
    if user is None:
        raise ValidationFailure(INVALID_CODE_MESSAGE)
    result = await db.execute(
        select(VerificationCode).where(
            VerificationCode.user_id == user.id, VerificationCode.purpose == purpose
        )
    )
    record = result.scalar_one_or_none()
    if record is None:
        raise ValidationFailure(INVALID_CODE_MESSAGE)

    if record.attempts >= settings.verification_max_attempts:
        previous = user.status
        user.status = UserStatus.BLOCKED.value
        db.add(user)
        await db.flush()
        await record_activity(
            db,
            action="ACCOUNT_BLOCKED",
            description=f"{user.email} blocked after too many invalid verification attempts",
            user_id=user.id,
            old_value={"status": previous},
            new_value={"status": user.status},
        )
        raise PolicyViolation(TOO_MANY_ATTEMPTS_MESSAGE, next_view="forgot-password")

    expired = _aware(record.expires_at) < _now()
    if record.used or expired or record.code != code:
        record.attempts = (record.attempts or 0) + 1
        db.add(record)
        await db.flush()
        await record_activity(
            db,
            action="VERIFICATION_FAILED",
            description=f"Invalid {purpose.replace('_', ' ')} code for {user.email}",
            user_id=user.id,
        )
        raise ValidationFailure(INVALID_CODE_MESSAGE)

    record.used = True
    record.verified_at = _now()
    db.add(record)
    await db.flush()
    return user


async def verify_reset_code(db: AsyncSession, email: str, code: str) -> str:
    user = await _check_code(db, email, code, PURPOSE_PASSWORD_RESET)
    return create_action_token(str(user.id), PASSWORD_RESET_TOKEN, user.token_version)


async def reset_password(db: AsyncSession, payload: ResetPasswordRequest) -> User:
    try:
        claims = decode_token(payload.token, expected_type=PASSWORD_RESET_TOKEN)
    except ValueError as exc:
        raise AuthenticationFailed("Invalid or expired reset link.", next_view="forgot-password") from exc
    user = await get_user(db, int(claims["sub"]))
    if claims.get("tv") is not None and claims["tv"] != user.token_version:
        raise AuthenticationFailed("Invalid or expired reset link.", next_view="forgot-password")
    if not payload.password or not payload.confirm_password:
        raise ValidationFailure("All fields are required!", next_view="reset-password")
    _validate_new_password(payload.password, payload.confirm_password)

    user.hashed_password = get_password_hash(payload.password)
    user.password_changed_at = _now()
    user.token_version = (user.token_version or 0) + 1
    db.add(user)
    await db.flush()
    await record_activity(
        db, action="PASSWORD_RESET_COMPLETED", description=f"{user.email} reset their password", user_id=user.id
    )
    return user


async def register(db: AsyncSession, payload: RegisterRequest) -> tuple[User, Member]:
    if await get_user_by_email(db, payload.email) is not None:
        raise ConflictError("An account with this email already exists!", next_view="register")
    _validate_new_password(payload.password, payload.confirm_password)

    user = User(
        full_name=" ".join(part for part in (payload.first_name, payload.last_name) if part),
        email=payload.email,
        role=Role.MEMBER.value,
        status=UserStatus.PENDING.value,
        hashed_password=get_password_hash(payload.password),
        password_changed_at=_now(),
    )
    db.add(user)
    await db.flush()

    member = await member_service.create_member(
        db,
        MemberCreate.model_validate(payload.model_dump(exclude={"password", "confirm_password"})),
        actor_id=user.id,
        actor_role=Role.MEMBER.value,
        password_hash=user.hashed_password,
        user_id=user.id,
    )
    record = await _issue_code(db, user, PURPOSE_EMAIL_VERIFICATION)
    await mailer.send_verification_code(
        user.email, user.full_name, record.code, purpose=PURPOSE_EMAIL_VERIFICATION
    )
    return user, member


async def verify_email(db: AsyncSession, email: str, code: str) -> User:
    user = await _check_code(db, email, code, PURPOSE_EMAIL_VERIFICATION)
    user.status = UserStatus.ACTIVE.value
    db.add(user)
    result = await db.execute(select(Member).where(Member.user_id == user.id))
    member = result.scalar_one_or_none()
    if member is not None and member.status == MemberStatus.PENDING.value:
        member.status = MemberStatus.ACTIVE.value
        db.add(member)
    await db.flush()
    await record_activity(
        db,
        action="EMAIL_VERIFIED",
        description=f"{user.email} verified their email address",
        user_id=user.id,
        member_id=member.id if member is not None else None,
    )
    return user


async def list_users(db: AsyncSession, *, role: str | None = None) -> list[User]:
    stmt = select(User)
    if role:
        stmt = stmt.where(User.role == role)
    result = await db.execute(stmt.order_by(User.id.desc()))
    return list(result.scalars().all())


async def add_user(db: AsyncSession, payload: UserCreate, *, actor_id: int | None) -> User:
    existing = await db.execute(
        select(User).where(or_(User.email == payload.email, User.id_number == payload.id_number))
    )
    if existing.scalars().first() is not None:
        raise ConflictError("User already exists with Email or ID Number!", next_view="users")
    user = User(
        full_name=payload.full_name,
        email=payload.email,
        id_number=payload.id_number,
        role=payload.role.value,
        status=UserStatus.PENDING.value,
        hashed_password=hash_provisional_secret(payload.id_number),
    )
    db.add(user)
    await db.flush()
    await record_activity(
        db,
        action="USER_CREATED",
        description=f"User {user.full_name} ({user.email}) added as {user.role}",
        user_id=actor_id,
    )
    return user


async def change_user_status(db: AsyncSession, user_id: int, *, actor_id: int | None) -> User:
    user = await get_user(db, user_id)
    previous = user.status
    new_status = USER_STATUS_TRANSITIONS.get(previous)
    if new_status is None:
        raise PolicyViolation("Invalid status action.", next_view="users")
    user.status = new_status
    user.token_version = (user.token_version or 0) + 1
    db.add(user)
    await db.flush()
    await record_activity(
        db,
        action="USER_STATUS_UPDATE",
        description=f"User {user.email} changed from {previous} to {new_status}",
        user_id=actor_id,
        old_value={"status": previous},
        new_value={"status": new_status},
    )
    return user


async def change_user_role(db: AsyncSession, user_id: int, role: Role, *, actor_id: int | None) -> User:
    user = await get_user(db, user_id)
    if user.status != UserStatus.ACTIVE.value:
        raise PolicyViolation("User account must be active to change permission roles!", next_view="users")
    previous = user.role
    user.role = role.value
    db.add(user)
    await db.flush()
    await record_activity(
        db,
        action="USER_ROLE_UPDATED",
        description=f"User {user.email} role changed from {previous} to {user.role}",
        user_id=actor_id,
        old_value={"role": previous},
        new_value={"role": user.role},
    )
    return user


async def reset_account(db: AsyncSession, user_id: int, *, actor_id: int | None) -> User:
    user = await get_user(db, user_id)
    if user.status != UserStatus.BLOCKED.value:
        raise PolicyViolation("User account must be blocked to retrieve it!", next_view="users")
    secret = user.id_number
    if not secret:
        linked = await db.execute(select(Member).where(Member.user_id == user.id))
        member = linked.scalar_one_or_none()
        secret = member.membership_no if member is not None else None
    if not secret:
        raise PolicyViolation("User account has no ID Number to reset the password to.", next_view="users")
    user.hashed_password = hash_provisional_secret(secret)
    user.status = UserStatus.PENDING.value
    user.token_version = (user.token_version or 0) + 1
    db.add(user)
    await db.flush()
    await record_activity(
        db,
        action="USER_ACCOUNT_RESET",
        description=f"User {user.email} account reset; password change required at next login",
        user_id=actor_id,
        old_value={"status": UserStatus.BLOCKED.value},
        new_value={"status": user.status},
    )
    return user
