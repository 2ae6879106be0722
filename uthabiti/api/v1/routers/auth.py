from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from uthabiti.api import deps
from uthabiti.core.errors import AuthenticationFailed, ServiceError
from uthabiti.core.limiter import limiter, login_rate
from uthabiti.core.response_envelope import flash
from uthabiti.core.security import REFRESH_TOKEN, decode_token
from uthabiti.db.session import get_db
from uthabiti.models import User
from uthabiti.schemas.auth import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenPair,
    UserOut,
    VerifyCodeRequest,
)
from uthabiti.schemas.common import UserStatus
from uthabiti.schemas.members import MemberOut
from uthabiti.services import accounts
from uthabiti.utils.login_security import (
    check_lockout,
    is_refresh_used,
    mark_refresh_used,
    register_login_attempt,
)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login")
@limiter.limit(login_rate)
async def login(
    credentials: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> dict:
    await check_lockout(credentials.email)
    try:
        outcome = await accounts.authenticate(db, credentials.email, credentials.password)
    except AuthenticationFailed:
        await register_login_attempt(credentials.email, success=False)
        raise
    await db.commit()
    await register_login_attempt(credentials.email, success=True)

    response = LoginResponse(
        access_token=outcome.access_token,
        refresh_token=outcome.refresh_token,
        action_token=outcome.action_token,
        role=outcome.user.role,
        status=outcome.user.status,
    )
    return flash(response, message=outcome.message, next_view=outcome.next_view)


@router.post("/refresh", response_model=TokenPair)
async def refresh_tokens(
    payload: RefreshRequest,
    db: AsyncSession = Depends(get_db),
) -> TokenPair:
    try:
        token_data = decode_token(payload.refresh_token, expected_type=REFRESH_TOKEN)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    user_id = token_data.get("sub")
    token_version = token_data.get("tv")
    jti = token_data.get("jti")
    exp_ts = token_data.get("exp")
    if not user_id or not str(user_id).isdigit() or token_version is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    if not jti or not exp_ts:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    result = await db.execute(select(User).where(User.id == int(user_id)))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    if user.token_version != token_version:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token revoked")
    if user.status != UserStatus.ACTIVE.value:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Inactive user")

    now = datetime.now(timezone.utc)
    deps.enforce_inactivity(user.last_active_at, now)
    user.last_active_at = now
    db.add(user)
    await db.commit()
    await db.refresh(user)

    # Refresh token rotation: reject reused tokens
    if await is_refresh_used(jti):
        user.token_version += 1
        db.add(user)
        await db.commit()
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Refresh token reuse detected")
    await mark_refresh_used(jti, datetime.fromtimestamp(exp_ts, tz=timezone.utc))

    access, refresh = accounts.issue_tokens(user)
    return TokenPair(access_token=access, refresh_token=refresh)


@router.post("/logout")
async def logout(
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict:
    current_user.token_version += 1
    db.add(current_user)
    await db.commit()
    return flash(None, message="You have been logged out.", next_view="login")


@router.get("/me", response_model=UserOut)
async def read_current_user(current_user: User = Depends(deps.get_current_user)) -> UserOut:
    return UserOut.model_validate(current_user)


@router.post("/change-password")
async def change_password(
    payload: ChangePasswordRequest,
    current_user: User = Depends(deps.get_current_user_allow_password_change),
    db: AsyncSession = Depends(get_db),
) -> dict:
    user = await accounts.change_password(db, current_user, payload)
    await db.commit()
    access, refresh = accounts.issue_tokens(user)
    return flash(
        TokenPair(access_token=access, refresh_token=refresh),
        message="Password changed successfully!",
        next_view=accounts.landing_view(user.role),
    )


@router.post("/forgot-password")
@limiter.limit(login_rate)
async def forgot_password(
    payload: ForgotPasswordRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> dict:
    message = await accounts.forgot_password(db, payload.email)
    await db.commit()
    return flash(None, message=message, next_view="verify-code")


@router.post("/verify-code")
@limiter.limit(login_rate)
async def verify_code(
    payload: VerifyCodeRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> dict:
    try:
        token = await accounts.verify_reset_code(db, payload.email, payload.code)
    except ServiceError:
        # keep the attempt counter and any block
        await db.commit()
        raise
    await db.commit()
    return flash({"reset_token": token}, message="Code verified. Set your new password.", next_view="reset-password")


@router.post("/reset-password")
async def reset_password(
    payload: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
) -> dict:
    await accounts.reset_password(db, payload)
    await db.commit()
    return flash(None, message="Password reset successfully! Please log in.", next_view="login")


@router.post("/register", status_code=status.HTTP_201_CREATED)
@limiter.limit(login_rate)
async def register(
    payload: RegisterRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> dict:
    _, member = await accounts.register(db, payload)
    await db.commit()
    return flash(
        MemberOut.model_validate(member),
        message="Registration received. Check your email for the verification code.",
        next_view="verify-email",
        status_code=status.HTTP_201_CREATED,
    )


@router.post("/verify-email")
@limiter.limit(login_rate)
async def verify_email(
    payload: VerifyCodeRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> dict:
    try:
        await accounts.verify_email(db, payload.email, payload.code)
    except ServiceError:
        await db.commit()
        raise
    await db.commit()
    return flash(None, message="Email verified! You can now log in.", next_view="login")
