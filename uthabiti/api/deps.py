from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from uthabiti.core.context import set_actor_id
from uthabiti.core.permissions import PermissionCode, has_permission
from uthabiti.core.security import ACCESS_TOKEN, PASSWORD_CHANGE_TOKEN, decode_token
from uthabiti.core.settings import settings
from uthabiti.db.session import get_db
from uthabiti.models import Member, User
from uthabiti.schemas.common import UserStatus
from uthabiti.services import members as member_service
from uthabiti.services.activity_log import record_activity

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


def enforce_inactivity(last_active_at: Optional[datetime], now: datetime) -> None:
    timeout = timedelta(minutes=settings.session_timeout_minutes)
    if last_active_at and last_active_at.tzinfo is None:
        last_active_at = last_active_at.replace(tzinfo=timezone.utc)
    if last_active_at and now - last_active_at > timeout:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired due to inactivity",
        )


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    return await _get_current_user(token, db, allow_password_change=False)


async def get_current_user_allow_password_change(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Also accepts the short-lived token a Pending account receives at login."""
    return await _get_current_user(token, db, allow_password_change=True)


async def _get_current_user(token: str, db: AsyncSession, allow_password_change: bool) -> User:
    expected = (ACCESS_TOKEN, PASSWORD_CHANGE_TOKEN) if allow_password_change else ACCESS_TOKEN
    try:
        payload = decode_token(token, expected_type=expected)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    user_sub = payload.get("sub")
    token_version = payload.get("tv")
    if not user_sub or not str(user_sub).isdigit():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    result = await db.execute(select(User).where(User.id == int(user_sub)))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    pending_change = allow_password_change and user.status == UserStatus.PENDING.value
    if user.status != UserStatus.ACTIVE.value and not pending_change:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Inactive user")
    if token_version is not None and user.token_version != token_version:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token revoked")

    now = datetime.now(timezone.utc)
    enforce_inactivity(user.last_active_at, now)
    user.last_active_at = now
    db.add(user)
    await db.commit()
    await db.refresh(user)
    set_actor_id(user.id)
    return user


async def require_authenticated_user(current_user: User = Depends(get_current_user)) -> User:
    return current_user


def require_permission(permission_code: PermissionCode):
    async def dependency(
        current_user: User = Depends(require_authenticated_user),
        db: AsyncSession = Depends(get_db),
    ) -> User:
        if not has_permission(current_user.role, permission_code):
            await record_activity(
                db,
                action="ACCESS_DENIED",
                description=f"{current_user.role} {current_user.email} denied {permission_code.value}",
                user_id=current_user.id,
            )
            await db.commit()
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permission: {permission_code.value}",
            )
        return current_user

    return dependency


require_self_service = require_permission(PermissionCode.SELF_SERVICE)


async def get_current_member(
    current_user: User = Depends(require_self_service),
    db: AsyncSession = Depends(get_db),
) -> Member:
    return await member_service.get_member_for_user(db, current_user.id)
