from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from uthabiti.api import deps
from uthabiti.core.permissions import PermissionCode, Role
from uthabiti.core.response_envelope import flash
from uthabiti.db.session import get_db
from uthabiti.models import User
from uthabiti.schemas.auth import UserOut
from uthabiti.schemas.users import UserCreate, UserRoleUpdate
from uthabiti.services import accounts

router = APIRouter(prefix="/users", tags=["users"])

_manage = deps.require_permission(PermissionCode.USER_MANAGE)


@router.get("", response_model=list[UserOut], summary="List user accounts")
async def list_users(
    role: Optional[Role] = Query(default=None),
    _: User = Depends(_manage),
    db: AsyncSession = Depends(get_db),
) -> list[UserOut]:
    users = await accounts.list_users(db, role=role.value if role else None)
    return [UserOut.model_validate(user) for user in users]


@router.post("", status_code=status.HTTP_201_CREATED, summary="Add a staff account")
async def add_user(
    payload: UserCreate,
    current_user: User = Depends(_manage),
    db: AsyncSession = Depends(get_db),
) -> dict:
    user = await accounts.add_user(db, payload, actor_id=current_user.id)
    await db.commit()
    return flash(
        UserOut.model_validate(user),
        message=f"User {user.full_name} added. Their ID Number is the first-login password.",
        next_view="users",
        status_code=status.HTTP_201_CREATED,
    )


@router.post("/{user_id}/status", summary="Move an account to its next status")
async def change_user_status(
    user_id: int,
    current_user: User = Depends(_manage),
    db: AsyncSession = Depends(get_db),
) -> dict:
    user = await accounts.change_user_status(db, user_id, actor_id=current_user.id)
    await db.commit()
    return flash(UserOut.model_validate(user), message=f"User status updated to {user.status}!", next_view="users")


@router.put("/{user_id}/role", summary="Change an account role")
async def change_user_role(
    user_id: int,
    payload: UserRoleUpdate,
    current_user: User = Depends(_manage),
    db: AsyncSession = Depends(get_db),
) -> dict:
    user = await accounts.change_user_role(db, user_id, payload.role, actor_id=current_user.id)
    await db.commit()
    return flash(UserOut.model_validate(user), message=f"User role updated to {user.role}!", next_view="users")


@router.post("/{user_id}/reset", summary="Reset a blocked account")
async def reset_account(
    user_id: int,
    current_user: User = Depends(_manage),
    db: AsyncSession = Depends(get_db),
) -> dict:
    user = await accounts.reset_account(db, user_id, actor_id=current_user.id)
    await db.commit()
    return flash(
        UserOut.model_validate(user),
        message="Account reset. The user must change their password at next login.",
        next_view="users",
    )
