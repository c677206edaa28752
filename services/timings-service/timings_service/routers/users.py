from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import get_db, require_admin, require_admin_or_self
from ..models.users import User
from ..schemas.common import MessageResponse
from ..schemas.users import CurrentUserResponse, UserListResponse, UserResponse, UserUpdate, UserUpdateResponse
from ..services import users_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=UserListResponse)
async def list_users(
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> UserListResponse:
    users = await users_service.list_users(db)
    return UserListResponse(users=[UserResponse.model_validate(u) for u in users])


@router.get("/{user_id}", response_model=CurrentUserResponse)
async def get_user(
    user_id: int,
    _: User = Depends(require_admin_or_self),
    db: AsyncSession = Depends(get_db),
) -> CurrentUserResponse:
    user = await users_service.get_user(db, user_id)
    return CurrentUserResponse(user=UserResponse.model_validate(user))


@router.put("/{user_id}", response_model=UserUpdateResponse)
async def update_user(
    user_id: int,
    payload: UserUpdate,
    actor: User = Depends(require_admin_or_self),
    db: AsyncSession = Depends(get_db),
) -> UserUpdateResponse:
    user = await users_service.update_user(db, user_id, payload, actor)
    return UserUpdateResponse(message="User updated successfully", user=UserResponse.model_validate(user))


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: int,
    actor: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    await users_service.delete_user(db, user_id, actor)
    return MessageResponse(message="User deleted successfully")
