from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..dependencies import get_app_settings, get_current_user, get_db
from ..models.users import User
from ..schemas.common import MessageResponse
from ..schemas.users import AuthResponse, CurrentUserResponse, LoginRequest, RegisterRequest, UserResponse
from ..services import auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> AuthResponse:
    user, token = await auth_service.register(db, payload, settings)
    return AuthResponse(message="User registered successfully", user=UserResponse.model_validate(user), token=token)


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> AuthResponse:
    user, token = await auth_service.login(db, payload, settings)
    return AuthResponse(message="Login successful", user=UserResponse.model_validate(user), token=token)


@router.get("/me", response_model=CurrentUserResponse)
async def me(user: User = Depends(get_current_user)) -> CurrentUserResponse:
    return CurrentUserResponse(user=UserResponse.model_validate(user))


@router.post("/logout", response_model=MessageResponse)
async def logout(user: User = Depends(get_current_user)) -> MessageResponse:
    # tokens are stateless; the client drops its copy
    return MessageResponse(message="Logout successful")
