from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, EmailStr, Field, StringConstraints, field_validator

from ..models.users import UserRole

UserName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=100)]
PhoneNumber = Annotated[str, StringConstraints(strip_whitespace=True, max_length=32)]


class UserResponse(BaseModel):
    id: int
    email: str
    role: UserRole
    name: str
    phone_number: str | None = None
    created_at: datetime
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128, description="At least 6 characters")
    name: UserName
    phone_number: PhoneNumber | None = None

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return value.lower()


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, description="Password is required")

    @field_validator("email")
    @classmethod
    def _lower_email(cls, value: str) -> str:
        return value.lower()


class AuthResponse(BaseModel):
    message: str
    user: UserResponse
    token: str


class CurrentUserResponse(BaseModel):
    user: UserResponse


class UserListResponse(BaseModel):
    users: list[UserResponse]


class UserUpdate(BaseModel):
    name: UserName | None = None
    phone_number: PhoneNumber | None = None
    role: UserRole | None = None


class UserUpdateResponse(BaseModel):
    message: str
    user: UserResponse
