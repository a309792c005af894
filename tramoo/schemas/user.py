"""Pydantic schemas for User."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from tramoo.core.permissions import Role


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8)


class UserUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    email: EmailStr | None = None
    country: str | None = Field(None, max_length=100)
    bio: str | None = None
    avatar_url: str | None = None
    current_password: str | None = None
    new_password: str | None = Field(None, min_length=8)


class AuthorSummary(BaseModel):
    id: UUID
    name: str
    avatar_url: str | None = None

    model_config = {"from_attributes": True}


class UserPublic(AuthorSummary):
    bio: str = ""
    country: str = ""
    role: Role = Role.USER
    stories_written: int = 0
    photos_shared: int = 0
    countries_explored: int = 0
    joined_at: datetime | None = None


class UserResponse(UserPublic):
    email: str
    is_google_user: bool = False
    last_active: datetime | None = None


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserResponse


class TokenRefresh(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class GoogleLoginRequest(BaseModel):
    code: str = Field(..., min_length=1)


class VerifyPasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)


class MessageResponse(BaseModel):
    message: str


class ProfileUpdateResponse(MessageResponse):
    user: UserResponse


class RoleChangeResponse(MessageResponse):
    user: UserResponse
