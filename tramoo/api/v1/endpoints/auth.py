"""Auth endpoints: register, login, Google sign-in, refresh, profile."""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from tramoo.api.deps import get_current_user, get_current_user_id, get_db
from tramoo.models.user import User
from tramoo.schemas.user import (
    GoogleLoginRequest,
    LoginRequest,
    MessageResponse,
    ProfileUpdateResponse,
    Token,
    TokenRefresh,
    UserCreate,
    UserResponse,
    UserUpdate,
    VerifyPasswordRequest,
)
from tramoo.services.auth_service import (
    authenticate_user,
    check_current_password,
    create_user,
    issue_session,
    login_with_google,
    revoke_refresh_token,
    rotate_refresh_token,
    update_profile,
    user_to_response,
)
from tramoo.services.identity_service import IdentityProvider, get_identity_provider
from tramoo.services.storage_service import StorageBackend, get_storage, purge_media
from tramoo.services.user_service import delete_user_account

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


async def _token_response(db: AsyncSession, user: User) -> Token:
    access_token, refresh_token = await issue_session(db, user)
    return Token(
        access_token=access_token,
        refresh_token=refresh_token,
        user=user_to_response(user),
    )


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register(
    data: UserCreate,
    db: AsyncSession = Depends(get_db),
):
    user = await create_user(db, data)
    token = await _token_response(db, user)
    await db.commit()
    logger.info("Register success: %s", user.id)
    return token


@router.post("/login", response_model=Token)
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    user = await authenticate_user(db, data.email, data.password)
    token = await _token_response(db, user)
    await db.commit()
    logger.info("Login success: %s", user.id)
    return token


@router.post("/google", response_model=Token)
async def google_login(
    data: GoogleLoginRequest,
    db: AsyncSession = Depends(get_db),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    profile = await provider.exchange_code(data.code)
    user = await login_with_google(db, profile)
    token = await _token_response(db, user)
    await db.commit()
    logger.info("Google login success: %s", user.id)
    return token


@router.post("/refresh", response_model=Token)
async def refresh_token(
    body: TokenRefresh,
    db: AsyncSession = Depends(get_db),
):
    user, access_token, new_refresh = await rotate_refresh_token(db, body.refresh_token)
    await db.commit()
    return Token(
        access_token=access_token,
        refresh_token=new_refresh,
        user=user_to_response(user),
    )


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user)):
    return user_to_response(current_user)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await revoke_refresh_token(db, user_id)
    await db.commit()
    logger.info("Logout: %s", user_id)
    return MessageResponse(message="Logged out successfully")


@router.post("/verify-current-password", response_model=MessageResponse)
async def verify_current_password(
    data: VerifyPasswordRequest,
    current_user: User = Depends(get_current_user),
):
    check_current_password(current_user, data.current_password)
    return MessageResponse(message="Current password verified")


@router.put("/update", response_model=ProfileUpdateResponse)
async def update_me(
    data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await update_profile(db, current_user, data)
    await db.commit()
    return ProfileUpdateResponse(message="Profile updated successfully", user=user_to_response(user))


@router.delete("/delete", response_model=MessageResponse)
async def delete_me(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    user_id = current_user.id
    images = await delete_user_account(db, user_id)
    await db.commit()
    purge_media(storage, images)
    storage.delete_user_media(str(user_id))
    logger.info("Account deleted: %s", user_id)
    return MessageResponse(message="Account deleted successfully")
