"""Authentication business logic."""
import logging
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tramoo.core.exceptions import Conflict, Unauthorized, ValidationError
from tramoo.core.security import (
    create_access_token,
    create_refresh_token,
    get_password_hash,
    hash_refresh_token,
    verify_password,
    verify_refresh_token,
)
from tramoo.db.session import utcnow
from tramoo.models.user import User
from tramoo.schemas.user import UserCreate, UserResponse, UserUpdate
from tramoo.services.identity_service import GoogleProfile

logger = logging.getLogger(__name__)


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_user_by_id(db: AsyncSession, user_id: UUID) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def _flush_claiming_email(db: AsyncSession, message: str) -> None:
    """Flush a write that claims an email. Losing a race on the unique index is a Conflict."""
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise Conflict(message, code="EMAIL_ALREADY_REGISTERED") from None


async def create_user(db: AsyncSession, data: UserCreate) -> User:
    if await get_user_by_email(db, data.email):
        raise Conflict("User already exists", code="EMAIL_ALREADY_REGISTERED")
    user = User(
        name=data.name,
        email=data.email,
        password_hash=get_password_hash(data.password),
    )
    db.add(user)
    await _flush_claiming_email(db, "User already exists")
    await db.refresh(user)
    return user


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User:
    """Unknown email and wrong password fail the same way."""
    user = await get_user_by_email(db, email)
    if not user or user.is_google_user or not verify_password(password, user.password_hash):
        raise Unauthorized("Invalid credentials", code="INVALID_CREDENTIALS")
    return user


async def login_with_google(db: AsyncSession, profile: GoogleProfile) -> User:
    user = await get_user_by_email(db, profile.email)
    if user is None:
        user = User(
            name=profile.name or profile.email.split("@")[0],
            email=profile.email,
            password_hash=None,
            is_google_user=True,
            avatar_url=profile.picture,
        )
        db.add(user)
        await _flush_claiming_email(db, "User already exists")
        await db.refresh(user)
        logger.info("Google account created: %s", user.id)
    elif not user.is_google_user:
        raise Conflict(
            "An account with this email already exists. Please sign in using your password.",
            code="EMAIL_ALREADY_EXISTS_NON_GOOGLE",
        )
    return user


async def issue_session(db: AsyncSession, user: User) -> tuple[str, str]:
    """Mint a token pair and make the refresh token the user's single active one."""
    access_token = create_access_token(user.id)
    refresh_token = create_refresh_token(user.id)
    user.refresh_token_hash = hash_refresh_token(refresh_token)
    user.last_active = utcnow()
    await db.flush()
    return access_token, refresh_token


async def rotate_refresh_token(db: AsyncSession, presented: str) -> tuple[User, str, str]:
    """
    Exchange a refresh token for a new pair.

    The stored digest is swapped with a conditional UPDATE, so a stale or
    replayed token (or a concurrent second use of the same one) matches no
    row. Forged, expired, stale and orphaned tokens all fail identically.
    """
    try:
        user_id = verify_refresh_token(presented)
    except Unauthorized:
        raise Unauthorized("Invalid refresh token", code="INVALID_REFRESH_TOKEN")

    new_refresh = create_refresh_token(user_id)
    result = await db.execute(
        update(User)
        .where(User.id == user_id, User.refresh_token_hash == hash_refresh_token(presented))
        .values(refresh_token_hash=hash_refresh_token(new_refresh), last_active=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.info("Refresh token rejected for user %s", user_id)
        raise Unauthorized("Invalid refresh token", code="INVALID_REFRESH_TOKEN")

    user = await db.get(User, user_id, populate_existing=True)
    return user, create_access_token(user_id), new_refresh


async def revoke_refresh_token(db: AsyncSession, user_id: UUID) -> None:
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(refresh_token_hash=None)
        .execution_options(synchronize_session=False)
    )


def check_current_password(user: User, current_password: str | None) -> None:
    if user.is_google_user:
        raise ValidationError.for_field("current_password", "Google users do not have a traditional password.")
    if not current_password:
        raise ValidationError.for_field("current_password", "Current password is required to change password.")
    if not verify_password(current_password, user.password_hash):
        raise ValidationError.for_field("current_password", "Invalid current password.")


async def update_profile(db: AsyncSession, user: User, data: UserUpdate) -> User:
    # Validate everything before touching the record
    if data.new_password:
        check_current_password(user, data.current_password)
    if data.email and data.email != user.email:
        if await get_user_by_email(db, data.email):
            raise Conflict("Email already registered", code="EMAIL_ALREADY_REGISTERED")
        user.email = data.email

    if data.name:
        user.name = data.name
    if data.country is not None:
        user.country = data.country
    if data.bio is not None:
        user.bio = data.bio
    if data.avatar_url is not None:
        user.avatar_url = data.avatar_url
    if data.new_password:
        user.password_hash = get_password_hash(data.new_password)
    await _flush_claiming_email(db, "Email already registered")
    await db.refresh(user)
    return user


def user_to_response(user: User) -> UserResponse:
    return UserResponse.model_validate(user)
