"""Security utilities: password hashing and JWT token handling."""
import hashlib
import uuid
from datetime import datetime, timedelta, timezone
from uuid import UUID

from jose import JWTError, jwt
from passlib.context import CryptContext

from tramoo.core.config import settings
from tramoo.core.exceptions import Unauthorized

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(user_id: str | UUID) -> str:
    """Short-lived bearer token. Carries only the user id."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode = {"id": str(user_id), "exp": expire}
    return jwt.encode(to_encode, settings.JWT_ACCESS_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_refresh_token(user_id: str | UUID) -> str:
    """Longer-lived token. Only valid once its digest is stored on the user."""
    expire = datetime.now(timezone.utc) + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    # jti keeps two tokens minted in the same second distinct
    to_encode = {"id": str(user_id), "exp": expire, "jti": uuid.uuid4().hex}
    return jwt.encode(to_encode, settings.JWT_REFRESH_SECRET, algorithm=settings.JWT_ALGORITHM)


def _decode_user_id(token: str, secret: str) -> UUID:
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.JWT_ALGORITHM])
        return UUID(str(payload["id"]))
    except (JWTError, KeyError, ValueError):
        raise Unauthorized()


def verify_access_token(token: str) -> UUID:
    """Signature and expiry check only, no database access."""
    return _decode_user_id(token, settings.JWT_ACCESS_SECRET)


def verify_refresh_token(token: str) -> UUID:
    return _decode_user_id(token, settings.JWT_REFRESH_SECRET)


def hash_refresh_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
