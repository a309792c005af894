"""API dependencies: auth, db session."""
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from tramoo.core.exceptions import Unauthorized
from tramoo.core.security import verify_access_token
from tramoo.db.session import get_db
from tramoo.models.user import User

security = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> UUID:
    """Verify the bearer token. No database access; missing and invalid fail alike."""
    if not credentials:
        raise Unauthorized()
    return verify_access_token(credentials.credentials)


async def get_current_user(
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise Unauthorized()
    return user


__all__ = ["get_db", "get_current_user_id", "get_current_user"]
