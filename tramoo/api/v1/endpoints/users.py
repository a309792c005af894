"""User administration and public profiles."""
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tramoo.api.deps import get_current_user, get_db
from tramoo.models.user import User
from tramoo.schemas.user import MessageResponse, RoleChangeResponse, UserPublic, UserResponse
from tramoo.services import user_service
from tramoo.services.auth_service import user_to_response
from tramoo.services.storage_service import StorageBackend, get_storage, purge_media

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=list[UserResponse])
async def list_users(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    users = await user_service.list_users(db, current_user)
    return [user_to_response(u) for u in users]


@router.get("/{user_id}", response_model=UserPublic)
async def get_user_profile(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.get_user(db, user_id)
    return UserPublic.model_validate(user)


@router.put("/{user_id}/make-admin", response_model=RoleChangeResponse)
async def make_admin(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    target = await user_service.promote_to_admin(db, current_user, user_id)
    await db.commit()
    return RoleChangeResponse(message=f"User {target.name} is now {target.role}", user=user_to_response(target))


@router.put("/{user_id}/remove-admin", response_model=RoleChangeResponse)
async def remove_admin(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    target = await user_service.demote_admin(db, current_user, user_id)
    await db.commit()
    return RoleChangeResponse(message=f"User {target.name} is now {target.role}", user=user_to_response(target))


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    images = await user_service.delete_user_by_owner(db, current_user, user_id)
    await db.commit()
    purge_media(storage, images)
    storage.delete_user_media(str(user_id))
    return MessageResponse(message="User deleted successfully")


@router.post("/{user_id}/recompute-stats", response_model=UserResponse)
async def recompute_stats(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.recompute_stats_for(db, current_user, user_id)
    await db.commit()
    return user_to_response(user)
