"""User administration: listing, role changes, account deletion and profile counters."""
import logging
from uuid import UUID

from sqlalchemy import case, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tramoo.core.exceptions import Forbidden, NotFound
from tramoo.core.permissions import Action, Role, authorize
from tramoo.models.chat import ChatMessage
from tramoo.models.comment import Comment
from tramoo.models.engagement import Like
from tramoo.models.post import Post
from tramoo.models.user import User

logger = logging.getLogger(__name__)


def _bump(column, n: int):
    # Never let a drifted counter go negative
    return case((column + n < 0, 0), else_=column + n)


def _countries_of(user_id: UUID):
    country = func.lower(func.trim(Post.country))
    return (
        select(func.count(func.distinct(country)))
        .where(Post.author_id == user_id, Post.country.is_not(None), func.trim(Post.country) != "")
        .scalar_subquery()
    )


async def adjust_user_counters(db: AsyncSession, user_id: UUID, *, stories: int = 0, photos: int = 0) -> None:
    """Apply counter deltas in one UPDATE; countries are re-derived from the posts."""
    values = {"countries_explored": _countries_of(user_id)}
    if stories:
        values["stories_written"] = _bump(User.stories_written, stories)
    if photos:
        values["photos_shared"] = _bump(User.photos_shared, photos)
    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )


async def recompute_user_stats(db: AsyncSession, user_id: UUID) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    rows = (await db.execute(select(Post.images, Post.country).where(Post.author_id == user_id))).all()
    user.stories_written = len(rows)
    user.photos_shared = sum(len(row.images or []) for row in rows)
    user.countries_explored = len(
        {row.country.strip().lower() for row in rows if row.country and row.country.strip()}
    )
    await db.flush()
    return user


async def recompute_all_user_stats(db: AsyncSession) -> int:
    user_ids = (await db.execute(select(User.id))).scalars().all()
    for user_id in user_ids:
        await recompute_user_stats(db, user_id)
    return len(user_ids)


async def get_user(db: AsyncSession, user_id: UUID) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    return user


async def list_users(db: AsyncSession, actor: User) -> list[User]:
    """Owners first, then admins, then users. Users newest first, the others by name."""
    authorize(Action.LIST_USERS, actor.role)
    result = await db.execute(select(User))
    users = list(result.scalars().all())
    staff = sorted((u for u in users if u.role != Role.USER.value), key=lambda u: (Role(u.role) != Role.OWNER, u.name.lower()))
    members = sorted((u for u in users if u.role == Role.USER.value), key=lambda u: u.joined_at, reverse=True)
    return staff + members


async def promote_to_admin(db: AsyncSession, actor: User, target_id: UUID) -> User:
    # Role check first: an unprivileged caller learns nothing about the target
    authorize(Action.PROMOTE_ADMIN, actor.role)
    target = await get_user(db, target_id)
    if target.role == Role.OWNER.value:
        raise Forbidden()
    if target.role == Role.USER.value:
        target.role = Role.ADMIN.value
        await db.flush()
        logger.info("User %s promoted to admin by %s", target.id, actor.id)
    return target


async def demote_admin(db: AsyncSession, actor: User, target_id: UUID) -> User:
    authorize(Action.DEMOTE_ADMIN, actor.role)
    target = await get_user(db, target_id)
    if target.role == Role.OWNER.value:
        raise Forbidden()
    if target.role == Role.ADMIN.value:
        target.role = Role.USER.value
        await db.flush()
        logger.info("Admin %s demoted to user by %s", target.id, actor.id)
    return target


async def delete_user_account(db: AsyncSession, user_id: UUID) -> list[str]:
    """
    Hard-delete a user with everything they authored.

    Removes their posts (with every like and comment on them), their likes
    and comments on other users' posts, and their chat history. Returns the
    image URLs of the removed posts so the caller can purge the files after
    the transaction commits.
    """
    own_posts = select(Post.id).where(Post.author_id == user_id)
    image_lists = (await db.execute(select(Post.images).where(Post.author_id == user_id))).scalars().all()
    images = [url for urls in image_lists for url in (urls or [])]

    await db.execute(
        delete(Like)
        .where(or_(Like.user_id == user_id, Like.post_id.in_(own_posts)))
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        delete(Comment)
        .where(or_(Comment.author_id == user_id, Comment.post_id.in_(own_posts)))
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        delete(ChatMessage).where(ChatMessage.user_id == user_id).execution_options(synchronize_session=False)
    )
    await db.execute(delete(Post).where(Post.author_id == user_id).execution_options(synchronize_session=False))
    await db.execute(delete(User).where(User.id == user_id).execution_options(synchronize_session=False))
    logger.info("User %s deleted with %d image(s) queued for cleanup", user_id, len(images))
    return images


async def delete_user_by_owner(db: AsyncSession, actor: User, target_id: UUID) -> list[str]:
    authorize(Action.DELETE_USER, actor.role, is_self=target_id == actor.id)
    target = await get_user(db, target_id)
    images = await delete_user_account(db, target.id)
    logger.info("User %s deleted by owner %s", target_id, actor.id)
    return images


async def recompute_stats_for(db: AsyncSession, actor: User, target_id: UUID) -> User:
    authorize(Action.RECOMPUTE_STATS, actor.role)
    return await recompute_user_stats(db, target_id)
