"""Blog post business logic: CRUD, likes and comments.

Likes and comments are separate rows, so every mutation here is a single
row-level INSERT/DELETE/UPDATE. Two actors liking and commenting on the
same post at once never overwrite each other's change.
"""
import logging
from uuid import UUID

from sqlalchemy import delete, desc, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tramoo.core.exceptions import NotFound, ValidationError
from tramoo.core.permissions import Action, authorize
from tramoo.models.comment import Comment
from tramoo.models.engagement import Like
from tramoo.models.post import Post
from tramoo.models.user import User
from tramoo.schemas.comment import CommentResponse
from tramoo.schemas.post import PostCreate, PostResponse, PostUpdate, SiteStats
from tramoo.schemas.user import AuthorSummary
from tramoo.services.user_service import adjust_user_counters

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 150
# Columns that may not be cleared through an edit
NON_NULLABLE_FIELDS = {"title", "content", "excerpt", "country", "tags", "images", "featured", "published", "read_time"}


def normalize_tags(tags: list[str]) -> list[str]:
    """Strip, drop empties, dedupe by value keeping first-seen order."""
    seen: dict[str, None] = {}
    for tag in tags:
        tag = tag.strip()
        if tag:
            seen.setdefault(tag, None)
    return list(seen)


def make_excerpt(content: str) -> str:
    return content[:EXCERPT_LENGTH] + "..."


def _post_load_options():
    return (
        selectinload(Post.author),
        selectinload(Post.likes),
        selectinload(Post.comments).selectinload(Comment.author),
    )


async def _get_post(db: AsyncSession, post_id: UUID) -> Post:
    result = await db.execute(select(Post).where(Post.id == post_id))
    post = result.scalar_one_or_none()
    if not post:
        raise NotFound("Blog not found")
    return post


async def _require_post_exists(db: AsyncSession, post_id: UUID) -> None:
    result = await db.execute(select(Post.id).where(Post.id == post_id))
    if result.scalar_one_or_none() is None:
        raise NotFound("Blog not found")


async def load_post(db: AsyncSession, post_id: UUID) -> Post:
    result = await db.execute(
        select(Post)
        .where(Post.id == post_id)
        .options(*_post_load_options())
        .execution_options(populate_existing=True)
    )
    post = result.scalar_one_or_none()
    if not post:
        raise NotFound("Blog not found")
    return post


async def read_post(db: AsyncSession, post_id: UUID) -> Post:
    """Load a post for display. Every read counts as a view, authenticated or not."""
    result = await db.execute(
        update(Post)
        .where(Post.id == post_id)
        .values(views=Post.views + 1, updated_at=Post.updated_at)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFound("Blog not found")
    return await load_post(db, post_id)


async def create_post(db: AsyncSession, author_id: UUID, data: PostCreate) -> Post:
    images = list(data.images)
    post = Post(
        author_id=author_id,
        title=data.title,
        subtitle=data.subtitle,
        content=data.content,
        excerpt=data.excerpt or make_excerpt(data.content),
        country=data.country,
        tags=normalize_tags(data.tags),
        images=images,
        location_name=data.location_name,
        location_lat=data.location_lat,
        location_lng=data.location_lng,
        featured=data.featured,
        published=data.published,
        read_time=data.read_time,
    )
    db.add(post)
    await db.flush()
    await adjust_user_counters(db, author_id, stories=1, photos=len(images))
    logger.info("Post created: %s by %s", post.id, author_id)
    return await load_post(db, post.id)


async def update_post(db: AsyncSession, post_id: UUID, actor: User, data: PostUpdate) -> tuple[Post, list[str]]:
    """Apply an edit. Returns the post and the image URLs that were dropped from it."""
    post = await _get_post(db, post_id)
    authorize(Action.EDIT_POST, actor.role, is_owner=post.author_id == actor.id)

    fields = data.model_dump(exclude_unset=True)
    removed_images: list[str] = []
    photo_delta = 0
    if fields.get("tags") is not None:
        fields["tags"] = normalize_tags(fields["tags"])
    if fields.get("images") is not None:
        old_images = list(post.images or [])
        removed_images = [url for url in old_images if url not in fields["images"]]
        photo_delta = len(fields["images"]) - len(old_images)

    for key, value in fields.items():
        if value is None and key in NON_NULLABLE_FIELDS:
            continue
        setattr(post, key, value)
    await db.flush()
    await adjust_user_counters(db, post.author_id, photos=photo_delta)
    logger.info("Post edited: %s by %s", post.id, actor.id)
    return await load_post(db, post.id), removed_images


async def delete_post(db: AsyncSession, post_id: UUID, actor: User) -> list[str]:
    """Delete a post with its likes and comments. Returns its image URLs for cleanup."""
    post = await _get_post(db, post_id)
    authorize(Action.DELETE_POST, actor.role, is_owner=post.author_id == actor.id)

    images = list(post.images or [])
    author_id = post.author_id
    await db.execute(delete(Like).where(Like.post_id == post.id).execution_options(synchronize_session=False))
    await db.execute(delete(Comment).where(Comment.post_id == post.id).execution_options(synchronize_session=False))
    await db.delete(post)
    await db.flush()
    await adjust_user_counters(db, author_id, stories=-1, photos=-len(images))
    logger.info("Post deleted: %s by %s", post_id, actor.id)
    return images


DIALECT_INSERTS = {"postgresql": pg_insert, "sqlite": sqlite_insert}
SUPPORTED_DIALECTS = tuple(DIALECT_INSERTS)


def _dialect_name(db: AsyncSession) -> str:
    name = db.bind.dialect.name
    if name not in SUPPORTED_DIALECTS:
        raise NotImplementedError(f"Database dialect {name!r} is not supported; use one of {SUPPORTED_DIALECTS}")
    return name


def _tag_contains(dialect: str, term: str):
    """EXISTS over the individual tag values rather than the column's JSON text."""
    if dialect == "postgresql":
        tag_values = func.jsonb_array_elements_text(Post.tags).table_valued("value")
    else:
        tag_values = func.json_each(Post.tags).table_valued("value")
    return select(tag_values.c.value).where(tag_values.c.value.icontains(term, autoescape=True)).exists()


async def list_posts(
    db: AsyncSession,
    *,
    page: int = 1,
    limit: int = 10,
    search: str | None = None,
) -> tuple[list[Post], int]:
    filters = [Post.published.is_(True)]
    term = (search or "").strip()
    if term:
        filters.append(
            or_(
                Post.title.icontains(term, autoescape=True),
                Post.subtitle.icontains(term, autoescape=True),
                Post.content.icontains(term, autoescape=True),
                Post.excerpt.icontains(term, autoescape=True),
                _tag_contains(_dialect_name(db), term),
                Post.country.icontains(term, autoescape=True),
            )
        )
    total = await db.scalar(select(func.count(Post.id)).where(*filters))
    result = await db.execute(
        select(Post)
        .where(*filters)
        .order_by(desc(Post.created_at))
        .offset((page - 1) * limit)
        .limit(limit)
        .options(*_post_load_options())
    )
    return list(result.scalars().all()), total or 0


async def get_liked_posts(db: AsyncSession, user_id: UUID) -> list[Post]:
    result = await db.execute(
        select(Post)
        .join(Like, Like.post_id == Post.id)
        .where(Like.user_id == user_id)
        .order_by(desc(Like.created_at))
        .options(*_post_load_options())
    )
    return list(result.scalars().all())


async def get_posts_by_author(db: AsyncSession, author_id: UUID) -> list[Post]:
    """All of an author's posts, drafts included."""
    result = await db.execute(
        select(Post)
        .where(Post.author_id == author_id)
        .order_by(desc(Post.created_at))
        .options(*_post_load_options())
    )
    return list(result.scalars().all())


def _insert_like_ignoring_duplicate(db: AsyncSession, post_id: UUID, user_id: UUID):
    insert = DIALECT_INSERTS[_dialect_name(db)]
    return insert(Like).values(post_id=post_id, user_id=user_id).on_conflict_do_nothing(
        index_elements=["post_id", "user_id"]
    )


async def toggle_like(db: AsyncSession, post_id: UUID, user_id: UUID) -> tuple[list[UUID], bool]:
    """
    Flip the user's membership in the post's likes.

    This is a toggle, not set/unset: two calls cancel out. A duplicate
    insert racing from the same user is absorbed by the primary key.
    """
    await _require_post_exists(db, post_id)
    result = await db.execute(
        delete(Like)
        .where(Like.post_id == post_id, Like.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    is_liked = result.rowcount == 0
    if is_liked:
        await db.execute(_insert_like_ignoring_duplicate(db, post_id, user_id))

    likers = await db.execute(select(Like.user_id).where(Like.post_id == post_id).order_by(Like.created_at))
    logger.info("Post %s: %s by %s", post_id, "liked" if is_liked else "unliked", user_id)
    return list(likers.scalars().all()), is_liked


async def add_comment(db: AsyncSession, post_id: UUID, author_id: UUID, text: str) -> Comment:
    text = text.strip()
    if not text:
        raise ValidationError.for_field("content", "Comment cannot be empty.")
    await _require_post_exists(db, post_id)
    comment = Comment(post_id=post_id, author_id=author_id, content=text)
    db.add(comment)
    await db.flush()
    logger.info("Comment %s added to post %s by %s", comment.id, post_id, author_id)
    return comment


async def delete_comment(db: AsyncSession, post_id: UUID, comment_id: UUID, actor: User) -> None:
    await _require_post_exists(db, post_id)
    result = await db.execute(select(Comment).where(Comment.id == comment_id, Comment.post_id == post_id))
    comment = result.scalar_one_or_none()
    if not comment:
        raise NotFound("Comment not found")
    authorize(Action.DELETE_COMMENT, actor.role, is_owner=comment.author_id == actor.id)
    await db.delete(comment)
    await db.flush()
    logger.info("Comment %s removed from post %s by %s", comment_id, post_id, actor.id)


async def comment_with_author(db: AsyncSession, comment: Comment) -> CommentResponse:
    """Resolve the author for display. A failed lookup leaves the saved comment alone."""
    author = None
    try:
        user = await db.get(User, comment.author_id)
        if user:
            author = AuthorSummary.model_validate(user)
    except SQLAlchemyError as e:
        logger.warning("Could not resolve author of comment %s: %s", comment.id, e)
    return comment_to_response(comment, author)


def comment_to_response(comment: Comment, author: AuthorSummary | User | None = None) -> CommentResponse:
    return CommentResponse(
        id=comment.id,
        post_id=comment.post_id,
        author_id=comment.author_id,
        content=comment.content,
        created_at=comment.created_at,
        author=AuthorSummary.model_validate(author) if author is not None else None,
    )


def post_to_response(post: Post) -> PostResponse:
    """Convert a post loaded with _post_load_options()."""
    likes = [like.user_id for like in post.likes]
    comments = [comment_to_response(c, c.author) for c in post.comments]
    return PostResponse(
        id=post.id,
        author_id=post.author_id,
        title=post.title,
        subtitle=post.subtitle,
        content=post.content,
        excerpt=post.excerpt,
        country=post.country,
        tags=post.tags or [],
        images=post.images or [],
        location_name=post.location_name,
        location_lat=post.location_lat,
        location_lng=post.location_lng,
        featured=post.featured,
        published=post.published,
        views=post.views or 0,
        read_time=post.read_time,
        created_at=post.created_at,
        updated_at=post.updated_at,
        author=AuthorSummary.model_validate(post.author) if post.author else None,
        likes=likes,
        likes_count=len(likes),
        comments=comments,
        comments_count=len(comments),
    )


async def get_site_stats(db: AsyncSession) -> SiteStats:
    members = await db.scalar(select(func.count(User.id)))
    rows = (await db.execute(select(Post.images, Post.country))).all()
    countries = {row.country.strip().lower() for row in rows if row.country and row.country.strip()}
    return SiteStats(
        countries_explored=len(countries),
        photos_shared=sum(len(row.images or []) for row in rows),
        stories_written=len(rows),
        community_members=members or 0,
    )
