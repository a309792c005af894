"""Blog posts: CRUD, likes and comments."""
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from tramoo.api.deps import get_current_user, get_current_user_id, get_db
from tramoo.models.user import User
from tramoo.schemas.comment import CommentCreate, CommentResponse
from tramoo.schemas.post import LikeResponse, PostCreate, PostListResponse, PostResponse, PostUpdate
from tramoo.schemas.user import MessageResponse
from tramoo.services import blog_service
from tramoo.services.blog_service import post_to_response
from tramoo.services.storage_service import StorageBackend, get_storage, purge_media

router = APIRouter(prefix="/blogs", tags=["blogs"])


@router.get("", response_model=PostListResponse)
async def list_blogs(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    search: str | None = Query(None, max_length=200),
    db: AsyncSession = Depends(get_db),
):
    posts, total = await blog_service.list_posts(db, page=page, limit=limit, search=search)
    return PostListResponse(
        blogs=[post_to_response(p) for p in posts],
        total=total,
        page=page,
        limit=limit,
    )


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_blog(
    data: PostCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    post = await blog_service.create_post(db, current_user.id, data)
    await db.commit()
    return post_to_response(post)


@router.get("/liked", response_model=list[PostResponse])
async def liked_blogs(
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    posts = await blog_service.get_liked_posts(db, user_id)
    return [post_to_response(p) for p in posts]


@router.get("/my-stories", response_model=list[PostResponse])
async def my_stories(
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    posts = await blog_service.get_posts_by_author(db, user_id)
    return [post_to_response(p) for p in posts]


@router.get("/{blog_id}", response_model=PostResponse)
async def get_blog(
    blog_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    post = await blog_service.read_post(db, blog_id)
    await db.commit()
    return post_to_response(post)


@router.put("/{blog_id}", response_model=PostResponse)
async def update_blog(
    blog_id: UUID,
    data: PostUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    post, removed_images = await blog_service.update_post(db, blog_id, current_user, data)
    await db.commit()
    purge_media(storage, removed_images)
    return post_to_response(post)


@router.delete("/{blog_id}", response_model=MessageResponse)
async def delete_blog(
    blog_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
):
    images = await blog_service.delete_post(db, blog_id, current_user)
    await db.commit()
    # Files go only after the row is gone; a failed unlink leaves an orphan, not a broken post
    purge_media(storage, images)
    return MessageResponse(message="Blog deleted successfully")


@router.post("/{blog_id}/like", response_model=LikeResponse)
async def toggle_like(
    blog_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    likes, is_liked = await blog_service.toggle_like(db, blog_id, current_user.id)
    await db.commit()
    return LikeResponse(likes=likes, likes_count=len(likes), is_liked=is_liked)


@router.post("/{blog_id}/comment", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def add_comment(
    blog_id: UUID,
    data: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    comment = await blog_service.add_comment(db, blog_id, current_user.id, data.content)
    # Persist before resolving the author for display
    await db.commit()
    return await blog_service.comment_with_author(db, comment)


@router.delete("/{blog_id}/comments/{comment_id}", response_model=MessageResponse)
async def delete_comment(
    blog_id: UUID,
    comment_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await blog_service.delete_comment(db, blog_id, comment_id, current_user)
    await db.commit()
    return MessageResponse(message="Comment deleted successfully")
