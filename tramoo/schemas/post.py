"""Pydantic schemas for Post."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from tramoo.schemas.comment import CommentResponse
from tramoo.schemas.user import AuthorSummary


class PostCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    subtitle: str | None = Field(None, max_length=300)
    content: str = Field(..., min_length=1)
    excerpt: str | None = None
    country: str = Field(..., min_length=1, max_length=100)
    tags: list[str] = []
    images: list[str] = []
    location_name: str | None = None
    location_lat: float | None = Field(None, ge=-90, le=90)
    location_lng: float | None = Field(None, ge=-180, le=180)
    featured: bool = False
    published: bool = True
    read_time: int = Field(5, ge=1)


class PostUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    subtitle: str | None = Field(None, max_length=300)
    content: str | None = Field(None, min_length=1)
    excerpt: str | None = None
    country: str | None = Field(None, min_length=1, max_length=100)
    tags: list[str] | None = None
    images: list[str] | None = None
    location_name: str | None = None
    location_lat: float | None = Field(None, ge=-90, le=90)
    location_lng: float | None = Field(None, ge=-180, le=180)
    featured: bool | None = None
    published: bool | None = None
    read_time: int | None = Field(None, ge=1)


class PostResponse(BaseModel):
    id: UUID
    author_id: UUID
    title: str
    subtitle: str | None = None
    content: str
    excerpt: str
    country: str | None = None
    tags: list[str] = []
    images: list[str] = []
    location_name: str | None = None
    location_lat: float | None = None
    location_lng: float | None = None
    featured: bool = False
    published: bool = True
    views: int = 0
    read_time: int = 5
    created_at: datetime
    updated_at: datetime | None = None
    author: AuthorSummary | None = None
    likes: list[UUID] = []
    likes_count: int = 0
    comments: list[CommentResponse] = []
    comments_count: int = 0


class PostListResponse(BaseModel):
    blogs: list[PostResponse]
    total: int
    page: int
    limit: int


class LikeResponse(BaseModel):
    likes: list[UUID]
    likes_count: int
    is_liked: bool


class SiteStats(BaseModel):
    countries_explored: int
    photos_shared: int
    stories_written: int
    community_members: int
