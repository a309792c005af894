"""Pydantic schemas for Comment."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from tramoo.schemas.user import AuthorSummary


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


class CommentResponse(BaseModel):
    id: UUID
    post_id: UUID
    author_id: UUID
    content: str
    created_at: datetime
    author: AuthorSummary | None = None  # None when the author could not be resolved

    model_config = {"from_attributes": True}
