"""Pydantic schemas for the travel-assistant chat."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class ChatMessageCreate(BaseModel):
    session_id: str = Field(..., min_length=1, max_length=100)
    message: str = Field(..., min_length=1, max_length=4000)


class ChatMessageResponse(BaseModel):
    id: UUID
    session_id: str
    sender: str
    message: str
    timestamp: datetime

    model_config = {"from_attributes": True}


class ChatExchange(BaseModel):
    success: bool = True
    messages: list[ChatMessageResponse]
