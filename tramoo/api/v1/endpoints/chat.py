"""Travel-assistant chat endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Request
from sqlalchemy.ext.asyncio import AsyncSession

from tramoo.api.deps import get_current_user, get_db
from tramoo.models.user import User
from tramoo.schemas.chat import ChatExchange, ChatMessageCreate, ChatMessageResponse
from tramoo.schemas.user import MessageResponse
from tramoo.services import chat_service
from tramoo.services.assistant_service import TravelAssistant, get_assistant
from tramoo.services.throttle_service import (
    RateLimiter,
    ResponseCache,
    enforce,
    get_chat_rate_limiter,
    get_response_cache,
)

router = APIRouter(prefix="/chat", tags=["chat"])

def _history_key(user_id: UUID, session_id: str) -> str:
    return f"{user_id}:/chat/history/{session_id}"


@router.get("/history/{session_id}", response_model=list[ChatMessageResponse])
async def get_history(
    session_id: str = Path(..., min_length=1, max_length=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: ResponseCache = Depends(get_response_cache),
):
    user_id = current_user.id
    key = _history_key(user_id, session_id)
    cached = await cache.get(key)
    if cached is not None:
        return cached
    messages = await chat_service.get_history(db, user_id, session_id)
    await db.commit()
    payload = [ChatMessageResponse.model_validate(m).model_dump(mode="json") for m in messages]
    await cache.set(key, payload)
    return payload


@router.post("/message", response_model=ChatExchange)
async def send_message(
    data: ChatMessageCreate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    assistant: TravelAssistant = Depends(get_assistant),
    limiter: RateLimiter = Depends(get_chat_rate_limiter),
    cache: ResponseCache = Depends(get_response_cache),
):
    user_id = current_user.id
    await enforce(limiter, f"{user_id}:{request.url.path}")
    user_message, bot_message = await chat_service.send_message(db, assistant, user_id, data.session_id, data.message)
    await db.commit()
    await cache.delete(_history_key(user_id, data.session_id))
    return ChatExchange(
        messages=[
            ChatMessageResponse.model_validate(user_message),
            ChatMessageResponse.model_validate(bot_message),
        ]
    )


@router.delete("/history/{session_id}", response_model=MessageResponse)
async def clear_history(
    session_id: str = Path(..., min_length=1, max_length=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: ResponseCache = Depends(get_response_cache),
):
    user_id = current_user.id
    await chat_service.clear_history(db, user_id, session_id)
    await db.commit()
    await cache.delete(_history_key(user_id, session_id))
    return MessageResponse(message="Chat history cleared successfully")
