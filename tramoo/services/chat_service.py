"""Travel-assistant chat history."""
import logging
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from tramoo.models.chat import ChatMessage
from tramoo.services.assistant_service import TravelAssistant

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = "Hello there! I'm your travel assistant. How can I help you plan your next adventure?"
CONTEXT_MESSAGES = 5


def _session_messages(user_id: UUID, session_id: str):
    return select(ChatMessage).where(ChatMessage.user_id == user_id, ChatMessage.session_id == session_id)


async def get_history(db: AsyncSession, user_id: UUID, session_id: str) -> list[ChatMessage]:
    """Oldest first. A new session starts with the bot's welcome message."""
    result = await db.execute(_session_messages(user_id, session_id).order_by(ChatMessage.seq))
    messages = list(result.scalars().all())
    if not messages:
        welcome = ChatMessage(session_id=session_id, user_id=user_id, sender="bot", message=WELCOME_MESSAGE)
        db.add(welcome)
        await db.flush()
        messages = [welcome]
        logger.info("Chat session %s started for user %s", session_id, user_id)
    return messages


async def send_message(
    db: AsyncSession,
    assistant: TravelAssistant,
    user_id: UUID,
    session_id: str,
    text: str,
) -> tuple[ChatMessage, ChatMessage]:
    user_message = ChatMessage(session_id=session_id, user_id=user_id, sender="user", message=text)
    db.add(user_message)
    await db.flush()

    result = await db.execute(
        _session_messages(user_id, session_id).order_by(ChatMessage.seq.desc()).limit(CONTEXT_MESSAGES)
    )
    context = list(reversed(result.scalars().all()))
    reply = await assistant.reply(context, text)

    bot_message = ChatMessage(session_id=session_id, user_id=user_id, sender="bot", message=reply)
    db.add(bot_message)
    await db.flush()
    logger.info("Chat message answered in session %s", session_id)
    return user_message, bot_message


async def clear_history(db: AsyncSession, user_id: UUID, session_id: str) -> int:
    result = await db.execute(
        delete(ChatMessage)
        .where(ChatMessage.user_id == user_id, ChatMessage.session_id == session_id)
        .execution_options(synchronize_session=False)
    )
    logger.info("Chat history cleared for user %s (session %s)", user_id, session_id)
    return result.rowcount
