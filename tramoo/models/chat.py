"""Travel-assistant chat message."""
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, Uuid

from tramoo.db.session import Base, utcnow


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(Uuid, unique=True, nullable=False, default=uuid.uuid4)
    session_id = Column(String(100), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    sender = Column(String(10), nullable=False)  # user | bot
    message = Column(Text, nullable=False)
    timestamp = Column(DateTime, default=utcnow)
