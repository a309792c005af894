"""Comment model. Comments live inside a post and are addressed through it."""
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text, Uuid
from sqlalchemy.orm import relationship

from tramoo.db.session import Base, utcnow


class Comment(Base):
    __tablename__ = "comments"

    # Insertion order; the public id is `id`
    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(Uuid, unique=True, nullable=False, default=uuid.uuid4)
    post_id = Column(Uuid, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    post = relationship("Post", back_populates="comments")
    author = relationship("User")
