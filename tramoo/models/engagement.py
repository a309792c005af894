"""Like model: set membership of a user in a post's likes."""
from sqlalchemy import Column, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship

from tramoo.db.session import Base, utcnow


class Like(Base):
    __tablename__ = "likes"

    post_id = Column(Uuid, ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True)
    created_at = Column(DateTime, default=utcnow)

    post = relationship("Post", back_populates="likes")
