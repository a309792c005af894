"""Post model (travel story)."""
import uuid

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from tramoo.db.session import Base, utcnow

JSONList = JSON().with_variant(JSONB(), "postgresql")


class Post(Base):
    __tablename__ = "posts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    author_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    subtitle = Column(String(300), nullable=True)
    content = Column(Text, nullable=False)
    excerpt = Column(Text, nullable=False)
    tags = Column(JSONList, nullable=False, default=list)  # deduplicated, first-seen order
    images = Column(JSONList, nullable=False, default=list)  # ordered media URLs
    country = Column(String(100), nullable=True)
    location_name = Column(String(200), nullable=True)
    location_lat = Column(Float, nullable=True)
    location_lng = Column(Float, nullable=True)
    featured = Column(Boolean, nullable=False, default=False)
    published = Column(Boolean, nullable=False, default=True)
    views = Column(Integer, nullable=False, default=0)
    read_time = Column(Integer, nullable=False, default=5)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    author = relationship("User", back_populates="posts")
    comments = relationship("Comment", back_populates="post", order_by="Comment.seq", passive_deletes=True)
    likes = relationship("Like", back_populates="post", order_by="Like.created_at", passive_deletes=True)
