"""User model."""
import uuid

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship

from tramoo.core.permissions import Role
from tramoo.db.session import Base, utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=True)  # None for Google accounts
    is_google_user = Column(Boolean, default=False, nullable=False)
    role = Column(String(10), nullable=False, default=Role.USER.value)  # user | admin | owner
    refresh_token_hash = Column(String(64), nullable=True)  # sha256 of the single active refresh token
    bio = Column(Text, nullable=False, default="")
    country = Column(String(100), nullable=False, default="")
    avatar_url = Column(Text, nullable=True)
    # Denormalized, advisory only; see services.user_service.recompute_user_stats
    stories_written = Column(Integer, nullable=False, default=0)
    photos_shared = Column(Integer, nullable=False, default=0)
    countries_explored = Column(Integer, nullable=False, default=0)
    joined_at = Column(DateTime, default=utcnow)
    last_active = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    posts = relationship("Post", back_populates="author")

    @property
    def role_enum(self) -> Role:
        return Role(self.role or Role.USER.value)
