"""SQLAlchemy declarative base and model imports for Alembic."""
from tramoo.db.session import Base  # noqa: F401
from tramoo.models.user import User  # noqa: F401
from tramoo.models.post import Post  # noqa: F401
from tramoo.models.comment import Comment  # noqa: F401
from tramoo.models.engagement import Like  # noqa: F401
from tramoo.models.chat import ChatMessage  # noqa: F401

__all__ = ["Base", "User", "Post", "Comment", "Like", "ChatMessage"]
