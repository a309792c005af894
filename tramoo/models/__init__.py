from tramoo.models.user import User
from tramoo.models.post import Post
from tramoo.models.comment import Comment
from tramoo.models.engagement import Like
from tramoo.models.chat import ChatMessage

__all__ = ["User", "Post", "Comment", "Like", "ChatMessage"]
