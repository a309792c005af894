from tramoo.schemas.user import (
    UserCreate,
    UserUpdate,
    UserResponse,
    UserPublic,
    AuthorSummary,
    Token,
    TokenRefresh,
    LoginRequest,
    GoogleLoginRequest,
)
from tramoo.schemas.comment import CommentCreate, CommentResponse
from tramoo.schemas.post import PostCreate, PostUpdate, PostResponse, PostListResponse, LikeResponse, SiteStats
from tramoo.schemas.chat import ChatMessageCreate, ChatMessageResponse, ChatExchange
