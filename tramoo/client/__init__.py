from tramoo.client.api import ApiError, SessionExpired, TramooClient
from tramoo.client.optimistic import BlogView, optimistic_update
from tramoo.client.session import SessionStore
from tramoo.client.storage import FileStorage, MemoryStorage, SessionStorage

__all__ = [
    "ApiError",
    "SessionExpired",
    "TramooClient",
    "BlogView",
    "optimistic_update",
    "SessionStore",
    "FileStorage",
    "MemoryStorage",
    "SessionStorage",
]
