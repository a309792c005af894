"""V1 API router aggregation."""
from fastapi import APIRouter, Depends

from tramoo.api.v1.endpoints import auth, blogs, chat, stats, uploads, users
from tramoo.services.throttle_service import enforce_api_rate_limit

api_router = APIRouter(prefix="/v1", dependencies=[Depends(enforce_api_rate_limit)])
api_router.include_router(auth.router)
api_router.include_router(blogs.router)
api_router.include_router(users.router)
api_router.include_router(uploads.router)
api_router.include_router(chat.router)
api_router.include_router(stats.router)
