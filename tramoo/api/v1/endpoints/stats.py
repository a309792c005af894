"""Site-wide totals for the landing page."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tramoo.api.deps import get_db
from tramoo.schemas.post import SiteStats
from tramoo.services.blog_service import get_site_stats

router = APIRouter(tags=["stats"])


@router.get("/user-stats", response_model=SiteStats)
async def user_stats(db: AsyncSession = Depends(get_db)):
    return await get_site_stats(db)
