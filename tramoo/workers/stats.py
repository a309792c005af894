"""Celery tasks for the denormalized profile counters."""
import asyncio
import logging

from tramoo.core.celery_app import celery_app
from tramoo.core.logging import configure_logging
from tramoo.db.session import async_session_maker
from tramoo.services.user_service import recompute_all_user_stats as recompute_all

logger = logging.getLogger(__name__)


async def _recompute_all() -> int:
    async with async_session_maker() as session:
        count = await recompute_all(session)
        await session.commit()
    return count


@celery_app.task(name="tramoo.workers.stats.recompute_all_user_stats")
def recompute_all_user_stats() -> int:
    configure_logging()
    count = asyncio.run(_recompute_all())
    logger.info("Recomputed profile counters for %d user(s)", count)
    return count
