"""Celery application for background tasks (counter recomputation)."""
from celery import Celery

from tramoo.core.config import settings

celery_app = Celery(
    "tramoo",
    broker=settings.CELERY_BROKER_URL,
    include=["tramoo.workers.stats"],
)
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
    beat_schedule={
        "recompute-user-stats": {
            "task": "tramoo.workers.stats.recompute_all_user_stats",
            "schedule": float(settings.STATS_RECOMPUTE_INTERVAL_SECONDS),
        },
    },
)
