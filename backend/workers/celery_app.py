"""
Celery Application Configuration
"""

from celery import Celery
from celery.schedules import crontab

from core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "cosmesafe",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["workers.recommendations"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    worker_prefetch_multiplier=1,
    task_routes={
        "workers.recommendations.*": {"queue": "batch"},
    },
    # ── Celery Beat Schedule ─────────────────────────────────────────
    beat_schedule={
        "refresh-catalog-metrics-nightly": {
            "task": "workers.recommendations.refresh_catalog_metrics",
            "schedule": crontab(hour=1, minute=0),
            "options": {"queue": "batch"},
        },
        "generate-recommendations-nightly": {
            "task": "workers.recommendations.generate_recommendations",
            "schedule": crontab(hour=2, minute=0),  # After metrics refresh
            "options": {"queue": "batch"},
        },
    },
)
