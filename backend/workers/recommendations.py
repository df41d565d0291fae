"""
Recommendation Workers — Nightly safer-alternative regeneration.

Workers:
  1. refresh_catalog_metrics: rebuild company_metrics + category_metrics
  2. generate_recommendations: recency normalization, then alternative ranking

Schedule: metrics crontab(hour=1, minute=0), recommendations crontab(hour=2, minute=0)
Queue: batch

Failures are logged and re-raised. Nothing is retried automatically: the
recommendation table is swapped atomically, so a failed run leaves the
previous recommendations in place until the next run.
"""

import asyncio
from datetime import datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from workers.celery_app import celery_app

logger = structlog.get_logger()


async def _run_with_session(runner):
    from core.config import get_settings

    settings = get_settings()
    engine = create_async_engine(settings.database_url)
    try:
        async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        async with async_session() as db:
            return await runner(db)
    finally:
        await engine.dispose()


@celery_app.task(
    name="workers.recommendations.generate_recommendations",
    bind=True,
    max_retries=0,
    acks_late=True,
)
def generate_recommendations(
    self,
    top_n: int | None = None,
    batch_size: int | None = None,
    refresh_metrics: bool = False,
    skip_recency: bool = False,
):
    """
    Nightly job: recompute recency scores and the recommended_alternatives table.

    Args:
        top_n: Alternatives kept per cancelled product (default from settings)
        batch_size: Rows per insert batch (default from settings)
        refresh_metrics: Rebuild catalog metrics first
        skip_recency: Rank on the recency scores already stored
    """
    run_id = self.request.id or "manual"
    logger.info("recommendations.started", run_id=run_id)

    async def _generate(db):
        from recommendations.pipeline import run_recommendation_pipeline

        return await run_recommendation_pipeline(
            db,
            top_n=top_n,
            batch_size=batch_size,
            refresh_metrics=refresh_metrics,
            skip_recency=skip_recency,
        )

    try:
        summary = asyncio.run(_run_with_session(_generate))
    except Exception as exc:
        logger.error("recommendations.failed", run_id=run_id, error=str(exc), exc_info=True)
        raise

    summary["run_id"] = run_id
    logger.info("recommendations.completed", run_id=run_id, status=summary["status"])
    return summary


@celery_app.task(
    name="workers.recommendations.refresh_catalog_metrics",
    bind=True,
    max_retries=0,
    acks_late=True,
)
def refresh_catalog_metrics(self):
    """Nightly job: rebuild company and category metrics from the product catalog."""
    run_id = self.request.id or "manual"
    logger.info("catalog_metrics.task_started", run_id=run_id)

    async def _refresh(db):
        from recommendations.catalog_metrics import refresh_catalog_metrics as refresh

        return await refresh(db)

    try:
        summary = asyncio.run(_run_with_session(_refresh))
    except Exception as exc:
        logger.error("catalog_metrics.failed", run_id=run_id, error=str(exc), exc_info=True)
        raise

    return {
        "status": "success",
        "run_id": run_id,
        **summary,
        "finished_at": datetime.now(timezone.utc).isoformat(),
    }
