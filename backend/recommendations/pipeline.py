"""
Recommendation pipeline orchestration.

Stages run strictly in sequence on one session:
  0. (optional) refresh catalog metrics
  1. Recency Normalizer  → products.recency_score
  2. Alternative Ranker  → recommended_alternatives

The ranker reads the recency scores stage 1 writes, so stage 1 must finish
before stage 2 starts. Any exception aborts the run and propagates; there is
no retry here.
"""

import time
from datetime import datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from recommendations.catalog_metrics import refresh_catalog_metrics
from recommendations.ranker import rank_and_store_alternatives
from recommendations.recency import update_recency_scores

logger = structlog.get_logger()


def resolve_tunables(top_n: int | None = None, batch_size: int | None = None) -> tuple[int, int]:
    """Fill unset tunables from settings and reject non-positive values."""
    if top_n is None or batch_size is None:
        from core.config import get_settings

        settings = get_settings()
        top_n = settings.top_n_recommendations if top_n is None else top_n
        batch_size = settings.recommendation_batch_size if batch_size is None else batch_size

    if top_n < 1:
        raise ValueError(f"top_n must be at least 1, got {top_n}")
    if batch_size < 1:
        raise ValueError(f"batch_size must be at least 1, got {batch_size}")
    return top_n, batch_size


async def run_recommendation_pipeline(
    db: AsyncSession,
    *,
    top_n: int | None = None,
    batch_size: int | None = None,
    refresh_metrics: bool = False,
    skip_recency: bool = False,
) -> dict:
    top_n, batch_size = resolve_tunables(top_n, batch_size)

    started = time.monotonic()
    logger.info(
        "pipeline.started",
        top_n=top_n,
        batch_size=batch_size,
        refresh_metrics=refresh_metrics,
        skip_recency=skip_recency,
    )

    stages: dict[str, dict] = {}
    if refresh_metrics:
        stages["catalog_metrics"] = await refresh_catalog_metrics(db)
    if not skip_recency:
        stages["recency"] = await update_recency_scores(db)
    stages["ranker"] = await rank_and_store_alternatives(db, top_n=top_n, batch_size=batch_size)

    summary = {
        "status": "success",
        "top_n": top_n,
        "batch_size": batch_size,
        "stages": stages,
        "duration_seconds": round(time.monotonic() - started, 3),
        "completed_at": datetime.now(timezone.utc).isoformat(),
    }
    logger.info(
        "pipeline.completed",
        recommendations=stages["ranker"]["recommendations"],
        duration_seconds=summary["duration_seconds"],
    )
    return summary
