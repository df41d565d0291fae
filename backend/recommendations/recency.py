"""
Recency Normalizer — per-category notification recency on a 0-1 scale.

For every product category the earliest and latest notification dates
define the range; each product's score is its position inside that range:

  score = (date_notified - min_date) / (max_date - min_date)

A category whose products all share one date (including single-product
categories) has no range to position against, so every product in it gets
the neutral score 0.5.

Categories are grouped by exact string match. Products without a
notification date are skipped and keep whatever score they already have.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

import pandas as pd
import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from recommendations.scores import COMPONENT_SCORE_PLACES

logger = structlog.get_logger()

NEUTRAL_RECENCY_SCORE = 0.5


@dataclass
class RecencyResult:
    """Scores keyed by product id plus per-run bookkeeping."""

    scores: dict[int, float] = field(default_factory=dict)
    categories: int = 0
    degenerate_categories: list[str] = field(default_factory=list)


def compute_recency_scores(rows) -> RecencyResult:
    """
    Compute recency scores from ``(id, category, date_notified)`` rows.

    Pure function: no database access, same input gives the same output.
    """
    frame = pd.DataFrame(list(rows), columns=["id", "category", "date_notified"])
    frame = frame.dropna(subset=["category", "date_notified"])
    if frame.empty:
        return RecencyResult()

    dates = pd.to_datetime(frame["date_notified"])
    by_category = dates.groupby(frame["category"], sort=True)
    min_dates = by_category.transform("min")
    max_dates = by_category.transform("max")

    delta = (max_dates - min_dates).dt.total_seconds()
    offset = (dates - min_dates).dt.total_seconds()

    # delta == 0 → NaN → neutral score
    scores = (offset / delta.where(delta > 0)).round(COMPONENT_SCORE_PLACES)
    scores = scores.fillna(NEUTRAL_RECENCY_SCORE)

    category_delta = delta.groupby(frame["category"], sort=True).first()
    degenerate = [str(category) for category, value in category_delta.items() if value == 0]

    return RecencyResult(
        scores={int(pid): float(score) for pid, score in zip(frame["id"], scores)},
        categories=len(category_delta),
        degenerate_categories=degenerate,
    )


async def update_recency_scores(db: AsyncSession) -> dict:
    """
    Stage 1 of the recommendation pipeline.

    One bulk read of dated products, in-memory normalization, one bulk
    update keyed by product id. Store errors propagate to the caller.
    """
    from db.models import Product

    logger.info("recency.started")

    result = await db.execute(
        select(Product.id, Product.category, Product.date_notified).where(Product.date_notified.is_not(None))
    )
    outcome = compute_recency_scores(result.all())

    if outcome.scores:
        await db.execute(
            update(Product),
            [{"id": product_id, "recency_score": score} for product_id, score in outcome.scores.items()],
        )
    await db.commit()

    summary = {
        "products_scored": len(outcome.scores),
        "categories": outcome.categories,
        "degenerate_categories": len(outcome.degenerate_categories),
        "completed_at": datetime.now(timezone.utc).isoformat(),
    }
    logger.info("recency.completed", **summary)
    return summary
