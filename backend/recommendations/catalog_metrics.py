"""
Catalog Metrics — company reputation and category risk.

Rebuilds the two metric tables the ranker reads from the current product
catalog:

  category risk_score       = cancelled_count / total_notifs
  company reputation_score  = 1 − cancelled_count / total_notifs

A company's history covers every product naming it as applicant or as
manufacturer. A product counts once per distinct company, so a vertically
integrated product is not double-counted. Companies with no dated
notification are skipped because first_notified_date is required.

Optional stage: the default pipeline treats these tables as input produced
elsewhere and only runs this when asked to.
"""

from datetime import datetime, timezone

import pandas as pd
import structlog
from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

METRIC_SCORE_PLACES = 2

_COLUMNS = ["category", "applicant_company_id", "manufacturer_company_id", "status", "date_notified"]
_COMPANY_ROLES = ["applicant_company_id", "manufacturer_company_id"]


def _to_frame(rows) -> pd.DataFrame:
    frame = pd.DataFrame(list(rows), columns=_COLUMNS)
    frame["is_cancelled"] = frame["status"] == "Cancelled"
    return frame


def compute_category_metrics(rows) -> list[dict]:
    """Rows are ``(category, applicant_company_id, manufacturer_company_id, status, date_notified)``."""
    frame = _to_frame(rows).dropna(subset=["category"])
    if frame.empty:
        return []

    grouped = frame.groupby("category", sort=True).agg(
        total_notifs=("status", "size"),
        cancelled_count=("is_cancelled", "sum"),
    )
    return [
        {
            "product_category": str(category),
            "total_notifs": int(row.total_notifs),
            "cancelled_count": int(row.cancelled_count),
            "risk_score": round(int(row.cancelled_count) / int(row.total_notifs), METRIC_SCORE_PLACES),
        }
        for category, row in grouped.iterrows()
    ]


def _company_notifications(frame: pd.DataFrame) -> pd.DataFrame:
    """One row per (product, company named on it), either role."""
    long = (
        frame.rename_axis("product_row")
        .reset_index()
        .melt(
            id_vars=["product_row", "status", "is_cancelled", "date_notified"],
            value_vars=_COMPANY_ROLES,
            value_name="company_id",
        )
        .dropna(subset=["company_id"])
    )
    long["company_id"] = long["company_id"].astype("int64")
    return long.drop_duplicates(subset=["product_row", "company_id"])


def compute_company_metrics(rows) -> list[dict]:
    """Rows are ``(category, applicant_company_id, manufacturer_company_id, status, date_notified)``."""
    frame = _to_frame(rows)
    if frame.empty:
        return []

    frame["date_notified"] = pd.to_datetime(frame["date_notified"])
    long = _company_notifications(frame)
    if long.empty:
        return []

    grouped = long.groupby("company_id", sort=True).agg(
        total_notifs=("status", "size"),
        cancelled_count=("is_cancelled", "sum"),
        first_notified_date=("date_notified", "min"),
    )

    metrics = []
    for company_id, row in grouped.iterrows():
        if pd.isna(row.first_notified_date):
            continue
        total = int(row.total_notifs)
        cancelled = int(row.cancelled_count)
        metrics.append(
            {
                "company_id": int(company_id),
                "total_notifs": total,
                "cancelled_count": cancelled,
                "first_notified_date": row.first_notified_date.date(),
                "reputation_score": round(1 - cancelled / total, METRIC_SCORE_PLACES),
            }
        )
    return metrics


async def refresh_catalog_metrics(db: AsyncSession) -> dict:
    """Replace company_metrics and category_metrics in one transaction."""
    from db.models import CategoryMetric, CompanyMetric, Product

    logger.info("catalog_metrics.started")

    result = await db.execute(
        select(
            Product.category,
            Product.applicant_company_id,
            Product.manufacturer_company_id,
            Product.status,
            Product.date_notified,
        )
    )
    rows = result.all()
    category_metrics = compute_category_metrics(rows)
    company_metrics = compute_company_metrics(rows)

    try:
        await db.execute(delete(CategoryMetric))
        await db.execute(delete(CompanyMetric))
        if category_metrics:
            await db.execute(insert(CategoryMetric), category_metrics)
        if company_metrics:
            await db.execute(insert(CompanyMetric), company_metrics)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    summary = {
        "products": len(rows),
        "category_metrics": len(category_metrics),
        "company_metrics": len(company_metrics),
        "completed_at": datetime.now(timezone.utc).isoformat(),
    }
    logger.info("catalog_metrics.completed", **summary)
    return summary
