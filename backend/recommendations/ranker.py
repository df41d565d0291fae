"""
Alternative Ranker — Safer replacement suggestions for cancelled products.

For each cancelled product, every currently notified product in the exact
same category is a candidate. Candidates are scored with a fixed weighted
formula and the top N are persisted:

  relevance = 0.35 × brand_score            (applicant company reputation)
            + 0.25 × manufacturer_score     (manufacturer company reputation)
            − 0.15 × category_risk_score    (category cancellation rate)
            + 0.10 × recency_score          (normalized per category)
            + 0.15 × vertical_integration   (1 if applicant == manufacturer)

Missing metrics, a missing manufacturer and unparsable stored values all
contribute 0. Equal relevance scores are ordered by candidate id ascending.

The output table is fully regenerated each run. The delete and every insert
batch share one transaction, so a failed run leaves the previous
recommendation set in place.
"""

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType

import structlog
from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from recommendations.scores import (
    COMPONENT_SCORE_PLACES,
    RELEVANCE_SCORE_PLACES,
    parse_score_or_default,
    round_score,
)

logger = structlog.get_logger()

TOP_N_RECOMMENDATIONS = 5
INSERT_BATCH_SIZE = 500

# Ranking policy. Changing any of these changes what users see.
BRAND_WEIGHT = 0.35
MANUFACTURER_WEIGHT = 0.25
CATEGORY_RISK_WEIGHT = 0.15  # subtracted
RECENCY_WEIGHT = 0.10
VERTICAL_INTEGRATION_WEIGHT = 0.15

STATUS_NOTIFIED = "Notified"
STATUS_CANCELLED = "Cancelled"


@dataclass(frozen=True)
class ProductRecord:
    """The product columns the ranker reads."""

    id: int
    category: str
    status: str
    applicant_company_id: int | None
    manufacturer_company_id: int | None = None
    recency_score: object = None
    is_vertically_integrated: bool = False

    @classmethod
    def from_row(cls, row) -> "ProductRecord":
        return cls(**dict(row._mapping))


@dataclass(frozen=True)
class MetricLookups:
    """Read-only metric maps built once per run."""

    company_reputation: Mapping[int, object] = field(default_factory=lambda: MappingProxyType({}))
    category_risk: Mapping[str, object] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True)
class CandidateScore:
    candidate_id: int
    brand_score: float
    manufacturer_score: float
    category_risk_score: float
    recency_score: float
    is_vertically_integrated: bool
    relevance_score: float


@dataclass(frozen=True)
class AlternativeRow:
    """One persisted (cancelled product, candidate) pair."""

    cancelled_product_id: int
    recommended_product_id: int
    brand_score: float
    manufacturer_score: float
    category_risk_score: float
    is_vertically_integrated: bool
    recency_score: float
    relevance_score: float

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class RankingResult:
    rows: list[AlternativeRow] = field(default_factory=list)
    cancelled_products: int = 0
    notified_products: int = 0
    products_with_alternatives: int = 0
    products_without_candidates: int = 0


def build_metric_lookups(
    company_metrics: Iterable[tuple[int, object]],
    category_metrics: Iterable[tuple[str, object]],
) -> MetricLookups:
    """Build lookups from ``(company_id, reputation)`` and ``(category, risk)`` pairs."""
    return MetricLookups(
        company_reputation=MappingProxyType({company_id: score for company_id, score in company_metrics}),
        category_risk=MappingProxyType({category: score for category, score in category_metrics}),
    )


def relevance_score(
    brand_score: float,
    manufacturer_score: float,
    category_risk_score: float,
    recency_score: float,
    vertical_integration: int,
) -> float:
    return (
        BRAND_WEIGHT * brand_score
        + MANUFACTURER_WEIGHT * manufacturer_score
        - CATEGORY_RISK_WEIGHT * category_risk_score
        + RECENCY_WEIGHT * recency_score
        + VERTICAL_INTEGRATION_WEIGHT * vertical_integration
    )


def score_candidate(candidate: ProductRecord, lookups: MetricLookups) -> CandidateScore:
    """Score one candidate. Absent or unparsable inputs count as 0."""
    brand = parse_score_or_default(lookups.company_reputation.get(candidate.applicant_company_id))

    manufacturer = 0.0
    if candidate.manufacturer_company_id is not None:
        manufacturer = parse_score_or_default(lookups.company_reputation.get(candidate.manufacturer_company_id))

    category_risk = parse_score_or_default(lookups.category_risk.get(candidate.category))
    recency = parse_score_or_default(candidate.recency_score)
    vertical = bool(candidate.is_vertically_integrated)

    return CandidateScore(
        candidate_id=candidate.id,
        brand_score=brand,
        manufacturer_score=manufacturer,
        category_risk_score=category_risk,
        recency_score=recency,
        is_vertically_integrated=vertical,
        relevance_score=relevance_score(brand, manufacturer, category_risk, recency, int(vertical)),
    )


def rank_alternatives(
    cancelled: ProductRecord,
    candidates: Sequence[ProductRecord],
    lookups: MetricLookups,
    top_n: int = TOP_N_RECOMMENDATIONS,
) -> list[AlternativeRow]:
    """
    Return up to ``top_n`` rows for one cancelled product, best first.

    Sorted on the stored (rounded) relevance so the persisted order is
    non-increasing; ties fall back to candidate id ascending.
    """
    seen: set[int] = set()
    scored: list[CandidateScore] = []
    for candidate in candidates:
        if candidate.id == cancelled.id or candidate.id in seen:
            continue
        seen.add(candidate.id)
        scored.append(score_candidate(candidate, lookups))

    scored.sort(key=lambda s: (-round_score(s.relevance_score, RELEVANCE_SCORE_PLACES), s.candidate_id))

    return [
        AlternativeRow(
            cancelled_product_id=cancelled.id,
            recommended_product_id=s.candidate_id,
            brand_score=round_score(s.brand_score, COMPONENT_SCORE_PLACES),
            manufacturer_score=round_score(s.manufacturer_score, COMPONENT_SCORE_PLACES),
            category_risk_score=round_score(s.category_risk_score, COMPONENT_SCORE_PLACES),
            is_vertically_integrated=s.is_vertically_integrated,
            recency_score=round_score(s.recency_score, COMPONENT_SCORE_PLACES),
            relevance_score=round_score(s.relevance_score, RELEVANCE_SCORE_PLACES),
        )
        for s in scored[:top_n]
    ]


def generate_recommendations(
    products: Iterable[ProductRecord],
    lookups: MetricLookups,
    top_n: int = TOP_N_RECOMMENDATIONS,
) -> RankingResult:
    """Rank alternatives for every cancelled product. Pure, no I/O."""
    if top_n < 1:
        raise ValueError(f"top_n must be at least 1, got {top_n}")

    cancelled: list[ProductRecord] = []
    notified_by_category: dict[str, list[ProductRecord]] = {}
    notified_count = 0

    for product in products:
        if product.status == STATUS_CANCELLED:
            cancelled.append(product)
        elif product.status == STATUS_NOTIFIED:
            notified_by_category.setdefault(product.category, []).append(product)
            notified_count += 1

    result = RankingResult(cancelled_products=len(cancelled), notified_products=notified_count)

    for product in cancelled:
        candidates = notified_by_category.get(product.category, [])
        if not candidates:
            result.products_without_candidates += 1
            continue

        rows = rank_alternatives(product, candidates, lookups, top_n=top_n)
        if rows:
            result.products_with_alternatives += 1
            result.rows.extend(rows)

    return result


def iter_batches(items: Sequence, size: int) -> Iterator[Sequence]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


async def replace_recommendations(
    db: AsyncSession,
    rows: Sequence[AlternativeRow],
    batch_size: int = INSERT_BATCH_SIZE,
) -> int:
    """
    Swap the recommended_alternatives table for ``rows``.

    Delete and batched inserts commit together; any failure rolls back to
    the previous contents. Returns the number of insert batches.
    """
    from db.models import RecommendedAlternative

    if batch_size < 1:
        raise ValueError(f"batch size must be at least 1, got {batch_size}")

    batches = 0
    try:
        await db.execute(delete(RecommendedAlternative))
        for batch in iter_batches(rows, batch_size):
            await db.execute(insert(RecommendedAlternative), [row.as_dict() for row in batch])
            batches += 1
            logger.debug("ranker.batch_inserted", batch=batches, rows=len(batch))
        await db.commit()
    except Exception:
        await db.rollback()
        logger.error("ranker.replace_rolled_back", batches_written=batches, exc_info=True)
        raise

    return batches


async def load_ranking_inputs(db: AsyncSession) -> tuple[list[ProductRecord], MetricLookups]:
    """One bulk read per input table."""
    from db.models import CategoryMetric, CompanyMetric, Product

    product_rows = await db.execute(
        select(
            Product.id,
            Product.category,
            Product.status,
            Product.applicant_company_id,
            Product.manufacturer_company_id,
            Product.recency_score,
            Product.is_vertically_integrated,
        ).order_by(Product.id)
    )
    products = [ProductRecord.from_row(row) for row in product_rows.all()]

    company_rows = await db.execute(select(CompanyMetric.company_id, CompanyMetric.reputation_score))
    category_rows = await db.execute(select(CategoryMetric.product_category, CategoryMetric.risk_score))
    lookups = build_metric_lookups(company_rows.all(), category_rows.all())

    return products, lookups


async def rank_and_store_alternatives(
    db: AsyncSession,
    top_n: int = TOP_N_RECOMMENDATIONS,
    batch_size: int = INSERT_BATCH_SIZE,
) -> dict:
    """Stage 2 of the recommendation pipeline."""
    logger.info("ranker.started", top_n=top_n, batch_size=batch_size)

    products, lookups = await load_ranking_inputs(db)
    logger.info(
        "ranker.inputs_loaded",
        products=len(products),
        company_metrics=len(lookups.company_reputation),
        category_metrics=len(lookups.category_risk),
    )

    result = generate_recommendations(products, lookups, top_n=top_n)
    batches = await replace_recommendations(db, result.rows, batch_size=batch_size)

    summary = {
        "cancelled_products": result.cancelled_products,
        "notified_products": result.notified_products,
        "products_with_alternatives": result.products_with_alternatives,
        "products_without_candidates": result.products_without_candidates,
        "recommendations": len(result.rows),
        "batches": batches,
        "completed_at": datetime.now(timezone.utc).isoformat(),
    }
    logger.info("ranker.completed", **summary)
    return summary
