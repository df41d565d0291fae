"""Read helpers for the serving layer. Recommendations are never computed here."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import (
    BannedIngredient,
    CancelledProductIngredient,
    Product,
    RecommendedAlternative,
)


async def get_recommended_alternatives(db: AsyncSession, cancelled_product_id: int, limit: int = 5) -> list[dict]:
    """Stored alternatives for one cancelled product, best first."""
    result = await db.execute(
        select(RecommendedAlternative, Product)
        .join(Product, RecommendedAlternative.recommended_product_id == Product.id)
        .where(RecommendedAlternative.cancelled_product_id == cancelled_product_id)
        .order_by(
            RecommendedAlternative.relevance_score.desc(),
            RecommendedAlternative.recommended_product_id.asc(),
        )
        .limit(limit)
    )
    return [
        {
            "id": alternative.id,
            "recommended_product": {
                "id": product.id,
                "notif_no": product.notif_no,
                "name": product.name,
                "category": product.category,
                "status": product.status,
            },
            "brand_score": alternative.brand_score,
            "manufacturer_score": alternative.manufacturer_score,
            "category_risk_score": alternative.category_risk_score,
            "is_vertically_integrated": alternative.is_vertically_integrated,
            "recency_score": alternative.recency_score,
            "relevance_score": alternative.relevance_score,
        }
        for alternative, product in result.all()
    ]


async def get_banned_ingredients_for_product(db: AsyncSession, product_id: int) -> list[BannedIngredient]:
    result = await db.execute(
        select(BannedIngredient)
        .join(CancelledProductIngredient, CancelledProductIngredient.banned_ingredient_id == BannedIngredient.id)
        .where(CancelledProductIngredient.cancelled_product_id == product_id)
        .order_by(BannedIngredient.name)
    )
    return list(result.scalars().all())
