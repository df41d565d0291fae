"""
Tests for the Recency Normalizer.

Covers:
  - Per-category min/max scaling
  - Degenerate categories (single date) → 0.5
  - Null dates excluded, exact-string category grouping
  - Database stage: bulk update keyed by product id
"""

from datetime import date

import pytest
from sqlalchemy import select

from recommendations.recency import NEUTRAL_RECENCY_SCORE, compute_recency_scores, update_recency_scores

# ── Pure computation ───────────────────────────────────────────────────


class TestComputeRecencyScores:
    def test_min_and_max_dates_map_to_bounds(self):
        rows = [
            (1, "Lipstick", date(2020, 1, 1)),
            (2, "Lipstick", date(2022, 1, 1)),
            (3, "Lipstick", date(2021, 1, 1)),
        ]
        scores = compute_recency_scores(rows).scores
        assert scores[1] == 0.0
        assert scores[2] == 1.0
        assert 0.0 < scores[3] < 1.0

    def test_linear_position_rounded_to_four_places(self):
        rows = [
            (1, "Cream", date(2021, 1, 1)),
            (2, "Cream", date(2021, 1, 4)),
            (3, "Cream", date(2021, 1, 2)),
        ]
        scores = compute_recency_scores(rows).scores
        assert scores[3] == round(1 / 3, 4)

    def test_all_scores_within_bounds(self):
        rows = [(i, "Toner" if i % 2 else "Mask", date(2015 + i % 7, 1 + i % 12, 1 + i % 27)) for i in range(1, 60)]
        scores = compute_recency_scores(rows).scores
        assert len(scores) == 59
        assert all(0.0 <= s <= 1.0 for s in scores.values())

    def test_degenerate_category_gets_neutral_score(self):
        rows = [(i, "Serum", date(2022, 5, 5)) for i in range(1, 4)]
        result = compute_recency_scores(rows)
        assert result.scores == {1: 0.5, 2: 0.5, 3: 0.5}
        assert result.degenerate_categories == ["Serum"]

    def test_single_product_category_is_degenerate(self):
        rows = [
            (1, "Lipstick", date(2020, 1, 1)),
            (2, "Lipstick", date(2022, 1, 1)),
            (3, "Lip Balm", date(2021, 3, 3)),
        ]
        scores = compute_recency_scores(rows).scores
        assert scores[3] == NEUTRAL_RECENCY_SCORE

    def test_null_dates_are_excluded(self):
        rows = [
            (1, "Lipstick", date(2020, 1, 1)),
            (2, "Lipstick", None),
            (3, "Lipstick", date(2021, 1, 1)),
        ]
        scores = compute_recency_scores(rows).scores
        assert 2 not in scores
        assert scores == {1: 0.0, 3: 1.0}

    def test_categories_are_case_sensitive(self):
        rows = [
            (1, "Lipstick", date(2020, 1, 1)),
            (2, "Lipstick", date(2022, 1, 1)),
            (3, "lipstick", date(2020, 1, 1)),
            (4, "Lipstick ", date(2022, 1, 1)),
        ]
        result = compute_recency_scores(rows)
        assert result.categories == 3
        assert result.scores[3] == 0.5
        assert result.scores[4] == 0.5
        assert result.scores[2] == 1.0

    def test_categories_are_normalized_independently(self):
        rows = [
            (1, "A", date(2000, 1, 1)),
            (2, "A", date(2000, 1, 11)),
            (3, "B", date(2020, 1, 1)),
            (4, "B", date(2020, 1, 3)),
        ]
        scores = compute_recency_scores(rows).scores
        assert scores == {1: 0.0, 2: 1.0, 3: 0.0, 4: 1.0}

    def test_rerun_is_deterministic(self):
        rows = [(i, f"Cat{i % 3}", date(2018 + i % 5, 1 + i % 11, 1 + i % 20)) for i in range(1, 40)]
        assert compute_recency_scores(rows).scores == compute_recency_scores(list(rows)).scores

    def test_empty_input(self):
        result = compute_recency_scores([])
        assert result.scores == {}
        assert result.categories == 0


# ── Database stage ─────────────────────────────────────────────────────


@pytest.mark.asyncio
class TestUpdateRecencyScores:
    async def test_scores_written_back_per_product(self, test_db, seeded_db):
        from db.models import Product

        summary = await update_recency_scores(test_db)
        assert summary["products_scored"] == 7
        assert summary["categories"] == 3
        assert summary["degenerate_categories"] == 2  # Serum, Obscure

        rows = (await test_db.execute(select(Product.notif_no, Product.recency_score))).all()
        scores = dict(rows)

        assert scores["NOT-X"] == 0.0
        assert scores["NOT-C1"] == 1.0
        # 2021-01-01 → 2021-06-01 is 151 of 1064 days
        assert scores["NOT-C2"] == pytest.approx(round(151 / 1064, 4))
        assert [scores[f"NOT-S{i}"] for i in range(3)] == [0.5, 0.5, 0.5]
        assert scores["NOT-OBS"] == 0.5

    async def test_undated_products_keep_existing_score(self, test_db, seeded_db):
        from db.models import Product

        undated = Product(
            notif_no="NOT-UNDATED",
            name="Legacy Powder",
            category="Lipstick",
            applicant_company_id=seeded_db["companies"]["weak"].id,
            date_notified=None,
            status="Notified",
            recency_score=0.42,
        )
        test_db.add(undated)
        await test_db.commit()

        await update_recency_scores(test_db)

        score = (await test_db.execute(select(Product.recency_score).where(Product.id == undated.id))).scalar_one()
        assert score == 0.42

    async def test_rerun_is_idempotent(self, test_db, seeded_db):
        from db.models import Product

        await update_recency_scores(test_db)
        first = dict((await test_db.execute(select(Product.id, Product.recency_score))).all())

        await update_recency_scores(test_db)
        second = dict((await test_db.execute(select(Product.id, Product.recency_score))).all())

        assert first == second

    async def test_empty_catalog(self, test_db):
        summary = await update_recency_scores(test_db)
        assert summary["products_scored"] == 0
