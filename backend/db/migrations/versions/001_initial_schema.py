"""
Initial schema - catalog, metrics and recommendation tables

Revision ID: 001
Revises: None
Create Date: 2026-09-28
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # 1. Companies
    op.create_table(
        "companies",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
    )

    # 2. Products
    op.create_table(
        "products",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("notif_no", sa.String(255), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(255), nullable=False),
        sa.Column("applicant_company_id", sa.Integer, sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("manufacturer_company_id", sa.Integer, sa.ForeignKey("companies.id"), nullable=True),
        sa.Column("date_notified", sa.Date, nullable=True),
        sa.Column("status", sa.String(50), nullable=False),
        sa.Column("reason_for_cancellation", sa.Text),
        sa.Column("is_vertically_integrated", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("recency_score", sa.Float, nullable=False, server_default="0.5"),
        sa.CheckConstraint("status IN ('Notified', 'Cancelled')", name="ck_product_status"),
        sa.CheckConstraint("recency_score >= 0 AND recency_score <= 1", name="ck_product_recency_range"),
    )
    op.create_index("ix_products_category", "products", ["category"])
    op.create_index("ix_products_status", "products", ["status"])

    # 3. Banned ingredients
    op.create_table(
        "banned_ingredients",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("alternative_names", sa.Text),
        sa.Column("health_risk_description", sa.Text, nullable=False),
        sa.Column("regulatory_status", sa.String(100)),
        sa.Column("source_url", sa.String(500)),
    )

    # 4. Cancelled product → banned ingredient links
    op.create_table(
        "cancelled_product_ingredients",
        sa.Column("cancelled_product_id", sa.Integer, sa.ForeignKey("products.id"), primary_key=True),
        sa.Column("banned_ingredient_id", sa.Integer, sa.ForeignKey("banned_ingredients.id"), primary_key=True),
    )
    op.create_index("ix_cpi_ingredient", "cancelled_product_ingredients", ["banned_ingredient_id"])

    # 5. Company metrics
    op.create_table(
        "company_metrics",
        sa.Column("company_id", sa.Integer, sa.ForeignKey("companies.id"), primary_key=True),
        sa.Column("total_notifs", sa.Integer, nullable=False),
        sa.Column("cancelled_count", sa.Integer, nullable=False),
        sa.Column("first_notified_date", sa.Date, nullable=False),
        sa.Column("reputation_score", sa.Float, nullable=False),
    )

    # 6. Category metrics
    op.create_table(
        "category_metrics",
        sa.Column("product_category", sa.String(255), primary_key=True),
        sa.Column("total_notifs", sa.Integer, nullable=False),
        sa.Column("cancelled_count", sa.Integer, nullable=False),
        sa.Column("risk_score", sa.Float, nullable=False),
    )

    # 7. Recommended alternatives
    op.create_table(
        "recommended_alternatives",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("cancelled_product_id", sa.Integer, sa.ForeignKey("products.id"), nullable=False),
        sa.Column("recommended_product_id", sa.Integer, sa.ForeignKey("products.id"), nullable=False),
        sa.Column("brand_score", sa.Float, nullable=False),
        sa.Column("manufacturer_score", sa.Float, nullable=False),
        sa.Column("category_risk_score", sa.Float, nullable=False),
        sa.Column("is_vertically_integrated", sa.Boolean, nullable=False),
        sa.Column("recency_score", sa.Float, nullable=False),
        sa.Column("relevance_score", sa.Float, nullable=False),
        sa.UniqueConstraint("cancelled_product_id", "recommended_product_id", name="uq_reco_pair"),
    )
    op.create_index("ix_reco_cancelled", "recommended_alternatives", ["cancelled_product_id"])
    op.create_index("ix_reco_recommended", "recommended_alternatives", ["recommended_product_id"])


def downgrade() -> None:
    tables = [
        "recommended_alternatives",
        "category_metrics",
        "company_metrics",
        "cancelled_product_ingredients",
        "banned_ingredients",
        "products",
        "companies",
    ]
    for table in tables:
        op.drop_table(table)
