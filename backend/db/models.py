"""
CosmeSafe Database Models

Cosmetic product notification catalog plus the derived tables the
recommendation pipeline reads and writes.

Tables:
  Catalog (loaded by the regulatory data ETL):
  1. companies                      - Applicants and manufacturers
  2. products                       - One row per notification (Notified / Cancelled)
  3. banned_ingredients             - Master list of prohibited substances
  4. cancelled_product_ingredients  - Cancelled product → banned ingredient links

  Metrics (read-only input to the ranker):
  5. company_metrics                - Per-company notification history + reputation
  6. category_metrics               - Per-category cancellation rate (risk)

  Pipeline output:
  7. recommended_alternatives       - Top-N scored replacements per cancelled product
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from db.session import Base


# Placeholder written by ingestion until the recency normalizer runs
DEFAULT_RECENCY_SCORE = 0.5


# ─── 1. Companies ───────────────────────────────────────────────────────────


class Company(Base):
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True)

    metrics = relationship("CompanyMetric", back_populates="company", uselist=False)


# ─── 2. Products ────────────────────────────────────────────────────────────


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    notif_no = Column(String(255), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    category = Column(String(255), nullable=False)  # exact-string label, no normalization
    applicant_company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    manufacturer_company_id = Column(Integer, ForeignKey("companies.id"), nullable=True)
    date_notified = Column(Date, nullable=True)
    status = Column(String(50), nullable=False)
    reason_for_cancellation = Column(Text)  # populated when status='Cancelled'
    is_vertically_integrated = Column(Boolean, nullable=False, default=False)
    recency_score = Column(Float, nullable=False, default=DEFAULT_RECENCY_SCORE)

    __table_args__ = (
        Index("ix_products_category", "category"),
        Index("ix_products_status", "status"),
        CheckConstraint("status IN ('Notified', 'Cancelled')", name="ck_product_status"),
        CheckConstraint("recency_score >= 0 AND recency_score <= 1", name="ck_product_recency_range"),
    )

    applicant_company = relationship("Company", foreign_keys=[applicant_company_id])
    manufacturer_company = relationship("Company", foreign_keys=[manufacturer_company_id])


# ─── 3. Banned Ingredients ──────────────────────────────────────────────────


class BannedIngredient(Base):
    __tablename__ = "banned_ingredients"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True)
    alternative_names = Column(Text)  # comma-separated INCI names / synonyms
    health_risk_description = Column(Text, nullable=False)
    regulatory_status = Column(String(100))  # Prohibited, Restricted
    source_url = Column(String(500))


# ─── 4. Cancelled Product Ingredients ───────────────────────────────────────


class CancelledProductIngredient(Base):
    __tablename__ = "cancelled_product_ingredients"

    cancelled_product_id = Column(Integer, ForeignKey("products.id"), primary_key=True)
    banned_ingredient_id = Column(Integer, ForeignKey("banned_ingredients.id"), primary_key=True)

    __table_args__ = (Index("ix_cpi_ingredient", "banned_ingredient_id"),)

    ingredient = relationship("BannedIngredient")


# ─── 5. Company Metrics ─────────────────────────────────────────────────────


class CompanyMetric(Base):
    __tablename__ = "company_metrics"

    company_id = Column(Integer, ForeignKey("companies.id"), primary_key=True)
    total_notifs = Column(Integer, nullable=False)
    cancelled_count = Column(Integer, nullable=False)
    first_notified_date = Column(Date, nullable=False)
    reputation_score = Column(Float, nullable=False)  # 0-1 composite brand score

    company = relationship("Company", back_populates="metrics")


# ─── 6. Category Metrics ────────────────────────────────────────────────────


class CategoryMetric(Base):
    __tablename__ = "category_metrics"

    product_category = Column(String(255), primary_key=True)
    total_notifs = Column(Integer, nullable=False)
    cancelled_count = Column(Integer, nullable=False)
    risk_score = Column(Float, nullable=False)  # cancelled_count / total_notifs


# ─── 7. Recommended Alternatives ────────────────────────────────────────────


class RecommendedAlternative(Base):
    __tablename__ = "recommended_alternatives"

    id = Column(Integer, primary_key=True, autoincrement=True)
    cancelled_product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    recommended_product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    brand_score = Column(Float, nullable=False)
    manufacturer_score = Column(Float, nullable=False)
    category_risk_score = Column(Float, nullable=False)
    is_vertically_integrated = Column(Boolean, nullable=False)
    recency_score = Column(Float, nullable=False)  # snapshot of products.recency_score
    relevance_score = Column(Float, nullable=False)

    __table_args__ = (
        UniqueConstraint("cancelled_product_id", "recommended_product_id", name="uq_reco_pair"),
        Index("ix_reco_cancelled", "cancelled_product_id"),
        Index("ix_reco_recommended", "recommended_product_id"),
    )

    recommended_product = relationship("Product", foreign_keys=[recommended_product_id])
