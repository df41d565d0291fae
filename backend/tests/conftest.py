"""
Test Configuration — Fixtures for async DB and a seeded product catalog.

Each test gets its own in-memory SQLite database, so pipeline code can
commit and roll back exactly as it does against PostgreSQL.
"""

from datetime import date

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from db.session import Base

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def test_engine():
    """Create a fresh in-memory database with all tables."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_db(test_engine):
    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
async def seeded_db(test_db):
    """
    Seed a small catalog:

      Lipstick: cancelled X, notified C1 (strong brand, vertical) and C2 (weak)
      Serum:    three notified products sharing one notification date
      Obscure:  one cancelled product and no notified peers
    """
    from db.models import CategoryMetric, Company, CompanyMetric, Product

    strong = Company(name="Rosewater Labs")
    weak = Company(name="Budget Beauty")
    maker = Company(name="Contract Cosmetics")
    rose_works = Company(name="Rose Works")
    orphan = Company(name="Unmetered Co")
    test_db.add_all([strong, weak, maker, rose_works, orphan])
    await test_db.flush()

    test_db.add_all(
        [
            CompanyMetric(
                company_id=strong.id,
                total_notifs=10,
                cancelled_count=2,
                first_notified_date=date(2019, 1, 1),
                reputation_score=0.8,
            ),
            CompanyMetric(
                company_id=weak.id,
                total_notifs=10,
                cancelled_count=7,
                first_notified_date=date(2020, 1, 1),
                reputation_score=0.3,
            ),
            CompanyMetric(
                company_id=maker.id,
                total_notifs=10,
                cancelled_count=9,
                first_notified_date=date(2020, 6, 1),
                reputation_score=0.1,
            ),
            CompanyMetric(
                company_id=rose_works.id,
                total_notifs=5,
                cancelled_count=2,
                first_notified_date=date(2018, 3, 1),
                reputation_score=0.6,
            ),
            CategoryMetric(product_category="Lipstick", total_notifs=10, cancelled_count=2, risk_score=0.2),
        ]
    )

    cancelled_x = Product(
        notif_no="NOT-X",
        name="Ruby Matte Lipstick",
        category="Lipstick",
        applicant_company_id=orphan.id,
        date_notified=date(2021, 1, 1),
        status="Cancelled",
        reason_for_cancellation="Mercury",
    )
    c1 = Product(
        notif_no="NOT-C1",
        name="Velvet Rose Lipstick",
        category="Lipstick",
        applicant_company_id=strong.id,
        manufacturer_company_id=rose_works.id,
        date_notified=date(2023, 12, 1),
        status="Notified",
        is_vertically_integrated=True,
        recency_score=0.9,
    )
    c2 = Product(
        notif_no="NOT-C2",
        name="Everyday Tint",
        category="Lipstick",
        applicant_company_id=weak.id,
        manufacturer_company_id=maker.id,
        date_notified=date(2021, 6, 1),
        status="Notified",
        recency_score=0.1,
    )
    serums = [
        Product(
            notif_no=f"NOT-S{i}",
            name=f"Glow Serum {i}",
            category="Serum",
            applicant_company_id=strong.id,
            date_notified=date(2022, 5, 5),
            status="Notified",
            recency_score=0.0,
        )
        for i in range(3)
    ]
    obscure = Product(
        notif_no="NOT-OBS",
        name="Mystery Cream",
        category="Obscure",
        applicant_company_id=orphan.id,
        date_notified=date(2022, 1, 1),
        status="Cancelled",
        reason_for_cancellation="Hydroquinone",
    )
    test_db.add_all([cancelled_x, c1, c2, *serums, obscure])
    await test_db.commit()

    return {
        "companies": {
            "strong": strong,
            "weak": weak,
            "maker": maker,
            "rose_works": rose_works,
            "orphan": orphan,
        },
        "cancelled": cancelled_x,
        "c1": c1,
        "c2": c2,
        "serums": serums,
        "obscure": obscure,
    }
