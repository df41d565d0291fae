#!/usr/bin/env python3
"""
Generate Recommendations — Run the safer-alternative pipeline once.

Recomputes per-category recency scores, then rebuilds the
recommended_alternatives table for every cancelled product.

Usage:
  python scripts/generate_recommendations.py
  python scripts/generate_recommendations.py --top-n 3 --batch-size 1000
  python scripts/generate_recommendations.py --refresh-metrics
"""

import argparse
import asyncio
import json
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Rebuild safer-alternative recommendations")
    parser.add_argument("--top-n", type=int, default=None, help="Alternatives kept per cancelled product")
    parser.add_argument("--batch-size", type=int, default=None, help="Rows per insert batch")
    parser.add_argument(
        "--refresh-metrics",
        action="store_true",
        help="Rebuild company/category metrics before ranking",
    )
    parser.add_argument(
        "--skip-recency",
        action="store_true",
        help="Rank using the recency scores already stored",
    )
    parser.add_argument("--json", action="store_true", help="Print the run summary as JSON")
    return parser


async def _run(args: argparse.Namespace) -> dict:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

    from core.config import get_settings
    from recommendations.pipeline import run_recommendation_pipeline

    settings = get_settings()
    engine = create_async_engine(settings.database_url)
    try:
        SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        async with SessionLocal() as db:
            return await run_recommendation_pipeline(
                db,
                top_n=args.top_n,
                batch_size=args.batch_size,
                refresh_metrics=args.refresh_metrics,
                skip_recency=args.skip_recency,
            )
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    try:
        summary = asyncio.run(_run(args))
    except Exception as exc:
        print(f"Recommendation generation failed: {exc}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(summary, indent=2, default=str))
        return 0

    ranker = summary["stages"]["ranker"]
    print("=" * 60)
    print("  CosmeSafe Recommendation Generation")
    print("=" * 60)
    if "catalog_metrics" in summary["stages"]:
        metrics = summary["stages"]["catalog_metrics"]
        print(f"  Company metrics:    {metrics['company_metrics']:,}")
        print(f"  Category metrics:   {metrics['category_metrics']:,}")
    if "recency" in summary["stages"]:
        recency = summary["stages"]["recency"]
        print(f"  Recency scored:     {recency['products_scored']:,} products / {recency['categories']:,} categories")
    print(f"  Cancelled products: {ranker['cancelled_products']:,}")
    print(f"  Without candidates: {ranker['products_without_candidates']:,}")
    print(f"  Recommendations:    {ranker['recommendations']:,} (top {summary['top_n']})")
    print(f"  Insert batches:     {ranker['batches']:,}")
    print(f"  Duration:           {summary['duration_seconds']:.2f}s")
    print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
