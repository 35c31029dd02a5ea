#!/usr/bin/env python3
"""Seed the affiliate catalog with demo partners and products.

Usage:
    python scripts/seed_catalog.py          # seed if the catalog is empty
    python scripts/seed_catalog.py --force  # seed regardless
"""
import argparse
import asyncio
import logging

# Add parent to path
import sys, os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import func, select

from affiliate_engine.db.engine import async_session, engine
from affiliate_engine.db.seed import seed_demo_catalog
from affiliate_engine.db.tables import Base, PartnerRow
from affiliate_engine.logging_config import setup_logging

logger = logging.getLogger("seed_catalog")


async def seed(force: bool) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        existing = (await session.execute(select(func.count()).select_from(PartnerRow))).scalar_one()
        if existing and not force:
            logger.info("Catalog already has %d partners — skipping (use --force)", existing)
            return

        partners = await seed_demo_catalog(session)
        await session.commit()

    for p in partners:
        logger.info("Seeded partner %s (%s) id=%s", p.name, p.type, p.id)


async def main(force: bool) -> None:
    try:
        await seed(force)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--force", action="store_true", help="Seed even if partners exist")
    args = parser.parse_args()
    setup_logging()
    asyncio.run(main(args.force))
