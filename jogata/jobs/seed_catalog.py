"""
Job to load the shipped style card catalog into the database.

Upserts by card name, so it is safe to re-run after editing the catalog.
"""

import asyncio
import logging

from jogata.db.database import async_session_factory, init_db
from jogata.services.catalog import seed_catalog

logger = logging.getLogger(__name__)


async def run_seed() -> int:
    await init_db()
    async with async_session_factory() as session:
        count = await seed_catalog(session)
        await session.commit()

    logger.info("Catalog seed complete: %d style cards", count)
    return count


def main() -> None:
    """CLI entry point for seeding the catalog."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run_seed())


if __name__ == "__main__":
    main()
