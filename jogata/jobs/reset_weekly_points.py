"""
Weekly job closing the gameweek.

Snapshots every profile's weekly rank, then zeroes the weekly points of
every ledger row. Schedule it once the week's last fixture is processed.
"""

import asyncio
import logging

from jogata.db.database import async_session_factory
from jogata.services.accounts import reset_weekly_points

logger = logging.getLogger(__name__)


async def run_weekly_reset() -> int:
    async with async_session_factory() as session:
        ranked = await reset_weekly_points(session)
        await session.commit()
    return ranked


def main() -> None:
    """CLI entry point for the weekly reset."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run_weekly_reset())


if __name__ == "__main__":
    main()
