"""
Scheduled job to ingest finished matches.

Fetches a day's fixtures (or the live feed) from API-Football, records
player performances and credits activations to card owners. Can be run as
a standalone script or called from a scheduler.
"""

import argparse
import asyncio
import logging
from datetime import date

from jogata.db.database import async_session_factory, init_db
from jogata.services.football_api import FootballApiClient, FootballApiError
from jogata.services.match_processing import MatchProcessingResult, process_matches

logger = logging.getLogger(__name__)


async def run_match_processing(day: str | None = None) -> MatchProcessingResult:
    """
    Process one day of fixtures, or the live feed when `day` is None.

    Args:
        day: ISO date (YYYY-MM-DD)

    Returns:
        Counters for the run; empty if the provider could not be reached
    """
    await init_db()
    async with FootballApiClient() as client, async_session_factory() as session:
        try:
            result = await process_matches(session, client, day=day)
            await session.commit()
        except FootballApiError as e:
            await session.rollback()
            logger.error("Match processing aborted: %s", e)
            return MatchProcessingResult()
    return result


def _iso_date(value: str) -> str:
    return date.fromisoformat(value).isoformat()


def main() -> None:
    """CLI entry point for match processing."""
    parser = argparse.ArgumentParser(description="Score finished football matches")
    parser.add_argument("--date", type=_iso_date, default=None, help="Match day, YYYY-MM-DD")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run_match_processing(args.date))


if __name__ == "__main__":
    main()
