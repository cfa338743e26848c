"""
Match ingestion: provider fixtures to propagated activations.

For every finished fixture: record each player's performance once, score
it, turn qualifying candidates into activations and fan their points out
to card owners.

Propagation commits as it goes, so every value carried across a candidate
is captured as a primitive and rows are re-fetched from the session.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jogata.db.operations import get_style_card_by_name, upsert_player
from jogata.models.db import PlayerDB, PlayerPerformanceDB
from jogata.models.performance import ActivationCandidate
from jogata.services.football_api import FootballApiClient, Fixture, PlayerMatchStats
from jogata.services.propagation import create_activation, propagate_activation
from jogata.services.sanitize import sanitize_for_log
from jogata.services.scoring import score_performance, style_scores

logger = logging.getLogger(__name__)


@dataclass
class MatchProcessingResult:
    fixtures_processed: int = 0
    fixtures_skipped: int = 0
    performances_recorded: int = 0
    players_skipped: int = 0
    activations_created: int = 0
    owners_credited: int = 0
    owners_failed: int = 0

    def merge(self, other: "MatchProcessingResult") -> None:
        self.fixtures_processed += other.fixtures_processed
        self.fixtures_skipped += other.fixtures_skipped
        self.performances_recorded += other.performances_recorded
        self.players_skipped += other.players_skipped
        self.activations_created += other.activations_created
        self.owners_credited += other.owners_credited
        self.owners_failed += other.owners_failed


async def _activate(
    session: AsyncSession,
    candidate: ActivationCandidate,
    player_id: str,
    fixture: Fixture,
    result: MatchProcessingResult,
) -> None:
    card = await get_style_card_by_name(session, candidate.style_name)
    if card is None or not card.is_active:
        logger.debug("No active style card named %s", candidate.style_name)
        return
    if candidate.confidence < card.min_threshold:
        logger.debug(
            "%s below threshold (%.2f < %.2f)",
            candidate.style_name,
            candidate.confidence,
            card.min_threshold,
        )
        return

    player = await session.get(PlayerDB, player_id)
    if player is None:
        return

    activation = await create_activation(
        session,
        card,
        player,
        candidate.points,
        candidate.confidence,
        match_date=fixture.date,
    )
    outcome = await propagate_activation(session, activation)
    result.activations_created += 1
    result.owners_credited += outcome.credited_owners
    result.owners_failed += outcome.failed_owners


async def record_performance(
    session: AsyncSession,
    fixture: Fixture,
    line: PlayerMatchStats,
    result: MatchProcessingResult,
) -> None:
    """Store and score one player's line, unless the fixture was already scored for them."""
    player = await upsert_player(
        session,
        line.external_id,
        line.name,
        team=line.team,
        league=fixture.league,
        position=line.position,
    )
    player_id = player.id

    existing = await session.scalar(
        select(PlayerPerformanceDB.id).where(
            PlayerPerformanceDB.player_id == player_id,
            PlayerPerformanceDB.fixture_id == fixture.fixture_id,
        )
    )
    if existing is not None:
        result.players_skipped += 1
        return

    candidates = score_performance(line.stats)
    session.add(
        PlayerPerformanceDB(
            player_id=player_id,
            fixture_id=fixture.fixture_id,
            match_date=fixture.date,
            opponent=fixture.opponent_of(line.team),
            is_home=line.team == fixture.home_team,
            stats=line.stats.to_dict(),
            style_scores=style_scores(candidates),
        )
    )
    player.appearances += 1
    player.goals += line.stats.goals
    player.assists += line.stats.assists
    await session.commit()
    result.performances_recorded += 1

    for candidate in candidates:
        await _activate(session, candidate, player_id, fixture, result)


async def process_fixture(
    session: AsyncSession, client: FootballApiClient, fixture: Fixture
) -> MatchProcessingResult:
    result = MatchProcessingResult()
    if not fixture.is_finished:
        result.fixtures_skipped += 1
        return result

    lines = await client.fetch_fixture_players(fixture.fixture_id)
    for line in lines:
        await record_performance(session, fixture, line, result)

    result.fixtures_processed += 1
    logger.info(
        "Processed fixture %s (%s v %s): %d performances, %d activations",
        fixture.fixture_id,
        sanitize_for_log(fixture.home_team),
        sanitize_for_log(fixture.away_team),
        result.performances_recorded,
        result.activations_created,
    )
    return result


async def process_matches(
    session: AsyncSession,
    client: FootballApiClient,
    *,
    day: str | None = None,
) -> MatchProcessingResult:
    """
    Ingest every finished fixture of a day, or the provider's live feed.

    Raises:
        FootballApiError: The fixture list could not be fetched
    """
    if day:
        fixtures = await client.fetch_fixtures_by_date(day)
    else:
        fixtures = await client.fetch_live_fixtures()
    logger.info("Fetched %d fixtures", len(fixtures))

    total = MatchProcessingResult()
    for fixture in fixtures:
        total.merge(await process_fixture(session, client, fixture))

    logger.info(
        "Match processing complete: %d fixtures, %d activations, %d owners credited, %d failed",
        total.fixtures_processed,
        total.activations_created,
        total.owners_credited,
        total.owners_failed,
    )
    return total
