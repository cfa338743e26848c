"""
Point Propagation: activation fan-out to card owners.

An activation credits its `points` to every ledger row holding its card,
to each owner's profile total, and to each owner's entries in tournaments
running right now. `bonus_points` is recorded on the activation only.

INVARIANTS:
- Each owner's updates commit together or not at all
- A failing owner is rolled back, logged and skipped; the rest still
  receive their points
- The card's own aggregate advances exactly once per activation
- The batch as a whole is NOT atomic: a crash mid fan-out leaves some
  owners credited
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from jogata.models.db import (
    PlayerDB,
    StyleActivationDB,
    StyleCardDB,
    TournamentDB,
    TournamentEntryDB,
    TournamentStatus,
    UserProfileDB,
    UserStyleDB,
    utcnow,
)
from jogata.services.gameweek import gameweek_for, season_for

logger = logging.getLogger(__name__)


@dataclass
class PropagationResult:
    """Outcome of one fan-out."""

    activation_id: str
    credit: int
    credited_owners: int = 0
    failed_owners: int = 0

    @property
    def affected_owners(self) -> int:
        return self.credited_owners + self.failed_owners


async def next_rank(session: AsyncSession, style_card_id: str, gameweek: int, season: str) -> int:
    """Next free activation rank for a card within a gameweek."""
    highest = await session.scalar(
        select(func.max(StyleActivationDB.rank)).where(
            StyleActivationDB.style_card_id == style_card_id,
            StyleActivationDB.gameweek == gameweek,
            StyleActivationDB.season == season,
        )
    )
    return int(highest or 0) + 1


async def create_activation(
    session: AsyncSession,
    card: StyleCardDB,
    player: PlayerDB,
    points: int,
    confidence: float,
    *,
    match_date: datetime | None = None,
    gameweek: int | None = None,
    season: str | None = None,
    bonus_points: int = 0,
) -> StyleActivationDB:
    """
    Record an activation and advance the card's aggregates.

    Gameweek and season default to the ones containing `match_date`
    (itself defaulting to now). Bonus points are stored as given and never
    credited.
    """
    match_date = match_date or utcnow()
    gameweek = gameweek if gameweek is not None else gameweek_for(match_date)
    season = season or season_for(match_date)

    activation = StyleActivationDB(
        style_card_id=card.id,
        style_card=card,
        player_id=player.id,
        player=player,
        gameweek=gameweek,
        season=season,
        rank=await next_rank(session, card.id, gameweek, season),
        match_date=match_date,
        points=points,
        bonus_points=bonus_points,
        confidence=confidence,
    )
    session.add(activation)

    card.total_points += points
    card.activation_count += 1
    await session.flush()

    logger.info(
        "Activation created: %s for player %s, %d+%d points (GW%d %s)",
        card.name,
        player.id,
        points,
        bonus_points,
        gameweek,
        season,
    )
    return activation


async def _credit_owner(
    session: AsyncSession, user_style_id: str, user_id: str, credit: int
) -> None:
    """Apply one owner's share. Caller commits or rolls back."""
    await session.execute(
        update(UserStyleDB)
        .where(UserStyleDB.id == user_style_id)
        .values(
            total_points=UserStyleDB.total_points + credit,
            weekly_points=UserStyleDB.weekly_points + credit,
            activation_count=UserStyleDB.activation_count + 1,
        )
        .execution_options(synchronize_session=False)
    )
    await session.execute(
        update(UserProfileDB)
        .where(UserProfileDB.user_id == user_id)
        .values(total_points=UserProfileDB.total_points + credit)
        .execution_options(synchronize_session=False)
    )

    now = utcnow()
    running = select(TournamentDB.id).where(
        TournamentDB.status == TournamentStatus.ACTIVE,
        TournamentDB.start_date <= now,
        TournamentDB.end_date >= now,
    )
    await session.execute(
        update(TournamentEntryDB)
        .where(TournamentEntryDB.user_id == user_id, TournamentEntryDB.tournament_id.in_(running))
        .values(total_points=TournamentEntryDB.total_points + credit)
        .execution_options(synchronize_session=False)
    )


async def propagate_activation(
    session: AsyncSession, activation: StyleActivationDB
) -> PropagationResult:
    """
    Fan an activation's points out to every current owner of its card.

    Commits the activation first, then commits each owner separately.
    Objects loaded in `session` may be stale afterwards.
    """
    activation_id = activation.id
    style_card_id = activation.style_card_id
    credit = activation.points
    await session.commit()

    result = await session.execute(
        select(UserStyleDB.id, UserStyleDB.user_id).where(
            UserStyleDB.style_card_id == style_card_id
        )
    )
    owners = [(row_id, user_id) for row_id, user_id in result.all()]

    outcome = PropagationResult(activation_id=activation_id, credit=credit)
    for row_id, user_id in owners:
        try:
            await _credit_owner(session, row_id, user_id, credit)
            await session.commit()
        except SQLAlchemyError:
            await session.rollback()
            outcome.failed_owners += 1
            logger.exception(
                "Failed to credit owner %s for activation %s", user_id, activation_id
            )
            continue
        outcome.credited_owners += 1

    logger.info(
        "Activation %s propagated: %d owners credited, %d failed",
        activation_id,
        outcome.credited_owners,
        outcome.failed_owners,
    )
    return outcome
