"""
Account views: profile stats, dashboard and leaderboards.

All read-side; writes here are limited to profile edits and the weekly
rank snapshot.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Literal

from sqlalchemy import Select, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from jogata.db.operations import get_profile
from jogata.models.card import Rarity
from jogata.models.db import (
    StyleActivationDB,
    StyleCardDB,
    TournamentDB,
    TournamentEntryDB,
    TournamentStatus,
    TransactionDB,
    TransactionStatus,
    TransactionType,
    UserDB,
    UserProfileDB,
    UserStyleDB,
    utcnow,
)
from jogata.models.failure import NotFoundError

logger = logging.getLogger(__name__)

Timeframe = Literal["overall", "weekly"]

DASHBOARD_WINDOW = timedelta(days=7)
DASHBOARD_ACTIVATIONS = 10
DASHBOARD_TOURNAMENTS = 5


@dataclass
class ProfileStats:
    total_styles: int = 0
    total_points: int = 0
    tournaments_entered: int = 0
    packs_purchased: int = 0
    collection_by_rarity: dict[str, int] = field(default_factory=dict)


@dataclass
class Dashboard:
    recent_activations: list[StyleActivationDB]
    weekly_points: int
    current_rank: int
    active_tournaments: list[TournamentDB]


@dataclass
class LeaderboardRow:
    rank: int
    user: UserDB
    points: int


async def require_profile(session: AsyncSession, user_id: str) -> UserProfileDB:
    profile = await get_profile(session, user_id)
    if profile is None:
        raise NotFoundError("User not found", "USER_NOT_FOUND")
    return profile


async def profile_stats(session: AsyncSession, user_id: str) -> ProfileStats:
    """Collection and activity counters shown on the profile page."""
    stats = ProfileStats()

    rows = await session.execute(
        select(StyleCardDB.rarity, func.sum(UserStyleDB.copies), func.sum(UserStyleDB.total_points))
        .join(StyleCardDB, UserStyleDB.style_card_id == StyleCardDB.id)
        .where(UserStyleDB.user_id == user_id)
        .group_by(StyleCardDB.rarity)
    )
    for rarity, copies, points in rows.all():
        stats.collection_by_rarity[Rarity(rarity).value] = int(copies or 0)
        stats.total_styles += int(copies or 0)
        stats.total_points += int(points or 0)

    stats.tournaments_entered = int(
        await session.scalar(
            select(func.count(TournamentEntryDB.id)).where(TournamentEntryDB.user_id == user_id)
        )
        or 0
    )
    stats.packs_purchased = int(
        await session.scalar(
            select(func.coalesce(func.sum(TransactionDB.pack_count), 0)).where(
                TransactionDB.user_id == user_id,
                TransactionDB.type == TransactionType.PACK_PURCHASE,
                TransactionDB.status == TransactionStatus.COMPLETED,
            )
        )
        or 0
    )
    return stats


async def update_profile(
    session: AsyncSession,
    user_id: str,
    *,
    display_name: str | None = None,
    bio: str | None = None,
    country: str | None = None,
) -> UserProfileDB:
    """Apply the fields that were provided; omitted fields are untouched."""
    profile = await require_profile(session, user_id)
    if display_name is not None:
        profile.display_name = display_name
    if bio is not None:
        profile.bio = bio
    if country is not None:
        profile.country = country.upper()
    await session.flush()

    logger.info("Profile updated for user: %s", user_id)
    return profile


async def weekly_points(session: AsyncSession, user_id: str) -> int:
    total = await session.scalar(
        select(func.coalesce(func.sum(UserStyleDB.weekly_points), 0)).where(
            UserStyleDB.user_id == user_id
        )
    )
    return int(total or 0)


async def overall_rank(session: AsyncSession, total_points: int) -> int:
    """1 + number of profiles strictly ahead on total points."""
    ahead = await session.scalar(
        select(func.count(UserProfileDB.id)).where(UserProfileDB.total_points > total_points)
    )
    return int(ahead or 0) + 1


async def dashboard(session: AsyncSession, user_id: str) -> Dashboard:
    profile = await require_profile(session, user_id)
    now = utcnow()

    held_cards = select(UserStyleDB.style_card_id).where(UserStyleDB.user_id == user_id)
    activations = await session.execute(
        select(StyleActivationDB)
        .where(
            StyleActivationDB.style_card_id.in_(held_cards),
            StyleActivationDB.created_at >= now - DASHBOARD_WINDOW,
        )
        .order_by(StyleActivationDB.created_at.desc(), StyleActivationDB.id)
        .limit(DASHBOARD_ACTIVATIONS)
    )
    tournaments = await session.execute(
        select(TournamentDB)
        .where(TournamentDB.status == TournamentStatus.ACTIVE, TournamentDB.end_date >= now)
        .order_by(TournamentDB.end_date)
        .limit(DASHBOARD_TOURNAMENTS)
    )

    return Dashboard(
        recent_activations=list(activations.scalars().all()),
        weekly_points=await weekly_points(session, user_id),
        current_rank=await overall_rank(session, profile.total_points),
        active_tournaments=list(tournaments.scalars().all()),
    )


async def leaderboard(
    session: AsyncSession,
    *,
    timeframe: Timeframe = "overall",
    page: int = 1,
    limit: int = 50,
) -> tuple[list[LeaderboardRow], int]:
    """
    Users ranked by total profile points, or by this week's ledger points.

    Ties keep registration order so pages are stable.
    """
    offset = (page - 1) * limit
    total = int(await session.scalar(select(func.count(UserDB.id))) or 0)

    result = await session.execute(_ranking(timeframe).offset(offset).limit(limit))
    rows = [
        LeaderboardRow(rank=offset + index + 1, user=user, points=int(value or 0))
        for index, (user, value) in enumerate(result.all())
    ]
    return rows, total


def _ranking(timeframe: Timeframe) -> Select[tuple[UserDB, int]]:
    if timeframe == "weekly":
        points = func.coalesce(func.sum(UserStyleDB.weekly_points), 0).label("points")
        stmt = (
            select(UserDB, points)
            .outerjoin(UserStyleDB, UserStyleDB.user_id == UserDB.id)
            .group_by(UserDB.id)
        )
    else:
        points = func.coalesce(UserProfileDB.total_points, 0).label("points")
        stmt = select(UserDB, points).outerjoin(UserProfileDB, UserProfileDB.user_id == UserDB.id)

    return stmt.order_by(points.desc(), UserDB.created_at, UserDB.id)


async def reset_weekly_points(session: AsyncSession) -> int:
    """
    Close the week: snapshot each profile's weekly rank, then zero every
    ledger row's weekly points.

    Returns:
        Number of profiles ranked.
    """
    result = await session.execute(_ranking("weekly"))
    ranked = [(user.id, index + 1) for index, (user, _) in enumerate(result.all())]
    for user_id, rank in ranked:
        await session.execute(
            update(UserProfileDB)
            .where(UserProfileDB.user_id == user_id)
            .values(weekly_rank=rank)
            .execution_options(synchronize_session=False)
        )

    await session.execute(
        update(UserStyleDB).values(weekly_points=0).execution_options(synchronize_session=False)
    )
    logger.info("Weekly points reset, %d users ranked", len(ranked))
    return len(ranked)
