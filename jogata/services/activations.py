"""
Activation feeds and statistics.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Literal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from jogata.db.operations import fetch_page
from jogata.models.card import Rarity
from jogata.models.db import PlayerDB, StyleActivationDB, StyleCardDB, utcnow
from jogata.services.gameweek import gameweek_for, season_for

StatsTimeframe = Literal["season", "month", "week"]

TIMEFRAME_WINDOWS: dict[str, timedelta | None] = {
    "season": None,
    "month": timedelta(days=30),
    "week": timedelta(days=7),
}
TOP_PLAYERS = 10
RECENT_PER_CARD = 10


@dataclass
class CardActivations:
    card: StyleCardDB
    activations: list[StyleActivationDB] = field(default_factory=list)


@dataclass
class RarityStats:
    total_activations: int
    avg_points: float
    avg_confidence: float


@dataclass
class PlayerStanding:
    player: PlayerDB
    activations: int
    total_points: int


async def recent_for_card(session: AsyncSession, style_card_id: str) -> list[StyleActivationDB]:
    result = await session.execute(
        select(StyleActivationDB)
        .where(StyleActivationDB.style_card_id == style_card_id)
        .order_by(StyleActivationDB.created_at.desc(), StyleActivationDB.id)
        .limit(RECENT_PER_CARD)
    )
    return list(result.scalars().all())


async def current_gameweek(
    session: AsyncSession, now: datetime | None = None
) -> tuple[int, str, list[CardActivations]]:
    """
    This gameweek's activations grouped by card, rarest card first and by
    rank within a card.
    """
    now = now or utcnow()
    gameweek, season = gameweek_for(now), season_for(now)

    result = await session.execute(
        select(StyleActivationDB)
        .where(StyleActivationDB.gameweek == gameweek, StyleActivationDB.season == season)
        .order_by(StyleActivationDB.rank, StyleActivationDB.created_at)
    )

    grouped: dict[str, CardActivations] = {}
    for activation in result.scalars().all():
        group = grouped.setdefault(
            activation.style_card_id, CardActivations(card=activation.style_card)
        )
        group.activations.append(activation)

    groups = sorted(grouped.values(), key=lambda g: (-g.card.rarity.order, g.card.name))
    return gameweek, season, groups


async def history(
    session: AsyncSession,
    *,
    style_card_id: str | None = None,
    player_id: str | None = None,
    gameweek: int | None = None,
    season: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[StyleActivationDB], int]:
    stmt = select(StyleActivationDB)
    if style_card_id:
        stmt = stmt.where(StyleActivationDB.style_card_id == style_card_id)
    if player_id:
        stmt = stmt.where(StyleActivationDB.player_id == player_id)
    if gameweek is not None:
        stmt = stmt.where(StyleActivationDB.gameweek == gameweek)
    if season:
        stmt = stmt.where(StyleActivationDB.season == season)
    stmt = stmt.order_by(StyleActivationDB.created_at.desc(), StyleActivationDB.id)
    return await fetch_page(session, stmt, page, limit)


async def stats(
    session: AsyncSession, timeframe: StatsTimeframe = "season"
) -> tuple[dict[str, RarityStats], list[PlayerStanding]]:
    """
    Per-rarity activation averages and the top players by credited points.

    Per-rarity averages are means of per-card averages, so every card
    weighs the same regardless of how often it fired.
    """
    window = TIMEFRAME_WINDOWS[timeframe]
    conditions = []
    if window is not None:
        conditions.append(StyleActivationDB.created_at >= utcnow() - window)

    per_card = await session.execute(
        select(
            StyleCardDB.rarity,
            func.count(StyleActivationDB.id),
            func.avg(StyleActivationDB.points),
            func.avg(StyleActivationDB.confidence),
        )
        .join(StyleCardDB, StyleActivationDB.style_card_id == StyleCardDB.id)
        .where(*conditions)
        .group_by(StyleActivationDB.style_card_id, StyleCardDB.rarity)
    )

    buckets: dict[str, list[tuple[int, float, float]]] = {}
    for rarity, count, avg_points, avg_confidence in per_card.all():
        buckets.setdefault(Rarity(rarity).value, []).append(
            (int(count), float(avg_points or 0), float(avg_confidence or 0))
        )

    by_rarity = {
        rarity: RarityStats(
            total_activations=sum(c for c, _, _ in cards),
            avg_points=sum(p for _, p, _ in cards) / len(cards),
            avg_confidence=sum(conf for _, _, conf in cards) / len(cards),
        )
        for rarity, cards in buckets.items()
    }

    credited = func.sum(StyleActivationDB.points)
    top = await session.execute(
        select(StyleActivationDB.player_id, func.count(StyleActivationDB.id), credited)
        .where(*conditions)
        .group_by(StyleActivationDB.player_id)
        .order_by(credited.desc(), StyleActivationDB.player_id)
        .limit(TOP_PLAYERS)
    )

    standings: list[PlayerStanding] = []
    for player_id, count, points in top.all():
        player = await session.get(PlayerDB, player_id)
        if player is not None:
            standings.append(
                PlayerStanding(player=player, activations=int(count), total_points=int(points or 0))
            )
    return by_rarity, standings
