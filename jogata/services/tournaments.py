"""
Tournaments: entry fees, point accrual and prize payout.

Entries accrue points from activations while their tournament is ACTIVE
(see `jogata.services.propagation`). Finalization ranks the entries and
pays the prize structure out as transactions.
"""

import logging
import math
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from jogata.db.operations import create_transaction, fetch_page
from jogata.models.db import (
    TournamentDB,
    TournamentEntryDB,
    TournamentStatus,
    TransactionDB,
    TransactionType,
)
from jogata.models.failure import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class TournamentSummary:
    tournament: TournamentDB
    entry_count: int

    @property
    def spots_remaining(self) -> int | None:
        if self.tournament.max_entries is None:
            return None
        return max(0, self.tournament.max_entries - self.entry_count)


@dataclass
class EntryResult:
    entry: TournamentEntryDB
    transaction: TransactionDB


@dataclass
class Payout:
    entry: TournamentEntryDB
    transaction: TransactionDB | None


def prize_for_rank(total_prize: int, prize_structure: dict[str, float], rank: int) -> int:
    """Prize in cents for a final rank; ranks outside the structure win nothing."""
    percent = prize_structure.get(str(rank))
    if not percent:
        return 0
    return math.floor(total_prize * float(percent) / 100)


async def count_entries(session: AsyncSession, tournament_id: str) -> int:
    total = await session.scalar(
        select(func.count(TournamentEntryDB.id)).where(
            TournamentEntryDB.tournament_id == tournament_id
        )
    )
    return int(total or 0)


async def get_tournament(session: AsyncSession, tournament_id: str) -> TournamentDB:
    """
    Raises:
        NotFoundError: TOURNAMENT_NOT_FOUND
    """
    tournament = await session.get(TournamentDB, tournament_id)
    if tournament is None:
        raise NotFoundError("Tournament not found", "TOURNAMENT_NOT_FOUND")
    return tournament


async def list_tournaments(
    session: AsyncSession,
    *,
    status: TournamentStatus | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[TournamentSummary], int]:
    stmt = select(TournamentDB)
    if status is not None:
        stmt = stmt.where(TournamentDB.status == status)
    stmt = stmt.order_by(TournamentDB.status, TournamentDB.start_date, TournamentDB.id)

    tournaments, total = await fetch_page(session, stmt, page, limit)
    summaries = [
        TournamentSummary(tournament=t, entry_count=await count_entries(session, t.id))
        for t in tournaments
    ]
    return summaries, total


def _standings_order() -> tuple:
    # Unranked entries sort after ranked ones on every backend
    return (
        TournamentEntryDB.rank.is_(None),
        TournamentEntryDB.rank,
        TournamentEntryDB.total_points.desc(),
        TournamentEntryDB.created_at,
        TournamentEntryDB.id,
    )


async def list_entries(session: AsyncSession, tournament_id: str) -> list[TournamentEntryDB]:
    result = await session.execute(
        select(TournamentEntryDB)
        .where(TournamentEntryDB.tournament_id == tournament_id)
        .order_by(*_standings_order())
    )
    return list(result.scalars().all())


async def leaderboard(
    session: AsyncSession, tournament_id: str, *, page: int = 1, limit: int = 50
) -> tuple[TournamentDB, list[tuple[int, TournamentEntryDB]], int]:
    """
    Standings of a tournament.

    Returns:
        (tournament, [(display rank, entry)], total entries). The display
        rank is the final rank once assigned, else the position.
    """
    tournament = await get_tournament(session, tournament_id)
    stmt = (
        select(TournamentEntryDB)
        .where(TournamentEntryDB.tournament_id == tournament_id)
        .order_by(*_standings_order())
    )
    entries, total = await fetch_page(session, stmt, page, limit)
    offset = (page - 1) * limit
    ranked = [(entry.rank or offset + index + 1, entry) for index, entry in enumerate(entries)]
    return tournament, ranked, total


async def enter_tournament(session: AsyncSession, user_id: str, tournament_id: str) -> EntryResult:
    """
    Enter a user into an UPCOMING tournament, charging its fee.

    Raises:
        NotFoundError: TOURNAMENT_NOT_FOUND
        ValidationError: TOURNAMENT_NOT_OPEN or TOURNAMENT_FULL
        ConflictError: ALREADY_ENTERED
    """
    tournament = await get_tournament(session, tournament_id)

    if tournament.status is not TournamentStatus.UPCOMING:
        raise ValidationError("Tournament is not accepting entries", "TOURNAMENT_NOT_OPEN")

    if tournament.max_entries is not None:
        if await count_entries(session, tournament.id) >= tournament.max_entries:
            raise ValidationError("Tournament is full", "TOURNAMENT_FULL")

    existing = await session.scalar(
        select(TournamentEntryDB.id).where(
            TournamentEntryDB.user_id == user_id,
            TournamentEntryDB.tournament_id == tournament.id,
        )
    )
    if existing is not None:
        raise ConflictError("Already entered in this tournament", "ALREADY_ENTERED")

    transaction = await create_transaction(
        session,
        user_id,
        TransactionType.TOURNAMENT_ENTRY,
        tournament.entry_fee,
        f"Entry fee for {tournament.name}",
    )
    entry = TournamentEntryDB(
        user_id=user_id,
        tournament_id=tournament.id,
        entry_fee=tournament.entry_fee,
    )
    session.add(entry)
    await session.flush()
    await session.refresh(entry, ["user"])

    logger.info("User %s entered tournament %s", user_id, tournament.id)
    return EntryResult(entry=entry, transaction=transaction)


async def finalize_tournament(
    session: AsyncSession, tournament_id: str
) -> tuple[TournamentDB, list[Payout]]:
    """
    Rank every entry and pay out the prize structure.

    Ranking is by points, ties broken by earlier entry. Each winning rank
    gets `total_prize * percent / 100`, floored, as a TOURNAMENT_PRIZE
    transaction.

    Raises:
        NotFoundError: TOURNAMENT_NOT_FOUND
        ConflictError: TOURNAMENT_FINALIZED (already COMPLETED or CANCELLED)
    """
    tournament = await get_tournament(session, tournament_id)
    if tournament.status in (TournamentStatus.COMPLETED, TournamentStatus.CANCELLED):
        raise ConflictError(
            f"Tournament is already {tournament.status.value.lower()}", "TOURNAMENT_FINALIZED"
        )

    result = await session.execute(
        select(TournamentEntryDB)
        .where(TournamentEntryDB.tournament_id == tournament.id)
        .order_by(
            TournamentEntryDB.total_points.desc(),
            TournamentEntryDB.created_at,
            TournamentEntryDB.id,
        )
    )
    entries = list(result.scalars().all())

    payouts: list[Payout] = []
    for index, entry in enumerate(entries):
        entry.rank = index + 1
        entry.prize = prize_for_rank(tournament.total_prize, tournament.prize_structure, entry.rank)

        transaction = None
        if entry.prize > 0:
            transaction = await create_transaction(
                session,
                entry.user_id,
                TransactionType.TOURNAMENT_PRIZE,
                entry.prize,
                f"Rank {entry.rank} prize in {tournament.name}",
            )
        payouts.append(Payout(entry=entry, transaction=transaction))

    tournament.status = TournamentStatus.COMPLETED
    await session.flush()

    logger.info(
        "Tournament %s finalized: %d entries, %d paid",
        tournament.id,
        len(entries),
        sum(1 for p in payouts if p.transaction is not None),
    )
    return tournament, payouts


async def user_history(
    session: AsyncSession, user_id: str, *, page: int = 1, limit: int = 20
) -> tuple[list[TournamentEntryDB], int]:
    stmt = (
        select(TournamentEntryDB)
        .where(TournamentEntryDB.user_id == user_id)
        .options(selectinload(TournamentEntryDB.tournament))
        .order_by(TournamentEntryDB.created_at.desc(), TournamentEntryDB.id)
    )
    return await fetch_page(session, stmt, page, limit)
