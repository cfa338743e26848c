"""
Tournament endpoints.

Entering charges the entry fee; finalization (internal) ranks the entries
and pays out prizes.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from jogata.api.deps import (
    CurrentUser,
    Limit,
    OptionalUser,
    Page,
    SessionDep,
    require_internal_key,
)
from jogata.api.schemas import CamelModel, EntryOut, Pagination, TournamentOut, TransactionOut
from jogata.config import DEFAULT_PAGE_SIZE
from jogata.models.db import TournamentStatus
from jogata.services import tournaments
from jogata.services.tournaments import TournamentSummary

router = APIRouter(prefix="/tournaments", tags=["tournaments"])


class TournamentsResponse(CamelModel):
    tournaments: list[TournamentOut]
    pagination: Pagination


class TournamentDetailResponse(CamelModel):
    tournament: TournamentOut
    entries: list[EntryOut]
    user_entry: EntryOut | None = None


class StandingOut(CamelModel):
    rank: int
    entry: EntryOut


class TournamentLeaderboardResponse(CamelModel):
    tournament: TournamentOut
    leaderboard: list[StandingOut]
    pagination: Pagination


class EntryResponse(CamelModel):
    entry: EntryOut
    transaction: TransactionOut


class PayoutOut(CamelModel):
    entry: EntryOut
    transaction: TransactionOut | None = None


class FinalizeResponse(CamelModel):
    tournament: TournamentOut
    payouts: list[PayoutOut]


class HistoryEntryOut(EntryOut):
    tournament: TournamentOut


class HistoryResponse(CamelModel):
    entries: list[HistoryEntryOut]
    pagination: Pagination


def _tournament_out(summary: TournamentSummary) -> TournamentOut:
    out = TournamentOut.model_validate(summary.tournament)
    out.entry_count = summary.entry_count
    out.spots_remaining = summary.spots_remaining
    return out


async def _summarize(session: AsyncSession, tournament_id: str) -> TournamentOut:
    tournament = await tournaments.get_tournament(session, tournament_id)
    entry_count = await tournaments.count_entries(session, tournament.id)
    return _tournament_out(TournamentSummary(tournament=tournament, entry_count=entry_count))


@router.get("", response_model=TournamentsResponse)
async def list_tournaments(
    session: SessionDep,
    status: TournamentStatus | None = None,
    page: Page = 1,
    limit: Limit = DEFAULT_PAGE_SIZE,
) -> TournamentsResponse:
    summaries, total = await tournaments.list_tournaments(
        session, status=status, page=page, limit=limit
    )
    return TournamentsResponse(
        tournaments=[_tournament_out(s) for s in summaries],
        pagination=Pagination.of(page, limit, total),
    )


@router.get("/user/history", response_model=HistoryResponse)
async def user_history(
    user: CurrentUser,
    session: SessionDep,
    page: Page = 1,
    limit: Limit = DEFAULT_PAGE_SIZE,
) -> HistoryResponse:
    entries, total = await tournaments.user_history(session, user.id, page=page, limit=limit)
    return HistoryResponse(
        entries=[
            HistoryEntryOut(
                **EntryOut.of(entry).model_dump(),
                tournament=TournamentOut.model_validate(entry.tournament),
            )
            for entry in entries
        ],
        pagination=Pagination.of(page, limit, total),
    )


@router.get("/{tournament_id}", response_model=TournamentDetailResponse)
async def get_tournament(
    tournament_id: str, session: SessionDep, user: OptionalUser
) -> TournamentDetailResponse:
    """Tournament with its standings and, for a signed-in caller, their own entry."""
    tournament = await _summarize(session, tournament_id)
    entries = [EntryOut.of(e) for e in await tournaments.list_entries(session, tournament_id)]
    user_entry = next((e for e in entries if user is not None and e.user.id == user.id), None)
    return TournamentDetailResponse(tournament=tournament, entries=entries, user_entry=user_entry)


@router.get("/{tournament_id}/leaderboard", response_model=TournamentLeaderboardResponse)
async def get_leaderboard(
    tournament_id: str,
    session: SessionDep,
    page: Page = 1,
    limit: Limit = 50,
) -> TournamentLeaderboardResponse:
    tournament, ranked, total = await tournaments.leaderboard(
        session, tournament_id, page=page, limit=limit
    )
    return TournamentLeaderboardResponse(
        tournament=_tournament_out(TournamentSummary(tournament=tournament, entry_count=total)),
        leaderboard=[StandingOut(rank=rank, entry=EntryOut.of(entry)) for rank, entry in ranked],
        pagination=Pagination.of(page, limit, total),
    )


@router.post("/{tournament_id}/enter", response_model=EntryResponse)
async def enter(tournament_id: str, user: CurrentUser, session: SessionDep) -> EntryResponse:
    result = await tournaments.enter_tournament(session, user.id, tournament_id)
    return EntryResponse(
        entry=EntryOut.of(result.entry),
        transaction=TransactionOut.model_validate(result.transaction),
    )


@router.post(
    "/{tournament_id}/finalize",
    response_model=FinalizeResponse,
    dependencies=[Depends(require_internal_key)],
)
async def finalize(tournament_id: str, session: SessionDep) -> FinalizeResponse:
    tournament, payouts = await tournaments.finalize_tournament(session, tournament_id)
    return FinalizeResponse(
        tournament=_tournament_out(
            TournamentSummary(tournament=tournament, entry_count=len(payouts))
        ),
        payouts=[
            PayoutOut(
                entry=EntryOut.of(p.entry),
                transaction=TransactionOut.model_validate(p.transaction) if p.transaction else None,
            )
            for p in payouts
        ],
    )
