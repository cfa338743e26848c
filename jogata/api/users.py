"""
User account endpoints: profile, dashboard, leaderboards and history.
"""

from fastapi import APIRouter, Query
from pydantic import Field

from jogata.api.deps import CurrentUser, Limit, Page, SessionDep
from jogata.api.schemas import (
    ActivationOut,
    CamelModel,
    Pagination,
    ProfileOut,
    TournamentOut,
    TransactionOut,
    UserBrief,
    UserOut,
    UserStyleOut,
)
from jogata.config import DEFAULT_PAGE_SIZE
from jogata.db.operations import list_transactions, list_user_styles
from jogata.models.db import TransactionType
from jogata.services import accounts

router = APIRouter(prefix="/users", tags=["users"])


class ProfileStatsOut(CamelModel):
    total_styles: int
    total_points: int
    tournaments_entered: int
    packs_purchased: int
    collection_by_rarity: dict[str, int] = Field(default_factory=dict)


class ProfileResponse(CamelModel):
    user: UserOut
    stats: ProfileStatsOut


class ProfileUpdateRequest(CamelModel):
    """Omitted fields keep their current value."""

    display_name: str | None = Field(default=None, min_length=1, max_length=50)
    bio: str | None = Field(default=None, max_length=500)
    country: str | None = Field(default=None, pattern=r"^[A-Za-z]{2}$")


class DashboardResponse(CamelModel):
    recent_activations: list[ActivationOut]
    weekly_points: int
    current_rank: int
    active_tournaments: list[TournamentOut]


class LeaderboardEntryOut(CamelModel):
    rank: int
    user: UserBrief
    points: int


class LeaderboardResponse(CamelModel):
    leaderboard: list[LeaderboardEntryOut]
    timeframe: accounts.Timeframe
    pagination: Pagination


class TransactionsResponse(CamelModel):
    transactions: list[TransactionOut]
    pagination: Pagination


class CollectionResponse(CamelModel):
    styles: list[UserStyleOut]
    total_copies: int


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(user: CurrentUser, session: SessionDep) -> ProfileResponse:
    stats = await accounts.profile_stats(session, user.id)
    return ProfileResponse(
        user=UserOut.model_validate(user),
        stats=ProfileStatsOut.model_validate(stats),
    )


@router.put("/profile", response_model=ProfileOut)
async def update_profile(
    request: ProfileUpdateRequest, user: CurrentUser, session: SessionDep
) -> ProfileOut:
    profile = await accounts.update_profile(
        session,
        user.id,
        display_name=request.display_name,
        bio=request.bio,
        country=request.country,
    )
    return ProfileOut.model_validate(profile)


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(user: CurrentUser, session: SessionDep) -> DashboardResponse:
    """Last week's activations on held cards, weekly points, rank and live tournaments."""
    board = await accounts.dashboard(session, user.id)
    return DashboardResponse(
        recent_activations=[ActivationOut.model_validate(a) for a in board.recent_activations],
        weekly_points=board.weekly_points,
        current_rank=board.current_rank,
        active_tournaments=[TournamentOut.model_validate(t) for t in board.active_tournaments],
    )


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    session: SessionDep,
    timeframe: accounts.Timeframe = "overall",
    page: Page = 1,
    limit: Limit = 50,
) -> LeaderboardResponse:
    rows, total = await accounts.leaderboard(session, timeframe=timeframe, page=page, limit=limit)
    return LeaderboardResponse(
        leaderboard=[
            LeaderboardEntryOut(rank=row.rank, user=UserBrief.of(row.user), points=row.points)
            for row in rows
        ],
        timeframe=timeframe,
        pagination=Pagination.of(page, limit, total),
    )


@router.get("/transactions", response_model=TransactionsResponse)
async def get_transactions(
    user: CurrentUser,
    session: SessionDep,
    type_: TransactionType | None = Query(default=None, alias="type"),
    page: Page = 1,
    limit: Limit = DEFAULT_PAGE_SIZE,
) -> TransactionsResponse:
    transactions, total = await list_transactions(
        session, user.id, type_=type_, page=page, limit=limit
    )
    return TransactionsResponse(
        transactions=[TransactionOut.model_validate(t) for t in transactions],
        pagination=Pagination.of(page, limit, total),
    )


@router.get("/collection", response_model=CollectionResponse)
async def get_collection(user: CurrentUser, session: SessionDep) -> CollectionResponse:
    styles = await list_user_styles(session, user.id)
    return CollectionResponse(
        styles=[UserStyleOut.model_validate(s) for s in styles],
        total_copies=sum(s.copies for s in styles),
    )
