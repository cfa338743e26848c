"""
Activation feed endpoints.
"""

from fastapi import APIRouter, Query

from jogata.api.deps import Limit, Page, SessionDep
from jogata.api.schemas import ActivationOut, CamelModel, Pagination, PlayerBrief, StyleCardBrief
from jogata.config import DEFAULT_PAGE_SIZE
from jogata.services import activations

router = APIRouter(prefix="/activations", tags=["activations"])


class CardActivationsOut(CamelModel):
    style_card: StyleCardBrief
    activations: list[ActivationOut]


class CurrentGameweekResponse(CamelModel):
    gameweek: int
    season: str
    styles: list[CardActivationsOut]


class HistoryResponse(CamelModel):
    activations: list[ActivationOut]
    pagination: Pagination


class RarityStatsOut(CamelModel):
    total_activations: int
    avg_points: float
    avg_confidence: float


class PlayerStandingOut(CamelModel):
    player: PlayerBrief
    activations: int
    total_points: int


class StatsResponse(CamelModel):
    timeframe: activations.StatsTimeframe
    by_rarity: dict[str, RarityStatsOut]
    top_players: list[PlayerStandingOut]


@router.get("/current", response_model=CurrentGameweekResponse)
async def current(session: SessionDep) -> CurrentGameweekResponse:
    """This gameweek's activations grouped by card, rarest first."""
    gameweek, season, groups = await activations.current_gameweek(session)
    return CurrentGameweekResponse(
        gameweek=gameweek,
        season=season,
        styles=[
            CardActivationsOut(
                style_card=StyleCardBrief.model_validate(group.card),
                activations=[ActivationOut.model_validate(a) for a in group.activations],
            )
            for group in groups
        ],
    )


@router.get("/history", response_model=HistoryResponse)
async def history(
    session: SessionDep,
    style_id: str | None = Query(default=None, alias="styleId"),
    player_id: str | None = Query(default=None, alias="playerId"),
    gameweek: int | None = None,
    season: str | None = None,
    page: Page = 1,
    limit: Limit = DEFAULT_PAGE_SIZE,
) -> HistoryResponse:
    rows, total = await activations.history(
        session,
        style_card_id=style_id,
        player_id=player_id,
        gameweek=gameweek,
        season=season,
        page=page,
        limit=limit,
    )
    return HistoryResponse(
        activations=[ActivationOut.model_validate(a) for a in rows],
        pagination=Pagination.of(page, limit, total),
    )


@router.get("/stats", response_model=StatsResponse)
async def stats(
    session: SessionDep, timeframe: activations.StatsTimeframe = "season"
) -> StatsResponse:
    by_rarity, standings = await activations.stats(session, timeframe)
    return StatsResponse(
        timeframe=timeframe,
        by_rarity={
            rarity: RarityStatsOut.model_validate(values) for rarity, values in by_rarity.items()
        },
        top_players=[PlayerStandingOut.model_validate(s) for s in standings],
    )
