"""
Style card catalog endpoints, plus the internal activation hook.
"""

from fastapi import APIRouter, Depends
from pydantic import Field

from jogata.api.deps import SessionDep, require_internal_key
from jogata.api.schemas import ActivationOut, CamelModel, StyleCardOut, UtcDatetime
from jogata.db.operations import get_player, get_style_card, list_style_cards
from jogata.models.card import Rarity
from jogata.models.failure import NotFoundError
from jogata.services.activations import recent_for_card
from jogata.services.propagation import create_activation, propagate_activation

router = APIRouter(prefix="/styles", tags=["styles"])


class StyleListResponse(CamelModel):
    styles: list[StyleCardOut]
    total: int


class StyleDetailResponse(CamelModel):
    style: StyleCardOut
    recent_activations: list[ActivationOut]


class ActivateRequest(CamelModel):
    """Manual activation of a card for a player's performance."""

    style_id: str
    player_id: str
    points: int = Field(..., ge=0)
    confidence: float = Field(..., ge=0, le=1)
    gameweek: int | None = Field(default=None, ge=1)
    season: str | None = None
    match_date: UtcDatetime | None = None
    bonus_points: int = Field(default=0, ge=0)


class ActivateResponse(CamelModel):
    activation: ActivationOut
    affected_owners: int
    failed_owners: int


@router.get("", response_model=StyleListResponse)
async def list_styles(session: SessionDep) -> StyleListResponse:
    """Every card, rarest last, then by name."""
    cards = await list_style_cards(session)
    return StyleListResponse(
        styles=[StyleCardOut.model_validate(c) for c in cards], total=len(cards)
    )


@router.get("/rarity/{rarity}", response_model=StyleListResponse)
async def list_styles_by_rarity(rarity: Rarity, session: SessionDep) -> StyleListResponse:
    cards = await list_style_cards(session, rarity=rarity)
    return StyleListResponse(
        styles=[StyleCardOut.model_validate(c) for c in cards], total=len(cards)
    )


@router.get("/{style_id}", response_model=StyleDetailResponse)
async def get_style(style_id: str, session: SessionDep) -> StyleDetailResponse:
    card = await get_style_card(session, style_id)
    if card is None:
        raise NotFoundError("Style not found", "STYLE_NOT_FOUND")

    activations = await recent_for_card(session, card.id)
    return StyleDetailResponse(
        style=StyleCardOut.model_validate(card),
        recent_activations=[ActivationOut.model_validate(a) for a in activations],
    )


@router.post(
    "/activate",
    response_model=ActivateResponse,
    dependencies=[Depends(require_internal_key)],
)
async def activate_style(request: ActivateRequest, session: SessionDep) -> ActivateResponse:
    """
    Record an activation and credit every owner of the card.

    Owners are credited independently; one failing owner does not stop the
    others and is reported in `failedOwners`.
    """
    card = await get_style_card(session, request.style_id)
    if card is None:
        raise NotFoundError("Style not found", "STYLE_NOT_FOUND")
    player = await get_player(session, request.player_id)
    if player is None:
        raise NotFoundError("Player not found", "PLAYER_NOT_FOUND")

    activation = await create_activation(
        session,
        card,
        player,
        request.points,
        request.confidence,
        match_date=request.match_date,
        gameweek=request.gameweek,
        season=request.season,
        bonus_points=request.bonus_points,
    )
    # Propagation commits and may roll back, so serialize first
    activation_out = ActivationOut.model_validate(activation)
    outcome = await propagate_activation(session, activation)
    return ActivateResponse(
        activation=activation_out,
        affected_owners=outcome.affected_owners,
        failed_owners=outcome.failed_owners,
    )
