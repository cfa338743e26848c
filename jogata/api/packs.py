"""
Pack endpoints: catalog of pack types, purchase, reveal and history.
"""

from fastapi import APIRouter, Depends
from pydantic import Field

from jogata.api.deps import CurrentUser, Limit, Page, SessionDep
from jogata.api.schemas import CamelModel, Pagination, StyleCardOut, TransactionOut
from jogata.config import DEFAULT_PAGE_SIZE, MAX_PACKS_PER_PURCHASE, MIN_PACKS_PER_PURCHASE
from jogata.db.operations import list_transactions
from jogata.models.card import Rarity
from jogata.models.db import PackPurchaseCardDB, TransactionType
from jogata.models.pack import PACK_TYPES, DrawPolicy
from jogata.services.purchase import PurchaseResult, open_pack, purchase_packs
from jogata.services.rate_limits import pack_rate_limit

router = APIRouter(prefix="/packs", tags=["packs"])


class PackTypeOut(CamelModel):
    key: str
    name: str
    price: int
    card_count: int
    rarity_distribution: dict[Rarity, int]
    draw_policy: DrawPolicy


class PackTypesResponse(CamelModel):
    pack_types: list[PackTypeOut]
    min_quantity: int = MIN_PACKS_PER_PURCHASE
    max_quantity: int = MAX_PACKS_PER_PURCHASE


class PurchaseRequest(CamelModel):
    """Request model for buying packs.

    Quantity bounds are enforced by the purchase flow so that an
    out-of-range value reports INVALID_QUANTITY.
    """

    pack_type: str = Field(..., min_length=1, examples=["STARTER"])
    quantity: int = 1
    expected_total: int | None = Field(
        default=None,
        description="Client-computed total in cents; rejected when it disagrees",
    )


class GrantedCardOut(CamelModel):
    position: int
    pack_index: int
    user_style_id: str | None = None
    style_card: StyleCardOut


class PurchaseResponse(CamelModel):
    transaction: TransactionOut
    cards: list[GrantedCardOut]

    @classmethod
    def of(cls, result: PurchaseResult) -> "PurchaseResponse":
        return cls(
            transaction=TransactionOut.model_validate(result.transaction),
            cards=[_granted(line) for line in result.cards],
        )


class PackHistoryResponse(CamelModel):
    purchases: list[TransactionOut]
    pagination: Pagination


def _granted(line: PackPurchaseCardDB) -> GrantedCardOut:
    return GrantedCardOut(
        position=line.position,
        pack_index=line.pack_index,
        user_style_id=line.user_style_id,
        style_card=StyleCardOut.model_validate(line.style_card),
    )


@router.get("/types", response_model=PackTypesResponse)
async def get_pack_types() -> PackTypesResponse:
    return PackTypesResponse(
        pack_types=[
            PackTypeOut(
                key=pack.key,
                name=pack.name,
                price=pack.price,
                card_count=pack.card_count,
                rarity_distribution=pack.rarity_distribution,
                draw_policy=pack.draw_policy,
            )
            for pack in PACK_TYPES.values()
        ]
    )


@router.post(
    "/purchase",
    response_model=PurchaseResponse,
    dependencies=[Depends(pack_rate_limit)],
)
async def purchase(
    request: PurchaseRequest, user: CurrentUser, session: SessionDep
) -> PurchaseResponse:
    """
    Buy packs and grant their cards.

    The whole purchase is one unit of work: if any draw fails nothing is
    recorded and the error surfaces as a 500.
    """
    result = await purchase_packs(
        session,
        user.id,
        request.pack_type,
        request.quantity,
        expected_total=request.expected_total,
    )
    return PurchaseResponse.of(result)


@router.post("/open/{transaction_id}", response_model=PurchaseResponse)
async def open_purchase(
    transaction_id: str, user: CurrentUser, session: SessionDep
) -> PurchaseResponse:
    """Reveal a purchase's cards in the order they were drawn."""
    result = await open_pack(session, user.id, transaction_id)
    return PurchaseResponse.of(result)


@router.get("/history", response_model=PackHistoryResponse)
async def purchase_history(
    user: CurrentUser,
    session: SessionDep,
    page: Page = 1,
    limit: Limit = DEFAULT_PAGE_SIZE,
) -> PackHistoryResponse:
    transactions, total = await list_transactions(
        session, user.id, type_=TransactionType.PACK_PURCHASE, page=page, limit=limit
    )
    return PackHistoryResponse(
        purchases=[TransactionOut.model_validate(t) for t in transactions],
        pagination=Pagination.of(page, limit, total),
    )
