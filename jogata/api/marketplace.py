"""
Marketplace endpoints.

Listing, buying and cancelling are rate limited per client. Browsing and
activity views apply lazy expiry before reading.
"""

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field

from jogata.api.deps import CurrentUser, Limit, Page, SessionDep
from jogata.api.schemas import CamelModel, ListingOut, Pagination, TransactionOut, UserStyleOut
from jogata.config import DEFAULT_PAGE_SIZE
from jogata.models.card import Rarity
from jogata.services import marketplace
from jogata.services.rate_limits import marketplace_rate_limit

router = APIRouter(prefix="/marketplace", tags=["marketplace"])


class CreateListingRequest(CamelModel):
    user_style_id: str = Field(..., min_length=1)
    price: int = Field(..., ge=0, description="Asking price in cents")


class ListingsResponse(CamelModel):
    listings: list[ListingOut]
    pagination: Pagination


class SaleResponse(CamelModel):
    listing: ListingOut
    transaction: TransactionOut
    user_style: UserStyleOut


@router.get("/listings", response_model=ListingsResponse)
async def browse(
    session: SessionDep,
    rarity: Rarity | None = None,
    category: str | None = None,
    min_price: int | None = Query(default=None, alias="minPrice"),
    max_price: int | None = Query(default=None, alias="maxPrice"),
    sort_by: marketplace.SortField = Query(default="price", alias="sortBy"),
    sort_order: marketplace.SortOrder = Query(default="asc", alias="sortOrder"),
    page: Page = 1,
    limit: Limit = DEFAULT_PAGE_SIZE,
) -> ListingsResponse:
    listings, total = await marketplace.browse_listings(
        session,
        rarity=rarity,
        category=category,
        min_price=min_price,
        max_price=max_price,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return ListingsResponse(
        listings=[ListingOut.of(listing) for listing in listings],
        pagination=Pagination.of(page, limit, total),
    )


@router.post(
    "/listings",
    response_model=ListingOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(marketplace_rate_limit)],
)
async def create_listing(
    request: CreateListingRequest, user: CurrentUser, session: SessionDep
) -> ListingOut:
    listing = await marketplace.create_listing(
        session, user.id, request.user_style_id, request.price
    )
    return ListingOut.of(listing)


@router.post(
    "/listings/{listing_id}/purchase",
    response_model=SaleResponse,
    dependencies=[Depends(marketplace_rate_limit)],
)
async def purchase_listing(listing_id: str, user: CurrentUser, session: SessionDep) -> SaleResponse:
    """Buy a listing; the seller is paid the price less the platform fee."""
    sale = await marketplace.purchase_listing(session, user.id, listing_id)
    return SaleResponse(
        listing=ListingOut.of(sale.listing),
        transaction=TransactionOut.model_validate(sale.buyer_transaction),
        user_style=UserStyleOut.model_validate(sale.user_style),
    )


@router.delete(
    "/listings/{listing_id}",
    response_model=ListingOut,
    dependencies=[Depends(marketplace_rate_limit)],
)
async def cancel_listing(listing_id: str, user: CurrentUser, session: SessionDep) -> ListingOut:
    listing = await marketplace.cancel_listing(session, user.id, listing_id)
    return ListingOut.of(listing)


@router.get("/user/activity", response_model=ListingsResponse)
async def user_activity(
    user: CurrentUser,
    session: SessionDep,
    type_: marketplace.ActivityType = Query(default="all", alias="type"),
    page: Page = 1,
    limit: Limit = DEFAULT_PAGE_SIZE,
) -> ListingsResponse:
    listings, total = await marketplace.user_activity(
        session, user.id, activity=type_, page=page, limit=limit
    )
    return ListingsResponse(
        listings=[ListingOut.of(listing) for listing in listings],
        pagination=Pagination.of(page, limit, total),
    )
