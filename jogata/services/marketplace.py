"""
Marketplace Exchange: peer-to-peer resale of owned cards.

Listing lifecycle: ACTIVE -> SOLD | CANCELLED | EXPIRED. Every terminal
state is final. Expiry is applied lazily whenever a listing is read.

INVARIANTS:
- At most one ACTIVE listing per (seller, card)
- A sale writes the SOLD transition, both payment records and the copy
  transfer in one unit of work
- Self-purchase is rejected whatever the listing state
- An expired listing is persisted as EXPIRED even though the purchase
  attempt that discovered it fails
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Literal

from sqlalchemy import ColumnElement, Select, case, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from jogata.config import settings
from jogata.db.operations import (
    create_transaction,
    fetch_page,
    get_user_style,
    get_user_style_for_card,
)
from jogata.models.card import Rarity
from jogata.models.db import (
    ListingStatus,
    MarketplaceListingDB,
    StyleCardDB,
    TransactionDB,
    TransactionType,
    UserStyleDB,
    utcnow,
)
from jogata.models.failure import (
    ConflictError,
    ListingExpiredError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

SortField = Literal["price", "date", "rarity"]
SortOrder = Literal["asc", "desc"]
ActivityType = Literal["all", "selling", "buying"]

BASIS_POINTS = 10_000


@dataclass
class SaleResult:
    """Everything a completed marketplace purchase touched."""

    listing: MarketplaceListingDB
    buyer_transaction: TransactionDB
    seller_transaction: TransactionDB
    user_style: UserStyleDB


def seller_proceeds(price: int, fee_bps: int | None = None) -> int:
    """Seller's share of a sale after the platform fee, floored."""
    fee_bps = settings.marketplace_fee_bps if fee_bps is None else fee_bps
    return price * (BASIS_POINTS - fee_bps) // BASIS_POINTS


async def expire_stale_listings(session: AsyncSession) -> int:
    """Move every ACTIVE listing past its expiry to EXPIRED."""
    result = await session.execute(
        update(MarketplaceListingDB)
        .where(
            MarketplaceListingDB.status == ListingStatus.ACTIVE,
            MarketplaceListingDB.expires_at.is_not(None),
            MarketplaceListingDB.expires_at < utcnow(),
        )
        .values(status=ListingStatus.EXPIRED)
        .execution_options(synchronize_session=False)
    )
    expired = result.rowcount or 0
    if expired:
        logger.info("Expired %d stale marketplace listings", expired)
    return expired


async def create_listing(
    session: AsyncSession, seller_id: str, user_style_id: str, price: int
) -> MarketplaceListingDB:
    """
    List one copy of an owned card.

    Raises:
        ValidationError: Price below the minimum
        NotFoundError: STYLE_NOT_OWNED
        ConflictError: ALREADY_LISTED
    """
    if price < settings.min_listing_price:
        raise ValidationError(
            f"Price must be at least {settings.min_listing_price}", "PRICE_TOO_LOW"
        )

    user_style = await get_user_style(session, user_style_id, seller_id)
    if user_style is None:
        raise NotFoundError("Style not found or not owned by user", "STYLE_NOT_OWNED")

    await expire_stale_listings(session)
    existing = await session.scalar(
        select(MarketplaceListingDB.id).where(
            MarketplaceListingDB.seller_id == seller_id,
            MarketplaceListingDB.style_card_id == user_style.style_card_id,
            MarketplaceListingDB.status == ListingStatus.ACTIVE,
        )
    )
    if existing is not None:
        raise ConflictError("Style is already listed for sale", "ALREADY_LISTED")

    now = utcnow()
    listing = MarketplaceListingDB(
        seller_id=seller_id,
        style_card_id=user_style.style_card_id,
        style_card=user_style.style_card,
        price=price,
        status=ListingStatus.ACTIVE,
        listed_at=now,
        expires_at=now + timedelta(days=settings.listing_expiry_days),
    )
    session.add(listing)
    await session.flush()
    await session.refresh(listing, ["seller", "buyer"])

    logger.info("Marketplace listing created: %s by user %s", listing.id, seller_id)
    return listing


async def _transfer_copy(
    session: AsyncSession, seller_row: UserStyleDB, buyer_id: str
) -> UserStyleDB:
    """Move one copy of a card from the seller's ledger row to the buyer's."""
    removed = seller_row.copies <= 1
    carry = removed and settings.ownership_transfer_policy == "carry_over"

    buyer_row = await get_user_style_for_card(session, buyer_id, seller_row.style_card_id)
    if buyer_row is None:
        buyer_row = UserStyleDB(
            user_id=buyer_id,
            style_card_id=seller_row.style_card_id,
            style_card=seller_row.style_card,
            copies=1,
            total_points=0,
            weekly_points=0,
            activation_count=0,
        )
        session.add(buyer_row)
    else:
        buyer_row.copies += 1

    if carry:
        buyer_row.total_points += seller_row.total_points
        buyer_row.weekly_points += seller_row.weekly_points
        buyer_row.activation_count += seller_row.activation_count

    if removed:
        await session.delete(seller_row)
    else:
        seller_row.copies -= 1

    await session.flush()
    return buyer_row


async def purchase_listing(session: AsyncSession, buyer_id: str, listing_id: str) -> SaleResult:
    """
    Buy a listing.

    Checks run in a fixed order: existence, expiry transition,
    self-purchase, expired, inactive, seller still holds the card.

    Raises:
        NotFoundError: LISTING_NOT_FOUND
        ValidationError: SELF_PURCHASE
        ListingExpiredError: LISTING_EXPIRED
        ConflictError: LISTING_INACTIVE or SELLER_NO_LONGER_OWNS
    """
    listing = await session.get(MarketplaceListingDB, listing_id)
    if listing is None:
        raise NotFoundError("Listing not found", "LISTING_NOT_FOUND")

    now = utcnow()
    if listing.status is ListingStatus.ACTIVE and listing.is_past_expiry(now):
        listing.status = ListingStatus.EXPIRED
        # Persist the transition before any rejection rolls the request back
        await session.commit()
        logger.info("Marketplace listing expired on read: %s", listing.id)

    if listing.seller_id == buyer_id:
        raise ValidationError("Cannot purchase your own listing", "SELF_PURCHASE")

    if listing.status is ListingStatus.EXPIRED:
        raise ListingExpiredError(listing.id)

    if listing.status is not ListingStatus.ACTIVE:
        raise ConflictError("Listing is no longer active", "LISTING_INACTIVE")

    seller_row = await get_user_style_for_card(session, listing.seller_id, listing.style_card_id)
    if seller_row is None:
        raise ConflictError("Seller no longer owns this style", "SELLER_NO_LONGER_OWNS")

    card_name = listing.style_card.name
    listing.status = ListingStatus.SOLD
    listing.buyer_id = buyer_id
    listing.sold_at = now

    buyer_transaction = await create_transaction(
        session,
        buyer_id,
        TransactionType.MARKETPLACE_BUY,
        listing.price,
        f"Purchased {card_name}",
    )
    seller_transaction = await create_transaction(
        session,
        listing.seller_id,
        TransactionType.MARKETPLACE_SELL,
        seller_proceeds(listing.price),
        f"Sold {card_name}",
    )
    user_style = await _transfer_copy(session, seller_row, buyer_id)
    await session.refresh(listing, ["buyer"])

    logger.info("Marketplace purchase completed: %s by user %s", listing.id, buyer_id)
    return SaleResult(
        listing=listing,
        buyer_transaction=buyer_transaction,
        seller_transaction=seller_transaction,
        user_style=user_style,
    )


async def cancel_listing(
    session: AsyncSession, seller_id: str, listing_id: str
) -> MarketplaceListingDB:
    """
    Cancel one of the caller's ACTIVE listings.

    Raises:
        NotFoundError: Not found, not the caller's, or no longer ACTIVE
    """
    await expire_stale_listings(session)
    listing = await session.scalar(
        select(MarketplaceListingDB).where(
            MarketplaceListingDB.id == listing_id,
            MarketplaceListingDB.seller_id == seller_id,
            MarketplaceListingDB.status == ListingStatus.ACTIVE,
        )
    )
    if listing is None:
        raise NotFoundError("Listing not found or cannot be cancelled", "LISTING_NOT_FOUND")

    listing.status = ListingStatus.CANCELLED
    await session.flush()

    logger.info("Marketplace listing cancelled: %s by user %s", listing.id, seller_id)
    return listing


def _rarity_rank() -> ColumnElement[int]:
    return case(
        {rarity: index for index, rarity in enumerate(Rarity)},
        value=StyleCardDB.rarity,
    )


async def browse_listings(
    session: AsyncSession,
    *,
    rarity: Rarity | None = None,
    category: str | None = None,
    min_price: int | None = None,
    max_price: int | None = None,
    sort_by: SortField = "price",
    sort_order: SortOrder = "asc",
    page: int = 1,
    limit: int = 20,
) -> tuple[list[MarketplaceListingDB], int]:
    """ACTIVE listings matching the filters, sorted and paginated."""
    await expire_stale_listings(session)

    stmt: Select[tuple[MarketplaceListingDB]] = (
        select(MarketplaceListingDB)
        .join(StyleCardDB, MarketplaceListingDB.style_card_id == StyleCardDB.id)
        .where(MarketplaceListingDB.status == ListingStatus.ACTIVE)
    )
    if rarity is not None:
        stmt = stmt.where(StyleCardDB.rarity == rarity)
    if category:
        stmt = stmt.where(StyleCardDB.category == category)
    if min_price is not None:
        stmt = stmt.where(MarketplaceListingDB.price >= min_price)
    if max_price is not None:
        stmt = stmt.where(MarketplaceListingDB.price <= max_price)

    sort_column = {
        "price": MarketplaceListingDB.price,
        "date": MarketplaceListingDB.listed_at,
        "rarity": _rarity_rank(),
    }[sort_by]
    ordering = sort_column.desc() if sort_order == "desc" else sort_column.asc()
    stmt = stmt.order_by(ordering, MarketplaceListingDB.listed_at.desc(), MarketplaceListingDB.id)

    return await fetch_page(session, stmt, page, limit)


async def user_activity(
    session: AsyncSession,
    user_id: str,
    *,
    activity: ActivityType = "all",
    page: int = 1,
    limit: int = 20,
) -> tuple[list[MarketplaceListingDB], int]:
    """The caller's listings as seller, buyer, or either, newest first."""
    await expire_stale_listings(session)

    if activity == "selling":
        condition = MarketplaceListingDB.seller_id == user_id
    elif activity == "buying":
        condition = MarketplaceListingDB.buyer_id == user_id
    else:
        condition = or_(
            MarketplaceListingDB.seller_id == user_id,
            MarketplaceListingDB.buyer_id == user_id,
        )

    stmt = (
        select(MarketplaceListingDB)
        .where(condition)
        .order_by(MarketplaceListingDB.listed_at.desc(), MarketplaceListingDB.id)
    )
    return await fetch_page(session, stmt, page, limit)
