"""Tests for marketplace listings and sales."""

from datetime import timedelta

import pytest
from sqlalchemy import select, update

from jogata.config import settings
from jogata.models.db import (
    ListingStatus,
    MarketplaceListingDB,
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
from jogata.services.marketplace import (
    browse_listings,
    cancel_listing,
    create_listing,
    purchase_listing,
    seller_proceeds,
    user_activity,
)


@pytest.fixture
def list_card(session_factory):
    async def create(seller_id: str, user_style_id: str, price: int = 1000) -> str:
        async with session_factory() as session:
            listing = await create_listing(session, seller_id, user_style_id, price)
            await session.commit()
            return listing.id

    return create


@pytest.fixture
def buy(session_factory):
    """Run a purchase as one request would: commit on success, roll back on error."""

    async def purchase(buyer_id: str, listing_id: str):
        async with session_factory() as session:
            try:
                result = await purchase_listing(session, buyer_id, listing_id)
                await session.commit()
                return result
            except Exception:
                await session.rollback()
                raise

    return purchase


async def listing_status(session_factory, listing_id: str) -> ListingStatus:
    async with session_factory() as session:
        return (await session.get(MarketplaceListingDB, listing_id)).status


async def expire(session_factory, listing_id: str) -> None:
    async with session_factory() as session:
        await session.execute(
            update(MarketplaceListingDB)
            .where(MarketplaceListingDB.id == listing_id)
            .values(expires_at=utcnow() - timedelta(minutes=1))
        )
        await session.commit()


class TestSellerProceeds:
    def test_default_fee_is_five_percent(self) -> None:
        assert seller_proceeds(1000) == 950

    def test_proceeds_are_floored(self) -> None:
        assert seller_proceeds(999) == 949

    def test_custom_fee(self) -> None:
        assert seller_proceeds(1000, fee_bps=250) == 975
        assert seller_proceeds(1000, fee_bps=0) == 1000


class TestCreateListing:
    async def test_creates_active_listing_with_expiry(
        self, session, catalog, make_user, give_card
    ) -> None:
        seller = await make_user()
        row = await give_card(seller.id, "Speedster")

        listing = await create_listing(session, seller.id, row, 1500)

        assert listing.status is ListingStatus.ACTIVE
        assert listing.style_card_id == catalog["Speedster"]
        assert listing.price == 1500
        assert listing.expires_at - listing.listed_at == timedelta(
            days=settings.listing_expiry_days
        )

    async def test_price_below_minimum_is_rejected(
        self, session, catalog, make_user, give_card
    ) -> None:
        seller = await make_user()
        row = await give_card(seller.id, "Speedster")

        with pytest.raises(ValidationError) as exc_info:
            await create_listing(session, seller.id, row, settings.min_listing_price - 1)

        assert exc_info.value.code == "PRICE_TOO_LOW"

    async def test_cannot_list_someone_elses_card(
        self, session, catalog, make_user, give_card
    ) -> None:
        owner = await make_user()
        thief = await make_user()
        row = await give_card(owner.id, "Speedster")

        with pytest.raises(NotFoundError) as exc_info:
            await create_listing(session, thief.id, row, 1000)

        assert exc_info.value.code == "STYLE_NOT_OWNED"

    async def test_second_active_listing_conflicts(
        self, catalog, make_user, give_card, list_card
    ) -> None:
        seller = await make_user()
        row = await give_card(seller.id, "Speedster", copies=2)
        await list_card(seller.id, row)

        with pytest.raises(ConflictError) as exc_info:
            await list_card(seller.id, row, 2000)

        assert exc_info.value.code == "ALREADY_LISTED"

    async def test_relisting_after_cancel_is_allowed(
        self, session_factory, catalog, make_user, give_card, list_card
    ) -> None:
        seller = await make_user()
        row = await give_card(seller.id, "Speedster")
        first = await list_card(seller.id, row)
        async with session_factory() as session:
            await cancel_listing(session, seller.id, first)
            await session.commit()

        second = await list_card(seller.id, row)

        assert second != first


class TestPurchaseListing:
    async def test_sale_moves_money_and_card(
        self, session_factory, catalog, make_user, give_card, list_card, buy
    ) -> None:
        seller = await make_user()
        buyer = await make_user()
        row = await give_card(seller.id, "Speedster")
        listing_id = await list_card(seller.id, row, 1000)

        sale = await buy(buyer.id, listing_id)

        assert sale.listing.status is ListingStatus.SOLD
        assert sale.listing.buyer_id == buyer.id
        assert sale.listing.sold_at is not None
        assert sale.buyer_transaction.type is TransactionType.MARKETPLACE_BUY
        assert sale.buyer_transaction.amount == 1000
        assert sale.seller_transaction.type is TransactionType.MARKETPLACE_SELL
        assert sale.seller_transaction.amount == 950
        assert sale.seller_transaction.user_id == seller.id

        async with session_factory() as session:
            assert await session.get(UserStyleDB, row) is None
            bought = await session.get(UserStyleDB, sale.user_style.id)
            assert bought.user_id == buyer.id
            assert bought.copies == 1

    async def test_seller_keeps_remaining_copies(
        self, session_factory, catalog, make_user, give_card, list_card, buy
    ) -> None:
        seller = await make_user()
        buyer = await make_user()
        row = await give_card(seller.id, "Speedster", copies=3)
        listing_id = await list_card(seller.id, row)

        await buy(buyer.id, listing_id)

        async with session_factory() as session:
            assert (await session.get(UserStyleDB, row)).copies == 2

    async def test_buyer_copy_joins_existing_row(
        self, session_factory, catalog, make_user, give_card, list_card, buy
    ) -> None:
        seller = await make_user()
        buyer = await make_user()
        seller_row = await give_card(seller.id, "Speedster")
        buyer_row = await give_card(buyer.id, "Speedster")
        listing_id = await list_card(seller.id, seller_row)

        sale = await buy(buyer.id, listing_id)

        assert sale.user_style.id == buyer_row
        async with session_factory() as session:
            assert (await session.get(UserStyleDB, buyer_row)).copies == 2

    async def test_points_reset_for_new_owner(
        self, session_factory, catalog, make_user, give_card, list_card, buy
    ) -> None:
        seller = await make_user()
        buyer = await make_user()
        row = await give_card(seller.id, "Speedster")
        await _give_points(session_factory, row, 40)
        listing_id = await list_card(seller.id, row)

        sale = await buy(buyer.id, listing_id)

        assert sale.user_style.total_points == 0
        assert sale.user_style.weekly_points == 0

    async def test_points_carry_over_when_configured(
        self,
        session_factory,
        catalog,
        make_user,
        give_card,
        list_card,
        buy,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(settings, "ownership_transfer_policy", "carry_over")
        seller = await make_user()
        buyer = await make_user()
        row = await give_card(seller.id, "Speedster")
        await _give_points(session_factory, row, 40)
        listing_id = await list_card(seller.id, row)

        sale = await buy(buyer.id, listing_id)

        assert sale.user_style.total_points == 40
        assert sale.user_style.weekly_points == 40
        assert sale.user_style.activation_count == 1

    async def test_unknown_listing(self, catalog, make_user, buy) -> None:
        buyer = await make_user()

        with pytest.raises(NotFoundError) as exc_info:
            await buy(buyer.id, "missing")

        assert exc_info.value.code == "LISTING_NOT_FOUND"

    async def test_self_purchase_is_rejected(
        self, catalog, make_user, give_card, list_card, buy
    ) -> None:
        seller = await make_user()
        row = await give_card(seller.id, "Speedster")
        listing_id = await list_card(seller.id, row)

        with pytest.raises(ValidationError) as exc_info:
            await buy(seller.id, listing_id)

        assert exc_info.value.code == "SELF_PURCHASE"

    async def test_expired_listing_is_persisted_as_expired(
        self, session_factory, catalog, make_user, give_card, list_card, buy
    ) -> None:
        seller = await make_user()
        buyer = await make_user()
        row = await give_card(seller.id, "Speedster")
        listing_id = await list_card(seller.id, row)
        await expire(session_factory, listing_id)

        with pytest.raises(ListingExpiredError) as exc_info:
            await buy(buyer.id, listing_id)

        assert exc_info.value.code == "LISTING_EXPIRED"
        assert await listing_status(session_factory, listing_id) is ListingStatus.EXPIRED

    async def test_self_purchase_checked_before_expiry(
        self, session_factory, catalog, make_user, give_card, list_card, buy
    ) -> None:
        seller = await make_user()
        row = await give_card(seller.id, "Speedster")
        listing_id = await list_card(seller.id, row)
        await expire(session_factory, listing_id)

        with pytest.raises(ValidationError) as exc_info:
            await buy(seller.id, listing_id)

        assert exc_info.value.code == "SELF_PURCHASE"
        assert await listing_status(session_factory, listing_id) is ListingStatus.EXPIRED

    async def test_sold_listing_cannot_be_bought_again(
        self, catalog, make_user, give_card, list_card, buy
    ) -> None:
        seller = await make_user()
        first = await make_user()
        second = await make_user()
        row = await give_card(seller.id, "Speedster")
        listing_id = await list_card(seller.id, row)
        await buy(first.id, listing_id)

        with pytest.raises(ConflictError) as exc_info:
            await buy(second.id, listing_id)

        assert exc_info.value.code == "LISTING_INACTIVE"

    async def test_seller_who_lost_the_card(
        self, session_factory, catalog, make_user, give_card, list_card, buy
    ) -> None:
        seller = await make_user()
        buyer = await make_user()
        row = await give_card(seller.id, "Speedster")
        listing_id = await list_card(seller.id, row)
        async with session_factory() as session:
            await session.delete(await session.get(UserStyleDB, row))
            await session.commit()

        with pytest.raises(ConflictError) as exc_info:
            await buy(buyer.id, listing_id)

        assert exc_info.value.code == "SELLER_NO_LONGER_OWNS"
        assert await listing_status(session_factory, listing_id) is ListingStatus.ACTIVE

    async def test_failed_purchase_writes_no_transactions(
        self, session_factory, catalog, make_user, give_card, list_card, buy
    ) -> None:
        seller = await make_user()
        row = await give_card(seller.id, "Speedster")
        listing_id = await list_card(seller.id, row)

        with pytest.raises(ValidationError):
            await buy(seller.id, listing_id)

        async with session_factory() as session:
            rows = (await session.execute(select(TransactionDB))).scalars().all()
        assert rows == []


class TestCancelListing:
    async def test_cancels_own_listing(
        self, session_factory, catalog, make_user, give_card, list_card
    ) -> None:
        seller = await make_user()
        row = await give_card(seller.id, "Speedster")
        listing_id = await list_card(seller.id, row)

        async with session_factory() as session:
            listing = await cancel_listing(session, seller.id, listing_id)
            await session.commit()

        assert listing.status is ListingStatus.CANCELLED
        assert await listing_status(session_factory, listing_id) is ListingStatus.CANCELLED

    async def test_cannot_cancel_others_listing(
        self, session, catalog, make_user, give_card, list_card
    ) -> None:
        seller = await make_user()
        other = await make_user()
        row = await give_card(seller.id, "Speedster")
        listing_id = await list_card(seller.id, row)

        with pytest.raises(NotFoundError):
            await cancel_listing(session, other.id, listing_id)

    async def test_cannot_cancel_terminal_listing(
        self, session_factory, catalog, make_user, give_card, list_card, buy
    ) -> None:
        seller = await make_user()
        buyer = await make_user()
        row = await give_card(seller.id, "Speedster")
        listing_id = await list_card(seller.id, row)
        await buy(buyer.id, listing_id)

        async with session_factory() as session:
            with pytest.raises(NotFoundError):
                await cancel_listing(session, seller.id, listing_id)


class TestBrowse:
    async def test_filters_and_sorts(
        self, session_factory, catalog, make_user, give_card, list_card
    ) -> None:
        seller = await make_user()
        cheap = await list_card(seller.id, await give_card(seller.id, "Speedster"), 500)
        pricey = await list_card(seller.id, await give_card(seller.id, "Regista"), 5000)
        mid = await list_card(seller.id, await give_card(seller.id, "Playmaker"), 1500)

        async with session_factory() as session:
            by_price, total = await browse_listings(session, sort_by="price", sort_order="desc")
            ranged, _ = await browse_listings(session, min_price=600, max_price=2000)
            by_rarity, _ = await browse_listings(session, sort_by="rarity", sort_order="desc")

        assert total == 3
        assert [listing.id for listing in by_price] == [pricey, mid, cheap]
        assert [listing.id for listing in ranged] == [mid]
        assert by_rarity[0].id == pricey

    async def test_expired_listings_are_hidden(
        self, session_factory, catalog, make_user, give_card, list_card
    ) -> None:
        seller = await make_user()
        listing_id = await list_card(seller.id, await give_card(seller.id, "Speedster"))
        await expire(session_factory, listing_id)

        async with session_factory() as session:
            listings, total = await browse_listings(session)
            await session.commit()

        assert (listings, total) == ([], 0)
        assert await listing_status(session_factory, listing_id) is ListingStatus.EXPIRED

    async def test_activity_by_side(
        self, session_factory, catalog, make_user, give_card, list_card, buy
    ) -> None:
        seller = await make_user()
        buyer = await make_user()
        sold = await list_card(seller.id, await give_card(seller.id, "Speedster"))
        await buy(buyer.id, sold)
        open_listing = await list_card(buyer.id, await give_card(buyer.id, "Regista"))

        async with session_factory() as session:
            selling, _ = await user_activity(session, buyer.id, activity="selling")
            buying, _ = await user_activity(session, buyer.id, activity="buying")
            everything, total = await user_activity(session, buyer.id)

        assert [listing.id for listing in selling] == [open_listing]
        assert [listing.id for listing in buying] == [sold]
        assert total == 2
        assert {listing.id for listing in everything} == {sold, open_listing}


async def _give_points(session_factory, user_style_id: str, points: int) -> None:
    async with session_factory() as session:
        await session.execute(
            update(UserStyleDB)
            .where(UserStyleDB.id == user_style_id)
            .values(total_points=points, weekly_points=points, activation_count=1)
        )
        await session.commit()
