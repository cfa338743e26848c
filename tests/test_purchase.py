"""Tests for pack purchase and reveal."""

import random

import pytest
from sqlalchemy import delete, func, select

from jogata.models.card import Rarity
from jogata.models.db import (
    PackPurchaseCardDB,
    StyleCardDB,
    TransactionDB,
    TransactionStatus,
    TransactionType,
    UserProfileDB,
    UserStyleDB,
)
from jogata.models.failure import NoCardsAvailableError, NotFoundError, ValidationError
from jogata.services.purchase import open_pack, purchase_packs


async def count(session, model, *where) -> int:
    result = await session.execute(select(func.count()).select_from(model).where(*where))
    return result.scalar_one()


class TestPurchasePacks:
    async def test_grants_every_card_of_every_pack(
        self, session_factory, catalog, make_user
    ) -> None:
        user = await make_user()

        async with session_factory() as session:
            result = await purchase_packs(session, user.id, "STARTER", 2, rng=random.Random(3))
            await session.commit()

        assert len(result.cards) == 10
        assert [line.position for line in result.cards] == list(range(10))
        assert [line.pack_index for line in result.cards] == [0] * 5 + [1] * 5

        async with session_factory() as session:
            copies = await session.execute(
                select(func.sum(UserStyleDB.copies)).where(UserStyleDB.user_id == user.id)
            )
            assert copies.scalar_one() == 10
            assert await count(session, PackPurchaseCardDB) == 10

    async def test_records_completed_transaction(self, session_factory, catalog, make_user) -> None:
        user = await make_user()

        async with session_factory() as session:
            result = await purchase_packs(session, user.id, "PREMIUM", 3)
            await session.commit()

        transaction = result.transaction
        assert transaction.type is TransactionType.PACK_PURCHASE
        assert transaction.status is TransactionStatus.COMPLETED
        assert transaction.amount == 3 * 2499
        assert transaction.pack_type == "PREMIUM"
        assert transaction.pack_count == 3

    async def test_counts_packs_on_profile(self, session_factory, catalog, make_user) -> None:
        user = await make_user()

        async with session_factory() as session:
            await purchase_packs(session, user.id, "STARTER", 4)
            await session.commit()
        async with session_factory() as session:
            await purchase_packs(session, user.id, "GENESIS", 1)
            await session.commit()

        async with session_factory() as session:
            profile = (
                await session.execute(select(UserProfileDB).where(UserProfileDB.user_id == user.id))
            ).scalar_one()
            assert profile.packs_purchased == 5

    async def test_bumps_supply_counters(self, session_factory, catalog, make_user) -> None:
        user = await make_user()

        async with session_factory() as session:
            await purchase_packs(session, user.id, "GENESIS", 2)
            await session.commit()

        async with session_factory() as session:
            mythic = (
                await session.execute(select(StyleCardDB).where(StyleCardDB.name == "Game Changer"))
            ).scalar_one()
            assert mythic.current_supply == 2

    async def test_rarity_mix_follows_pack_type(self, session_factory, catalog, make_user) -> None:
        user = await make_user()

        async with session_factory() as session:
            result = await purchase_packs(session, user.id, "EVOLUTION", 1)
            await session.commit()

        assert [line.style_card.rarity for line in result.cards] == [
            Rarity.RARE,
            Rarity.RARE,
            Rarity.LEGENDARY,
        ]

    @pytest.mark.parametrize("quantity", [0, 11, -1])
    async def test_rejects_quantity_out_of_range(
        self, session, catalog, make_user, quantity
    ) -> None:
        user = await make_user()

        with pytest.raises(ValidationError) as exc_info:
            await purchase_packs(session, user.id, "STARTER", quantity)

        assert exc_info.value.code == "INVALID_QUANTITY"

    async def test_rejects_unknown_pack_type(self, session, catalog, make_user) -> None:
        user = await make_user()

        with pytest.raises(ValidationError) as exc_info:
            await purchase_packs(session, user.id, "starter", 1)

        assert exc_info.value.code == "INVALID_PACK_TYPE"

    async def test_rejects_price_mismatch(self, session, catalog, make_user) -> None:
        user = await make_user()

        with pytest.raises(ValidationError) as exc_info:
            await purchase_packs(session, user.id, "STARTER", 2, expected_total=999)

        assert exc_info.value.code == "PRICE_MISMATCH"
        assert await count(session, TransactionDB) == 0

    async def test_matching_expected_total_is_accepted(self, session, catalog, make_user) -> None:
        user = await make_user()

        result = await purchase_packs(session, user.id, "STARTER", 2, expected_total=1998)

        assert result.transaction.amount == 1998

    async def test_missing_rarity_writes_nothing(self, session, add_card, make_user) -> None:
        """Only commons exist, so a premium pack cannot be filled."""
        await add_card("Lonely Common")
        user = await make_user()

        with pytest.raises(NoCardsAvailableError) as exc_info:
            await purchase_packs(session, user.id, "PREMIUM", 1)

        assert exc_info.value.rarity is Rarity.RARE
        assert await count(session, TransactionDB) == 0
        assert await count(session, UserStyleDB) == 0

    async def test_missing_profile_is_not_found(self, session, catalog, make_user) -> None:
        user = await make_user()
        await session.execute(delete(UserProfileDB).where(UserProfileDB.user_id == user.id))

        with pytest.raises(NotFoundError) as exc_info:
            await purchase_packs(session, user.id, "STARTER", 1)

        assert exc_info.value.code == "USER_NOT_FOUND"
        assert await count(session, TransactionDB) == 0


class TestOpenPack:
    async def test_reveals_cards_in_draw_order(self, session_factory, catalog, make_user) -> None:
        user = await make_user()
        async with session_factory() as session:
            bought = await purchase_packs(session, user.id, "PREMIUM", 2)
            await session.commit()
        expected = [(line.position, line.style_card_id) for line in bought.cards]

        async with session_factory() as session:
            first = await open_pack(session, user.id, bought.transaction.id)
        async with session_factory() as session:
            second = await open_pack(session, user.id, bought.transaction.id)

        assert [(line.position, line.style_card_id) for line in first.cards] == expected
        assert [(line.position, line.style_card_id) for line in second.cards] == expected

    async def test_other_users_purchase_is_not_found(
        self, session_factory, catalog, make_user
    ) -> None:
        buyer = await make_user()
        snooper = await make_user()
        async with session_factory() as session:
            bought = await purchase_packs(session, buyer.id, "STARTER", 1)
            await session.commit()

        async with session_factory() as session:
            with pytest.raises(NotFoundError) as exc_info:
                await open_pack(session, snooper.id, bought.transaction.id)

        assert exc_info.value.code == "INVALID_TRANSACTION"

    async def test_unknown_transaction_is_not_found(self, session, make_user) -> None:
        user = await make_user()

        with pytest.raises(NotFoundError):
            await open_pack(session, user.id, "does-not-exist")
