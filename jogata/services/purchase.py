"""
Pack purchase and reveal.

A purchase draws every card for every pack first, then writes the payment
record, the per-card purchase lines, the ledger grants, supply counters and
the profile counter in the caller's unit of work. A failure anywhere raises
before the request session commits, so nothing is persisted.
"""

import logging
import random
from collections import Counter
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jogata.config import MAX_PACKS_PER_PURCHASE, MIN_PACKS_PER_PURCHASE, settings
from jogata.db.operations import create_transaction, get_profile, grant_style
from jogata.models.db import (
    PackPurchaseCardDB,
    StyleCardDB,
    TransactionDB,
    TransactionStatus,
    TransactionType,
)
from jogata.models.failure import NotFoundError, ValidationError
from jogata.models.pack import PackType, get_pack_type
from jogata.services.pack_allocator import allocate_pack, session_pool_loader

logger = logging.getLogger(__name__)


@dataclass
class PurchaseResult:
    """A completed purchase and the cards it granted, in draw order."""

    transaction: TransactionDB
    cards: list[PackPurchaseCardDB]


def resolve_pack_type(key: str) -> PackType:
    """
    Raises:
        ValidationError: Unknown pack type
    """
    pack_type = get_pack_type(key)
    if pack_type is None:
        raise ValidationError(f"Invalid pack type '{key}'", "INVALID_PACK_TYPE")
    return pack_type


def check_quantity(quantity: int) -> None:
    if not MIN_PACKS_PER_PURCHASE <= quantity <= MAX_PACKS_PER_PURCHASE:
        raise ValidationError(
            f"Quantity must be between {MIN_PACKS_PER_PURCHASE} and {MAX_PACKS_PER_PURCHASE}",
            "INVALID_QUANTITY",
        )


async def purchase_packs(
    session: AsyncSession,
    user_id: str,
    pack_key: str,
    quantity: int,
    *,
    expected_total: int | None = None,
    rng: random.Random | None = None,
) -> PurchaseResult:
    """
    Buy `quantity` packs of one type.

    Args:
        session: Request unit of work (committed by the caller)
        user_id: Buyer
        pack_key: Pack type key ("STARTER")
        quantity: Packs to buy (1-10)
        expected_total: Client-side total; must match when given
        rng: Random source for the draws

    Raises:
        ValidationError: Unknown pack type, bad quantity or price mismatch
        NotFoundError: The buyer has no profile
        ResourceExhaustedError: A rarity pool cannot satisfy a draw
    """
    pack_type = resolve_pack_type(pack_key)
    check_quantity(quantity)

    total = pack_type.total_price(quantity)
    if expected_total is not None and expected_total != total:
        raise ValidationError(
            f"Price mismatch: expected {expected_total}, actual {total}",
            "PRICE_MISMATCH",
        )

    profile = await get_profile(session, user_id)
    if profile is None:
        raise NotFoundError("User not found", "USER_NOT_FOUND")

    # Draw everything before writing anything
    load_pool = session_pool_loader(session)
    tally: Counter[str] = Counter()
    packs: list[list[StyleCardDB]] = []
    for _ in range(quantity):
        packs.append(
            await allocate_pack(
                load_pool,
                pack_type,
                rng=rng,
                tally=tally,
                supply_policy=settings.supply_cap_policy,
            )
        )

    transaction = await create_transaction(
        session,
        user_id,
        TransactionType.PACK_PURCHASE,
        total,
        f"{quantity}x {pack_type.name}",
        status=TransactionStatus.COMPLETED,
        pack_type=pack_type.key,
        pack_count=quantity,
    )

    lines: list[PackPurchaseCardDB] = []
    position = 0
    for pack_index, cards in enumerate(packs):
        for card in cards:
            user_style = await grant_style(session, user_id, card)
            card.current_supply += 1
            line = PackPurchaseCardDB(
                transaction_id=transaction.id,
                style_card_id=card.id,
                style_card=card,
                user_style_id=user_style.id,
                pack_index=pack_index,
                position=position,
            )
            session.add(line)
            lines.append(line)
            position += 1

    profile.packs_purchased += quantity

    await session.flush()

    logger.info(
        "Pack purchase completed: user %s bought %dx %s",
        user_id,
        quantity,
        pack_type.key,
    )
    return PurchaseResult(transaction=transaction, cards=lines)


async def open_pack(session: AsyncSession, user_id: str, transaction_id: str) -> PurchaseResult:
    """
    Reveal the cards of one of the caller's completed pack purchases.

    Deterministic: the same transaction always yields the same ordered cards.

    Raises:
        NotFoundError: Not the caller's completed pack purchase
    """
    result = await session.execute(
        select(TransactionDB).where(
            TransactionDB.id == transaction_id,
            TransactionDB.user_id == user_id,
            TransactionDB.type == TransactionType.PACK_PURCHASE,
            TransactionDB.status == TransactionStatus.COMPLETED,
        )
    )
    transaction = result.scalar_one_or_none()
    if transaction is None:
        raise NotFoundError("Transaction not found or invalid", "INVALID_TRANSACTION")

    lines = await session.execute(
        select(PackPurchaseCardDB)
        .where(PackPurchaseCardDB.transaction_id == transaction.id)
        .order_by(PackPurchaseCardDB.position)
    )
    return PurchaseResult(transaction=transaction, cards=list(lines.scalars().all()))
