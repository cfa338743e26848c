"""
Pack Allocator: rarity-bucketed card draws.

Turns a pack type into concrete catalog cards. Each rarity bucket draws
from the active cards of that rarity, either with replacement (duplicates
allowed) or without, as the pack type dictates.

INVARIANTS:
- A pack yields exactly `card_count` cards, grouped by rarity in the
  iteration order of the distribution.
- Zero-count buckets are skipped entirely (no pool lookup, no error).
- An empty pool for a non-zero bucket fails the draw; no other rarity is
  ever substituted.
- No card is drawn past its max_supply, counting draws already made in the
  same allocation.
"""

import logging
import random
from collections import Counter
from collections.abc import Awaitable, Callable, Sequence
from typing import Literal

from sqlalchemy.ext.asyncio import AsyncSession

from jogata.db.operations import get_active_cards_by_rarity
from jogata.models.card import Rarity
from jogata.models.db import StyleCardDB
from jogata.models.failure import NoCardsAvailableError, SupplyExhaustedError
from jogata.models.pack import DrawPolicy, PackType

logger = logging.getLogger(__name__)

SupplyCapPolicy = Literal["skip", "reject"]

PoolLoader = Callable[[Rarity], Awaitable[Sequence[StyleCardDB]]]

_system_random = random.SystemRandom()


def _has_supply(card: StyleCardDB, tally: Counter[str]) -> bool:
    if card.max_supply is None:
        return True
    return card.current_supply + tally[card.id] < card.max_supply


def _drawable(
    pool: Sequence[StyleCardDB],
    tally: Counter[str],
    rarity: Rarity,
    policy: SupplyCapPolicy,
) -> list[StyleCardDB]:
    """Filter a pool down to cards that can still be minted."""
    available = [card for card in pool if _has_supply(card, tally)]
    if policy == "reject" and len(available) < len(pool):
        capped = next(card for card in pool if not _has_supply(card, tally))
        raise SupplyExhaustedError(capped.name, capped.max_supply or 0)
    if not available:
        raise NoCardsAvailableError(rarity, "every card has reached its maximum supply")
    return available


def draw_bucket(
    pool: Sequence[StyleCardDB],
    rarity: Rarity,
    count: int,
    draw_policy: DrawPolicy,
    *,
    rng: random.Random,
    tally: Counter[str],
    supply_policy: SupplyCapPolicy = "skip",
) -> list[StyleCardDB]:
    """
    Draw `count` cards of one rarity from a pool.

    Args:
        pool: Active cards of `rarity`
        rarity: Bucket being drawn (for error reporting)
        count: Number of cards to draw
        draw_policy: Duplicate handling
        rng: Random source
        tally: Cards already drawn in this allocation; updated in place
        supply_policy: What to do when a card is at its cap

    Raises:
        NoCardsAvailableError: Pool is empty, exhausted, or too small for a
            draw without replacement
        SupplyExhaustedError: A card is capped and policy is "reject"
    """
    if not pool:
        raise NoCardsAvailableError(rarity)

    drawn: list[StyleCardDB] = []

    if draw_policy is DrawPolicy.WITHOUT_REPLACEMENT:
        available = _drawable(pool, tally, rarity, supply_policy)
        if len(available) < count:
            raise NoCardsAvailableError(
                rarity, f"need {count} distinct cards, only {len(available)} available"
            )
        drawn = rng.sample(available, count)
        tally.update(card.id for card in drawn)
        return drawn

    for _ in range(count):
        available = _drawable(pool, tally, rarity, supply_policy)
        card = available[rng.randrange(len(available))]
        tally[card.id] += 1
        drawn.append(card)

    return drawn


async def allocate_pack(
    load_pool: PoolLoader,
    pack_type: PackType,
    *,
    rng: random.Random | None = None,
    tally: Counter[str] | None = None,
    supply_policy: SupplyCapPolicy = "skip",
) -> list[StyleCardDB]:
    """
    Draw the cards for one pack.

    Args:
        load_pool: Returns the active cards of a rarity
        pack_type: Pack definition
        rng: Random source (defaults to the system CSPRNG)
        tally: Shared draw counter across packs of one purchase
        supply_policy: What to do when a card is at its cap

    Returns:
        Exactly `pack_type.card_count` cards, grouped by rarity.
    """
    rng = rng or _system_random
    tally = tally if tally is not None else Counter()
    cards: list[StyleCardDB] = []

    for rarity, count in pack_type.rarity_distribution.items():
        if count == 0:
            continue

        pool = await load_pool(rarity)
        cards.extend(
            draw_bucket(
                pool,
                rarity,
                count,
                pack_type.draw_policy,
                rng=rng,
                tally=tally,
                supply_policy=supply_policy,
            )
        )

    if len(cards) != pack_type.card_count:
        # Unreachable while PackType validates its distribution
        raise RuntimeError(
            f"Allocated {len(cards)} cards for '{pack_type.key}', expected {pack_type.card_count}"
        )

    logger.debug(
        "PACK_ALLOCATED",
        extra={"pack_type": pack_type.key, "cards": [card.name for card in cards]},
    )
    return cards


def session_pool_loader(session: AsyncSession) -> PoolLoader:
    """Pool loader backed by the catalog table, cached per allocation run."""
    cache: dict[Rarity, list[StyleCardDB]] = {}

    async def load(rarity: Rarity) -> list[StyleCardDB]:
        if rarity not in cache:
            cache[rarity] = await get_active_cards_by_rarity(session, rarity)
        return cache[rarity]

    return load
