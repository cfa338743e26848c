"""
Pack type definitions.

A pack type fixes its price, card count and how many cards of each rarity
it yields. The distribution must account for every card in the pack.
"""

from dataclasses import dataclass, field
from enum import Enum

from jogata.models.card import Rarity


class DrawPolicy(str, Enum):
    """Whether a pack may contain the same card more than once."""

    WITH_REPLACEMENT = "WITH_REPLACEMENT"
    WITHOUT_REPLACEMENT = "WITHOUT_REPLACEMENT"


@dataclass(frozen=True)
class PackType:
    """
    A purchasable pack.

    Attributes:
        key: Stable identifier used in requests ("STARTER")
        name: Display name
        price: Unit price in cents
        card_count: Cards per pack
        rarity_distribution: Cards drawn per rarity, iterated in order
        draw_policy: Duplicate handling within one pack
    """

    key: str
    name: str
    price: int
    card_count: int
    rarity_distribution: dict[Rarity, int] = field(default_factory=dict)
    draw_policy: DrawPolicy = DrawPolicy.WITH_REPLACEMENT

    def __post_init__(self) -> None:
        total = sum(self.rarity_distribution.values())
        if total != self.card_count:
            raise ValueError(
                f"Pack '{self.key}' distributes {total} cards but holds {self.card_count}"
            )
        if any(count < 0 for count in self.rarity_distribution.values()):
            raise ValueError(f"Pack '{self.key}' has a negative rarity count")

    def total_price(self, quantity: int) -> int:
        """Total cost in cents for `quantity` packs."""
        return self.price * quantity


PACK_TYPES: dict[str, PackType] = {
    pack.key: pack
    for pack in (
        PackType(
            key="STARTER",
            name="Starter Pack",
            price=999,
            card_count=5,
            rarity_distribution={
                Rarity.COMMON: 5,
                Rarity.RARE: 0,
                Rarity.LEGENDARY: 0,
                Rarity.MYTHIC: 0,
            },
        ),
        PackType(
            key="PREMIUM",
            name="Premium Pack",
            price=2499,
            card_count=5,
            rarity_distribution={
                Rarity.COMMON: 2,
                Rarity.RARE: 3,
                Rarity.LEGENDARY: 0,
                Rarity.MYTHIC: 0,
            },
        ),
        PackType(
            key="EVOLUTION",
            name="Evolution Pack",
            price=4999,
            card_count=3,
            rarity_distribution={
                Rarity.COMMON: 0,
                Rarity.RARE: 2,
                Rarity.LEGENDARY: 1,
                Rarity.MYTHIC: 0,
            },
        ),
        PackType(
            key="GENESIS",
            name="Genesis Pack",
            price=9999,
            card_count=2,
            rarity_distribution={
                Rarity.COMMON: 0,
                Rarity.RARE: 0,
                Rarity.LEGENDARY: 1,
                Rarity.MYTHIC: 1,
            },
        ),
    )
}


def get_pack_type(key: str) -> PackType | None:
    """Look up a pack type by key (case-sensitive)."""
    return PACK_TYPES.get(key)
