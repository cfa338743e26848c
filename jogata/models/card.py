from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Rarity(str, Enum):
    """Style card rarity tier, ordered from most to least common."""

    COMMON = "COMMON"
    RARE = "RARE"
    LEGENDARY = "LEGENDARY"
    MYTHIC = "MYTHIC"

    @property
    def multiplier(self) -> float:
        """Display multiplier for the tier; activations never scale by it."""
        return RARITY_MULTIPLIERS[self]

    @property
    def order(self) -> int:
        return list(Rarity).index(self)


RARITY_MULTIPLIERS: dict[Rarity, float] = {
    Rarity.COMMON: 1.0,
    Rarity.RARE: 1.5,
    Rarity.LEGENDARY: 2.0,
    Rarity.MYTHIC: 3.0,
}


@dataclass
class StyleCardDefinition:
    """
    A catalog entry for a style card.

    Attributes:
        name: Unique display name ("Clinical Finisher")
        description: Flavor text
        rarity: Draw tier
        category: Play area (Attacking, Defensive, ...)
        base_points: Nominal point value
        bonus_multiplier: Card-specific multiplier on top of rarity
        max_supply: Mint cap, None for unlimited
        min_threshold: Minimum scorer confidence for an activation to count
    """

    name: str
    description: str
    rarity: Rarity
    category: str
    base_points: int = 0
    bonus_multiplier: float = 1.0
    max_supply: int | None = None
    min_threshold: float = 0.7
    attributes: dict[str, Any] = field(default_factory=dict)
    key_metrics: list[str] = field(default_factory=list)
    image_url: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StyleCardDefinition":
        return cls(
            name=data["name"],
            description=data["description"],
            rarity=Rarity(data["rarity"]),
            category=data["category"],
            base_points=data.get("base_points", 0),
            bonus_multiplier=data.get("bonus_multiplier", 1.0),
            max_supply=data.get("max_supply"),
            min_threshold=data.get("min_threshold", 0.7),
            attributes=data.get("attributes", {}),
            key_metrics=data.get("key_metrics", []),
            image_url=data.get("image_url"),
        )
