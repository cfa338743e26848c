"""
Style card catalog.

Loads the shipped style definitions and seeds them into the database.
Entries that omit scoring fields inherit their rarity's defaults.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from jogata.db.operations import upsert_style_card
from jogata.models.card import Rarity, StyleCardDefinition

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent.parent / "data"
CATALOG_PATH = DATA_DIR / "style_cards.json"


def parse_catalog(data: dict[str, Any]) -> list[StyleCardDefinition]:
    """
    Build definitions from the raw catalog document.

    Raises:
        ValueError: If two entries share a name or a rarity is unknown
    """
    defaults: dict[str, dict[str, Any]] = data.get("rarity_defaults", {})
    definitions: list[StyleCardDefinition] = []
    seen: set[str] = set()

    for entry in data["styles"]:
        if entry["name"] in seen:
            raise ValueError(f"Duplicate style card '{entry['name']}' in catalog")
        seen.add(entry["name"])

        merged = {**defaults.get(Rarity(entry["rarity"]).value, {}), **entry}
        definitions.append(StyleCardDefinition.from_dict(merged))

    return definitions


@lru_cache(maxsize=1)
def load_catalog(path: Path = CATALOG_PATH) -> tuple[StyleCardDefinition, ...]:
    """
    Load the catalog from package data.

    Cached; the file ships with the package and never changes at runtime.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    return tuple(parse_catalog(data))


async def seed_catalog(
    session: AsyncSession,
    definitions: tuple[StyleCardDefinition, ...] | None = None,
) -> int:
    """
    Upsert every catalog card by name.

    Returns:
        Number of cards written.
    """
    if definitions is None:
        definitions = load_catalog()

    for definition in definitions:
        await upsert_style_card(session, definition)

    logger.info("Seeded %d style cards", len(definitions))
    return len(definitions)
