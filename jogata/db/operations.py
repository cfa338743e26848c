"""
Database CRUD operations.

Provides async functions for creating, reading, updating, and deleting
users, catalog cards, ledger rows, transactions and players. Business flows
(purchases, transfers, propagation) live in `jogata.services` and build on
these.
"""

from typing import Any, TypeVar

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from jogata.models.card import Rarity, StyleCardDefinition
from jogata.models.db import (
    PlayerDB,
    StyleCardDB,
    TransactionDB,
    TransactionStatus,
    TransactionType,
    UserDB,
    UserProfileDB,
    UserStyleDB,
)

T = TypeVar("T")


async def fetch_page(
    session: AsyncSession, stmt: Select[tuple[T]], page: int, limit: int
) -> tuple[list[T], int]:
    """
    Run a select with offset pagination.

    Returns:
        Tuple of (rows on this page, total matching rows).
    """
    total = await session.scalar(select(func.count()).select_from(stmt.order_by(None).subquery()))
    result = await session.execute(stmt.offset((page - 1) * limit).limit(limit))
    return list(result.scalars().all()), int(total or 0)


# --- User Operations ---


async def get_user(session: AsyncSession, user_id: str) -> UserDB | None:
    """Get a user (with profile) by id. Returns None if not found."""
    return await session.get(UserDB, user_id)


async def get_user_by_login(session: AsyncSession, login: str) -> UserDB | None:
    """Get a user by email or username."""
    result = await session.execute(
        select(UserDB).where(or_(UserDB.email == login, UserDB.username == login))
    )
    return result.scalars().first()


async def find_conflicting_user(session: AsyncSession, email: str, username: str) -> UserDB | None:
    """Find an existing user holding either the email or the username."""
    result = await session.execute(
        select(UserDB).where(or_(UserDB.email == email, UserDB.username == username))
    )
    return result.scalars().first()


async def get_user_by_wallet(session: AsyncSession, wallet_address: str) -> UserDB | None:
    result = await session.execute(select(UserDB).where(UserDB.wallet_address == wallet_address))
    return result.scalar_one_or_none()


async def create_user(
    session: AsyncSession,
    email: str,
    username: str,
    password_hash: str,
    *,
    is_verified: bool = False,
) -> UserDB:
    """
    Create a user together with an empty profile.

    Raises IntegrityError if the email or username is taken.
    """
    user = UserDB(
        email=email,
        username=username,
        password_hash=password_hash,
        is_verified=is_verified,
        profile=UserProfileDB(display_name=username),
    )
    session.add(user)
    await session.flush()
    return user


async def get_profile(session: AsyncSession, user_id: str) -> UserProfileDB | None:
    result = await session.execute(select(UserProfileDB).where(UserProfileDB.user_id == user_id))
    return result.scalar_one_or_none()


# --- Style Card Operations ---


async def get_style_card(session: AsyncSession, card_id: str) -> StyleCardDB | None:
    return await session.get(StyleCardDB, card_id)


async def get_style_card_by_name(session: AsyncSession, name: str) -> StyleCardDB | None:
    result = await session.execute(select(StyleCardDB).where(StyleCardDB.name == name))
    return result.scalar_one_or_none()


async def list_style_cards(
    session: AsyncSession, rarity: Rarity | None = None
) -> list[StyleCardDB]:
    """All catalog cards, most common rarity first, then by name."""
    stmt = select(StyleCardDB)
    if rarity is not None:
        stmt = stmt.where(StyleCardDB.rarity == rarity)
    result = await session.execute(stmt)
    cards = list(result.scalars().all())
    return sorted(cards, key=lambda c: (c.rarity.order, c.name))


async def get_active_cards_by_rarity(session: AsyncSession, rarity: Rarity) -> list[StyleCardDB]:
    """The drawable pool for one rarity, ordered by name for stable draws."""
    result = await session.execute(
        select(StyleCardDB)
        .where(StyleCardDB.rarity == rarity, StyleCardDB.is_active.is_(True))
        .order_by(StyleCardDB.name)
    )
    return list(result.scalars().all())


async def upsert_style_card(session: AsyncSession, definition: StyleCardDefinition) -> StyleCardDB:
    """
    Insert or update a catalog card.

    Matches on name. Supply counters and activation aggregates of an
    existing card are left untouched.
    """
    existing = await get_style_card_by_name(session, definition.name)
    fields: dict[str, Any] = {
        "description": definition.description,
        "rarity": definition.rarity,
        "category": definition.category,
        "attributes": definition.attributes,
        "key_metrics": definition.key_metrics,
        "image_url": definition.image_url,
        "base_points": definition.base_points,
        "bonus_multiplier": definition.bonus_multiplier,
        "max_supply": definition.max_supply,
        "min_threshold": definition.min_threshold,
    }

    if existing:
        for key, value in fields.items():
            setattr(existing, key, value)
        await session.flush()
        return existing

    card = StyleCardDB(name=definition.name, **fields)
    session.add(card)
    await session.flush()
    return card


# --- Ownership Ledger Operations ---


async def get_user_style(
    session: AsyncSession, user_style_id: str, user_id: str | None = None
) -> UserStyleDB | None:
    """Get a ledger row by id, optionally requiring a specific owner."""
    stmt = select(UserStyleDB).where(UserStyleDB.id == user_style_id)
    if user_id is not None:
        stmt = stmt.where(UserStyleDB.user_id == user_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_user_style_for_card(
    session: AsyncSession, user_id: str, style_card_id: str
) -> UserStyleDB | None:
    result = await session.execute(
        select(UserStyleDB).where(
            UserStyleDB.user_id == user_id,
            UserStyleDB.style_card_id == style_card_id,
        )
    )
    return result.scalar_one_or_none()


async def list_user_styles(session: AsyncSession, user_id: str) -> list[UserStyleDB]:
    result = await session.execute(
        select(UserStyleDB)
        .where(UserStyleDB.user_id == user_id)
        .order_by(UserStyleDB.total_points.desc(), UserStyleDB.created_at)
    )
    return list(result.scalars().all())


async def grant_style(session: AsyncSession, user_id: str, card: StyleCardDB) -> UserStyleDB:
    """
    Give a user one copy of a card.

    Re-acquisition increments `copies` on the existing ledger row;
    otherwise a fresh row with zero points is created.
    """
    existing = await get_user_style_for_card(session, user_id, card.id)
    if existing:
        existing.copies += 1
        await session.flush()
        return existing

    user_style = UserStyleDB(user_id=user_id, style_card_id=card.id, style_card=card)
    session.add(user_style)
    await session.flush()
    return user_style


# --- Transaction Operations ---


async def create_transaction(
    session: AsyncSession,
    user_id: str,
    type_: TransactionType,
    amount: int,
    description: str,
    *,
    status: TransactionStatus = TransactionStatus.COMPLETED,
    pack_type: str | None = None,
    pack_count: int = 1,
) -> TransactionDB:
    transaction = TransactionDB(
        user_id=user_id,
        type=type_,
        amount=amount,
        description=description,
        status=status,
        pack_type=pack_type,
        pack_count=pack_count,
    )
    session.add(transaction)
    await session.flush()
    return transaction


async def list_transactions(
    session: AsyncSession,
    user_id: str,
    *,
    type_: TransactionType | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[TransactionDB], int]:
    """A user's transactions, newest first."""
    stmt = select(TransactionDB).where(TransactionDB.user_id == user_id)
    if type_ is not None:
        stmt = stmt.where(TransactionDB.type == type_)
    stmt = stmt.order_by(TransactionDB.created_at.desc(), TransactionDB.id)
    return await fetch_page(session, stmt, page, limit)


# --- Player Operations ---


async def get_player(session: AsyncSession, player_id: str) -> PlayerDB | None:
    return await session.get(PlayerDB, player_id)


async def upsert_player(
    session: AsyncSession,
    external_id: str,
    name: str,
    *,
    team: str = "",
    league: str = "",
    position: str | None = None,
) -> PlayerDB:
    """
    Insert or update a player keyed by the provider's id.

    Name, team and league follow the provider; position is only set on
    creation or when the provider supplies one.
    """
    result = await session.execute(select(PlayerDB).where(PlayerDB.external_id == external_id))
    player = result.scalar_one_or_none()

    if player:
        player.name = name
        player.team = team
        player.league = league
        if position:
            player.position = position
        await session.flush()
        return player

    player = PlayerDB(
        external_id=external_id,
        name=name,
        team=team,
        league=league,
        position=position or "Unknown",
    )
    session.add(player)
    await session.flush()
    return player
