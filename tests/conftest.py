from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import timedelta
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from jogata.config import settings
from jogata.db.database import get_session
from jogata.db.operations import get_style_card_by_name, grant_style
from jogata.main import app
from jogata.models.card import Rarity
from jogata.models.db import (
    Base,
    PlayerDB,
    StyleCardDB,
    TournamentDB,
    TournamentStatus,
    UserDB,
    utcnow,
)
from jogata.services.auth_service import create_access_token, register
from jogata.services.catalog import seed_catalog
from jogata.services.rate_limits import reset_rate_limiter

PASSWORD = "Secret123"


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch):
    """Fresh rate limit windows and cheap hashing for every test."""
    reset_rate_limiter()
    monkeypatch.setattr(settings, "bcrypt_rounds", 4)
    monkeypatch.setattr(settings, "internal_api_key", "")
    monkeypatch.setattr(settings, "supply_cap_policy", "skip")
    monkeypatch.setattr(settings, "ownership_transfer_policy", "reset")
    monkeypatch.setattr(settings, "debug", False)
    yield
    reset_rate_limiter()


@pytest.fixture
async def async_engine(tmp_path):
    """File-backed SQLite so the test and the app use separate connections."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'jogata.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for tests."""
    async with session_factory() as session:
        yield session


def _client_for(session_factory, **transport_options):
    async def override_get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    transport = ASGITransport(app=app, **transport_options)
    return AsyncClient(transport=transport, base_url="http://test")


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async test client with overridden database session."""
    async with _client_for(session_factory) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
async def lenient_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Client that returns 500 responses instead of re-raising server errors."""
    async with _client_for(session_factory, raise_app_exceptions=False) as client:
        yield client
    app.dependency_overrides.clear()


# =============================================================================
# DATA HELPERS
# =============================================================================


@pytest.fixture
async def catalog(session_factory) -> dict[str, str]:
    """Seed the shipped catalog; maps card name to id."""
    async with session_factory() as session:
        await seed_catalog(session)
        await session.commit()
        rows = (await session.execute(select(StyleCardDB.name, StyleCardDB.id))).all()
    return {name: card_id for name, card_id in rows}


@pytest.fixture
def make_user(session_factory) -> Callable[..., Awaitable[UserDB]]:
    """Register a committed user; usernames default to user1, user2, ..."""
    counter = {"n": 0}

    async def factory(username: str | None = None) -> UserDB:
        counter["n"] += 1
        username = username or f"user{counter['n']}"
        async with session_factory() as session:
            user = await register(session, f"{username}@example.com", username, PASSWORD)
            await session.commit()
        return user

    return factory


@pytest.fixture
def auth_headers() -> Callable[[UserDB], dict[str, str]]:
    def headers(user: UserDB) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return headers


@pytest.fixture
def give_card(session_factory) -> Callable[..., Awaitable[str]]:
    """Grant copies of a catalog card; returns the ledger row id."""

    async def grant(user_id: str, card_name: str, copies: int = 1) -> str:
        async with session_factory() as session:
            card = await get_style_card_by_name(session, card_name)
            assert card is not None, card_name
            for _ in range(copies):
                user_style = await grant_style(session, user_id, card)
            await session.commit()
            return user_style.id

    return grant


@pytest.fixture
def add_player(session_factory) -> Callable[..., Awaitable[str]]:
    async def create(name: str = "Test Striker", external_id: str = "p-1") -> str:
        async with session_factory() as session:
            player = PlayerDB(
                name=name, team="Test FC", league="Test League", external_id=external_id
            )
            session.add(player)
            await session.commit()
            return player.id

    return create


@pytest.fixture
def add_card(session_factory) -> Callable[..., Awaitable[str]]:
    async def create(name: str, rarity: Rarity = Rarity.COMMON, **fields: Any) -> str:
        async with session_factory() as session:
            card = StyleCardDB(name=name, rarity=rarity, category="Test", **fields)
            session.add(card)
            await session.commit()
            return card.id

    return create


@pytest.fixture
def add_tournament(session_factory) -> Callable[..., Awaitable[str]]:
    async def create(
        *,
        status: TournamentStatus = TournamentStatus.UPCOMING,
        entry_fee: int = 500,
        max_entries: int | None = None,
        total_prize: int = 10_000,
        prize_structure: dict[str, float] | None = None,
        starts_in: timedelta = timedelta(days=1),
        length: timedelta = timedelta(days=7),
    ) -> str:
        now = utcnow()
        async with session_factory() as session:
            tournament = TournamentDB(
                name="Weekend Cup",
                entry_fee=entry_fee,
                max_entries=max_entries,
                start_date=now + starts_in,
                end_date=now + starts_in + length,
                total_prize=total_prize,
                prize_structure={"1": 50, "2": 30} if prize_structure is None else prize_structure,
                status=status,
            )
            session.add(tournament)
            await session.commit()
            return tournament.id

    return create
