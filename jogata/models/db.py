"""
SQLAlchemy ORM models for persistent storage.

Timestamps are timezone-aware UTC and are set client-side so they are
available on the instance right after a flush.
"""

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from jogata.models.card import Rarity


def utcnow() -> datetime:
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def new_id() -> str:
    return str(uuid.uuid4())


class TournamentStatus(str, Enum):
    UPCOMING = "UPCOMING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ListingStatus(str, Enum):
    ACTIVE = "ACTIVE"
    SOLD = "SOLD"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"

    @property
    def is_terminal(self) -> bool:
        return self is not ListingStatus.ACTIVE


class TransactionType(str, Enum):
    PACK_PURCHASE = "PACK_PURCHASE"
    PACK_PREORDER = "PACK_PREORDER"
    MARKETPLACE_BUY = "MARKETPLACE_BUY"
    MARKETPLACE_SELL = "MARKETPLACE_SELL"
    TOURNAMENT_ENTRY = "TOURNAMENT_ENTRY"
    TOURNAMENT_PRIZE = "TOURNAMENT_PRIZE"
    STYLE_FUSION = "STYLE_FUSION"
    REFUND = "REFUND"
    WITHDRAWAL = "WITHDRAWAL"


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class UserDB(Base):
    """A registered account."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    wallet_address: Mapped[str | None] = mapped_column(String(42), unique=True, nullable=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    profile: Mapped["UserProfileDB"] = relationship(
        back_populates="user", cascade="all, delete-orphan", uselist=False, lazy="selectin"
    )
    owned_styles: Mapped[list["UserStyleDB"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<UserDB(id={self.id}, username={self.username})>"


class UserProfileDB(Base):
    """
    Public profile and point aggregates for a user.

    total_points is the sum of every activation credited to the user;
    packs_purchased counts packs, not purchase transactions.
    """

    __tablename__ = "user_profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True
    )
    display_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    avatar: Mapped[str | None] = mapped_column(Text, nullable=True)
    bio: Mapped[str | None] = mapped_column(String(500), nullable=True)
    country: Mapped[str | None] = mapped_column(String(2), nullable=True)
    total_points: Mapped[int] = mapped_column(Integer, default=0)
    weekly_rank: Mapped[int | None] = mapped_column(Integer, nullable=True)
    overall_rank: Mapped[int | None] = mapped_column(Integer, nullable=True)
    packs_purchased: Mapped[int] = mapped_column(Integer, default=0)
    is_founder: Mapped[bool] = mapped_column(Boolean, default=False)
    founder_tier: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    user: Mapped["UserDB"] = relationship(back_populates="profile")


class StyleCardDB(Base):
    """
    A catalog style card.

    Immutable after seeding except for current_supply and the
    activation aggregates.
    """

    __tablename__ = "style_cards"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100), unique=True)
    description: Mapped[str] = mapped_column(Text, default="")
    rarity: Mapped[Rarity] = mapped_column(SAEnum(Rarity, name="style_rarity"), index=True)
    category: Mapped[str] = mapped_column(String(50))
    attributes: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    key_metrics: Mapped[list[str]] = mapped_column(JSON, default=list)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    base_points: Mapped[int] = mapped_column(Integer, default=0)
    bonus_multiplier: Mapped[float] = mapped_column(Float, default=1.0)
    max_supply: Mapped[int | None] = mapped_column(Integer, nullable=True)
    current_supply: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    min_threshold: Mapped[float] = mapped_column(Float, default=0.7)
    total_points: Mapped[int] = mapped_column(Integer, default=0)
    activation_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    @property
    def remaining_supply(self) -> int | None:
        if self.max_supply is None:
            return None
        return max(0, self.max_supply - self.current_supply)

    def __repr__(self) -> str:
        return f"<StyleCardDB(name={self.name}, rarity={self.rarity.value})>"


class UserStyleDB(Base):
    """
    Ownership ledger entry: one row per (user, style card).

    Re-acquiring a card increments `copies`; points accrue per row.
    """

    __tablename__ = "user_styles"
    __table_args__ = (UniqueConstraint("user_id", "style_card_id", name="uq_user_style"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    style_card_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("style_cards.id", ondelete="CASCADE"), index=True
    )
    token_id: Mapped[str | None] = mapped_column(String(100), unique=True, nullable=True)
    copies: Mapped[int] = mapped_column(Integer, default=1)
    total_points: Mapped[int] = mapped_column(Integer, default=0)
    weekly_points: Mapped[int] = mapped_column(Integer, default=0)
    activation_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    user: Mapped["UserDB"] = relationship(back_populates="owned_styles")
    style_card: Mapped["StyleCardDB"] = relationship(lazy="selectin")

    def __repr__(self) -> str:
        return (
            f"<UserStyleDB(user={self.user_id}, card={self.style_card_id}, "
            f"copies={self.copies})>"
        )


class TransactionDB(Base):
    """A payment or payout record. Immutable once COMPLETED."""

    __tablename__ = "transactions"
    __table_args__ = (Index("idx_transactions_user_type", "user_id", "type"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"))
    type: Mapped[TransactionType] = mapped_column(SAEnum(TransactionType, name="transaction_type"))
    amount: Mapped[int] = mapped_column(Integer)
    description: Mapped[str] = mapped_column(Text)
    pack_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    pack_count: Mapped[int] = mapped_column(Integer, default=1)
    status: Mapped[TransactionStatus] = mapped_column(
        SAEnum(TransactionStatus, name="transaction_status"), default=TransactionStatus.PENDING
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    granted_cards: Mapped[list["PackPurchaseCardDB"]] = relationship(
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="PackPurchaseCardDB.position",
    )


class PackPurchaseCardDB(Base):
    """One card granted by a pack purchase, in draw order."""

    __tablename__ = "pack_purchase_cards"
    __table_args__ = (
        UniqueConstraint("transaction_id", "position", name="uq_purchase_card_position"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    transaction_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("transactions.id", ondelete="CASCADE"), index=True
    )
    style_card_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("style_cards.id", ondelete="CASCADE")
    )
    user_style_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("user_styles.id", ondelete="SET NULL"), nullable=True
    )
    pack_index: Mapped[int] = mapped_column(Integer)
    position: Mapped[int] = mapped_column(Integer)

    transaction: Mapped["TransactionDB"] = relationship(back_populates="granted_cards")
    style_card: Mapped["StyleCardDB"] = relationship(lazy="selectin")


class PlayerDB(Base):
    """A real-world footballer."""

    __tablename__ = "players"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255))
    position: Mapped[str] = mapped_column(String(20), default="Unknown")
    team: Mapped[str] = mapped_column(String(255), default="")
    league: Mapped[str] = mapped_column(String(255), default="")
    country: Mapped[str] = mapped_column(String(100), default="")
    external_id: Mapped[str | None] = mapped_column(String(50), unique=True, nullable=True)
    appearances: Mapped[int] = mapped_column(Integer, default=0)
    goals: Mapped[int] = mapped_column(Integer, default=0)
    assists: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )


class PlayerPerformanceDB(Base):
    """A scored statline for one player in one fixture."""

    __tablename__ = "player_performances"
    __table_args__ = (
        UniqueConstraint("player_id", "fixture_id", name="uq_player_fixture"),
        Index("idx_player_performances_date", "match_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    player_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("players.id", ondelete="CASCADE"), index=True
    )
    fixture_id: Mapped[str] = mapped_column(String(50))
    match_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    opponent: Mapped[str] = mapped_column(String(255), default="")
    is_home: Mapped[bool] = mapped_column(Boolean, default=True)
    stats: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    style_scores: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class StyleActivationDB(Base):
    """A scoring event tying a performance to a style card."""

    __tablename__ = "style_activations"
    __table_args__ = (
        UniqueConstraint(
            "style_card_id", "gameweek", "season", "rank", name="uq_activation_card_week_rank"
        ),
        Index("idx_style_activations_gameweek", "gameweek", "season"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    style_card_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("style_cards.id", ondelete="CASCADE")
    )
    player_id: Mapped[str] = mapped_column(String(36), ForeignKey("players.id", ondelete="CASCADE"))
    gameweek: Mapped[int] = mapped_column(Integer)
    season: Mapped[str] = mapped_column(String(9))
    rank: Mapped[int] = mapped_column(Integer)
    match_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    points: Mapped[int] = mapped_column(Integer)
    bonus_points: Mapped[int] = mapped_column(Integer, default=0)
    confidence: Mapped[float] = mapped_column(Float)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    style_card: Mapped["StyleCardDB"] = relationship(lazy="selectin")
    player: Mapped["PlayerDB"] = relationship(lazy="selectin")


class TournamentDB(Base):
    __tablename__ = "tournaments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    entry_fee: Mapped[int] = mapped_column(Integer)
    max_entries: Mapped[int | None] = mapped_column(Integer, nullable=True)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    total_prize: Mapped[int] = mapped_column(Integer, default=0)
    # Rank (as string) -> percent of total_prize
    prize_structure: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    status: Mapped[TournamentStatus] = mapped_column(
        SAEnum(TournamentStatus, name="tournament_status"), default=TournamentStatus.UPCOMING
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    entries: Mapped[list["TournamentEntryDB"]] = relationship(
        back_populates="tournament", cascade="all, delete-orphan"
    )


class TournamentEntryDB(Base):
    __tablename__ = "tournament_entries"
    __table_args__ = (UniqueConstraint("user_id", "tournament_id", name="uq_user_tournament"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"))
    tournament_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("tournaments.id", ondelete="CASCADE"), index=True
    )
    entry_fee: Mapped[int] = mapped_column(Integer)
    total_points: Mapped[int] = mapped_column(Integer, default=0)
    rank: Mapped[int | None] = mapped_column(Integer, nullable=True)
    prize: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    tournament: Mapped["TournamentDB"] = relationship(back_populates="entries")
    user: Mapped["UserDB"] = relationship(lazy="selectin")


class MarketplaceListingDB(Base):
    """
    A style card offered for resale.

    ACTIVE -> SOLD | CANCELLED | EXPIRED, all terminal.
    """

    __tablename__ = "marketplace_listings"
    __table_args__ = (Index("idx_marketplace_status", "status"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    seller_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"))
    buyer_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=True
    )
    style_card_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("style_cards.id", ondelete="CASCADE")
    )
    price: Mapped[int] = mapped_column(Integer)
    status: Mapped[ListingStatus] = mapped_column(
        SAEnum(ListingStatus, name="listing_status"), default=ListingStatus.ACTIVE
    )
    listed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    sold_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    style_card: Mapped["StyleCardDB"] = relationship(lazy="selectin")
    seller: Mapped["UserDB"] = relationship(foreign_keys=[seller_id], lazy="selectin")
    buyer: Mapped[Optional["UserDB"]] = relationship(foreign_keys=[buyer_id], lazy="selectin")

    def is_past_expiry(self, now: datetime) -> bool:
        return self.expires_at is not None and now > ensure_utc(self.expires_at)
