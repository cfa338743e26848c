"""
Shared request/response models.

Every JSON body is camelCase on the wire; models are built from ORM rows
with `from_attributes`.
"""

import math
from datetime import datetime
from typing import Annotated, Any

from pydantic import AfterValidator, AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from jogata.models.card import Rarity
from jogata.models.db import (
    ListingStatus,
    MarketplaceListingDB,
    TournamentEntryDB,
    TournamentStatus,
    TransactionStatus,
    TransactionType,
    UserDB,
    ensure_utc,
)


# SQLite hands datetimes back without tzinfo
UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


class CamelModel(BaseModel):
    """Base model serializing to camelCase and accepting either case."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(CamelModel):
    message: str


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def of(cls, page: int, limit: int, total: int) -> "Pagination":
        pages = math.ceil(total / limit) if limit else 0
        return cls(page=page, limit=limit, total=total, pages=pages)


# =============================================================================
# USERS
# =============================================================================


class ProfileOut(CamelModel):
    display_name: str | None = None
    avatar: str | None = None
    bio: str | None = None
    country: str | None = None
    total_points: int = 0
    weekly_rank: int | None = None
    overall_rank: int | None = None
    packs_purchased: int = 0
    is_founder: bool = False
    founder_tier: str | None = None


class UserOut(CamelModel):
    id: str
    email: str
    username: str
    wallet_address: str | None = None
    is_verified: bool
    created_at: UtcDatetime
    profile: ProfileOut | None = None


class UserBrief(CamelModel):
    """Public view of another user."""

    id: str
    username: str
    display_name: str
    avatar: str | None = None
    country: str | None = None

    @classmethod
    def of(cls, user: UserDB) -> "UserBrief":
        profile = user.profile
        return cls(
            id=user.id,
            username=user.username,
            display_name=(profile.display_name if profile else None) or user.username,
            avatar=profile.avatar if profile else None,
            country=profile.country if profile else None,
        )


# =============================================================================
# CATALOG & LEDGER
# =============================================================================


class StyleCardBrief(CamelModel):
    id: str
    name: str
    rarity: Rarity
    category: str
    image_url: str | None = None


class StyleCardOut(StyleCardBrief):
    description: str
    attributes: dict[str, Any] = Field(default_factory=dict)
    key_metrics: list[str] = Field(default_factory=list)
    base_points: int
    bonus_multiplier: float
    max_supply: int | None = None
    current_supply: int
    remaining_supply: int | None = None
    is_active: bool
    min_threshold: float
    total_points: int
    activation_count: int


class UserStyleOut(CamelModel):
    id: str
    style_card: StyleCardOut
    copies: int
    total_points: int
    weekly_points: int
    activation_count: int
    owned_since: UtcDatetime = Field(
        validation_alias=AliasChoices("ownedSince", "created_at"),
        serialization_alias="ownedSince",
    )


class TransactionOut(CamelModel):
    id: str
    type: TransactionType
    amount: int
    description: str
    pack_type: str | None = None
    pack_count: int
    status: TransactionStatus
    created_at: UtcDatetime


class PlayerBrief(CamelModel):
    id: str
    name: str
    team: str
    league: str
    position: str
    country: str


class ActivationOut(CamelModel):
    id: str
    style_card: StyleCardBrief
    player: PlayerBrief
    gameweek: int
    season: str
    rank: int
    match_date: UtcDatetime
    points: int
    bonus_points: int
    confidence: float
    created_at: UtcDatetime


# =============================================================================
# MARKETPLACE
# =============================================================================


class ListingOut(CamelModel):
    id: str
    price: int
    status: ListingStatus
    listed_at: UtcDatetime
    sold_at: UtcDatetime | None = None
    expires_at: UtcDatetime | None = None
    style_card: StyleCardBrief
    seller: UserBrief
    buyer: UserBrief | None = None

    @classmethod
    def of(cls, listing: MarketplaceListingDB) -> "ListingOut":
        return cls(
            id=listing.id,
            price=listing.price,
            status=listing.status,
            listed_at=listing.listed_at,
            sold_at=listing.sold_at,
            expires_at=listing.expires_at,
            style_card=StyleCardBrief.model_validate(listing.style_card),
            seller=UserBrief.of(listing.seller),
            buyer=UserBrief.of(listing.buyer) if listing.buyer else None,
        )


# =============================================================================
# TOURNAMENTS
# =============================================================================


class TournamentOut(CamelModel):
    id: str
    name: str
    description: str | None = None
    entry_fee: int
    max_entries: int | None = None
    start_date: UtcDatetime
    end_date: UtcDatetime
    total_prize: int
    prize_structure: dict[str, Any] = Field(default_factory=dict)
    status: TournamentStatus
    entry_count: int = 0
    spots_remaining: int | None = None


class EntryOut(CamelModel):
    id: str
    tournament_id: str
    user: UserBrief
    entry_fee: int
    total_points: int
    rank: int | None = None
    prize: int
    created_at: UtcDatetime

    @classmethod
    def of(cls, entry: TournamentEntryDB) -> "EntryOut":
        return cls(
            id=entry.id,
            tournament_id=entry.tournament_id,
            user=UserBrief.of(entry.user),
            entry_fee=entry.entry_fee,
            total_points=entry.total_points,
            rank=entry.rank,
            prize=entry.prize,
            created_at=entry.created_at,
        )
