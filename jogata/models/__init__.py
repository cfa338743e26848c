from jogata.models.card import RARITY_MULTIPLIERS, Rarity, StyleCardDefinition
from jogata.models.failure import (
    AuthError,
    ConflictError,
    ErrorResponse,
    FailureKind,
    KnownError,
    ListingExpiredError,
    NoCardsAvailableError,
    NotFoundError,
    RateLimitExceededError,
    ResourceExhaustedError,
    SupplyExhaustedError,
    ValidationError,
)
from jogata.models.pack import PACK_TYPES, DrawPolicy, PackType, get_pack_type
from jogata.models.performance import ActivationCandidate, PlayerStatLine

__all__ = [
    "ActivationCandidate",
    "AuthError",
    "ConflictError",
    "DrawPolicy",
    "ErrorResponse",
    "FailureKind",
    "KnownError",
    "ListingExpiredError",
    "NoCardsAvailableError",
    "NotFoundError",
    "PACK_TYPES",
    "PackType",
    "PlayerStatLine",
    "RARITY_MULTIPLIERS",
    "Rarity",
    "RateLimitExceededError",
    "ResourceExhaustedError",
    "StyleCardDefinition",
    "SupplyExhaustedError",
    "ValidationError",
    "get_pack_type",
]
