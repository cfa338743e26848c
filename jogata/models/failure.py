"""
Error taxonomy and the JSON error envelope.

Every error that reaches a client is rendered as `{"error": ..., "code": ...}`
by the handlers registered in `jogata.main`.

- KnownError subclasses carry their own status code and machine code.
- ResourceExhaustedError is deliberately NOT a KnownError: it falls through
  to the generic handler and surfaces as a 500.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from jogata.models.card import Rarity


class FailureKind(str, Enum):
    """Classification of failure types."""

    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    AUTH = "auth"
    RATE_LIMITED = "rate_limited"
    RESOURCE_EXHAUSTED = "resource_exhausted"
    UNKNOWN = "unknown"


class ErrorResponse(BaseModel):
    """Body of every non-2xx response."""

    error: str = Field(..., description="Human-readable explanation")
    code: str | None = Field(default=None, description="Stable machine-readable code")
    details: list[dict[str, Any]] | None = Field(
        default=None,
        description="Field-level validation detail",
    )
    detail: str | None = Field(
        default=None,
        description="Exception detail, only in debug mode",
    )


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    kind: FailureKind = FailureKind.INVALID_INPUT
    status_code: int = 400

    def __init__(
        self,
        message: str,
        code: str | None = None,
        *,
        status_code: int | None = None,
        details: list[dict[str, Any]] | None = None,
    ):
        self.message = message
        self.code = code
        self.details = details
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to the error envelope."""
        return ErrorResponse(error=self.message, code=self.code, details=self.details)


class ValidationError(KnownError):
    """Malformed or out-of-range input."""

    kind = FailureKind.INVALID_INPUT
    status_code = 400


class NotFoundError(KnownError):
    """A referenced entity does not exist (or is not visible to the caller)."""

    kind = FailureKind.NOT_FOUND
    status_code = 404


class ConflictError(KnownError):
    """The request conflicts with current state (duplicates, terminal states)."""

    kind = FailureKind.CONFLICT
    status_code = 409


class AuthError(KnownError):
    """Missing, invalid or expired credentials."""

    kind = FailureKind.AUTH
    status_code = 401


class RateLimitExceededError(KnownError):
    """Too many requests from one client in a window."""

    kind = FailureKind.RATE_LIMITED
    status_code = 429

    def __init__(self, bucket: str, limit: int, window_seconds: int):
        self.bucket = bucket
        self.limit = limit
        self.window_seconds = window_seconds
        super().__init__(
            f"Too many {bucket} requests. Limit is {limit} per {window_seconds} seconds.",
            code=f"{bucket.upper()}_RATE_LIMIT_EXCEEDED",
        )


class ListingExpiredError(ValidationError):
    """A marketplace listing passed its expiry before the purchase."""

    def __init__(self, listing_id: str):
        self.listing_id = listing_id
        super().__init__("Listing has expired", code="LISTING_EXPIRED")


# =============================================================================
# RESOURCE EXHAUSTION (no graceful mapping, surfaces as a generic 500)
# =============================================================================


class ResourceExhaustedError(Exception):
    """A pool the system draws from cannot satisfy the request."""

    kind = FailureKind.RESOURCE_EXHAUSTED


class NoCardsAvailableError(ResourceExhaustedError):
    """No drawable card of a rarity exists."""

    def __init__(self, rarity: Rarity, detail: str | None = None):
        self.rarity = rarity
        message = f"No {rarity.value} cards available"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class SupplyExhaustedError(ResourceExhaustedError):
    """A drawn card has reached its maximum supply."""

    def __init__(self, card_name: str, max_supply: int):
        self.card_name = card_name
        self.max_supply = max_supply
        super().__init__(f"'{card_name}' has reached its maximum supply of {max_supply}")
