from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "Jogata"
    debug: bool = False

    database_url: str = "postgresql+asyncpg://localhost:5432/jogata"

    # Bearer tokens
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_expires_days: int = 7
    bcrypt_rounds: int = 12
    require_verified_email: bool = False

    # Shared secret for internal endpoints (activation, match processing).
    # Empty string leaves them open.
    internal_api_key: str = ""

    # API-Football via RapidAPI
    football_api_key: str = ""
    football_api_url: str = "https://api-football-v1.p.rapidapi.com/v3"
    football_api_host: str = "api-football-v1.p.rapidapi.com"

    # Marketplace
    marketplace_fee_bps: int = 500
    min_listing_price: int = 100
    listing_expiry_days: int = 30

    # skip: capped cards drop out of the pool; reject: fail the allocation
    supply_cap_policy: Literal["skip", "reject"] = "skip"
    # reset: buyer starts at zero points; carry_over: seller history moves with the card
    ownership_transfer_policy: Literal["reset", "carry_over"] = "reset"

    seed_catalog_on_startup: bool = True

    # Per-IP sliding windows: (max requests, window seconds)
    auth_rate_limit: tuple[int, int] = (5, 15 * 60)
    pack_rate_limit: tuple[int, int] = (10, 60)
    marketplace_rate_limit: tuple[int, int] = (20, 60)


settings = Settings()


# =============================================================================
# PACK PURCHASE LIMITS
# =============================================================================

MIN_PACKS_PER_PURCHASE = 1
MAX_PACKS_PER_PURCHASE = 10

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
