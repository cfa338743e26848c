from jogata.api.activations import router as activations_router
from jogata.api.auth import router as auth_router
from jogata.api.health import router as health_router
from jogata.api.marketplace import router as marketplace_router
from jogata.api.matches import router as matches_router
from jogata.api.packs import router as packs_router
from jogata.api.styles import router as styles_router
from jogata.api.tournaments import router as tournaments_router
from jogata.api.users import router as users_router

__all__ = [
    "activations_router",
    "auth_router",
    "health_router",
    "marketplace_router",
    "matches_router",
    "packs_router",
    "styles_router",
    "tournaments_router",
    "users_router",
]
