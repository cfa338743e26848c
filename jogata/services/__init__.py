"""
Jogata services.

Business logic for packs, scoring, point propagation, the marketplace,
tournaments and accounts.
"""

from jogata.services.football_api import FootballApiClient, FootballApiError
from jogata.services.marketplace import (
    SaleResult,
    cancel_listing,
    create_listing,
    purchase_listing,
    seller_proceeds,
)
from jogata.services.match_processing import MatchProcessingResult, process_matches
from jogata.services.pack_allocator import allocate_pack, draw_bucket
from jogata.services.propagation import (
    PropagationResult,
    create_activation,
    propagate_activation,
)
from jogata.services.purchase import PurchaseResult, open_pack, purchase_packs
from jogata.services.scoring import score_performance

__all__ = [
    "FootballApiClient",
    "FootballApiError",
    "MatchProcessingResult",
    "PropagationResult",
    "PurchaseResult",
    "SaleResult",
    "allocate_pack",
    "cancel_listing",
    "create_activation",
    "create_listing",
    "draw_bucket",
    "open_pack",
    "process_matches",
    "propagate_activation",
    "purchase_listing",
    "purchase_packs",
    "score_performance",
    "seller_proceeds",
]
