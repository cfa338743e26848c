from jogata.db.database import get_session, init_db
from jogata.db.operations import (
    create_transaction,
    create_user,
    fetch_page,
    find_conflicting_user,
    get_active_cards_by_rarity,
    get_player,
    get_profile,
    get_style_card,
    get_style_card_by_name,
    get_user,
    get_user_by_login,
    get_user_by_wallet,
    get_user_style,
    get_user_style_for_card,
    grant_style,
    list_style_cards,
    list_transactions,
    list_user_styles,
    upsert_player,
    upsert_style_card,
)

__all__ = [
    "create_transaction",
    "create_user",
    "fetch_page",
    "find_conflicting_user",
    "get_active_cards_by_rarity",
    "get_player",
    "get_profile",
    "get_session",
    "get_style_card",
    "get_style_card_by_name",
    "get_user",
    "get_user_by_login",
    "get_user_by_wallet",
    "get_user_style",
    "get_user_style_for_card",
    "grant_style",
    "init_db",
    "list_style_cards",
    "list_transactions",
    "list_user_styles",
    "upsert_player",
    "upsert_style_card",
]
