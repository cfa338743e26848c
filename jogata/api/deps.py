"""
Shared route dependencies: session, caller identity, internal key, paging.
"""

import secrets
from typing import Annotated

from fastapi import Depends, Header, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from jogata.config import MAX_PAGE_SIZE, settings
from jogata.db.database import get_session
from jogata.db.operations import get_user
from jogata.models.db import UserDB
from jogata.models.failure import AuthError
from jogata.services.auth_service import decode_token

SessionDep = Annotated[AsyncSession, Depends(get_session)]

bearer_scheme = HTTPBearer(auto_error=False)
BearerCredentials = Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]


async def get_current_user(session: SessionDep, credentials: BearerCredentials) -> UserDB:
    """
    Resolve the bearer token to a user.

    Raises:
        AuthError: TOKEN_MISSING, INVALID_TOKEN, TOKEN_EXPIRED,
            USER_NOT_FOUND or EMAIL_NOT_VERIFIED
    """
    if credentials is None or not credentials.credentials:
        raise AuthError("Access token required", "TOKEN_MISSING")

    user = await get_user(session, decode_token(credentials.credentials))
    if user is None:
        raise AuthError("User not found", "USER_NOT_FOUND")
    if settings.require_verified_email and not user.is_verified:
        raise AuthError("Email verification required", "EMAIL_NOT_VERIFIED")
    return user


CurrentUser = Annotated[UserDB, Depends(get_current_user)]


async def get_optional_user(session: SessionDep, credentials: BearerCredentials) -> UserDB | None:
    """The caller if a valid token was sent, else None. Never rejects."""
    if credentials is None or not credentials.credentials:
        return None
    try:
        user_id = decode_token(credentials.credentials)
    except AuthError:
        return None
    return await get_user(session, user_id)


OptionalUser = Annotated[UserDB | None, Depends(get_optional_user)]


async def require_internal_key(
    x_internal_key: Annotated[str | None, Header()] = None,
) -> None:
    """Guard for service-to-service endpoints; open when no key is configured."""
    expected = settings.internal_api_key
    if not expected:
        return
    if x_internal_key is None or not secrets.compare_digest(x_internal_key, expected):
        raise AuthError("Invalid internal key", "INVALID_INTERNAL_KEY")


Page = Annotated[int, Query(ge=1)]
Limit = Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)]
