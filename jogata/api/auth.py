"""
Authentication endpoints.

Registration, login and token refresh issue HS256 bearer tokens. Logout is
client-side (tokens are stateless); the endpoint exists so clients have a
uniform flow.
"""

import re
from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import EmailStr, Field, field_validator

from jogata.api.deps import CurrentUser, SessionDep
from jogata.api.schemas import CamelModel, MessageResponse, UserOut
from jogata.services import auth_service
from jogata.services.rate_limits import auth_rate_limit

router = APIRouter(prefix="/auth", tags=["auth"])

RateLimited = Annotated[None, Depends(auth_rate_limit)]


class RegisterRequest(CamelModel):
    """Request model for account registration."""

    email: EmailStr
    username: str = Field(..., pattern=r"^[A-Za-z0-9_]{3,20}$")
    password: str = Field(..., min_length=8, max_length=128)

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        if not (
            re.search(r"[a-z]", value) and re.search(r"[A-Z]", value) and re.search(r"\d", value)
        ):
            raise ValueError("Password needs upper and lower case letters and a digit")
        return value


class LoginRequest(CamelModel):
    """Login by email or username."""

    login: str = Field(..., min_length=1, description="Email or username")
    password: str = Field(..., min_length=1)


class WalletRequest(CamelModel):
    wallet_address: str = Field(..., pattern=r"^0x[a-fA-F0-9]{40}$")


class AuthResponse(CamelModel):
    user: UserOut
    token: str


class TokenResponse(CamelModel):
    token: str


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest, session: SessionDep, _limited: RateLimited
) -> AuthResponse:
    """Create an account and sign it in."""
    user = await auth_service.register(session, request.email, request.username, request.password)
    return AuthResponse(
        user=UserOut.model_validate(user),
        token=auth_service.create_access_token(user.id),
    )


@router.post("/login", response_model=AuthResponse)
async def login(request: LoginRequest, session: SessionDep, _limited: RateLimited) -> AuthResponse:
    user = await auth_service.authenticate(session, request.login, request.password)
    return AuthResponse(
        user=UserOut.model_validate(user),
        token=auth_service.create_access_token(user.id),
    )


@router.post("/refresh", response_model=TokenResponse)
async def refresh(user: CurrentUser) -> TokenResponse:
    """Exchange a still-valid token for a fresh one."""
    return TokenResponse(token=auth_service.create_access_token(user.id))


@router.post("/logout", response_model=MessageResponse)
async def logout(_user: CurrentUser) -> MessageResponse:
    return MessageResponse(message="Logged out successfully")


@router.post("/connect-wallet", response_model=UserOut)
async def connect_wallet(request: WalletRequest, user: CurrentUser, session: SessionDep) -> UserOut:
    user = await auth_service.connect_wallet(session, user, request.wallet_address)
    return UserOut.model_validate(user)


@router.get("/me", response_model=UserOut)
async def me(user: CurrentUser) -> UserOut:
    return UserOut.model_validate(user)
