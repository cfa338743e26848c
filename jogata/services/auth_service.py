"""
Account authentication.

Password hashing (bcrypt), bearer token issue and verification (PyJWT,
HS256), and the register / login / wallet flows built on them.
"""

import logging
from datetime import timedelta

import bcrypt
import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from jogata.config import settings
from jogata.db.operations import (
    create_user,
    find_conflicting_user,
    get_user_by_login,
    get_user_by_wallet,
)
from jogata.models.db import UserDB, utcnow
from jogata.models.failure import AuthError, ConflictError
from jogata.services.sanitize import sanitize_for_log

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(rounds=settings.bcrypt_rounds),
    ).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


def create_access_token(user_id: str) -> str:
    """Issue a bearer token for a user, valid for `jwt_expires_days`."""
    now = utcnow()
    payload = {
        "userId": user_id,
        "iat": now,
        "exp": now + timedelta(days=settings.jwt_expires_days),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> str:
    """
    Verify a bearer token and return its user id.

    Raises:
        AuthError: TOKEN_EXPIRED or INVALID_TOKEN
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError as e:
        raise AuthError("Token expired", "TOKEN_EXPIRED") from e
    except jwt.InvalidTokenError as e:
        raise AuthError("Invalid token", "INVALID_TOKEN") from e

    user_id = payload.get("userId")
    if not isinstance(user_id, str):
        raise AuthError("Invalid token", "INVALID_TOKEN")
    return user_id


async def register(session: AsyncSession, email: str, username: str, password: str) -> UserDB:
    """
    Create an account with an empty profile.

    Raises:
        ConflictError: Email or username already in use
    """
    existing = await find_conflicting_user(session, email, username)
    if existing:
        if existing.email == email:
            raise ConflictError("Email already registered", "EMAIL_TAKEN")
        raise ConflictError("Username taken", "USERNAME_TAKEN")

    user = await create_user(session, email, username, hash_password(password))
    logger.info("User registered: %s", sanitize_for_log(username))
    return user


async def authenticate(session: AsyncSession, login: str, password: str) -> UserDB:
    """
    Check credentials given an email or username.

    Raises:
        AuthError: Unknown login or wrong password (indistinguishable)
    """
    user = await get_user_by_login(session, login)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Failed login for %s", sanitize_for_log(login))
        raise AuthError("Invalid credentials", "INVALID_CREDENTIALS")
    return user


async def connect_wallet(session: AsyncSession, user: UserDB, wallet_address: str) -> UserDB:
    """
    Attach a wallet address to a user.

    Raises:
        ConflictError: Another account already holds the address
    """
    holder = await get_user_by_wallet(session, wallet_address)
    if holder is not None and holder.id != user.id:
        raise ConflictError("Wallet already connected", "WALLET_TAKEN")

    user.wallet_address = wallet_address
    await session.flush()
    return user
