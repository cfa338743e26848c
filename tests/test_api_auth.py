"""Tests for authentication endpoints."""

from datetime import timedelta

import jwt
import pytest
from httpx import AsyncClient

from jogata.config import settings
from jogata.models.db import utcnow


PASSWORD = "Secret123"  # matches the make_user fixture
WALLET = "0x" + "ab" * 20


def registration(username: str = "striker9", **overrides) -> dict:
    body = {"email": f"{username}@example.com", "username": username, "password": PASSWORD}
    body.update(overrides)
    return body


class TestRegister:
    async def test_creates_account_and_token(self, client: AsyncClient) -> None:
        response = await client.post("/auth/register", json=registration())

        assert response.status_code == 201
        data = response.json()
        assert data["user"]["username"] == "striker9"
        assert data["user"]["email"] == "striker9@example.com"
        assert data["user"]["isVerified"] is False
        assert data["user"]["profile"]["totalPoints"] == 0
        assert "password" not in str(data).lower()
        assert data["token"]

    async def test_token_authenticates(self, client: AsyncClient) -> None:
        token = (await client.post("/auth/register", json=registration())).json()["token"]

        response = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json()["username"] == "striker9"

    async def test_duplicate_email(self, client: AsyncClient) -> None:
        await client.post("/auth/register", json=registration())

        response = await client.post(
            "/auth/register", json=registration("other", email="striker9@example.com")
        )

        assert response.status_code == 409
        assert response.json()["code"] == "EMAIL_TAKEN"

    async def test_duplicate_username(self, client: AsyncClient) -> None:
        await client.post("/auth/register", json=registration())

        response = await client.post(
            "/auth/register", json=registration(email="someone@example.com")
        )

        assert response.status_code == 409
        assert response.json()["code"] == "USERNAME_TAKEN"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"email": "not-an-email"},
            {"username": "ab"},
            {"username": "has space"},
            {"password": "short1A"},
            {"password": "alllowercase1"},
            {"password": "NoDigitsHere"},
        ],
    )
    async def test_invalid_input(self, client: AsyncClient, overrides: dict) -> None:
        response = await client.post("/auth/register", json=registration(**overrides))

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_FAILED"
        assert body["details"]


class TestLogin:
    async def test_login_by_username_or_email(self, client: AsyncClient, make_user) -> None:
        await make_user("keeper")

        by_name = await client.post("/auth/login", json={"login": "keeper", "password": PASSWORD})
        by_email = await client.post(
            "/auth/login", json={"login": "keeper@example.com", "password": PASSWORD}
        )

        assert by_name.status_code == 200
        assert by_email.status_code == 200
        assert by_name.json()["user"]["username"] == "keeper"

    async def test_wrong_password(self, client: AsyncClient, make_user) -> None:
        await make_user("keeper")

        response = await client.post(
            "/auth/login", json={"login": "keeper", "password": "Nope1234"}
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid credentials", "code": "INVALID_CREDENTIALS"}

    async def test_unknown_user_looks_the_same(self, client: AsyncClient) -> None:
        response = await client.post("/auth/login", json={"login": "ghost", "password": PASSWORD})

        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_CREDENTIALS"

    async def test_rate_limited_after_five_attempts(self, client: AsyncClient) -> None:
        for _ in range(5):
            response = await client.post("/auth/login", json={"login": "x", "password": "y"})
            assert response.status_code == 401

        response = await client.post("/auth/login", json={"login": "x", "password": "y"})

        assert response.status_code == 429
        assert response.json()["code"] == "AUTH_RATE_LIMIT_EXCEEDED"


class TestTokens:
    async def test_missing_token(self, client: AsyncClient) -> None:
        response = await client.get("/auth/me")

        assert response.status_code == 401
        assert response.json()["code"] == "TOKEN_MISSING"

    async def test_garbage_token(self, client: AsyncClient) -> None:
        response = await client.get("/auth/me", headers={"Authorization": "Bearer not.a.token"})

        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_TOKEN"

    async def test_expired_token(self, client: AsyncClient, make_user) -> None:
        user = await make_user()
        past = utcnow() - timedelta(days=8)
        token = jwt.encode(
            {"userId": user.id, "iat": past, "exp": past + timedelta(days=7)},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )

        response = await client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["code"] == "TOKEN_EXPIRED"

    async def test_token_for_deleted_user(
        self, client: AsyncClient, auth_headers, make_user
    ) -> None:
        user = await make_user()
        user.id = "no-such-user"

        response = await client.get("/auth/me", headers=auth_headers(user))

        assert response.status_code == 401
        assert response.json()["code"] == "USER_NOT_FOUND"

    async def test_unverified_email_when_required(
        self, client: AsyncClient, auth_headers, make_user, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(settings, "require_verified_email", True)
        user = await make_user()

        response = await client.get("/auth/me", headers=auth_headers(user))

        assert response.status_code == 401
        assert response.json()["code"] == "EMAIL_NOT_VERIFIED"

    async def test_refresh_issues_new_token(
        self, client: AsyncClient, auth_headers, make_user
    ) -> None:
        user = await make_user()

        response = await client.post("/auth/refresh", headers=auth_headers(user))

        assert response.status_code == 200
        payload = jwt.decode(
            response.json()["token"], settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
        assert payload["userId"] == user.id

    async def test_logout(self, client: AsyncClient, auth_headers, make_user) -> None:
        user = await make_user()

        response = await client.post("/auth/logout", headers=auth_headers(user))

        assert response.status_code == 200
        assert response.json() == {"message": "Logged out successfully"}


class TestConnectWallet:
    async def test_connects_wallet(self, client: AsyncClient, auth_headers, make_user) -> None:
        user = await make_user()

        response = await client.post(
            "/auth/connect-wallet", json={"walletAddress": WALLET}, headers=auth_headers(user)
        )

        assert response.status_code == 200
        assert response.json()["walletAddress"] == WALLET

    async def test_wallet_held_by_another_account(
        self, client: AsyncClient, auth_headers, make_user
    ) -> None:
        first = await make_user()
        second = await make_user()
        await client.post(
            "/auth/connect-wallet", json={"walletAddress": WALLET}, headers=auth_headers(first)
        )

        response = await client.post(
            "/auth/connect-wallet", json={"walletAddress": WALLET}, headers=auth_headers(second)
        )

        assert response.status_code == 409
        assert response.json()["code"] == "WALLET_TAKEN"

    async def test_malformed_address(self, client: AsyncClient, auth_headers, make_user) -> None:
        user = await make_user()

        response = await client.post(
            "/auth/connect-wallet", json={"walletAddress": "0x123"}, headers=auth_headers(user)
        )

        assert response.status_code == 400
