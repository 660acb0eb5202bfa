"""Integration tests for authentication endpoints."""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models.user import User, UserStatus

pytestmark = pytest.mark.asyncio

PASSWORD = "TestPassword123"


class TestRegistration:
    """Tests for user registration."""

    async def test_register_success(self, async_client: AsyncClient):
        response = await async_client.post(
            "/api/v1/auth/register",
            json={
                "email": "NewUser@Example.com",
                "password": "SecurePass123",
                "first_name": "New",
                "last_name": "User",
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "newuser@example.com"
        assert data["name"] == "New User"
        assert data["role"] == "partner"
        assert "password_hash" not in data

    async def test_register_duplicate_email(self, async_client: AsyncClient, owner: User):
        response = await async_client.post(
            "/api/v1/auth/register",
            json={"email": owner.email, "password": "SecurePass123", "first_name": "Dup"},
        )

        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"

    async def test_register_weak_password(self, async_client: AsyncClient):
        response = await async_client.post(
            "/api/v1/auth/register",
            json={"email": "weak@example.com", "password": "alllowercase", "first_name": "W"},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "BAD_REQUEST"
        assert any(field["loc"].endswith("password") for field in body["fields"])


class TestLogin:
    """Tests for login and token use."""

    async def test_login_success(self, async_client: AsyncClient, owner: User):
        response = await async_client.post(
            "/api/v1/auth/login", json={"email": owner.email, "password": PASSWORD}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["access_token"]
        assert data["refresh_token"]
        assert "access_token" in response.cookies

    async def test_login_wrong_password(self, async_client: AsyncClient, owner: User):
        response = await async_client.post(
            "/api/v1/auth/login", json={"email": owner.email, "password": "WrongPass123"}
        )

        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHORIZED"

    async def test_login_unknown_email(self, async_client: AsyncClient):
        response = await async_client.post(
            "/api/v1/auth/login", json={"email": "nobody@example.com", "password": PASSWORD}
        )

        assert response.status_code == 401

    async def test_login_suspended_user(
        self, async_client: AsyncClient, db_session: AsyncSession, owner: User
    ):
        owner.status = UserStatus.SUSPENDED.value
        await db_session.commit()

        response = await async_client.post(
            "/api/v1/auth/login", json={"email": owner.email, "password": PASSWORD}
        )

        assert response.status_code == 403

    async def test_login_rate_limited(self, async_client: AsyncClient):
        """Sixth attempt within a minute is rejected."""
        for i in range(5):
            response = await async_client.post(
                "/api/v1/auth/login",
                json={"email": f"nobody{i}@example.com", "password": PASSWORD},
            )
            assert response.status_code == 401

        response = await async_client.post(
            "/api/v1/auth/login", json={"email": "again@example.com", "password": PASSWORD}
        )
        assert response.status_code == 429
        assert response.json()["code"] == "RATE_LIMITED"
        assert response.json()["detail"].startswith("Rate limit exceeded: 5 per 1 minute")


class TestCurrentUser:
    async def test_me(self, async_client: AsyncClient, owner: User, owner_headers: dict):
        response = await async_client.get("/api/v1/auth/me", headers=owner_headers)

        assert response.status_code == 200
        assert response.json()["id"] == owner.id

    async def test_me_without_token(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/auth/me")

        assert response.status_code == 401
        assert response.json() == {"detail": "Not authenticated", "code": "UNAUTHORIZED"}

    async def test_me_with_invalid_token(self, async_client: AsyncClient):
        response = await async_client.get(
            "/api/v1/auth/me", headers={"Authorization": "Bearer garbage"}
        )

        assert response.status_code == 401

    async def test_refresh_issues_new_pair(self, async_client: AsyncClient, owner: User):
        login = await async_client.post(
            "/api/v1/auth/login", json={"email": owner.email, "password": PASSWORD}
        )
        async_client.cookies.clear()

        response = await async_client.post(
            "/api/v1/auth/refresh",
            json={"refresh_token": login.json()["refresh_token"]},
        )

        assert response.status_code == 200
        assert response.json()["access_token"]

    async def test_refresh_rejects_access_token(self, async_client: AsyncClient, owner: User):
        login = await async_client.post(
            "/api/v1/auth/login", json={"email": owner.email, "password": PASSWORD}
        )
        async_client.cookies.clear()

        response = await async_client.post(
            "/api/v1/auth/refresh",
            json={"refresh_token": login.json()["access_token"]},
        )

        assert response.status_code == 401
