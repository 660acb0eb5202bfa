"""Integration tests for the per-user Contacts API."""

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


async def _create(client: AsyncClient, headers: dict, **fields):
    payload = {"first_name": "Sam", "category": "contractor"}
    payload.update(fields)
    return await client.post("/api/v1/contacts", json=payload, headers=headers)


class TestContacts:
    async def test_create_and_get(self, async_client: AsyncClient, owner_headers: dict):
        created = await _create(
            async_client, owner_headers, last_name="Sparks", company="Bright Electrical"
        )
        assert created.status_code == 201
        assert created.json()["display_name"] == "Sam Sparks (Bright Electrical)"

        fetched = await async_client.get(
            f"/api/v1/contacts/{created.json()['id']}", headers=owner_headers
        )
        assert fetched.status_code == 200
        assert fetched.json()["category"] == "contractor"

    async def test_duplicate_email_conflicts(self, async_client: AsyncClient, owner_headers: dict):
        await _create(async_client, owner_headers, email="sam@trade.com")

        response = await _create(async_client, owner_headers, email="SAM@trade.com")

        assert response.status_code == 409
        assert response.json()["detail"] == "A contact with this email already exists"

    async def test_same_email_allowed_for_different_users(
        self, async_client: AsyncClient, owner_headers: dict, outsider_headers: dict
    ):
        await _create(async_client, owner_headers, email="sam@trade.com")

        response = await _create(async_client, outsider_headers, email="sam@trade.com")

        assert response.status_code == 201

    async def test_contacts_are_private(
        self, async_client: AsyncClient, owner_headers: dict, outsider_headers: dict
    ):
        contact_id = (await _create(async_client, owner_headers)).json()["id"]

        view = await async_client.get(f"/api/v1/contacts/{contact_id}", headers=outsider_headers)
        edit = await async_client.put(
            f"/api/v1/contacts/{contact_id}", json={"first_name": "X"}, headers=outsider_headers
        )
        listing = await async_client.get("/api/v1/contacts", headers=outsider_headers)

        assert view.status_code == 404
        assert edit.status_code == 404
        assert listing.json()["total"] == 0

    async def test_list_filters(self, async_client: AsyncClient, owner_headers: dict):
        await _create(async_client, owner_headers, first_name="Alice", category="supplier")
        await _create(async_client, owner_headers, first_name="Bob", company="Concrete_Co")
        await _create(async_client, owner_headers, first_name="Carol", company="ConcreteXCo")

        suppliers = await async_client.get(
            "/api/v1/contacts", params={"category": "supplier"}, headers=owner_headers
        )
        underscored = await async_client.get(
            "/api/v1/contacts", params={"search": "concrete_"}, headers=owner_headers
        )

        assert [c["first_name"] for c in suppliers.json()["contacts"]] == ["Alice"]
        assert [c["first_name"] for c in underscored.json()["contacts"]] == ["Bob"]

    async def test_update_and_delete(self, async_client: AsyncClient, owner_headers: dict):
        first = (await _create(async_client, owner_headers, email="a@trade.com")).json()
        await _create(async_client, owner_headers, email="b@trade.com")

        conflict = await async_client.put(
            f"/api/v1/contacts/{first['id']}", json={"email": "b@trade.com"}, headers=owner_headers
        )
        assert conflict.status_code == 409

        updated = await async_client.put(
            f"/api/v1/contacts/{first['id']}", json={"phone": "0400 000 000"}, headers=owner_headers
        )
        assert updated.status_code == 200
        assert updated.json()["phone"] == "0400 000 000"

        deleted = await async_client.delete(f"/api/v1/contacts/{first['id']}", headers=owner_headers)
        assert deleted.status_code == 204

        gone = await async_client.get(f"/api/v1/contacts/{first['id']}", headers=owner_headers)
        assert gone.status_code == 404

    @pytest.mark.parametrize("field", ["first_name", "category"])
    async def test_null_for_required_field_rejected(
        self, async_client: AsyncClient, owner_headers: dict, field: str
    ):
        contact_id = (await _create(async_client, owner_headers, email="a@trade.com")).json()["id"]

        response = await async_client.put(
            f"/api/v1/contacts/{contact_id}", json={field: None}, headers=owner_headers
        )

        assert response.status_code == 400
        assert response.json()["code"] == "BAD_REQUEST"
