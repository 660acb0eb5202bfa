"""
Integration tests for the Costs API.

Costs inherit access from their project: any member can read them, owners and
write partners can change them.
"""

import datetime as dt
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models import Notification, Project, User

pytestmark = pytest.mark.asyncio

TODAY = dt.datetime.now(dt.timezone.utc).date().isoformat()


async def _add_cost(client: AsyncClient, project: Project, headers: dict, **fields):
    payload = {"amount": 150_000, "description": "Timber framing", "category": "materials"}
    payload["date"] = TODAY
    payload.update(fields)
    return await client.post(f"/api/v1/projects/{project.id}/costs", json=payload, headers=headers)


async def _notifications_for(db: AsyncSession, user: User) -> list[Notification]:
    result = await db.execute(select(Notification).where(Notification.user_id == user.id))
    return list(result.scalars().all())


class TestCreateCost:
    async def test_owner_adds_cost(
        self, async_client: AsyncClient, owner: User, owner_headers: dict, project: Project
    ):
        response = await _add_cost(async_client, project, owner_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["amount"] == 150_000
        assert data["category"] == "materials"
        assert data["created_by"] == owner.id

    async def test_future_date_rejected(
        self, async_client: AsyncClient, owner_headers: dict, project: Project
    ):
        tomorrow = (dt.datetime.now(dt.timezone.utc).date() + dt.timedelta(days=2)).isoformat()

        response = await _add_cost(async_client, project, owner_headers, date=tomorrow)

        assert response.status_code == 400
        assert "future" in response.json()["detail"]

    async def test_non_positive_amount_rejected(
        self, async_client: AsyncClient, owner_headers: dict, project: Project
    ):
        response = await _add_cost(async_client, project, owner_headers, amount=0)

        assert response.status_code == 400

    async def test_read_partner_cannot_add(
        self,
        async_client: AsyncClient,
        partner_headers: dict,
        project: Project,
        read_partner: User,
    ):
        response = await _add_cost(async_client, project, partner_headers)

        assert response.status_code == 403

    async def test_write_partner_adds_and_owner_is_notified(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        owner: User,
        partner_headers: dict,
        project: Project,
        write_partner: User,
    ):
        response = await _add_cost(async_client, project, partner_headers, amount=250_050)
        assert response.status_code == 201

        owner_notes = await _notifications_for(db_session, owner)
        assert len(owner_notes) == 1
        assert owner_notes[0].type == "cost_added"
        assert owner_notes[0].message == (
            "New cost added: Timber framing ($2,500.50) in Harbour Street Renovation"
        )
        assert await _notifications_for(db_session, write_partner) == []

    async def test_large_expense_alert(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        owner_headers: dict,
        project: Project,
        read_partner: User,
    ):
        await _add_cost(
            async_client, project, owner_headers, amount=1_200_000, description="Roof"
        )

        notes = await _notifications_for(db_session, read_partner)
        assert [n.type for n in notes] == ["large_expense"]
        assert notes[0].message.startswith("Large expense alert: Roof ($12,000.00)")

    async def test_contact_must_be_visible(
        self,
        async_client: AsyncClient,
        owner_headers: dict,
        outsider_headers: dict,
        project: Project,
    ):
        contact = await async_client.post(
            "/api/v1/contacts", json={"first_name": "Sam"}, headers=outsider_headers
        )

        response = await _add_cost(
            async_client, project, owner_headers, contact_id=contact.json()["id"]
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Contact not found"

    async def test_contact_name_included(
        self, async_client: AsyncClient, owner_headers: dict, project: Project
    ):
        contact = await async_client.post(
            "/api/v1/contacts",
            json={"first_name": "Sam", "last_name": "Builder", "company": "Acme Pty"},
            headers=owner_headers,
        )

        response = await _add_cost(
            async_client, project, owner_headers, contact_id=contact.json()["id"]
        )

        assert response.status_code == 201
        assert response.json()["contact_name"] == "Sam Builder (Acme Pty)"


class TestListCosts:
    async def test_filters(self, async_client: AsyncClient, owner_headers: dict, project: Project):
        await _add_cost(async_client, project, owner_headers, amount=1000, category="labor")
        await _add_cost(async_client, project, owner_headers, amount=5000, description="100% tiles")
        await _add_cost(async_client, project, owner_headers, amount=9000, description="Paint")

        url = f"/api/v1/projects/{project.id}/costs"
        by_category = await async_client.get(url, params={"category": "labor"}, headers=owner_headers)
        by_amount = await async_client.get(
            url, params={"min_amount": 2000, "max_amount": 6000}, headers=owner_headers
        )
        by_text = await async_client.get(url, params={"search": "100%"}, headers=owner_headers)

        assert by_category.json()["total"] == 1
        assert by_amount.json()["costs"][0]["amount"] == 5000
        assert [c["description"] for c in by_text.json()["costs"]] == ["100% tiles"]

    async def test_malformed_contact_filter_matches_nothing(
        self, async_client: AsyncClient, owner_headers: dict, project: Project
    ):
        await _add_cost(async_client, project, owner_headers)

        response = await async_client.get(
            f"/api/v1/projects/{project.id}/costs",
            params={"contact_id": "not-a-contact"},
            headers=owner_headers,
        )

        assert response.status_code == 200
        assert response.json()["total"] == 0

    async def test_read_partner_lists(
        self,
        async_client: AsyncClient,
        owner_headers: dict,
        partner_headers: dict,
        project: Project,
        read_partner: User,
    ):
        await _add_cost(async_client, project, owner_headers)

        response = await async_client.get(
            f"/api/v1/projects/{project.id}/costs", headers=partner_headers
        )

        assert response.status_code == 200
        assert response.json()["total"] == 1

    async def test_outsider_cannot_list(
        self, async_client: AsyncClient, outsider_headers: dict, project: Project
    ):
        response = await async_client.get(
            f"/api/v1/projects/{project.id}/costs", headers=outsider_headers
        )

        assert response.status_code == 403

    async def test_totals_by_category(
        self, async_client: AsyncClient, owner_headers: dict, project: Project
    ):
        await _add_cost(async_client, project, owner_headers, amount=1000, category="labor")
        await _add_cost(async_client, project, owner_headers, amount=3000, category="labor")
        await _add_cost(async_client, project, owner_headers, amount=2000)

        response = await async_client.get(
            f"/api/v1/projects/{project.id}/costs/total", headers=owner_headers
        )

        data = response.json()
        assert data["total"] == 6000
        assert data["count"] == 3
        assert data["budget_remaining"] == project.total_budget - 6000
        assert data["by_category"][0] == {"category": "labor", "total": 4000, "count": 2}


class TestSingleCost:
    async def test_get_update_delete(
        self,
        async_client: AsyncClient,
        owner_headers: dict,
        partner_headers: dict,
        project: Project,
        write_partner: User,
    ):
        cost_id = (await _add_cost(async_client, project, owner_headers)).json()["id"]

        updated = await async_client.put(
            f"/api/v1/costs/{cost_id}",
            json={"amount": 175_000, "category": "labor"},
            headers=partner_headers,
        )
        assert updated.status_code == 200
        assert updated.json()["amount"] == 175_000
        assert updated.json()["category"] == "labor"

        deleted = await async_client.delete(f"/api/v1/costs/{cost_id}", headers=partner_headers)
        assert deleted.status_code == 204

        missing = await async_client.get(f"/api/v1/costs/{cost_id}", headers=owner_headers)
        assert missing.status_code == 404

    async def test_read_partner_cannot_update(
        self,
        async_client: AsyncClient,
        owner_headers: dict,
        partner_headers: dict,
        project: Project,
        read_partner: User,
    ):
        cost_id = (await _add_cost(async_client, project, owner_headers)).json()["id"]

        view = await async_client.get(f"/api/v1/costs/{cost_id}", headers=partner_headers)
        update = await async_client.put(
            f"/api/v1/costs/{cost_id}", json={"amount": 1}, headers=partner_headers
        )

        assert view.status_code == 200
        assert update.status_code == 403

    async def test_outsider_forbidden(
        self,
        async_client: AsyncClient,
        owner_headers: dict,
        outsider_headers: dict,
        project: Project,
    ):
        cost_id = (await _add_cost(async_client, project, owner_headers)).json()["id"]

        response = await async_client.get(f"/api/v1/costs/{cost_id}", headers=outsider_headers)

        assert response.status_code == 403

    @pytest.mark.parametrize("field", ["amount", "description", "category", "date"])
    async def test_null_for_required_field_rejected(
        self, async_client: AsyncClient, owner_headers: dict, project: Project, field: str
    ):
        cost_id = (await _add_cost(async_client, project, owner_headers)).json()["id"]

        response = await async_client.put(
            f"/api/v1/costs/{cost_id}", json={field: None}, headers=owner_headers
        )

        assert response.status_code == 400
        assert response.json()["code"] == "BAD_REQUEST"

    async def test_null_clears_notes(
        self, async_client: AsyncClient, owner_headers: dict, project: Project
    ):
        cost_id = (await _add_cost(async_client, project, owner_headers)).json()["id"]

        response = await async_client.put(
            f"/api/v1/costs/{cost_id}", json={"notes": None}, headers=owner_headers
        )

        assert response.status_code == 200
        assert response.json()["notes"] is None

    async def test_unknown_cost(self, async_client: AsyncClient, owner_headers: dict):
        response = await async_client.get(f"/api/v1/costs/{uuid4()}", headers=owner_headers)

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"
