"""Integration tests for comments on costs, documents and events."""

from datetime import date
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models import Cost, Notification, Project, User

pytestmark = pytest.mark.asyncio

URL = "/api/v1/comments"


@pytest.fixture
async def cost(db_session: AsyncSession, project: Project) -> Cost:
    cost = Cost(
        id=str(uuid4()),
        project_id=project.id,
        amount=48_000,
        description="Steel beam",
        category="materials",
        date=date(2026, 5, 2),
    )
    db_session.add(cost)
    await db_session.commit()
    return cost


async def _comment(client: AsyncClient, cost: Cost, headers: dict, **fields):
    payload = {"entity_type": "cost", "entity_id": cost.id, "content": "Quote looks high"}
    payload.update(fields)
    return await client.post(URL, json=payload, headers=headers)


class TestCreateComment:
    async def test_read_partner_comments_and_owner_is_notified(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        owner: User,
        partner_headers: dict,
        cost: Cost,
        read_partner: User,
    ):
        response = await _comment(async_client, cost, partner_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["author_name"] == "Paul Partner"
        assert data["parent_comment_id"] is None
        result = await db_session.execute(
            select(Notification.message).where(Notification.user_id == owner.id)
        )
        assert result.scalars().all() == [
            "Paul Partner commented on a cost in Harbour Street Renovation"
        ]

    async def test_outsider_forbidden(
        self, async_client: AsyncClient, outsider_headers: dict, cost: Cost
    ):
        response = await _comment(async_client, cost, outsider_headers)

        assert response.status_code == 403

    async def test_unknown_entity_not_found(
        self, async_client: AsyncClient, owner_headers: dict, project: Project
    ):
        response = await async_client.post(
            URL,
            json={"entity_type": "event", "entity_id": str(uuid4()), "content": "Hello"},
            headers=owner_headers,
        )

        assert response.status_code == 404
        assert response.json()["detail"] == "Event not found"

    @pytest.mark.parametrize("content", ["", "x" * 2001])
    async def test_content_length(
        self, async_client: AsyncClient, owner_headers: dict, cost: Cost, content: str
    ):
        response = await _comment(async_client, cost, owner_headers, content=content)

        assert response.status_code == 400


class TestReplies:
    async def test_reply_to_top_level_comment(
        self, async_client: AsyncClient, owner_headers: dict, cost: Cost
    ):
        parent = (await _comment(async_client, cost, owner_headers)).json()

        reply = await _comment(
            async_client, cost, owner_headers, content="Agreed", parent_comment_id=parent["id"]
        )

        assert reply.status_code == 201
        assert reply.json()["parent_comment_id"] == parent["id"]

    async def test_reply_to_reply_rejected(
        self, async_client: AsyncClient, owner_headers: dict, cost: Cost
    ):
        parent = (await _comment(async_client, cost, owner_headers)).json()
        reply = (
            await _comment(async_client, cost, owner_headers, parent_comment_id=parent["id"])
        ).json()

        response = await _comment(
            async_client, cost, owner_headers, parent_comment_id=reply["id"]
        )

        assert response.status_code == 400
        assert "one level of nesting" in response.json()["detail"]

    async def test_reply_to_deleted_comment_rejected(
        self, async_client: AsyncClient, owner_headers: dict, cost: Cost
    ):
        parent = (await _comment(async_client, cost, owner_headers)).json()
        await async_client.delete(f"{URL}/{parent['id']}", headers=owner_headers)

        response = await _comment(
            async_client, cost, owner_headers, parent_comment_id=parent["id"]
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Cannot reply to a deleted comment"

    async def test_unknown_parent_not_found(
        self, async_client: AsyncClient, owner_headers: dict, cost: Cost
    ):
        response = await _comment(
            async_client, cost, owner_headers, parent_comment_id=str(uuid4())
        )

        assert response.status_code == 404
        assert response.json()["detail"] == "Parent comment not found"


class TestListComments:
    async def test_list_oldest_first_and_count(
        self,
        async_client: AsyncClient,
        owner_headers: dict,
        partner_headers: dict,
        cost: Cost,
        read_partner: User,
    ):
        await _comment(async_client, cost, owner_headers, content="First")
        await _comment(async_client, cost, partner_headers, content="Second")
        params = {"entity_type": "cost", "entity_id": cost.id}

        listed = await async_client.get(URL, params=params, headers=partner_headers)
        count = await async_client.get(f"{URL}/count", params=params, headers=partner_headers)

        assert listed.status_code == 200
        assert [c["content"] for c in listed.json()["comments"]] == ["First", "Second"]
        assert count.json() == {"count": 2}

    async def test_outsider_cannot_list(
        self, async_client: AsyncClient, outsider_headers: dict, cost: Cost
    ):
        response = await async_client.get(
            URL, params={"entity_type": "cost", "entity_id": cost.id}, headers=outsider_headers
        )

        assert response.status_code == 403


class TestEditAndDelete:
    async def test_only_author_edits(
        self,
        async_client: AsyncClient,
        owner_headers: dict,
        partner_headers: dict,
        cost: Cost,
        read_partner: User,
    ):
        comment_id = (await _comment(async_client, cost, partner_headers)).json()["id"]

        by_owner = await async_client.put(
            f"{URL}/{comment_id}", json={"content": "Edited"}, headers=owner_headers
        )
        by_author = await async_client.put(
            f"{URL}/{comment_id}", json={"content": "Edited"}, headers=partner_headers
        )

        assert by_owner.status_code == 403
        assert by_owner.json()["detail"] == "You can only edit your own comments"
        assert by_author.status_code == 200
        assert by_author.json()["content"] == "Edited"

    async def test_owner_deletes_partner_comment(
        self,
        async_client: AsyncClient,
        owner_headers: dict,
        partner_headers: dict,
        cost: Cost,
        read_partner: User,
    ):
        comment_id = (await _comment(async_client, cost, partner_headers)).json()["id"]

        response = await async_client.delete(f"{URL}/{comment_id}", headers=owner_headers)
        listed = await async_client.get(
            URL, params={"entity_type": "cost", "entity_id": cost.id}, headers=owner_headers
        )

        assert response.status_code == 204
        assert listed.json()["total"] == 0

    async def test_partner_cannot_delete_owner_comment(
        self,
        async_client: AsyncClient,
        owner_headers: dict,
        partner_headers: dict,
        cost: Cost,
        read_partner: User,
    ):
        comment_id = (await _comment(async_client, cost, owner_headers)).json()["id"]

        response = await async_client.delete(f"{URL}/{comment_id}", headers=partner_headers)

        assert response.status_code == 403
