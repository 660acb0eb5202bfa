"""Integration tests for project timeline events and document metadata."""

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models import Notification, Project, User

pytestmark = pytest.mark.asyncio

PDF = {
    "file_name": "permit.pdf",
    "mime_type": "application/pdf",
    "size_bytes": 204_800,
    "blob_url": "https://blobs.example.com/projects/permit.pdf",
    "category": "permit",
}


async def _add_event(client: AsyncClient, project: Project, headers: dict, **fields):
    payload = {"title": "Slab pour", "date": "2026-03-14", "category": "milestone"}
    payload.update(fields)
    return await client.post(f"/api/v1/projects/{project.id}/events", json=payload, headers=headers)


async def _messages_for(db: AsyncSession, user: User) -> list[str]:
    result = await db.execute(select(Notification.message).where(Notification.user_id == user.id))
    return list(result.scalars().all())


class TestEvents:
    async def test_write_partner_adds_event(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        owner: User,
        partner_headers: dict,
        project: Project,
        write_partner: User,
    ):
        response = await _add_event(async_client, project, partner_headers)

        assert response.status_code == 201
        assert response.json()["category"] == "milestone"
        assert await _messages_for(db_session, owner) == [
            "New timeline event: Slab pour in Harbour Street Renovation"
        ]

    async def test_read_partner_cannot_add(
        self,
        async_client: AsyncClient,
        partner_headers: dict,
        project: Project,
        read_partner: User,
    ):
        response = await _add_event(async_client, project, partner_headers)

        assert response.status_code == 403

    async def test_list_in_date_order_with_filters(
        self, async_client: AsyncClient, owner_headers: dict, project: Project
    ):
        await _add_event(async_client, project, owner_headers, title="Handover", date="2026-09-01")
        await _add_event(
            async_client, project, owner_headers, title="Council visit", date="2026-02-01",
            category="inspection",
        )
        await _add_event(async_client, project, owner_headers, title="Frame up", date="2026-05-01")

        url = f"/api/v1/projects/{project.id}/events"
        everything = await async_client.get(url, headers=owner_headers)
        ranged = await async_client.get(
            url, params={"start_date": "2026-03-01", "end_date": "2026-06-30"}, headers=owner_headers
        )
        inspections = await async_client.get(
            url, params={"category": "inspection"}, headers=owner_headers
        )

        assert [e["title"] for e in everything.json()["events"]] == [
            "Council visit",
            "Frame up",
            "Handover",
        ]
        assert [e["title"] for e in ranged.json()["events"]] == ["Frame up"]
        assert inspections.json()["total"] == 1

    async def test_update_and_delete(
        self,
        async_client: AsyncClient,
        owner_headers: dict,
        partner_headers: dict,
        project: Project,
        read_partner: User,
    ):
        event_id = (await _add_event(async_client, project, owner_headers)).json()["id"]

        denied = await async_client.put(
            f"/api/v1/events/{event_id}", json={"title": "x"}, headers=partner_headers
        )
        assert denied.status_code == 403

        updated = await async_client.put(
            f"/api/v1/events/{event_id}", json={"title": "Slab cured"}, headers=owner_headers
        )
        assert updated.json()["title"] == "Slab cured"

        deleted = await async_client.delete(f"/api/v1/events/{event_id}", headers=owner_headers)
        assert deleted.status_code == 204

        listing = await async_client.get(
            f"/api/v1/projects/{project.id}/events", headers=owner_headers
        )
        assert listing.json()["total"] == 0

    @pytest.mark.parametrize("field", ["title", "date", "category"])
    async def test_null_for_required_field_rejected(
        self, async_client: AsyncClient, owner_headers: dict, project: Project, field: str
    ):
        event_id = (await _add_event(async_client, project, owner_headers)).json()["id"]

        response = await async_client.put(
            f"/api/v1/events/{event_id}", json={field: None}, headers=owner_headers
        )

        assert response.status_code == 400
        assert response.json()["code"] == "BAD_REQUEST"
        assert listing.json()["total"] == 0


class TestDocuments:
    async def test_register_and_notify(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        owner_headers: dict,
        project: Project,
        read_partner: User,
    ):
        response = await async_client.post(
            f"/api/v1/projects/{project.id}/documents", json=PDF, headers=owner_headers
        )

        assert response.status_code == 201
        assert response.json()["mime_type"] == "application/pdf"
        assert await _messages_for(db_session, read_partner) == [
            "New document uploaded: permit.pdf in Harbour Street Renovation"
        ]

    async def test_oversized_file_rejected(
        self, async_client: AsyncClient, owner_headers: dict, project: Project
    ):
        response = await async_client.post(
            f"/api/v1/projects/{project.id}/documents",
            json={**PDF, "size_bytes": 11 * 1024 * 1024},
            headers=owner_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "File exceeds the 10 MB limit"

    @pytest.mark.parametrize(
        "override",
        [
            {"mime_type": "application/x-msdownload"},
            {"blob_url": "http://blobs.example.com/permit.pdf"},
        ],
    )
    async def test_invalid_metadata_rejected(
        self, async_client: AsyncClient, owner_headers: dict, project: Project, override: dict
    ):
        response = await async_client.post(
            f"/api/v1/projects/{project.id}/documents",
            json={**PDF, **override},
            headers=owner_headers,
        )

        assert response.status_code == 400
        assert response.json()["code"] == "BAD_REQUEST"

    async def test_list_and_delete(
        self,
        async_client: AsyncClient,
        owner_headers: dict,
        partner_headers: dict,
        project: Project,
        read_partner: User,
    ):
        url = f"/api/v1/projects/{project.id}/documents"
        document_id = (await async_client.post(url, json=PDF, headers=owner_headers)).json()["id"]
        await async_client.post(
            url,
            json={**PDF, "file_name": "site.jpg", "mime_type": "image/jpeg", "category": "photo"},
            headers=owner_headers,
        )

        photos = await async_client.get(url, params={"category": "photo"}, headers=partner_headers)
        assert [d["file_name"] for d in photos.json()["documents"]] == ["site.jpg"]

        denied = await async_client.delete(f"/api/v1/documents/{document_id}", headers=partner_headers)
        assert denied.status_code == 403

        deleted = await async_client.delete(f"/api/v1/documents/{document_id}", headers=owner_headers)
        assert deleted.status_code == 204
        assert (await async_client.get(url, headers=owner_headers)).json()["total"] == 1
