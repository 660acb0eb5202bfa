"""
Integration tests for partner invitations and access.

Tests cover the invitation lifecycle:
- Inviting by email, including duplicate and re-invite outcomes
- Public invitation preview
- Accepting (auto-accept and explicit user binding)
- Expired, already-accepted and mismatched-email invitations
- Revoking access, resending and cancelling invitations
"""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models import Notification, Project, ProjectAccess, User

pytestmark = pytest.mark.asyncio


async def _invite(
    client: AsyncClient, project: Project, headers: dict, email: str, permission: str = "read"
):
    return await client.post(
        f"/api/v1/projects/{project.id}/partners/invitations",
        json={"email": email, "permission": permission},
        headers=headers,
    )


async def _token(db: AsyncSession, access_id: str) -> str:
    access = await db.get(ProjectAccess, access_id)
    await db.refresh(access)
    return access.invitation_token


class TestInvitePartner:
    """Tests for POST /projects/{id}/partners/invitations."""

    async def test_invite_new_email(
        self, async_client: AsyncClient, owner_headers: dict, project: Project
    ):
        with patch(
            "services.invitations.email_service.send_partner_invitation_email",
            new_callable=AsyncMock,
        ) as send:
            response = await _invite(
                async_client, project, owner_headers, "New.Partner@Example.com", "write"
            )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "invitation_sent"
        assert data["access"]["invited_email"] == "new.partner@example.com"
        assert data["access"]["permission"] == "write"
        assert data["access"]["status"] == "pending"
        assert data["access"]["days_remaining"] == 7
        send.assert_awaited_once()
        assert send.await_args.kwargs["to_email"] == "new.partner@example.com"

    async def test_duplicate_invite_returns_pending(
        self, async_client: AsyncClient, owner_headers: dict, project: Project
    ):
        first = await _invite(async_client, project, owner_headers, "dup@example.com")
        second = await _invite(async_client, project, owner_headers, "dup@example.com")

        data = second.json()
        assert data["status"] == "pending_invitation"
        assert data["can_resend"] is True
        assert data["access_id"] == first.json()["access"]["id"]

    async def test_invite_existing_partner(
        self,
        async_client: AsyncClient,
        owner_headers: dict,
        project: Project,
        read_partner: User,
    ):
        response = await _invite(async_client, project, owner_headers, read_partner.email)

        assert response.json()["status"] == "already_partner"

    async def test_invite_self_rejected(
        self, async_client: AsyncClient, owner: User, owner_headers: dict, project: Project
    ):
        response = await _invite(async_client, project, owner_headers, owner.email)

        assert response.status_code == 400

    async def test_write_partner_cannot_invite(
        self,
        async_client: AsyncClient,
        partner_headers: dict,
        project: Project,
        write_partner: User,
    ):
        response = await _invite(async_client, project, partner_headers, "friend@example.com")

        assert response.status_code == 403
        assert response.json()["detail"] == "Only project owners can invite partners"

    async def test_outsider_cannot_invite(
        self, async_client: AsyncClient, outsider_headers: dict, project: Project
    ):
        response = await _invite(async_client, project, outsider_headers, "friend@example.com")

        assert response.status_code == 403

    async def test_registered_invitee_is_notified(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        owner_headers: dict,
        partner: User,
        project: Project,
    ):
        await _invite(async_client, project, owner_headers, partner.email)

        result = await db_session.execute(
            select(Notification).where(Notification.user_id == partner.id)
        )
        notification = result.scalars().one()
        assert notification.type == "partner_invited"
        assert notification.message == (
            "Olivia Owner invited you to collaborate on Harbour Street Renovation"
        )


class TestAcceptInvitation:
    """Tests for the invitee side of the lifecycle."""

    async def test_preview_is_public(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        owner_headers: dict,
        partner: User,
        project: Project,
    ):
        invite = await _invite(async_client, project, owner_headers, partner.email)
        token = await _token(db_session, invite.json()["access"]["id"])

        response = await async_client.get(f"/api/v1/partners/invitations/token/{token}")

        assert response.status_code == 200
        data = response.json()
        assert data["project_name"] == project.name
        assert data["inviter_name"] == "Olivia Owner"
        assert data["user_exists"] is True

    async def test_auto_accept_grants_access(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        owner_headers: dict,
        partner: User,
        partner_headers: dict,
        project: Project,
    ):
        invite = await _invite(async_client, project, owner_headers, partner.email, "write")
        token = await _token(db_session, invite.json()["access"]["id"])

        before = await async_client.get(f"/api/v1/projects/{project.id}", headers=partner_headers)
        assert before.status_code == 403

        response = await async_client.post(
            f"/api/v1/partners/invitations/token/{token}/auto-accept", headers=partner_headers
        )
        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Invitation accepted successfully.",
            "project_id": project.id,
        }

        after = await async_client.get(f"/api/v1/projects/{project.id}", headers=partner_headers)
        assert after.status_code == 200
        assert after.json()["access"] == {"role": "partner", "permission": "write"}

    async def test_token_single_use(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        owner_headers: dict,
        partner: User,
        partner_headers: dict,
        project: Project,
    ):
        invite = await _invite(async_client, project, owner_headers, partner.email)
        token = await _token(db_session, invite.json()["access"]["id"])
        url = f"/api/v1/partners/invitations/token/{token}/auto-accept"

        assert (await async_client.post(url, headers=partner_headers)).status_code == 200
        second = await async_client.post(url, headers=partner_headers)

        assert second.status_code == 404
        assert second.json()["detail"] == "Invalid invitation link."

    async def test_accept_with_user_id(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        owner_headers: dict,
        partner: User,
        project: Project,
    ):
        invite = await _invite(async_client, project, owner_headers, partner.email)
        token = await _token(db_session, invite.json()["access"]["id"])

        response = await async_client.post(
            "/api/v1/partners/invitations/accept",
            json={"token": token, "user_id": partner.id},
        )

        assert response.status_code == 200
        access = await db_session.get(ProjectAccess, invite.json()["access"]["id"])
        assert access.user_id == partner.id
        assert access.accepted_at is not None
        assert access.invitation_token is None

    async def test_email_mismatch_rejected(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        owner_headers: dict,
        partner: User,
        outsider_headers: dict,
        project: Project,
    ):
        invite = await _invite(async_client, project, owner_headers, partner.email)
        token = await _token(db_session, invite.json()["access"]["id"])

        response = await async_client.post(
            f"/api/v1/partners/invitations/token/{token}/auto-accept", headers=outsider_headers
        )

        assert response.status_code == 400
        assert "different email address" in response.json()["detail"]

    async def test_expired_invitation(
        self,
        async_client: AsyncClient,
        partner: User,
        partner_headers: dict,
        project: Project,
        grant_access,
    ):
        access = await grant_access(project, partner, accepted=False, expired=True)

        accept = await async_client.post(
            f"/api/v1/partners/invitations/token/{access.invitation_token}/auto-accept",
            headers=partner_headers,
        )
        assert accept.status_code == 400
        assert "expired" in accept.json()["detail"]

        view = await async_client.get(f"/api/v1/projects/{project.id}", headers=partner_headers)
        assert view.status_code == 403
        assert view.json()["detail"] == "Your invitation to this project has expired"

    async def test_unknown_token(self, async_client: AsyncClient):
        response = await async_client.get("/api/v1/partners/invitations/token/nope")

        assert response.status_code == 404


class TestManageInvitations:
    """Owner-side list, revoke, resend and cancel."""

    async def test_list_shows_status(
        self,
        async_client: AsyncClient,
        owner_headers: dict,
        partner: User,
        project: Project,
        grant_access,
    ):
        await grant_access(project, partner, permission="write")
        await grant_access(project, email="pending@example.com", accepted=False)

        response = await async_client.get(
            f"/api/v1/projects/{project.id}/partners/invitations", headers=owner_headers
        )

        assert response.status_code == 200
        statuses = {row["invited_email"]: row["status"] for row in response.json()["invitations"]}
        assert statuses == {"partner@example.com": "accepted", "pending@example.com": "pending"}

    async def test_fresh_invitation_lists_full_week(
        self, async_client: AsyncClient, owner_headers: dict, project: Project
    ):
        await _invite(async_client, project, owner_headers, "week@example.com")

        response = await async_client.get(
            f"/api/v1/projects/{project.id}/partners/invitations", headers=owner_headers
        )

        assert [row["days_remaining"] for row in response.json()["invitations"]] == [7]

    async def test_partner_cannot_list(
        self,
        async_client: AsyncClient,
        partner_headers: dict,
        project: Project,
        write_partner: User,
    ):
        response = await async_client.get(
            f"/api/v1/projects/{project.id}/partners/invitations", headers=partner_headers
        )

        assert response.status_code == 403

    async def test_revoke_removes_access(
        self,
        async_client: AsyncClient,
        owner_headers: dict,
        partner: User,
        partner_headers: dict,
        project: Project,
        grant_access,
    ):
        access = await grant_access(project, partner, permission="write")

        response = await async_client.delete(
            f"/api/v1/projects/{project.id}/partners/{access.id}", headers=owner_headers
        )
        assert response.status_code == 200

        view = await async_client.get(f"/api/v1/projects/{project.id}", headers=partner_headers)
        assert view.status_code == 403

    async def test_reinvite_after_revoke(
        self,
        async_client: AsyncClient,
        owner_headers: dict,
        partner: User,
        project: Project,
        grant_access,
    ):
        access = await grant_access(project, partner)
        await async_client.delete(
            f"/api/v1/projects/{project.id}/partners/{access.id}", headers=owner_headers
        )

        response = await _invite(async_client, project, owner_headers, partner.email)

        assert response.status_code == 201
        assert response.json()["status"] == "reinvite_sent"
        assert response.json()["access"]["id"] != access.id

    async def test_resend_rotates_token(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        owner_headers: dict,
        partner: User,
        partner_headers: dict,
        project: Project,
        grant_access,
    ):
        access = await grant_access(project, partner, accepted=False, expired=True)
        old_token = access.invitation_token

        response = await async_client.post(
            f"/api/v1/partners/invitations/{access.id}/resend", headers=owner_headers
        )
        assert response.status_code == 200
        assert response.json()["access"]["status"] == "pending"

        new_token = await _token(db_session, access.id)
        assert new_token != old_token

        stale = await async_client.get(f"/api/v1/partners/invitations/token/{old_token}")
        assert stale.status_code == 404

        accept = await async_client.post(
            f"/api/v1/partners/invitations/token/{new_token}/auto-accept",
            headers=partner_headers,
        )
        assert accept.status_code == 200

    async def test_cannot_resend_accepted(
        self,
        async_client: AsyncClient,
        owner_headers: dict,
        partner: User,
        project: Project,
        grant_access,
    ):
        access = await grant_access(project, partner)

        response = await async_client.post(
            f"/api/v1/partners/invitations/{access.id}/resend", headers=owner_headers
        )

        assert response.status_code == 400

    async def test_cancel_pending(
        self,
        async_client: AsyncClient,
        owner_headers: dict,
        project: Project,
        grant_access,
    ):
        access = await grant_access(project, email="pending@example.com", accepted=False)

        response = await async_client.delete(
            f"/api/v1/partners/invitations/{access.id}", headers=owner_headers
        )
        assert response.status_code == 200

        listing = await async_client.get(
            f"/api/v1/projects/{project.id}/partners/invitations", headers=owner_headers
        )
        assert listing.json()["total"] == 0

        preview = await async_client.get(
            f"/api/v1/partners/invitations/token/{access.invitation_token}"
        )
        assert preview.status_code == 404

    async def test_cannot_cancel_accepted(
        self,
        async_client: AsyncClient,
        owner_headers: dict,
        partner: User,
        project: Project,
        grant_access,
    ):
        access = await grant_access(project, partner)

        response = await async_client.delete(
            f"/api/v1/partners/invitations/{access.id}", headers=owner_headers
        )

        assert response.status_code == 400
        assert "Use revoke instead" in response.json()["detail"]

    async def test_revoke_unknown_access(
        self, async_client: AsyncClient, owner_headers: dict, project: Project
    ):
        response = await async_client.delete(
            f"/api/v1/projects/{project.id}/partners/not-a-uuid", headers=owner_headers
        )

        assert response.status_code == 404
