"""
Partner access and invitation API routes.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.middleware.rate_limit import get_rate_limit, limiter
from api.routes.auth import get_current_user
from api.schemas.partner import (
    AcceptInvitationRequest,
    AcceptInvitationResponse,
    ActionResponse,
    InvitationDetailsResponse,
    InvitationListResponse,
    PartnerInviteRequest,
    PartnerInviteResponse,
    ProjectAccessResponse,
    ResendInvitationResponse,
)
from infrastructure.database.connection import get_db
from infrastructure.database.models.user import User
from services import invitations

router = APIRouter(tags=["Partners"])


# =============================================================================
# Owner operations
# =============================================================================


@router.post(
    "/projects/{project_id}/partners/invitations",
    response_model=PartnerInviteResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(get_rate_limit("invite"))
async def invite_partner(
    request: Request,
    project_id: str,
    data: PartnerInviteRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Invite a partner to a project by email.

    Returns ``already_partner`` or ``pending_invitation`` without creating a
    new row when the invitee already has live access or a live invitation.
    """
    result = await invitations.invite_partner(
        db, current_user, project_id, data.email, data.permission, request
    )
    access = result.pop("access", None)
    return PartnerInviteResponse(
        **result,
        access=ProjectAccessResponse.model_validate(access) if access else None,
    )


@router.get(
    "/projects/{project_id}/partners/invitations",
    response_model=InvitationListResponse,
)
async def list_invitations(
    request: Request,
    project_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """List partners and invitations with their derived status."""
    rows = await invitations.list_invitations(db, current_user, project_id, request)
    return InvitationListResponse(
        invitations=[ProjectAccessResponse.model_validate(row) for row in rows],
        total=len(rows),
    )


@router.delete(
    "/projects/{project_id}/partners/{access_id}",
    response_model=ActionResponse,
)
async def revoke_access(
    request: Request,
    project_id: str,
    access_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Revoke a partner's access. The row is kept for the audit trail."""
    return await invitations.revoke_access(db, current_user, project_id, access_id, request)


@router.post(
    "/partners/invitations/{access_id}/resend",
    response_model=ResendInvitationResponse,
)
@limiter.limit(get_rate_limit("invite"))
async def resend_invitation(
    request: Request,
    access_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    result = await invitations.resend_invitation(db, current_user, access_id, request)
    return ResendInvitationResponse(
        success=result["success"],
        message=result["message"],
        access=ProjectAccessResponse.model_validate(result["access"]),
    )


@router.delete(
    "/partners/invitations/{access_id}",
    response_model=ActionResponse,
)
async def cancel_invitation(
    request: Request,
    access_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await invitations.cancel_invitation(db, current_user, access_id, request)


# =============================================================================
# Invitee operations
# =============================================================================


@router.get(
    "/partners/invitations/token/{token}",
    response_model=InvitationDetailsResponse,
)
async def get_invitation_details(
    token: str,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Public preview for the invitation landing page. No auth required."""
    return await invitations.get_invitation_details(db, token)


@router.post(
    "/partners/invitations/accept",
    response_model=AcceptInvitationResponse,
)
@limiter.limit(get_rate_limit("accept_invitation"))
async def accept_invitation(
    request: Request,
    data: AcceptInvitationRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Accept an invitation for a specific user, typically right after sign-up.

    The user's email must match the invited email.
    """
    return await invitations.accept_invitation(db, data.token, data.user_id, request)


@router.post(
    "/partners/invitations/token/{token}/auto-accept",
    response_model=AcceptInvitationResponse,
)
@limiter.limit(get_rate_limit("accept_invitation"))
async def auto_accept_invitation(
    request: Request,
    token: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Accept an invitation as the logged-in user."""
    return await invitations.auto_accept_invitation(db, current_user, token, request)
