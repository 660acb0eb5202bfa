"""
Partner access and invitation schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from core.domain.access import Permission


class PartnerInviteRequest(BaseModel):
    email: EmailStr
    permission: Permission = Permission.READ


class ProjectAccessResponse(BaseModel):
    """A partner grant or invitation, with its derived status."""

    id: str
    project_id: str
    user_id: Optional[str] = None
    invited_email: str
    permission: str
    status: str
    invited_by: Optional[str] = None
    invited_at: datetime
    expires_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    days_remaining: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class PartnerInviteResponse(BaseModel):
    """Outcome of an invite request.

    ``status`` is one of already_partner, pending_invitation, reinvite_sent
    or invitation_sent.
    """

    status: str
    message: str
    access: Optional[ProjectAccessResponse] = None
    access_id: Optional[str] = None
    can_resend: bool = False


class InvitationListResponse(BaseModel):
    invitations: list[ProjectAccessResponse]
    total: int


class InvitationDetailsResponse(BaseModel):
    """Public invitation preview shown before acceptance."""

    email: str
    project_id: str
    project_name: Optional[str] = None
    inviter_name: Optional[str] = None
    permission: str
    expires_at: Optional[datetime] = None
    user_exists: bool


class AcceptInvitationRequest(BaseModel):
    token: str = Field(..., min_length=1, max_length=255)
    user_id: str


class AcceptInvitationResponse(BaseModel):
    success: bool
    message: str
    project_id: str


class ActionResponse(BaseModel):
    success: bool
    message: str


class ResendInvitationResponse(ActionResponse):
    access: ProjectAccessResponse
