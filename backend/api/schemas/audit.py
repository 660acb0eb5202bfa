"""
Audit log schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class AccessAttemptResponse(BaseModel):
    id: str
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    user_role: Optional[str] = None
    role: Optional[str] = None
    permission: Optional[str] = None
    required_permission: Optional[str] = None
    success: bool
    reason: Optional[str] = None
    ip_address: Optional[str] = None
    timestamp: datetime


class AccessAttemptListResponse(BaseModel):
    access_attempts: list[AccessAttemptResponse]
    total: int
    limit: int
    offset: int
