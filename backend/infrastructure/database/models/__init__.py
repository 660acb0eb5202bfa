"""
SQLAlchemy database models.
"""

from .audit_log import AuditAction, AuditEntityType, AuditLog
from .base import Base, TimestampMixin
from .comment import Comment, CommentEntityType
from .contact import Contact, ContactCategory
from .cost import Cost, CostCategory
from .document import Document, DocumentCategory
from .event import EventCategory, ProjectEvent
from .notification import Notification, NotificationType
from .notification_preference import DigestFrequency, NotificationPreference, RevokedToken
from .phase import PhaseStatus, ProjectPhase
from .project import (
    AccessPermission,
    InvitationStatus,
    Project,
    ProjectAccess,
    ProjectStatus,
    ProjectType,
)
from .user import User, UserRole, UserStatus
from .vendor_rating import VendorRating

__all__ = [
    "Base",
    "TimestampMixin",
    "User",
    "UserRole",
    "UserStatus",
    "Project",
    "ProjectAccess",
    "ProjectStatus",
    "ProjectType",
    "AccessPermission",
    "InvitationStatus",
    "AuditLog",
    "AuditAction",
    "AuditEntityType",
    "Cost",
    "CostCategory",
    "Contact",
    "ContactCategory",
    "ProjectEvent",
    "EventCategory",
    "Document",
    "DocumentCategory",
    "Notification",
    "NotificationType",
    "NotificationPreference",
    "DigestFrequency",
    "RevokedToken",
    "VendorRating",
    "Comment",
    "CommentEntityType",
    "ProjectPhase",
    "PhaseStatus",
]
