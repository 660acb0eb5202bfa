"""Project access domain model.

A caller's standing on a project is either ownership or an accepted partner
grant carrying a permission level. Call sites match on the grant type.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Union


class Permission(str, Enum):
    """Permission level required by, or granted to, a caller."""
    READ = "read"
    WRITE = "write"


class PermissionLevel(str, Enum):
    """Effective permission reported to clients."""
    NONE = "none"
    READ = "read"
    WRITE = "write"


class AccessRole(str, Enum):
    OWNER = "owner"
    PARTNER = "partner"


@dataclass(frozen=True)
class OwnerGrant:
    """Caller owns the project: unconditional read, write, delete and invite."""

    @property
    def role(self) -> AccessRole:
        return AccessRole.OWNER

    @property
    def permission(self) -> Permission:
        return Permission.WRITE


@dataclass(frozen=True)
class PartnerGrant:
    """Caller holds an accepted, non-revoked partner grant."""
    permission: Permission

    @property
    def role(self) -> AccessRole:
        return AccessRole.PARTNER


AccessGrant = Union[OwnerGrant, PartnerGrant]


def satisfies(grant: AccessGrant, required: Permission) -> bool:
    """True when *grant* is enough for an operation needing *required*."""
    match grant:
        case OwnerGrant():
            return True
        case PartnerGrant(permission=permission):
            return required == Permission.READ or permission == Permission.WRITE


def has_write_access(grant: AccessGrant) -> bool:
    return satisfies(grant, Permission.WRITE)


def is_owner(grant: AccessGrant) -> bool:
    match grant:
        case OwnerGrant():
            return True
        case PartnerGrant():
            return False


def permission_level(grant: AccessGrant | None) -> PermissionLevel:
    if grant is None:
        return PermissionLevel.NONE
    return PermissionLevel.WRITE if has_write_access(grant) else PermissionLevel.READ


def describe(grant: AccessGrant) -> dict:
    """Access descriptor returned to clients and written to the audit log."""
    return {"role": grant.role.value, "permission": grant.permission.value}
