# Domain Entities
# Pure business objects with no external dependencies
from .access import (
    AccessGrant,
    AccessRole,
    OwnerGrant,
    PartnerGrant,
    Permission,
    PermissionLevel,
    describe,
    has_write_access,
    is_owner,
    permission_level,
    satisfies,
)

__all__ = [
    "AccessGrant",
    "AccessRole",
    "OwnerGrant",
    "PartnerGrant",
    "Permission",
    "PermissionLevel",
    "describe",
    "has_write_access",
    "is_owner",
    "permission_level",
    "satisfies",
]
