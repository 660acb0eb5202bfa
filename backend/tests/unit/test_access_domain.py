"""
Unit tests for the project access domain model.

Covers the permission matrix:
- OWNER: read, write, delete and invite
- PARTNER (write): read and write
- PARTNER (read): read only
"""

import pytest

from core.domain.access import (
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


class TestSatisfies:
    """Tests for the grant/requirement check."""

    @pytest.mark.parametrize("required", [Permission.READ, Permission.WRITE])
    def test_owner_satisfies_everything(self, required):
        assert satisfies(OwnerGrant(), required) is True

    def test_write_partner_satisfies_read_and_write(self):
        grant = PartnerGrant(Permission.WRITE)
        assert satisfies(grant, Permission.READ) is True
        assert satisfies(grant, Permission.WRITE) is True

    def test_read_partner_cannot_write(self):
        grant = PartnerGrant(Permission.READ)
        assert satisfies(grant, Permission.READ) is True
        assert satisfies(grant, Permission.WRITE) is False


class TestGrantHelpers:
    def test_has_write_access(self):
        assert has_write_access(OwnerGrant()) is True
        assert has_write_access(PartnerGrant(Permission.WRITE)) is True
        assert has_write_access(PartnerGrant(Permission.READ)) is False

    def test_only_owner_grant_is_owner(self):
        """A write partner is still not an owner."""
        assert is_owner(OwnerGrant()) is True
        assert is_owner(PartnerGrant(Permission.WRITE)) is False

    def test_roles(self):
        assert OwnerGrant().role == AccessRole.OWNER
        assert OwnerGrant().permission == Permission.WRITE
        assert PartnerGrant(Permission.READ).role == AccessRole.PARTNER

    def test_grants_are_immutable(self):
        grant = PartnerGrant(Permission.READ)
        with pytest.raises(Exception):
            grant.permission = Permission.WRITE


class TestPermissionLevel:
    def test_no_grant_is_none(self):
        assert permission_level(None) == PermissionLevel.NONE

    def test_levels(self):
        assert permission_level(OwnerGrant()) == PermissionLevel.WRITE
        assert permission_level(PartnerGrant(Permission.WRITE)) == PermissionLevel.WRITE
        assert permission_level(PartnerGrant(Permission.READ)) == PermissionLevel.READ


class TestDescribe:
    def test_owner_descriptor(self):
        assert describe(OwnerGrant()) == {"role": "owner", "permission": "write"}

    def test_partner_descriptor(self):
        assert describe(PartnerGrant(Permission.READ)) == {
            "role": "partner",
            "permission": "read",
        }
