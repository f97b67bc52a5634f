"""
Tests for role-based workspace authorization.

These tests verify:
1. The fixed role -> capability table
2. Non-members are denied everything
3. require() raises ForbiddenError on deny
"""

import pytest

from fluxo.models import WorkspaceRole
from fluxo.services import Capability, ForbiddenError, WorkspaceService, authorize, require
from fluxo.services.rbac import Decision, capabilities_for

from conftest import create_user


class TestCapabilityTable:
    """Each role maps to a fixed capability set."""

    def test_owner_has_every_capability(self):
        assert capabilities_for(WorkspaceRole.OWNER) == frozenset(Capability)

    def test_admin_cannot_delete_workspace(self):
        caps = capabilities_for(WorkspaceRole.ADMIN)
        assert Capability.MANAGE_WORKSPACE in caps
        assert Capability.MANAGE_MEMBERS in caps
        assert Capability.DELETE_WORKSPACE not in caps

    @pytest.mark.parametrize("role", [WorkspaceRole.MEMBER, WorkspaceRole.VIEWER])
    def test_member_and_viewer_only_view(self, role):
        assert capabilities_for(role) == frozenset({Capability.VIEW_ONLY})


class TestAuthorize:
    """authorize() against real memberships."""

    async def test_owner_may_delete(self, workspace, alice):
        result = authorize(workspace, alice.id, Capability.DELETE_WORKSPACE)

        assert result.allowed
        assert result.decision is Decision.ALLOW
        assert result.role == WorkspaceRole.OWNER

    async def test_non_member_is_denied(self, workspace, bob):
        result = authorize(workspace, bob.id, Capability.VIEW_ONLY)

        assert not result.allowed
        assert result.role is None

    async def test_admin_is_denied_delete(self, session, workspace, bob):
        await WorkspaceService(session).add_member(workspace, bob.id, WorkspaceRole.ADMIN)

        assert authorize(workspace, bob.id, Capability.MANAGE_MEMBERS).allowed
        denied = authorize(workspace, bob.id, Capability.DELETE_WORKSPACE)
        assert denied.decision is Decision.DENY
        assert denied.role == WorkspaceRole.ADMIN

    async def test_viewer_cannot_manage(self, session, workspace):
        viewer = await create_user(session, "viewer@acme.com")
        await WorkspaceService(session).add_member(workspace, viewer.id, WorkspaceRole.VIEWER)

        assert authorize(workspace, viewer.id, Capability.VIEW_ONLY).allowed
        assert not authorize(workspace, viewer.id, Capability.MANAGE_WORKSPACE).allowed

    async def test_require_raises_forbidden(self, workspace, bob):
        with pytest.raises(ForbiddenError):
            require(workspace, bob.id, Capability.VIEW_ONLY)
