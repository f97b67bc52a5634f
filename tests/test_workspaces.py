"""
Tests for the Workspace Service - membership and ownership rules.

These tests verify:
1. CREATE: the creator is the single Owner member
2. ADD MEMBER: idempotent upsert, never a duplicate row
3. PRIVATE: personal workspaces refuse every membership change
4. REMOVE/LEAVE: the Owner can never be removed
5. TRANSFER: ownership moves atomically, old owner becomes Admin
6. DELETE: Owner only, cascades memberships
"""

import pytest
from sqlalchemy import func, select

from fluxo.models import Workspace, WorkspaceMember, WorkspaceRole
from fluxo.services import (
    CannotRemoveOwnerError,
    ForbiddenError,
    InvalidStateTransitionError,
    NotFoundError,
    NotificationCenter,
    WorkspaceIsPrivateError,
    WorkspaceService,
)

from conftest import create_user, create_workspace


async def membership_count(session, workspace_id, user_id=None) -> int:
    query = select(func.count(WorkspaceMember.id)).where(
        WorkspaceMember.workspace_id == workspace_id
    )
    if user_id is not None:
        query = query.where(WorkspaceMember.user_id == user_id)
    return await session.scalar(query)


# =============================================================================
# TEST: CREATE
# =============================================================================


class TestCreateWorkspace:

    async def test_creator_is_owner(self, session, alice):
        workspace = await WorkspaceService(session).create_workspace(alice, "Design")

        assert workspace.owner_id == alice.id
        assert len(workspace.members) == 1
        assert workspace.members[0].user_id == alice.id
        assert workspace.members[0].role == WorkspaceRole.OWNER
        assert workspace.is_private is False

    async def test_invite_code_is_upper_hex(self, session, workspace):
        assert len(workspace.invite_code) == 8
        assert workspace.invite_code == workspace.invite_code.upper()
        int(workspace.invite_code, 16)

    async def test_private_workspace_is_provisioned_once(self, session, alice):
        service = WorkspaceService(session)
        first = await service.ensure_private_workspace(alice)
        second = await service.ensure_private_workspace(alice)

        assert first.id == second.id == alice.private_workspace_id
        assert first.is_private is True

    async def test_list_puts_private_workspace_first(self, session, alice, workspace):
        workspaces = await WorkspaceService(session).list_my_workspaces(alice.id)

        assert [w.id for w in workspaces] == [alice.private_workspace_id, workspace.id]

    async def test_non_member_cannot_view(self, session, workspace, bob):
        with pytest.raises(ForbiddenError):
            await WorkspaceService(session).get_workspace(workspace.id, bob.id)


# =============================================================================
# TEST: ADD MEMBER
# =============================================================================


class TestAddMember:

    async def test_add_member_is_idempotent(self, session, workspace, bob):
        service = WorkspaceService(session)

        first = await service.add_member(workspace, bob.id)
        second = await service.add_member(workspace, bob.id)

        assert first.created is True
        assert second.created is False
        assert first.membership.id == second.membership.id
        assert await membership_count(session, workspace.id, bob.id) == 1
        assert len(workspace.members) == 2

    async def test_repeat_add_keeps_role_without_update_flag(self, session, workspace, bob):
        service = WorkspaceService(session)
        await service.add_member(workspace, bob.id, WorkspaceRole.VIEWER)

        outcome = await service.add_member(workspace, bob.id, WorkspaceRole.ADMIN)

        assert outcome.membership.role == WorkspaceRole.VIEWER

    async def test_update_role_changes_existing_membership(self, session, workspace, bob):
        service = WorkspaceService(session)
        await service.add_member(workspace, bob.id, WorkspaceRole.VIEWER)

        outcome = await service.add_member(workspace, bob.id, WorkspaceRole.ADMIN, update_role=True)

        assert outcome.created is False
        assert outcome.membership.role == WorkspaceRole.ADMIN

    async def test_owner_role_cannot_be_granted(self, session, workspace, bob):
        with pytest.raises(InvalidStateTransitionError):
            await WorkspaceService(session).add_member(workspace, bob.id, WorkspaceRole.OWNER)

    async def test_private_workspace_rejects_members(self, session, alice, bob):
        service = WorkspaceService(session)
        private = await service.load(alice.private_workspace_id)

        with pytest.raises(WorkspaceIsPrivateError):
            await service.add_member(private, bob.id)
        assert await membership_count(session, private.id) == 1

    async def test_admin_add_by_email_notifies(self, session, workspace, alice, bob):
        outcome = await WorkspaceService(session).add_member_by_admin(
            workspace.id, alice.id, email="  BOB@acme.com ", role=WorkspaceRole.MEMBER
        )

        assert outcome.created is True
        page = await NotificationCenter(session).list(bob.id)
        assert [n.title for n in page.items] == ["Added to workspace"]

    async def test_admin_add_unknown_email(self, session, workspace, alice):
        with pytest.raises(NotFoundError):
            await WorkspaceService(session).add_member_by_admin(
                workspace.id, alice.id, email="ghost@acme.com"
            )

    async def test_member_cannot_add_members(self, session, workspace, bob):
        carol = await create_user(session, "carol@acme.com")
        service = WorkspaceService(session)
        await service.add_member(workspace, bob.id, WorkspaceRole.MEMBER)

        with pytest.raises(ForbiddenError):
            await service.add_member_by_admin(workspace.id, bob.id, email=carol.email)


# =============================================================================
# TEST: ROLES, REMOVAL AND LEAVING
# =============================================================================


class TestMembershipChanges:

    async def test_change_member_role(self, session, workspace, alice, bob):
        service = WorkspaceService(session)
        await service.add_member(workspace, bob.id)

        membership = await service.change_member_role(
            workspace.id, alice.id, bob.id, WorkspaceRole.VIEWER
        )

        assert membership.role == WorkspaceRole.VIEWER

    async def test_owner_role_is_not_changeable(self, session, workspace, alice, bob):
        service = WorkspaceService(session)
        await service.add_member(workspace, bob.id, WorkspaceRole.ADMIN)

        with pytest.raises(InvalidStateTransitionError):
            await service.change_member_role(workspace.id, bob.id, alice.id, WorkspaceRole.MEMBER)

    async def test_owner_cannot_be_removed(self, session, workspace, alice, bob):
        service = WorkspaceService(session)
        await service.add_member(workspace, bob.id, WorkspaceRole.ADMIN)

        with pytest.raises(CannotRemoveOwnerError):
            await service.remove_member(workspace.id, bob.id, alice.id)
        assert await membership_count(session, workspace.id, alice.id) == 1

    async def test_remove_member(self, session, workspace, alice, bob):
        service = WorkspaceService(session)
        await service.add_member(workspace, bob.id)

        await service.remove_member(workspace.id, alice.id, bob.id)

        assert await membership_count(session, workspace.id, bob.id) == 0
        page = await NotificationCenter(session).list(bob.id)
        assert page.items[0].title == "Removed from workspace"

    async def test_owner_cannot_leave(self, session, workspace, alice):
        with pytest.raises(CannotRemoveOwnerError):
            await WorkspaceService(session).leave_workspace(workspace.id, alice.id)

    async def test_member_leaves(self, session, workspace, bob):
        service = WorkspaceService(session)
        await service.add_member(workspace, bob.id)

        await service.leave_workspace(workspace.id, bob.id)

        assert await membership_count(session, workspace.id, bob.id) == 0


# =============================================================================
# TEST: OWNERSHIP TRANSFER AND DELETION
# =============================================================================


class TestOwnership:

    async def test_transfer_ownership(self, session, workspace, alice, bob):
        service = WorkspaceService(session)
        await service.add_member(workspace, bob.id)

        updated = await service.transfer_ownership(workspace.id, alice.id, bob.id)

        assert updated.owner_id == bob.id
        roles = {m.user_id: m.role for m in updated.members}
        assert roles == {alice.id: WorkspaceRole.ADMIN, bob.id: WorkspaceRole.OWNER}

    async def test_admin_cannot_transfer(self, session, workspace, bob):
        service = WorkspaceService(session)
        await service.add_member(workspace, bob.id, WorkspaceRole.ADMIN)

        with pytest.raises(ForbiddenError):
            await service.transfer_ownership(workspace.id, bob.id, bob.id)

    async def test_transfer_requires_membership(self, session, workspace, alice, bob):
        with pytest.raises(NotFoundError):
            await WorkspaceService(session).transfer_ownership(workspace.id, alice.id, bob.id)

    async def test_admin_cannot_delete(self, session, workspace, bob):
        service = WorkspaceService(session)
        await service.add_member(workspace, bob.id, WorkspaceRole.ADMIN)

        with pytest.raises(ForbiddenError):
            await service.delete_workspace(workspace.id, bob.id)

    async def test_owner_deletes_workspace_and_memberships(self, session, workspace, alice, bob):
        service = WorkspaceService(session)
        await service.add_member(workspace, bob.id)
        workspace_id = workspace.id

        await service.delete_workspace(workspace_id, alice.id)

        assert await session.get(Workspace, workspace_id) is None
        assert await membership_count(session, workspace_id) == 0

    async def test_private_workspace_cannot_be_deleted(self, session, alice):
        with pytest.raises(InvalidStateTransitionError):
            await WorkspaceService(session).delete_workspace(alice.private_workspace_id, alice.id)

    async def test_release_transfers_to_oldest_member(self, session, alice, bob):
        service = WorkspaceService(session)
        shared = await create_workspace(session, alice, "Shared")
        await create_workspace(session, alice, "Solo")
        await service.add_member(shared, bob.id)

        transferred, deleted = await service.release_owned_workspaces(alice.id)

        assert (transferred, deleted) == (1, 2)  # Solo and the private workspace
        shared = await service.load(shared.id)
        assert shared.owner_id == bob.id
        assert [m.user_id for m in shared.members] == [bob.id]
