"""
Tests for the Identity Service - accounts, approval and administration.

These tests verify:
1. REGISTER: new accounts are pending, owners are told
2. LOGIN: credentials are checked before approval
3. APPROVE: pending -> approved exactly once
4. ADMIN: only the platform Owner administers accounts
5. DELETE: owned workspaces are handed over, the last Owner stays
"""

from uuid import uuid4

import pytest

from fluxo.core.security import FirebaseTokenPayload, verify_password
from fluxo.models import PlatformRole, WorkspaceRole
from fluxo.services import (
    AccountPendingApprovalError,
    CannotRemoveOwnerError,
    ConflictError,
    ForbiddenError,
    IdentityService,
    InvalidCredentialsError,
    InvalidStateTransitionError,
    NotFoundError,
    NotificationCenter,
    WorkspaceService,
)

from conftest import PASSWORD, create_user, create_workspace


@pytest.fixture
def identity(session, mail_sender) -> IdentityService:
    return IdentityService(session, mail_sender=mail_sender)


# =============================================================================
# TEST: REGISTER
# =============================================================================


class TestRegister:

    async def test_new_account_is_pending(self, session, identity, owner):
        user = await identity.register("Dana", "Dana@Example.com", "s3cret-pass")

        assert user.email == "dana@example.com"
        assert user.is_approved is False
        assert user.platform_role == PlatformRole.MEMBER
        assert verify_password("s3cret-pass", user.password_hash)
        assert user.private_workspace_id is not None

        page = await NotificationCenter(session).list(owner.id)
        assert [n.title for n in page.items] == ["New user registration"]

    async def test_duplicate_email(self, identity, alice):
        with pytest.raises(ConflictError):
            await identity.register("Other Alice", "ALICE@acme.com", "whatever1")

    async def test_bootstrap_owner_is_approved(self, identity):
        user = await identity.register("Root", "owner@fluxo.io", "s3cret-pass")

        assert user.is_approved is True
        assert user.platform_role == PlatformRole.OWNER

    async def test_external_identity_is_registered_once(self, identity):
        payload = FirebaseTokenPayload(uid="fb-123", email="Erin@Example.com", name="Erin")

        first = await identity.resolve_external(payload)
        second = await identity.resolve_external(payload)

        assert first.id == second.id
        assert first.auth_provider == "firebase"
        assert first.email == "erin@example.com"
        assert first.is_approved is False

    async def test_external_identity_links_existing_account(self, identity, alice):
        payload = FirebaseTokenPayload(uid="fb-alice", email="alice@acme.com", picture="https://img/a.png")

        user = await identity.resolve_external(payload)

        assert user.id == alice.id
        assert user.auth_provider_id == "fb-alice"
        assert user.avatar_url == "https://img/a.png"


# =============================================================================
# TEST: LOGIN
# =============================================================================


class TestAuthenticate:

    async def test_login(self, identity, alice):
        user = await identity.authenticate("alice@acme.com", PASSWORD)

        assert user.id == alice.id
        assert user.last_login_at is not None

    async def test_wrong_password(self, identity, alice):
        with pytest.raises(InvalidCredentialsError):
            await identity.authenticate("alice@acme.com", "nope")

    async def test_unknown_email(self, identity):
        with pytest.raises(InvalidCredentialsError):
            await identity.authenticate("nobody@acme.com", PASSWORD)

    async def test_pending_account_is_refused(self, session, identity):
        await create_user(session, "pending@acme.com", approved=False)

        with pytest.raises(AccountPendingApprovalError):
            await identity.authenticate("pending@acme.com", PASSWORD)

    async def test_pending_check_comes_after_password(self, session, identity):
        await create_user(session, "pending@acme.com", approved=False)

        with pytest.raises(InvalidCredentialsError):
            await identity.authenticate("pending@acme.com", "wrong")


# =============================================================================
# TEST: APPROVAL AND ADMINISTRATION
# =============================================================================


class TestAdministration:

    async def test_approve_user(self, session, identity, mail_sender, owner):
        pending = await create_user(session, "pending@acme.com", approved=False)

        result = await identity.approve_user(owner, pending.id)

        assert result.changed is True
        assert result.user.is_approved is True
        assert result.warnings == []
        [mail] = mail_sender.to("pending@acme.com")
        assert mail["template"] == "account_approved"
        titles = [n.title for n in (await NotificationCenter(session).list(pending.id)).items]
        assert titles == ["Account approved"]

    async def test_approve_twice_is_a_no_op(self, session, identity, mail_sender, owner):
        pending = await create_user(session, "pending@acme.com", approved=False)
        await identity.approve_user(owner, pending.id)

        again = await identity.approve_user(owner, pending.id)

        assert again.changed is False
        assert len(mail_sender.to("pending@acme.com")) == 1

    async def test_approval_mail_failure_is_a_warning(self, session, failing_mail_sender, owner):
        pending = await create_user(session, "pending@acme.com", approved=False)

        result = await IdentityService(session, mail_sender=failing_mail_sender).approve_user(
            owner, pending.id
        )

        assert result.user.is_approved is True
        assert len(result.warnings) == 1

    async def test_only_owner_administers(self, identity, alice, bob):
        with pytest.raises(ForbiddenError):
            await identity.list_users(alice)
        with pytest.raises(ForbiddenError):
            await identity.approve_user(alice, bob.id)

    async def test_list_users_owner_first(self, identity, owner, alice, bob):
        users = await identity.list_users(owner)

        assert users[0].id == owner.id
        assert {u.id for u in users} == {owner.id, alice.id, bob.id}

    async def test_change_role(self, identity, owner, alice):
        user = await identity.change_role(owner, alice.id, PlatformRole.ADMIN)
        assert user.platform_role == PlatformRole.ADMIN

    async def test_owner_role_is_fixed(self, identity, owner, alice):
        with pytest.raises(InvalidStateTransitionError):
            await identity.change_role(owner, owner.id, PlatformRole.MEMBER)
        with pytest.raises(InvalidStateTransitionError):
            await identity.change_role(owner, alice.id, PlatformRole.OWNER)

    async def test_unknown_user(self, identity, owner):
        with pytest.raises(NotFoundError):
            await identity.approve_user(owner, uuid4())


# =============================================================================
# TEST: DELETE
# =============================================================================


class TestDeleteUser:

    async def test_sole_owner_cannot_be_deleted(self, identity, owner):
        with pytest.raises(CannotRemoveOwnerError):
            await identity.delete_user(owner, owner.id)

    async def test_delete_hands_over_workspaces(self, session, identity, owner, alice, bob):
        shared = await create_workspace(session, alice, "Shared")
        workspaces = WorkspaceService(session)
        await workspaces.add_member(shared, bob.id, WorkspaceRole.ADMIN)

        await identity.delete_user(owner, alice.id)

        shared = await workspaces.load(shared.id)
        assert shared.owner_id == bob.id
        assert [(m.user_id, m.role) for m in shared.members] == [(bob.id, WorkspaceRole.OWNER)]
        assert await identity.get_by_email("alice@acme.com") is None

    async def test_successive_deletes_in_one_session(self, session, identity, owner, alice, bob):
        shared = await create_workspace(session, alice, "Shared")
        carol = await create_user(session, "carol@acme.com", name="Carol")
        workspaces = WorkspaceService(session)
        await workspaces.add_member(shared, bob.id, WorkspaceRole.ADMIN)
        await workspaces.add_member(shared, carol.id, WorkspaceRole.MEMBER)

        # bob's membership is removed in bulk; alice's hand-over must not pick it
        await identity.delete_user(owner, bob.id)
        await identity.delete_user(owner, alice.id)

        shared = await workspaces.load(shared.id)
        assert shared.owner_id == carol.id
        assert [(m.user_id, m.role) for m in shared.members] == [(carol.id, WorkspaceRole.OWNER)]

    async def test_workspace_left_empty_is_deleted(self, session, identity, owner, alice, bob):
        shared = await create_workspace(session, alice, "Shared")
        workspaces = WorkspaceService(session)
        await workspaces.add_member(shared, bob.id, WorkspaceRole.ADMIN)

        await identity.delete_user(owner, bob.id)
        await identity.delete_user(owner, alice.id)

        with pytest.raises(NotFoundError):
            await workspaces.load(shared.id)
