"""
Workspace Service: workspaces, memberships and ownership.

Membership rules:
- Every workspace has exactly one Owner membership, held by ``owner_id``
- add_member() is the only way a membership row is created; it is an
  idempotent upsert on (workspace_id, user_id), so concurrent joins by
  code, by token and by an admin cannot create duplicates
- Private workspaces reject every membership change before any
  permission check runs
- Every operation on an existing workspace starts with an explicit
  rbac.require() call
"""

import logging
from dataclasses import dataclass
from typing import Sequence
from uuid import UUID, uuid4

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.security import generate_invite_code
from ..models import (
    Notification,
    NotificationType,
    User,
    Workspace,
    WorkspaceMember,
    WorkspaceRole,
    utcnow,
)
from . import rbac
from .errors import (
    CannotRemoveOwnerError,
    ConflictError,
    InvalidStateTransitionError,
    NotFoundError,
    WorkspaceIsPrivateError,
)
from .notifications import NotificationCenter
from .rbac import Capability


logger = logging.getLogger(__name__)

PRIVATE_WORKSPACE_NAME = "My Workspace"

_INVITE_CODE_ATTEMPTS = 5


# =============================================================================
# DATA TRANSFER OBJECTS
# =============================================================================


@dataclass
class MembershipOutcome:
    """Result of an add_member() call."""
    workspace: Workspace
    membership: WorkspaceMember
    created: bool


def workspace_link(workspace_id: UUID) -> str:
    return f"/workspaces/{workspace_id}"


def _insert_for(session: AsyncSession):
    """Dialect-specific INSERT supporting ON CONFLICT."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise RuntimeError(f"Unsupported database dialect for membership upsert: {dialect}")


# =============================================================================
# WORKSPACE SERVICE
# =============================================================================


class WorkspaceService:
    """Workspace and membership operations within one session."""

    def __init__(
        self,
        session: AsyncSession,
        notifications: NotificationCenter | None = None,
    ):
        self._session = session
        self._notifications = notifications or NotificationCenter(session)

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    async def load(self, workspace_id: UUID) -> Workspace:
        """Fetch a workspace with fresh memberships, or raise NotFoundError."""
        workspace = await self._session.get(
            Workspace, workspace_id, populate_existing=True
        )
        if workspace is None:
            raise NotFoundError("Workspace not found")
        return workspace

    async def _refresh_members(self, workspace: Workspace) -> None:
        await self._session.refresh(workspace, attribute_names=["members"])

    async def _generate_invite_code(self) -> str:
        for _ in range(_INVITE_CODE_ATTEMPTS):
            code = generate_invite_code()
            taken = await self._session.scalar(
                select(Workspace.id).where(Workspace.invite_code == code)
            )
            if taken is None:
                return code
        raise ConflictError("Could not allocate a unique invite code")

    # -------------------------------------------------------------------------
    # Workspaces
    # -------------------------------------------------------------------------

    async def create_workspace(
        self,
        owner: User,
        name: str,
        description: str | None = None,
        is_private: bool = False,
    ) -> Workspace:
        """Create a workspace; the creator becomes its Owner member."""
        workspace = Workspace(
            id=uuid4(),
            name=name,
            description=description,
            owner_id=owner.id,
            invite_code=await self._generate_invite_code(),
            is_private=is_private,
            members=[WorkspaceMember(user=owner, role=WorkspaceRole.OWNER)],
        )
        self._session.add(workspace)
        await self._session.flush()

        logger.info(f"Workspace {workspace.id} created by {owner.id} (private={is_private})")
        return workspace

    async def ensure_private_workspace(self, user: User) -> Workspace:
        """Return the user's personal workspace, provisioning it if missing."""
        if user.private_workspace_id is not None:
            existing = await self._session.get(Workspace, user.private_workspace_id)
            if existing is not None:
                return existing

        workspace = await self.create_workspace(
            owner=user,
            name=PRIVATE_WORKSPACE_NAME,
            description="Your personal workspace",
            is_private=True,
        )
        user.private_workspace_id = workspace.id
        await self._session.flush()
        return workspace

    async def list_my_workspaces(self, user_id: UUID) -> Sequence[Workspace]:
        result = await self._session.execute(
            select(Workspace)
            .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
            .where(WorkspaceMember.user_id == user_id)
            .order_by(Workspace.is_private.desc(), Workspace.created_at.asc())
        )
        return result.scalars().all()

    async def get_workspace(self, workspace_id: UUID, user_id: UUID) -> Workspace:
        workspace = await self.load(workspace_id)
        rbac.require(workspace, user_id, Capability.VIEW_ONLY)
        return workspace

    async def update_workspace(
        self,
        workspace_id: UUID,
        user_id: UUID,
        name: str | None = None,
        description: str | None = None,
    ) -> Workspace:
        workspace = await self.load(workspace_id)
        rbac.require(workspace, user_id, Capability.MANAGE_WORKSPACE)

        if name is not None:
            workspace.name = name
        if description is not None:
            workspace.description = description
        await self._session.flush()
        return workspace

    async def delete_workspace(self, workspace_id: UUID, user_id: UUID) -> None:
        """Delete a workspace with its memberships, invitations and notifications."""
        workspace = await self.load(workspace_id)
        rbac.require(workspace, user_id, Capability.DELETE_WORKSPACE)
        if workspace.is_private:
            raise InvalidStateTransitionError("A private workspace cannot be deleted")

        await self._purge(workspace)
        logger.info(f"Workspace {workspace_id} deleted by {user_id}")

    async def _purge(self, workspace: Workspace) -> None:
        await self._session.execute(
            delete(Notification)
            .where(Notification.workspace_id == workspace.id)
            .execution_options(synchronize_session=False)
        )
        await self._session.delete(workspace)
        await self._session.flush()

    # -------------------------------------------------------------------------
    # Membership
    # -------------------------------------------------------------------------

    async def add_member(
        self,
        workspace: Workspace,
        user_id: UUID,
        role: WorkspaceRole = WorkspaceRole.MEMBER,
        update_role: bool = False,
    ) -> MembershipOutcome:
        """
        Idempotently insert a membership for (workspace, user).

        An existing membership is never duplicated. With ``update_role``
        its role is changed to ``role``, except for the Owner's membership
        which only transfer_ownership() may change.
        """
        if workspace.is_private:
            raise WorkspaceIsPrivateError()

        role = WorkspaceRole(role)
        if role == WorkspaceRole.OWNER:
            raise InvalidStateTransitionError("Ownership can only be transferred")

        new_id = uuid4()
        insert = _insert_for(self._session)
        await self._session.execute(
            insert(WorkspaceMember)
            .values(
                id=new_id,
                workspace_id=workspace.id,
                user_id=user_id,
                role=role,
                joined_at=utcnow(),
            )
            .on_conflict_do_nothing(index_elements=["workspace_id", "user_id"])
        )

        membership = await self._session.scalar(
            select(WorkspaceMember)
            .where(
                WorkspaceMember.workspace_id == workspace.id,
                WorkspaceMember.user_id == user_id,
            )
            .execution_options(populate_existing=True)
        )
        created = membership.id == new_id

        if (
            not created
            and update_role
            and membership.role != WorkspaceRole.OWNER
            and membership.role != role
        ):
            membership.role = role
            await self._session.flush()

        await self._refresh_members(workspace)

        if created:
            logger.info(f"User {user_id} joined workspace {workspace.id} as {role.value}")
        return MembershipOutcome(workspace=workspace, membership=membership, created=created)

    async def add_member_by_admin(
        self,
        workspace_id: UUID,
        acting_user_id: UUID,
        email: str,
        role: WorkspaceRole = WorkspaceRole.MEMBER,
    ) -> MembershipOutcome:
        workspace = await self.load(workspace_id)
        if workspace.is_private:
            raise WorkspaceIsPrivateError()
        rbac.require(workspace, acting_user_id, Capability.MANAGE_MEMBERS)

        user = await self._session.scalar(
            select(User).where(User.email == email.strip().lower())
        )
        if user is None:
            raise NotFoundError("No user with this email")

        outcome = await self.add_member(workspace, user.id, role, update_role=True)
        if outcome.created:
            await self._notifications.notify(
                recipient_id=user.id,
                type=NotificationType.SYSTEM,
                title="Added to workspace",
                message=f"You were added to {workspace.name}",
                link=workspace_link(workspace.id),
                workspace_id=workspace.id,
            )
        return outcome

    def _require_membership(self, workspace: Workspace, user_id: UUID) -> WorkspaceMember:
        membership = workspace.membership_for(user_id)
        if membership is None:
            raise NotFoundError("User is not a member of this workspace")
        return membership

    async def change_member_role(
        self,
        workspace_id: UUID,
        acting_user_id: UUID,
        target_user_id: UUID,
        role: WorkspaceRole,
    ) -> WorkspaceMember:
        workspace = await self.load(workspace_id)
        if workspace.is_private:
            raise WorkspaceIsPrivateError()
        rbac.require(workspace, acting_user_id, Capability.MANAGE_MEMBERS)

        role = WorkspaceRole(role)
        membership = self._require_membership(workspace, target_user_id)
        if membership.role == WorkspaceRole.OWNER or role == WorkspaceRole.OWNER:
            raise InvalidStateTransitionError("Ownership can only be transferred")

        membership.role = role
        await self._session.flush()
        return membership

    async def remove_member(
        self,
        workspace_id: UUID,
        acting_user_id: UUID,
        target_user_id: UUID,
    ) -> None:
        workspace = await self.load(workspace_id)
        if workspace.is_private:
            raise WorkspaceIsPrivateError()
        rbac.require(workspace, acting_user_id, Capability.MANAGE_MEMBERS)

        membership = self._require_membership(workspace, target_user_id)
        if target_user_id == workspace.owner_id or membership.role == WorkspaceRole.OWNER:
            raise CannotRemoveOwnerError()

        workspace.members.remove(membership)
        await self._session.flush()

        await self._notifications.notify(
            recipient_id=target_user_id,
            type=NotificationType.SYSTEM,
            title="Removed from workspace",
            message=f"You were removed from {workspace.name}",
        )
        logger.info(f"User {target_user_id} removed from workspace {workspace_id} by {acting_user_id}")

    async def leave_workspace(self, workspace_id: UUID, user_id: UUID) -> None:
        workspace = await self.load(workspace_id)
        if workspace.is_private:
            raise WorkspaceIsPrivateError()

        membership = self._require_membership(workspace, user_id)
        if user_id == workspace.owner_id or membership.role == WorkspaceRole.OWNER:
            raise CannotRemoveOwnerError("The owner cannot leave; transfer ownership first")

        workspace.members.remove(membership)
        await self._session.flush()
        logger.info(f"User {user_id} left workspace {workspace_id}")

    async def transfer_ownership(
        self,
        workspace_id: UUID,
        acting_user_id: UUID,
        new_owner_id: UUID,
    ) -> Workspace:
        """Hand the Owner role to another member; the previous owner becomes Admin."""
        workspace = await self.load(workspace_id)
        if workspace.is_private:
            raise WorkspaceIsPrivateError()
        rbac.require(workspace, acting_user_id, Capability.DELETE_WORKSPACE)

        if new_owner_id == workspace.owner_id:
            raise InvalidStateTransitionError("User already owns this workspace")
        target = self._require_membership(workspace, new_owner_id)

        self._promote(workspace, target, demote_to=WorkspaceRole.ADMIN)
        await self._session.flush()

        await self._notifications.notify(
            recipient_id=new_owner_id,
            type=NotificationType.SYSTEM,
            title="Workspace ownership transferred",
            message=f"You are now the owner of {workspace.name}",
            link=workspace_link(workspace.id),
            workspace_id=workspace.id,
        )
        logger.info(f"Workspace {workspace_id} ownership moved {acting_user_id} -> {new_owner_id}")
        return workspace

    def _promote(
        self,
        workspace: Workspace,
        target: WorkspaceMember,
        demote_to: WorkspaceRole | None,
    ) -> None:
        previous = workspace.membership_for(workspace.owner_id)
        if previous is not None:
            if demote_to is None:
                workspace.members.remove(previous)
            else:
                previous.role = demote_to
        target.role = WorkspaceRole.OWNER
        workspace.owner_id = target.user_id

    async def release_owned_workspaces(self, user_id: UUID) -> tuple[int, int]:
        """
        Before deleting a user: give each workspace they own to its
        longest-standing other member, or delete it when nobody is left.

        Returns:
            (transferred_count, deleted_count)
        """
        result = await self._session.execute(
            select(Workspace)
            .where(Workspace.owner_id == user_id)
            .execution_options(populate_existing=True)
        )
        transferred = deleted = 0

        for workspace in result.scalars().all():
            successors = [m for m in workspace.members if m.user_id != user_id]
            if workspace.is_private or not successors:
                await self._purge(workspace)
                deleted += 1
                continue

            successor = successors[0]
            self._promote(workspace, successor, demote_to=None)
            await self._session.flush()
            await self._notifications.notify(
                recipient_id=successor.user_id,
                type=NotificationType.SYSTEM,
                title="Workspace ownership transferred",
                message=f"You are now the owner of {workspace.name}",
                link=workspace_link(workspace.id),
                workspace_id=workspace.id,
            )
            transferred += 1

        return transferred, deleted
