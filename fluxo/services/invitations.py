"""
Invitation Engine: the two ways into a workspace.

1. Invite code: long-lived, shareable, multi-use per workspace
2. Invite token: single-use, expiring, bound to one email and one role

Token state machine:
    pending --accept (before expiry)--> accepted
    pending --accept (after expiry)---> expired
    accepted/expired are terminal

Acceptance claims the token with one conditional UPDATE
(``WHERE status = 'pending'``) and then inserts the membership in the
same transaction. Of two concurrent acceptances exactly one claims the
row; the other sees AlreadyConsumedError. If the membership insert fails
the transaction rolls back and the token is still pending.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings, get_settings
from ..core.security import generate_invite_token
from ..models import (
    Invitation,
    InvitationStatus,
    NotificationType,
    User,
    Workspace,
    WorkspaceMember,
    WorkspaceRole,
    ensure_utc,
    utcnow,
)
from . import rbac
from .errors import (
    AlreadyConsumedError,
    AuthenticationRequiredError,
    ConflictError,
    ExpiredError,
    ForbiddenError,
    InvalidCodeError,
    InvalidStateTransitionError,
    NotFoundError,
    WorkspaceIsPrivateError,
)
from .mailer import MailSender, build_mail_sender, send_mail
from .notifications import NotificationCenter
from .rbac import Capability
from .workspaces import MembershipOutcome, WorkspaceService, workspace_link


logger = logging.getLogger(__name__)


# =============================================================================
# DATA TRANSFER OBJECTS
# =============================================================================


@dataclass
class InvitationIssued:
    invitation: Invitation
    accept_url: str
    warnings: list[str] = field(default_factory=list)


@dataclass
class InvitationPreview:
    invitation: Invitation
    workspace: Workspace
    inviter: User | None


def normalize_email(email: str) -> str:
    return email.strip().lower()


# =============================================================================
# INVITATION ENGINE
# =============================================================================


class InvitationEngine:
    """Issues, validates and consumes workspace invitations."""

    def __init__(
        self,
        session: AsyncSession,
        mail_sender: MailSender | None = None,
        settings: Settings | None = None,
    ):
        self._session = session
        self._settings = settings or get_settings()
        self._mail = mail_sender or build_mail_sender(self._settings)
        self._notifications = NotificationCenter(session)
        self._workspaces = WorkspaceService(session, notifications=self._notifications)

    # -------------------------------------------------------------------------
    # Invite code
    # -------------------------------------------------------------------------

    async def join_by_code(self, code: str, user: User) -> MembershipOutcome:
        """Join the workspace behind ``code`` as a Member (idempotent)."""
        workspace = await self._session.scalar(
            select(Workspace)
            .where(Workspace.invite_code == code.strip().upper())
            .execution_options(populate_existing=True)
        )
        if workspace is None:
            raise InvalidCodeError("Invalid invite code")
        if workspace.is_private:
            raise WorkspaceIsPrivateError()

        outcome = await self._workspaces.add_member(workspace, user.id, WorkspaceRole.MEMBER)
        if outcome.created:
            await self._announce_join(workspace, user)
        return outcome

    async def _announce_join(self, workspace: Workspace, user: User) -> None:
        link = workspace_link(workspace.id)
        await self._notifications.notify(
            recipient_id=user.id,
            type=NotificationType.SUCCESS,
            title="Welcome to Workspace",
            message=f"You have joined {workspace.name}",
            link=link,
            workspace_id=workspace.id,
        )
        if workspace.owner_id != user.id:
            await self._notifications.notify(
                recipient_id=workspace.owner_id,
                type=NotificationType.SYSTEM,
                title="New Member Joined",
                message=f"{user.name} joined {workspace.name}",
                link=link,
                workspace_id=workspace.id,
            )

    # -------------------------------------------------------------------------
    # Invite token: issuance
    # -------------------------------------------------------------------------

    async def create_invitation(
        self,
        workspace_id: UUID,
        inviter: User,
        email: str,
        role: WorkspaceRole = WorkspaceRole.MEMBER,
    ) -> InvitationIssued:
        """
        Issue a single-use invitation and email its accept link.

        Any outstanding pending invitation for the same address is retired
        as expired. Mail failure leaves the invitation in place and is
        reported as a warning.
        """
        workspace = await self._workspaces.load(workspace_id)
        if workspace.is_private:
            raise WorkspaceIsPrivateError()
        rbac.require(workspace, inviter.id, Capability.MANAGE_MEMBERS)

        role = WorkspaceRole(role)
        if role == WorkspaceRole.OWNER:
            raise InvalidStateTransitionError("Ownership can only be transferred")

        email = normalize_email(email)
        already_member = await self._session.scalar(
            select(WorkspaceMember.id)
            .join(User, User.id == WorkspaceMember.user_id)
            .where(WorkspaceMember.workspace_id == workspace.id, User.email == email)
        )
        if already_member is not None:
            raise ConflictError("This user is already a member of the workspace")

        await self._session.execute(
            update(Invitation)
            .where(
                Invitation.workspace_id == workspace.id,
                Invitation.email == email,
                Invitation.status == InvitationStatus.PENDING,
            )
            .values(status=InvitationStatus.EXPIRED)
            .execution_options(synchronize_session=False)
        )

        invitation = Invitation(
            token=generate_invite_token(),
            workspace_id=workspace.id,
            email=email,
            role=role,
            invited_by=inviter.id,
            expires_at=utcnow() + timedelta(days=self._settings.invite_token_expire_days),
            status=InvitationStatus.PENDING,
        )
        self._session.add(invitation)
        await self._session.flush()

        accept_url = f"{self._settings.frontend_url.rstrip('/')}/accept-invite?token={invitation.token}"
        issued = InvitationIssued(invitation=invitation, accept_url=accept_url)

        await send_mail(
            self._mail,
            "workspace_invitation",
            email,
            {
                "workspace_name": workspace.name,
                "inviter_name": inviter.name,
                "role": role.value,
                "accept_url": accept_url,
                "expires_at": invitation.expires_at.strftime("%Y-%m-%d"),
            },
            issued.warnings,
        )

        await self._notifications.notify(
            recipient_id=inviter.id,
            type=NotificationType.SUCCESS,
            title="Invitation Generated",
            message=f"Invitation for {email} to join {workspace.name} is ready",
            link=workspace_link(workspace.id),
            workspace_id=workspace.id,
        )

        logger.info(f"Invitation {invitation.id} issued for {email} to workspace {workspace.id}")
        return issued

    # -------------------------------------------------------------------------
    # Invite token: validation and consumption
    # -------------------------------------------------------------------------

    async def _get_by_token(self, token: str) -> Invitation:
        invitation = await self._session.scalar(
            select(Invitation)
            .where(Invitation.token == token)
            .execution_options(populate_existing=True)
        )
        if invitation is None:
            raise NotFoundError("Invitation not found")
        return invitation

    async def _ensure_open(self, invitation: Invitation) -> None:
        """Raise unless the invitation is pending and inside its window."""
        if invitation.status == InvitationStatus.ACCEPTED:
            raise AlreadyConsumedError(workspace_id=invitation.workspace_id)
        if invitation.status == InvitationStatus.EXPIRED:
            raise ExpiredError()
        if ensure_utc(invitation.expires_at) <= utcnow():
            await self._mark_expired(invitation)
            raise ExpiredError()

    async def _mark_expired(self, invitation: Invitation) -> None:
        await self._session.execute(
            update(Invitation)
            .where(
                Invitation.id == invitation.id,
                Invitation.status == InvitationStatus.PENDING,
            )
            .values(status=InvitationStatus.EXPIRED)
            .execution_options(synchronize_session=False)
        )
        await self._session.refresh(invitation)
        logger.info(f"Invitation {invitation.id} expired")

    async def expire_overdue(self) -> int:
        """Move every pending invitation past its deadline to expired."""
        result = await self._session.execute(
            update(Invitation)
            .where(
                Invitation.status == InvitationStatus.PENDING,
                Invitation.expires_at <= utcnow(),
            )
            .values(status=InvitationStatus.EXPIRED)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def _claim(self, invitation: Invitation, user_id: UUID) -> None:
        """Atomically move pending -> accepted; losers get AlreadyConsumedError."""
        result = await self._session.execute(
            update(Invitation)
            .where(
                Invitation.id == invitation.id,
                Invitation.status == InvitationStatus.PENDING,
            )
            .values(
                status=InvitationStatus.ACCEPTED,
                accepted_by=user_id,
                accepted_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise AlreadyConsumedError(workspace_id=invitation.workspace_id)
        await self._session.refresh(invitation)

    async def preview_invitation(self, token: str) -> InvitationPreview:
        """Describe an open invitation without consuming it. No session needed."""
        invitation = await self._get_by_token(token)
        await self._ensure_open(invitation)
        return InvitationPreview(
            invitation=invitation,
            workspace=invitation.workspace,
            inviter=invitation.inviter,
        )

    async def accept_invite(self, token: str, user: User | None) -> MembershipOutcome:
        """
        Consume an invitation for the signed-in user.

        Order of checks:
        1. Unknown token -> NotFoundError
        2. Already accepted -> AlreadyConsumedError
        3. Expired (by status or by clock) -> ExpiredError
        4. No session -> AuthenticationRequiredError; the token is left
           untouched so the client can replay it after signing in
        5. Different email -> ForbiddenError
        6. Claim the token, then insert the membership
        """
        invitation = await self._get_by_token(token)
        await self._ensure_open(invitation)

        if user is None:
            raise AuthenticationRequiredError("Sign in to accept this invitation")
        if normalize_email(user.email) != normalize_email(invitation.email):
            raise ForbiddenError("This invitation was sent to a different email address")

        await self._claim(invitation, user.id)

        workspace = await self._workspaces.load(invitation.workspace_id)
        outcome = await self._workspaces.add_member(workspace, user.id, invitation.role)
        if outcome.created:
            await self._announce_join(workspace, user)

        logger.info(f"Invitation {invitation.id} accepted by {user.id}")
        return outcome
