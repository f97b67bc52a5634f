"""
Identity & Approval Ledger: platform accounts and their approval state.

An account is usable only once approved. Authentication against an
unapproved account fails with AccountPendingApprovalError, never with
InvalidCredentialsError, so clients can show a waitlist message.

Platform roles (Owner/Admin/Member) live on the user and are unrelated to
workspace roles; only the platform Owner administers accounts.
"""

import logging
from dataclasses import dataclass, field
from typing import Sequence
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings, get_settings
from ..core.security import FirebaseTokenPayload, hash_password, verify_password
from ..models import (
    Notification,
    NotificationType,
    PlatformRole,
    User,
    WorkspaceMember,
    utcnow,
)
from .errors import (
    AccountPendingApprovalError,
    CannotRemoveOwnerError,
    ConflictError,
    ForbiddenError,
    InvalidCredentialsError,
    InvalidStateTransitionError,
    NotFoundError,
)
from .mailer import MailSender, build_mail_sender, send_mail
from .notifications import NotificationCenter
from .workspaces import WorkspaceService


logger = logging.getLogger(__name__)


@dataclass
class ApprovalResult:
    user: User
    changed: bool
    warnings: list[str] = field(default_factory=list)


def is_account_usable(user: User) -> bool:
    return bool(user.is_approved)


def require_platform_owner(user: User) -> None:
    if not user.is_platform_owner:
        raise ForbiddenError("Owner privileges required")


async def platform_owner_ids(session: AsyncSession) -> list[UUID]:
    result = await session.execute(
        select(User.id).where(User.platform_role == PlatformRole.OWNER)
    )
    return list(result.scalars().all())


class IdentityService:
    """Registration, authentication and platform account administration."""

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

    async def get_by_email(self, email: str) -> User | None:
        return await self._session.scalar(
            select(User).where(User.email == email.strip().lower())
        )

    async def get(self, user_id: UUID) -> User:
        user = await self._session.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def _is_bootstrap_owner(self, email: str) -> bool:
        owner_email = self._settings.platform_owner_email
        return bool(owner_email) and owner_email.strip().lower() == email

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    async def _create_account(
        self,
        name: str,
        email: str,
        password_hash: str | None = None,
        auth_provider: str = "email",
        auth_provider_id: str | None = None,
        avatar_url: str | None = None,
        approved: bool = False,
    ) -> User:
        bootstrap_owner = self._is_bootstrap_owner(email)
        user = User(
            name=name,
            email=email,
            password_hash=password_hash,
            auth_provider=auth_provider,
            auth_provider_id=auth_provider_id,
            avatar_url=avatar_url,
            platform_role=PlatformRole.OWNER if bootstrap_owner else PlatformRole.MEMBER,
            is_approved=approved or bootstrap_owner,
        )
        self._session.add(user)
        await self._session.flush()
        await self._workspaces.ensure_private_workspace(user)

        if not user.is_approved:
            await self._notifications.notify_many(
                await platform_owner_ids(self._session),
                type=NotificationType.SYSTEM,
                title="New user registration",
                message=f"{name} ({email}) is waiting for approval",
                link="/admin/users",
            )
        logger.info(f"Registered user {user.id} ({email}), approved={user.is_approved}")
        return user

    async def register(self, name: str, email: str, password: str) -> User:
        """Create an unapproved account (the bootstrap owner is approved at once)."""
        email = email.strip().lower()
        if await self.get_by_email(email) is not None:
            raise ConflictError("User already exists")
        return await self._create_account(
            name=name,
            email=email,
            password_hash=hash_password(password),
        )

    async def resolve_external(self, payload: FirebaseTokenPayload) -> User:
        """Find or register the account behind an external identity token."""
        user = await self._session.scalar(
            select(User).where(
                User.auth_provider == "firebase",
                User.auth_provider_id == payload.uid,
            )
        )
        email = (payload.email or f"{payload.uid}@firebase.local").strip().lower()
        if user is None:
            user = await self.get_by_email(email)
            if user is not None:
                user.auth_provider_id = user.auth_provider_id or payload.uid

        if user is None:
            return await self._create_account(
                name=payload.name or email,
                email=email,
                auth_provider="firebase",
                auth_provider_id=payload.uid,
                avatar_url=payload.picture,
            )

        if payload.picture and user.avatar_url != payload.picture:
            user.avatar_url = payload.picture
        await self._session.flush()
        return user

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    async def authenticate(self, email: str, password: str) -> User:
        """Check credentials, then approval. Returns the signed-in user."""
        user = await self.get_by_email(email)
        if user is None:
            raise InvalidCredentialsError("Invalid email or password")
        if not user.password_hash:
            raise InvalidCredentialsError("This account signs in with an external identity provider")
        if not verify_password(password, user.password_hash):
            raise InvalidCredentialsError("Invalid email or password")
        if not is_account_usable(user):
            raise AccountPendingApprovalError(
                "Account pending approval. Please wait for an administrator to approve your account."
            )

        user.last_login_at = utcnow()
        await self._workspaces.ensure_private_workspace(user)
        await self._session.flush()
        return user

    # -------------------------------------------------------------------------
    # Administration (platform Owner only)
    # -------------------------------------------------------------------------

    async def list_users(self, acting: User) -> Sequence[User]:
        require_platform_owner(acting)
        result = await self._session.execute(
            select(User).order_by(User.created_at.desc())
        )
        users = result.scalars().all()
        return sorted(users, key=lambda u: not u.is_platform_owner)

    async def approve_user(self, acting: User, user_id: UUID) -> ApprovalResult:
        """pending -> approved. Approving an approved account changes nothing."""
        require_platform_owner(acting)
        user = await self.get(user_id)
        if user.is_approved:
            return ApprovalResult(user=user, changed=False)

        user.is_approved = True
        await self._session.flush()

        approval = ApprovalResult(user=user, changed=True)
        await send_mail(
            self._mail,
            "account_approved",
            user.email,
            {"name": user.name, "login_url": f"{self._settings.frontend_url.rstrip('/')}/login"},
            approval.warnings,
        )
        await self._notifications.notify(
            recipient_id=user.id,
            type=NotificationType.SUCCESS,
            title="Account approved",
            message="Your account has been approved. Welcome to Fluxo!",
        )
        logger.info(f"User {user.id} approved by {acting.id}")
        return approval

    async def change_role(self, acting: User, user_id: UUID, role: PlatformRole) -> User:
        """Move an account between Member and Admin."""
        require_platform_owner(acting)
        role = PlatformRole(role)
        user = await self.get(user_id)

        if user.platform_role == PlatformRole.OWNER:
            raise InvalidStateTransitionError("Cannot change the role of an Owner")
        if role == PlatformRole.OWNER:
            raise InvalidStateTransitionError("Platform ownership cannot be granted")

        user.platform_role = role
        await self._session.flush()
        logger.info(f"User {user.id} platform role set to {role.value} by {acting.id}")
        return user

    async def delete_user(self, acting: User, user_id: UUID) -> None:
        """
        Delete an account.

        Owned workspaces pass to their longest-standing member or are
        deleted when empty; memberships and notifications go with the user.
        """
        require_platform_owner(acting)
        user = await self.get(user_id)

        if user.platform_role == PlatformRole.OWNER:
            owner_count = await self._session.scalar(
                select(func.count(User.id)).where(User.platform_role == PlatformRole.OWNER)
            )
            if owner_count <= 1:
                raise CannotRemoveOwnerError("Cannot delete the sole platform Owner")

        transferred, deleted = await self._workspaces.release_owned_workspaces(user.id)

        await self._session.execute(
            delete(WorkspaceMember)
            .where(WorkspaceMember.user_id == user.id)
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(
            delete(Notification)
            .where(Notification.recipient_id == user.id)
            .execution_options(synchronize_session=False)
        )
        await self._session.delete(user)
        await self._session.flush()

        logger.info(
            f"User {user_id} deleted by {acting.id}: "
            f"{transferred} workspaces transferred, {deleted} deleted"
        )
