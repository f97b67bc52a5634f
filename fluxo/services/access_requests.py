"""
Access Request Intake: anonymous requests for platform access.

    pending --approve--> approved   (provisions an approved user + credential mail)
    pending --reject---> rejected

Both transitions are terminal. Each is a conditional UPDATE on
``status = 'pending'`` so a request can only be decided once, and the
credential mail can only fire once. Requests are never deleted.
"""

import logging
from dataclasses import dataclass, field
from typing import Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings, get_settings
from ..core.security import generate_password, hash_password
from ..models import (
    AccessRequest,
    AccessRequestStatus,
    NotificationType,
    PlatformRole,
    User,
    utcnow,
)
from .errors import ConflictError, InvalidStateTransitionError, NotFoundError
from .identity import platform_owner_ids, require_platform_owner
from .mailer import MailSender, build_mail_sender, send_mail
from .notifications import NotificationCenter
from .workspaces import WorkspaceService


logger = logging.getLogger(__name__)


@dataclass
class AccessRequestOutcome:
    request: AccessRequest
    user: User | None = None
    warnings: list[str] = field(default_factory=list)


class AccessRequestService:
    """Submission and Owner review of access requests."""

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

    async def submit_request(
        self,
        name: str,
        email: str,
        company: str | None = None,
        message: str | None = None,
    ) -> AccessRequestOutcome:
        """Record a pending request. No authentication required."""
        access_request = AccessRequest(
            name=name.strip(),
            email=email.strip().lower(),
            company=company,
            message=message,
            status=AccessRequestStatus.PENDING,
        )
        self._session.add(access_request)
        await self._session.flush()

        outcome = AccessRequestOutcome(request=access_request)

        await self._notifications.notify_many(
            await platform_owner_ids(self._session),
            type=NotificationType.SYSTEM,
            title="New access request",
            message=f"{access_request.name} ({access_request.email}) requested access",
            link="/admin/access-requests",
        )

        if self._settings.mail_admin_email:
            await send_mail(
                self._mail,
                "access_request_received",
                self._settings.mail_admin_email,
                {
                    "name": access_request.name,
                    "email": access_request.email,
                    "company": company or "-",
                    "message": message or "",
                    "review_url": f"{self._settings.frontend_url.rstrip('/')}/admin/access-requests",
                },
                outcome.warnings,
            )

        logger.info(f"Access request {access_request.id} submitted for {access_request.email}")
        return outcome

    async def list_requests(
        self,
        acting: User,
        status: AccessRequestStatus | None = None,
    ) -> Sequence[AccessRequest]:
        require_platform_owner(acting)
        query = select(AccessRequest)
        if status is not None:
            query = query.where(AccessRequest.status == AccessRequestStatus(status))
        result = await self._session.execute(
            query.order_by(AccessRequest.created_at.desc())
        )
        return result.scalars().all()

    async def _get(self, request_id: UUID) -> AccessRequest:
        access_request = await self._session.get(
            AccessRequest, request_id, populate_existing=True
        )
        if access_request is None:
            raise NotFoundError("Access request not found")
        return access_request

    async def _decide(
        self,
        access_request: AccessRequest,
        acting: User,
        status: AccessRequestStatus,
        rejection_reason: str | None = None,
    ) -> None:
        """Conditional pending -> ``status`` transition."""
        if access_request.status != AccessRequestStatus.PENDING:
            raise InvalidStateTransitionError(
                f"Access request has already been {access_request.status.value}"
            )

        result = await self._session.execute(
            update(AccessRequest)
            .where(
                AccessRequest.id == access_request.id,
                AccessRequest.status == AccessRequestStatus.PENDING,
            )
            .values(
                status=status,
                rejection_reason=rejection_reason,
                processed_by=acting.id,
                processed_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidStateTransitionError("Access request has already been processed")
        await self._session.refresh(access_request)

    async def approve(self, acting: User, request_id: UUID) -> AccessRequestOutcome:
        """
        Approve a pending request.

        Steps:
        1. Check the request is pending and the email is unused
        2. Transition to approved
        3. Provision an approved Member with a generated credential
        4. Mail the credential (failure is a warning, not a rollback)
        """
        require_platform_owner(acting)
        access_request = await self._get(request_id)

        if access_request.status != AccessRequestStatus.PENDING:
            raise InvalidStateTransitionError(
                f"Access request has already been {access_request.status.value}"
            )
        existing = await self._session.scalar(
            select(User.id).where(User.email == access_request.email)
        )
        if existing is not None:
            raise ConflictError("A user with this email already exists")

        await self._decide(access_request, acting, AccessRequestStatus.APPROVED)

        password = generate_password(self._settings.generated_password_length)
        user = User(
            name=access_request.name,
            email=access_request.email,
            password_hash=hash_password(password),
            platform_role=PlatformRole.MEMBER,
            is_approved=True,
        )
        self._session.add(user)
        await self._session.flush()
        await WorkspaceService(self._session, notifications=self._notifications).ensure_private_workspace(user)

        outcome = AccessRequestOutcome(request=access_request, user=user)
        await send_mail(
            self._mail,
            "access_approved",
            user.email,
            {
                "name": user.name,
                "email": user.email,
                "password": password,
                "login_url": f"{self._settings.frontend_url.rstrip('/')}/login",
            },
            outcome.warnings,
        )

        logger.info(f"Access request {request_id} approved by {acting.id}; user {user.id} provisioned")
        return outcome

    async def reject(
        self,
        acting: User,
        request_id: UUID,
        reason: str | None = None,
    ) -> AccessRequestOutcome:
        require_platform_owner(acting)
        access_request = await self._get(request_id)
        await self._decide(
            access_request, acting, AccessRequestStatus.REJECTED, rejection_reason=reason
        )
        logger.info(f"Access request {request_id} rejected by {acting.id}")
        return AccessRequestOutcome(request=access_request)
