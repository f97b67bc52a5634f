"""
Notification Center: per-user in-app notifications served by polling.

Guarantees:
- notify() always inserts a new unread row (no deduplication)
- list() is newest-first and is the only read path the client polls
- read/dismiss only ever touch the caller's own rows
- clear_all() is a single DELETE, so a notify() racing it either is
  removed by it or survives it, never duplicated
- bulk statements skip session synchronisation; reads always reload rows
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Sequence
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import get_settings
from ..models import Notification, NotificationType
from .errors import ForbiddenError, NotFoundError


logger = logging.getLogger(__name__)


# =============================================================================
# DATA TRANSFER OBJECTS
# =============================================================================


@dataclass
class NotificationPage:
    """Result of a list() poll."""
    items: Sequence[Notification]
    unread_count: int


# =============================================================================
# NOTIFICATION CENTER
# =============================================================================


class NotificationCenter:
    """Creates, serves and retires notifications for one session."""

    def __init__(self, session: AsyncSession, max_per_user: int | None = None):
        self._session = session
        if max_per_user is None:
            max_per_user = get_settings().notification_max_per_user
        self._max_per_user = max_per_user

    async def notify(
        self,
        recipient_id: UUID,
        type: NotificationType,
        title: str,
        message: str,
        link: str | None = None,
        workspace_id: UUID | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Notification:
        """Record a new unread notification for ``recipient_id``."""
        type = NotificationType(type)
        notification = Notification(
            recipient_id=recipient_id,
            workspace_id=workspace_id,
            type=type,
            title=title,
            message=message,
            link=link,
            extra=metadata or {},
            is_read=False,
        )
        self._session.add(notification)
        await self._session.flush()

        if self._max_per_user:
            await self._prune(recipient_id)

        logger.debug(f"Notification {notification.id} ({type.value}) queued for {recipient_id}")
        return notification

    async def notify_many(
        self,
        recipient_ids: Iterable[UUID],
        type: NotificationType,
        title: str,
        message: str,
        link: str | None = None,
        workspace_id: UUID | None = None,
    ) -> list[Notification]:
        return [
            await self.notify(recipient_id, type, title, message, link=link, workspace_id=workspace_id)
            for recipient_id in recipient_ids
        ]

    async def _prune(self, recipient_id: UUID) -> int:
        """Drop the recipient's oldest rows beyond the per-user cap."""
        overflow = (
            select(Notification.id)
            .where(Notification.recipient_id == recipient_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(self._max_per_user)
        )
        result = await self._session.execute(
            delete(Notification)
            .where(Notification.id.in_(overflow))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def list(
        self,
        recipient_id: UUID,
        limit: int = 20,
        unread_only: bool = False,
    ) -> NotificationPage:
        """Newest-first page of the recipient's notifications."""
        query = select(Notification).where(Notification.recipient_id == recipient_id)
        if unread_only:
            query = query.where(Notification.is_read.is_(False))
        query = query.order_by(
            Notification.created_at.desc(), Notification.id.desc()
        ).limit(limit).execution_options(populate_existing=True)

        result = await self._session.execute(query)
        items = result.scalars().all()

        unread_count = await self._session.scalar(
            select(func.count(Notification.id)).where(
                Notification.recipient_id == recipient_id,
                Notification.is_read.is_(False),
            )
        )
        return NotificationPage(items=items, unread_count=unread_count or 0)

    async def _get_owned(self, notification_id: UUID, recipient_id: UUID) -> Notification:
        notification = await self._session.get(
            Notification, notification_id, populate_existing=True
        )
        if notification is None:
            raise NotFoundError("Notification not found")
        if notification.recipient_id != recipient_id:
            raise ForbiddenError("Not allowed to modify another user's notification")
        return notification

    async def mark_read(self, notification_id: UUID, recipient_id: UUID) -> Notification:
        """Mark one notification read. Marking a read notification is a no-op."""
        notification = await self._get_owned(notification_id, recipient_id)
        if not notification.is_read:
            notification.is_read = True
            await self._session.flush()
        return notification

    async def mark_all_read(self, recipient_id: UUID) -> int:
        result = await self._session.execute(
            update(Notification)
            .where(
                Notification.recipient_id == recipient_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def dismiss(self, notification_id: UUID, recipient_id: UUID) -> None:
        notification = await self._get_owned(notification_id, recipient_id)
        await self._session.delete(notification)
        await self._session.flush()

    async def clear_all(self, recipient_id: UUID) -> int:
        """Delete every notification for the recipient in one statement."""
        result = await self._session.execute(
            delete(Notification)
            .where(Notification.recipient_id == recipient_id)
            .execution_options(synchronize_session=False)
        )
        logger.info(f"Cleared {result.rowcount} notifications for {recipient_id}")
        return result.rowcount

    async def purge_older_than(self, cutoff: datetime) -> int:
        """Storage hygiene: drop notifications created before ``cutoff``."""
        result = await self._session.execute(
            delete(Notification)
            .where(Notification.created_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
