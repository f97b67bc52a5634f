"""
Notification center routes.

Clients poll GET /notifications; the response carries the interval the
server expects between polls.
"""

from uuid import UUID

from fastapi import APIRouter, Query, status

from ..core import CurrentUserDep, SessionDep, get_settings
from ..schemas import (
    BulkNotificationResult,
    ErrorResponse,
    NotificationCreate,
    NotificationListResponse,
    NotificationResponse,
)
from ..services import NotificationCenter

router = APIRouter(prefix="/notifications", tags=["notifications"])

_OWNERSHIP_ERRORS = {
    403: {"model": ErrorResponse, "description": "Belongs to another user"},
    404: {"model": ErrorResponse, "description": "Notification not found"},
}


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    session: SessionDep,
    current_user: CurrentUserDep,
    limit: int = Query(default=20, ge=1, le=100),
    unread_only: bool = Query(default=False),
) -> NotificationListResponse:
    """Newest-first notifications for the caller plus the unread count."""
    page = await NotificationCenter(session).list(
        current_user.id, limit=limit, unread_only=unread_only
    )
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in page.items],
        unread_count=page.unread_count,
        poll_interval_seconds=get_settings().notification_poll_interval_seconds,
    )


@router.post(
    "",
    response_model=NotificationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_notification(
    request: NotificationCreate,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> NotificationResponse:
    """Record a client-side event (e.g. a completed upload) for the caller."""
    notification = await NotificationCenter(session).notify(
        recipient_id=current_user.id,
        type=request.type,
        title=request.title,
        message=request.message,
        link=request.link,
        metadata=request.metadata,
    )
    return NotificationResponse.model_validate(notification)


@router.put("/read-all", response_model=BulkNotificationResult)
async def mark_all_read(
    session: SessionDep,
    current_user: CurrentUserDep,
) -> BulkNotificationResult:
    affected = await NotificationCenter(session).mark_all_read(current_user.id)
    return BulkNotificationResult(affected=affected)


@router.put(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    responses=_OWNERSHIP_ERRORS,
)
async def mark_read(
    notification_id: UUID,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> NotificationResponse:
    notification = await NotificationCenter(session).mark_read(notification_id, current_user.id)
    return NotificationResponse.model_validate(notification)


@router.delete(
    "/{notification_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=_OWNERSHIP_ERRORS,
)
async def dismiss_notification(
    notification_id: UUID,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> None:
    await NotificationCenter(session).dismiss(notification_id, current_user.id)


@router.delete("", response_model=BulkNotificationResult)
async def clear_notifications(
    session: SessionDep,
    current_user: CurrentUserDep,
) -> BulkNotificationResult:
    """Delete every notification the caller has."""
    affected = await NotificationCenter(session).clear_all(current_user.id)
    return BulkNotificationResult(affected=affected)
