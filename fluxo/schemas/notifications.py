"""Pydantic schemas for the notification center."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from ..models import NotificationType
from .base import FluxoBaseModel


class NotificationCreate(FluxoBaseModel):
    type: NotificationType = NotificationType.SYSTEM
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1, max_length=2000)
    link: str | None = Field(default=None, max_length=500)
    metadata: dict[str, Any] = Field(default_factory=dict)


class NotificationResponse(FluxoBaseModel):
    id: UUID
    type: NotificationType
    title: str
    message: str
    link: str | None = None
    workspace_id: UUID | None = None
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="extra")
    is_read: bool
    created_at: datetime


class NotificationListResponse(FluxoBaseModel):
    notifications: list[NotificationResponse]
    unread_count: int
    poll_interval_seconds: int


class BulkNotificationResult(FluxoBaseModel):
    affected: int
