"""SQLAlchemy ORM Models for Fluxo."""

from .base import Base, TimestampMixin, UUIDMixin, ensure_utc, utcnow
from .models import (
    # Enums
    AccessRequestStatus,
    InvitationStatus,
    NotificationType,
    PlatformRole,
    WorkspaceRole,
    # Identity
    AccessRequest,
    User,
    # Workspaces
    Invitation,
    Workspace,
    WorkspaceMember,
    # Notifications
    Notification,
)

__all__ = [
    # Base
    "Base",
    "UUIDMixin",
    "TimestampMixin",
    "utcnow",
    "ensure_utc",
    # Enums
    "PlatformRole",
    "WorkspaceRole",
    "AccessRequestStatus",
    "InvitationStatus",
    "NotificationType",
    # Identity
    "User",
    "AccessRequest",
    # Workspaces
    "Workspace",
    "WorkspaceMember",
    "Invitation",
    # Notifications
    "Notification",
]
