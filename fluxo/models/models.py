"""SQLAlchemy ORM Models for Fluxo.

Platform identity (users, access requests) and tenant data (workspaces,
memberships, invitations, notifications) share one schema; every tenant
row is keyed by its workspace.
"""

from datetime import datetime
from enum import Enum as PyEnum
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UUIDMixin, utcnow


# =============================================================================
# ENUMS
# =============================================================================


class PlatformRole(str, PyEnum):
    """Platform-wide role carried by the user account."""
    OWNER = "Owner"
    ADMIN = "Admin"
    MEMBER = "Member"


class WorkspaceRole(str, PyEnum):
    """Role carried by a single workspace membership."""
    OWNER = "Owner"
    ADMIN = "Admin"
    MEMBER = "Member"
    VIEWER = "Viewer"


class AccessRequestStatus(str, PyEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class InvitationStatus(str, PyEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"


class NotificationType(str, PyEnum):
    TASK_ASSIGNED = "task_assigned"
    TASK_COMPLETED = "task_completed"
    TASK_UPDATED = "task_updated"
    COMMENT_ADDED = "comment_added"
    PROJECT_UPDATE = "project_update"
    MENTION = "mention"
    SUCCESS = "success"
    SYSTEM = "system"


def _enum(enum_cls: type[PyEnum], name: str) -> Enum:
    return Enum(enum_cls, name=name, values_callable=lambda x: [e.value for e in x])


JSONType = JSON().with_variant(JSONB(), "postgresql")

# Shared by memberships and invitations so PostgreSQL sees one enum type
workspace_role_type = _enum(WorkspaceRole, "workspace_role")


# =============================================================================
# IDENTITY
# =============================================================================


class User(Base, UUIDMixin, TimestampMixin):
    """Platform user account."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str | None] = mapped_column(String(255))
    avatar_url: Mapped[str | None] = mapped_column(String(500))
    auth_provider: Mapped[str] = mapped_column(String(50), default="email")
    auth_provider_id: Mapped[str | None] = mapped_column(String(255))
    platform_role: Mapped[PlatformRole] = mapped_column(
        _enum(PlatformRole, "platform_role"),
        default=PlatformRole.MEMBER,
        nullable=False,
    )
    is_approved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    private_workspace_id: Mapped[UUID | None] = mapped_column()
    last_login_at: Mapped[datetime | None] = mapped_column()

    __table_args__ = (
        Index("idx_users_auth_provider", "auth_provider", "auth_provider_id"),
    )

    @property
    def is_platform_owner(self) -> bool:
        return self.platform_role == PlatformRole.OWNER


class AccessRequest(Base, UUIDMixin, TimestampMixin):
    """Anonymous request for platform access, reviewed by an Owner."""

    __tablename__ = "access_requests"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    company: Mapped[str | None] = mapped_column(String(255))
    message: Mapped[str | None] = mapped_column(Text)
    status: Mapped[AccessRequestStatus] = mapped_column(
        _enum(AccessRequestStatus, "access_request_status"),
        default=AccessRequestStatus.PENDING,
        nullable=False,
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text)
    processed_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    processed_at: Mapped[datetime | None] = mapped_column()

    __table_args__ = (
        Index("idx_access_requests_status", "status", "created_at"),
    )


# =============================================================================
# WORKSPACES
# =============================================================================


class Workspace(Base, UUIDMixin, TimestampMixin):
    """Tenant boundary holding members, projects and tasks."""

    __tablename__ = "workspaces"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    owner_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id"), nullable=False
    )
    invite_code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    is_private: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relationships
    members: Mapped[list["WorkspaceMember"]] = relationship(
        back_populates="workspace",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="WorkspaceMember.joined_at",
    )
    invitations: Mapped[list["Invitation"]] = relationship(
        back_populates="workspace",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_workspaces_owner", "owner_id"),
    )

    def membership_for(self, user_id: UUID) -> "WorkspaceMember | None":
        for member in self.members:
            if member.user_id == user_id:
                return member
        return None


class WorkspaceMember(Base, UUIDMixin):
    """Membership linking a user to a workspace with a role."""

    __tablename__ = "workspace_members"

    workspace_id: Mapped[UUID] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[WorkspaceRole] = mapped_column(
        workspace_role_type,
        default=WorkspaceRole.MEMBER,
        nullable=False,
    )
    joined_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    # Relationships
    workspace: Mapped["Workspace"] = relationship(back_populates="members")
    user: Mapped["User"] = relationship(lazy="joined")

    __table_args__ = (
        UniqueConstraint("workspace_id", "user_id"),
        Index("idx_workspace_members_user", "user_id"),
    )


class Invitation(Base, UUIDMixin, TimestampMixin):
    """Single-use, expiring, email-targeted join credential."""

    __tablename__ = "invitations"

    token: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    workspace_id: Mapped[UUID] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[WorkspaceRole] = mapped_column(
        workspace_role_type,
        default=WorkspaceRole.MEMBER,
        nullable=False,
    )
    invited_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    expires_at: Mapped[datetime] = mapped_column(nullable=False)
    status: Mapped[InvitationStatus] = mapped_column(
        _enum(InvitationStatus, "invitation_status"),
        default=InvitationStatus.PENDING,
        nullable=False,
    )
    accepted_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    accepted_at: Mapped[datetime | None] = mapped_column()

    # Relationships
    workspace: Mapped["Workspace"] = relationship(
        back_populates="invitations", lazy="selectin"
    )
    inviter: Mapped["User | None"] = relationship(
        foreign_keys=[invited_by], lazy="selectin"
    )

    __table_args__ = (
        Index("idx_invitations_workspace_email", "workspace_id", "email"),
        Index("idx_invitations_status_expiry", "status", "expires_at"),
    )


# =============================================================================
# NOTIFICATIONS
# =============================================================================


class Notification(Base, UUIDMixin):
    """In-app notification delivered to one recipient by polling."""

    __tablename__ = "notifications"

    recipient_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    workspace_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("workspaces.id", ondelete="CASCADE")
    )
    type: Mapped[NotificationType] = mapped_column(
        _enum(NotificationType, "notification_type"),
        default=NotificationType.SYSTEM,
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    link: Mapped[str | None] = mapped_column(String(500))
    # "metadata" is reserved on declarative classes
    extra: Mapped[dict] = mapped_column("metadata", JSONType, default=dict)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_notifications_recipient", "recipient_id", "is_read", "created_at"),
    )
