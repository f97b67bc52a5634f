"""Pydantic schemas for workspaces, memberships and invitations."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import EmailStr, Field

from ..models import InvitationStatus, WorkspaceRole
from ..services.rbac import Capability
from .base import FluxoBaseModel, UserRef, WarningsMixin


# =============================================================================
# WORKSPACES
# =============================================================================


class WorkspaceCreate(FluxoBaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)


class WorkspaceUpdate(FluxoBaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)


class MemberResponse(FluxoBaseModel):
    user_id: UUID
    role: WorkspaceRole
    joined_at: datetime
    user: UserRef | None = None


class WorkspaceResponse(FluxoBaseModel):
    id: UUID
    name: str
    description: str | None = None
    owner_id: UUID
    invite_code: str
    is_private: bool
    created_at: datetime
    members: list[MemberResponse] = []


class WorkspaceSummary(FluxoBaseModel):
    """Workspace without its invite code, safe to show to any invitee."""

    id: UUID
    name: str
    description: str | None = None
    is_private: bool


# =============================================================================
# MEMBERSHIP
# =============================================================================


class MemberAddRequest(FluxoBaseModel):
    email: EmailStr
    role: WorkspaceRole = WorkspaceRole.MEMBER


class MemberRoleUpdate(FluxoBaseModel):
    role: WorkspaceRole


class TransferOwnershipRequest(FluxoBaseModel):
    new_owner_id: UUID


class JoinByCodeRequest(FluxoBaseModel):
    invite_code: str = Field(..., min_length=1, max_length=32)


class MembershipResponse(FluxoBaseModel):
    """Outcome of any join path: the workspace plus the caller's membership."""

    workspace: WorkspaceResponse
    membership: MemberResponse
    created: bool


class AuthorizationResponse(FluxoBaseModel):
    workspace_id: UUID
    capability: Capability
    decision: Literal["allow", "deny"]
    role: WorkspaceRole | None = None
    reason: str


# =============================================================================
# INVITATIONS
# =============================================================================


class InvitationCreate(FluxoBaseModel):
    email: EmailStr
    role: WorkspaceRole = WorkspaceRole.MEMBER


class InvitationResponse(FluxoBaseModel):
    id: UUID
    workspace_id: UUID
    email: str
    role: WorkspaceRole
    status: InvitationStatus
    expires_at: datetime
    created_at: datetime


class InvitationIssuedResponse(WarningsMixin, FluxoBaseModel):
    invitation: InvitationResponse
    accept_url: str


class InvitationPreviewResponse(FluxoBaseModel):
    workspace: WorkspaceSummary
    email: str
    role: WorkspaceRole
    expires_at: datetime
    invited_by: UserRef | None = None


class AcceptInviteResponse(FluxoBaseModel):
    """Accepting a token, or re-presenting one already used by a member."""

    outcome: Literal["joined", "already_member"]
    workspace: WorkspaceResponse
