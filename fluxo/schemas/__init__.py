"""Fluxo API Schemas.

Schemas are organized by domain:
- base: Common configuration, errors, references
- identity: Accounts, authentication, access requests
- workspaces: Workspaces, memberships, invitations
- notifications: Notification center
"""

from .base import ErrorDetail, ErrorResponse, FluxoBaseModel, MessageResponse, UserRef
from .identity import (
    AccessRequestCreate,
    AccessRequestDecision,
    AccessRequestResponse,
    AccessRequestSubmitted,
    ApprovalResponse,
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    RejectAccessRequest,
    RoleUpdateRequest,
    TokenResponse,
    UserResponse,
)
from .notifications import (
    BulkNotificationResult,
    NotificationCreate,
    NotificationListResponse,
    NotificationResponse,
)
from .workspaces import (
    AcceptInviteResponse,
    AuthorizationResponse,
    InvitationCreate,
    InvitationIssuedResponse,
    InvitationPreviewResponse,
    InvitationResponse,
    JoinByCodeRequest,
    MemberAddRequest,
    MemberResponse,
    MemberRoleUpdate,
    MembershipResponse,
    TransferOwnershipRequest,
    WorkspaceCreate,
    WorkspaceResponse,
    WorkspaceSummary,
    WorkspaceUpdate,
)

__all__ = [
    # Base
    "FluxoBaseModel",
    "ErrorDetail",
    "ErrorResponse",
    "MessageResponse",
    "UserRef",
    # Identity
    "RegisterRequest",
    "RegisterResponse",
    "LoginRequest",
    "TokenResponse",
    "UserResponse",
    "RoleUpdateRequest",
    "ApprovalResponse",
    "AccessRequestCreate",
    "AccessRequestResponse",
    "AccessRequestSubmitted",
    "AccessRequestDecision",
    "RejectAccessRequest",
    # Workspaces
    "WorkspaceCreate",
    "WorkspaceUpdate",
    "WorkspaceResponse",
    "WorkspaceSummary",
    "MemberResponse",
    "MemberAddRequest",
    "MemberRoleUpdate",
    "TransferOwnershipRequest",
    "JoinByCodeRequest",
    "MembershipResponse",
    "AuthorizationResponse",
    "InvitationCreate",
    "InvitationResponse",
    "InvitationIssuedResponse",
    "InvitationPreviewResponse",
    "AcceptInviteResponse",
    # Notifications
    "NotificationCreate",
    "NotificationResponse",
    "NotificationListResponse",
    "BulkNotificationResult",
]
