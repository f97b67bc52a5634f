"""Business logic services for Fluxo."""

from .access_requests import AccessRequestOutcome, AccessRequestService
from .errors import (
    AccessError,
    AccountPendingApprovalError,
    AlreadyConsumedError,
    AuthenticationRequiredError,
    CannotRemoveOwnerError,
    ConflictError,
    ExpiredError,
    ForbiddenError,
    InvalidCodeError,
    InvalidCredentialsError,
    InvalidStateTransitionError,
    NotFoundError,
    WorkspaceIsPrivateError,
)
from .identity import ApprovalResult, IdentityService, is_account_usable
from .invitations import InvitationEngine, InvitationIssued, InvitationPreview
from .mailer import MailResult, MailSender, get_mail_sender
from .notifications import NotificationCenter, NotificationPage
from .rbac import AuthorizationResult, Capability, authorize, require
from .workspaces import MembershipOutcome, WorkspaceService

__all__ = [
    # Errors
    "AccessError",
    "NotFoundError",
    "InvalidCodeError",
    "ForbiddenError",
    "AuthenticationRequiredError",
    "InvalidCredentialsError",
    "AccountPendingApprovalError",
    "InvalidStateTransitionError",
    "AlreadyConsumedError",
    "ExpiredError",
    "WorkspaceIsPrivateError",
    "CannotRemoveOwnerError",
    "ConflictError",
    # Identity & access requests
    "IdentityService",
    "ApprovalResult",
    "is_account_usable",
    "AccessRequestService",
    "AccessRequestOutcome",
    # Workspaces & RBAC
    "WorkspaceService",
    "MembershipOutcome",
    "Capability",
    "AuthorizationResult",
    "authorize",
    "require",
    # Invitations
    "InvitationEngine",
    "InvitationIssued",
    "InvitationPreview",
    # Notifications & mail
    "NotificationCenter",
    "NotificationPage",
    "MailSender",
    "MailResult",
    "get_mail_sender",
]
