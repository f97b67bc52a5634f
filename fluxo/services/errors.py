"""Domain errors shared by the access and notification services.

Every error is a recoverable, user-facing outcome. The API layer renders
them verbatim as ``ErrorResponse`` bodies using ``code`` and
``status_code``; anything that is not an ``AccessError`` is treated as an
opaque internal failure.
"""

from uuid import UUID


class AccessError(Exception):
    """Base exception for access and notification operations."""

    code = "access_error"
    status_code = 400

    def __init__(self, message: str | None = None):
        self.message = message or self.__doc__ or self.code
        super().__init__(self.message)


class NotFoundError(AccessError):
    """Requested resource does not exist."""
    code = "not_found"
    status_code = 404


class InvalidCodeError(NotFoundError):
    """No workspace matches this invite code."""
    code = "invalid_code"


class ForbiddenError(AccessError):
    """Authenticated, but lacking the required capability or ownership."""
    code = "forbidden"
    status_code = 403


class AuthenticationRequiredError(AccessError):
    """A signed-in session is required for this operation."""
    code = "authentication_required"
    status_code = 401


class InvalidCredentialsError(AccessError):
    """Invalid email or password."""
    code = "invalid_credentials"
    status_code = 401


class AccountPendingApprovalError(AccessError):
    """Account pending approval."""
    code = "pending_approval"
    status_code = 403


class InvalidStateTransitionError(AccessError):
    """Operation not allowed in the current state."""
    code = "invalid_state_transition"
    status_code = 409


class AlreadyConsumedError(AccessError):
    """This invitation has already been used."""
    code = "already_consumed"
    status_code = 409

    def __init__(self, message: str | None = None, workspace_id: UUID | None = None):
        super().__init__(message)
        self.workspace_id = workspace_id


class ExpiredError(AccessError):
    """This invitation has expired."""
    code = "expired"
    status_code = 410


class WorkspaceIsPrivateError(AccessError):
    """Private workspaces cannot have additional members."""
    code = "workspace_is_private"
    status_code = 403


class CannotRemoveOwnerError(AccessError):
    """The owner cannot be removed; transfer ownership first."""
    code = "cannot_remove_owner"
    status_code = 409


class ConflictError(AccessError):
    """Resource already exists."""
    code = "conflict"
    status_code = 409
