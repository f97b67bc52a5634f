"""
Workspace RBAC: capability checks against a workspace's memberships.

``authorize`` is a pure lookup over the memberships already loaded on the
workspace. It performs no I/O, so every workspace-scoped service method
calls it first. Platform roles play no part here: a user without a
membership is denied even if they own the platform.
"""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from ..models import Workspace, WorkspaceRole
from .errors import ForbiddenError


class Capability(str, Enum):
    MANAGE_WORKSPACE = "manage_workspace"
    DELETE_WORKSPACE = "delete_workspace"
    MANAGE_MEMBERS = "manage_members"
    VIEW_ONLY = "view_only"


class Decision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


def capabilities_for(role: WorkspaceRole) -> frozenset[Capability]:
    """Capabilities granted by a workspace role."""
    match role:
        case WorkspaceRole.OWNER:
            return frozenset(Capability)
        case WorkspaceRole.ADMIN:
            return frozenset({
                Capability.MANAGE_WORKSPACE,
                Capability.MANAGE_MEMBERS,
                Capability.VIEW_ONLY,
            })
        case WorkspaceRole.MEMBER | WorkspaceRole.VIEWER:
            return frozenset({Capability.VIEW_ONLY})
    raise ValueError(f"Unknown workspace role: {role!r}")


@dataclass(frozen=True)
class AuthorizationResult:
    decision: Decision
    capability: Capability
    role: WorkspaceRole | None
    reason: str

    @property
    def allowed(self) -> bool:
        return self.decision is Decision.ALLOW


def authorize(
    workspace: Workspace,
    user_id: UUID,
    capability: Capability,
) -> AuthorizationResult:
    """Decide whether ``user_id`` holds ``capability`` in ``workspace``."""
    membership = workspace.membership_for(user_id)
    if membership is None:
        return AuthorizationResult(
            decision=Decision.DENY,
            capability=capability,
            role=None,
            reason="Not a member of this workspace",
        )

    role = WorkspaceRole(membership.role)
    if capability in capabilities_for(role):
        return AuthorizationResult(
            decision=Decision.ALLOW,
            capability=capability,
            role=role,
            reason=f"{role.value} may {capability.value}",
        )
    return AuthorizationResult(
        decision=Decision.DENY,
        capability=capability,
        role=role,
        reason=f"{role.value} may not {capability.value}",
    )


def require(
    workspace: Workspace,
    user_id: UUID,
    capability: Capability,
) -> AuthorizationResult:
    """Like ``authorize`` but raises ``ForbiddenError`` on deny."""
    result = authorize(workspace, user_id, capability)
    if not result.allowed:
        raise ForbiddenError(result.reason)
    return result
