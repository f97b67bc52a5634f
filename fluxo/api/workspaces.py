"""
Workspace API Routes: workspaces, membership and invite issuance.

Every route under /workspaces/{workspace_id} delegates its permission
check to the service layer, which calls rbac.require() first.
"""

from uuid import UUID

from fastapi import APIRouter, Query, status

from ..core import CurrentUserDep, MailSenderDep, SessionDep
from ..schemas import (
    AuthorizationResponse,
    ErrorResponse,
    InvitationCreate,
    InvitationIssuedResponse,
    InvitationResponse,
    JoinByCodeRequest,
    MemberAddRequest,
    MemberResponse,
    MemberRoleUpdate,
    MembershipResponse,
    TransferOwnershipRequest,
    WorkspaceCreate,
    WorkspaceResponse,
    WorkspaceUpdate,
)
from ..services import Capability, InvitationEngine, WorkspaceService, authorize

router = APIRouter(prefix="/workspaces", tags=["workspaces"])


@router.post(
    "",
    response_model=WorkspaceResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_workspace(
    request: WorkspaceCreate,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> WorkspaceResponse:
    """Create a shared workspace owned by the caller."""
    workspace = await WorkspaceService(session).create_workspace(
        owner=current_user.user,
        name=request.name,
        description=request.description,
    )
    return WorkspaceResponse.model_validate(workspace)


@router.get("", response_model=list[WorkspaceResponse])
async def list_workspaces(
    session: SessionDep,
    current_user: CurrentUserDep,
) -> list[WorkspaceResponse]:
    """Workspaces the caller belongs to, personal workspace first."""
    workspaces = await WorkspaceService(session).list_my_workspaces(current_user.id)
    return [WorkspaceResponse.model_validate(w) for w in workspaces]


@router.post(
    "/join",
    response_model=MembershipResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Workspace is private"},
        404: {"model": ErrorResponse, "description": "Invalid invite code"},
    },
)
async def join_by_code(
    request: JoinByCodeRequest,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> MembershipResponse:
    """Join a workspace with its shareable invite code."""
    outcome = await InvitationEngine(session).join_by_code(request.invite_code, current_user.user)
    return MembershipResponse.model_validate(outcome)


@router.get("/{workspace_id}", response_model=WorkspaceResponse)
async def get_workspace(
    workspace_id: UUID,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> WorkspaceResponse:
    workspace = await WorkspaceService(session).get_workspace(workspace_id, current_user.id)
    return WorkspaceResponse.model_validate(workspace)


@router.put("/{workspace_id}", response_model=WorkspaceResponse)
async def update_workspace(
    workspace_id: UUID,
    request: WorkspaceUpdate,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> WorkspaceResponse:
    workspace = await WorkspaceService(session).update_workspace(
        workspace_id,
        current_user.id,
        name=request.name,
        description=request.description,
    )
    return WorkspaceResponse.model_validate(workspace)


@router.delete(
    "/{workspace_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={403: {"model": ErrorResponse, "description": "Only the Owner may delete"}},
)
async def delete_workspace(
    workspace_id: UUID,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> None:
    await WorkspaceService(session).delete_workspace(workspace_id, current_user.id)


@router.get("/{workspace_id}/authorize", response_model=AuthorizationResponse)
async def check_authorization(
    workspace_id: UUID,
    session: SessionDep,
    current_user: CurrentUserDep,
    capability: Capability = Query(...),
) -> AuthorizationResponse:
    """Ask whether the caller holds a capability in this workspace."""
    workspace = await WorkspaceService(session).load(workspace_id)
    result = authorize(workspace, current_user.id, capability)
    return AuthorizationResponse(
        workspace_id=workspace.id,
        capability=result.capability,
        decision=result.decision.value,
        role=result.role,
        reason=result.reason,
    )


# =============================================================================
# MEMBERSHIP
# =============================================================================


@router.post(
    "/{workspace_id}/members",
    response_model=MembershipResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_member(
    workspace_id: UUID,
    request: MemberAddRequest,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> MembershipResponse:
    """Add an existing account, or update its role if already a member."""
    outcome = await WorkspaceService(session).add_member_by_admin(
        workspace_id,
        current_user.id,
        email=request.email,
        role=request.role,
    )
    return MembershipResponse.model_validate(outcome)


@router.put("/{workspace_id}/members/{user_id}", response_model=MemberResponse)
async def change_member_role(
    workspace_id: UUID,
    user_id: UUID,
    request: MemberRoleUpdate,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> MemberResponse:
    membership = await WorkspaceService(session).change_member_role(
        workspace_id, current_user.id, user_id, request.role
    )
    return MemberResponse.model_validate(membership)


@router.delete(
    "/{workspace_id}/members/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={409: {"model": ErrorResponse, "description": "Cannot remove the owner"}},
)
async def remove_member(
    workspace_id: UUID,
    user_id: UUID,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> None:
    await WorkspaceService(session).remove_member(workspace_id, current_user.id, user_id)


@router.post("/{workspace_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
async def leave_workspace(
    workspace_id: UUID,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> None:
    await WorkspaceService(session).leave_workspace(workspace_id, current_user.id)


@router.post("/{workspace_id}/transfer-ownership", response_model=WorkspaceResponse)
async def transfer_ownership(
    workspace_id: UUID,
    request: TransferOwnershipRequest,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> WorkspaceResponse:
    """Make another member the Owner; the caller stays on as Admin."""
    workspace = await WorkspaceService(session).transfer_ownership(
        workspace_id, current_user.id, request.new_owner_id
    )
    return WorkspaceResponse.model_validate(workspace)


# =============================================================================
# INVITATIONS
# =============================================================================


@router.post(
    "/{workspace_id}/invitations",
    response_model=InvitationIssuedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_invitation(
    workspace_id: UUID,
    request: InvitationCreate,
    session: SessionDep,
    current_user: CurrentUserDep,
    mail: MailSenderDep,
) -> InvitationIssuedResponse:
    """Email a single-use invitation link. Mail failures come back as warnings."""
    issued = await InvitationEngine(session, mail_sender=mail).create_invitation(
        workspace_id,
        current_user.user,
        email=request.email,
        role=request.role,
    )
    return InvitationIssuedResponse(
        invitation=InvitationResponse.model_validate(issued.invitation),
        accept_url=issued.accept_url,
        warnings=issued.warnings,
    )
