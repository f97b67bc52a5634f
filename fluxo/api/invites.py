"""
Invite token routes: preview and accept.

Acceptance works with or without a session. Without one the caller gets
401 ``authentication_required`` and should replay the same token after
signing in. Re-presenting a token that was already accepted is answered
with ``already_member`` when the caller belongs to the workspace.
"""

import logging

from fastapi import APIRouter

from ..core import MailSenderDep, OptionalUserDep, SessionDep
from ..schemas import (
    AcceptInviteResponse,
    ErrorResponse,
    InvitationPreviewResponse,
    UserRef,
    WorkspaceResponse,
    WorkspaceSummary,
)
from ..services import (
    AlreadyConsumedError,
    ExpiredError,
    InvitationEngine,
    WorkspaceService,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/invites", tags=["invitations"])

_ERRORS = {
    401: {"model": ErrorResponse, "description": "Sign in, then replay the token"},
    403: {"model": ErrorResponse, "description": "Invitation is for another email"},
    404: {"model": ErrorResponse, "description": "Unknown token"},
    409: {"model": ErrorResponse, "description": "Token already used"},
    410: {"model": ErrorResponse, "description": "Token expired"},
}


@router.get("/{token}", response_model=InvitationPreviewResponse, responses=_ERRORS)
async def preview_invitation(
    token: str,
    session: SessionDep,
) -> InvitationPreviewResponse:
    """Show what an invitation grants. No authentication required."""
    try:
        preview = await InvitationEngine(session).preview_invitation(token)
    except ExpiredError:
        # Persist the pending -> expired transition before reporting it
        await session.commit()
        raise

    return InvitationPreviewResponse(
        workspace=WorkspaceSummary.model_validate(preview.workspace),
        email=preview.invitation.email,
        role=preview.invitation.role,
        expires_at=preview.invitation.expires_at,
        invited_by=UserRef.model_validate(preview.inviter) if preview.inviter else None,
    )


@router.post("/{token}/accept", response_model=AcceptInviteResponse, responses=_ERRORS)
async def accept_invitation(
    token: str,
    session: SessionDep,
    current_user: OptionalUserDep,
    mail: MailSenderDep,
) -> AcceptInviteResponse:
    user = current_user.user if current_user else None

    try:
        outcome = await InvitationEngine(session, mail_sender=mail).accept_invite(token, user)
    except ExpiredError:
        await session.commit()
        raise
    except AlreadyConsumedError as e:
        if user is None or e.workspace_id is None:
            raise
        workspace = await WorkspaceService(session).load(e.workspace_id)
        if workspace.membership_for(user.id) is None:
            raise
        logger.info(f"Used invitation re-presented by member {user.id}; entering workspace")
        return AcceptInviteResponse(
            outcome="already_member",
            workspace=WorkspaceResponse.model_validate(workspace),
        )

    return AcceptInviteResponse(
        outcome="joined" if outcome.created else "already_member",
        workspace=WorkspaceResponse.model_validate(outcome.workspace),
    )
