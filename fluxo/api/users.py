"""Platform account administration routes (platform Owner only)."""

from uuid import UUID

from fastapi import APIRouter, status

from ..core import CurrentUserDep, MailSenderDep, SessionDep
from ..schemas import ApprovalResponse, RoleUpdateRequest, UserResponse
from ..services import IdentityService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=list[UserResponse])
async def list_users(
    session: SessionDep,
    current_user: CurrentUserDep,
) -> list[UserResponse]:
    users = await IdentityService(session).list_users(current_user.user)
    return [UserResponse.model_validate(u) for u in users]


@router.put("/{user_id}/approve", response_model=ApprovalResponse)
async def approve_user(
    user_id: UUID,
    session: SessionDep,
    current_user: CurrentUserDep,
    mail: MailSenderDep,
) -> ApprovalResponse:
    """Approve a pending account. Approving an approved account is a no-op."""
    result = await IdentityService(session, mail_sender=mail).approve_user(
        current_user.user, user_id
    )
    return ApprovalResponse(
        user=UserResponse.model_validate(result.user),
        changed=result.changed,
        warnings=result.warnings,
    )


@router.put("/{user_id}/role", response_model=UserResponse)
async def change_role(
    user_id: UUID,
    request: RoleUpdateRequest,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> UserResponse:
    user = await IdentityService(session).change_role(current_user.user, user_id, request.role)
    return UserResponse.model_validate(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: UUID,
    session: SessionDep,
    current_user: CurrentUserDep,
) -> None:
    await IdentityService(session).delete_user(current_user.user, user_id)
