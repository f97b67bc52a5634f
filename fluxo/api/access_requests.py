"""Access request routes: anonymous intake and Owner review."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from ..core import CurrentUserDep, MailSenderDep, SessionDep
from ..models import AccessRequestStatus
from ..schemas import (
    AccessRequestCreate,
    AccessRequestDecision,
    AccessRequestResponse,
    AccessRequestSubmitted,
    ErrorResponse,
    RejectAccessRequest,
    UserRef,
)
from ..services import AccessRequestOutcome, AccessRequestService

router = APIRouter(prefix="/access-requests", tags=["access-requests"])


def _decision(outcome: AccessRequestOutcome) -> AccessRequestDecision:
    return AccessRequestDecision(
        request=AccessRequestResponse.model_validate(outcome.request),
        user=UserRef.model_validate(outcome.user) if outcome.user else None,
        warnings=outcome.warnings,
    )


@router.post(
    "",
    response_model=AccessRequestSubmitted,
    status_code=status.HTTP_201_CREATED,
)
async def submit_request(
    request: AccessRequestCreate,
    session: SessionDep,
    mail: MailSenderDep,
) -> AccessRequestSubmitted:
    """Ask for platform access. No authentication required."""
    outcome = await AccessRequestService(session, mail_sender=mail).submit_request(
        name=request.name,
        email=request.email,
        company=request.company,
        message=request.message,
    )
    return AccessRequestSubmitted(
        request=AccessRequestResponse.model_validate(outcome.request),
        warnings=outcome.warnings,
    )


@router.get("", response_model=list[AccessRequestResponse])
async def list_requests(
    session: SessionDep,
    current_user: CurrentUserDep,
    status_filter: AccessRequestStatus | None = Query(default=None, alias="status"),
) -> list[AccessRequestResponse]:
    requests = await AccessRequestService(session).list_requests(current_user.user, status_filter)
    return [AccessRequestResponse.model_validate(r) for r in requests]


@router.put(
    "/{request_id}/approve",
    response_model=AccessRequestDecision,
    responses={409: {"model": ErrorResponse, "description": "Request already processed"}},
)
async def approve_request(
    request_id: UUID,
    session: SessionDep,
    current_user: CurrentUserDep,
    mail: MailSenderDep,
) -> AccessRequestDecision:
    """Approve a pending request and provision the account."""
    outcome = await AccessRequestService(session, mail_sender=mail).approve(
        current_user.user, request_id
    )
    return _decision(outcome)


@router.put(
    "/{request_id}/reject",
    response_model=AccessRequestDecision,
    responses={409: {"model": ErrorResponse, "description": "Request already processed"}},
)
async def reject_request(
    request_id: UUID,
    session: SessionDep,
    current_user: CurrentUserDep,
    request: RejectAccessRequest | None = None,
) -> AccessRequestDecision:
    outcome = await AccessRequestService(session).reject(
        current_user.user,
        request_id,
        reason=request.reason if request else None,
    )
    return _decision(outcome)
