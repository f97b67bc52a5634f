"""FastAPI dependencies for authentication, authorization, and context."""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import User
from ..services.errors import AccountPendingApprovalError
from ..services.identity import IdentityService, is_account_usable
from ..services.mailer import MailSender, get_mail_sender
from .config import get_settings
from .database import get_session
from .security import decode_firebase_token, decode_token

logger = logging.getLogger(__name__)
settings = get_settings()

# Security scheme
bearer_scheme = HTTPBearer(auto_error=False)


class CurrentUser:
    """Represents the authenticated user context."""

    def __init__(self, user: User):
        self.user = user

    @property
    def id(self) -> UUID:
        return self.user.id

    @property
    def is_approved(self) -> bool:
        return is_account_usable(self.user)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_authenticated_user(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CurrentUser:
    """Resolve the bearer token to a user, approved or not.

    Firebase ID tokens are tried first when Firebase is configured, then
    the application's own HS256 access tokens.
    """
    if not credentials:
        raise _unauthorized("Not authenticated")

    token = credentials.credentials

    if settings.firebase_enabled:
        firebase_payload = decode_firebase_token(token)
        if firebase_payload:
            user = await IdentityService(session).resolve_external(firebase_payload)
            return CurrentUser(user=user)

    payload = decode_token(token)
    if not payload:
        raise _unauthorized("Invalid or expired token")
    if payload.type != "access":
        raise _unauthorized("Invalid token type")

    user = await session.get(User, UUID(payload.sub))
    if not user:
        raise _unauthorized("User not found")

    return CurrentUser(user=user)


async def get_current_user(
    current_user: Annotated[CurrentUser, Depends(get_authenticated_user)],
) -> CurrentUser:
    """Dependency to get the current user; unapproved accounts are refused."""
    if not current_user.is_approved:
        raise AccountPendingApprovalError(
            "Account pending approval. Please wait for an administrator to approve your account."
        )
    return current_user


async def get_current_user_optional(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CurrentUser | None:
    """Optional authentication - returns None if not authenticated."""
    if not credentials:
        return None

    try:
        current_user = await get_authenticated_user(credentials, session)
    except HTTPException:
        return None
    return await get_current_user(current_user)


# Type aliases for cleaner dependency injection
AuthenticatedUserDep = Annotated[CurrentUser, Depends(get_authenticated_user)]
CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]
OptionalUserDep = Annotated[CurrentUser | None, Depends(get_current_user_optional)]
SessionDep = Annotated[AsyncSession, Depends(get_session)]
MailSenderDep = Annotated[MailSender, Depends(get_mail_sender)]
