"""Authentication API routes: registration, login and session info."""

from fastapi import APIRouter, status

from ..core import AuthenticatedUserDep, MailSenderDep, SessionDep
from ..core.security import create_access_token
from ..schemas import (
    ErrorResponse,
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UserResponse,
)
from ..services import IdentityService

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse, "description": "Email already registered"}},
)
async def register(
    request: RegisterRequest,
    session: SessionDep,
    mail: MailSenderDep,
) -> RegisterResponse:
    """Create an account. New accounts wait for approval by the platform Owner."""
    user = await IdentityService(session, mail_sender=mail).register(
        name=request.name,
        email=request.email,
        password=request.password,
    )
    message = (
        "Registration successful."
        if user.is_approved
        else "Registration successful. Your account is pending approval."
    )
    return RegisterResponse(user=UserResponse.model_validate(user), message=message)


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        403: {"model": ErrorResponse, "description": "Account pending approval"},
    },
)
async def login(
    request: LoginRequest,
    session: SessionDep,
    mail: MailSenderDep,
) -> TokenResponse:
    """Exchange email and password for a bearer token."""
    user = await IdentityService(session, mail_sender=mail).authenticate(
        email=request.email,
        password=request.password,
    )
    return TokenResponse(
        access_token=create_access_token(user.id),
        user=UserResponse.model_validate(user),
    )


@router.get("/me", response_model=UserResponse)
async def me(current_user: AuthenticatedUserDep) -> UserResponse:
    """The signed-in account, including its approval state."""
    return UserResponse.model_validate(current_user.user)
