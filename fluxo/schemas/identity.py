"""Pydantic schemas for accounts, authentication and access requests."""

from datetime import datetime
from uuid import UUID

from pydantic import EmailStr, Field

from ..models import AccessRequestStatus, PlatformRole
from .base import FluxoBaseModel, UserRef, WarningsMixin


# =============================================================================
# ACCOUNTS
# =============================================================================


class RegisterRequest(FluxoBaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)


class LoginRequest(FluxoBaseModel):
    """Login request with email and password."""
    email: EmailStr
    password: str


class UserResponse(FluxoBaseModel):
    """Full user response."""

    id: UUID
    name: str
    email: str
    avatar_url: str | None = None
    platform_role: PlatformRole
    is_approved: bool
    private_workspace_id: UUID | None = None
    created_at: datetime
    last_login_at: datetime | None = None


class TokenResponse(FluxoBaseModel):
    """Token response after successful login."""
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class RegisterResponse(FluxoBaseModel):
    user: UserResponse
    message: str


class RoleUpdateRequest(FluxoBaseModel):
    role: PlatformRole


class ApprovalResponse(WarningsMixin, FluxoBaseModel):
    user: UserResponse
    changed: bool


# =============================================================================
# ACCESS REQUESTS
# =============================================================================


class AccessRequestCreate(FluxoBaseModel):
    """Anonymous request for platform access."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    company: str | None = Field(default=None, max_length=255)
    message: str | None = Field(default=None, max_length=2000)


class AccessRequestResponse(FluxoBaseModel):
    id: UUID
    name: str
    email: str
    company: str | None = None
    message: str | None = None
    status: AccessRequestStatus
    rejection_reason: str | None = None
    processed_by: UUID | None = None
    processed_at: datetime | None = None
    created_at: datetime


class AccessRequestSubmitted(WarningsMixin, FluxoBaseModel):
    message: str = "Access request submitted successfully. You will receive an email once approved."
    request: AccessRequestResponse


class RejectAccessRequest(FluxoBaseModel):
    reason: str | None = Field(default=None, max_length=2000)


class AccessRequestDecision(WarningsMixin, FluxoBaseModel):
    request: AccessRequestResponse
    user: UserRef | None = None
