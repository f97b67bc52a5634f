"""Base schemas and common types for the Fluxo API."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict


# =============================================================================
# BASE SCHEMAS
# =============================================================================


class FluxoBaseModel(BaseModel):
    """Base model with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,  # Enable ORM mode
        populate_by_name=True,
        use_enum_values=True,
    )


# =============================================================================
# ERROR RESPONSES
# =============================================================================


class ErrorDetail(FluxoBaseModel):
    """Detailed error information."""

    field: str | None = None
    message: str
    code: str


class ErrorResponse(FluxoBaseModel):
    """Standard error response format."""

    error: str
    message: str
    details: list[ErrorDetail] = []


class WarningsMixin(BaseModel):
    """Soft failures (e.g. mail not delivered) attached to a successful response."""

    warnings: list[str] = []


# =============================================================================
# COMMON REFERENCE SCHEMAS
# =============================================================================


class UserRef(FluxoBaseModel):
    """Minimal user reference for embedding in responses."""

    id: UUID
    name: str
    email: str
    avatar_url: str | None = None


class MessageResponse(FluxoBaseModel):
    message: str
