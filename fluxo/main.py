"""Fluxo: Main FastAPI Application.

Workspace access and notification service: platform accounts with
owner approval, role-based workspace membership, invitation links and
codes, and a polled in-app notification center.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import api_router
from .core import close_db, get_settings, init_db
from .schemas import ErrorDetail, ErrorResponse
from .services import AccessError

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    logger.info(f"Starting {settings.app_name} {settings.app_version} ({settings.environment})")

    # Startup - skip init_db in production (tables are managed out of band)
    if settings.environment != "production":
        await init_db()
    yield
    # Shutdown
    await close_db()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    ## Fluxo API

    Access control and notifications for multi-tenant workspaces.

    ### Key Features

    - **Account Approval**: New accounts wait for the platform Owner.
    - **Workspace Roles**: Owner, Admin, Member and Viewer with fixed capabilities.
    - **Invitations**: Single-use expiring links and reusable join codes.
    - **Notifications**: Per-user notification center served by polling.

    ### Authentication

    Endpoints require a bearer token in the `Authorization: Bearer <token>` header.
    """,
    openapi_url=f"{settings.api_prefix}/openapi.json",
    docs_url=f"{settings.api_prefix}/docs",
    redoc_url=f"{settings.api_prefix}/redoc",
    lifespan=lifespan,
)

# CORS middleware with explicit origins (credentials require explicit origins, not "*")
cors_origins = ["http://localhost:3000", "http://localhost:8000"]
for origin in settings.allowed_origins:
    if origin and origin not in cors_origins:
        cors_origins.append(origin)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH", "HEAD"],
    allow_headers=["*"],
    max_age=86400,
)


@app.exception_handler(AccessError)
async def access_error_handler(request: Request, exc: AccessError):
    """Render domain errors with their stable code."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=exc.code, message=exc.message, details=[]).model_dump(),
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    import traceback

    logger.exception(f"Unhandled exception on {request.method} {request.url.path}")

    details = []
    # Traceback only in debug mode
    if settings.debug:
        details.append(
            ErrorDetail(message=traceback.format_exc(), code=type(exc).__name__)
        )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="internal_error",
            message="An unexpected error occurred",
            details=details,
        ).model_dump(),
    )


# Health check endpoint
@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": settings.app_version}


# Include API routes
app.include_router(api_router, prefix=settings.api_prefix)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "fluxo.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
