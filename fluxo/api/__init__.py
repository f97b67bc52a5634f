"""API routes for Fluxo."""

from fastapi import APIRouter

from .access_requests import router as access_requests_router
from .auth import router as auth_router
from .invites import router as invites_router
from .notifications import router as notifications_router
from .users import router as users_router
from .workspaces import router as workspaces_router

# Main API router
api_router = APIRouter()

# Identity: registration, login, account administration, access requests
api_router.include_router(auth_router)
api_router.include_router(users_router)
api_router.include_router(access_requests_router)

# Workspaces, membership and invitation tokens
api_router.include_router(workspaces_router)
api_router.include_router(invites_router)

api_router.include_router(notifications_router)

__all__ = ["api_router"]
