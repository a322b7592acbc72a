"""API routes for CampusCare."""

from fastapi import APIRouter

from .admin import router as admin_router
from .auth import router as auth_router
from .realtime import router as realtime_router
from .reports import router as reports_router
from .setup import router as setup_router
from .user import router as user_router

# Main API router
api_router = APIRouter()

# Auth routes (signup, signin, signout, reset-password)
api_router.include_router(auth_router)

# User routes (/me/*)
api_router.include_router(user_router)

# Reports are the primary resource
api_router.include_router(reports_router)
api_router.include_router(admin_router)

# Deployment setup banner and re-checks
api_router.include_router(setup_router)

# Live list and comment feeds
api_router.include_router(realtime_router)

__all__ = ["api_router"]
