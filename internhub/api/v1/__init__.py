"""API v1 routes."""

from fastapi import APIRouter

from internhub.api.v1 import admin, applications, interviews, openings, realtime, subscriptions

api_router = APIRouter()

# Include all route modules
api_router.include_router(applications.router, prefix="/applications", tags=["Applications"])
api_router.include_router(interviews.router, prefix="/interviews", tags=["Interviews"])
api_router.include_router(subscriptions.router, prefix="/subscriptions", tags=["Subscriptions"])
api_router.include_router(openings.router, prefix="/openings", tags=["Openings"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
api_router.include_router(realtime.router, prefix="/realtime", tags=["Realtime"])
