"""Main API router that aggregates all route modules."""

from fastapi import APIRouter

from backend.app.api.routes import tracks

api_router = APIRouter()

# Include all route modules
api_router.include_router(tracks.router, prefix="/tracks", tags=["tracks"])
