"""API v1 router configuration."""

from fastapi import APIRouter

from app.api.v1.endpoints import auth, doctors, health, profiles, ratings

api_router = APIRouter()

# Include routers
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(profiles.router, prefix="/profiles", tags=["Profiles"])
api_router.include_router(doctors.router, prefix="/doctors", tags=["Doctors"])
api_router.include_router(ratings.router, tags=["Ratings"])
