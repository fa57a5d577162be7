"""Top-level router."""

from fastapi import APIRouter

from . import auth, health, profile

api_router = APIRouter()

api_router.include_router(health.router)
api_router.include_router(auth.router)
api_router.include_router(profile.router)
