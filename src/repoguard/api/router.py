"""Top-level API router."""

from fastapi import APIRouter

from repoguard.api.routes import events, health

api_router = APIRouter()
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(events.router)
