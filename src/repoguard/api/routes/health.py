"""Readiness and liveness endpoints."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse

router = APIRouter()

READY_MESSAGE = "Success! Watching organization events for new repositories."


@router.get("/", response_class=PlainTextResponse)
async def index() -> str:
    return READY_MESSAGE


@router.get("/health/live")
async def liveness():
    """Liveness probe: 200 whenever the process is running."""
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness(request: Request):
    """Readiness probe. The auth gate exists only once the App identity loaded."""
    gate = getattr(request.app.state, "auth_gate", None)
    ready = gate is not None
    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ready" if ready else "not_ready",
            "checks": {"app_identity": "ok" if ready else "missing"},
        },
    )
