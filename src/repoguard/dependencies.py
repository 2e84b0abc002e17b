"""FastAPI dependency injection providers."""

from typing import Annotated

from fastapi import Depends, Request

from repoguard.auth.gate import AuthGate
from repoguard.errors.exceptions import IdentityConfigInvalidError
from repoguard.services.dispatcher import EventDispatcher


def get_trace_id(request: Request) -> str:
    """Extract trace_id from request state (set by middleware)."""
    return getattr(request.state, "trace_id", "trc_unknown")


def get_auth_gate(request: Request) -> AuthGate:
    """Return the process-wide gate built at startup."""
    gate = getattr(request.app.state, "auth_gate", None)
    if gate is None:
        raise IdentityConfigInvalidError("GitHub App identity is not configured")
    return gate


def get_dispatcher(request: Request) -> EventDispatcher:
    dispatcher = getattr(request.app.state, "dispatcher", None)
    if dispatcher is None:
        raise IdentityConfigInvalidError("Event dispatcher is not configured")
    return dispatcher


# Type aliases for dependency injection
TraceId = Annotated[str, Depends(get_trace_id)]
Gate = Annotated[AuthGate, Depends(get_auth_gate)]
Dispatcher = Annotated[EventDispatcher, Depends(get_dispatcher)]
