"""FastAPI application factory and lifespan management."""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta

import httpx
from fastapi import FastAPI

from repoguard.auth.assertion import load_app_identity
from repoguard.auth.broker import InstallationTokenBroker
from repoguard.auth.cache import InMemoryCredentialCache
from repoguard.auth.gate import AuthGate
from repoguard.config import Settings, settings
from repoguard.errors.exceptions import IdentityConfigInvalidError
from repoguard.integrations.github import InstallationClient
from repoguard.logging_config import configure_logging
from repoguard.models.enums import EventType, RepositoryAction
from repoguard.services.branch_protection import DefaultBranchProtector
from repoguard.services.dispatcher import EventDispatcher

# Configure logging at import time
configure_logging(log_level=settings.log_level, json_output=settings.json_logs)

logger = logging.getLogger(__name__)


def build_auth_gate(config: Settings, http_client: httpx.AsyncClient) -> AuthGate:
    """Validate the App identity and assemble the gate. Fails fast on bad config."""
    if not config.webhook_secret:
        raise IdentityConfigInvalidError("GITHUB_WEBHOOK_SECRET is not set")
    identity = load_app_identity(config.app_identifier, config.private_key)

    broker = InstallationTokenBroker(
        http_client,
        api_url=config.github_api_url,
        api_version=config.github_api_version,
        timeout=config.token_timeout_seconds,
    )
    skew = timedelta(seconds=config.credential_skew_seconds)
    return AuthGate(
        webhook_secret=config.webhook_secret_bytes,
        identity=identity,
        broker=broker,
        assertion_cache=InMemoryCredentialCache(skew=skew),
        credential_cache=InMemoryCredentialCache(skew=skew),
    )


def build_dispatcher(
    config: Settings, http_client: httpx.AsyncClient, gate: AuthGate | None = None
) -> EventDispatcher:
    """Register the handlers this App acts on."""

    def client_factory(credential) -> InstallationClient:
        return InstallationClient(
            http_client,
            credential,
            api_url=config.github_api_url,
            api_version=config.github_api_version,
            timeout=config.action_timeout_seconds,
        )

    on_unauthorized = gate.forget_installation if gate is not None else None
    dispatcher = EventDispatcher(client_factory, on_unauthorized=on_unauthorized)
    dispatcher.add_handler(
        EventType.REPOSITORY,
        RepositoryAction.CREATED,
        DefaultBranchProtector(
            wait_seconds=config.branch_wait_seconds,
            poll_initial_seconds=config.branch_poll_initial_seconds,
            poll_max_seconds=config.branch_poll_max_seconds,
        ),
    )
    return dispatcher


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown resources."""
    config: Settings = app.state.settings
    http_client = httpx.AsyncClient(headers={"User-Agent": "repoguard"})
    try:
        app.state.auth_gate = build_auth_gate(config, http_client)
    except IdentityConfigInvalidError:
        await http_client.aclose()
        logger.critical("Refusing to start: GitHub App configuration is invalid")
        raise
    app.state.dispatcher = build_dispatcher(config, http_client, app.state.auth_gate)
    app.state.http_client = http_client

    logger.info("repoguard started (app_id=%s)", app.state.auth_gate.identity.app_id)
    yield

    # Shutdown
    await http_client.aclose()
    logger.info("repoguard shutdown complete")


def create_app(config: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="repoguard",
        version="0.1.0",
        description="GitHub App that protects the default branch of new repositories.",
        lifespan=lifespan,
    )
    app.state.settings = config or settings

    # Add middleware (order matters: last added = first executed)
    from repoguard.api.middleware.trace_id import TraceIdMiddleware
    app.add_middleware(TraceIdMiddleware)

    # Register error handlers
    from repoguard.errors.handlers import register_exception_handlers
    register_exception_handlers(app)

    # Import and mount routers
    from repoguard.api.router import api_router
    app.include_router(api_router)

    return app


app = create_app()
