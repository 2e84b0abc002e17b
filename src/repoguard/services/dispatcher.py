"""Route authenticated events to handlers by (event type, action)."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from repoguard.auth.gate import AuthenticatedContext
from repoguard.errors.exceptions import UpstreamActionFailedError
from repoguard.integrations.github import InstallationClient
from repoguard.models.credentials import InstallationCredential
from repoguard.services.branch_protection import CancelCheck, never_cancelled

logger = logging.getLogger(__name__)

Handler = Callable[[AuthenticatedContext, InstallationClient, CancelCheck], Awaitable[None]]
ClientFactory = Callable[[InstallationCredential], InstallationClient]


@dataclass
class DispatchResult:
    handled: bool = False
    handler: str | None = None
    errors: list[UpstreamActionFailedError] = field(default_factory=list)


class EventDispatcher:
    """Holds at most one handler per ``(event_type, action)`` pair.

    Events without a registered handler are acknowledged and ignored. When
    GitHub answers a handler's call with 401 the installation token has been
    revoked, and ``on_unauthorized`` is called with the installation id so the
    next delivery exchanges a fresh one.
    """

    def __init__(
        self,
        client_factory: ClientFactory,
        on_unauthorized: Callable[[str], None] | None = None,
    ) -> None:
        self._client_factory = client_factory
        self._on_unauthorized = on_unauthorized
        self._handlers: dict[tuple[str, str | None], Handler] = {}

    def add_handler(self, event_type: str, action: str | None, handler: Handler) -> None:
        key = (event_type, action)
        if key in self._handlers:
            raise ValueError(f"Handler already registered for {event_type}.{action}")
        self._handlers[key] = handler

    def handler_for(self, event_type: str, action: str | None) -> Handler | None:
        return self._handlers.get((event_type, action))

    async def dispatch(
        self,
        context: AuthenticatedContext,
        is_cancelled: CancelCheck = never_cancelled,
    ) -> DispatchResult:
        event = context.event
        handler = self.handler_for(event.event_type, event.action)
        if handler is None:
            logger.debug("No handler for %s.%s", event.event_type, event.action)
            return DispatchResult()

        name = getattr(handler, "name", getattr(handler, "__name__", type(handler).__name__))
        result = DispatchResult(handled=True, handler=name)
        client = self._client_factory(context.credential)
        try:
            await handler(context, client, is_cancelled)
        except UpstreamActionFailedError as exc:
            # Authentication stays valid; the failure is reported, not retried
            logger.error(
                "upstream_action_failed",
                extra={"handler": name, "action": exc.action, "upstream_status": exc.upstream_status},
            )
            result.errors.append(exc)
            if exc.upstream_status == 401 and self._on_unauthorized is not None:
                self._on_unauthorized(context.credential.installation_id)
        return result
