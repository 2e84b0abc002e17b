"""Per-request authentication gate.

Every webhook passes through the same ordered stages before any handler
runs::

    received -> signature_checked -> app_authenticated
             -> installation_authenticated -> ready

Any failure moves the request to ``rejected`` and raises the matching
``RepoGuardError``; nothing past the failed stage is attempted. There is no
per-event-type shortcut through the gate.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime

from repoguard.auth.assertion import mint_assertion
from repoguard.auth.broker import InstallationTokenBroker
from repoguard.auth.cache import CredentialCache, InMemoryCredentialCache
from repoguard.auth.signature import select_signature_header, verify_signature
from repoguard.errors.exceptions import MissingInstallationError, RepoGuardError, SignatureMismatchError
from repoguard.models.credentials import AppIdentity, InstallationCredential, SignedAssertion, utcnow
from repoguard.models.enums import GateState
from repoguard.models.events import WebhookEvent
from repoguard.services.envelope import parse_event

logger = logging.getLogger(__name__)

EVENT_HEADER = "x-github-event"
DELIVERY_HEADER = "x-github-delivery"


@dataclass(frozen=True)
class AuthenticatedContext:
    """A verified event plus the installation credential to act with."""

    event: WebhookEvent
    credential: InstallationCredential
    states: tuple[GateState, ...] = ()


@dataclass
class GateRun:
    """State trail of one request through the gate."""

    states: list[GateState] = field(default_factory=lambda: [GateState.RECEIVED])

    @property
    def current(self) -> GateState:
        return self.states[-1]

    def advance(self, state: GateState) -> None:
        if self.current == GateState.REJECTED:
            raise RuntimeError("cannot advance a rejected gate run")
        self.states.append(state)

    def reject(self) -> None:
        self.states.append(GateState.REJECTED)


class AuthGate:
    """Verify, assert App identity, escalate to the installation, then hand off."""

    def __init__(
        self,
        webhook_secret: bytes,
        identity: AppIdentity,
        broker: InstallationTokenBroker,
        assertion_cache: CredentialCache[SignedAssertion] | None = None,
        credential_cache: CredentialCache[InstallationCredential] | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._secret = webhook_secret
        self.identity = identity
        self._broker = broker
        self._assertions = assertion_cache if assertion_cache is not None else InMemoryCredentialCache()
        self._credentials = credential_cache if credential_cache is not None else InMemoryCredentialCache()
        self._clock = clock

    async def authenticate(
        self,
        raw_body: bytes,
        headers: Mapping[str, str],
        run: GateRun | None = None,
    ) -> AuthenticatedContext:
        """Run all stages for one request.

        Raises:
            SignatureMismatchError: signature absent, malformed, or wrong.
            MalformedPayloadError: verified body is not a usable envelope, or
                carries no installation id.
            AssertionSigningError: the App JWT could not be signed.
            EscalationFailedError: the installation token exchange failed.
        """
        run = run or GateRun()
        lowered = {key.lower(): value for key, value in headers.items()}
        try:
            if not verify_signature(raw_body, select_signature_header(lowered), self._secret):
                raise SignatureMismatchError()
            run.advance(GateState.SIGNATURE_CHECKED)

            event = parse_event(raw_body, lowered.get(EVENT_HEADER), lowered.get(DELIVERY_HEADER))

            assertion = await self._app_assertion()
            run.advance(GateState.APP_AUTHENTICATED)

            installation_id = event.installation_id
            if installation_id is None:
                raise MissingInstallationError()
            credential = await self._installation_credential(installation_id, assertion)
            run.advance(GateState.INSTALLATION_AUTHENTICATED)
        except RepoGuardError as exc:
            failed_at = run.current
            run.reject()
            logger.warning(
                "auth_gate_rejected",
                extra={"stage": failed_at.value, "code": exc.code, "status_code": exc.status_code},
            )
            raise

        run.advance(GateState.READY)
        logger.info(
            "auth_gate_ready",
            extra={
                "event_type": event.event_type,
                "action": event.action,
                "installation_id": credential.installation_id,
            },
        )
        return AuthenticatedContext(event=event, credential=credential, states=tuple(run.states))

    async def _app_assertion(self) -> SignedAssertion:
        key = self.identity.app_id
        assertion = self._assertions.get(key)
        if assertion is not None:
            return assertion

        async with self._assertions.lock(key):
            assertion = self._assertions.get(key)
            if assertion is None:
                assertion = mint_assertion(self.identity, self._clock())
                self._assertions.put(key, assertion, assertion.expires_at)
        return assertion

    async def _installation_credential(
        self, installation_id: str, assertion: SignedAssertion
    ) -> InstallationCredential:
        credential = self._credentials.get(installation_id)
        if credential is not None:
            return credential

        async with self._credentials.lock(installation_id):
            credential = self._credentials.get(installation_id)
            if credential is not None:
                return credential

            if assertion.is_expired(self._clock()):
                assertion = await self._app_assertion()

            # Shielded so a dropped client connection cannot abort an
            # exchange half way; the credential is cached only once the
            # broker has returned it in full.
            exchange = asyncio.ensure_future(self._exchange_and_store(assertion, installation_id))
            exchange.add_done_callback(_retrieve_exchange_error)
            return await asyncio.shield(exchange)

    async def _exchange_and_store(
        self, assertion: SignedAssertion, installation_id: str
    ) -> InstallationCredential:
        credential = await self._broker.exchange(assertion, installation_id)
        self._credentials.put(installation_id, credential, credential.expires_at)
        return credential

    def forget_installation(self, installation_id: str) -> None:
        """Drop the cached credential so the next delivery exchanges a new one."""
        self._credentials.invalidate(installation_id)
        logger.info("Discarded cached credential for installation %s", installation_id)


def _retrieve_exchange_error(task: asyncio.Future) -> None:
    # The awaiting request may have been cancelled and left the shielded
    # exchange behind; its outcome is consumed here either way.
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("Installation token exchange ended with %s", type(exc).__name__)
