"""Installation token exchange.

GitHub App flow:
1. Sign a JWT with the App's private key (see ``repoguard.auth.assertion``)
2. POST it to ``/app/installations/{id}/access_tokens``
3. Use the returned token, scoped to that installation, for API calls

Installation tokens expire after about an hour; GitHub reports the exact
instant in ``expires_at``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import httpx

from repoguard.errors.exceptions import EscalationFailedError
from repoguard.models.credentials import InstallationCredential, SignedAssertion, utcnow

logger = logging.getLogger(__name__)

ACCESS_TOKENS_PATH = "/app/installations/{installation_id}/access_tokens"

# Used only when the provider omits expires_at
DEFAULT_TOKEN_LIFETIME = timedelta(hours=1)

# Statuses GitHub uses for a bad JWT, a suspended/revoked installation, or an
# installation the App cannot see
_AUTHORIZATION_STATUSES = {401, 403, 404}


class InstallationTokenBroker:
    """Exchanges App assertions for installation access tokens.

    Attributes:
        api_url: Base URL of the GitHub REST API.
        timeout: Per-request timeout in seconds, independent of the
            assertion's ten-minute lifetime.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        api_url: str = "https://api.github.com",
        api_version: str = "2022-11-28",
        timeout: float = 10.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._http = http_client
        self.api_url = api_url.rstrip("/")
        self.api_version = api_version
        self.timeout = timeout
        self._clock = clock

    async def exchange(self, assertion: SignedAssertion, installation_id: str) -> InstallationCredential:
        """Request an installation token using ``assertion`` as the bearer.

        Raises:
            EscalationFailedError: the assertion is already expired, the call
                failed at the network level, or GitHub refused it. ``forbidden``
                is set when GitHub reported an authorization failure.
        """
        if assertion.is_expired(self._clock()):
            # GitHub enforces this too; refuse locally so an expired assertion
            # never leaves the process.
            raise EscalationFailedError("App assertion expired before exchange", installation_id)

        url = self.api_url + ACCESS_TOKENS_PATH.format(installation_id=installation_id)
        headers = {
            "Authorization": f"Bearer {assertion.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": self.api_version,
        }

        try:
            response = await self._http.post(url, headers=headers, timeout=self.timeout)
        except httpx.HTTPError as exc:
            logger.error(
                "Installation token exchange failed for installation %s: %s",
                installation_id,
                type(exc).__name__,
            )
            raise EscalationFailedError("Token exchange request failed", installation_id) from exc

        if response.status_code in _AUTHORIZATION_STATUSES:
            logger.warning(
                "GitHub refused token exchange for installation %s with %s",
                installation_id,
                response.status_code,
            )
            raise EscalationFailedError(
                f"GitHub refused token exchange ({response.status_code})",
                installation_id,
                forbidden=True,
            )
        if response.status_code != 201:
            logger.warning(
                "Token exchange for installation %s returned %s",
                installation_id,
                response.status_code,
            )
            raise EscalationFailedError(
                f"Unexpected token exchange status {response.status_code}", installation_id
            )

        return self._parse_credential(response, installation_id)

    def _parse_credential(self, response: httpx.Response, installation_id: str) -> InstallationCredential:
        try:
            data = response.json()
            token = data["token"]
        except (ValueError, KeyError, TypeError) as exc:
            raise EscalationFailedError("Token exchange response had no token", installation_id) from exc
        if not isinstance(token, str) or not token:
            raise EscalationFailedError("Token exchange response had no token", installation_id)

        expires_at = self._clock() + DEFAULT_TOKEN_LIFETIME
        raw_expiry = data.get("expires_at")
        if raw_expiry:
            try:
                expires_at = datetime.fromisoformat(raw_expiry)
            except (TypeError, ValueError) as exc:
                raise EscalationFailedError("Token exchange response had a bad expires_at", installation_id) from exc
            if expires_at.tzinfo is None:
                expires_at = expires_at.replace(tzinfo=timezone.utc)

        permissions = data.get("permissions") or {}
        logger.info(
            "Installation token issued (installation=%s, expires_at=%s)",
            installation_id,
            expires_at.isoformat(),
        )
        return InstallationCredential(
            token=token,
            installation_id=str(installation_id),
            expires_at=expires_at,
            permissions=dict(permissions) if isinstance(permissions, dict) else {},
        )
