"""In-memory credential types for the App -> installation escalation chain.

None of these are ever persisted. Secret material is excluded from ``repr``
so that an accidental ``logger.info("%s", credential)`` cannot leak it.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

ASSERTION_LIFETIME = timedelta(minutes=10)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AppIdentity:
    """The registered GitHub App: its id and RSA private key (PEM)."""

    app_id: str
    private_key_pem: str = field(repr=False)


@dataclass(frozen=True)
class SignedAssertion:
    """RS256 JWT asserting the App identity."""

    token: str = field(repr=False)
    issuer: str
    issued_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime | None = None, skew: timedelta = timedelta(0)) -> bool:
        now = now or utcnow()
        return now + skew >= self.expires_at


@dataclass(frozen=True)
class InstallationCredential:
    """Installation access token scoped to a single installation."""

    token: str = field(repr=False)
    installation_id: str
    expires_at: datetime
    permissions: dict[str, str] = field(default_factory=dict, compare=False, hash=False)

    @property
    def authorization_header(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}
