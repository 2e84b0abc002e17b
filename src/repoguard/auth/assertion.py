"""GitHub App identity loading and JWT assertion minting.

Authenticating as the App requires a JWT signed with the App's private key
(RS256). GitHub rejects any JWT whose ``exp`` is more than ten minutes after
its ``iat``, so the lifetime is fixed at exactly that bound.
"""

import logging
from datetime import datetime, timezone

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwt
from jose.exceptions import JOSEError

from repoguard.errors.exceptions import AssertionSigningError, IdentityConfigInvalidError
from repoguard.models.credentials import ASSERTION_LIFETIME, AppIdentity, SignedAssertion, utcnow

logger = logging.getLogger(__name__)

ASSERTION_ALGORITHM = "RS256"


def normalize_pem(private_key_pem: str) -> str:
    """Turn single-line ``\\n``-escaped PEM (as stored in env files) into real PEM."""
    return private_key_pem.replace("\\n", "\n").strip() + "\n"


def load_app_identity(app_id: str | int | None, private_key_pem: str | None) -> AppIdentity:
    """Validate the App id and RSA key once, at startup.

    Raises:
        IdentityConfigInvalidError: app id missing, key missing, unparseable,
            encrypted, or not an RSA key.
    """
    app_id = str(app_id or "").strip()
    if not app_id:
        raise IdentityConfigInvalidError("GITHUB_APP_IDENTIFIER is not set")
    if not private_key_pem or not private_key_pem.strip():
        raise IdentityConfigInvalidError("GITHUB_PRIVATE_KEY is not set")

    pem = normalize_pem(private_key_pem)
    try:
        key = serialization.load_pem_private_key(pem.encode("utf-8"), password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        # The message from cryptography never includes key material
        raise IdentityConfigInvalidError(f"GITHUB_PRIVATE_KEY is not a usable PEM private key: {exc}") from exc

    if not isinstance(key, rsa.RSAPrivateKey):
        raise IdentityConfigInvalidError("GITHUB_PRIVATE_KEY must be an RSA private key")

    logger.info("GitHub App identity loaded (app_id=%s, key_size=%d)", app_id, key.key_size)
    return AppIdentity(app_id=app_id, private_key_pem=pem)


def mint_assertion(identity: AppIdentity, now: datetime | None = None) -> SignedAssertion:
    """Sign an App JWT with ``iat=now``, ``exp=now+10min``, ``iss=app_id``."""
    now = now or utcnow()
    # JWT NumericDate has second precision; truncate first so the claims and
    # the returned timestamps agree exactly.
    issued_at = datetime.fromtimestamp(int(now.timestamp()), tz=timezone.utc)
    expires_at = issued_at + ASSERTION_LIFETIME

    claims = {
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
        "iss": identity.app_id,
    }

    try:
        token = jwt.encode(claims, identity.private_key_pem, algorithm=ASSERTION_ALGORITHM)
    except JOSEError as exc:
        raise AssertionSigningError(f"Could not sign App assertion: {type(exc).__name__}") from exc

    logger.debug("Minted App assertion (iss=%s, expires_at=%s)", identity.app_id, expires_at.isoformat())
    return SignedAssertion(token=token, issuer=identity.app_id, issued_at=issued_at, expires_at=expires_at)
