"""Webhook HMAC signature verification.

GitHub signs each delivery with the App's webhook secret and sends the
result as ``X-Hub-Signature: sha1=<hexdigest>`` (and, for newer deliveries,
``X-Hub-Signature-256: sha256=<hexdigest>``). See
https://docs.github.com/webhooks/using-webhooks/validating-webhook-deliveries
"""

import hashlib
import hmac
import logging
from collections.abc import Mapping
from dataclasses import dataclass

from repoguard.models.enums import SignatureAlgorithm

logger = logging.getLogger(__name__)

SIGNATURE_HEADERS = ("x-hub-signature-256", "x-hub-signature")

_HASHES = {
    SignatureAlgorithm.SHA1: hashlib.sha1,
    SignatureAlgorithm.SHA256: hashlib.sha256,
    SignatureAlgorithm.SHA512: hashlib.sha512,
}


@dataclass(frozen=True)
class WebhookSignature:
    algorithm: SignatureAlgorithm
    hex_digest: str


def parse_signature_header(header: str | None) -> WebhookSignature | None:
    """Split ``"<algorithm>=<hexdigest>"``; None when absent or malformed."""
    if not header:
        return None
    algorithm, sep, digest = header.strip().partition("=")
    if not sep or not digest:
        return None
    try:
        algo = SignatureAlgorithm(algorithm.lower())
    except ValueError:
        return None
    return WebhookSignature(algorithm=algo, hex_digest=digest)


def compute_signature(raw_payload: bytes, secret: bytes, algorithm: SignatureAlgorithm) -> str:
    """Compute the HMAC hex digest GitHub would send for this payload."""
    return hmac.new(secret, raw_payload, _HASHES[algorithm]).hexdigest()


def sign_payload(raw_payload: bytes, secret: bytes, algorithm: SignatureAlgorithm = SignatureAlgorithm.SHA1) -> str:
    """Build a full signature header value for ``raw_payload``."""
    return f"{algorithm.value}={compute_signature(raw_payload, secret, algorithm)}"


def verify_signature(raw_payload: bytes, signature_header: str | None, secret: bytes) -> bool:
    """Return True only if the header carries a matching HMAC of the raw bytes.

    A missing header, an unparseable header, or an unsupported algorithm are
    all rejections. The digest comparison is constant-time.
    """
    if not secret:
        return False

    signature = parse_signature_header(signature_header)
    if signature is None:
        logger.debug("Signature header absent or malformed")
        return False

    expected = compute_signature(raw_payload, secret, signature.algorithm)
    return hmac.compare_digest(expected.encode("ascii"), signature.hex_digest.encode("ascii", "replace"))


def select_signature_header(headers: Mapping[str, str]) -> str | None:
    """Prefer the SHA-256 header when the delivery carries both."""
    lowered = {key.lower(): value for key, value in headers.items()}
    for name in SIGNATURE_HEADERS:
        value = lowered.get(name)
        if value:
            return value
    return None
