"""Custom exception classes for repoguard."""


class RepoGuardError(Exception):
    """Base exception for repoguard."""

    def __init__(self, code: str, message: str, details=None, status_code: int = 500):
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code
        super().__init__(message)


class MalformedPayloadError(RepoGuardError):
    """Webhook body is not a JSON object or lacks required fields."""

    def __init__(self, message: str = "Malformed webhook payload", details=None):
        super().__init__("MALFORMED_PAYLOAD", message, details, status_code=400)


class MissingInstallationError(MalformedPayloadError):
    """Authenticated payload carries no installation id."""

    def __init__(self, message: str = "Payload has no installation id"):
        super().__init__(message)
        self.code = "MISSING_INSTALLATION"


class SignatureMismatchError(RepoGuardError):
    """Webhook signature header is absent, malformed, or does not match."""

    def __init__(self, message: str = "Webhook signature verification failed"):
        super().__init__("SIGNATURE_MISMATCH", message, status_code=401)


class IdentityConfigInvalidError(RepoGuardError):
    """App id, private key, or webhook secret is missing or unusable.

    Raised at startup only; the service must not start serving with it.
    """

    def __init__(self, message: str):
        super().__init__("IDENTITY_CONFIG_INVALID", message, status_code=500)


class AssertionSigningError(RepoGuardError):
    """The App assertion could not be signed."""

    def __init__(self, message: str = "Could not sign App assertion"):
        super().__init__("ASSERTION_SIGNING_FAILED", message, status_code=500)


class EscalationFailedError(RepoGuardError):
    """Exchanging the App assertion for an installation token failed."""

    def __init__(self, message: str, installation_id: str | None = None, forbidden: bool = False):
        details = {"installation_id": installation_id} if installation_id else None
        super().__init__("ESCALATION_FAILED", message, details, status_code=403 if forbidden else 502)
        self.installation_id = installation_id
        self.forbidden = forbidden


class UpstreamActionFailedError(RepoGuardError):
    """A GitHub action call failed after authentication succeeded."""

    def __init__(self, action: str, message: str, upstream_status: int | None = None):
        details = {"action": action}
        if upstream_status is not None:
            details["upstream_status"] = upstream_status
        super().__init__("UPSTREAM_ACTION_FAILED", message, details, status_code=502)
        self.action = action
        self.upstream_status = upstream_status
