"""String enums used across the auth pipeline and dispatcher."""

from enum import StrEnum


class GateState(StrEnum):
    RECEIVED = "received"
    SIGNATURE_CHECKED = "signature_checked"
    APP_AUTHENTICATED = "app_authenticated"
    INSTALLATION_AUTHENTICATED = "installation_authenticated"
    READY = "ready"
    REJECTED = "rejected"


class SignatureAlgorithm(StrEnum):
    SHA1 = "sha1"
    SHA256 = "sha256"
    SHA512 = "sha512"


class EventType(StrEnum):
    REPOSITORY = "repository"


class RepositoryAction(StrEnum):
    CREATED = "created"
    DELETED = "deleted"
