"""Webhook authentication and GitHub App credential escalation."""

from repoguard.auth.assertion import load_app_identity, mint_assertion
from repoguard.auth.broker import InstallationTokenBroker
from repoguard.auth.cache import CredentialCache, InMemoryCredentialCache, NullCredentialCache
from repoguard.auth.gate import AuthenticatedContext, AuthGate, GateRun
from repoguard.auth.signature import sign_payload, verify_signature

__all__ = [
    "AuthGate",
    "AuthenticatedContext",
    "CredentialCache",
    "GateRun",
    "InMemoryCredentialCache",
    "InstallationTokenBroker",
    "NullCredentialCache",
    "load_app_identity",
    "mint_assertion",
    "sign_payload",
    "verify_signature",
]
