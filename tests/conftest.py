"""Shared test fixtures."""

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient

from repoguard.auth.assertion import load_app_identity
from repoguard.auth.signature import sign_payload
from repoguard.config import Settings

WEBHOOK_SECRET = "test-webhook-secret"
APP_ID = "12345"
INSTALLATION_ID = 4242


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_key) -> str:
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")


@pytest.fixture(scope="session")
def public_key_pem(rsa_key) -> str:
    return rsa_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("utf-8")


@pytest.fixture
def identity(private_key_pem):
    return load_app_identity(APP_ID, private_key_pem)


@pytest.fixture
def settings(private_key_pem) -> Settings:
    return Settings(
        _env_file=None,
        private_key=private_key_pem,
        webhook_secret=WEBHOOK_SECRET,
        app_identifier=APP_ID,
        branch_wait_seconds=1.0,
        branch_poll_initial_seconds=0.01,
        branch_poll_max_seconds=0.02,
        json_logs=False,
    )


class FakeGitHub:
    """Stand-in for api.github.com behind an httpx.MockTransport."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.token_status = 201
        self.token_network_error = False
        self.token_expires_at = datetime.now(timezone.utc) + timedelta(hours=1)
        self.branch_missing_checks = 0
        self.branch_error_status: int | None = None
        self.protect_status = 200
        self.issue_status = 201
        self.issue_empty_body = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path.endswith("/access_tokens"):
            if self.token_network_error:
                raise httpx.ConnectError("connection refused", request=request)
            if self.token_status != 201:
                return httpx.Response(self.token_status, json={"message": "Bad credentials"})
            return httpx.Response(
                201,
                json={
                    "token": "ghs_installation_token",
                    "expires_at": self.token_expires_at.strftime("%Y-%m-%dT%H:%M:%SZ"),
                    "permissions": {"administration": "write", "issues": "write"},
                },
            )

        if request.method == "GET" and "/branches/" in path:
            if self.branch_error_status is not None:
                return httpx.Response(self.branch_error_status, json={"message": "Server Error"})
            if self.branch_missing_checks > 0:
                self.branch_missing_checks -= 1
                return httpx.Response(404, json={"message": "Branch not found"})
            return httpx.Response(200, json={"name": path.rsplit("/", 1)[-1]})

        if request.method == "PUT" and path.endswith("/protection"):
            return httpx.Response(self.protect_status, json={})

        if request.method == "POST" and path.endswith("/issues"):
            if self.issue_empty_body:
                return httpx.Response(self.issue_status)
            return httpx.Response(self.issue_status, json={"number": 1})

        return httpx.Response(404, json={"message": "Not Found"})

    def calls(self, method: str, suffix: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path.endswith(suffix)]

    @property
    def token_calls(self) -> list[httpx.Request]:
        return self.calls("POST", "/access_tokens")

    @property
    def action_calls(self) -> list[httpx.Request]:
        return [r for r in self.requests if not r.url.path.endswith("/access_tokens")]


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
async def github_http(fake_github):
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_github)) as http:
        yield http


@pytest.fixture
def app(settings, github_http):
    """Create a test application with its collaborators wired to the fake GitHub."""
    from repoguard.main import build_auth_gate, build_dispatcher, create_app

    _app = create_app(settings)
    _app.state.auth_gate = build_auth_gate(settings, github_http)
    _app.state.dispatcher = build_dispatcher(settings, github_http, _app.state.auth_gate)
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def repository_payload(action: str = "created", **overrides) -> dict:
    payload = {
        "action": action,
        "repository": {
            "id": 1296269,
            "name": "hello-world",
            "full_name": "octo-org/hello-world",
            "default_branch": "main",
            "private": False,
            "owner": {"login": "octo-org", "id": 1},
        },
        "sender": {"login": "octocat", "id": 583231},
        "installation": {"id": INSTALLATION_ID},
    }
    payload.update(overrides)
    return payload


def signed_request(
    payload: dict | bytes,
    event: str = "repository",
    secret: str = WEBHOOK_SECRET,
    delivery: str = "72d3162e-cc78-11e3-81ab-4c9367dc0958",
) -> tuple[bytes, dict[str, str]]:
    body = payload if isinstance(payload, bytes) else json.dumps(payload).encode("utf-8")
    headers = {
        "Content-Type": "application/json",
        "X-GitHub-Event": event,
        "X-GitHub-Delivery": delivery,
        "X-Hub-Signature": sign_payload(body, secret.encode("utf-8")),
    }
    return body, headers
