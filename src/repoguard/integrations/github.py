"""GitHub REST client acting as one App installation."""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

from repoguard.errors.exceptions import UpstreamActionFailedError
from repoguard.models.credentials import InstallationCredential
from repoguard.models.policy import BranchProtectionPolicy

logger = logging.getLogger(__name__)


class InstallationClient:
    """Repository operations authenticated with an installation token.

    The client never mints or refreshes tokens itself; it is built per
    request from the credential the auth gate produced.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        credential: InstallationCredential,
        api_url: str = "https://api.github.com",
        api_version: str = "2022-11-28",
        timeout: float = 15.0,
    ) -> None:
        self._http = http_client
        self._credential = credential
        self.api_url = api_url.rstrip("/")
        self.api_version = api_version
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        return {
            **self._credential.authorization_header,
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": self.api_version,
        }

    @staticmethod
    def _branch_path(full_name: str, branch: str) -> str:
        return f"/repos/{full_name}/branches/{quote(branch, safe='')}"

    async def _request(self, action: str, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return await self._http.request(
                method,
                f"{self.api_url}{path}",
                headers=self._headers(),
                timeout=self.timeout,
                **kwargs,
            )
        except httpx.HTTPError as exc:
            logger.error("GitHub %s failed (%s): %s", action, path, type(exc).__name__)
            raise UpstreamActionFailedError(action, f"{action} request failed: {type(exc).__name__}") from exc

    # ------------------------------------------------------------------
    # Branches
    # ------------------------------------------------------------------

    async def branch_exists(self, full_name: str, branch: str) -> bool:
        """``GET /repos/{full_name}/branches/{branch}``; 404 means not yet."""
        response = await self._request("get_branch", "GET", self._branch_path(full_name, branch))
        if response.status_code == 200:
            return True
        if response.status_code == 404:
            return False
        raise UpstreamActionFailedError(
            "get_branch",
            f"Branch lookup returned {response.status_code}",
            upstream_status=response.status_code,
        )

    async def protect_branch(self, full_name: str, branch: str, policy: BranchProtectionPolicy) -> None:
        """Apply ``policy`` to ``branch`` in ``full_name``."""
        path = self._branch_path(full_name, branch) + "/protection"
        response = await self._request("protect_branch", "PUT", path, json=policy.to_github_payload())
        if response.status_code != 200:
            logger.warning(
                "Branch protection for %s@%s returned %s: %s",
                full_name,
                branch,
                response.status_code,
                response.text[:500],
            )
            raise UpstreamActionFailedError(
                "protect_branch",
                f"Branch protection returned {response.status_code}",
                upstream_status=response.status_code,
            )
        logger.info("Protected default branch %s of %s", branch, full_name)

    # ------------------------------------------------------------------
    # Issues
    # ------------------------------------------------------------------

    async def create_issue(self, full_name: str, title: str, body: str) -> int | None:
        """Open an issue and return its number."""
        response = await self._request(
            "create_issue",
            "POST",
            f"/repos/{full_name}/issues",
            json={"title": title, "body": body},
        )
        if response.status_code != 201:
            logger.warning(
                "Issue creation in %s returned %s: %s",
                full_name,
                response.status_code,
                response.text[:500],
            )
            raise UpstreamActionFailedError(
                "create_issue",
                f"Issue creation returned {response.status_code}",
                upstream_status=response.status_code,
            )
        try:
            issue_number = response.json().get("number")
        except (ValueError, AttributeError):
            # The issue exists; only its number is unknown
            issue_number = None
        logger.info("GitHub issue #%s created in %s", issue_number, full_name)
        return issue_number
