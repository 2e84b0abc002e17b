"""Protect the default branch of newly created repositories."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from repoguard.auth.gate import AuthenticatedContext
from repoguard.errors.exceptions import UpstreamActionFailedError
from repoguard.integrations.github import InstallationClient
from repoguard.models.policy import DEFAULT_POLICY, BranchProtectionPolicy
from repoguard.services.notification import ISSUE_TITLE, render_issue_body

logger = logging.getLogger(__name__)

CancelCheck = Callable[[], Awaitable[bool]]


async def never_cancelled() -> bool:
    return False


async def wait_for_branch(
    client: InstallationClient,
    full_name: str,
    branch: str,
    deadline_seconds: float = 10.0,
    initial_delay: float = 0.5,
    max_delay: float = 3.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> bool:
    """Poll until ``branch`` exists, doubling the delay up to ``max_delay``.

    GitHub creates the default branch asynchronously after the repository.
    Returns False once ``deadline_seconds`` have passed without seeing it.
    """
    deadline = clock() + deadline_seconds
    delay = initial_delay
    attempts = 0
    while True:
        attempts += 1
        try:
            exists = await client.branch_exists(full_name, branch)
        except UpstreamActionFailedError as exc:
            # A failed lookup counts as "not yet"; protection is attempted at the deadline
            logger.warning(
                "Branch lookup for %s@%s failed (status=%s)", full_name, branch, exc.upstream_status
            )
            exists = False
        if exists:
            logger.debug("Branch %s of %s visible after %d checks", branch, full_name, attempts)
            return True
        remaining = deadline - clock()
        if remaining <= 0:
            return False
        await sleep(min(delay, remaining))
        delay = min(delay * 2, max_delay)


class DefaultBranchProtector:
    """Handler for ``repository``/``created``."""

    name = "protect_default_branch"

    def __init__(
        self,
        policy: BranchProtectionPolicy = DEFAULT_POLICY,
        wait_seconds: float = 10.0,
        poll_initial_seconds: float = 0.5,
        poll_max_seconds: float = 3.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.policy = policy
        self.wait_seconds = wait_seconds
        self.poll_initial_seconds = poll_initial_seconds
        self.poll_max_seconds = poll_max_seconds
        self._sleep = sleep
        self._clock = clock

    async def __call__(
        self,
        context: AuthenticatedContext,
        client: InstallationClient,
        is_cancelled: CancelCheck = never_cancelled,
    ) -> None:
        repo = context.event.repository
        if repo is None or not repo.default_branch:
            logger.warning("repository.created event has no default branch; nothing to protect")
            return

        found = await wait_for_branch(
            client,
            repo.full_name,
            repo.default_branch,
            deadline_seconds=self.wait_seconds,
            initial_delay=self.poll_initial_seconds,
            max_delay=self.poll_max_seconds,
            sleep=self._sleep,
            clock=self._clock,
        )
        if not found:
            logger.warning(
                "Branch %s of %s not visible after %.1fs; applying protection anyway",
                repo.default_branch,
                repo.full_name,
                self.wait_seconds,
            )

        if await is_cancelled():
            logger.info("Client disconnected; skipping protection of %s", repo.full_name)
            return

        logger.debug("Protecting default branch")
        await client.protect_branch(repo.full_name, repo.default_branch, self.policy)

        username = context.event.sender.login if context.event.sender else "unknown"
        body = render_issue_body(
            username,
            repo.default_branch,
            required_reviews=self.policy.required_approving_reviews,
            enforce_admins=self.policy.enforce_admins,
        )
        logger.debug("Creating a new issue")
        await client.create_issue(repo.full_name, ISSUE_TITLE, body)
