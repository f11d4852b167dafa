"""CI runner registry source for GitHub Actions self-hosted runners."""
import logging
from typing import Optional, Tuple

import httpx

from .base import Clock, DataSource
from .runner_models import GitHubRunnerStatus

logger = logging.getLogger(__name__)

GITHUB_API_BASE = "https://api.github.com"


class GitHubRunnerSource(DataSource):
    """Lists the runners registered on one repository."""

    def __init__(self, clock: Clock, token: str, owner: str, repo: str,
                 timeout: float = 15.0, base_url: str = GITHUB_API_BASE,
                 transport: Optional[httpx.BaseTransport] = None):
        """Initialize the GitHub runner source."""
        self.clock = clock
        self.token = token
        self.owner = owner
        self.repo = repo
        self.client = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
        )

    @property
    def configured(self) -> bool:
        return bool(self.token and self.owner and self.repo)

    def fetch(self) -> Tuple[GitHubRunnerStatus, ...]:
        """Fetch runner registrations; HTTP errors propagate to the collector."""
        if not self.configured:
            logger.warning("GitHub configuration is incomplete. Skipping runner check.")
            return ()

        response = self.client.get(
            f"/repos/{self.owner}/{self.repo}/actions/runners",
            headers={"Authorization": f"Bearer {self.token}"},
        )
        response.raise_for_status()

        now = self.clock()
        runners = tuple(
            GitHubRunnerStatus(
                id=runner["id"],
                name=runner["name"],
                status=runner["status"],
                is_online=runner["status"] == "online",
                is_busy=bool(runner.get("busy", False)),
                labels=frozenset(label["name"] for label in runner.get("labels", [])),
                timestamp=now,
            )
            for runner in response.json().get("runners", [])
        )
        logger.debug("GitHub runner check: found %d runners", len(runners))
        return runners

    def close(self):
        self.client.close()
