"""Commit status updates for builds triggered by hooks."""

from __future__ import annotations

import dataclasses
import enum

import httpx

from .errors import GitHubStatusError

# GitHub rejects descriptions longer than this.
_MAX_DESCRIPTION_LENGTH = 140


class CommitState(enum.StrEnum):
    """Commit status states accepted by the GitHub API."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"
    ERROR = "error"


@dataclasses.dataclass(frozen=True, slots=True)
class GitHubStatusConfig:
    """Configuration for the GitHub REST status client."""

    token: str = dataclasses.field(repr=False)
    api_url: str = "https://api.github.com"
    timeout_s: float = 20.0
    user_agent: str = "grim/0.1"


class GitHubStatusClient:
    """Post commit statuses through the GitHub REST API."""

    def __init__(
        self,
        config: GitHubStatusConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client with the provided API configuration."""
        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=config.timeout_s)
        self._headers = {
            "Authorization": f"Bearer {config.token}",
            "User-Agent": config.user_agent,
            "Accept": "application/vnd.github+json",
        }

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def set_status(  # noqa: PLR0913 - mirrors the REST payload
        self,
        owner: str,
        repo: str,
        sha: str,
        state: CommitState,
        *,
        context: str,
        description: str = "",
    ) -> None:
        """Set the status of commit ``sha`` for ``context``.

        Raises
        ------
        GitHubStatusError
            If the request fails or GitHub answers with a non-2xx status.

        """
        url = f"{self._config.api_url}/repos/{owner}/{repo}/statuses/{sha}"
        body = {
            "state": str(state),
            "context": context,
            "description": description[:_MAX_DESCRIPTION_LENGTH],
        }
        try:
            response = await self._client.post(url, json=body, headers=self._headers)
        except httpx.HTTPError as exc:
            raise GitHubStatusError.network_error(exc) from exc

        if response.is_error:
            raise GitHubStatusError.http_error(response.status_code)
