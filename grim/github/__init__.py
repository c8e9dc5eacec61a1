"""GitHub commit status reporting."""

from __future__ import annotations

from .errors import GitHubStatusError
from .status import CommitState, GitHubStatusClient, GitHubStatusConfig

__all__ = [
    "CommitState",
    "GitHubStatusClient",
    "GitHubStatusConfig",
    "GitHubStatusError",
]
