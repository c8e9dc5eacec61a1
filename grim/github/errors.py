"""GitHub status reporting errors."""

from __future__ import annotations


class GitHubStatusError(RuntimeError):
    """Raised when GitHub rejects or fails a commit status update."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, status_code: int) -> GitHubStatusError:
        """Return an error for non-2xx HTTP responses."""
        return cls(f"GitHub status API HTTP {status_code}", status_code=status_code)

    @classmethod
    def network_error(cls, detail: object) -> GitHubStatusError:
        """Return an error for transport failures."""
        return cls(f"GitHub status API network error: {detail}")
