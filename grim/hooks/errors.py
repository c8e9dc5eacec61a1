"""Hook payload errors."""

from __future__ import annotations


class HookPayloadError(ValueError):
    """Raised when a webhook payload lacks the fields needed for a hook event."""

    @classmethod
    def missing(cls, field: str) -> HookPayloadError:
        """Return an error for a missing or mistyped payload field."""
        return cls(f"webhook payload missing expected field: {field}")
