"""Error kinds raised by the build pipeline.

Each failure that can end a build has its own class so callers can tell a
bad configuration apart from an unwritable result tree, a blown deadline,
or a failing build action. All of them derive from :class:`GrimError`, which
lets the worker loop and the command-line entry point catch a single base.
"""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from pathlib import Path


class GrimError(Exception):
    """Base class for all dispatcher errors."""


class ConfigError(GrimError):
    """Raised when configuration is missing, malformed, or invalid."""

    @classmethod
    def missing_global(cls, path: Path) -> ConfigError:
        """Return an error for an absent global configuration document."""
        return cls(f"global configuration not found at {path}")

    @classmethod
    def unreadable(cls, path: Path, detail: object) -> ConfigError:
        """Return an error for a document that could not be read or parsed."""
        return cls(f"failed to load configuration {path}: {detail}")

    @classmethod
    def missing_field(cls, field: str) -> ConfigError:
        """Return an error for a required field that resolved to empty."""
        return cls(f"{field} is required and must be non-empty")

    @classmethod
    def invalid_field(cls, field: str, value: object, constraint: str) -> ConfigError:
        """Return an error for a field whose value violates a constraint."""
        return cls(f"invalid {field} {value!r}: {constraint}")


class PersistenceError(GrimError):
    """Raised when the result directory or its metadata cannot be written."""

    @classmethod
    def create_failed(cls, path: Path, detail: object) -> PersistenceError:
        """Return an error for a result directory that could not be created."""
        return cls(f"failed to create result directory under {path}: {detail}")

    @classmethod
    def write_failed(cls, path: Path, detail: object) -> PersistenceError:
        """Return an error for a metadata file that could not be written."""
        return cls(f"failed to write {path}: {detail}")


class BuildTimeoutError(GrimError, TimeoutError):
    """Raised when a build action does not finish before its deadline.

    Attributes
    ----------
    timeout_s
        Deadline that was exceeded, in seconds.
    result_path
        Result directory recorded for the timed-out build.

    """

    def __init__(self, timeout_s: int, result_path: Path) -> None:
        """Initialise with the exceeded deadline and the build's result path."""
        self.timeout_s = timeout_s
        self.result_path = result_path
        super().__init__(f"build timed out after {timeout_s}s ({result_path})")


class BuildActionError(GrimError):
    """Raised when the build action itself fails.

    The action's own exception is chained as ``__cause__``.

    Attributes
    ----------
    result_path
        Result directory recorded for the failed build.
    exit_code
        Exit code reported by the action, when one is known.

    """

    def __init__(
        self,
        message: str,
        *,
        result_path: Path,
        exit_code: int | None = None,
    ) -> None:
        """Initialise with a message, the result path, and an optional exit code."""
        self.result_path = result_path
        self.exit_code = exit_code
        super().__init__(message)

    @classmethod
    def from_exception(cls, exc: BaseException, result_path: Path) -> BuildActionError:
        """Return an error describing an exception raised by the action."""
        exit_code = getattr(exc, "exit_code", None)
        return cls(
            f"build action failed: {exc}",
            result_path=result_path,
            exit_code=exit_code if isinstance(exit_code, int) else None,
        )
