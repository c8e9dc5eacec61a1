"""Errors raised by the default clone-and-execute build action."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

# Output preview length for error messages
_OUTPUT_PREVIEW_LIMIT = 200


class CloneError(RuntimeError):
    """Raised when the repository cannot be cloned or checked out.

    Attributes
    ----------
    exit_code
        Exit status of the failing git command, when one ran.

    """

    def __init__(self, message: str, *, exit_code: int | None = None) -> None:
        """Initialise with a message and optional git exit status."""
        self.exit_code = exit_code
        super().__init__(message)

    @classmethod
    def missing_git(cls) -> CloneError:
        """Return an error when no git executable is on PATH."""
        return cls("git executable not found on PATH")

    @classmethod
    def command_failed(
        cls, argv: cabc.Sequence[str], exit_code: int, output: str
    ) -> CloneError:
        """Return an error for a git command that exited non-zero."""
        preview = output.strip()[-_OUTPUT_PREVIEW_LIMIT:]
        command = " ".join(argv[1:3])
        return cls(f"{command} exited with {exit_code}: {preview}", exit_code=exit_code)


class BuildScriptMissingError(RuntimeError):
    """Raised when the checked-out repository has no build script."""

    @classmethod
    def at(cls, path: Path) -> BuildScriptMissingError:
        """Return an error naming the expected script location."""
        return cls(f"build script not found at {path}")
