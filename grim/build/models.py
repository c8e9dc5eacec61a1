"""Typed outcome of a build action."""

from __future__ import annotations

import datetime as dt

import msgspec

_WIRE_NAMES = {
    "exit_code": "ExitCode",
    "output": "Output",
    "log_path": "LogPath",
    "start_time": "StartTime",
    "end_time": "EndTime",
}


class ExecuteResult(msgspec.Struct, frozen=True, kw_only=True, rename=_WIRE_NAMES):
    """Outcome of one build action.

    Attributes
    ----------
    exit_code : int
        Exit status of the build; zero means success.
    output : str
        Captured output, possibly truncated by the action.
    log_path : str, optional
        Location of the full build log when it was written to a file.
    start_time, end_time : datetime, optional
        When the build script started and finished.

    """

    exit_code: int = 0
    output: str = ""
    log_path: str | None = None
    start_time: dt.datetime | None = None
    end_time: dt.datetime | None = None

    @property
    def succeeded(self) -> bool:
        """Return True when the build exited with status zero."""
        return self.exit_code == 0
