"""Deadline-bounded build execution and durable result records."""

from __future__ import annotations

from .action import clone_and_execute
from .errors import BuildScriptMissingError, CloneError
from .models import ExecuteResult
from .results import (
    HOOK_FILENAME,
    RESULT_FILENAME,
    create_result_dir,
    find_result_dirs,
    read_hook,
    read_result,
    record_hook,
    record_result,
)
from .supervisor import BuildAction, on_hook_build

__all__ = [
    "HOOK_FILENAME",
    "RESULT_FILENAME",
    "BuildAction",
    "BuildScriptMissingError",
    "CloneError",
    "ExecuteResult",
    "clone_and_execute",
    "create_result_dir",
    "find_result_dirs",
    "on_hook_build",
    "read_hook",
    "read_result",
    "record_hook",
    "record_result",
]
