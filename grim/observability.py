"""Emit structured observability events for hook builds and queue setup.

Events are single log lines of the form ``[event.type] key=value ...`` so
log aggregators can parse them without a schema.

Usage
-----
>>> event_logger = BuildEventLogger()
>>> event_logger.log_build_skipped(event, reason="ref was deleted")

"""

from __future__ import annotations

import enum
import typing as typ

from grim.errors import (
    BuildActionError,
    BuildTimeoutError,
    ConfigError,
    PersistenceError,
)
from grim.logging import get_logger, log_error, log_info, log_warning

if typ.TYPE_CHECKING:
    import datetime as dt
    from pathlib import Path

    from grim.build.models import ExecuteResult
    from grim.hooks.models import HookEvent

logger = get_logger(__name__)


class BuildEventType(enum.StrEnum):
    """Structured log event types for the build pipeline."""

    BUILD_SKIPPED = "build.skipped"
    BUILD_STARTED = "build.started"
    BUILD_COMPLETED = "build.completed"
    BUILD_FAILED = "build.failed"
    BUILD_TIMED_OUT = "build.timed_out"
    QUEUE_PREPARED = "queue.prepared"


class ErrorCategory(enum.StrEnum):
    """Categories for failed builds in alerts."""

    CONFIGURATION = "configuration"
    PERSISTENCE = "persistence"
    TIMEOUT = "timeout"
    ACTION = "action"
    UNKNOWN = "unknown"


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (ConfigError, ErrorCategory.CONFIGURATION),
    (PersistenceError, ErrorCategory.PERSISTENCE),
    (BuildTimeoutError, ErrorCategory.TIMEOUT),
    (BuildActionError, ErrorCategory.ACTION),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Return the alerting category for a build failure."""
    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category
    return ErrorCategory.UNKNOWN


class BuildEventLogger:
    """Emit structured build events via femtologging."""

    def log_build_skipped(self, event: HookEvent, *, reason: str) -> None:
        """Log a hook that the admission filter rejected."""
        log_info(
            logger,
            "[%s] repo_slug=%s event=%s action=%s reason=%s",
            BuildEventType.BUILD_SKIPPED,
            event.slug,
            event.event_name,
            event.action,
            reason,
        )

    def log_build_started(
        self,
        event: HookEvent,
        *,
        ref: str,
        result_path: Path,
        timeout_s: int,
    ) -> None:
        """Log the start of a build with its result directory and deadline."""
        log_info(
            logger,
            "[%s] repo_slug=%s ref=%s status_ref=%s result_path=%s timeout_s=%d",
            BuildEventType.BUILD_STARTED,
            event.slug,
            ref,
            event.status_ref,
            result_path,
            timeout_s,
        )

    def log_build_completed(
        self,
        event: HookEvent,
        *,
        result: ExecuteResult,
        result_path: Path,
        duration: dt.timedelta,
    ) -> None:
        """Log a build whose action returned a result.

        Parameters
        ----------
        event
            Hook that triggered the build.
        result
            Result returned by the action; non-zero exit codes are still
            completions.
        result_path
            Result directory holding ``hook.json`` and ``result.json``.
        duration
            Wall-clock time spent in the action.

        """
        log_info(
            logger,
            "[%s] repo_slug=%s exit_code=%d duration_seconds=%.3f result_path=%s",
            BuildEventType.BUILD_COMPLETED,
            event.slug,
            result.exit_code,
            duration.total_seconds(),
            result_path,
        )

    def log_build_failed(
        self,
        event: HookEvent,
        *,
        error: BaseException,
        duration: dt.timedelta | None = None,
    ) -> None:
        """Log a build that ended with an error, with its category."""
        duration_text = (
            "None" if duration is None else f"{duration.total_seconds():.3f}"
        )
        log_error(
            logger,
            "[%s] repo_slug=%s error_category=%s error_type=%s "
            "duration_seconds=%s error=%s",
            BuildEventType.BUILD_FAILED,
            event.slug,
            categorize_error(error),
            type(error).__name__,
            duration_text,
            error,
        )

    def log_build_timed_out(
        self,
        event: HookEvent,
        *,
        result_path: Path,
        timeout_s: int,
    ) -> None:
        """Log a build whose action outlived its deadline."""
        log_warning(
            logger,
            "[%s] repo_slug=%s timeout_s=%d result_path=%s",
            BuildEventType.BUILD_TIMED_OUT,
            event.slug,
            timeout_s,
            result_path,
        )

    def log_queue_prepared(self, *, queue_name: str, server_id: str) -> None:
        """Log the queue identity handed to the queue client."""
        log_info(
            logger,
            "[%s] queue_name=%s server_id=%s",
            BuildEventType.QUEUE_PREPARED,
            queue_name,
            server_id,
        )
