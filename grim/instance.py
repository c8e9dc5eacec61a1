"""Per-process dispatcher handle that turns hooks into recorded builds.

An :class:`Instance` bundles the configuration root with the queue client
and build action. It is constructed explicitly and passed to whatever needs
it, so tests can run several isolated instances side by side.

Usage
-----
>>> instance = Instance(config_root=Path("/etc/grim"))
>>> asyncio.run(instance.build_ref("acme", "widget", "main"))

"""

from __future__ import annotations

import dataclasses as dc
import enum
import typing as typ
from pathlib import Path

from grim.build.action import clone_and_execute
from grim.build.supervisor import on_hook_build
from grim.config.resolver import resolve_for_repo, resolve_global
from grim.errors import ConfigError, GrimError, PersistenceError
from grim.github.errors import GitHubStatusError
from grim.github.status import CommitState, GitHubStatusClient, GitHubStatusConfig
from grim.hooks.filter import PUSH_EVENT, should_skip
from grim.hooks.models import HookEvent
from grim.logging import get_logger, log_warning
from grim.observability import BuildEventLogger
from grim.queue.prepare import QueueIdentity, prepare_queue

if typ.TYPE_CHECKING:
    import httpx

    from grim.build.models import ExecuteResult
    from grim.build.supervisor import BuildAction
    from grim.config.models import EffectiveConfig
    from grim.queue.client import QueueClient

logger = get_logger(__name__)


class HookStatus(enum.StrEnum):
    """Final state of one processed hook."""

    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    ERRORED = "errored"


@dc.dataclass(frozen=True, slots=True)
class HookOutcome:
    """What happened to a hook handed to :meth:`Instance.process_hook`.

    Attributes
    ----------
    event
        The processed hook.
    skip_reason
        Why the hook was not built, when it was skipped.
    result
        Result of the build action, when it returned one.
    error
        Error that ended the build, when it did not complete.

    """

    event: HookEvent
    skip_reason: str | None = None
    result: ExecuteResult | None = None
    error: GrimError | None = None

    @property
    def status(self) -> HookStatus:
        """Classify the outcome."""
        if self.skip_reason is not None:
            return HookStatus.SKIPPED
        if self.error is not None:
            return HookStatus.ERRORED
        if self.result is not None and self.result.succeeded:
            return HookStatus.SUCCEEDED
        return HookStatus.FAILED


def _final_state(result: ExecuteResult) -> tuple[CommitState, str]:
    if result.succeeded:
        return CommitState.SUCCESS, "build succeeded"
    return CommitState.FAILURE, f"build exited with {result.exit_code}"


@dc.dataclass(slots=True)
class Instance:
    """Dispatcher handle shared by every build in the process.

    Attributes
    ----------
    config_root
        Directory holding the global ``config.json`` and repository overlays.
    queue
        Client for the remote hook queue; ``None`` when the process only
        builds.
    action
        Build action run for each admitted hook.
    http_client
        Optional HTTP client for GitHub status updates.
    event_logger
        Destination for build lifecycle telemetry.

    """

    config_root: Path
    queue: QueueClient | None = None
    action: BuildAction = clone_and_execute
    http_client: httpx.AsyncClient | None = None
    event_logger: BuildEventLogger = dc.field(default_factory=BuildEventLogger)

    def __post_init__(self) -> None:
        """Coerce ``config_root`` to a path."""
        self.config_root = Path(self.config_root)

    def prepare_queue(self) -> QueueIdentity:
        """Resolve the global configuration and register its queue.

        Raises
        ------
        ConfigError
            If the global configuration is missing or invalid.

        """
        config = resolve_global(self.config_root)
        return prepare_queue(config, self.queue, event_logger=self.event_logger)

    async def build_ref(self, owner: str, repo: str, ref: str) -> ExecuteResult:
        """Build ``ref`` of ``owner/repo`` as if it had just been pushed.

        Raises
        ------
        ConfigError
            If configuration cannot be resolved.
        PersistenceError
            If the result record cannot be created.
        BuildTimeoutError
            If the build outlives its deadline.
        BuildActionError
            If the build action fails.

        """
        event = HookEvent(owner=owner, repo=repo, event_name=PUSH_EVENT, ref=ref)
        return await self.build_hook(event)

    async def build_hook(self, event: HookEvent) -> ExecuteResult:
        """Resolve configuration for ``event`` and run its build.

        The first error encountered is raised unchanged so callers can tell
        configuration, persistence, timeout, and action failures apart.
        """
        try:
            config = resolve_for_repo(self.config_root, event.owner, event.repo)
        except ConfigError as exc:
            self.event_logger.log_build_failed(event, error=exc)
            raise

        ref = event.ref or event.status_ref
        status_context = config.server_id
        await self._report(config, event, CommitState.PENDING, "build started")
        try:
            result = await on_hook_build(
                ref,
                config,
                event,
                status_context,
                self.action,
                event_logger=self.event_logger,
            )
        except PersistenceError as exc:
            self.event_logger.log_build_failed(event, error=exc)
            await self._report(config, event, CommitState.ERROR, str(exc))
            raise
        except GrimError as exc:
            await self._report(config, event, CommitState.ERROR, str(exc))
            raise

        state, description = _final_state(result)
        await self._report(config, event, state, description)
        return result

    async def process_hook(self, event: HookEvent) -> HookOutcome:
        """Filter and build one hook without letting its failure escape.

        Returns
        -------
        HookOutcome
            Skip reason, build result, or the error that ended the build.

        """
        reason = should_skip(event)
        if reason is not None:
            self.event_logger.log_build_skipped(event, reason=reason)
            return HookOutcome(event=event, skip_reason=reason)

        try:
            result = await self.build_hook(event)
        except GrimError as exc:
            return HookOutcome(event=event, error=exc)
        return HookOutcome(event=event, result=result)

    async def _report(
        self,
        config: EffectiveConfig,
        event: HookEvent,
        state: CommitState,
        description: str,
    ) -> None:
        """Post a commit status when a token and commit are available."""
        if not config.github_token or not event.status_ref:
            return

        client = GitHubStatusClient(
            GitHubStatusConfig(token=config.github_token),
            http_client=self.http_client,
        )
        try:
            await client.set_status(
                event.owner,
                event.repo,
                event.status_ref,
                state,
                context=config.server_id,
                description=description,
            )
        except GitHubStatusError as exc:
            log_warning(
                logger,
                "Failed to set %s status for %s@%s: %s",
                state,
                event.slug,
                event.status_ref,
                exc,
            )
        finally:
            await client.aclose()
