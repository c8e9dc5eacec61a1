"""Unit tests for deadline-bounded build execution."""

from __future__ import annotations

import asyncio
import time
import typing as typ

import pytest

from grim.build.models import ExecuteResult
from grim.build.results import read_hook, read_result
from grim.build.supervisor import on_hook_build
from grim.config.models import EffectiveConfig
from grim.errors import BuildActionError, BuildTimeoutError, PersistenceError
from grim.hooks.models import HookEvent
from tests.helpers.builds import (
    TEST_OWNER,
    TEST_REPO,
    RecordingAction,
    single_result_dir,
    sleeping_action,
)

if typ.TYPE_CHECKING:
    from pathlib import Path

    from grim.build.supervisor import BuildAction


def _run(
    config: EffectiveConfig,
    event: HookEvent,
    action: BuildAction,
    *,
    ref: str = "not-used",
) -> ExecuteResult:
    return asyncio.run(on_hook_build(ref, config, event, "grim", action))


class TestResultRecording:
    """Every admitted hook leaves exactly one result directory."""

    def test_success_creates_result_directory(
        self, build_config: EffectiveConfig, hook_event: HookEvent, result_root: Path
    ) -> None:
        """A successful action is recorded."""
        _run(build_config, hook_event, RecordingAction())
        single_result_dir(result_root, TEST_OWNER, TEST_REPO)

    def test_non_zero_exit_is_recorded_not_raised(
        self, build_config: EffectiveConfig, hook_event: HookEvent, result_root: Path
    ) -> None:
        """A failing build is an outcome, not an error."""
        result = _run(build_config, hook_event, RecordingAction(exit_code=123))

        assert result.exit_code == 123
        path = single_result_dir(result_root, TEST_OWNER, TEST_REPO)
        recorded = read_result(path)
        assert recorded is not None
        assert recorded.exit_code == 123

    def test_action_error_still_records_hook(
        self, build_config: EffectiveConfig, hook_event: HookEvent, result_root: Path
    ) -> None:
        """An action that raises leaves hook.json behind."""
        action = RecordingAction(error=RuntimeError("Bad Bad thing happened"))

        with pytest.raises(BuildActionError) as excinfo:
            _run(build_config, hook_event, action)

        path = single_result_dir(result_root, TEST_OWNER, TEST_REPO)
        assert read_hook(path) == hook_event
        assert read_result(path) is None
        assert excinfo.value.result_path == path
        assert isinstance(excinfo.value.__cause__, RuntimeError)

    def test_hook_json_round_trips_identity(
        self, build_config: EffectiveConfig, result_root: Path
    ) -> None:
        """hook.json reproduces owner, repo, and status ref."""
        hook = HookEvent(
            owner=TEST_OWNER, repo=TEST_REPO, status_ref="fooooooooooooooooooo"
        )

        _run(build_config, hook, RecordingAction())

        parsed = read_hook(single_result_dir(result_root, TEST_OWNER, TEST_REPO))
        assert (parsed.owner, parsed.repo, parsed.status_ref) == (
            hook.owner,
            hook.repo,
            hook.status_ref,
        )

    def test_hook_is_recorded_before_action_runs(
        self, build_config: EffectiveConfig, hook_event: HookEvent
    ) -> None:
        """The action can already see hook.json in its result directory."""
        seen: list[bool] = []

        def action(
            ref: str,
            result_path: Path,
            config: EffectiveConfig,
            event: HookEvent,
            status_context: str,
        ) -> ExecuteResult:
            del ref, config, event, status_context
            seen.append((result_path / "hook.json").is_file())
            return ExecuteResult()

        _run(build_config, hook_event, action)
        assert seen == [True]

    def test_persistence_failure_skips_action(
        self, tmp_path: Path, hook_event: HookEvent
    ) -> None:
        """The action never runs when the result directory cannot be made."""
        blocker = tmp_path / "results"
        blocker.write_text("file, not directory", encoding="utf-8")
        config = _config_for(blocker)
        action = RecordingAction()

        with pytest.raises(PersistenceError):
            _run(config, hook_event, action)

        assert action.calls == []

    def test_concurrent_builds_get_distinct_directories(
        self, build_config: EffectiveConfig, hook_event: HookEvent, result_root: Path
    ) -> None:
        """Two builds of the same repository never share a directory."""
        action = RecordingAction(sleep_s=0.1)

        async def both() -> None:
            await asyncio.gather(
                on_hook_build("a", build_config, hook_event, "grim", action),
                on_hook_build("b", build_config, hook_event, "grim", action),
            )

        asyncio.run(both())

        paths = {call[1] for call in action.calls}
        assert len(paths) == 2
        assert len(list((result_root / TEST_OWNER / TEST_REPO).iterdir())) == 2


class TestActionInvocation:
    """The action receives the build coordinates unchanged."""

    def test_action_receives_ref_and_status_context(
        self, build_config: EffectiveConfig, hook_event: HookEvent, result_root: Path
    ) -> None:
        """Ref, result path, and status context are forwarded."""
        action = RecordingAction()

        _run(build_config, hook_event, action, ref="refs/heads/main")

        path = single_result_dir(result_root, TEST_OWNER, TEST_REPO)
        assert action.calls == [("refs/heads/main", path, "grim")]

    def test_result_is_returned_unchanged(
        self, build_config: EffectiveConfig, hook_event: HookEvent
    ) -> None:
        """A fast action's result is not wrapped or altered."""
        expected = ExecuteResult(exit_code=0, output="ok")

        async def action(*_: object) -> ExecuteResult:
            return expected

        assert _run(build_config, hook_event, action) is expected

    def test_action_raising_timeout_error_is_an_action_failure(
        self, build_config: EffectiveConfig, hook_event: HookEvent
    ) -> None:
        """Only the supervisor's own deadline produces BuildTimeoutError."""

        async def action(*_: object) -> ExecuteResult:
            raise TimeoutError("upstream timed out")

        with pytest.raises(BuildActionError):
            _run(build_config, hook_event, action)


class TestDeadline:
    """Tests for the build deadline."""

    def test_async_action_is_cancelled_at_deadline(
        self, result_root: Path, hook_event: HookEvent
    ) -> None:
        """A slow coroutine is cancelled and reported as a timeout."""
        config = _config_for(result_root, timeout=1)
        started = time.monotonic()

        with pytest.raises(BuildTimeoutError) as excinfo:
            _run(config, hook_event, sleeping_action)

        assert time.monotonic() - started < 5
        assert excinfo.value.timeout_s == 1
        path = single_result_dir(result_root, TEST_OWNER, TEST_REPO)
        assert read_hook(path) == hook_event

    def test_blocking_action_is_abandoned_at_deadline(
        self, result_root: Path, hook_event: HookEvent
    ) -> None:
        """The caller stops waiting on a blocking action at the deadline."""
        config = _config_for(result_root, timeout=1)
        action = RecordingAction(sleep_s=3)
        started = time.monotonic()

        with pytest.raises(BuildTimeoutError) as excinfo:
            _run(config, hook_event, action)

        assert time.monotonic() - started < 2.5
        assert isinstance(excinfo.value, TimeoutError)

    @pytest.mark.slow
    def test_action_within_deadline_does_not_time_out(
        self, result_root: Path, hook_event: HookEvent
    ) -> None:
        """A 2 second action under a 4 second deadline completes normally."""
        config = _config_for(result_root, timeout=4)

        result = _run(config, hook_event, RecordingAction(sleep_s=2))

        assert result.exit_code == 0


def _config_for(result_root: Path, *, timeout: int = 0) -> EffectiveConfig:
    return EffectiveConfig(result_root=result_root, timeout=timeout)


class _AsyncCallableAction:
    """Callable object whose ``__call__`` is a coroutine function."""

    def __init__(self, *, sleep_s: float = 0.0) -> None:
        self.sleep_s = sleep_s

    async def __call__(
        self,
        ref: str,
        result_path: Path,
        config: EffectiveConfig,
        event: HookEvent,
        status_context: str,
    ) -> ExecuteResult:
        del ref, result_path, config, event, status_context
        await asyncio.sleep(self.sleep_s)
        return ExecuteResult(exit_code=7)


class TestAwaitableActions:
    """Actions that are not plain coroutine functions still get awaited."""

    def test_async_callable_object_is_awaited(
        self, build_config: EffectiveConfig, hook_event: HookEvent, result_root: Path
    ) -> None:
        """An object with an async ``__call__`` yields its result."""
        result = _run(build_config, hook_event, _AsyncCallableAction())

        assert result.exit_code == 7
        recorded = read_result(single_result_dir(result_root, TEST_OWNER, TEST_REPO))
        assert recorded is not None
        assert recorded.exit_code == 7

    def test_async_callable_object_is_cancelled_at_deadline(
        self, result_root: Path, hook_event: HookEvent
    ) -> None:
        """The deadline applies to async callable objects too."""
        config = _config_for(result_root, timeout=1)
        started = time.monotonic()

        with pytest.raises(BuildTimeoutError):
            _run(config, hook_event, _AsyncCallableAction(sleep_s=30))

        assert time.monotonic() - started < 5

    def test_lambda_returning_coroutine_is_awaited(
        self, build_config: EffectiveConfig, hook_event: HookEvent
    ) -> None:
        """A plain callable that returns a coroutine has it awaited."""
        inner = _AsyncCallableAction()

        result = _run(build_config, hook_event, lambda *args: inner(*args))

        assert result.exit_code == 7

    def test_lambda_returning_slow_coroutine_times_out(
        self, result_root: Path, hook_event: HookEvent
    ) -> None:
        """The returned coroutine only gets what is left of the deadline."""
        config = _config_for(result_root, timeout=1)
        inner = _AsyncCallableAction(sleep_s=30)

        with pytest.raises(BuildTimeoutError):
            _run(config, hook_event, lambda *args: inner(*args))

    def test_non_result_return_is_an_action_failure(
        self, build_config: EffectiveConfig, hook_event: HookEvent, result_root: Path
    ) -> None:
        """Returning anything but ExecuteResult raises BuildActionError."""

        def action(*_: object) -> ExecuteResult:
            return typ.cast("ExecuteResult", {"ExitCode": 0})

        with pytest.raises(BuildActionError) as excinfo:
            _run(build_config, hook_event, action)

        assert isinstance(excinfo.value.__cause__, TypeError)
        path = single_result_dir(result_root, TEST_OWNER, TEST_REPO)
        assert read_result(path) is None
