"""Run a build action under a deadline and record the attempt.

:func:`on_hook_build` is the single entry point. It creates the build's
result directory and writes ``hook.json`` before the action starts, then
waits at most ``config.timeout_s`` seconds for the action to finish.

Two kinds of action are accepted:

- Coroutine functions, and objects whose ``__call__`` is one, run on the
  caller's event loop. When the deadline passes they are cancelled, so an
  action that cleans up on :class:`asyncio.CancelledError` (for example by
  killing its child processes) stops promptly.
- Plain callables run on a daemon thread. When the deadline passes the
  supervisor stops waiting and the thread is abandoned; it keeps running
  until the callable returns on its own. An awaitable it returns is awaited
  on the event loop within whatever remains of the deadline.

Usage
-----
>>> async def action(ref, result_path, config, event, status_context):
...     return ExecuteResult(exit_code=0)
>>> asyncio.run(on_hook_build("main", config, event, "grim", action))

"""

from __future__ import annotations

import asyncio
import contextlib
import datetime as dt
import inspect
import threading
import typing as typ

from grim.errors import BuildActionError, BuildTimeoutError
from grim.observability import BuildEventLogger

from .models import ExecuteResult
from .results import create_result_dir, record_hook, record_result

if typ.TYPE_CHECKING:
    from pathlib import Path

    from grim.config.models import EffectiveConfig
    from grim.hooks.models import HookEvent

type BuildAction = typ.Callable[
    [str, Path, EffectiveConfig, HookEvent, str],
    ExecuteResult | typ.Awaitable[ExecuteResult],
]

_DEFAULT_EVENT_LOGGER = BuildEventLogger()


def _settle[T](
    future: asyncio.Future[T],
    value: T | None,
    error: BaseException | None,
) -> None:
    """Complete ``future`` unless the waiter already gave up on it."""
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(typ.cast("T", value))


def _run_on_daemon_thread[T](
    call: typ.Callable[[], T], *, name: str
) -> asyncio.Future[T]:
    """Start ``call`` on a daemon thread and return a future for its outcome."""
    loop = asyncio.get_running_loop()
    future: asyncio.Future[T] = loop.create_future()

    def runner() -> None:
        value: T | None = None
        error: BaseException | None = None
        try:
            value = call()
        except BaseException as exc:  # noqa: BLE001 - delivered to the awaiting task
            error = exc
        # The loop may have closed after a timeout abandoned this thread.
        with contextlib.suppress(RuntimeError):
            loop.call_soon_threadsafe(_settle, future, value, error)

    threading.Thread(target=runner, name=name, daemon=True).start()
    return future


class _DeadlineExceededError(Exception):
    """Raised internally when the deadline passes before the action finishes."""


def _is_coroutine_action(action: BuildAction) -> bool:
    return inspect.iscoroutinefunction(action) or inspect.iscoroutinefunction(
        getattr(action, "__call__", None)
    )


async def _await_until[T](awaitable: typ.Awaitable[T], deadline: float) -> T:
    scope = asyncio.timeout_at(deadline)
    try:
        async with scope:
            return await awaitable
    except TimeoutError:
        # A TimeoutError raised by the action itself is an action failure.
        if scope.expired():
            raise _DeadlineExceededError from None
        raise


async def _invoke(
    action: BuildAction,
    args: tuple[str, Path, EffectiveConfig, HookEvent, str],
    timeout_s: int,
    thread_name: str,
) -> ExecuteResult:
    deadline = asyncio.get_running_loop().time() + timeout_s
    if _is_coroutine_action(action):
        outcome = await _await_until(
            typ.cast("typ.Awaitable[ExecuteResult]", action(*args)), deadline
        )
    else:
        future = _run_on_daemon_thread(lambda: action(*args), name=thread_name)
        done, _ = await asyncio.wait({future}, timeout=timeout_s)
        if not done:
            future.cancel()
            raise _DeadlineExceededError
        outcome = future.result()
        # Plain callables may still hand back a coroutine, e.g. a wrapping lambda.
        if inspect.isawaitable(outcome):
            outcome = await _await_until(outcome, deadline)

    if not isinstance(outcome, ExecuteResult):
        message = f"build action returned {type(outcome).__name__}, not ExecuteResult"
        raise TypeError(message)
    return outcome


async def on_hook_build(  # noqa: PLR0913 - mirrors the build action signature
    ref: str,
    config: EffectiveConfig,
    event: HookEvent,
    status_context: str,
    action: BuildAction,
    *,
    event_logger: BuildEventLogger | None = None,
) -> ExecuteResult:
    """Record a build attempt and run ``action`` under the configured deadline.

    Parameters
    ----------
    ref
        Git ref being built.
    config
        Effective configuration; supplies the result root and the deadline.
    event
        Hook event that triggered the build; written to ``hook.json``.
    status_context
        Commit status context forwarded to the action.
    action
        Build action called as ``action(ref, result_path, config, event,
        status_context)``.
    event_logger
        Destination for build lifecycle telemetry.

    Returns
    -------
    ExecuteResult
        The action's result, unchanged. It is also written to
        ``result.json``.

    Raises
    ------
    PersistenceError
        If the result directory or ``hook.json`` cannot be written. The
        action is not invoked.
    BuildTimeoutError
        If the action does not finish within the deadline.
    BuildActionError
        If the action raises or returns something other than an
        :class:`ExecuteResult`. The original exception is chained.

    """
    events = event_logger or _DEFAULT_EVENT_LOGGER
    timeout_s = config.timeout_s

    result_path = await asyncio.to_thread(
        create_result_dir, config.result_root, event.owner, event.repo
    )
    await asyncio.to_thread(record_hook, result_path, event)

    events.log_build_started(
        event, ref=ref, result_path=result_path, timeout_s=timeout_s
    )
    started = dt.datetime.now(dt.UTC)
    args = (ref, result_path, config, event, status_context)

    try:
        result = await _invoke(
            action, args, timeout_s, thread_name=f"grim-build-{result_path.name}"
        )
    except _DeadlineExceededError as exc:
        events.log_build_timed_out(event, result_path=result_path, timeout_s=timeout_s)
        raise BuildTimeoutError(timeout_s, result_path) from exc
    except Exception as exc:
        error = BuildActionError.from_exception(exc, result_path)
        events.log_build_failed(
            event, error=error, duration=dt.datetime.now(dt.UTC) - started
        )
        raise error from exc

    await asyncio.to_thread(record_result, result_path, result)
    events.log_build_completed(
        event,
        result=result,
        result_path=result_path,
        duration=dt.datetime.now(dt.UTC) - started,
    )
    return result
