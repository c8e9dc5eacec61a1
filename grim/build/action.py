"""Default build action: clone the repository and run its build script.

Each build gets a fresh workspace under
``{workspace_root}/{owner}/{repo}/``. The repository is cloned into the
configured clone path, the hook's ref is checked out, and the build script
runs with ``bash``. Combined stdout and stderr are streamed to ``build.txt``
in the build's result directory.

The action is a coroutine. When the supervisor's deadline cancels it, any
running child process is killed before the cancellation propagates.
"""

from __future__ import annotations

import asyncio
import contextlib
import datetime as dt
import os
import shutil
import signal
import tempfile
import typing as typ
from pathlib import Path

from grim.logging import get_logger, log_debug, log_info

from .errors import BuildScriptMissingError, CloneError
from .models import ExecuteResult

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from grim.config.models import EffectiveConfig
    from grim.hooks.models import HookEvent

logger = get_logger(__name__)

BUILD_LOG_FILENAME = "build.txt"

# Trailing output kept in ExecuteResult; the full log stays in build.txt.
_OUTPUT_TAIL_CHARS = 4096
_READ_CHUNK_BYTES = 8192
# Upper bound on reaping a killed process group.
_KILL_WAIT_S = 2.0


def default_clone_url(owner: str, repo: str) -> str:
    """Return the GitHub HTTPS clone URL for ``owner/repo``."""
    return f"https://github.com/{owner}/{repo}.git"


def create_workspace(workspace_root: Path, owner: str, repo: str) -> Path:
    """Create a fresh, uniquely named workspace directory."""
    parent = Path(workspace_root) / owner / repo
    parent.mkdir(parents=True, exist_ok=True)
    return Path(tempfile.mkdtemp(dir=parent))


def build_environment(
    ref: str,
    event: HookEvent,
    *,
    result_path: Path,
    workspace: Path,
    status_context: str,
) -> dict[str, str]:
    """Return the process environment for the build script."""
    env = dict(os.environ)
    env.update(
        {
            "GH_EVENT_NAME": event.event_name,
            "GH_ACTION": event.action,
            "GH_USER_NAME": event.user_name,
            "GH_OWNER": event.owner,
            "GH_REPO": event.repo,
            "GH_TARGET": event.target,
            "GH_REF": ref,
            "GH_STATUS_REF": event.status_ref,
            "GH_URL": event.clone_url,
            "GH_PR_NUMBER": str(event.pr_number),
            "GRIM_RESULT_PATH": str(result_path),
            "GRIM_WORKSPACE": str(workspace),
            "GRIM_STATUS_CONTEXT": status_context,
        }
    )
    return env


async def _wait_or_kill(
    process: asyncio.subprocess.Process,
    work: cabc.Awaitable[None],
) -> int:
    """Await ``work`` then the process exit, killing its group if cancelled.

    Children run in their own session, so the kill reaches anything the
    script started. Reaping is bounded because a descendant that left the
    group can still hold the output pipe open.
    """
    try:
        await work
        return await process.wait()
    except asyncio.CancelledError:
        _kill_group(process)
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(process.wait(), _KILL_WAIT_S)
        raise


def _kill_group(process: asyncio.subprocess.Process) -> None:
    # The group outlives its leader while any member is alive.
    with contextlib.suppress(ProcessLookupError):
        os.killpg(process.pid, signal.SIGKILL)


async def _run_git(argv: list[str]) -> None:
    log_debug(logger, "Running %s", " ".join(argv))
    process = await asyncio.create_subprocess_exec(
        *argv,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
        start_new_session=True,
    )
    output = bytearray()

    async def collect() -> None:
        assert process.stdout is not None  # noqa: S101 - stdout=PIPE above
        output.extend(await process.stdout.read())

    exit_code = await _wait_or_kill(process, collect())
    if exit_code != 0:
        raise CloneError.command_failed(
            argv, exit_code, output.decode("utf-8", errors="replace")
        )


async def checkout(git: str, clone_url: str, ref: str, clone_dir: Path) -> None:
    """Clone ``clone_url`` into ``clone_dir`` and check out ``ref``."""
    clone_dir.parent.mkdir(parents=True, exist_ok=True)
    await _run_git([git, "clone", "--quiet", clone_url, str(clone_dir)])
    await _run_git([git, "-C", str(clone_dir), "checkout", "--quiet", ref])


async def run_build_script(
    script: Path,
    *,
    cwd: Path,
    env: dict[str, str],
    log_path: Path,
) -> tuple[int, str]:
    """Run ``script`` with bash, streaming its output to ``log_path``.

    Returns
    -------
    tuple[int, str]
        The exit status and the trailing output.

    """
    process = await asyncio.create_subprocess_exec(
        "bash",
        str(script),
        cwd=cwd,
        env=env,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
        start_new_session=True,
    )
    tail = ""

    async def pump() -> None:
        nonlocal tail
        assert process.stdout is not None  # noqa: S101 - stdout=PIPE above
        with log_path.open("wb") as log:
            while chunk := await process.stdout.read(_READ_CHUNK_BYTES):
                log.write(chunk)
                text = tail + chunk.decode("utf-8", errors="replace")
                tail = text[-_OUTPUT_TAIL_CHARS:]

    exit_code = await _wait_or_kill(process, pump())
    return exit_code, tail


async def clone_and_execute(
    ref: str,
    result_path: Path,
    config: EffectiveConfig,
    event: HookEvent,
    status_context: str,
) -> ExecuteResult:
    """Clone the hook's repository at ``ref`` and run its build script.

    Parameters
    ----------
    ref
        Git ref to check out.
    result_path
        Result directory for this build; receives ``build.txt``.
    config
        Effective configuration for the repository.
    event
        Hook event being built.
    status_context
        Commit status context, exported to the script.

    Returns
    -------
    ExecuteResult
        Exit status and trailing output of the build script.

    Raises
    ------
    CloneError
        If git is unavailable or the clone or checkout fails.
    BuildScriptMissingError
        If the checked-out tree has no build script.

    """
    git = shutil.which("git")
    if git is None:
        raise CloneError.missing_git()

    workspace = await asyncio.to_thread(
        create_workspace, config.workspace_root, event.owner, event.repo
    )
    clone_dir = workspace / config.clone_path(event.owner, event.repo)
    clone_url = event.clone_url or default_clone_url(event.owner, event.repo)
    await checkout(git, clone_url, ref, clone_dir)

    script = clone_dir / config.build_script
    if not script.is_file():
        raise BuildScriptMissingError.at(script)

    log_info(logger, "Running %s for %s at %s", config.build_script, event.slug, ref)
    env = build_environment(
        ref,
        event,
        result_path=result_path,
        workspace=workspace,
        status_context=status_context,
    )
    log_path = result_path / BUILD_LOG_FILENAME
    start_time = dt.datetime.now(dt.UTC)
    exit_code, output = await run_build_script(
        script, cwd=clone_dir, env=env, log_path=log_path
    )
    return ExecuteResult(
        exit_code=exit_code,
        output=output,
        log_path=str(log_path),
        start_time=start_time,
        end_time=dt.datetime.now(dt.UTC),
    )
