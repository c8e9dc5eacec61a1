r"""Durable result records for build attempts.

Every admitted hook gets its own directory in the result tree before the
build action runs::

    {result_root}/{owner}/{repo}/{build_id}/hook.json
    {result_root}/{owner}/{repo}/{build_id}/result.json

``hook.json`` is written first so a build that crashes or times out still
leaves evidence that it was attempted. ``result.json`` follows once the
action produces an :class:`ExecuteResult`.
"""

from __future__ import annotations

import itertools
import os
import tempfile
import threading
import time
from pathlib import Path

import msgspec

from grim.errors import PersistenceError
from grim.hooks.models import HookEvent, decode_hook_event, encode_hook_event

from .models import ExecuteResult

HOOK_FILENAME = "hook.json"
RESULT_FILENAME = "result.json"

_MAX_CREATE_ATTEMPTS = 100

_counter = itertools.count()
_counter_lock = threading.Lock()


def _next_build_id() -> str:
    """Return a sortable identifier unique within this process."""
    with _counter_lock:
        sequence = next(_counter)
    return f"{time.time_ns():020d}-{sequence:06d}"


def create_result_dir(result_root: Path | str, owner: str, repo: str) -> Path:
    """Create a new, uniquely named result directory for one build.

    Parent directories are created as needed. The leaf is created with
    ``exist_ok=False`` so two builds, even in separate processes, can never
    share a directory.

    Raises
    ------
    PersistenceError
        If the directory cannot be created.

    """
    repo_dir = Path(result_root) / owner / repo
    try:
        repo_dir.mkdir(parents=True, exist_ok=True)
        for _ in range(_MAX_CREATE_ATTEMPTS):
            candidate = repo_dir / _next_build_id()
            try:
                candidate.mkdir()
            except FileExistsError:
                continue
            return candidate
    except OSError as exc:
        raise PersistenceError.create_failed(repo_dir, exc) from exc

    raise PersistenceError.create_failed(repo_dir, "no unused build id found")


def _write_atomic(path: Path, data: bytes) -> None:
    """Write ``data`` to ``path`` via a temporary file and rename."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        Path(tmp_name).replace(path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def record_hook(result_path: Path, event: HookEvent) -> Path:
    """Write ``event`` as ``hook.json`` inside ``result_path``.

    Raises
    ------
    PersistenceError
        If the file cannot be written.

    """
    target = result_path / HOOK_FILENAME
    try:
        _write_atomic(target, encode_hook_event(event))
    except OSError as exc:
        raise PersistenceError.write_failed(target, exc) from exc
    return target


def record_result(result_path: Path, result: ExecuteResult) -> Path:
    """Write ``result`` as ``result.json`` inside ``result_path``.

    Raises
    ------
    PersistenceError
        If the file cannot be written.

    """
    target = result_path / RESULT_FILENAME
    payload = msgspec.json.format(msgspec.json.encode(result), indent=2)
    try:
        _write_atomic(target, payload)
    except OSError as exc:
        raise PersistenceError.write_failed(target, exc) from exc
    return target


def read_hook(result_path: Path) -> HookEvent:
    """Load the hook event recorded in ``result_path``."""
    return decode_hook_event((result_path / HOOK_FILENAME).read_bytes())


def read_result(result_path: Path) -> ExecuteResult | None:
    """Load the execution result, or ``None`` if the build never finished."""
    path = result_path / RESULT_FILENAME
    if not path.is_file():
        return None
    return msgspec.json.decode(path.read_bytes(), type=ExecuteResult)


def find_result_dirs(result_root: Path | str, owner: str, repo: str) -> list[Path]:
    """List result directories for a repository, oldest first."""
    repo_dir = Path(result_root) / owner / repo
    if not repo_dir.is_dir():
        return []
    return sorted(entry for entry in repo_dir.iterdir() if entry.is_dir())
