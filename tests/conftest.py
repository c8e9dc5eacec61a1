"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import json
import typing as typ

import pytest

from grim.config.models import EffectiveConfig
from grim.hooks.models import HookEvent
from tests.helpers.builds import TEST_OWNER, TEST_REPO

if typ.TYPE_CHECKING:
    from pathlib import Path

_CREDENTIALS = {"AWSRegion": "empty", "AWSKey": "empty", "AWSSecret": "empty"}


class WriteConfigFn(typ.Protocol):
    """Callable fixture that writes a ``config.json`` document."""

    def __call__(
        self,
        document: dict[str, object],
        *,
        owner: str | None = None,
        repo: str | None = None,
    ) -> Path: ...


@pytest.fixture
def config_root(tmp_path: Path) -> Path:
    """Return an empty configuration root."""
    root = tmp_path / "config"
    root.mkdir()
    return root


@pytest.fixture
def write_config(config_root: Path) -> WriteConfigFn:
    """Return a helper that writes global or repository config documents.

    Global documents get placeholder queue credentials unless the test
    supplies its own values for those keys.
    """

    def _write(
        document: dict[str, object],
        *,
        owner: str | None = None,
        repo: str | None = None,
    ) -> Path:
        if owner is None or repo is None:
            directory = config_root
            content = {**_CREDENTIALS, **document}
        else:
            directory = config_root / owner / repo
            content = dict(document)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / "config.json"
        path.write_text(json.dumps(content), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def result_root(tmp_path: Path) -> Path:
    """Return the directory used as the result root."""
    return tmp_path / "results"


@pytest.fixture
def build_config(result_root: Path, tmp_path: Path) -> EffectiveConfig:
    """Return a minimal effective configuration rooted in ``tmp_path``."""
    return EffectiveConfig(result_root=result_root, workspace_root=tmp_path / "ws")


@pytest.fixture
def hook_event() -> HookEvent:
    """Return an admitted push event for the test repository."""
    return HookEvent(
        owner=TEST_OWNER,
        repo=TEST_REPO,
        event_name="push",
        ref="refs/heads/main",
        status_ref="fooooooooooooooooooo",
    )
