"""Grim: a webhook-driven continuous-integration dispatcher.

Hooks are admitted by :func:`grim.hooks.should_skip`, configured by
:func:`grim.config.resolve_for_repo`, and built by
:func:`grim.build.on_hook_build`, which records every attempt under the
result root before the build action runs.
"""

from __future__ import annotations

from .build import ExecuteResult, on_hook_build
from .config import EffectiveConfig, resolve_for_repo, resolve_global
from .errors import (
    BuildActionError,
    BuildTimeoutError,
    ConfigError,
    GrimError,
    PersistenceError,
)
from .hooks import HookEvent, should_skip
from .instance import HookOutcome, HookStatus, Instance

__all__ = [
    "BuildActionError",
    "BuildTimeoutError",
    "ConfigError",
    "EffectiveConfig",
    "ExecuteResult",
    "GrimError",
    "HookEvent",
    "HookOutcome",
    "HookStatus",
    "Instance",
    "PersistenceError",
    "on_hook_build",
    "resolve_for_repo",
    "resolve_global",
    "should_skip",
]
