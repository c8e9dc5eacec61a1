"""Configuration documents, resolution, and process settings."""

from __future__ import annotations

from .models import (
    DEFAULT_TIMEOUT_S,
    MAX_QUEUE_NAME_LENGTH,
    MAX_SERVER_ID_LENGTH,
    ConfigDocument,
    EffectiveConfig,
)
from .resolver import (
    CONFIG_FILENAME,
    build_truncated_message,
    resolve_for_repo,
    resolve_global,
    truncate_identifier,
)
from .settings import RuntimeSettings

__all__ = [
    "CONFIG_FILENAME",
    "DEFAULT_TIMEOUT_S",
    "MAX_QUEUE_NAME_LENGTH",
    "MAX_SERVER_ID_LENGTH",
    "ConfigDocument",
    "EffectiveConfig",
    "RuntimeSettings",
    "build_truncated_message",
    "resolve_for_repo",
    "resolve_global",
    "truncate_identifier",
]
