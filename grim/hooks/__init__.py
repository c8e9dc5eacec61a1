"""Hook event records, admission filtering, and GitHub payload parsing."""

from __future__ import annotations

from .errors import HookPayloadError
from .filter import should_skip
from .github import hook_event_from_github
from .models import HookEvent, decode_hook_event, encode_hook_event

__all__ = [
    "HookEvent",
    "HookPayloadError",
    "decode_hook_event",
    "encode_hook_event",
    "hook_event_from_github",
    "should_skip",
]
