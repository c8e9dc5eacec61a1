"""Admission decisions for incoming hook events.

Only pushes and a small set of pull request actions produce builds. The
decision is a pure function of the event so it can be evaluated before any
configuration is read.
"""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from .models import HookEvent

PUSH_EVENT = "push"
PULL_REQUEST_EVENT = "pull_request"
BUILDABLE_PULL_REQUEST_ACTIONS = frozenset({"opened", "reopened", "synchronize"})

SKIP_DELETED = "ref was deleted"
SKIP_PULL_REQUEST_ACTION = "unsupported pull_request action"
SKIP_EVENT_TYPE = "unsupported event type"


def should_skip(event: HookEvent) -> str | None:
    """Return a reason to skip ``event``, or ``None`` when it should be built.

    Deletions are skipped before the event type is considered, so a deleted
    ref never builds even when its action would otherwise be accepted.
    """
    if event.deleted:
        return SKIP_DELETED

    if event.event_name == PUSH_EVENT:
        return None

    if event.event_name == PULL_REQUEST_EVENT:
        if event.action in BUILDABLE_PULL_REQUEST_ACTIONS:
            return None
        return f"{SKIP_PULL_REQUEST_ACTION}: {event.action!r}"

    return f"{SKIP_EVENT_TYPE}: {event.event_name!r}"
