"""Normalize GitHub webhook bodies into :class:`HookEvent` records.

Push and pull request payloads carry the repository, ref, and commit in
different places. This module extracts them into the flat record the rest of
the dispatcher works with. Event types other than those two keep only the
repository coordinates, which is all the admission filter needs to reject
them.
"""

from __future__ import annotations

import typing as typ

from .errors import HookPayloadError
from .filter import PULL_REQUEST_EVENT, PUSH_EVENT
from .models import HookEvent


def _mapping(payload: dict[str, typ.Any], key: str, *, path: str) -> dict[str, typ.Any]:
    value = payload.get(key)
    if not isinstance(value, dict):
        raise HookPayloadError.missing(path)
    return value


def _text(payload: dict[str, typ.Any], key: str) -> str:
    value = payload.get(key)
    return value if isinstance(value, str) else ""


def _repository_coordinates(payload: dict[str, typ.Any]) -> tuple[str, str]:
    repository = _mapping(payload, "repository", path="repository")
    owner = _mapping(repository, "owner", path="repository.owner")
    # Push payloads name the owner under ``name``; every other event uses ``login``.
    owner_name = _text(owner, "login") or _text(owner, "name")
    repo_name = _text(repository, "name")
    if not owner_name:
        raise HookPayloadError.missing("repository.owner.login")
    if not repo_name:
        raise HookPayloadError.missing("repository.name")
    return owner_name, repo_name


def _push_event(payload: dict[str, typ.Any], owner: str, repo: str) -> HookEvent:
    repository = _mapping(payload, "repository", path="repository")
    pusher = payload.get("pusher")
    user_name = _text(pusher, "name") if isinstance(pusher, dict) else ""
    return HookEvent(
        owner=owner,
        repo=repo,
        event_name=PUSH_EVENT,
        status_ref=_text(payload, "after"),
        ref=_text(payload, "ref"),
        deleted=bool(payload.get("deleted", False)),
        user_name=user_name,
        clone_url=_text(repository, "clone_url"),
    )


def _pull_request_event(
    payload: dict[str, typ.Any], owner: str, repo: str
) -> HookEvent:
    pull_request = _mapping(payload, "pull_request", path="pull_request")
    head = _mapping(pull_request, "head", path="pull_request.head")
    base = pull_request.get("base")
    head_repo = head.get("repo")
    user = pull_request.get("user")
    number = payload.get("number", pull_request.get("number", 0))
    return HookEvent(
        owner=owner,
        repo=repo,
        event_name=PULL_REQUEST_EVENT,
        action=_text(payload, "action"),
        status_ref=_text(head, "sha"),
        ref=_text(head, "ref"),
        target=_text(base, "ref") if isinstance(base, dict) else "",
        user_name=_text(user, "login") if isinstance(user, dict) else "",
        clone_url=_text(head_repo, "clone_url") if isinstance(head_repo, dict) else "",
        pr_number=number if isinstance(number, int) else 0,
    )


def hook_event_from_github(event_name: str, payload: dict[str, typ.Any]) -> HookEvent:
    """Build a hook event from a GitHub webhook event name and JSON body.

    Parameters
    ----------
    event_name
        Value of the ``X-GitHub-Event`` header.
    payload
        Decoded webhook body.

    Returns
    -------
    HookEvent
        Normalized event record.

    Raises
    ------
    HookPayloadError
        If the payload lacks repository coordinates or, for pull requests,
        the ``pull_request.head`` block.

    """
    owner, repo = _repository_coordinates(payload)
    if event_name == PUSH_EVENT:
        return _push_event(payload, owner, repo)
    if event_name == PULL_REQUEST_EVENT:
        return _pull_request_event(payload, owner, repo)
    return HookEvent(
        owner=owner,
        repo=repo,
        event_name=event_name,
        action=_text(payload, "action"),
    )
