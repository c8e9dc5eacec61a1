"""Typed hook event record shared by the filter, orchestrator, and result tree."""

from __future__ import annotations

import msgspec

_WIRE_NAMES = {
    "owner": "Owner",
    "repo": "Repo",
    "status_ref": "StatusRef",
    "event_name": "EventName",
    "action": "Action",
    "deleted": "Deleted",
    "ref": "Ref",
    "user_name": "UserName",
    "target": "Target",
    "clone_url": "CloneURL",
    "pr_number": "PrNumber",
}


class HookEvent(msgspec.Struct, frozen=True, kw_only=True, rename=_WIRE_NAMES):
    """Normalized repository webhook event.

    Attributes
    ----------
    owner : str
        Repository owner (organisation or user).
    repo : str
        Repository name.
    status_ref : str
        Commit SHA that commit statuses are attached to.
    event_name : str
        Webhook event type, e.g. ``push`` or ``pull_request``.
    action : str
        Event subtype such as ``opened``; empty for event types without one.
    deleted : bool
        True when the event reports removal of a ref.
    ref : str
        Git ref to build.
    user_name : str
        Login of the user that triggered the event.
    target : str
        Base branch of a pull request; empty for pushes.
    clone_url : str
        URL to clone the repository from; empty to use the GitHub default.
    pr_number : int
        Pull request number, or 0 when the event is not a pull request.

    """

    owner: str = ""
    repo: str = ""
    status_ref: str = ""
    event_name: str = ""
    action: str = ""
    deleted: bool = False
    ref: str = ""
    user_name: str = ""
    target: str = ""
    clone_url: str = ""
    pr_number: int = 0

    @property
    def slug(self) -> str:
        """Return the ``owner/repo`` identifier."""
        return f"{self.owner}/{self.repo}"


_ENCODER = msgspec.json.Encoder()
_DECODER = msgspec.json.Decoder(HookEvent)


def encode_hook_event(event: HookEvent) -> bytes:
    """Serialize an event to indented JSON bytes."""
    return msgspec.json.format(_ENCODER.encode(event), indent=2)


def decode_hook_event(data: bytes | str) -> HookEvent:
    """Deserialize an event produced by :func:`encode_hook_event`.

    Raises
    ------
    msgspec.DecodeError
        If ``data`` is not a valid serialized event.

    """
    return _DECODER.decode(data)
