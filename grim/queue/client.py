"""Queue client boundary and its Dramatiq implementation.

The dispatcher only needs two things from the remote queue: a way to make
sure a named queue exists, and a way to put a hook event on it. Delivery,
acknowledgement, and redelivery stay with the queue service.
"""

from __future__ import annotations

import typing as typ

from grim.hooks.models import encode_hook_event

from ._broker import ensure_broker_configured

if typ.TYPE_CHECKING:
    import dramatiq

    from grim.hooks.models import HookEvent


@typ.runtime_checkable
class QueueClient(typ.Protocol):
    """Interface to the remote queue that carries hook events."""

    def declare_queue(self, name: str) -> None:
        """Create ``name`` if it does not exist; repeated calls are no-ops."""
        ...

    def enqueue(self, name: str, event: HookEvent) -> str:
        """Put ``event`` on queue ``name`` and return the message id."""
        ...


class DramatiqQueueClient:
    """Queue client backed by a Dramatiq broker.

    Hook events are sent as messages for the hook processing actor, routed
    to the named queue. Workers consuming that queue run the build.

    Parameters
    ----------
    config_root
        Configuration root the worker should resolve builds against.
    broker
        Broker to use. Defaults to the global broker.
    actor
        Actor that processes queued hooks. Defaults to
        :func:`grim.worker.process_hook_job`.

    """

    def __init__(
        self,
        config_root: str,
        *,
        broker: dramatiq.Broker | None = None,
        actor: dramatiq.Actor | None = None,
    ) -> None:
        """Initialise the client with its broker and actor."""
        self._config_root = config_root
        self._broker = broker or ensure_broker_configured()
        if actor is None:
            from grim.worker import process_hook_job

            actor = process_hook_job
        self._actor = actor

    def declare_queue(self, name: str) -> None:
        """Declare ``name`` on the broker; Dramatiq ignores known queues."""
        self._broker.declare_queue(name)

    def enqueue(self, name: str, event: HookEvent) -> str:
        """Send ``event`` to the hook actor on queue ``name``."""
        payload = encode_hook_event(event).decode("utf-8")
        message = self._actor.message(self._config_root, payload).copy(
            queue_name=name
        )
        self._broker.enqueue(message)
        return message.message_id
