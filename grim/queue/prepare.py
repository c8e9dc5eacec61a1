"""Derive and register the dispatcher's queue identity.

Runs once at startup or when configuration is reloaded, never per hook.
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

from grim.config.models import MAX_QUEUE_NAME_LENGTH, MAX_SERVER_ID_LENGTH
from grim.config.resolver import truncate_identifier
from grim.observability import BuildEventLogger

if typ.TYPE_CHECKING:
    from grim.config.models import EffectiveConfig

    from .client import QueueClient


@dc.dataclass(frozen=True, slots=True)
class QueueIdentity:
    """Validated queue name and server identity."""

    queue_name: str
    server_id: str


def prepare_queue(
    config: EffectiveConfig,
    queue: QueueClient | None,
    *,
    event_logger: BuildEventLogger | None = None,
) -> QueueIdentity:
    """Validate the configured queue identity and declare it on ``queue``.

    Identifiers the resolver already shortened pass through unchanged, so
    calling this again with the same configuration logs nothing new and
    relies on the client's idempotent declare.

    Parameters
    ----------
    config
        Resolved global configuration.
    queue
        Queue client to declare the queue on; ``None`` skips registration.
    event_logger
        Destination for the ``queue.prepared`` event.

    Returns
    -------
    QueueIdentity
        The identifiers handed to the queue client.

    """
    queue_name = truncate_identifier(
        "GrimQueueName", config.queue_name, MAX_QUEUE_NAME_LENGTH
    )
    server_id = truncate_identifier(
        "GrimServerID", config.server_id, MAX_SERVER_ID_LENGTH
    )
    if queue is not None:
        queue.declare_queue(queue_name)

    (event_logger or BuildEventLogger()).log_queue_prepared(
        queue_name=queue_name, server_id=server_id
    )
    return QueueIdentity(queue_name=queue_name, server_id=server_id)
