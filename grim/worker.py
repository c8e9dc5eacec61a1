"""Dramatiq actor that processes queued hook events.

Usage
-----
Queue a hook for the worker (normally done by
:class:`grim.queue.DramatiqQueueClient`):

>>> process_hook_job.send("/etc/grim", encode_hook_event(event).decode())

Run workers with ``dramatiq grim.worker``. When a worker boots, the queue
named by ``GrimQueueName`` in ``$GRIM_CONFIG_ROOT/config.json`` is declared
so the worker consumes it alongside the default queue.
"""

from __future__ import annotations

import asyncio
import typing as typ
from pathlib import Path

import dramatiq
import msgspec

from grim.config.models import DEFAULT_QUEUE_NAME
from grim.config.settings import RuntimeSettings
from grim.errors import ConfigError
from grim.hooks.models import decode_hook_event
from grim.instance import HookStatus, Instance
from grim.logging import get_logger, log_error, log_warning
from grim.queue._broker import ensure_broker_configured
from grim.queue.client import DramatiqQueueClient

if typ.TYPE_CHECKING:
    from grim.queue.prepare import QueueIdentity

logger = get_logger(__name__)

# The actor decorator binds to the global broker, so it must exist first.
_broker = ensure_broker_configured()


# Failed builds are reported once; redelivery is left to the broker.
@dramatiq.actor(queue_name=DEFAULT_QUEUE_NAME, max_retries=0)
def process_hook_job(config_root: str, payload: str) -> str:
    """Decode a queued hook and run it through the dispatcher.

    Parameters
    ----------
    config_root
        Configuration root to resolve the build against.
    payload
        Hook event serialized with :func:`grim.hooks.encode_hook_event`.

    Returns
    -------
    str
        The :class:`~grim.instance.HookStatus` of the processed hook.

    """
    try:
        event = decode_hook_event(payload)
    except msgspec.DecodeError as exc:
        log_error(logger, "Discarding undecodable hook payload: %s", exc)
        return HookStatus.ERRORED.value

    instance = Instance(config_root=config_root)
    outcome = asyncio.run(instance.process_hook(event))
    return outcome.status.value


def declare_configured_queue(
    broker: dramatiq.Broker,
    config_root: Path | str | None = None,
) -> QueueIdentity | None:
    """Declare the configured hook queue on ``broker``.

    Parameters
    ----------
    broker
        Broker the worker consumes from.
    config_root
        Configuration root; defaults to ``GRIM_CONFIG_ROOT``.

    Returns
    -------
    QueueIdentity | None
        The declared identity, or ``None`` when the global configuration
        cannot be resolved and only the default queue is consumed.

    """
    root = Path(config_root or RuntimeSettings.from_env().config_root)
    client = DramatiqQueueClient(str(root), broker=broker, actor=process_hook_job)
    try:
        return Instance(config_root=root, queue=client).prepare_queue()
    except ConfigError as exc:
        log_warning(
            logger,
            "Consuming %s only; configured queue unavailable: %s",
            DEFAULT_QUEUE_NAME,
            exc,
        )
        return None


class ConfiguredQueueMiddleware(dramatiq.Middleware):
    """Declare the configured hook queue before a worker starts consuming."""

    def __init__(self, config_root: Path | str | None = None) -> None:
        """Resolve ``config_root`` at boot time when it is not given."""
        self.config_root = config_root

    def before_worker_boot(self, broker: dramatiq.Broker, worker: object) -> None:
        """Declare the queue so the booting worker adds a consumer for it."""
        del worker
        declare_configured_queue(broker, self.config_root)


def _install_queue_middleware(broker: dramatiq.Broker) -> None:
    if not any(isinstance(m, ConfiguredQueueMiddleware) for m in broker.middleware):
        broker.add_middleware(ConfiguredQueueMiddleware())


_install_queue_middleware(_broker)
