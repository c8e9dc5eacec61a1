"""Broker configuration helpers for Dramatiq actor setup.

This private module encapsulates broker detection. The queue client calls it
when constructed without an explicit broker. :mod:`grim.worker` calls it at
import time, because ``@dramatiq.actor`` binds the hook actor to the global
broker as soon as the module is loaded; no other module touches broker state
when imported.
"""

from __future__ import annotations

import os
import sys
import threading

import dramatiq
from dramatiq.brokers.stub import StubBroker

_BROKER_LOCK = threading.Lock()


def _is_running_tests() -> bool:
    """Return True when the process is running under pytest."""
    return "pytest" in sys.modules or any(
        key in os.environ
        for key in ["PYTEST_CURRENT_TEST", "PYTEST_XDIST_WORKER", "PYTEST_ADDOPTS"]
    )


def _should_use_stub_broker() -> bool:
    """Return True when a StubBroker may stand in for a real broker.

    ``GRIM_ALLOW_STUB_BROKER`` enables the stub for local runs; test runs
    always allow it.
    """
    allow_stub = os.environ.get("GRIM_ALLOW_STUB_BROKER", "")
    return allow_stub.lower() in {"1", "true", "yes"} or _is_running_tests()


def ensure_broker_configured() -> dramatiq.Broker:
    """Return the global Dramatiq broker, installing a stub when permitted.

    Thread-safe: concurrent callers observe a single broker.

    Raises
    ------
    RuntimeError
        If no broker is configured and a stub is not allowed.

    """
    with _BROKER_LOCK:
        try:
            return dramatiq.get_broker()
        except (ImportError, LookupError):
            # ImportError: RabbitMQ/Redis client libraries are not installed.
            # LookupError: no broker has been configured yet.
            pass

        if not _should_use_stub_broker():  # pragma: no cover - prod misconfiguration
            message = (
                "No Dramatiq broker configured. "
                "Set GRIM_ALLOW_STUB_BROKER=1 for "
                "local/test runs or configure a real broker."
            )
            raise RuntimeError(message)

        broker = StubBroker()
        dramatiq.set_broker(broker)
        return broker
