"""Remote queue boundary and queue identity preparation."""

from __future__ import annotations

from .client import DramatiqQueueClient, QueueClient
from .prepare import QueueIdentity, prepare_queue

__all__ = ["DramatiqQueueClient", "QueueClient", "QueueIdentity", "prepare_queue"]
