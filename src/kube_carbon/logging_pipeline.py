"""Structured JSON logging for the query engine.

Records are handed to a bounded in-memory queue and rendered on a
background :class:`logging.handlers.QueueListener`, so request threads never
block on log output. Fields passed through ``extra={...}`` land in the
``context`` object of every JSON line.
"""

from __future__ import annotations

import json
import logging
import logging.handlers
from collections.abc import Iterable
from datetime import datetime, timezone
from queue import Full, Queue
from typing import TextIO, override
from uuid import uuid4

LOGGER = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 1024

_RESERVED_RECORD_KEYS: frozenset[str] = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "message",
        "asctime",
        "trace_id",
    }
)


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON documents."""

    def __init__(self, *, default_trace_id: str | None = None) -> None:
        super().__init__()
        self._default_trace_id = default_trace_id

    @override
    def format(self, record: logging.LogRecord) -> str:
        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_RECORD_KEYS
        }
        payload: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "trace_id": getattr(record, "trace_id", None) or self._default_trace_id,
            "context": context,
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        elif record.exc_text:
            payload["exception"] = record.exc_text
        return json.dumps(payload, default=str)


class BoundedQueueHandler(logging.handlers.QueueHandler):
    """Queue handler that drops records instead of blocking when full."""

    @override
    def enqueue(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(record)
        except Full:
            self.handleError(record)

    @override
    def handleError(self, record: logging.LogRecord) -> None:
        return


def configure_structured_logging(
    logger: logging.Logger | None = None,
    *,
    trace_id: str | None = None,
    level: int = logging.INFO,
    stream: TextIO | None = None,
    queue_size: int = DEFAULT_QUEUE_SIZE,
) -> logging.handlers.QueueListener:
    """Attach JSON output to ``logger`` (the ``kube_carbon`` logger by default).

    Calling this again on the same logger replaces the previously installed
    queue handler rather than stacking a second one.

    Args:
        logger: Target logger.
        trace_id: Identifier stamped on every record that does not carry its
            own ``trace_id``. A random one is generated when omitted.
        level: Logging verbosity level.
        stream: Output stream; ``sys.stderr`` when omitted.
        queue_size: Capacity of the record queue.

    Returns:
        The started queue listener. Stop it with :func:`shutdown_listeners`.
    """

    target = logger or logging.getLogger("kube_carbon")
    target.setLevel(level)
    for handler in list(target.handlers):
        if isinstance(handler, BoundedQueueHandler):
            target.removeHandler(handler)

    record_queue: Queue[logging.LogRecord] = Queue(maxsize=queue_size)
    target.addHandler(BoundedQueueHandler(record_queue))

    stream_handler = logging.StreamHandler(stream)
    stream_handler.setFormatter(JsonFormatter(default_trace_id=trace_id or str(uuid4())))

    listener = logging.handlers.QueueListener(record_queue, stream_handler)
    listener.start()
    return listener


def shutdown_listeners(listeners: Iterable[logging.handlers.QueueListener]) -> None:
    """Stop queue listeners, flushing queued records; failures are logged."""

    for listener in listeners:
        try:
            listener.stop()
        except Exception as exc:  # pragma: no cover - listener teardown
            LOGGER.warning("Failed to stop logging listener", exc_info=exc)
