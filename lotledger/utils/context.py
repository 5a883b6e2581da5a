# lotledger/utils/context.py
"""
Call context for the lot-accounting engine.

Holds the correlation ID of the current computation so that every log line
emitted while resolving rates and replaying lots can be tied back to one
call, even when several replays run concurrently on the same event loop.

Uses Python's contextvars, which propagate through async/await and into
tasks created with asyncio.gather.

Usage:
    from lotledger.utils.context import correlation_scope, get_correlation_id

    with correlation_scope("req-42"):
        ...  # get_correlation_id() == "req-42"
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

# Correlation ID for tracing one computation through the logs
_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    """
    Get the current correlation ID.

    Returns:
        The correlation ID bound to the current context, or None if not set.
    """
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """
    Set the correlation ID for the current context.

    A presentation layer typically calls this with its own request ID before
    invoking the engine.
    """
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    """Clear the correlation ID."""
    _correlation_id_var.set(None)


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """
    Bind a correlation ID for the duration of a block.

    If a correlation ID is already bound and none is passed, the existing one
    is kept (nested calls share the caller's ID). Otherwise a short random ID
    is generated.

    Yields:
        The correlation ID in effect inside the block
    """
    current = _correlation_id_var.get()
    effective = correlation_id or current or uuid.uuid4().hex[:12]
    token = _correlation_id_var.set(effective)
    try:
        yield effective
    finally:
        _correlation_id_var.reset(token)
