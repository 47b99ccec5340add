"""
Timeout and failure guard around store calls.

Every awaitable that touches the database goes through guarded(). A call that
exceeds the active timeout, or fails because the connection is gone, is
reported as UnavailableException so the caller can retry the operation.
Callers narrow the timeout for a block of work with store_timeout().
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TypeVar

from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError

from ticketdesk.core.config import settings
from ticketdesk.core.exceptions import UnavailableException

logger = logging.getLogger(__name__)

T = TypeVar("T")

_timeout_override: ContextVar[float | None] = ContextVar("store_timeout", default=None)


def current_timeout() -> float:
    return _timeout_override.get() or settings.STORE_TIMEOUT_SECONDS


@contextmanager
def store_timeout(seconds: float) -> Iterator[None]:
    """Apply a caller-chosen timeout to every store call made inside the block."""
    if seconds <= 0:
        raise ValueError("store timeout must be positive")
    token = _timeout_override.set(seconds)
    try:
        yield
    finally:
        _timeout_override.reset(token)


async def guarded(awaitable: Awaitable[T]) -> T:
    timeout = current_timeout()
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as exc:
        logger.warning("Store call exceeded %.2fs timeout", timeout)
        raise UnavailableException(f"Store call timed out after {timeout:g}s") from exc
    except (OperationalError, InterfaceError, DisconnectionError) as exc:
        logger.warning("Store unavailable: %s", exc.__class__.__name__)
        raise UnavailableException() from exc
