"""Deadlines for oracle calls.

A hung oracle must not block a batch forever: every call goes through
``call_with_timeout``, which converts expiry into ``OracleTimeoutError``
(an ``OracleUnavailableError``, so the dictionary step may tolerate it).
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable
from typing import TypeVar

from lexispine.core.errors import OracleTimeoutError

T = TypeVar("T")


async def call_with_timeout(
    awaitable: Awaitable[T],
    timeout_seconds: float | None,
    oracle: str | None = None,
) -> T:
    """Await ``awaitable`` with a deadline.

    Args:
        awaitable: Oracle call to run
        timeout_seconds: Deadline in seconds; ``None`` waits indefinitely
        oracle: Name used in the error message

    Raises:
        OracleTimeoutError: The deadline passed; the call is cancelled
        ValueError: ``timeout_seconds`` is not positive
    """
    if timeout_seconds is None:
        return await awaitable
    if timeout_seconds <= 0:
        raise ValueError(f"Timeout must be positive, got {timeout_seconds}")

    start = time.monotonic()
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_seconds)
    except TimeoutError:
        raise OracleTimeoutError(
            timeout=timeout_seconds,
            elapsed=time.monotonic() - start,
            oracle=oracle,
        ) from None


__all__ = ["call_with_timeout"]
