"""Cooperative cancellation for batch runs.

The batch runner and the executor check the token before every record and
every step; a fired token raises ``BatchCancelledError`` at the next
check. In-flight oracle calls are not interrupted (their own deadlines
bound them).
"""

from __future__ import annotations

import asyncio

from lexispine.core.errors import BatchCancelledError


class CancellationToken:
    """An ``asyncio.Event`` with a reason."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def raise_if_cancelled(self, where: str | None = None) -> None:
        if self._event.is_set():
            suffix = f" before {where}" if where else ""
            raise BatchCancelledError(f"Batch cancelled{suffix}: {self._reason}")

    async def wait(self) -> None:
        await self._event.wait()


__all__ = ["CancellationToken"]
