"""
Event bus: the observability port of the enrichment engine.

Manifesto:
    The executor and batch runner report progress (step started, token
    skipped, batch aborted) without knowing who listens. A progress UI
    subscribes; tests record; production may drop everything. Business
    logic never makes a network call for diagnostics.

ARCHITECTURE
────────────
::

    EventBus (Protocol)
      ├── NullEventBus        ─ default, drops events
      ├── InMemoryEventBus    ─ pattern subscriptions, async handlers
      └── RecordingEventBus   ─ InMemoryEventBus + keeps history

    Event.matches("step.*")   ─ wildcard pattern matching

Example::

    bus = RecordingEventBus()

    async def on_step(event: Event) -> None:
        progress.update(event.payload["step"])

    await bus.subscribe("step.*", on_step)
    executor = StepExecutor(workflow, events=bus)

Tags:
    lexispine, events, observability, asyncio, pub-sub

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol, runtime_checkable

from lexispine.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Event:
    """Immutable event payload.

    Attributes:
        event_type: Dot-separated type (e.g., ``step.completed``, ``batch.aborted``)
        source: Origin component (e.g., ``executor``, ``batch``)
        payload: Event-specific data
        timestamp: When the event occurred (UTC)
        correlation_id: Optional ID linking related events (batch id)
        event_id: Unique event identifier
    """

    event_type: str
    source: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    correlation_id: str | None = None
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def matches(self, pattern: str) -> bool:
        """Check if event type matches a pattern (supports wildcards).

        Examples:
            - ``step.*`` matches ``step.started``, ``step.failed``
            - ``*`` matches everything
            - ``batch.aborted`` matches exactly ``batch.aborted``
        """
        if pattern == "*":
            return True
        if pattern.endswith(".*"):
            prefix = pattern[:-2]
            return self.event_type.startswith(prefix + ".")
        return self.event_type == pattern


EventHandler = Callable[[Event], Awaitable[None]]


@runtime_checkable
class EventBus(Protocol):
    """Protocol for event bus implementations."""

    async def publish(self, event: Event) -> None:
        """Publish an event to all matching subscribers."""
        ...

    async def subscribe(self, event_type: str, handler: EventHandler) -> str:
        """Subscribe to events matching a pattern; returns a subscription id."""
        ...

    async def unsubscribe(self, subscription_id: str) -> None:
        """Remove a subscription."""
        ...

    async def close(self) -> None:
        """Clean up resources."""
        ...


class NullEventBus:
    """Event bus that drops every event."""

    async def publish(self, event: Event) -> None:
        return None

    async def subscribe(self, event_type: str, handler: EventHandler) -> str:
        return "sub_null"

    async def unsubscribe(self, subscription_id: str) -> None:
        return None

    async def close(self) -> None:
        return None


@dataclass
class Subscription:
    """Internal subscription record."""

    id: str
    pattern: str
    handler: EventHandler


class InMemoryEventBus:
    """In-process event bus.

    Handlers run concurrently with ``asyncio.gather``. A failing handler is
    logged and never propagates into the publisher: a broken progress bar
    must not abort a batch.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, Subscription] = {}
        self._lock = asyncio.Lock()
        self._closed = False

    async def publish(self, event: Event) -> None:
        if self._closed:
            return

        async with self._lock:
            handlers_to_call = [
                (sub.id, sub.handler)
                for sub in self._subscriptions.values()
                if event.matches(sub.pattern)
            ]

        if not handlers_to_call:
            return

        async def safe_call(sub_id: str, handler: EventHandler) -> None:
            try:
                await handler(event)
            except Exception as e:
                logger.warning(
                    "events.handler_error",
                    subscription_id=sub_id,
                    event_type=event.event_type,
                    error=str(e),
                )

        await asyncio.gather(
            *[safe_call(sub_id, handler) for sub_id, handler in handlers_to_call],
        )

    async def subscribe(self, event_type: str, handler: EventHandler) -> str:
        sub_id = f"sub_{uuid.uuid4().hex[:12]}"
        async with self._lock:
            self._subscriptions[sub_id] = Subscription(
                id=sub_id,
                pattern=event_type,
                handler=handler,
            )
        return sub_id

    async def unsubscribe(self, subscription_id: str) -> None:
        async with self._lock:
            self._subscriptions.pop(subscription_id, None)

    async def close(self) -> None:
        """Mark bus as closed and clear subscriptions."""
        self._closed = True
        async with self._lock:
            self._subscriptions.clear()

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)


class RecordingEventBus(InMemoryEventBus):
    """InMemoryEventBus that keeps every published event."""

    def __init__(self) -> None:
        super().__init__()
        self.events: list[Event] = []

    async def publish(self, event: Event) -> None:
        if not self._closed:
            self.events.append(event)
        await super().publish(event)

    def of_type(self, pattern: str) -> list[Event]:
        """Recorded events matching ``pattern``, in publish order."""
        return [e for e in self.events if e.matches(pattern)]

    def types(self) -> list[str]:
        return [e.event_type for e in self.events]


async def emit(
    bus: EventBus,
    event_type: str,
    source: str,
    correlation_id: str | None = None,
    **payload: Any,
) -> None:
    """Build an ``Event`` and publish it on ``bus``."""
    await bus.publish(
        Event(
            event_type=event_type,
            source=source,
            payload=payload,
            correlation_id=correlation_id,
        )
    )


__all__ = [
    "Event",
    "EventBus",
    "EventHandler",
    "NullEventBus",
    "InMemoryEventBus",
    "RecordingEventBus",
    "emit",
]
