"""Synchronous event bus connecting the pipeline components.

Why This Module Exists
----------------------
The record store, search engine, sorter, paginator and selector must react
to each other's changes without importing each other. Every component
publishes on a dot-separated channel (``records.added``,
``search.results_changed``, ``sort.view_changed`` ...) and subscribes to
the channels it derives from.

Delivery is synchronous and in subscription order: ``publish`` returns
only after every matching handler has run. A handler that mutates the
pipeline recurses synchronously; there is no reentrancy guard.

Usage::

    from recordview.core.events import EventBus

    bus = EventBus()

    def on_view(event):
        print(len(event.payload["view"]))

    sub_id = bus.subscribe("sort.*", on_view)
    bus.emit("sort.view_changed", "sorter", view=[...])
    bus.unsubscribe(sub_id)
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from recordview.core.logging import get_logger

__all__ = ["Event", "EventBus", "EventHandler", "Subscription"]

logger = get_logger(__name__)


# ── Event Model ──────────────────────────────────────────────────────────


@dataclass
class Event:
    """Notification payload.

    Attributes:
        event_type: Dot-separated type (e.g., ``records.added``, ``sort.view_changed``)
        source: Component that published the event
        payload: Event-specific data
        timestamp: When the event occurred (UTC)
        event_id: Unique event identifier
    """

    event_type: str
    source: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def matches(self, pattern: str) -> bool:
        """Check if event type matches a pattern (supports wildcards).

        Examples:
            - ``records.*`` matches ``records.added``, ``records.removed``
            - ``*`` matches everything
            - ``sort.view_changed`` matches exactly ``sort.view_changed``
        """
        if pattern == "*":
            return True
        if pattern.endswith(".*"):
            prefix = pattern[:-2]
            return self.event_type.startswith(prefix + ".")
        return self.event_type == pattern


# ── Type Aliases ─────────────────────────────────────────────────────────

EventHandler = Callable[[Event], None]


@dataclass
class Subscription:
    """Internal subscription record."""

    id: str
    pattern: str
    handler: EventHandler


# ── EventBus ─────────────────────────────────────────────────────────────


class EventBus:
    """In-process publish/subscribe with synchronous delivery.

    Handler exceptions are logged and then propagated to the publisher,
    so a failing subscriber aborts the operation that triggered it.

    Example::

        bus = EventBus()
        seen = []
        bus.subscribe("*", seen.append)
        bus.emit("records.added", "store", added=[...])
        assert seen[0].event_type == "records.added"
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, Subscription] = {}
        self._closed = False

    def publish(self, event: Event) -> None:
        """Deliver an event to every matching subscriber, in order."""
        if self._closed:
            return

        # Snapshot so handlers may (un)subscribe while we deliver
        targets = [sub for sub in self._subscriptions.values() if event.matches(sub.pattern)]
        for sub in targets:
            try:
                sub.handler(event)
            except Exception as e:
                logger.warning(
                    "event_handler_error",
                    subscription_id=sub.id,
                    event_type=event.event_type,
                    error=str(e),
                )
                raise

    def emit(self, event_type: str, source: str, **payload: Any) -> Event:
        """Build and publish an event in one call."""
        event = Event(event_type=event_type, source=source, payload=payload)
        self.publish(event)
        return event

    def subscribe(self, event_type: str, handler: EventHandler) -> str:
        """Subscribe to events matching a pattern.

        Args:
            event_type: Pattern to match (supports ``*`` and ``type.*``)
            handler: Callback for matching events

        Returns:
            Subscription ID
        """
        sub_id = f"sub_{uuid.uuid4().hex[:12]}"
        self._subscriptions[sub_id] = Subscription(id=sub_id, pattern=event_type, handler=handler)
        return sub_id

    def unsubscribe(self, subscription_id: str) -> None:
        """Remove a subscription."""
        self._subscriptions.pop(subscription_id, None)

    def close(self) -> None:
        """Mark bus as closed and clear subscriptions."""
        self._closed = True
        self._subscriptions.clear()

    @property
    def subscription_count(self) -> int:
        """Number of active subscriptions."""
        return len(self._subscriptions)
