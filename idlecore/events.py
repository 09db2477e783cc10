"""Synchronous domain event bus.

A bus is an ordinary object created by whoever composes the session and
handed to each publisher and subscriber. ``publish`` returns only after
every subscriber for the event's type has run.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable

from idlecore._types import normalize_id

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]


@dataclass(frozen=True)
class IncrementBalance:
    """Ask the ledger to add *amount* of a resource through its gain path."""

    resource_id: str
    amount: float

    def __post_init__(self) -> None:
        rid = normalize_id(self.resource_id)
        if not rid:
            raise ValueError("IncrementBalance requires a resource id")
        object.__setattr__(self, "resource_id", rid)


@dataclass(frozen=True)
class MilestoneFired:
    """A node instance reached a milestone level for the first time."""

    milestone_id: str
    node_id: str = ""
    zone_id: str = ""
    at_level: int = 0


class EventBus:
    """Type-keyed publish/subscribe with synchronous delivery."""

    def __init__(self) -> None:
        self._handlers: dict[type, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: Handler) -> Callable[[], None]:
        """Register *handler* for *event_type*. Returns an unsubscribe callable."""
        self._handlers[event_type].append(handler)

        def _unsubscribe() -> None:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

        return _unsubscribe

    def publish(self, event: Any) -> None:
        # Copy so handlers may unsubscribe while being notified
        handlers = list(self._handlers.get(type(event), ()))
        logger.debug("Publishing %r to %d handler(s)", event, len(handlers))
        for handler in handlers:
            handler(event)

    def handler_count(self, event_type: type) -> int:
        return len(self._handlers.get(event_type, ()))
