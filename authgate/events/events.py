"""
Event publishing for authgate.

Storage providers publish typed events on an in-process bus so external
subscribers can react to changes in the principal directory. Delivery is
fire-and-forget: a failing subscriber is logged and never affects the
publisher.
"""

import inspect
import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Dict, Any, List, Callable, Optional, Union, Awaitable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Typed event types."""

    # Principal directory events
    PRINCIPALS_CHANGED = "principals_changed"

    # Provider lifecycle events
    PROVIDER_REFRESHED = "provider_refreshed"
    REFRESH_FAILED = "refresh_failed"


class EventAction(Enum):
    """Actions that can be performed within events."""

    CREATE = "create"
    DELETE = "delete"
    RELOAD = "reload"


@dataclass
class Event:
    """
    Unified event structure.

    Attributes:
        id: Unique event identifier
        type: Event type from EventType enum
        action: Action being performed
        subject: Principal or provider the event is about
        timestamp: When the event occurred
        metadata: Additional event-specific data
        source: Component that generated the event
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    type: EventType = EventType.PRINCIPALS_CHANGED
    action: EventAction = EventAction.RELOAD
    subject: str = ""
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)
    source: str = "authgate"

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary representation."""
        return {
            "id": self.id,
            "type": self.type.value,
            "action": self.action.value,
            "subject": self.subject,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
            "source": self.source,
        }


class EventHandler:
    """Base class for object-style subscribers."""

    async def handle(self, event: Event) -> None:
        """Handle an event. Override in subclasses."""
        pass


Subscriber = Callable[[Event], Union[None, Awaitable[None]]]


class EventBus:
    """
    In-process publish/subscribe for authgate events.

    Subscribers are called in subscription order, those registered for
    every type after those registered for the event's own type. A
    subscriber may be an ``EventHandler`` or a plain or coroutine function.
    """

    def __init__(self):
        self._subscribers: Dict[Optional[EventType], List[Any]] = {}

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Subscribe an ``EventHandler`` to one event type."""
        self._subscribers.setdefault(event_type, []).append(handler)

    def subscribe_function(self, event_type: EventType, callback: Subscriber) -> None:
        """Subscribe a plain or coroutine function to one event type."""
        self._subscribers.setdefault(event_type, []).append(callback)

    def subscribe_all(self, callback: Union[EventHandler, Subscriber]) -> None:
        """Receive every event regardless of type; subscribing twice has no effect."""
        subscribers = self._subscribers.setdefault(None, [])
        if callback not in subscribers:
            subscribers.append(callback)

    def unsubscribe(self, event_type: Optional[EventType], subscriber: Any) -> bool:
        """Remove a subscriber; returns False if it was not subscribed."""
        subscribers = self._subscribers.get(event_type, [])
        if subscriber not in subscribers:
            return False
        subscribers.remove(subscriber)
        return True

    async def publish(self, event: Event) -> None:
        """Deliver an event; subscriber failures are logged, never raised."""
        targets = self._subscribers.get(event.type, []) + self._subscribers.get(None, [])
        for subscriber in targets:
            try:
                if isinstance(subscriber, EventHandler):
                    await subscriber.handle(event)
                    continue
                result = subscriber(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    f"Event subscriber {subscriber!r} failed on {event.type.value}: {e}"
                )


def create_principals_event(action: EventAction, source: str,
                            users: Optional[List[str]] = None,
                            metadata: Optional[Dict[str, Any]] = None) -> Event:
    """Create a principals-changed event naming the affected users."""
    data = dict(metadata or {})
    if users is not None:
        data["users"] = sorted(users)
    return Event(
        type=EventType.PRINCIPALS_CHANGED,
        action=action,
        subject=",".join(sorted(users or [])),
        metadata=data,
        source=source,
    )
