"""
Event system for authgate.
"""

from .events import (
    Event,
    EventType,
    EventAction,
    EventHandler,
    EventBus,
    create_principals_event,
)

__all__ = [
    "Event",
    "EventType",
    "EventAction",
    "EventHandler",
    "EventBus",
    "create_principals_event",
]
