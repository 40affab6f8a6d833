# File: src/mallpark/infrastructure/messaging.py
"""
Messaging Infrastructure for the Mall Parking System

1. Event Bus - in-process publish/subscribe for domain events
2. Redis publisher - forwards events to a Redis Pub/Sub channel so other
   processes (displays, billing exports) can follow activity

Events are published after the unit of work has committed. A failing
handler is logged and never undoes or fails the operation that raised
the event.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, List, Optional
import json
import logging

import redis

from ..domain.models import DomainEvent


class EventType(str, Enum):
    """Event types raised by the parking services"""
    VEHICLE_CHECKED_IN = "vehicle_checked_in"
    VEHICLE_CHECKED_OUT = "vehicle_checked_out"
    SLOT_STATUS_CHANGED = "slot_status_changed"
    FALLBACK_ASSIGNMENT = "fallback_assignment"
    INVENTORY_SEEDED = "inventory_seeded"
    PRICING_UPDATED = "pricing_updated"


ALL_EVENTS = "*"


# ============================================================================
# EVENT HANDLERS
# ============================================================================

class EventHandler(ABC):
    """Abstract base class for event handlers"""

    @abstractmethod
    def handle(self, event: DomainEvent) -> None:
        """Handle a domain event"""
        pass

    def can_handle(self, event: DomainEvent) -> bool:
        """Check if this handler can handle the event"""
        return True


class LoggingEventHandler(EventHandler):
    """Writes every event to the audit logger"""

    def __init__(self, logger_name: str = "mallpark.audit"):
        self._logger = logging.getLogger(logger_name)

    def handle(self, event: DomainEvent) -> None:
        self._logger.info(f"{event.event_type}: {json.dumps(event.payload(), default=str)}")


# ============================================================================
# EVENT BUS (In-memory)
# ============================================================================

class EventBus:
    """
    In-memory event bus for intra-process event publishing

    Handlers subscribe to one event type or to ALL_EVENTS.
    """

    def __init__(self):
        self._subscribers: Dict[str, List[EventHandler]] = {}
        self._logger = logging.getLogger(self.__class__.__name__)

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """Subscribe to events of a specific type"""
        key = event_type.value if isinstance(event_type, EventType) else event_type
        if key not in self._subscribers:
            self._subscribers[key] = []

        if handler not in self._subscribers[key]:
            self._subscribers[key].append(handler)
            self._logger.debug(f"Subscribed {handler.__class__.__name__} to {key}")

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        """Unsubscribe handler from events"""
        key = event_type.value if isinstance(event_type, EventType) else event_type
        if key in self._subscribers:
            try:
                self._subscribers[key].remove(handler)
                self._logger.debug(f"Unsubscribed {handler.__class__.__name__} from {key}")
            except ValueError:
                pass

    def publish(self, event: DomainEvent) -> None:
        """Publish an event to all subscribers"""
        self._logger.debug(f"Publishing event: {event.event_type} (ID: {event.event_id})")

        handlers = self._subscribers.get(event.event_type, []) + self._subscribers.get(ALL_EVENTS, [])
        for handler in handlers:
            if handler.can_handle(event):
                try:
                    handler.handle(event)
                    self._logger.debug(f"Event handled by {handler.__class__.__name__}")
                except Exception as e:
                    self._logger.error(
                        f"Error handling event {event.event_type} with {handler.__class__.__name__}: {e}"
                    )

    def publish_all(self, events: List[DomainEvent]) -> None:
        for event in events:
            self.publish(event)


# ============================================================================
# REDIS PUBLISHER
# ============================================================================

class RedisEventPublisher(EventHandler):
    """Forwards domain events to a Redis Pub/Sub channel as JSON"""

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        channel: str = "mallpark.events",
        client: Optional[redis.Redis] = None,
        **kwargs
    ):
        self.redis_url = redis_url
        self.channel = channel
        self._logger = logging.getLogger(self.__class__.__name__)

        # Redis connection
        self.redis_client = client if client is not None else redis.Redis.from_url(redis_url, **kwargs)

    def handle(self, event: DomainEvent) -> None:
        self.publish(event)

    def publish(self, event: DomainEvent) -> bool:
        """Publish an event; returns False when Redis is unreachable"""
        try:
            message_json = json.dumps(event.to_dict(), default=str)
            receivers = self.redis_client.publish(self.channel, message_json)
            self._logger.debug(f"Published {event.event_type} to {self.channel} ({receivers} receivers)")
            return True
        except redis.RedisError as e:
            self._logger.error(f"Error publishing to Redis: {e}")
            return False
