# File: tests/unit/test_messaging.py
"""
Unit tests for the event bus and the Redis publisher.
"""

import json
import unittest
from unittest.mock import Mock

import redis

from mallpark.domain.models import SlotStatusChangedEvent, VehicleCheckedInEvent
from mallpark.infrastructure.messaging import (
    ALL_EVENTS, EventBus, EventHandler, EventType, RedisEventPublisher
)


class FailingHandler(EventHandler):
    def handle(self, event):
        raise RuntimeError("handler down")


class TestEventBus(unittest.TestCase):

    def setUp(self):
        self.bus = EventBus()
        self.event = VehicleCheckedInEvent(session_id="s-1", license_plate="KA01", slot_number="A1-01")

    def test_handlers_receive_matching_events(self):
        handler = Mock(spec=EventHandler)
        handler.can_handle.return_value = True
        self.bus.subscribe(EventType.VEHICLE_CHECKED_IN, handler)

        self.bus.publish(self.event)
        self.bus.publish(SlotStatusChangedEvent(slot_number="A1-01"))

        handler.handle.assert_called_once_with(self.event)

    def test_wildcard_subscription(self):
        handler = Mock(spec=EventHandler)
        handler.can_handle.return_value = True
        self.bus.subscribe(ALL_EVENTS, handler)

        self.bus.publish_all([self.event, SlotStatusChangedEvent(slot_number="A1-01")])

        self.assertEqual(handler.handle.call_count, 2)

    def test_failing_handler_does_not_stop_others(self):
        handler = Mock(spec=EventHandler)
        handler.can_handle.return_value = True
        self.bus.subscribe(ALL_EVENTS, FailingHandler())
        self.bus.subscribe(ALL_EVENTS, handler)

        self.bus.publish(self.event)

        handler.handle.assert_called_once_with(self.event)

    def test_unsubscribe(self):
        handler = Mock(spec=EventHandler)
        self.bus.subscribe("vehicle_checked_in", handler)
        self.bus.unsubscribe("vehicle_checked_in", handler)

        self.bus.publish(self.event)

        handler.handle.assert_not_called()


class TestRedisEventPublisher(unittest.TestCase):

    def setUp(self):
        self.client = Mock()
        self.publisher = RedisEventPublisher(channel="test.events", client=self.client)
        self.event = VehicleCheckedInEvent(session_id="s-1", license_plate="KA01", slot_number="A1-01")

    def test_publishes_json_to_channel(self):
        self.client.publish.return_value = 1

        self.assertTrue(self.publisher.publish(self.event))

        channel, body = self.client.publish.call_args[0]
        self.assertEqual(channel, "test.events")
        message = json.loads(body)
        self.assertEqual(message["event_type"], "vehicle_checked_in")
        self.assertEqual(message["data"]["license_plate"], "KA01")

    def test_redis_errors_are_contained(self):
        self.client.publish.side_effect = redis.ConnectionError("down")

        self.assertFalse(self.publisher.publish(self.event))

    def test_used_as_bus_handler(self):
        bus = EventBus()
        bus.subscribe(ALL_EVENTS, self.publisher)

        bus.publish(self.event)

        self.client.publish.assert_called_once()


if __name__ == '__main__':
    unittest.main()
