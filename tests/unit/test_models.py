# File: tests/unit/test_models.py
"""
Domain Layer Unit Tests

Tests for value objects and entities.
"""

import unittest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from mallpark.domain.exceptions import (
    InvalidIntervalError, InvalidStatusTransitionError, MissingPricingConfigError,
    NotAvailableError, SessionClosedError
)
from mallpark.domain.models import (
    BillingType, LicensePlate, Money, ParkingSession, ParkingSlot,
    PricingConfig, SessionStatus, SlotStatus, SlotType, TimeRange,
    VehicleCheckedInEvent, VehicleType, as_naive_utc
)


class TestLicensePlate(unittest.TestCase):

    def test_normalised_to_upper_case(self):
        self.assertEqual(LicensePlate("  ka-01 ab 1234 ").value, "KA-01 AB 1234")

    def test_invalid_plates(self):
        for value in ("", "   ", "X" * 21):
            with self.subTest(value=value):
                with self.assertRaises(ValueError):
                    LicensePlate(value)

    def test_free_text_characters_kept(self):
        self.assertEqual(LicensePlate(" mh.12/ab ").value, "MH.12/AB")
        self.assertEqual(LicensePlate("AB#123").value, "AB#123")


class TestMoney(unittest.TestCase):

    def test_negative_amount_rejected(self):
        with self.assertRaises(ValueError):
            Money(Decimal('-1'))

    def test_min_and_add(self):
        a, b = Money(Decimal('150')), Money(Decimal('200'))

        self.assertEqual(a.min(b), a)
        self.assertEqual(b.min(a), a)
        self.assertEqual((a + b).amount, Decimal('350'))

    def test_currency_mismatch(self):
        with self.assertRaises(ValueError):
            Money(Decimal('1'), "USD") + Money(Decimal('1'), "EUR")


class TestTimeRange(unittest.TestCase):

    def setUp(self):
        self.start = datetime(2024, 3, 1, 9, 0)

    def test_billable_minutes_round_up(self):
        cases = [
            (timedelta(0), 0),
            (timedelta(seconds=1), 1),
            (timedelta(minutes=59), 59),
            (timedelta(minutes=59, seconds=30), 60),
            (timedelta(days=1), 1440),
        ]
        for duration, expected in cases:
            with self.subTest(duration=duration):
                self.assertEqual(TimeRange(self.start, self.start + duration).billable_minutes, expected)

    def test_billable_hours(self):
        time_range = TimeRange(self.start, self.start + timedelta(minutes=90))
        self.assertEqual(time_range.billable_hours, Decimal('1.5'))

    def test_reversed_interval(self):
        with self.assertRaises(InvalidIntervalError):
            TimeRange(self.start, self.start - timedelta(seconds=1))


class TestParkingSlot(unittest.TestCase):

    def test_ev_slot_defaults_to_charger(self):
        self.assertTrue(ParkingSlot("B1-01", SlotType.EV).has_charger)
        self.assertFalse(ParkingSlot("E1-01", SlotType.EV, has_charger=False).has_charger)

    def test_non_ev_slot_never_has_charger(self):
        self.assertFalse(ParkingSlot("A1-01", SlotType.REGULAR, has_charger=True).has_charger)

    def test_occupied_slot_requires_session(self):
        with self.assertRaises(ValueError):
            ParkingSlot("A1-01", SlotType.REGULAR, status=SlotStatus.OCCUPIED)

    def test_occupy_and_release(self):
        slot = ParkingSlot("A1-01", SlotType.REGULAR)

        slot.occupy("session-1")
        self.assertEqual(slot.status, SlotStatus.OCCUPIED)
        self.assertEqual(slot.current_session_id, "session-1")

        with self.assertRaises(NotAvailableError):
            slot.occupy("session-2")

        slot.release()
        self.assertTrue(slot.is_available)
        self.assertIsNone(slot.current_session_id)

    def test_operator_toggle(self):
        slot = ParkingSlot("A1-01", SlotType.REGULAR)

        slot.change_status(SlotStatus.MAINTENANCE)
        self.assertEqual(slot.status, SlotStatus.MAINTENANCE)

        slot.change_status(SlotStatus.AVAILABLE)
        self.assertEqual(slot.status, SlotStatus.AVAILABLE)

    def test_operator_cannot_set_occupied(self):
        slot = ParkingSlot("A1-01", SlotType.REGULAR)

        with self.assertRaises(InvalidStatusTransitionError):
            slot.change_status(SlotStatus.OCCUPIED)

    def test_occupied_slot_cannot_go_to_maintenance(self):
        slot = ParkingSlot("A1-01", SlotType.REGULAR)
        slot.occupy("session-1")

        with self.assertRaises(InvalidStatusTransitionError):
            slot.change_status(SlotStatus.MAINTENANCE)

    def test_to_dict_uses_api_names(self):
        data = ParkingSlot("B1-01", SlotType.EV).to_dict()

        self.assertEqual(data["slotNumber"], "B1-01")
        self.assertEqual(data["slotType"], "EV")
        self.assertTrue(data["isChargerAvailable"])


class TestParkingSession(unittest.TestCase):

    def setUp(self):
        self.entry = datetime(2024, 3, 1, 9, 0)
        self.session = ParkingSession(
            license_plate=LicensePlate("KA01AB1234"),
            vehicle_type=VehicleType.CAR,
            slot_id="slot-1",
            billing_type=BillingType.HOURLY,
            entry_time=self.entry
        )

    def test_new_session_is_active_with_zero_amount(self):
        self.assertTrue(self.session.is_active)
        self.assertEqual(self.session.billing_amount.amount, Decimal('0'))
        self.assertIsNone(self.session.time_range)

    def test_complete(self):
        self.session.complete(self.entry + timedelta(minutes=61), Money(Decimal('100')))

        self.assertEqual(self.session.status, SessionStatus.COMPLETED)
        self.assertEqual(self.session.billing_amount.amount, Decimal('100'))
        self.assertEqual(self.session.time_range.billable_minutes, 61)

    def test_complete_twice(self):
        self.session.complete(self.entry + timedelta(minutes=5), Money(Decimal('50')))

        with self.assertRaises(SessionClosedError):
            self.session.complete(self.entry + timedelta(minutes=10), Money(Decimal('50')))

    def test_complete_before_entry(self):
        with self.assertRaises(InvalidIntervalError):
            self.session.complete(self.entry - timedelta(minutes=1), Money(Decimal('50')))

        self.assertTrue(self.session.is_active)

    def test_completed_session_needs_exit_time(self):
        with self.assertRaises(ValueError):
            ParkingSession(
                license_plate=LicensePlate("KA01AB1234"),
                vehicle_type=VehicleType.CAR,
                slot_id="slot-1",
                billing_type=BillingType.HOURLY,
                status=SessionStatus.COMPLETED
            )


class TestPricingConfig(unittest.TestCase):

    def test_missing_records(self):
        config = PricingConfig()

        with self.assertRaises(MissingPricingConfigError):
            config.require_hourly()
        with self.assertRaises(MissingPricingConfigError):
            config.require_day_pass()


class TestDomainEvents(unittest.TestCase):

    def test_event_serialisation(self):
        event = VehicleCheckedInEvent(session_id="s-1", license_plate="KA01", slot_number="A1-01")

        data = event.to_dict()

        self.assertEqual(data["event_type"], "vehicle_checked_in")
        self.assertEqual(data["data"]["slot_number"], "A1-01")
        self.assertTrue(data["event_id"])


class TestTimestamps(unittest.TestCase):

    def test_aware_datetimes_converted_to_naive_utc(self):
        aware = datetime(2024, 3, 1, 14, 30, tzinfo=timezone(timedelta(hours=5, minutes=30)))

        self.assertEqual(as_naive_utc(aware), datetime(2024, 3, 1, 9, 0))

    def test_naive_datetimes_kept(self):
        naive = datetime(2024, 3, 1, 9, 0)
        self.assertIs(as_naive_utc(naive), naive)


if __name__ == '__main__':
    unittest.main()
