# File: tests/integration/test_api.py
"""
End-to-end tests of the REST API over an in-memory SQLite database.
"""

import unittest

from fastapi.testclient import TestClient

from mallpark.application.parking_service import ParkingService
from mallpark.application.reporting_service import ReportingService
from mallpark.infrastructure.config import Settings
from mallpark.infrastructure.messaging import ALL_EVENTS, LoggingEventHandler, RedisEventPublisher
from mallpark.infrastructure.repositories import RepositoryFactory
from mallpark.main import build_application, build_event_bus
from mallpark.presentation.api import create_app


class APITestBase(unittest.TestCase):

    def setUp(self):
        uow_factory = RepositoryFactory.create_sqlalchemy_uow_factory("sqlite://")
        parking_service = ParkingService(uow_factory)
        parking_service.ensure_defaults()

        app = create_app(parking_service, ReportingService(uow_factory))
        self.client = TestClient(app)

    def check_in(self, **overrides):
        body = {
            "numberPlate": "KA01AB1234",
            "vehicleType": "Car",
            "billingType": "Hourly",
            "entryTime": "2024-03-01T09:00:00",
        }
        body.update(overrides)
        return self.client.post("/api/sessions/checkin", json=body)


class TestSessionEndpoints(APITestBase):

    def test_check_in(self):
        response = self.check_in()

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data["assignedSlot"]["slotNumber"], "A1-01")
        self.assertEqual(data["session"]["vehicleNumberPlate"], "KA01AB1234")
        self.assertEqual(data["session"]["status"], "Active")
        self.assertEqual(data["billingAmount"], 0.0)
        self.assertIsNone(data["warning"])

    def test_check_in_free_text_plate(self):
        response = self.check_in(numberPlate="MH.12/AB")

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["session"]["vehicleNumberPlate"], "MH.12/AB")

        found = self.client.get("/api/sessions/search", params={"numberPlate": "mh.12/ab"})

        self.assertEqual(found.status_code, 200)
        self.assertEqual(found.json()["vehicleNumberPlate"], "MH.12/AB")

    def test_duplicate_check_in(self):
        self.check_in()

        response = self.check_in()

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "DuplicateActiveSession")

    def test_unknown_manual_slot(self):
        response = self.check_in(manualSlotId="Z9-99")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["code"], "NotFound")

    def test_charger_unavailable(self):
        response = self.check_in(vehicleType="EV", manualSlotId="E1-01")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "ChargerUnavailable")

    def test_invalid_body(self):
        response = self.check_in(vehicleType="Truck")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "ValidationError")

    def test_check_out(self):
        session_id = self.check_in().json()["session"]["id"]

        response = self.client.put(
            f"/api/sessions/checkout/{session_id}",
            json={"exitTime": "2024-03-01T10:01:00"}
        )

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["finalAmount"], 100.0)
        self.assertEqual(data["durationMinutes"], 61)
        self.assertEqual(data["session"]["status"], "Completed")

    def test_check_out_twice(self):
        session_id = self.check_in().json()["session"]["id"]
        self.client.put(f"/api/sessions/checkout/{session_id}", json={"exitTime": "2024-03-01T10:00:00"})

        response = self.client.put(f"/api/sessions/checkout/{session_id}", json={"exitTime": "2024-03-01T11:00:00"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "SessionClosed")

    def test_check_out_before_entry(self):
        session_id = self.check_in().json()["session"]["id"]

        response = self.client.put(f"/api/sessions/checkout/{session_id}", json={"exitTime": "2024-03-01T08:00:00"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "InvalidInterval")

    def test_check_out_unknown_session(self):
        response = self.client.put("/api/sessions/checkout/missing")

        self.assertEqual(response.status_code, 404)

    def test_search(self):
        self.check_in()

        found = self.client.get("/api/sessions/search", params={"numberPlate": "ka01ab1234"})
        missing = self.client.get("/api/sessions/search", params={"numberPlate": "NOPE1"})

        self.assertEqual(found.status_code, 200)
        self.assertEqual(found.json()["slot"]["slotNumber"], "A1-01")
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json()["msg"], "No active session found for this number plate.")


class TestSlotEndpoints(APITestBase):

    def test_list_slots(self):
        response = self.client.get("/api/slots", params={"slotType": "EV"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            [(slot["slotNumber"], slot["isChargerAvailable"]) for slot in response.json()],
            [("B1-01", True), ("E1-01", False)]
        )

    def test_dashboard_counts(self):
        self.check_in()

        response = self.client.get("/api/slots/dashboard-counts")

        self.assertEqual(response.json(), {
            "totalSlots": 14,
            "freeSlots": 13,
            "occupiedSlots": 1,
            "maintenanceSlots": 0,
        })

    def test_status_toggle(self):
        response = self.client.put("/api/slots/A1-02/status", json={"status": "Maintenance"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "Maintenance")

    def test_status_toggle_on_occupied_slot(self):
        self.check_in()

        response = self.client.put("/api/slots/A1-01/status", json={"status": "Maintenance"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "InvalidStatusTransition")

    def test_seed(self):
        response = self.client.post("/api/slots/seed")

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["count"], 14)

    def test_seed_refused_while_parked(self):
        self.check_in()

        response = self.client.post("/api/slots/seed")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "NotAvailable")


class TestReportAndPricingEndpoints(APITestBase):

    def test_reports(self):
        session_id = self.check_in().json()["session"]["id"]
        self.client.put(f"/api/sessions/checkout/{session_id}", json={"exitTime": "2024-03-01T09:30:00"})

        summary = self.client.get("/api/reports/revenue/summary").json()
        daily = self.client.get("/api/reports/revenue/daily", params={"date": "2024-03-01"}).json()
        monthly = self.client.get("/api/reports/revenue/monthly", params={"year": 2024, "month": 3}).json()
        usage = self.client.get("/api/reports/utilization/slot-usage").json()

        self.assertEqual(summary["totalRevenue"], 50.0)
        self.assertEqual(daily[9]["hourlyRevenue"], 50.0)
        self.assertEqual(monthly[0]["totalRevenuePerDay"], 50.0)
        self.assertEqual(usage[0]["slotNumber"], "A1-01")
        self.assertEqual(usage[0]["totalOccupationMinutes"], 30)

    def test_daily_report_requires_date(self):
        response = self.client.get("/api/reports/revenue/daily")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "ValidationError")

    def test_pricing(self):
        response = self.client.get("/api/pricing")

        self.assertEqual(response.json()["dayPassRate"], 150.0)
        self.assertEqual(response.json()["maxHourlyCap"], 200.0)

        updated = self.client.put("/api/pricing/day-pass", json={"dayPassRate": 175})
        self.assertEqual(updated.json()["dayPassRate"], 175.0)

        rejected = self.client.put("/api/pricing/hourly", json={"hourlyRates": [], "maxHourlyCap": 100})
        self.assertEqual(rejected.status_code, 400)


class TestServiceEndpoints(APITestBase):

    def test_root(self):
        response = self.client.get("/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.text, "Mall Parking Management API is running")

    def test_unknown_route(self):
        self.assertEqual(self.client.get("/health").status_code, 404)


class TestApplicationWiring(unittest.TestCase):

    def test_build_application_seeds_defaults(self):
        settings = Settings(database_url="sqlite://", seed_on_startup=True)

        client = TestClient(build_application(settings))

        self.assertEqual(client.get("/api/slots/dashboard-counts").json()["totalSlots"], 14)
        self.assertEqual(client.get("/api/pricing").json()["dayPassRate"], 150.0)

    def test_event_bus_handlers(self):
        local_bus = build_event_bus(Settings())
        redis_bus = build_event_bus(Settings(redis_url="redis://localhost:6379/0"))

        self.assertEqual([type(h) for h in local_bus._subscribers[ALL_EVENTS]], [LoggingEventHandler])
        self.assertEqual(
            [type(h) for h in redis_bus._subscribers[ALL_EVENTS]],
            [LoggingEventHandler, RedisEventPublisher]
        )


if __name__ == "__main__":
    unittest.main()
