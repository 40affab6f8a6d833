# File: src/mallpark/application/reporting_service.py
"""
Reporting Application Service

Revenue and utilization reports over completed parking sessions. Sessions
are bucketed by their UTC timestamps: revenue by exit time, peak hours by
entry time.
"""

from calendar import monthrange
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Tuple
import logging

from ..domain.models import BillingType, ParkingSession, utc_now
from ..infrastructure.repositories import UnitOfWorkFactory
from .dtos import (
    DailyRevenueDTO, HourlyRevenueDTO, PeakHourDTO, RevenueSummaryDTO,
    SlotUsageDTO
)


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """First and last instant of a UTC calendar day"""
    return datetime.combine(day, time.min), datetime.combine(day, time.max)


def occupied_minutes(session: ParkingSession) -> int:
    return session.time_range.billable_minutes


class RevenueBucket:
    """Running revenue split by billing type"""

    def __init__(self):
        self.total = Decimal('0')
        self.hourly = Decimal('0')
        self.day_pass = Decimal('0')
        self.hourly_count = 0
        self.day_pass_count = 0

    def add(self, session: ParkingSession) -> None:
        amount = session.billing_amount.amount
        self.total += amount
        if session.billing_type == BillingType.HOURLY:
            self.hourly += amount
            self.hourly_count += 1
        else:
            self.day_pass += amount
            self.day_pass_count += 1


class ReportingService:
    """Read-only reports for the management dashboard"""

    def __init__(self, uow_factory: UnitOfWorkFactory, clock: Callable[[], datetime] = utc_now):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.uow_factory = uow_factory
        self.clock = clock

    def _completed(self, **bounds) -> List[ParkingSession]:
        with self.uow_factory() as uow:
            return uow.sessions.find_completed(**bounds)

    @staticmethod
    def _bucket(sessions: Iterable[ParkingSession], key: Callable[[ParkingSession], int]) -> Dict[int, RevenueBucket]:
        buckets: Dict[int, RevenueBucket] = defaultdict(RevenueBucket)
        for session in sessions:
            buckets[key(session)].add(session)
        return buckets

    def revenue_summary(self) -> RevenueSummaryDTO:
        """All-time revenue of completed sessions"""
        bucket = RevenueBucket()
        for session in self._completed():
            bucket.add(session)

        return RevenueSummaryDTO(
            total_revenue=float(bucket.total),
            hourly_revenue=float(bucket.hourly),
            day_pass_revenue=float(bucket.day_pass),
            total_sessions=bucket.hourly_count + bucket.day_pass_count,
            hourly_sessions=bucket.hourly_count,
            day_pass_sessions=bucket.day_pass_count
        )

    def daily_revenue(self, day: date) -> List[HourlyRevenueDTO]:
        """24 rows, one per exit hour of the given day"""
        start, end = day_bounds(day)
        sessions = self._completed(exit_from=start, exit_to=end)
        buckets = self._bucket(sessions, lambda session: session.exit_time.hour)

        self.logger.debug(f"Daily revenue for {day}: {len(sessions)} sessions")

        rows = []
        for hour in range(24):
            bucket = buckets.get(hour)
            rows.append(HourlyRevenueDTO(
                hour=hour,
                total_revenue_per_hour=float(bucket.total) if bucket else 0.0,
                hourly_revenue=float(bucket.hourly) if bucket else 0.0,
                day_pass_revenue=float(bucket.day_pass) if bucket else 0.0
            ))
        return rows

    def monthly_revenue(self, year: int, month: int) -> List[DailyRevenueDTO]:
        """
        One row per calendar day of the month, by exit day
        Raises: ValueError for a month outside 1-12
        """
        if not 1 <= month <= 12:
            raise ValueError(f"Month must be between 1 and 12, got: {month}")

        last_day = monthrange(year, month)[1]
        start = datetime(year, month, 1)
        end = datetime.combine(date(year, month, last_day), time.max)

        buckets = self._bucket(
            self._completed(exit_from=start, exit_to=end),
            lambda session: session.exit_time.day
        )

        rows = []
        for day in range(1, last_day + 1):
            bucket = buckets.get(day)
            rows.append(DailyRevenueDTO(
                day=day,
                total_revenue_per_day=float(bucket.total) if bucket else 0.0,
                hourly_revenue=float(bucket.hourly) if bucket else 0.0,
                day_pass_revenue=float(bucket.day_pass) if bucket else 0.0
            ))
        return rows

    def peak_hours(self, day: Optional[date] = None) -> List[PeakHourDTO]:
        """
        Entries and total stay minutes per entry hour
        With a day, only sessions overlapping that day are counted.
        """
        if day is not None:
            start, end = day_bounds(day)
            sessions = self._completed(exit_from=start, entry_to=end)
        else:
            sessions = self._completed()

        rows = [PeakHourDTO(hour=hour) for hour in range(24)]
        for session in sessions:
            row = rows[session.entry_time.hour]
            row.entry_count += 1
            row.total_duration_minutes += occupied_minutes(session)
        return rows

    def slot_utilization(self, period_days: Optional[int] = None) -> List[SlotUsageDTO]:
        """
        Occupied minutes and session count per slot, least used first
        With period_days, only sessions that entered in the last N days.
        """
        bounds = {}
        if period_days is not None:
            if period_days < 0:
                raise ValueError(f"periodDays cannot be negative: {period_days}")
            bounds["entry_from"] = self.clock() - timedelta(days=period_days)

        usage: Dict[str, List[int]] = defaultdict(lambda: [0, 0])
        rows = []
        with self.uow_factory() as uow:
            for session in uow.sessions.find_completed(**bounds):
                usage[session.slot_id][0] += occupied_minutes(session)
                usage[session.slot_id][1] += 1

            for slot_id, (minutes, count) in usage.items():
                slot = uow.slots.get(slot_id)
                if slot is None:
                    continue
                rows.append(SlotUsageDTO(
                    slot_id=slot.id,
                    slot_number=slot.number,
                    slot_type=slot.slot_type,
                    total_occupation_minutes=minutes,
                    session_count=count
                ))

        return sorted(rows, key=lambda row: (row.total_occupation_minutes, row.session_count))
