# File: src/mallpark/infrastructure/factories.py
"""
Factory Pattern Implementation for the Mall Parking System

1. ParkingSlotFactory - builds slots, including the default mall inventory
2. ParkingSessionFactory - builds a new Active session at check-in
3. PricingFactory - builds pricing records and the default tariff
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Any, Generic, List, Optional, Sequence, Tuple, TypeVar, Union

from ..domain.models import (
    BillingType, DayPassPricing, HourlyPricing, LicensePlate, Money,
    ParkingSession, ParkingSlot, PricingConfig, SlotStatus, SlotType,
    VehicleType, utc_now
)
from ..domain.strategies import BillingCalculator

T = TypeVar('T')


# Default mall layout: (slot number, slot type, charger)
DEFAULT_SLOT_LAYOUT: Tuple[Tuple[str, SlotType, Optional[bool]], ...] = (
    ("A1-01", SlotType.REGULAR, None),
    ("A1-02", SlotType.REGULAR, None),
    ("A1-03", SlotType.COMPACT, None),
    ("B1-01", SlotType.EV, True),
    ("B1-02", SlotType.HANDICAP_ACCESSIBLE, None),
    ("C1-01", SlotType.BIKE, None),
    ("C1-02", SlotType.BIKE, None),
    ("D1-01", SlotType.REGULAR, None),
    ("D1-02", SlotType.REGULAR, None),
    ("E1-01", SlotType.EV, False),
    ("E1-02", SlotType.REGULAR, None),
    ("F1-01", SlotType.COMPACT, None),
    ("G1-01", SlotType.HANDICAP_ACCESSIBLE, None),
    ("H1-01", SlotType.BIKE, None),
)

DEFAULT_HOURLY_TIERS: Tuple[Tuple[int, int], ...] = ((1, 50), (3, 100), (6, 150))
DEFAULT_MAX_HOURLY_CAP = Decimal("200")
DEFAULT_DAY_PASS_RATE = Decimal("150")


# ============================================================================
# FACTORY INTERFACES
# ============================================================================

class Factory(ABC, Generic[T]):
    """Base factory interface"""

    @abstractmethod
    def create(self, **kwargs) -> T:
        """Create an instance of T"""
        pass


# ============================================================================
# CONCRETE FACTORIES
# ============================================================================

class ParkingSlotFactory(Factory[ParkingSlot]):
    """Factory for creating ParkingSlot domain objects"""

    def create(
        self,
        number: str,
        slot_type: Union[SlotType, str],
        has_charger: Optional[bool] = None,
        status: Union[SlotStatus, str] = SlotStatus.AVAILABLE
    ) -> ParkingSlot:
        """
        Create a ParkingSlot

        Args:
            number: Slot label, e.g. "A1-01"
            slot_type: Type of parking slot
            has_charger: EV slots only; None means the EV default (charger present)
            status: Initial status
        """
        # Convert string to enum if needed
        if isinstance(slot_type, str):
            slot_type = SlotType(slot_type)
        if isinstance(status, str):
            status = SlotStatus(status)

        return ParkingSlot(
            number=number,
            slot_type=slot_type,
            status=status,
            has_charger=has_charger
        )

    def create_many(self, layout: Sequence[Tuple[str, Any, Optional[bool]]]) -> List[ParkingSlot]:
        """Create one slot per (number, slot type, charger) entry"""
        return [self.create(number, slot_type, has_charger) for number, slot_type, has_charger in layout]

    def create_default_inventory(self) -> List[ParkingSlot]:
        """The standard mall layout, all slots Available"""
        return self.create_many(DEFAULT_SLOT_LAYOUT)


class ParkingSessionFactory(Factory[ParkingSession]):
    """Factory for creating a new Active session at check-in"""

    def create(
        self,
        license_plate: Union[LicensePlate, str],
        vehicle_type: Union[VehicleType, str],
        slot: ParkingSlot,
        billing_type: Union[BillingType, str],
        pricing: PricingConfig,
        entry_time: Optional[datetime] = None
    ) -> ParkingSession:
        """
        Day Pass sessions carry their flat rate from the start; hourly
        sessions start at zero and are priced at checkout.

        Raises: MissingPricingConfigError for a Day Pass without a rate
        """
        if isinstance(license_plate, str):
            license_plate = LicensePlate(license_plate)
        if isinstance(vehicle_type, str):
            vehicle_type = VehicleType(vehicle_type)
        if isinstance(billing_type, str):
            billing_type = BillingType(billing_type)

        if billing_type == BillingType.DAY_PASS:
            amount = BillingCalculator.price_day_pass(pricing.require_day_pass())
        else:
            amount = Money.zero()

        return ParkingSession(
            license_plate=license_plate,
            vehicle_type=vehicle_type,
            slot_id=slot.id,
            billing_type=billing_type,
            entry_time=entry_time or utc_now(),
            billing_amount=amount
        )


class PricingFactory:
    """Factory for pricing records"""

    @staticmethod
    def create_hourly(
        rates: Sequence[Tuple[Any, Any]],
        max_cap: Any,
        currency: str = "USD"
    ) -> HourlyPricing:
        return HourlyPricing.from_pairs(rates, max_cap, currency)

    @staticmethod
    def create_day_pass(rate: Any, currency: str = "USD") -> DayPassPricing:
        return DayPassPricing(Money(Decimal(str(rate)), currency))

    @classmethod
    def create_default(cls) -> PricingConfig:
        """Standard tariff: 50 up to 1h, 100 up to 3h, 150 beyond, cap 200, day pass 150"""
        return PricingConfig(
            hourly=cls.create_hourly(DEFAULT_HOURLY_TIERS, DEFAULT_MAX_HOURLY_CAP),
            day_pass=cls.create_day_pass(DEFAULT_DAY_PASS_RATE)
        )
