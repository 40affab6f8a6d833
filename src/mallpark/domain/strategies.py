# File: src/mallpark/domain/strategies.py
"""
Strategy Pattern Implementation for the Mall Parking System

Slot allocation is encapsulated as a strategy selected at runtime by vehicle
type; hourly fees are computed by a pricing strategy.

Key Strategies:
1. Parking Allocation Strategies - which slots a vehicle type may take, in
   which order, and which relaxed fallbacks apply
2. Pricing Strategies - tiered hourly pricing (the day pass is a flat rate)

Domain Services:
- SlotMatcher: validates a manually chosen slot or picks one automatically
- BillingCalculator: prices a completed stay from an injected configuration

Everything here is pure: inputs in, a slot or an amount out. Callers persist
the resulting changes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Type

from .exceptions import (
    ChargerUnavailableError, NoSlotAvailableError, NotAvailableError,
    NotFoundError, TypeMismatchError
)
from .models import (
    COMPATIBLE_SLOT_TYPES, DayPassPricing, HourlyPricing, Money, ParkingSlot,
    SlotType, TimeRange, VehicleType, sort_by_slot_number
)


# ============================================================================
# ALLOCATION RESULT
# ============================================================================

class FallbackReason(Enum):
    """Relaxed rule used when no ideal slot was free"""
    EV_WITHOUT_CHARGER = "ev_without_charger"
    COMPACT_FOR_CAR = "compact_for_car"

    @property
    def description(self) -> str:
        descriptions = {
            FallbackReason.EV_WITHOUT_CHARGER: "EV assigned to a slot without a charger",
            FallbackReason.COMPACT_FOR_CAR: "Car assigned to a compact slot",
        }
        return descriptions[self]


@dataclass(frozen=True)
class SlotAssignment:
    """
    Outcome of slot selection
    `fallback` is set when the slot was chosen under a relaxed rule; the
    assignment still succeeded and the caller decides how to surface it.
    """
    slot: ParkingSlot
    fallback: Optional[FallbackReason] = None

    @property
    def is_fallback(self) -> bool:
        return self.fallback is not None

    @property
    def warning(self) -> Optional[str]:
        if self.fallback is None:
            return None
        return f"{self.fallback.description} ({self.slot.number})"


# ============================================================================
# PARKING ALLOCATION STRATEGIES
# ============================================================================

class ParkingStrategy(ABC):
    """
    Abstract base class for slot allocation strategies
    Subclasses bind a vehicle type and may add fallback steps.
    """

    vehicle_type: VehicleType

    @property
    def compatible_slot_types(self) -> Tuple[SlotType, ...]:
        return COMPATIBLE_SLOT_TYPES[self.vehicle_type]

    def allocate_slot(self, slots: Iterable[ParkingSlot]) -> SlotAssignment:
        """
        Pick the first slot by number from the first non-empty step
        Raises: NoSlotAvailableError when every step comes up empty
        """
        available = [slot for slot in slots if slot.is_available]

        preferred = [slot for slot in available if self.is_preferred(slot)]
        if preferred:
            return SlotAssignment(sort_by_slot_number(preferred)[0])

        for reason, candidates in self.fallback_steps(available):
            if candidates:
                return SlotAssignment(sort_by_slot_number(candidates)[0], reason)

        raise NoSlotAvailableError(
            f"No available slot found for vehicle type {self.vehicle_type}.",
            vehicle_type=self.vehicle_type.value
        )

    def is_preferred(self, slot: ParkingSlot) -> bool:
        """Slot satisfies the full compatibility rule"""
        return slot.slot_type in self.compatible_slot_types

    def fallback_steps(
        self,
        available: Sequence[ParkingSlot]
    ) -> List[Tuple[FallbackReason, List[ParkingSlot]]]:
        """Relaxed steps tried in order after the preferred step"""
        return []

    def accepts_slot_type(self, slot_type: SlotType) -> bool:
        return slot_type in self.compatible_slot_types

    def can_park(self, slot: ParkingSlot) -> None:
        """
        Check an operator-chosen slot
        Raises: NotAvailableError, TypeMismatchError or ChargerUnavailableError
        """
        if not slot.is_available:
            raise NotAvailableError(
                f"Selected slot {slot.number} is not available ({slot.status}).",
                slot_number=slot.number
            )

        if not self.accepts_slot_type(slot.slot_type):
            raise TypeMismatchError(
                f"Selected slot {slot.number} is not compatible with vehicle type {self.vehicle_type}.",
                slot_number=slot.number,
                slot_type=slot.slot_type.value
            )

    def get_strategy_name(self) -> str:
        return self.__class__.__name__.replace("Strategy", "")

    def __str__(self) -> str:
        return f"{self.get_strategy_name()} Strategy"


class StandardCarStrategy(ParkingStrategy):
    """
    Strategy: Cars
    - Regular and Compact slots, first by number
    - Compact slots again as an explicit fallback, so the car keeps parking
      if Compact is ever dropped from the preferred set
    """

    vehicle_type = VehicleType.CAR

    def fallback_steps(self, available):
        compact = [slot for slot in available if slot.slot_type == SlotType.COMPACT]
        return [(FallbackReason.COMPACT_FOR_CAR, compact)]

    def accepts_slot_type(self, slot_type: SlotType) -> bool:
        return super().accepts_slot_type(slot_type) or slot_type == SlotType.COMPACT


class ElectricVehicleStrategy(ParkingStrategy):
    """
    Strategy: Electric vehicles
    - EV slots with a charger first
    - EV slots without a charger as a degraded fallback
    """

    vehicle_type = VehicleType.EV

    def is_preferred(self, slot: ParkingSlot) -> bool:
        return super().is_preferred(slot) and slot.has_charger

    def fallback_steps(self, available):
        no_charger = [
            slot for slot in available
            if slot.slot_type == SlotType.EV and not slot.has_charger
        ]
        return [(FallbackReason.EV_WITHOUT_CHARGER, no_charger)]

    def can_park(self, slot: ParkingSlot) -> None:
        super().can_park(slot)

        if slot.slot_type == SlotType.EV and not slot.has_charger:
            raise ChargerUnavailableError(
                f"Selected EV slot {slot.number} does not have a charger available.",
                slot_number=slot.number
            )


class BikeStrategy(ParkingStrategy):
    """Strategy: Bikes use Bike slots only"""

    vehicle_type = VehicleType.BIKE


class AccessibleVehicleStrategy(ParkingStrategy):
    """Strategy: Handicap Accessible vehicles use accessible slots only"""

    vehicle_type = VehicleType.HANDICAP_ACCESSIBLE


class ParkingStrategyFactory:
    """Resolves the allocation strategy for a vehicle type"""

    _strategies: Dict[VehicleType, Type[ParkingStrategy]] = {
        VehicleType.CAR: StandardCarStrategy,
        VehicleType.EV: ElectricVehicleStrategy,
        VehicleType.BIKE: BikeStrategy,
        VehicleType.HANDICAP_ACCESSIBLE: AccessibleVehicleStrategy,
    }

    def __init__(self):
        self._instances: Dict[VehicleType, ParkingStrategy] = {}

    def get_strategy(self, vehicle_type: VehicleType) -> ParkingStrategy:
        if vehicle_type not in self._instances:
            strategy_class = self._strategies.get(vehicle_type)
            if strategy_class is None:
                raise ValueError(f"No parking strategy for vehicle type: {vehicle_type}")
            self._instances[vehicle_type] = strategy_class()
        return self._instances[vehicle_type]


# ============================================================================
# PRICING STRATEGIES
# ============================================================================

class PricingStrategy(ABC):
    """
    Abstract base class for pricing strategies
    Defines the interface for fee calculation algorithms
    """

    @abstractmethod
    def calculate_parking_fee(self, time_range: TimeRange) -> Money:
        """Amount due for the given stay"""


class TieredHourlyPricingStrategy(PricingStrategy):
    """
    Strategy: Tiered hourly pricing

    Tiers are cumulative thresholds, not additive bands: the first tier
    (ascending threshold) whose threshold covers the stay sets the price. A
    stay longer than every threshold pays the last tier. The result is
    clamped to the cap.
    """

    def __init__(self, pricing: HourlyPricing):
        self.pricing = pricing

    def calculate_parking_fee(self, time_range: TimeRange) -> Money:
        hours = time_range.billable_hours

        price = self.pricing.tiers[-1].amount
        for tier in self.pricing.tiers:
            if hours <= tier.duration_hours:
                price = tier.amount
                break

        return price.min(self.pricing.max_cap)


# ============================================================================
# DOMAIN SERVICES
# ============================================================================

class SlotMatcher:
    """
    Domain Service: decides which slot a vehicle may occupy
    Stateless; the inventory is passed in on every call.
    """

    def __init__(self, strategy_factory: Optional[ParkingStrategyFactory] = None):
        self.strategy_factory = strategy_factory or ParkingStrategyFactory()

    def validate_manual_slot(
        self,
        slot_number: str,
        vehicle_type: VehicleType,
        slots: Iterable[ParkingSlot]
    ) -> ParkingSlot:
        """
        Validate an operator-chosen slot
        Raises: NotFoundError, NotAvailableError, TypeMismatchError,
                ChargerUnavailableError (checked in that order)
        """
        wanted = slot_number.strip()
        slot = next((s for s in slots if s.number == wanted), None)
        if slot is None:
            raise NotFoundError("Manual slot not found.", slot_number=wanted)

        self.strategy_factory.get_strategy(vehicle_type).can_park(slot)
        return slot

    def select_automatic_slot(
        self,
        vehicle_type: VehicleType,
        slots: Iterable[ParkingSlot]
    ) -> SlotAssignment:
        """
        Pick the best free slot for the vehicle type
        Raises: NoSlotAvailableError
        """
        return self.strategy_factory.get_strategy(vehicle_type).allocate_slot(slots)


class BillingCalculator:
    """
    Domain Service: prices parking sessions
    The pricing configuration is always passed in by the caller.
    """

    @staticmethod
    def price_day_pass(pricing: DayPassPricing) -> Money:
        return pricing.rate

    @staticmethod
    def price_hourly(entry_time: datetime, exit_time: datetime, pricing: HourlyPricing) -> Money:
        """
        Raises: InvalidIntervalError if exit_time precedes entry_time
        """
        time_range = TimeRange(entry_time, exit_time)
        return TieredHourlyPricingStrategy(pricing).calculate_parking_fee(time_range)
