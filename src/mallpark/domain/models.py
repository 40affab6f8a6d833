# File: src/mallpark/domain/models.py
"""
Domain Models for the Mall Parking System
Following Domain-Driven Design (DDD) principles with rich domain models

This module contains:
1. Value Objects: LicensePlate, Money, TimeRange, RateTier, pricing records
2. Enums: vehicle, slot, session and billing types
3. Entities: ParkingSlot and ParkingSession with their lifecycles
4. Domain Events: facts raised by check-in, check-out and operator actions

Entities own their state transitions; the surrounding use case persists the
slot and the session together.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Tuple, Iterable
from datetime import datetime, timedelta, timezone
from decimal import Decimal
import uuid
from enum import Enum

from .exceptions import (
    InvalidIntervalError, InvalidStatusTransitionError,
    MissingPricingConfigError, NotAvailableError, SessionClosedError
)


def utc_now() -> datetime:
    """Naive UTC timestamp, the form persisted by the store"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    """Aware datetimes are converted to UTC; naive ones are taken as UTC"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# ============================================================================
# DOMAIN PRIMITIVES / VALUE OBJECTS
# ============================================================================

@dataclass(frozen=True)  # Value objects are immutable
class LicensePlate:
    """
    Value Object: Vehicle number plate
    Free text, trimmed and normalised to upper case
    """
    value: str

    def __post_init__(self):
        if not self.value or not self.value.strip():
            raise ValueError("Number plate cannot be empty")

        object.__setattr__(self, 'value', self.value.strip().upper())

        if len(self.value) > 20:
            raise ValueError(f"Number plate must be at most 20 characters, got: {self.value}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Money:
    """
    Value Object: Non-negative monetary amount
    """
    amount: Decimal
    currency: str = "USD"

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))

        if self.amount < Decimal('0'):
            raise ValueError("Money amount cannot be negative")

        if len(self.currency) != 3:
            raise ValueError(f"Currency must be 3-letter code: {self.currency}")

    @classmethod
    def zero(cls, currency: str = "USD") -> 'Money':
        return cls(Decimal('0'), currency)

    def __add__(self, other: 'Money') -> 'Money':
        if self.currency != other.currency:
            raise ValueError(f"Cannot add {self.currency} to {other.currency}")
        return Money(self.amount + other.amount, self.currency)

    def __lt__(self, other: 'Money') -> bool:
        if self.currency != other.currency:
            raise ValueError(f"Cannot compare {self.currency} with {other.currency}")
        return self.amount < other.amount

    def min(self, other: 'Money') -> 'Money':
        """Smaller of two amounts"""
        return other if other < self else self

    def format(self) -> str:
        return f"{self.amount:.2f} {self.currency}"

    def to_dict(self) -> Dict[str, Any]:
        return {"amount": float(self.amount), "currency": self.currency}


@dataclass(frozen=True)
class TimeRange:
    """
    Value Object: Interval between entry and exit
    A zero-length interval is valid; a reversed one is not.
    """
    start_time: datetime
    end_time: datetime

    def __post_init__(self):
        if self.end_time < self.start_time:
            raise InvalidIntervalError(
                "Exit time cannot be before entry time",
                entry_time=self.start_time.isoformat(),
                exit_time=self.end_time.isoformat()
            )

    @property
    def duration(self) -> timedelta:
        return self.end_time - self.start_time

    @property
    def billable_minutes(self) -> int:
        """Whole minutes, partial minutes rounded up"""
        minutes, remainder = divmod(self.duration, timedelta(minutes=1))
        if remainder:
            minutes += 1
        return minutes

    @property
    def billable_hours(self) -> Decimal:
        """Billable minutes as fractional hours, for tier comparison"""
        return Decimal(self.billable_minutes) / Decimal(60)

    def __str__(self) -> str:
        start_str = self.start_time.strftime("%Y-%m-%d %H:%M")
        end_str = self.end_time.strftime("%Y-%m-%d %H:%M")
        return f"{start_str} to {end_str} ({self.billable_minutes} min)"


# ============================================================================
# ENUMS FOR DOMAIN TYPES
# ============================================================================

class VehicleType(Enum):
    """Vehicle types accepted at check-in"""
    CAR = "Car"
    BIKE = "Bike"
    EV = "EV"
    HANDICAP_ACCESSIBLE = "Handicap Accessible"

    def __str__(self) -> str:
        return self.value


class SlotType(Enum):
    """Physical slot types in the inventory"""
    REGULAR = "Regular"
    COMPACT = "Compact"
    EV = "EV"
    HANDICAP_ACCESSIBLE = "Handicap Accessible"
    BIKE = "Bike"

    def __str__(self) -> str:
        return self.value


class SlotStatus(Enum):
    AVAILABLE = "Available"
    OCCUPIED = "Occupied"
    MAINTENANCE = "Maintenance"

    def __str__(self) -> str:
        return self.value


class SessionStatus(Enum):
    ACTIVE = "Active"
    COMPLETED = "Completed"

    def __str__(self) -> str:
        return self.value


class BillingType(Enum):
    HOURLY = "Hourly"
    DAY_PASS = "Day Pass"

    def __str__(self) -> str:
        return self.value


# Vehicle type -> acceptable slot types, fixed
COMPATIBLE_SLOT_TYPES: Dict[VehicleType, Tuple[SlotType, ...]] = {
    VehicleType.CAR: (SlotType.REGULAR, SlotType.COMPACT),
    VehicleType.BIKE: (SlotType.BIKE,),
    VehicleType.EV: (SlotType.EV,),
    VehicleType.HANDICAP_ACCESSIBLE: (SlotType.HANDICAP_ACCESSIBLE,),
}


# ============================================================================
# PRICING VALUE OBJECTS
# ============================================================================

@dataclass(frozen=True)
class RateTier:
    """One step of hourly pricing: stays up to `duration_hours` cost `amount`"""
    duration_hours: Decimal
    amount: Money

    def __post_init__(self):
        if not isinstance(self.duration_hours, Decimal):
            object.__setattr__(self, 'duration_hours', Decimal(str(self.duration_hours)))

        if self.duration_hours < Decimal('0'):
            raise ValueError("Tier duration cannot be negative")

    def to_dict(self) -> Dict[str, Any]:
        return {"durationHours": float(self.duration_hours), "amount": float(self.amount.amount)}


@dataclass(frozen=True)
class HourlyPricing:
    """
    Value Object: Hourly pricing record
    Tiers are sorted by threshold once, at construction.
    """
    tiers: Tuple[RateTier, ...]
    max_cap: Money

    def __post_init__(self):
        if not self.tiers:
            raise ValueError("Hourly pricing needs at least one tier")

        ordered = tuple(sorted(self.tiers, key=lambda tier: tier.duration_hours))
        object.__setattr__(self, 'tiers', ordered)

    @classmethod
    def from_pairs(
        cls,
        pairs: Iterable[Tuple[Any, Any]],
        max_cap: Any,
        currency: str = "USD"
    ) -> 'HourlyPricing':
        """Build from (durationHours, amount) number pairs"""
        tiers = tuple(
            RateTier(Decimal(str(hours)), Money(Decimal(str(amount)), currency))
            for hours, amount in pairs
        )
        return cls(tiers, Money(Decimal(str(max_cap)), currency))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hourlyRates": [tier.to_dict() for tier in self.tiers],
            "maxHourlyCap": float(self.max_cap.amount),
        }


@dataclass(frozen=True)
class DayPassPricing:
    """Value Object: flat day-pass rate"""
    rate: Money

    def to_dict(self) -> Dict[str, Any]:
        return {"dayPassRate": float(self.rate.amount)}


@dataclass(frozen=True)
class PricingConfig:
    """Both pricing records, either of which may be missing from the store"""
    hourly: Optional[HourlyPricing] = None
    day_pass: Optional[DayPassPricing] = None

    def require_hourly(self) -> HourlyPricing:
        if self.hourly is None:
            raise MissingPricingConfigError("Hourly pricing configuration is not set up")
        return self.hourly

    def require_day_pass(self) -> DayPassPricing:
        if self.day_pass is None:
            raise MissingPricingConfigError("Day Pass pricing configuration is not set up")
        return self.day_pass


# ============================================================================
# DOMAIN ENTITIES
# ============================================================================

class Entity:
    """
    Base class for all domain entities
    Provides common functionality for entities with identity
    """

    def __init__(self, id: Optional[str] = None):
        self._id = id or str(uuid.uuid4())

    @property
    def id(self) -> str:
        return self._id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entity):
            return False
        return self.id == other.id and type(self) == type(other)

    def __hash__(self) -> int:
        return hash((self.id, type(self).__name__))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id})"


class ParkingSlot(Entity):
    """
    Entity: A single physical parking space
    Identity is the uuid; `number` is the unique human-readable label.
    """

    def __init__(
        self,
        number: str,
        slot_type: SlotType,
        status: SlotStatus = SlotStatus.AVAILABLE,
        has_charger: Optional[bool] = None,
        current_session_id: Optional[str] = None,
        id: Optional[str] = None
    ):
        super().__init__(id)
        self.number = number.strip() if number else number
        self.slot_type = slot_type
        self.status = status
        # EV slots default to having a charger; other types never have one
        if slot_type == SlotType.EV:
            self.has_charger = True if has_charger is None else has_charger
        else:
            self.has_charger = False
        self.current_session_id = current_session_id

        self._validate()

    def _validate(self) -> None:
        if not self.number:
            raise ValueError("Slot number cannot be empty")

        if self.status == SlotStatus.OCCUPIED and not self.current_session_id:
            raise ValueError(f"Occupied slot {self.number} must reference its session")

    @property
    def is_available(self) -> bool:
        return self.status == SlotStatus.AVAILABLE

    def occupy(self, session_id: str) -> None:
        """
        Occupy the slot for a session
        Raises: NotAvailableError if the slot is not Available
        """
        if not self.is_available:
            raise NotAvailableError(
                f"Slot {self.number} is not available ({self.status})",
                slot_number=self.number
            )

        self.status = SlotStatus.OCCUPIED
        self.current_session_id = session_id

    def release(self) -> None:
        """Free the slot after checkout"""
        self.status = SlotStatus.AVAILABLE
        self.current_session_id = None

    def change_status(self, new_status: SlotStatus) -> None:
        """
        Operator toggle between Available and Maintenance
        Occupied slots must be freed through checkout first.
        """
        if new_status not in (SlotStatus.AVAILABLE, SlotStatus.MAINTENANCE):
            raise InvalidStatusTransitionError(
                f"Invalid status {new_status}. Must be \"Maintenance\" or \"Available\"."
            )

        if self.status == SlotStatus.OCCUPIED:
            raise InvalidStatusTransitionError(
                f"Cannot set occupied slot {self.number} to {new_status}. Check out vehicle first.",
                slot_number=self.number
            )

        self.status = new_status

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "slotNumber": self.number,
            "slotType": self.slot_type.value,
            "status": self.status.value,
            "isChargerAvailable": self.has_charger,
            "currentSession": self.current_session_id,
        }

    def __str__(self) -> str:
        return f"Slot {self.number} ({self.slot_type}) - {self.status}"


class ParkingSession(Entity):
    """
    Entity: One vehicle's occupancy from entry to exit
    Created Active; completed exactly once at checkout.
    """

    def __init__(
        self,
        license_plate: LicensePlate,
        vehicle_type: VehicleType,
        slot_id: str,
        billing_type: BillingType,
        entry_time: Optional[datetime] = None,
        billing_amount: Optional[Money] = None,
        exit_time: Optional[datetime] = None,
        status: SessionStatus = SessionStatus.ACTIVE,
        id: Optional[str] = None
    ):
        super().__init__(id)
        self.license_plate = license_plate
        self.vehicle_type = vehicle_type
        self.slot_id = slot_id
        self.billing_type = billing_type
        self.entry_time = entry_time or utc_now()
        self.exit_time = exit_time
        self.status = status
        self.billing_amount = billing_amount or Money.zero()

        self._validate_invariants()

    def _validate_invariants(self) -> None:
        if self.exit_time is not None:
            TimeRange(self.entry_time, self.exit_time)

        if self.status == SessionStatus.COMPLETED and self.exit_time is None:
            raise ValueError("Completed session must have an exit time")

        if self.status == SessionStatus.ACTIVE and self.exit_time is not None:
            raise ValueError("Active session cannot have an exit time")

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    @property
    def time_range(self) -> Optional[TimeRange]:
        if self.exit_time is None:
            return None
        return TimeRange(self.entry_time, self.exit_time)

    def complete(self, exit_time: datetime, final_amount: Money) -> None:
        """
        Close the session with its final amount
        Raises: SessionClosedError if already completed,
                InvalidIntervalError if exit precedes entry
        """
        if not self.is_active:
            raise SessionClosedError(
                f"Session {self.id} for {self.license_plate} is already completed",
                session_id=self.id
            )

        TimeRange(self.entry_time, exit_time)

        self.exit_time = exit_time
        self.billing_amount = final_amount
        self.status = SessionStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "vehicleNumberPlate": self.license_plate.value,
            "vehicleType": self.vehicle_type.value,
            "slot": self.slot_id,
            "entryTime": self.entry_time.isoformat(),
            "exitTime": self.exit_time.isoformat() if self.exit_time else None,
            "status": self.status.value,
            "billingType": self.billing_type.value,
            "billingAmount": float(self.billing_amount.amount),
        }

    def __str__(self) -> str:
        return f"Session {self.id} [{self.license_plate}] {self.status}"


# ============================================================================
# DOMAIN EVENTS
# ============================================================================

@dataclass
class DomainEvent:
    """Base class for domain events"""
    occurred_at: datetime = field(default_factory=utc_now, init=False)
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()), init=False)

    @property
    def event_type(self) -> str:
        raise NotImplementedError

    def payload(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "occurred_at": self.occurred_at.isoformat(),
            "data": self.payload(),
        }


@dataclass
class VehicleCheckedInEvent(DomainEvent):
    session_id: str = ""
    license_plate: str = ""
    vehicle_type: str = ""
    slot_number: str = ""
    billing_type: str = ""

    @property
    def event_type(self) -> str:
        return "vehicle_checked_in"

    def payload(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "license_plate": self.license_plate,
            "vehicle_type": self.vehicle_type,
            "slot_number": self.slot_number,
            "billing_type": self.billing_type,
        }


@dataclass
class VehicleCheckedOutEvent(DomainEvent):
    session_id: str = ""
    license_plate: str = ""
    slot_number: str = ""
    billing_type: str = ""
    amount: float = 0.0
    duration_minutes: int = 0

    @property
    def event_type(self) -> str:
        return "vehicle_checked_out"

    def payload(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "license_plate": self.license_plate,
            "slot_number": self.slot_number,
            "billing_type": self.billing_type,
            "amount": self.amount,
            "duration_minutes": self.duration_minutes,
        }


@dataclass
class FallbackAssignmentEvent(DomainEvent):
    """Vehicle was given a slot under a relaxed compatibility rule"""
    license_plate: str = ""
    vehicle_type: str = ""
    slot_number: str = ""
    reason: str = ""

    @property
    def event_type(self) -> str:
        return "fallback_assignment"

    def payload(self) -> Dict[str, Any]:
        return {
            "license_plate": self.license_plate,
            "vehicle_type": self.vehicle_type,
            "slot_number": self.slot_number,
            "reason": self.reason,
        }


@dataclass
class SlotStatusChangedEvent(DomainEvent):
    slot_number: str = ""
    old_status: str = ""
    new_status: str = ""

    @property
    def event_type(self) -> str:
        return "slot_status_changed"

    def payload(self) -> Dict[str, Any]:
        return {
            "slot_number": self.slot_number,
            "old_status": self.old_status,
            "new_status": self.new_status,
        }


@dataclass
class InventorySeededEvent(DomainEvent):
    slot_count: int = 0

    @property
    def event_type(self) -> str:
        return "inventory_seeded"

    def payload(self) -> Dict[str, Any]:
        return {"slot_count": self.slot_count}


@dataclass
class PricingUpdatedEvent(DomainEvent):
    billing_type: str = ""
    pricing: Dict[str, Any] = field(default_factory=dict)

    @property
    def event_type(self) -> str:
        return "pricing_updated"

    def payload(self) -> Dict[str, Any]:
        return {"billing_type": self.billing_type, "pricing": self.pricing}


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================

def sort_by_slot_number(slots: Iterable[ParkingSlot]) -> List[ParkingSlot]:
    """Ascending lexicographic order on the slot number"""
    return sorted(slots, key=lambda slot: slot.number)
