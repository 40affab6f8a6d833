# File: src/mallpark/application/dtos.py
"""
Data Transfer Objects (DTOs) for the Mall Parking System

1. Input DTOs - request bodies received from the API
2. Output DTOs - responses sent back to clients
3. Report DTOs - rows of the revenue and utilization reports

DTOs carry data only. External field names are camelCase aliases of the
snake_case attributes; both spellings are accepted on input.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..domain.models import (
    BillingType, ParkingSession, ParkingSlot, PricingConfig, SessionStatus,
    SlotStatus, SlotType, VehicleType
)


# ============================================================================
# BASE DTO CLASSES
# ============================================================================

class BaseDTO(BaseModel):
    """Base DTO with common functionality"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_dict(self, exclude_none: bool = False) -> Dict[str, Any]:
        """JSON-ready dictionary using the external field names"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=exclude_none)


# ============================================================================
# INPUT DTOs
# ============================================================================

class CheckInRequestDTO(BaseDTO):
    """Vehicle arrival at the gate"""
    number_plate: str = Field(min_length=1, max_length=20, description="Vehicle number plate")
    vehicle_type: VehicleType = Field(description="Vehicle type")
    billing_type: BillingType = Field(description="Hourly or Day Pass")
    manual_slot_id: Optional[str] = Field(default=None, description="Slot number chosen by the operator")
    entry_time: Optional[datetime] = Field(default=None, description="Entry time (UTC); defaults to now")

    @field_validator('number_plate')
    @classmethod
    def validate_number_plate(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError('Number plate cannot be empty')
        return v

    @field_validator('manual_slot_id')
    @classmethod
    def blank_slot_is_automatic(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v.strip() if v else v


class CheckOutRequestDTO(BaseDTO):
    """Optional checkout body; exit time defaults to now"""
    exit_time: Optional[datetime] = Field(default=None, description="Exit time (UTC)")


class SlotStatusUpdateDTO(BaseDTO):
    """Operator toggle"""
    status: SlotStatus = Field(description="Available or Maintenance")


class RateTierDTO(BaseDTO):
    duration_hours: float = Field(ge=0, description="Stays up to this many hours")
    amount: float = Field(ge=0, description="Price for the tier")


class HourlyPricingUpdateDTO(BaseDTO):
    hourly_rates: List[RateTierDTO] = Field(min_length=1, description="Tier thresholds and amounts")
    max_hourly_cap: float = Field(ge=0, description="Upper bound on any hourly charge")

    @model_validator(mode='after')
    def validate_unique_thresholds(self) -> 'HourlyPricingUpdateDTO':
        thresholds = [tier.duration_hours for tier in self.hourly_rates]
        if len(set(thresholds)) != len(thresholds):
            raise ValueError('Tier thresholds must be unique')
        return self


class DayPassUpdateDTO(BaseDTO):
    day_pass_rate: float = Field(ge=0, description="Flat day pass price")


# ============================================================================
# OUTPUT DTOs
# ============================================================================

class SlotRefDTO(BaseDTO):
    """Slot as referenced from a session"""
    id: str
    slot_number: str
    slot_type: SlotType

    @classmethod
    def from_domain(cls, slot: ParkingSlot) -> 'SlotRefDTO':
        return cls(id=slot.id, slot_number=slot.number, slot_type=slot.slot_type)


class CurrentSessionDTO(BaseDTO):
    """Session occupying a slot, as shown on the slot board"""
    id: str
    vehicle_number_plate: str
    entry_time: datetime


class SlotDTO(BaseDTO):
    id: str
    slot_number: str
    slot_type: SlotType
    status: SlotStatus
    is_charger_available: bool
    current_session: Optional[CurrentSessionDTO] = None

    @classmethod
    def from_domain(cls, slot: ParkingSlot, session: Optional[ParkingSession] = None) -> 'SlotDTO':
        current = None
        if session is not None:
            current = CurrentSessionDTO(
                id=session.id,
                vehicle_number_plate=session.license_plate.value,
                entry_time=session.entry_time
            )
        return cls(
            id=slot.id,
            slot_number=slot.number,
            slot_type=slot.slot_type,
            status=slot.status,
            is_charger_available=slot.has_charger,
            current_session=current
        )


class SessionDTO(BaseDTO):
    id: str
    vehicle_number_plate: str
    vehicle_type: VehicleType
    slot: Optional[SlotRefDTO] = None
    entry_time: datetime
    exit_time: Optional[datetime] = None
    status: SessionStatus
    billing_type: BillingType
    billing_amount: float

    @classmethod
    def from_domain(cls, session: ParkingSession, slot: Optional[ParkingSlot] = None) -> 'SessionDTO':
        return cls(
            id=session.id,
            vehicle_number_plate=session.license_plate.value,
            vehicle_type=session.vehicle_type,
            slot=SlotRefDTO.from_domain(slot) if slot is not None else None,
            entry_time=session.entry_time,
            exit_time=session.exit_time,
            status=session.status,
            billing_type=session.billing_type,
            billing_amount=float(session.billing_amount.amount)
        )


class CheckInResponseDTO(BaseDTO):
    msg: str = "Vehicle checked in successfully"
    session: SessionDTO
    assigned_slot: SlotRefDTO
    billing_amount: float
    warning: Optional[str] = None
    fallback: Optional[str] = None


class CheckOutResponseDTO(BaseDTO):
    msg: str = "Vehicle checked out successfully"
    session: SessionDTO
    final_amount: float
    duration_minutes: int


class DashboardCountsDTO(BaseDTO):
    total_slots: int
    free_slots: int
    occupied_slots: int
    maintenance_slots: int


class SeedResultDTO(BaseDTO):
    msg: str = "Slots seeded successfully"
    count: int
    slots: List[SlotDTO]


class PricingDTO(BaseDTO):
    """Both pricing records; either may be missing"""
    hourly_rates: Optional[List[RateTierDTO]] = None
    max_hourly_cap: Optional[float] = None
    day_pass_rate: Optional[float] = None

    @classmethod
    def from_domain(cls, config: PricingConfig) -> 'PricingDTO':
        data: Dict[str, Any] = {}
        if config.hourly is not None:
            data.update(config.hourly.to_dict())
        if config.day_pass is not None:
            data.update(config.day_pass.to_dict())
        return cls.model_validate(data)


# ============================================================================
# REPORT DTOs
# ============================================================================

class RevenueSummaryDTO(BaseDTO):
    total_revenue: float = 0.0
    hourly_revenue: float = 0.0
    day_pass_revenue: float = 0.0
    total_sessions: int = 0
    hourly_sessions: int = 0
    day_pass_sessions: int = 0


class HourlyRevenueDTO(BaseDTO):
    hour: int
    total_revenue_per_hour: float = 0.0
    hourly_revenue: float = 0.0
    day_pass_revenue: float = 0.0


class DailyRevenueDTO(BaseDTO):
    day: int
    total_revenue_per_day: float = 0.0
    hourly_revenue: float = 0.0
    day_pass_revenue: float = 0.0


class PeakHourDTO(BaseDTO):
    hour: int
    entry_count: int = 0
    total_duration_minutes: int = 0


class SlotUsageDTO(BaseDTO):
    slot_id: str
    slot_number: str
    slot_type: SlotType
    total_occupation_minutes: int
    session_count: int
