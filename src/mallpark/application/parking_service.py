# File: src/mallpark/application/parking_service.py
"""
Parking Management Application Service

Orchestrates the use cases of the mall parking desk:
1. Vehicle check-in (manual or automatic slot) and check-out with billing
2. Active session search and the slot board
3. Operator slot maintenance and inventory seeding
4. Pricing maintenance

Each use case runs inside one unit of work so that the slot and the session
change together. Domain events are published only after the unit of work
has committed.
"""

from datetime import datetime
from typing import Callable, List, Optional
import logging

from ..domain.exceptions import (
    DuplicateActiveSessionError, NotAvailableError, NotFoundError,
    SessionClosedError
)
from ..domain.models import (
    BillingType, DomainEvent, FallbackAssignmentEvent, InventorySeededEvent,
    LicensePlate, PricingUpdatedEvent, SlotStatus,
    SlotStatusChangedEvent, SlotType, VehicleCheckedInEvent,
    VehicleCheckedOutEvent, as_naive_utc, utc_now
)
from ..domain.strategies import BillingCalculator, SlotAssignment, SlotMatcher
from ..infrastructure.factories import (
    ParkingSessionFactory, ParkingSlotFactory, PricingFactory
)
from ..infrastructure.messaging import EventBus
from ..infrastructure.repositories import UnitOfWorkFactory
from .dtos import (
    CheckInRequestDTO, CheckInResponseDTO, CheckOutResponseDTO,
    DashboardCountsDTO, DayPassUpdateDTO, HourlyPricingUpdateDTO, PricingDTO,
    SeedResultDTO, SessionDTO, SlotDTO, SlotRefDTO
)


class ParkingService:
    """
    Main application service for parking management

    Stateless apart from its collaborators; a fresh unit of work is opened
    per call, so one instance can serve concurrent requests.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        event_bus: Optional[EventBus] = None,
        slot_matcher: Optional[SlotMatcher] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        """
        Args:
            uow_factory: Opens a new unit of work per use case
            event_bus: Receives domain events after commit
            slot_matcher: Slot selection rules
            clock: Source of "now" (naive UTC)
        """
        self.logger = logging.getLogger(self.__class__.__name__)

        self.uow_factory = uow_factory
        self.event_bus = event_bus or EventBus()
        self.slot_matcher = slot_matcher or SlotMatcher()
        self.clock = clock

        self.slot_factory = ParkingSlotFactory()
        self.session_factory = ParkingSessionFactory()

    # ------------------------------------------------------------------
    # Check-in / check-out
    # ------------------------------------------------------------------

    def check_in(self, request: CheckInRequestDTO) -> CheckInResponseDTO:
        """
        Use Case: Vehicle Entry
        1. Reject a plate that is already parked
        2. Validate the operator's slot, or pick one automatically
        3. Create the session (Day Pass priced up front)
        4. Occupy the slot, only if it is still Available

        Raises: DuplicateActiveSessionError, NotFoundError, NotAvailableError,
                TypeMismatchError, ChargerUnavailableError,
                NoSlotAvailableError, MissingPricingConfigError
        """
        plate = LicensePlate(request.number_plate)
        vehicle_type = request.vehicle_type
        entry_time = as_naive_utc(request.entry_time) if request.entry_time else self.clock()

        with self.uow_factory() as uow:
            existing = uow.sessions.find_active_by_plate(plate.value)
            if existing is not None:
                parked_in = uow.slots.get(existing.slot_id)
                raise DuplicateActiveSessionError(
                    f"Vehicle with number plate {plate} is already actively parked in slot "
                    f"{parked_in.number if parked_in else existing.slot_id}.",
                    license_plate=plate.value
                )

            inventory = uow.slots.find()
            if request.manual_slot_id:
                slot = self.slot_matcher.validate_manual_slot(request.manual_slot_id, vehicle_type, inventory)
                assignment = SlotAssignment(slot)
            else:
                assignment = self.slot_matcher.select_automatic_slot(vehicle_type, inventory)

            slot = assignment.slot
            session = self.session_factory.create(
                plate, vehicle_type, slot, request.billing_type,
                uow.pricing.get_config(), entry_time=entry_time
            )
            uow.sessions.add(session)

            if not uow.slots.occupy_slot(slot.id, session.id):
                raise NotAvailableError(
                    f"Slot {slot.number} was taken by another vehicle. Please retry.",
                    slot_number=slot.number
                )
            slot.occupy(session.id)

        self.logger.info(
            f"Checked in {plate} ({vehicle_type}) to slot {slot.number}, billing {session.billing_type}"
        )

        events: List[DomainEvent] = [VehicleCheckedInEvent(
            session_id=session.id,
            license_plate=plate.value,
            vehicle_type=vehicle_type.value,
            slot_number=slot.number,
            billing_type=session.billing_type.value
        )]
        if assignment.is_fallback:
            self.logger.warning(f"Warning: {assignment.warning} for {plate}")
            events.append(FallbackAssignmentEvent(
                license_plate=plate.value,
                vehicle_type=vehicle_type.value,
                slot_number=slot.number,
                reason=assignment.fallback.value
            ))
        self.event_bus.publish_all(events)

        return CheckInResponseDTO(
            session=SessionDTO.from_domain(session, slot),
            assigned_slot=SlotRefDTO.from_domain(slot),
            billing_amount=float(session.billing_amount.amount),
            warning=assignment.warning,
            fallback=assignment.fallback.value if assignment.fallback else None
        )

    def check_out(self, session_id: str, exit_time: Optional[datetime] = None) -> CheckOutResponseDTO:
        """
        Use Case: Vehicle Exit
        Hourly sessions are priced from the stored tariff; a Day Pass keeps
        the amount it was given at check-in.

        Raises: NotFoundError, SessionClosedError, InvalidIntervalError,
                MissingPricingConfigError
        """
        exit_time = as_naive_utc(exit_time) if exit_time else self.clock()

        with self.uow_factory() as uow:
            session = uow.sessions.get(session_id)
            if session is None:
                raise NotFoundError("Parking session not found.", session_id=session_id)

            if not session.is_active:
                raise SessionClosedError(
                    f"Session for {session.license_plate} is already checked out.",
                    session_id=session_id
                )

            if session.billing_type == BillingType.HOURLY:
                amount = BillingCalculator.price_hourly(
                    session.entry_time, exit_time, uow.pricing.get_config().require_hourly()
                )
            else:
                amount = session.billing_amount

            session.complete(exit_time, amount)
            uow.sessions.update(session)

            slot = uow.slots.get(session.slot_id)
            # A concurrent checkout already freed the slot
            if not uow.slots.release_slot(session.slot_id, session.id):
                raise SessionClosedError(
                    f"Session for {session.license_plate} is already checked out.",
                    session_id=session_id
                )
            slot.release()

        duration_minutes = session.time_range.billable_minutes
        self.logger.info(
            f"Checked out {session.license_plate} after {duration_minutes} min, charged {amount.format()}"
        )

        self.event_bus.publish(VehicleCheckedOutEvent(
            session_id=session.id,
            license_plate=session.license_plate.value,
            slot_number=slot.number,
            billing_type=session.billing_type.value,
            amount=float(amount.amount),
            duration_minutes=duration_minutes
        ))

        return CheckOutResponseDTO(
            session=SessionDTO.from_domain(session, slot),
            final_amount=float(amount.amount),
            duration_minutes=duration_minutes
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def search_active_session(self, number_plate: str) -> SessionDTO:
        """
        Raises: NotFoundError if the plate has no active session
        """
        plate = LicensePlate(number_plate)

        with self.uow_factory() as uow:
            session = uow.sessions.find_active_by_plate(plate.value)
            if session is None:
                raise NotFoundError(
                    "No active session found for this number plate.",
                    license_plate=plate.value
                )
            slot = uow.slots.get(session.slot_id)

        return SessionDTO.from_domain(session, slot)

    def list_slots(
        self,
        slot_type: Optional[SlotType] = None,
        status: Optional[SlotStatus] = None
    ) -> List[SlotDTO]:
        """Slot board, with the occupying vehicle for occupied slots"""
        with self.uow_factory() as uow:
            result = []
            for slot in uow.slots.find(slot_type=slot_type, status=status):
                session = None
                if slot.current_session_id:
                    session = uow.sessions.get(slot.current_session_id)
                result.append(SlotDTO.from_domain(slot, session))
        return result

    def dashboard_counts(self) -> DashboardCountsDTO:
        with self.uow_factory() as uow:
            counts = uow.slots.count_by_status()

        return DashboardCountsDTO(
            total_slots=sum(counts.values()),
            free_slots=counts[SlotStatus.AVAILABLE],
            occupied_slots=counts[SlotStatus.OCCUPIED],
            maintenance_slots=counts[SlotStatus.MAINTENANCE]
        )

    # ------------------------------------------------------------------
    # Slot maintenance
    # ------------------------------------------------------------------

    def update_slot_status(self, slot_number: str, status: SlotStatus) -> SlotDTO:
        """
        Operator toggle between Available and Maintenance

        Raises: NotFoundError, InvalidStatusTransitionError, NotAvailableError
        """
        with self.uow_factory() as uow:
            slot = uow.slots.get_by_number(slot_number.strip())
            if slot is None:
                raise NotFoundError("Parking slot not found.", slot_number=slot_number)

            old_status = slot.status
            slot.change_status(status)

            if not uow.slots.transition_status(slot.id, old_status, status):
                raise NotAvailableError(
                    f"Slot {slot.number} changed while updating. Please retry.",
                    slot_number=slot.number
                )

        self.logger.info(f"Slot {slot.number} status {old_status} -> {status}")
        self.event_bus.publish(SlotStatusChangedEvent(
            slot_number=slot.number,
            old_status=old_status.value,
            new_status=status.value
        ))
        return SlotDTO.from_domain(slot)

    def seed_slots(self) -> SeedResultDTO:
        """
        Replace the inventory (and session history) with the default layout

        Raises: NotAvailableError while any vehicle is parked
        """
        with self.uow_factory() as uow:
            active = uow.sessions.count_active()
            if active:
                raise NotAvailableError(
                    f"Cannot reseed slots while {active} vehicle(s) are parked. Check them out first.",
                    active_sessions=active
                )

            uow.sessions.delete_all()
            uow.slots.delete_all()

            slots = self.slot_factory.create_default_inventory()
            for slot in slots:
                uow.slots.add(slot)

        self.logger.info(f"Seeded {len(slots)} parking slots")
        self.event_bus.publish(InventorySeededEvent(slot_count=len(slots)))

        return SeedResultDTO(count=len(slots), slots=[SlotDTO.from_domain(slot) for slot in slots])

    def ensure_defaults(self) -> None:
        """Store the default tariff and inventory where none exist yet"""
        defaults = PricingFactory.create_default()

        with self.uow_factory() as uow:
            config = uow.pricing.get_config()
            if config.hourly is None:
                uow.pricing.save_hourly(defaults.hourly)
                self.logger.info("Stored default hourly pricing")
            if config.day_pass is None:
                uow.pricing.save_day_pass(defaults.day_pass)
                self.logger.info("Stored default day pass pricing")

            if uow.slots.count() == 0:
                for slot in self.slot_factory.create_default_inventory():
                    uow.slots.add(slot)
                self.logger.info("Stored default slot inventory")

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------

    def get_pricing(self) -> PricingDTO:
        with self.uow_factory() as uow:
            config = uow.pricing.get_config()
        return PricingDTO.from_domain(config)

    def update_hourly_pricing(self, request: HourlyPricingUpdateDTO) -> PricingDTO:
        hourly = PricingFactory.create_hourly(
            [(tier.duration_hours, tier.amount) for tier in request.hourly_rates],
            request.max_hourly_cap
        )

        with self.uow_factory() as uow:
            uow.pricing.save_hourly(hourly)
            config = uow.pricing.get_config()

        self.logger.info(f"Hourly pricing updated: {len(hourly.tiers)} tiers, cap {hourly.max_cap.format()}")
        self.event_bus.publish(PricingUpdatedEvent(
            billing_type=BillingType.HOURLY.value, pricing=hourly.to_dict()
        ))
        return PricingDTO.from_domain(config)

    def update_day_pass_rate(self, request: DayPassUpdateDTO) -> PricingDTO:
        day_pass = PricingFactory.create_day_pass(request.day_pass_rate)

        with self.uow_factory() as uow:
            uow.pricing.save_day_pass(day_pass)
            config = uow.pricing.get_config()

        self.logger.info(f"Day pass rate updated to {day_pass.rate.format()}")
        self.event_bus.publish(PricingUpdatedEvent(
            billing_type=BillingType.DAY_PASS.value, pricing=day_pass.to_dict()
        ))
        return PricingDTO.from_domain(config)

