# File: src/mallpark/infrastructure/repositories.py
"""
Repository Pattern Implementation for the Mall Parking System

Repositories give the application layer a collection-like interface over
slots, sessions and pricing records while hiding the storage technology.

Storage Implementations:
- InMemory*Repository - for unit tests and local experiments
- SQLAlchemy*Repository - for relational databases (SQLite, PostgreSQL)

A UnitOfWork groups the repositories of one use case into one transaction:
the slot and session writes of a check-in or check-out succeed together or
not at all. Conditional updates (occupy/release only from the expected
status) and a unique index on active plates keep concurrent requests from
both succeeding.
"""

from abc import ABC, abstractmethod
from typing import (
    Any, Callable, Dict, Generic, List, Optional, Type, TypeVar
)
from datetime import datetime
from decimal import Decimal
import copy
import logging
from uuid import uuid4

from sqlalchemy import (
    create_engine, Column, Integer, String, Boolean, DateTime, ForeignKey,
    Numeric, JSON, Index, func, text
)
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from sqlalchemy.pool import StaticPool

from ..domain.exceptions import DuplicateActiveSessionError
from ..domain.models import (
    BillingType, DayPassPricing, HourlyPricing, LicensePlate, Money,
    ParkingSession, ParkingSlot, PricingConfig, SessionStatus, SlotStatus,
    SlotType, VehicleType, utc_now
)

T = TypeVar('T')  # Entity type


# ============================================================================
# REPOSITORY INTERFACES
# ============================================================================

class Repository(ABC, Generic[T]):
    """Base repository interface"""

    @abstractmethod
    def add(self, entity: T) -> T:
        """Add an entity to the repository"""

    @abstractmethod
    def get(self, id: str) -> Optional[T]:
        """Get an entity by ID"""

    @abstractmethod
    def update(self, entity: T) -> T:
        """Persist changes to an existing entity"""

    @abstractmethod
    def count(self) -> int:
        """Count all entities"""


class SlotRepository(Repository[ParkingSlot], ABC):
    """Slot inventory"""

    @abstractmethod
    def get_by_number(self, number: str) -> Optional[ParkingSlot]:
        pass

    @abstractmethod
    def find(
        self,
        slot_type: Optional[SlotType] = None,
        status: Optional[SlotStatus] = None
    ) -> List[ParkingSlot]:
        """Slots matching the filters, ordered by slot number"""

    @abstractmethod
    def occupy_slot(self, slot_id: str, session_id: str) -> bool:
        """Mark slot occupied only if it is still Available"""

    @abstractmethod
    def release_slot(self, slot_id: str, session_id: str) -> bool:
        """Mark slot available only if it is occupied by the given session"""

    @abstractmethod
    def transition_status(self, slot_id: str, expected: SlotStatus, new_status: SlotStatus) -> bool:
        """Set new_status only if the slot is still in the expected status"""

    @abstractmethod
    def count_by_status(self) -> Dict[SlotStatus, int]:
        pass

    @abstractmethod
    def delete_all(self) -> int:
        pass


class SessionRepository(Repository[ParkingSession], ABC):
    """Parking sessions"""

    @abstractmethod
    def find_active_by_plate(self, license_plate: str) -> Optional[ParkingSession]:
        pass

    @abstractmethod
    def count_active(self) -> int:
        pass

    @abstractmethod
    def find_completed(
        self,
        exit_from: Optional[datetime] = None,
        exit_to: Optional[datetime] = None,
        entry_from: Optional[datetime] = None,
        entry_to: Optional[datetime] = None
    ) -> List[ParkingSession]:
        """Completed sessions inside the given (inclusive) bounds"""

    @abstractmethod
    def delete_all(self) -> int:
        pass


class PricingRepository(ABC):
    """Pricing records keyed by billing type"""

    @abstractmethod
    def get_config(self) -> PricingConfig:
        pass

    @abstractmethod
    def save_hourly(self, pricing: HourlyPricing) -> HourlyPricing:
        pass

    @abstractmethod
    def save_day_pass(self, pricing: DayPassPricing) -> DayPassPricing:
        pass


class UnitOfWork(ABC):
    """
    Unit of Work pattern for transaction management
    Commits when the block exits normally, rolls back on an exception.
    """

    slots: SlotRepository
    sessions: SessionRepository
    pricing: PricingRepository

    def __enter__(self) -> 'UnitOfWork':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.rollback()
        else:
            self.commit()

    @abstractmethod
    def commit(self):
        """Commit the transaction"""

    @abstractmethod
    def rollback(self):
        """Rollback the transaction"""


# ============================================================================
# SQLALCHEMY ORM MODELS
# ============================================================================

Base = declarative_base()


class ParkingSlotModel(Base):
    """SQLAlchemy model for ParkingSlot"""
    __tablename__ = 'parking_slots'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    number = Column(String(20), nullable=False, unique=True, index=True)
    slot_type = Column(String(30), nullable=False)
    status = Column(String(20), nullable=False, default=SlotStatus.AVAILABLE.value, index=True)
    has_charger = Column(Boolean, nullable=False, default=False)
    # Plain column: sessions already reference slots
    current_session_id = Column(String(36), nullable=True)

    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)


class ParkingSessionModel(Base):
    """SQLAlchemy model for ParkingSession"""
    __tablename__ = 'parking_sessions'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    license_plate = Column(String(20), nullable=False, index=True)
    vehicle_type = Column(String(30), nullable=False)
    slot_id = Column(String(36), ForeignKey('parking_slots.id'), nullable=False, index=True)
    entry_time = Column(DateTime, nullable=False, index=True)
    exit_time = Column(DateTime, nullable=True, index=True)
    status = Column(String(20), nullable=False, default=SessionStatus.ACTIVE.value)
    billing_type = Column(String(20), nullable=False)
    billing_amount = Column(Numeric(10, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default='USD')

    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        # One active session per plate
        Index(
            'uq_parking_sessions_active_plate',
            'license_plate',
            unique=True,
            sqlite_where=text("status = 'Active'"),
            postgresql_where=text("status = 'Active'"),
        ),
    )


class PricingConfigModel(Base):
    """SQLAlchemy model for a pricing record"""
    __tablename__ = 'pricing_configs'

    id = Column(Integer, primary_key=True, autoincrement=True)
    billing_type = Column(String(20), nullable=False, unique=True)
    hourly_rates = Column(JSON, default=list)
    day_pass_rate = Column(Numeric(10, 2), nullable=True)
    max_hourly_cap = Column(Numeric(10, 2), nullable=True)
    currency = Column(String(3), nullable=False, default='USD')

    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)


# ============================================================================
# DOMAIN <-> ORM MAPPING
# ============================================================================

class Mapper:
    """Maps between domain objects and ORM models"""

    @staticmethod
    def apply_slot(slot: ParkingSlot, model: ParkingSlotModel) -> ParkingSlotModel:
        model.number = slot.number
        model.slot_type = slot.slot_type.value
        model.status = slot.status.value
        model.has_charger = slot.has_charger
        model.current_session_id = slot.current_session_id
        return model

    @staticmethod
    def slot_to_orm(slot: ParkingSlot) -> ParkingSlotModel:
        return Mapper.apply_slot(slot, ParkingSlotModel(id=slot.id))

    @staticmethod
    def slot_to_domain(model: ParkingSlotModel) -> ParkingSlot:
        return ParkingSlot(
            number=model.number,
            slot_type=SlotType(model.slot_type),
            status=SlotStatus(model.status),
            has_charger=model.has_charger,
            current_session_id=model.current_session_id,
            id=model.id
        )

    @staticmethod
    def apply_session(session: ParkingSession, model: ParkingSessionModel) -> ParkingSessionModel:
        model.license_plate = session.license_plate.value
        model.vehicle_type = session.vehicle_type.value
        model.slot_id = session.slot_id
        model.entry_time = session.entry_time
        model.exit_time = session.exit_time
        model.status = session.status.value
        model.billing_type = session.billing_type.value
        model.billing_amount = session.billing_amount.amount
        model.currency = session.billing_amount.currency
        return model

    @staticmethod
    def session_to_orm(session: ParkingSession) -> ParkingSessionModel:
        return Mapper.apply_session(session, ParkingSessionModel(id=session.id))

    @staticmethod
    def session_to_domain(model: ParkingSessionModel) -> ParkingSession:
        return ParkingSession(
            license_plate=LicensePlate(model.license_plate),
            vehicle_type=VehicleType(model.vehicle_type),
            slot_id=model.slot_id,
            billing_type=BillingType(model.billing_type),
            entry_time=model.entry_time,
            billing_amount=Money(Decimal(str(model.billing_amount)), model.currency),
            exit_time=model.exit_time,
            status=SessionStatus(model.status),
            id=model.id
        )

    @staticmethod
    def hourly_to_domain(model: PricingConfigModel) -> HourlyPricing:
        pairs = [(rate['durationHours'], rate['amount']) for rate in (model.hourly_rates or [])]
        return HourlyPricing.from_pairs(pairs, model.max_hourly_cap, model.currency)

    @staticmethod
    def day_pass_to_domain(model: PricingConfigModel) -> DayPassPricing:
        return DayPassPricing(Money(Decimal(str(model.day_pass_rate)), model.currency))


# ============================================================================
# IN-MEMORY REPOSITORIES (For Testing)
# ============================================================================

class InMemoryRepository(Repository[T]):
    """
    In-memory repository for testing
    Stores and hands out copies so callers never alias stored state.
    """

    def __init__(self):
        self._storage: Dict[str, T] = {}
        self._logger = logging.getLogger(self.__class__.__name__)

    def add(self, entity: T) -> T:
        self._storage[entity.id] = copy.deepcopy(entity)
        self._logger.debug(f"Added entity {entity.id}")
        return entity

    def get(self, id: str) -> Optional[T]:
        entity = self._storage.get(id)
        return copy.deepcopy(entity) if entity is not None else None

    def update(self, entity: T) -> T:
        if entity.id not in self._storage:
            raise KeyError(f"Entity {entity.id} not found")

        self._storage[entity.id] = copy.deepcopy(entity)
        self._logger.debug(f"Updated entity {entity.id}")
        return entity

    def count(self) -> int:
        return len(self._storage)

    def delete_all(self) -> int:
        removed = len(self._storage)
        self._storage.clear()
        return removed

    def snapshot(self) -> Dict[str, T]:
        return copy.deepcopy(self._storage)

    def restore(self, snapshot: Dict[str, T]) -> None:
        self._storage = snapshot


class InMemorySlotRepository(InMemoryRepository[ParkingSlot], SlotRepository):
    """In-memory slot inventory"""

    def get_by_number(self, number: str) -> Optional[ParkingSlot]:
        for slot in self._storage.values():
            if slot.number == number:
                return copy.deepcopy(slot)
        return None

    def find(self, slot_type=None, status=None) -> List[ParkingSlot]:
        slots = [
            copy.deepcopy(slot) for slot in self._storage.values()
            if (slot_type is None or slot.slot_type == slot_type)
            and (status is None or slot.status == status)
        ]
        return sorted(slots, key=lambda slot: slot.number)

    def add(self, entity: ParkingSlot) -> ParkingSlot:
        if self.get_by_number(entity.number) is not None:
            raise ValueError(f"Slot number {entity.number} already exists")
        return super().add(entity)

    def occupy_slot(self, slot_id: str, session_id: str) -> bool:
        slot = self._storage.get(slot_id)
        if slot is None or slot.status != SlotStatus.AVAILABLE:
            return False
        slot.status = SlotStatus.OCCUPIED
        slot.current_session_id = session_id
        return True

    def release_slot(self, slot_id: str, session_id: str) -> bool:
        slot = self._storage.get(slot_id)
        if slot is None or slot.current_session_id != session_id:
            return False
        slot.release()
        return True

    def transition_status(self, slot_id: str, expected: SlotStatus, new_status: SlotStatus) -> bool:
        slot = self._storage.get(slot_id)
        if slot is None or slot.status != expected:
            return False
        slot.status = new_status
        return True

    def count_by_status(self) -> Dict[SlotStatus, int]:
        counts = {status: 0 for status in SlotStatus}
        for slot in self._storage.values():
            counts[slot.status] += 1
        return counts


class InMemorySessionRepository(InMemoryRepository[ParkingSession], SessionRepository):
    """In-memory parking sessions"""

    def add(self, entity: ParkingSession) -> ParkingSession:
        if entity.is_active and self.find_active_by_plate(entity.license_plate.value):
            raise DuplicateActiveSessionError(
                f"Vehicle with number plate {entity.license_plate} is already actively parked.",
                license_plate=entity.license_plate.value
            )
        return super().add(entity)

    def find_active_by_plate(self, license_plate: str) -> Optional[ParkingSession]:
        for session in self._storage.values():
            if session.is_active and session.license_plate.value == license_plate:
                return copy.deepcopy(session)
        return None

    def count_active(self) -> int:
        return sum(1 for session in self._storage.values() if session.is_active)

    def find_completed(self, exit_from=None, exit_to=None, entry_from=None, entry_to=None):
        results = []
        for session in self._storage.values():
            if session.status != SessionStatus.COMPLETED:
                continue
            if exit_from is not None and session.exit_time < exit_from:
                continue
            if exit_to is not None and session.exit_time > exit_to:
                continue
            if entry_from is not None and session.entry_time < entry_from:
                continue
            if entry_to is not None and session.entry_time > entry_to:
                continue
            results.append(copy.deepcopy(session))
        return sorted(results, key=lambda session: session.exit_time)


class InMemoryPricingRepository(PricingRepository):
    """In-memory pricing records"""

    def __init__(self):
        self._config = PricingConfig()

    def get_config(self) -> PricingConfig:
        return self._config

    def save_hourly(self, pricing: HourlyPricing) -> HourlyPricing:
        self._config = PricingConfig(hourly=pricing, day_pass=self._config.day_pass)
        return pricing

    def save_day_pass(self, pricing: DayPassPricing) -> DayPassPricing:
        self._config = PricingConfig(hourly=self._config.hourly, day_pass=pricing)
        return pricing

    def snapshot(self) -> PricingConfig:
        return self._config

    def restore(self, snapshot: PricingConfig) -> None:
        self._config = snapshot


class InMemoryUnitOfWork(UnitOfWork):
    """
    Unit of Work over shared in-memory repositories
    Rollback restores the state captured when the block was entered.
    """

    def __init__(
        self,
        slots: InMemorySlotRepository,
        sessions: InMemorySessionRepository,
        pricing: InMemoryPricingRepository
    ):
        self.slots = slots
        self.sessions = sessions
        self.pricing = pricing
        self._snapshot: Optional[Dict[str, Any]] = None
        self._logger = logging.getLogger(self.__class__.__name__)

    def __enter__(self) -> 'InMemoryUnitOfWork':
        self._snapshot = {
            'slots': self.slots.snapshot(),
            'sessions': self.sessions.snapshot(),
            'pricing': self.pricing.snapshot(),
        }
        return self

    def commit(self):
        self._snapshot = None

    def rollback(self):
        if self._snapshot is not None:
            self.slots.restore(self._snapshot['slots'])
            self.sessions.restore(self._snapshot['sessions'])
            self.pricing.restore(self._snapshot['pricing'])
            self._snapshot = None
            self._logger.debug("In-memory transaction rolled back")


# ============================================================================
# SQLALCHEMY REPOSITORIES
# ============================================================================

class SQLAlchemyRepository(Repository[T], ABC):
    """Base SQLAlchemy repository"""

    def __init__(self, session: Session):
        self.session = session
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    @abstractmethod
    def model_class(self) -> Type[Base]:
        """Return SQLAlchemy model class"""

    @abstractmethod
    def to_domain(self, model: Base) -> T:
        """Convert ORM model to domain model"""

    @abstractmethod
    def to_orm(self, entity: T) -> Base:
        """Convert domain model to ORM model"""

    @abstractmethod
    def apply(self, entity: T, model: Base) -> None:
        """Copy entity state onto an existing ORM model"""

    def add(self, entity: T) -> T:
        try:
            model = self.to_orm(entity)
            self.session.add(model)
            self.session.flush()
            self._logger.debug(f"Added entity: {model.id}")
            return entity
        except SQLAlchemyError as e:
            self.session.rollback()
            self._logger.error(f"Database error adding entity: {e}")
            raise

    def get(self, id: str) -> Optional[T]:
        try:
            model = self.session.get(self.model_class, id)
            if model:
                return self.to_domain(model)
            return None
        except SQLAlchemyError as e:
            self._logger.error(f"Database error getting entity {id}: {e}")
            raise

    def update(self, entity: T) -> T:
        try:
            model = self.session.get(self.model_class, entity.id)
            if not model:
                raise KeyError(f"Entity {entity.id} not found")

            self.apply(entity, model)
            self.session.flush()
            self._logger.debug(f"Updated entity: {entity.id}")
            return entity
        except SQLAlchemyError as e:
            self.session.rollback()
            self._logger.error(f"Database error updating entity: {e}")
            raise

    def count(self) -> int:
        try:
            return self.session.query(self.model_class).count()
        except SQLAlchemyError as e:
            self._logger.error(f"Database error counting entities: {e}")
            raise

    def delete_all(self) -> int:
        try:
            removed = self.session.query(self.model_class).delete(synchronize_session=False)
            self.session.flush()
            return removed
        except SQLAlchemyError as e:
            self.session.rollback()
            self._logger.error(f"Database error deleting entities: {e}")
            raise


class SQLAlchemySlotRepository(SQLAlchemyRepository[ParkingSlot], SlotRepository):
    """Repository for parking slots"""

    @property
    def model_class(self) -> Type[Base]:
        return ParkingSlotModel

    def to_domain(self, model: ParkingSlotModel) -> ParkingSlot:
        return Mapper.slot_to_domain(model)

    def to_orm(self, entity: ParkingSlot) -> ParkingSlotModel:
        return Mapper.slot_to_orm(entity)

    def apply(self, entity: ParkingSlot, model: ParkingSlotModel) -> None:
        Mapper.apply_slot(entity, model)

    def get_by_number(self, number: str) -> Optional[ParkingSlot]:
        try:
            model = self.session.query(ParkingSlotModel).filter(
                ParkingSlotModel.number == number
            ).first()
            return self.to_domain(model) if model else None
        except SQLAlchemyError as e:
            self._logger.error(f"Database error getting slot {number}: {e}")
            raise

    def find(self, slot_type=None, status=None) -> List[ParkingSlot]:
        try:
            query = self.session.query(ParkingSlotModel)

            if slot_type:
                query = query.filter(ParkingSlotModel.slot_type == slot_type.value)

            if status:
                query = query.filter(ParkingSlotModel.status == status.value)

            models = query.order_by(ParkingSlotModel.number).all()
            return [self.to_domain(model) for model in models]
        except SQLAlchemyError as e:
            self._logger.error(f"Database error finding slots: {e}")
            raise

    def occupy_slot(self, slot_id: str, session_id: str) -> bool:
        try:
            result = self.session.query(ParkingSlotModel).filter(
                ParkingSlotModel.id == slot_id,
                ParkingSlotModel.status == SlotStatus.AVAILABLE.value
            ).update({
                'status': SlotStatus.OCCUPIED.value,
                'current_session_id': session_id,
                'updated_at': utc_now()
            }, synchronize_session='fetch')

            self.session.flush()
            return result > 0
        except SQLAlchemyError as e:
            self.session.rollback()
            self._logger.error(f"Database error occupying slot: {e}")
            raise

    def release_slot(self, slot_id: str, session_id: str) -> bool:
        try:
            result = self.session.query(ParkingSlotModel).filter(
                ParkingSlotModel.id == slot_id,
                ParkingSlotModel.current_session_id == session_id
            ).update({
                'status': SlotStatus.AVAILABLE.value,
                'current_session_id': None,
                'updated_at': utc_now()
            }, synchronize_session='fetch')

            self.session.flush()
            return result > 0
        except SQLAlchemyError as e:
            self.session.rollback()
            self._logger.error(f"Database error releasing slot: {e}")
            raise

    def transition_status(self, slot_id: str, expected: SlotStatus, new_status: SlotStatus) -> bool:
        try:
            result = self.session.query(ParkingSlotModel).filter(
                ParkingSlotModel.id == slot_id,
                ParkingSlotModel.status == expected.value
            ).update({
                'status': new_status.value,
                'updated_at': utc_now()
            }, synchronize_session='fetch')

            self.session.flush()
            return result > 0
        except SQLAlchemyError as e:
            self.session.rollback()
            self._logger.error(f"Database error changing slot status: {e}")
            raise

    def count_by_status(self) -> Dict[SlotStatus, int]:
        try:
            rows = self.session.query(
                ParkingSlotModel.status, func.count(ParkingSlotModel.id)
            ).group_by(ParkingSlotModel.status).all()

            counts = {status: 0 for status in SlotStatus}
            for status, total in rows:
                counts[SlotStatus(status)] = total
            return counts
        except SQLAlchemyError as e:
            self._logger.error(f"Database error counting slots by status: {e}")
            raise


class SQLAlchemySessionRepository(SQLAlchemyRepository[ParkingSession], SessionRepository):
    """Repository for parking sessions"""

    @property
    def model_class(self) -> Type[Base]:
        return ParkingSessionModel

    def to_domain(self, model: ParkingSessionModel) -> ParkingSession:
        return Mapper.session_to_domain(model)

    def to_orm(self, entity: ParkingSession) -> ParkingSessionModel:
        return Mapper.session_to_orm(entity)

    def apply(self, entity: ParkingSession, model: ParkingSessionModel) -> None:
        Mapper.apply_session(entity, model)

    def add(self, entity: ParkingSession) -> ParkingSession:
        try:
            return super().add(entity)
        except IntegrityError as e:
            raise DuplicateActiveSessionError(
                f"Vehicle with number plate {entity.license_plate} is already actively parked.",
                license_plate=entity.license_plate.value
            ) from e

    def find_active_by_plate(self, license_plate: str) -> Optional[ParkingSession]:
        try:
            model = self.session.query(ParkingSessionModel).filter(
                ParkingSessionModel.license_plate == license_plate,
                ParkingSessionModel.status == SessionStatus.ACTIVE.value
            ).first()
            return self.to_domain(model) if model else None
        except SQLAlchemyError as e:
            self._logger.error(f"Database error finding active session for {license_plate}: {e}")
            raise

    def count_active(self) -> int:
        try:
            return self.session.query(ParkingSessionModel).filter(
                ParkingSessionModel.status == SessionStatus.ACTIVE.value
            ).count()
        except SQLAlchemyError as e:
            self._logger.error(f"Database error counting active sessions: {e}")
            raise

    def find_completed(self, exit_from=None, exit_to=None, entry_from=None, entry_to=None):
        try:
            query = self.session.query(ParkingSessionModel).filter(
                ParkingSessionModel.status == SessionStatus.COMPLETED.value
            )

            if exit_from is not None:
                query = query.filter(ParkingSessionModel.exit_time >= exit_from)
            if exit_to is not None:
                query = query.filter(ParkingSessionModel.exit_time <= exit_to)
            if entry_from is not None:
                query = query.filter(ParkingSessionModel.entry_time >= entry_from)
            if entry_to is not None:
                query = query.filter(ParkingSessionModel.entry_time <= entry_to)

            models = query.order_by(ParkingSessionModel.exit_time).all()
            return [self.to_domain(model) for model in models]
        except SQLAlchemyError as e:
            self._logger.error(f"Database error finding completed sessions: {e}")
            raise


class SQLAlchemyPricingRepository(PricingRepository):
    """Repository for pricing records"""

    def __init__(self, session: Session):
        self.session = session
        self._logger = logging.getLogger(self.__class__.__name__)

    def _get_model(self, billing_type: BillingType) -> Optional[PricingConfigModel]:
        return self.session.query(PricingConfigModel).filter(
            PricingConfigModel.billing_type == billing_type.value
        ).first()

    def get_config(self) -> PricingConfig:
        try:
            hourly_model = self._get_model(BillingType.HOURLY)
            day_pass_model = self._get_model(BillingType.DAY_PASS)
        except SQLAlchemyError as e:
            self._logger.error(f"Database error loading pricing: {e}")
            raise

        hourly = None
        if hourly_model is not None and hourly_model.hourly_rates and hourly_model.max_hourly_cap is not None:
            hourly = Mapper.hourly_to_domain(hourly_model)

        day_pass = None
        if day_pass_model is not None and day_pass_model.day_pass_rate is not None:
            day_pass = Mapper.day_pass_to_domain(day_pass_model)

        return PricingConfig(hourly=hourly, day_pass=day_pass)

    def _upsert(self, billing_type: BillingType, values: Dict[str, Any]) -> None:
        try:
            model = self._get_model(billing_type)
            if model is None:
                model = PricingConfigModel(billing_type=billing_type.value)
                self.session.add(model)

            for key, value in values.items():
                setattr(model, key, value)

            self.session.flush()
        except SQLAlchemyError as e:
            self.session.rollback()
            self._logger.error(f"Database error saving {billing_type} pricing: {e}")
            raise

    def save_hourly(self, pricing: HourlyPricing) -> HourlyPricing:
        self._upsert(BillingType.HOURLY, {
            'hourly_rates': pricing.to_dict()['hourlyRates'],
            'max_hourly_cap': pricing.max_cap.amount,
            'currency': pricing.max_cap.currency,
        })
        return pricing

    def save_day_pass(self, pricing: DayPassPricing) -> DayPassPricing:
        self._upsert(BillingType.DAY_PASS, {
            'day_pass_rate': pricing.rate.amount,
            'currency': pricing.rate.currency,
        })
        return pricing


class SQLAlchemyUnitOfWork(UnitOfWork):
    """SQLAlchemy implementation of Unit of Work"""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory
        self.session: Optional[Session] = None
        self._logger = logging.getLogger(self.__class__.__name__)

    def __enter__(self) -> 'SQLAlchemyUnitOfWork':
        self.session = self.session_factory()

        self.slots = SQLAlchemySlotRepository(self.session)
        self.sessions = SQLAlchemySessionRepository(self.session)
        self.pricing = SQLAlchemyPricingRepository(self.session)

        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            super().__exit__(exc_type, exc_val, exc_tb)
        finally:
            self.session.close()

    def commit(self):
        try:
            self.session.commit()
            self._logger.debug("Transaction committed")
        except SQLAlchemyError as e:
            self._logger.error(f"Error committing transaction: {e}")
            self.session.rollback()
            raise

    def rollback(self):
        self.session.rollback()
        self._logger.debug("Transaction rolled back")


# ============================================================================
# REPOSITORY FACTORY
# ============================================================================

UnitOfWorkFactory = Callable[[], UnitOfWork]


class RepositoryFactory:
    """Builds unit-of-work factories for the configured storage"""

    @staticmethod
    def create_engine_for_url(database_url: str):
        """Engine for the URL; in-memory SQLite shares one connection across threads"""
        if database_url.startswith("sqlite"):
            kwargs: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                kwargs["poolclass"] = StaticPool
            return create_engine(database_url, echo=False, **kwargs)
        return create_engine(database_url, echo=False, pool_pre_ping=True)

    @staticmethod
    def create_sqlalchemy_uow_factory(database_url: str) -> UnitOfWorkFactory:
        engine = RepositoryFactory.create_engine_for_url(database_url)
        SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

        # Create tables if they don't exist
        Base.metadata.create_all(bind=engine)

        return lambda: SQLAlchemyUnitOfWork(SessionLocal)

    @staticmethod
    def create_in_memory_uow_factory() -> UnitOfWorkFactory:
        slots = InMemorySlotRepository()
        sessions = InMemorySessionRepository()
        pricing = InMemoryPricingRepository()
        return lambda: InMemoryUnitOfWork(slots, sessions, pricing)
