# File: src/mallpark/domain/exceptions.py
"""
Domain Errors for the Mall Parking System

Every business-rule failure is a ParkingError subclass with a stable `code`.
All of them are recoverable: the caller (the HTTP layer) decides how to
report them. The domain never logs or retries them.
"""

from typing import Any, Dict


class ParkingError(Exception):
    """Base class for all parking business-rule failures"""

    code = "ParkingError"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        data = {"code": self.code, "msg": self.message}
        if self.details:
            data["details"] = self.details
        return data


class NotFoundError(ParkingError):
    """Referenced slot or session does not exist"""
    code = "NotFound"


class NotAvailableError(ParkingError):
    """Slot is not in a state that permits assignment"""
    code = "NotAvailable"


class TypeMismatchError(ParkingError):
    """Vehicle type cannot use the slot type"""
    code = "TypeMismatch"


class ChargerUnavailableError(ParkingError):
    """EV slot has no charger"""
    code = "ChargerUnavailable"


class NoSlotAvailableError(ParkingError):
    """Automatic search exhausted all fallback steps"""
    code = "NoSlotAvailable"


class DuplicateActiveSessionError(ParkingError):
    """Vehicle plate already has an active session"""
    code = "DuplicateActiveSession"


class InvalidIntervalError(ParkingError, ValueError):
    """Exit time precedes entry time"""
    code = "InvalidInterval"


class MissingPricingConfigError(ParkingError):
    """Required pricing record is absent from the store"""
    code = "MissingPricingConfig"


class InvalidStatusTransitionError(ParkingError):
    """Operator status change not permitted for the slot"""
    code = "InvalidStatusTransition"


class SessionClosedError(ParkingError):
    """Session was already checked out"""
    code = "SessionClosed"

