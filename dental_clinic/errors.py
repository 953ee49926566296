"""
Core exceptions for the appointment lifecycle.

Services raise these; the HTTP layer turns them into JSON error responses
using each class's status_code. None of them should take the process down.
"""
from typing import Any, Dict, Optional


class ClinicError(Exception):
    """Base class for all recoverable core errors."""

    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def code(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            'success': False,
            'error': self.message,
            'code': self.code,
            'details': self.details,
        }


class ValidationError(ClinicError):
    """Raised when an input field is missing or malformed."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, {'field': field} if field else None)
        self.field = field


class InvalidWindow(ClinicError):
    def __init__(self, start, end):
        super().__init__(
            f"Appointment end ({end}) must be after start ({start})",
            {'start': str(start), 'end': str(end)},
        )
        self.start = start
        self.end = end


class SchedulingConflict(ClinicError):
    """Raised when a window overlaps an active appointment of the same party."""

    status_code = 409

    def __init__(self, appointment_id: int, serial: Optional[str], party: str):
        super().__init__(
            f"Time window overlaps appointment {serial or appointment_id} for the same {party}",
            {'appointment_id': appointment_id, 'serial': serial, 'party': party},
        )
        self.appointment_id = appointment_id
        self.serial = serial
        self.party = party


class IllegalTransition(ClinicError):
    status_code = 409

    def __init__(self, from_status, to_status, reason: Optional[str] = None):
        from_value = getattr(from_status, 'value', from_status)
        to_value = getattr(to_status, 'value', to_status)
        message = f"Cannot change status from {from_value} to {to_value}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, {'from': from_value, 'to': to_value, 'reason': reason})
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason


class AppointmentClosed(ClinicError):
    status_code = 409

    def __init__(self, appointment_id: int, status, operation: str):
        status_value = getattr(status, 'value', status)
        super().__init__(
            f"Appointment {appointment_id} is {status_value}; cannot {operation}",
            {'appointment_id': appointment_id, 'status': status_value, 'operation': operation},
        )
        self.appointment_id = appointment_id
        self.status = status


class InvalidTooth(ClinicError):
    def __init__(self, tooth_number):
        super().__init__(
            f"Tooth number {tooth_number} is not a valid FDI tooth number",
            {'tooth_number': tooth_number},
        )
        self.tooth_number = tooth_number


class InvalidCost(ClinicError):
    def __init__(self, cost, reason: str = 'must be a non-negative decimal amount'):
        super().__init__(f"Invalid cost {cost!r}: {reason}", {'cost': str(cost)})
        self.cost = cost


class NotFound(ClinicError):
    status_code = 404

    def __init__(self, entity_type: str, entity_id: Any, message: Optional[str] = None):
        super().__init__(
            message or f"{entity_type} {entity_id} not found",
            {'entity_type': entity_type, 'entity_id': str(entity_id)},
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


class SequenceUnavailable(ClinicError):
    status_code = 503

    def __init__(self, kind: str):
        super().__init__(f"Could not allocate a {kind} identifier", {'kind': kind})
        self.kind = kind


class AttachmentCleanupFailed(ClinicError):
    status_code = 502

    def __init__(self, appointment_id: int, reason: Optional[str] = None):
        message = f"Attachment storage did not confirm cleanup for appointment {appointment_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, {'appointment_id': appointment_id})
        self.appointment_id = appointment_id


class StorageUnavailable(ClinicError):
    """Persistence failed on a write; the caller must re-submit."""

    status_code = 503

    def __init__(self, operation: str):
        super().__init__(f"Storage unavailable during {operation}; please retry", {'operation': operation})
        self.operation = operation
