"""
Ledger Service
Tooth-level dental procedures and their costs for one appointment
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from dental_clinic.errors import AppointmentClosed, InvalidCost, InvalidTooth, NotFound
from dental_clinic.models import Appointment, AppointmentStatus, DentalProcedure
from dental_clinic.utils.audit import log_audit
from dental_clinic.utils.parsing import parse_money
from dental_clinic.utils.queries import load_appointment, load_service
from dental_clinic.utils.transaction import atomic, retry_read_once

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')

# FDI quadrants -> highest tooth position in that quadrant
# 1-4 permanent (8 teeth each), 5-8 primary (5 teeth each)
FDI_QUADRANTS = {1: 8, 2: 8, 3: 8, 4: 8, 5: 5, 6: 5, 7: 5, 8: 5}


def is_valid_tooth(tooth_number) -> bool:
    """True for FDI two-digit tooth numbers (11-18 ... 41-48, 51-55 ... 81-85)."""
    if isinstance(tooth_number, bool) or not isinstance(tooth_number, int):
        return False
    quadrant, position = divmod(tooth_number, 10)
    return quadrant in FDI_QUADRANTS and 1 <= position <= FDI_QUADRANTS[quadrant]


def validate_tooth(tooth_number) -> int:
    if isinstance(tooth_number, str) and tooth_number.strip().isdigit():
        tooth_number = int(tooth_number.strip())
    if not is_valid_tooth(tooth_number):
        raise InvalidTooth(tooth_number)
    return tooth_number


def _ensure_open(appointment: Appointment, operation: str) -> None:
    if appointment.status.is_terminal:
        logger.warning("Ledger %s refused for %s (%s)", operation, appointment.serial, appointment.status.value)
        raise AppointmentClosed(appointment.id, appointment.status, operation)


def ledger_total(appointment: Appointment) -> Decimal:
    """Exact sum of the appointment's procedure costs."""
    return sum((p.cost for p in appointment.procedures), ZERO)


def add_procedure(
    appointment_id: int,
    tooth_number: int,
    service_id: Optional[int] = None,
    cost=None,
    notes: Optional[str] = None,
    user_id: Optional[int] = None,
) -> DentalProcedure:
    """
    Record a procedure on a tooth for an open appointment.

    Args:
        appointment_id: Appointment ID
        tooth_number: FDI tooth number
        service_id: Catalog service (optional)
        cost: Charged amount; defaults to the service's current price
        notes: Clinical notes (optional)
        user_id: Acting staff user (optional, for audit)

    Returns:
        DentalProcedure: The stored procedure, cost frozen as a snapshot

    Raises:
        NotFound: unknown appointment or service
        AppointmentClosed: appointment is COMPLETED or CANCELLED
        InvalidTooth: tooth number outside the FDI scheme
        InvalidCost: negative, fractional-cent or float cost, or no cost and no service
    """
    with atomic('add_procedure'):
        appointment = load_appointment(appointment_id, for_update=True)
        _ensure_open(appointment, 'add procedure')
        tooth_number = validate_tooth(tooth_number)

        service = load_service(service_id) if service_id is not None else None
        if cost is None:
            if service is None:
                raise InvalidCost(cost, 'a cost is required when no service is given')
            cost = service.price
        try:
            amount = parse_money(cost)
        except ValueError as e:
            raise InvalidCost(cost, str(e))

        next_position = max((p.position for p in appointment.procedures), default=0) + 1
        procedure = DentalProcedure(
            tooth_number=tooth_number,
            service_id=service.id if service else None,
            cost=amount,
            notes=notes,
            position=next_position,
        )
        appointment.procedures.append(procedure)
        log_audit(
            'appointment', 'add_procedure', user_id=user_id, entity_id=appointment.serial,
            details={'tooth_number': tooth_number, 'service_id': procedure.service_id, 'cost': amount},
        )

    logger.info("Procedure on tooth %s (%s) added to %s", tooth_number, amount, appointment.serial)
    return procedure


def remove_procedure(appointment_id: int, procedure_id: int, user_id: Optional[int] = None) -> None:
    """
    Remove a procedure from an open appointment.

    Raises:
        NotFound: unknown appointment, or the procedure is not on this appointment
        AppointmentClosed: appointment is COMPLETED or CANCELLED
    """
    with atomic('remove_procedure'):
        appointment = load_appointment(appointment_id, for_update=True)
        _ensure_open(appointment, 'remove procedure')

        procedure = next((p for p in appointment.procedures if p.id == procedure_id), None)
        if procedure is None:
            raise NotFound(
                'DentalProcedure', procedure_id,
                f"Procedure {procedure_id} is not recorded on appointment {appointment_id}",
            )
        appointment.procedures.remove(procedure)
        log_audit(
            'appointment', 'remove_procedure', user_id=user_id, entity_id=appointment.serial,
            details={'procedure_id': procedure_id, 'tooth_number': procedure.tooth_number},
        )

    logger.info("Procedure %s removed from %s", procedure_id, appointment.serial)


@retry_read_once
def list_procedures(appointment_id: int) -> List[DentalProcedure]:
    return list(load_appointment(appointment_id).procedures)


@retry_read_once
def total_cost(appointment_id: int) -> Decimal:
    """Sum of all procedure costs on the appointment, as an exact Decimal."""
    return ledger_total(load_appointment(appointment_id))


@retry_read_once
def completed_revenue(
    range_start: Optional[datetime] = None,
    range_end: Optional[datetime] = None,
    practitioner_id: Optional[int] = None,
) -> Decimal:
    """
    Sum of frozen totals for appointments completed in [range_start, range_end).

    Cancelled appointments never contribute, whatever procedures they hold.
    """
    query = Appointment.query.filter(Appointment.status == AppointmentStatus.COMPLETED)
    if range_start is not None:
        query = query.filter(Appointment.completed_at >= range_start)
    if range_end is not None:
        query = query.filter(Appointment.completed_at < range_end)
    if practitioner_id is not None:
        query = query.filter(Appointment.practitioner_id == practitioner_id)
    return sum((a.total_cost or ZERO for a in query), ZERO)
