"""
Appointment status workflow.

    DRAFT -> CONFIRMED -> IN_EXAM -> EXAM_COMPLETED -> COMPLETED
      \\__________\\___________\\_____________\\______-> CANCELLED

COMPLETED and CANCELLED are terminal. Entering COMPLETED freezes the
ledger total on the appointment.
"""
import logging
from datetime import datetime
from typing import Optional

from flask import current_app

from dental_clinic.errors import IllegalTransition, ValidationError
from dental_clinic.models import Appointment, AppointmentStatus, AppointmentType
from dental_clinic.services.ledger_service import ledger_total
from dental_clinic.utils.audit import log_audit

logger = logging.getLogger(__name__)

S = AppointmentStatus

TRANSITIONS = {
    S.DRAFT: frozenset({S.CONFIRMED, S.CANCELLED}),
    S.CONFIRMED: frozenset({S.IN_EXAM, S.CANCELLED}),
    S.IN_EXAM: frozenset({S.EXAM_COMPLETED, S.CANCELLED}),
    S.EXAM_COMPLETED: frozenset({S.COMPLETED, S.CANCELLED}),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
}


def coerce_status(value) -> AppointmentStatus:
    """Accept an AppointmentStatus or its name ('CONFIRMED', 'confirmed')."""
    if isinstance(value, AppointmentStatus):
        return value
    try:
        return AppointmentStatus(str(value).strip().upper())
    except ValueError:
        valid = ', '.join(s.value for s in AppointmentStatus)
        raise ValidationError(f'Invalid status {value!r}. Valid values: {valid}', field='status')


def allowed_targets(status: AppointmentStatus):
    return TRANSITIONS[status]


def is_allowed(from_status: AppointmentStatus, to_status: AppointmentStatus) -> bool:
    return to_status in TRANSITIONS[from_status]


def _check_preconditions(appointment: Appointment, target: AppointmentStatus,
                         override: bool, now: datetime) -> None:
    current = appointment.status

    if target == S.IN_EXAM:
        enforce = current_app.config.get('ENFORCE_EXAM_START_TIME', True)
        if enforce and appointment.appointment_type != AppointmentType.WALK_IN and now < appointment.start_time:
            raise IllegalTransition(current, target, 'appointment has not started yet')

    if target == S.COMPLETED and not override and not appointment.procedures:
        raise IllegalTransition(current, target, 'no procedures recorded; pass override to complete anyway')


def apply_transition(
    appointment: Appointment,
    target,
    override: bool = False,
    user_id: Optional[int] = None,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Appointment:
    """
    Move an appointment to target status, applying the side effects.

    Does not commit; the caller owns the transaction.

    Raises:
        IllegalTransition: target is not reachable from the current status,
            or its precondition does not hold
    """
    target = coerce_status(target)
    current = appointment.status
    now = now or datetime.now()

    if not is_allowed(current, target):
        logger.warning("Rejected %s -> %s for %s", current.value, target.value, appointment.serial)
        raise IllegalTransition(current, target)

    _check_preconditions(appointment, target, override, now)

    appointment.status = target
    if target == S.COMPLETED:
        appointment.total_cost = ledger_total(appointment)
        appointment.completed_at = now
    elif target == S.CANCELLED:
        appointment.cancelled_at = now
        appointment.cancellation_reason = reason

    log_audit(
        'appointment', 'status_change', user_id=user_id, entity_id=appointment.serial,
        details={'from': current.value, 'to': target.value, 'override': override, 'reason': reason},
    )
    logger.info("Appointment %s: %s -> %s", appointment.serial, current.value, target.value)
    return appointment
