"""
Scheduling Service
Double-booking checks for practitioners and patients
"""
import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Optional, Tuple

from dental_clinic.errors import InvalidWindow, SchedulingConflict
from dental_clinic.models import Appointment, AppointmentStatus, Patient, Practitioner
from dental_clinic.utils.parsing import to_clinic_time

logger = logging.getLogger(__name__)

PARTY_PRACTITIONER = 'practitioner'
PARTY_PATIENT = 'patient'


@dataclass
class Conflict:
    appointment: Appointment
    party: str

    @property
    def appointment_id(self):
        return self.appointment.id


def validate_window(start: datetime, end: datetime) -> Tuple[datetime, datetime]:
    """
    Check end > start and return the pair as naive clinic-local times.

    Raises:
        InvalidWindow: a bound is missing or end is not after start
    """
    start, end = to_clinic_time(start), to_clinic_time(end)
    if start is None or end is None or end <= start:
        raise InvalidWindow(start, end)
    return start, end


def day_bounds(start: datetime, end: datetime) -> Tuple[datetime, datetime]:
    """
    Midnight of the first date touched by [start, end) to midnight after the last.

    end is exclusive, so a window ending exactly at midnight does not spill
    into the next date.
    """
    first = start.date()
    last = (end - timedelta(microseconds=1)).date()
    return datetime.combine(first, time.min), datetime.combine(last + timedelta(days=1), time.min)


def effective_window(start: datetime, end: datetime, all_day: bool) -> Tuple[datetime, datetime]:
    """The span an appointment actually blocks; all-day appointments block whole dates."""
    if all_day:
        return day_bounds(start, end)
    return start, end


def overlaps(a_start, a_end, b_start, b_end) -> bool:
    """Half-open interval overlap; touching endpoints do not overlap."""
    return a_start < b_end and a_end > b_start


def _find_conflict(column, party_id, window, query_window, exclude_appointment_id):
    query = Appointment.query.filter(
        column == party_id,
        Appointment.status != AppointmentStatus.CANCELLED,
        Appointment.start_time < query_window[1],
        Appointment.end_time > query_window[0],
    )
    if exclude_appointment_id is not None:
        query = query.filter(Appointment.id != exclude_appointment_id)

    # Candidates are fetched over whole dates so existing all-day bookings are
    # seen; the exact test below narrows them down.
    for existing in query.order_by(Appointment.start_time, Appointment.id):
        existing_window = effective_window(existing.start_time, existing.end_time, existing.all_day)
        if overlaps(window[0], window[1], existing_window[0], existing_window[1]):
            return existing
    return None


def check_availability(
    window_start: datetime,
    window_end: datetime,
    practitioner_id: Optional[int] = None,
    patient_id: Optional[int] = None,
    exclude_appointment_id: Optional[int] = None,
    all_day: bool = False,
) -> Optional[Conflict]:
    """
    Look for an active appointment overlapping the proposed window.

    Args:
        window_start: Proposed start
        window_end: Proposed end (exclusive)
        practitioner_id: Check this practitioner's bookings (optional)
        patient_id: Check this patient's bookings (optional)
        exclude_appointment_id: Appointment being modified, ignored in the check
        all_day: The proposed appointment blocks its whole date(s)

    Returns:
        Conflict for the first clash found (practitioner checked first), or None

    Raises:
        InvalidWindow: window_end is not after window_start
    """
    window_start, window_end = validate_window(window_start, window_end)

    window = effective_window(window_start, window_end, all_day)
    query_window = day_bounds(window_start, window_end)

    if practitioner_id is not None:
        existing = _find_conflict(
            Appointment.practitioner_id, practitioner_id, window, query_window, exclude_appointment_id
        )
        if existing is not None:
            return Conflict(existing, PARTY_PRACTITIONER)

    if patient_id is not None:
        existing = _find_conflict(
            Appointment.patient_id, patient_id, window, query_window, exclude_appointment_id
        )
        if existing is not None:
            return Conflict(existing, PARTY_PATIENT)

    return None


def ensure_available(window_start, window_end, practitioner_id=None, patient_id=None,
                     exclude_appointment_id=None, all_day=False) -> None:
    """check_availability, raising SchedulingConflict on a clash."""
    conflict = check_availability(
        window_start, window_end,
        practitioner_id=practitioner_id,
        patient_id=patient_id,
        exclude_appointment_id=exclude_appointment_id,
        all_day=all_day,
    )
    if conflict:
        logger.warning(
            "Scheduling conflict with %s (%s) for %s-%s",
            conflict.appointment.serial, conflict.party, window_start, window_end,
        )
        raise SchedulingConflict(conflict.appointment.id, conflict.appointment.serial, conflict.party)


def lock_parties(practitioner_id: Optional[int], patient_id: Optional[int]) -> None:
    """
    Row-lock the practitioner and patient for the rest of the transaction.

    Two bookings for the same party queue up here, so the availability check
    and the write that follows behave as one step. Practitioner first, then
    patient, always in that order.
    """
    if practitioner_id is not None:
        Practitioner.query.filter(Practitioner.id == practitioner_id).with_for_update().first()
    if patient_id is not None:
        Patient.query.filter(Patient.id == patient_id).with_for_update().first()
