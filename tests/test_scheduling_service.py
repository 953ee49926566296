"""
Tests for double-booking detection.

All windows are on 2024-03-04 unless stated otherwise.
"""
from datetime import datetime

import pytest

from dental_clinic.errors import InvalidWindow, SchedulingConflict
from dental_clinic.models import AppointmentStatus
from dental_clinic.services import appointment_service
from dental_clinic.services.scheduling_service import (
    PARTY_PATIENT,
    PARTY_PRACTITIONER,
    check_availability,
    day_bounds,
    effective_window,
    overlaps,
)

DAY = datetime(2024, 3, 4)


def at(hour, minute=0, day=DAY):
    return day.replace(hour=hour, minute=minute)


class TestIntervalHelpers:

    def test_touching_windows_do_not_overlap(self):
        assert not overlaps(at(9), at(10), at(10), at(11))
        assert not overlaps(at(10), at(11), at(9), at(10))

    def test_partial_overlap(self):
        assert overlaps(at(9), at(9, 30), at(9, 15), at(9, 45))

    def test_containment_overlaps(self):
        assert overlaps(at(9), at(12), at(10), at(11))

    def test_day_bounds_treat_end_as_exclusive(self):
        start, end = day_bounds(at(22), datetime(2024, 3, 5))
        assert start == datetime(2024, 3, 4)
        assert end == datetime(2024, 3, 5)

    def test_all_day_blocks_whole_dates(self):
        start, end = effective_window(at(9), at(10), all_day=True)
        assert (start, end) == (datetime(2024, 3, 4), datetime(2024, 3, 5))

    def test_timed_window_is_unchanged(self):
        assert effective_window(at(9), at(10), all_day=False) == (at(9), at(10))


class TestCheckAvailability:

    def _book(self, patient, practitioner, start, end, **kwargs):
        return appointment_service.create_appointment(
            patient_id=patient.id,
            practitioner_id=practitioner.id if practitioner else None,
            start_time=start,
            end_time=end,
            **kwargs
        )

    def test_empty_schedule_is_free(self, app, practitioner, patient):
        assert check_availability(at(9), at(10), practitioner_id=practitioner.id, patient_id=patient.id) is None

    def test_invalid_window_rejected(self, app, practitioner):
        with pytest.raises(InvalidWindow):
            check_availability(at(10), at(10), practitioner_id=practitioner.id)
        with pytest.raises(InvalidWindow):
            check_availability(at(11), at(10), practitioner_id=practitioner.id)

    def test_practitioner_overlap_reported(self, app, practitioner, patient, other_patient):
        existing = self._book(patient, practitioner, at(9), at(9, 30))

        conflict = check_availability(at(9, 15), at(9, 45), practitioner_id=practitioner.id,
                                      patient_id=other_patient.id)

        assert conflict is not None
        assert conflict.party == PARTY_PRACTITIONER
        assert conflict.appointment_id == existing.id

    def test_patient_overlap_reported_across_practitioners(self, app, practitioner, other_practitioner, patient):
        self._book(patient, practitioner, at(9), at(10))

        conflict = check_availability(at(9, 30), at(10, 30), practitioner_id=other_practitioner.id,
                                      patient_id=patient.id)

        assert conflict is not None
        assert conflict.party == PARTY_PATIENT

    def test_back_to_back_booking_allowed(self, app, practitioner, patient, other_patient):
        self._book(patient, practitioner, at(9), at(9, 30))

        second = self._book(other_patient, practitioner, at(9, 30), at(10))

        assert second.status == AppointmentStatus.DRAFT

    def test_overlapping_booking_rejected(self, app, practitioner, patient, other_patient):
        existing = self._book(patient, practitioner, at(9), at(9, 30))

        with pytest.raises(SchedulingConflict) as exc_info:
            self._book(other_patient, practitioner, at(9, 15), at(9, 45))

        assert exc_info.value.details['appointment_id'] == existing.id
        assert exc_info.value.details['party'] == PARTY_PRACTITIONER
        assert exc_info.value.status_code == 409

    def test_cancelled_appointment_frees_the_slot(self, app, practitioner, patient, other_patient):
        existing = self._book(patient, practitioner, at(9), at(9, 30))
        appointment_service.cancel_appointment(existing.id, reason='patient called')

        rebooked = self._book(other_patient, practitioner, at(9), at(9, 30))

        assert rebooked.id != existing.id

    def test_excluded_appointment_is_ignored(self, app, practitioner, patient):
        existing = self._book(patient, practitioner, at(9), at(10))

        conflict = check_availability(at(9, 30), at(10, 30), practitioner_id=practitioner.id,
                                      patient_id=patient.id, exclude_appointment_id=existing.id)

        assert conflict is None

    def test_unassigned_appointments_only_block_the_patient(self, app, practitioner, patient, other_patient):
        self._book(patient, None, at(9), at(10))

        assert check_availability(at(9), at(10), practitioner_id=practitioner.id,
                                  patient_id=other_patient.id) is None
        assert check_availability(at(9), at(10), patient_id=patient.id).party == PARTY_PATIENT

    def test_all_day_appointment_blocks_the_date(self, app, practitioner, patient, other_patient):
        self._book(patient, practitioner, at(12), at(13), all_day=True)

        early = check_availability(at(7), at(8), practitioner_id=practitioner.id, patient_id=other_patient.id)
        next_day = check_availability(at(7, day=datetime(2024, 3, 5)), at(8, day=datetime(2024, 3, 5)),
                                      practitioner_id=practitioner.id)

        assert early is not None and early.party == PARTY_PRACTITIONER
        assert next_day is None

    def test_new_all_day_booking_conflicts_with_timed_one(self, app, practitioner, patient, other_patient):
        self._book(patient, practitioner, at(16), at(17))

        with pytest.raises(SchedulingConflict):
            self._book(other_patient, practitioner, at(8), at(9), all_day=True)
