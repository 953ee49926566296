"""
Tests for display serial generation.
"""
import threading
from datetime import datetime, timedelta

import pytest

from dental_clinic import create_app
from dental_clinic.config import TestingConfig
from dental_clinic.errors import ClinicError
from dental_clinic.extensions import db
from dental_clinic.models import Appointment, SequenceCounter
from dental_clinic.services import appointment_service, patient_service, practitioner_service, sequence_service
from dental_clinic.services.sequence_service import ensure_sequences, format_serial, next_display_id
from dental_clinic.utils.transaction import atomic


class TestFormatSerial:

    def test_prefix_and_padding(self):
        assert format_serial('patient', 42) == 'PAT-000042'
        assert format_serial('appointment', 123) == 'APT-000123'
        assert format_serial('prescription', 1) == 'PRS-000001'

    def test_wider_numbers_are_not_truncated(self):
        assert format_serial('appointment', 1234567) == 'APT-1234567'


class TestNextDisplayId:

    def test_numbers_increase_per_kind(self, app):
        with atomic('test'):
            first = next_display_id('appointment')
        with atomic('test'):
            second = next_display_id('appointment')

        assert first == 'APT-000001'
        assert second == 'APT-000002'

    def test_kinds_have_independent_counters(self, app):
        with atomic('test'):
            apt = next_display_id('appointment')
            pat = next_display_id('patient')
            prs = next_display_id('prescription')

        assert (apt, pat, prs) == ('APT-000001', 'PAT-000001', 'PRS-000001')

    def test_unknown_kind_rejected(self, app):
        with pytest.raises(ValueError):
            sequence_service.next_number('invoice')

    def test_rollback_releases_number_with_its_entity(self, app):
        """A failed unit of work leaves no trace of the number it drew."""
        with pytest.raises(RuntimeError):
            with atomic('test'):
                next_display_id('patient')
                raise RuntimeError('boom')

        counter = db.session.get(SequenceCounter, 'patient')
        assert counter.value == 0

    def test_registered_patients_get_distinct_serials(self, app, patient, other_patient):
        assert patient.serial == 'PAT-000001'
        assert other_patient.serial == 'PAT-000002'

    def test_ensure_sequences_is_idempotent(self, app):
        with atomic('test'):
            next_display_id('appointment')
        ensure_sequences()

        assert db.session.get(SequenceCounter, 'appointment').value == 1
        assert SequenceCounter.query.count() == len(sequence_service.SERIAL_PREFIXES)


class TestConcurrentIssue:

    @pytest.fixture
    def shared_app(self, tmp_path, monkeypatch):
        """Application on a file database so several threads see the same rows."""
        monkeypatch.setattr(TestingConfig, 'SQLALCHEMY_DATABASE_URI', f"sqlite:///{tmp_path / 'seq.db'}")
        monkeypatch.setattr(TestingConfig, 'SQLALCHEMY_ENGINE_OPTIONS', {'connect_args': {'timeout': 30}})
        app = create_app('testing')
        with app.app_context():
            db.create_all()
            ensure_sequences()

        yield app

        with app.app_context():
            db.session.remove()
            db.drop_all()

    def run_threads(self, worker, count=4):
        threads = [threading.Thread(target=worker, args=(n,)) for n in range(count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

    def test_threads_never_share_a_number(self, shared_app):
        """Concurrent callers on a shared database all receive distinct serials."""
        issued = []
        errors = []
        lock = threading.Lock()

        def worker(_):
            with shared_app.app_context():
                for _ in range(10):
                    try:
                        with atomic('test'):
                            serial = next_display_id('appointment')
                    except Exception as e:
                        errors.append(e)
                        continue
                    with lock:
                        issued.append(serial)

        self.run_threads(worker)

        assert not errors
        assert len(issued) == 40
        assert len(set(issued)) == 40
        assert sorted(issued)[-1] == 'APT-000040'

    def test_concurrent_bookings_get_distinct_serials(self, shared_app):
        """Bookings made from several threads never share an APT- serial."""
        with shared_app.app_context():
            practitioner_id = practitioner_service.create_practitioner(first_name='Lina', last_name='Okafor').id
            patient_ids = [
                patient_service.register_patient(first_name='Patient', last_name=str(n)).id
                for n in range(4)
            ]

        booked = []
        failures = []
        lock = threading.Lock()

        def worker(n):
            with shared_app.app_context():
                for slot in range(5):
                    start = datetime(2024, 3, 4, 8) + timedelta(minutes=30 * (n * 5 + slot))
                    try:
                        appointment = appointment_service.create_appointment(
                            patient_id=patient_ids[n],
                            practitioner_id=practitioner_id,
                            start_time=start,
                            end_time=start + timedelta(minutes=30),
                        )
                        result = (appointment.id, appointment.serial)
                    except Exception as e:
                        with lock:
                            failures.append(e)
                        continue
                    with lock:
                        booked.append(result)

        self.run_threads(worker)

        assert all(isinstance(e, ClinicError) for e in failures), failures
        assert len(booked) + len(failures) == 20
        assert booked
        serials = [serial for _, serial in booked]
        assert len(set(serials)) == len(serials)
        assert all(serial.startswith('APT-') for serial in serials)

        with shared_app.app_context():
            stored = {(apt.id, apt.serial) for apt in Appointment.query.all()}
        assert set(booked) <= stored
        assert len({serial for _, serial in stored}) == len(stored)
