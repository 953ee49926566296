"""
Tests for patients, practitioners, the service catalog and prescriptions.
"""
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from dental_clinic.errors import NotFound, ValidationError
from dental_clinic.models import MEDICAL_QUESTIONS
from dental_clinic.services import (
    appointment_service,
    catalog_service,
    patient_service,
    practitioner_service,
    prescription_service,
)


class TestPatients:

    def test_register_assigns_serial_and_default_questionnaire(self, app):
        patient = patient_service.register_patient(
            first_name=' Sara ', last_name='Mendes', birth_date='1990-05-17', phone='0551234567'
        )

        assert patient.serial == 'PAT-000001'
        assert patient.first_name == 'Sara'
        assert patient.birth_date == date(1990, 5, 17)
        assert set(patient.questionnaire) == set(MEDICAL_QUESTIONS)
        assert all(item == {'answer': False, 'note': None} for item in patient.questionnaire.values())

    def test_questionnaire_answers_and_notes(self, app):
        patient = patient_service.register_patient(
            first_name='Sara', last_name='Mendes',
            questionnaire={'diabetes': True, 'allergies': {'answer': True, 'note': 'penicillin'}},
        )

        assert patient.questionnaire['diabetes'] == {'answer': True, 'note': None}
        assert patient.questionnaire['allergies'] == {'answer': True, 'note': 'penicillin'}
        assert patient.questionnaire['smoker']['answer'] is False

    def test_update_merges_questionnaire(self, app, patient):
        patient_service.update_patient(patient.id, questionnaire={'smoker': True})
        patient_service.update_patient(patient.id, questionnaire={'pregnancy': {'answer': False}})

        answers = patient_service.get_patient(patient.id).questionnaire
        assert answers['smoker']['answer'] is True
        assert answers['pregnancy']['answer'] is False

    @pytest.mark.parametrize('answers', [
        {'favourite_color': True},
        {'diabetes': 'maybe'},
        {'diabetes': {'answer': True, 'note': 42}},
        ['diabetes'],
    ])
    def test_bad_questionnaire_rejected(self, app, answers):
        with pytest.raises(ValidationError):
            patient_service.register_patient(first_name='A', last_name='B', questionnaire=answers)

    def test_names_required(self, app):
        with pytest.raises(ValidationError) as exc_info:
            patient_service.register_patient(first_name='Only')

        assert exc_info.value.field == 'last_name'

    def test_serial_is_immutable(self, app, patient):
        with pytest.raises(ValidationError):
            patient_service.update_patient(patient.id, serial='PAT-999999')

    def test_bad_birth_date(self, app):
        with pytest.raises(ValidationError):
            patient_service.register_patient(first_name='A', last_name='B', birth_date='17/05/1990')

    def test_search_by_name_serial_or_phone(self, app, patient, other_patient):
        assert [p.id for p in patient_service.search_patients('hadd')] == [patient.id]
        assert [p.id for p in patient_service.search_patients(other_patient.serial)] == [other_patient.id]
        assert [p.id for p in patient_service.search_patients('0550002222')] == [other_patient.id]
        assert len(patient_service.search_patients()) == 2

    def test_unknown_patient(self, app):
        with pytest.raises(NotFound):
            patient_service.get_patient(4242)


class TestPractitioners:

    def test_create_and_list(self, app, practitioner, other_practitioner):
        practitioner_service.update_practitioner(other_practitioner.id, is_active=False)

        active = practitioner_service.list_practitioners()
        everyone = practitioner_service.list_practitioners(active_only=False)

        assert [p.id for p in active] == [practitioner.id]
        assert len(everyone) == 2
        assert practitioner.display_name == 'Dr. Lina Okafor'

    def test_duplicate_email_rejected(self, app, practitioner):
        with pytest.raises(ValidationError):
            practitioner_service.create_practitioner(first_name='X', last_name='Y', email='lina@clinic.test')

    def test_unknown_field_rejected(self, app, practitioner):
        with pytest.raises(ValidationError):
            practitioner_service.update_practitioner(practitioner.id, salary=1)


class TestCatalog:

    def test_prices_are_exact_decimals(self, app, filling, cleaning):
        assert filling.price == Decimal('50.00')
        assert cleaning.price == Decimal('75.50')

    @pytest.mark.parametrize('price', [-5, '12.345', 9.99, 'free'])
    def test_bad_price_rejected(self, app, price):
        with pytest.raises(ValidationError):
            catalog_service.create_service('Whitening', price)

    def test_duplicate_name_rejected(self, app, filling):
        with pytest.raises(ValidationError):
            catalog_service.create_service('Composite filling', '10.00')

    def test_inactive_services_hidden(self, app, filling, cleaning):
        catalog_service.update_service(filling.id, is_active=False)

        assert [s.id for s in catalog_service.list_services()] == [cleaning.id]
        assert len(catalog_service.list_services(active_only=False)) == 2
        assert [s.id for s in catalog_service.list_services(category='Restorative', active_only=False)] == [filling.id]


class TestPrescriptions:

    LINES = [
        {'medicine': 'Ibuprofen 400mg', 'regimen': 'every 8 hours after meals', 'quantity': 10},
        {'medicine': 'Chlorhexidine mouthwash', 'regimen': 'rinse twice daily', 'quantity': 1},
    ]

    def test_create_with_ordered_lines(self, app, patient):
        prescription = prescription_service.create_prescription(patient.id, self.LINES, notes='Soft food')

        assert prescription.serial == 'PRS-000001'
        assert [line.medicine for line in prescription.lines] == ['Ibuprofen 400mg', 'Chlorhexidine mouthwash']
        assert [line.position for line in prescription.lines] == [1, 2]

    @pytest.mark.parametrize('lines', [
        [],
        [{'medicine': '', 'regimen': 'daily', 'quantity': 1}],
        [{'medicine': 'X', 'regimen': '', 'quantity': 1}],
        [{'medicine': 'X', 'regimen': 'daily', 'quantity': 0}],
        [{'medicine': 'X', 'regimen': 'daily', 'quantity': 'two'}],
    ])
    def test_invalid_lines_rejected(self, app, patient, lines):
        with pytest.raises(ValidationError):
            prescription_service.create_prescription(patient.id, lines)

    def test_appointment_must_belong_to_patient(self, app, patient, other_patient):
        start = datetime(2024, 3, 4, 9)
        appointment = appointment_service.create_appointment(
            patient_id=other_patient.id, start_time=start, end_time=start + timedelta(minutes=30)
        )

        with pytest.raises(ValidationError):
            prescription_service.create_prescription(patient.id, self.LINES, appointment_id=appointment.id)

    def test_list_and_delete(self, app, patient):
        first = prescription_service.create_prescription(patient.id, self.LINES)
        second = prescription_service.create_prescription(patient.id, self.LINES[:1])

        assert {p.id for p in prescription_service.list_prescriptions(patient.id)} == {first.id, second.id}

        prescription_service.delete_prescription(first.id)

        assert [p.id for p in prescription_service.list_prescriptions(patient.id)] == [second.id]
        with pytest.raises(NotFound):
            prescription_service.get_prescription(first.id)
