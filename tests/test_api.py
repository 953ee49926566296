"""
HTTP-level tests: envelopes, status codes and role checks.
"""
from datetime import datetime

import pytest
from flask_jwt_extended import create_access_token

from dental_clinic.services import appointment_service


@pytest.fixture
def receptionist(auth_headers):
    return auth_headers('receptionist', user_id=7)


@pytest.fixture
def dentist(auth_headers):
    return auth_headers('dentist', user_id=3)


@pytest.fixture
def admin(auth_headers):
    return auth_headers('admin', user_id=1)


def book(client, headers, patient, practitioner, start='2024-03-04T09:00', end='2024-03-04T09:30', **extra):
    payload = {
        'patient_id': patient.id,
        'practitioner_id': practitioner.id if practitioner else None,
        'start_time': start,
        'end_time': end,
    }
    payload.update(extra)
    return client.post('/api/appointments', json=payload, headers=headers)


def set_status(client, headers, appointment_id, status, **extra):
    return client.put(f'/api/appointments/{appointment_id}/status', json={'status': status, **extra},
                      headers=headers)


class TestHealth:

    def test_ping(self, client):
        response = client.get('/health/ping')
        assert response.status_code == 200
        assert response.get_json()['status'] == 'healthy'

    def test_ready_reports_database(self, client):
        response = client.get('/health/ready')
        data = response.get_json()
        assert response.status_code == 200
        assert data['database'] == 'connected'
        assert data['missing_sequences'] == []


class TestAuth:

    def test_token_required(self, client):
        response = client.get('/api/appointments')
        assert response.status_code == 401

    def test_role_enforced(self, client, receptionist, patient, practitioner):
        created = book(client, receptionist, patient, practitioner).get_json()['data']

        response = client.delete(f"/api/appointments/{created['id']}", headers=receptionist)

        assert response.status_code == 403
        assert response.get_json()['success'] is False

    def test_only_the_role_claim_counts(self, client, receptionist, patient, practitioner):
        created = book(client, receptionist, patient, practitioner).get_json()['data']
        token = create_access_token(
            identity='7', additional_claims={'role': 'receptionist', 'is_super_admin': True}
        )

        response = client.delete(f"/api/appointments/{created['id']}",
                                 headers={'Authorization': f'Bearer {token}'})

        assert response.status_code == 403
        assert client.get(f"/api/appointments/{created['id']}", headers=receptionist).status_code == 200

    def test_unknown_endpoint_is_json(self, client):
        response = client.get('/api/nothing-here')
        assert response.status_code == 404
        assert response.get_json() == {'success': False, 'error': 'Endpoint not found'}


class TestPatientsApi:

    def test_register_and_fetch(self, client, receptionist):
        response = client.post('/api/patients', json={
            'first_name': 'Nadia', 'last_name': 'Karim', 'birth_date': '1985-11-02',
            'questionnaire': {'hypertension': True},
        }, headers=receptionist)

        assert response.status_code == 201
        created = response.get_json()['data']
        assert created['serial'] == 'PAT-000001'
        assert created['questionnaire']['hypertension'] == {'answer': True, 'note': None}

        fetched = client.get(f"/api/patients/{created['id']}", headers=receptionist).get_json()['data']
        assert fetched['birth_date'] == '1985-11-02'

    def test_serial_cannot_be_supplied(self, client, receptionist):
        response = client.post('/api/patients', json={
            'first_name': 'Nadia', 'last_name': 'Karim', 'serial': 'PAT-123456',
        }, headers=receptionist)

        assert response.status_code == 400
        assert response.get_json()['code'] == 'ValidationError'

    def test_missing_patient_is_404(self, client, receptionist):
        response = client.get('/api/patients/999', headers=receptionist)

        assert response.status_code == 404
        assert response.get_json()['code'] == 'NotFound'


class TestAppointmentsApi:

    def test_create_returns_draft(self, client, receptionist, patient, practitioner):
        response = book(client, receptionist, patient, practitioner)

        assert response.status_code == 201
        data = response.get_json()['data']
        assert data['status'] == 'DRAFT'
        assert data['serial'] == 'APT-000001'
        assert data['assigned_to_id'] == 7

    def test_overlap_is_409(self, client, receptionist, patient, other_patient, practitioner):
        first = book(client, receptionist, patient, practitioner).get_json()['data']

        clash = book(client, receptionist, other_patient, practitioner,
                     start='2024-03-04T09:15', end='2024-03-04T09:45')
        adjacent = book(client, receptionist, other_patient, practitioner,
                        start='2024-03-04T09:30', end='2024-03-04T10:00')

        assert clash.status_code == 409
        body = clash.get_json()
        assert body['code'] == 'SchedulingConflict'
        assert body['details']['appointment_id'] == first['id']
        assert adjacent.status_code == 201

    def test_bad_window_is_400(self, client, receptionist, patient, practitioner):
        response = book(client, receptionist, patient, practitioner,
                        start='2024-03-04T10:00', end='2024-03-04T09:00')

        assert response.status_code == 400
        assert response.get_json()['code'] == 'InvalidWindow'

    def test_malformed_datetime_is_400(self, client, receptionist, patient, practitioner):
        response = book(client, receptionist, patient, practitioner, start='tomorrow morning')

        assert response.status_code == 400
        assert response.get_json()['details']['field'] == 'start_time'

    def test_offset_qualified_overlap_is_409(self, app, client, receptionist, patient, other_patient,
                                             practitioner):
        app.config['CLINIC_TIMEZONE'] = 'UTC'

        first = book(client, receptionist, patient, practitioner,
                     start='2030-05-01T09:00:00+00:00', end='2030-05-01T09:30:00+00:00')
        clash = book(client, receptionist, other_patient, practitioner,
                     start='2030-05-01T09:15:00+00:00', end='2030-05-01T09:45:00+00:00')

        assert first.status_code == 201
        assert first.get_json()['data']['start_time'] == '2030-05-01T09:00:00'
        assert clash.status_code == 409
        assert clash.get_json()['code'] == 'SchedulingConflict'

    def test_offsets_are_converted_to_clinic_zone(self, app, client, receptionist, patient, practitioner):
        app.config['CLINIC_TIMEZONE'] = 'Europe/Paris'

        response = book(client, receptionist, patient, practitioner,
                        start='2030-05-01T07:00:00Z', end='2030-05-01T07:30:00Z')

        data = response.get_json()['data']
        assert data['start_time'] == '2030-05-01T09:00:00'
        assert data['end_time'] == '2030-05-01T09:30:00'

    def test_illegal_transition_is_409(self, client, receptionist, patient, practitioner):
        created = book(client, receptionist, patient, practitioner).get_json()['data']

        response = set_status(client, receptionist, created['id'], 'IN_EXAM')

        assert response.status_code == 409
        assert response.get_json()['code'] == 'IllegalTransition'

    def test_unknown_status_is_400(self, client, receptionist, patient, practitioner):
        created = book(client, receptionist, patient, practitioner).get_json()['data']

        response = set_status(client, receptionist, created['id'], 'ARCHIVED')

        assert response.status_code == 400

    def test_full_visit_with_ledger(self, client, receptionist, dentist, patient, practitioner, filling):
        apt_id = book(client, receptionist, patient, practitioner).get_json()['data']['id']
        for status in ('CONFIRMED', 'IN_EXAM', 'EXAM_COMPLETED'):
            assert set_status(client, receptionist, apt_id, status).status_code == 200

        for body in ({'tooth_number': 36, 'service_id': filling.id},
                     {'tooth_number': 11, 'cost': '75.50'},
                     {'tooth_number': 21, 'cost': '0.00'}):
            response = client.post(f'/api/appointments/{apt_id}/procedures', json=body, headers=dentist)
            assert response.status_code == 201

        ledger = client.get(f'/api/appointments/{apt_id}/ledger', headers=dentist).get_json()['data']
        assert ledger['total_cost'] == '125.50'
        assert ledger['frozen_total'] is None
        assert [p['tooth_number'] for p in ledger['procedures']] == [36, 11, 21]

        completed = set_status(client, receptionist, apt_id, 'COMPLETED').get_json()['data']
        assert completed['status'] == 'COMPLETED'
        assert completed['total_cost'] == '125.50'

        late = client.post(f'/api/appointments/{apt_id}/procedures',
                           json={'tooth_number': 37, 'cost': '10.00'}, headers=dentist)
        assert late.status_code == 409
        assert late.get_json()['code'] == 'AppointmentClosed'

    def test_receptionist_cannot_record_procedures(self, client, receptionist, patient, practitioner):
        apt_id = book(client, receptionist, patient, practitioner).get_json()['data']['id']

        response = client.post(f'/api/appointments/{apt_id}/procedures',
                               json={'tooth_number': 36, 'cost': '10.00'}, headers=receptionist)

        assert response.status_code == 403

    def test_invalid_tooth_and_cost(self, client, receptionist, dentist, patient, practitioner):
        apt_id = book(client, receptionist, patient, practitioner).get_json()['data']['id']

        bad_tooth = client.post(f'/api/appointments/{apt_id}/procedures',
                                json={'tooth_number': 19, 'cost': '10.00'}, headers=dentist)
        bad_cost = client.post(f'/api/appointments/{apt_id}/procedures',
                               json={'tooth_number': 18, 'cost': '-3'}, headers=dentist)

        assert bad_tooth.get_json()['code'] == 'InvalidTooth'
        assert bad_cost.get_json()['code'] == 'InvalidCost'
        assert bad_tooth.status_code == bad_cost.status_code == 400

    def test_cancel_then_rebook(self, client, receptionist, patient, other_patient, practitioner):
        first = book(client, receptionist, patient, practitioner).get_json()['data']

        cancelled = client.post(f"/api/appointments/{first['id']}/cancel", json={'reason': 'sick'},
                                headers=receptionist)
        rebooked = book(client, receptionist, other_patient, practitioner)

        assert cancelled.get_json()['data']['cancellation_reason'] == 'sick'
        assert rebooked.status_code == 201

    def test_reschedule(self, client, receptionist, patient, practitioner):
        apt_id = book(client, receptionist, patient, practitioner).get_json()['data']['id']

        response = client.put(f'/api/appointments/{apt_id}/reschedule', json={
            'start_time': '2024-03-04T14:00', 'end_time': '2024-03-04T14:30',
        }, headers=receptionist)

        assert response.status_code == 200
        assert response.get_json()['data']['start_time'] == '2024-03-04T14:00:00'

    def test_admin_delete(self, client, receptionist, admin, patient, practitioner):
        apt_id = book(client, receptionist, patient, practitioner).get_json()['data']['id']

        response = client.delete(f'/api/appointments/{apt_id}', headers=admin)

        assert response.status_code == 200
        assert response.get_json()['data']['serial'] == 'APT-000001'
        assert client.get(f'/api/appointments/{apt_id}', headers=admin).status_code == 404

    def test_list_paginates(self, client, receptionist, patient, practitioner):
        for hour in (8, 9, 10):
            book(client, receptionist, patient, practitioner,
                 start=f'2024-03-04T{hour:02d}:00', end=f'2024-03-04T{hour:02d}:30')

        response = client.get('/api/appointments?limit=2&page=1&date_from=2024-03-04&date_to=2024-03-04',
                              headers=receptionist)

        body = response.get_json()
        assert [a['start_time'] for a in body['data']] == ['2024-03-04T08:00:00', '2024-03-04T09:00:00']
        assert body['pagination']['total'] == 3
        assert body['pagination']['has_next'] is True

    def test_calendar(self, client, receptionist, patient, practitioner):
        book(client, receptionist, patient, practitioner)
        appointment_service.create_appointment(
            patient_id=patient.id, start_time=datetime(2024, 3, 6, 9),
            end_time=datetime(2024, 3, 6, 10),
        )

        response = client.get('/api/appointments/calendar?start=2024-03-04&end=2024-03-05',
                              headers=receptionist)

        assert response.status_code == 200
        assert len(response.get_json()['data']) == 1


class TestCatalogApi:

    def test_admin_creates_service_with_decimal_price(self, client, admin):
        response = client.post('/api/services', json={'name': 'Root canal', 'price': '320.00'}, headers=admin)

        assert response.status_code == 201
        assert response.get_json()['data']['price'] == '320.00'

    def test_float_price_rejected(self, client, admin):
        response = client.post('/api/services', json={'name': 'Root canal', 'price': 320.1}, headers=admin)

        assert response.status_code == 400
        assert response.get_json()['details']['field'] == 'price'


class TestPrescriptionsApi:

    def test_dentist_writes_prescription(self, client, dentist, patient):
        response = client.post('/api/prescriptions', json={
            'patient_id': patient.id,
            'lines': [{'medicine': 'Paracetamol 1g', 'regimen': 'as needed, max 3/day', 'quantity': 12}],
        }, headers=dentist)

        assert response.status_code == 201
        data = response.get_json()['data']
        assert data['serial'] == 'PRS-000001'
        assert data['created_by'] == 3
