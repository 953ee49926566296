"""
Test configuration and shared fixtures for the dental clinic core.

Each test gets a fresh in-memory SQLite database (TestingConfig) with the
schema created from the models and the serial counters seeded. Tests run
inside an application context so services can be called directly.
"""
from decimal import Decimal

import pytest
from flask_jwt_extended import create_access_token

from dental_clinic import create_app
from dental_clinic.extensions import db
from dental_clinic.services import catalog_service, patient_service, practitioner_service
from dental_clinic.services.sequence_service import ensure_sequences


@pytest.fixture
def app():
    """Application bound to a clean database for one test."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        ensure_sequences()

        yield app

        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    """
    Build Authorization headers for a role.

    Tokens normally come from the identity service; here they are minted
    with the test JWT secret.
    """
    def make(role='receptionist', user_id=1):
        token = create_access_token(identity=str(user_id), additional_claims={'role': role})
        return {'Authorization': f'Bearer {token}'}
    return make


@pytest.fixture
def patient(app):
    return patient_service.register_patient(first_name='Amira', last_name='Haddad', phone='0550001111')


@pytest.fixture
def other_patient(app):
    return patient_service.register_patient(first_name='Jonas', last_name='Berg', phone='0550002222')


@pytest.fixture
def practitioner(app):
    return practitioner_service.create_practitioner(
        first_name='Lina', last_name='Okafor', specialization='General Dentistry', email='lina@clinic.test'
    )


@pytest.fixture
def other_practitioner(app):
    return practitioner_service.create_practitioner(
        first_name='Marc', last_name='Duval', specialization='Orthodontics', email='marc@clinic.test'
    )


@pytest.fixture
def filling(app):
    return catalog_service.create_service('Composite filling', Decimal('50.00'), category='Restorative')


@pytest.fixture
def cleaning(app):
    return catalog_service.create_service('Scaling and polishing', '75.50', category='Preventive')
