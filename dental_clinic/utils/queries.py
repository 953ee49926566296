"""
Lookups that raise NotFound instead of returning None.
"""
from dental_clinic.errors import NotFound
from dental_clinic.extensions import db
from dental_clinic.models import Appointment, Patient, Practitioner, Prescription, Service


def load_appointment(appointment_id, for_update=False):
    """Fetch an appointment, optionally row-locking it for the current transaction."""
    query = Appointment.query.filter(Appointment.id == appointment_id)
    if for_update:
        # Lock only the appointments row; patient/practitioner are eager-joined
        query = query.with_for_update(of=Appointment)
    appointment = query.first()
    if appointment is None:
        raise NotFound('Appointment', appointment_id)
    return appointment


def load_patient(patient_id):
    patient = db.session.get(Patient, patient_id)
    if patient is None:
        raise NotFound('Patient', patient_id)
    return patient


def load_practitioner(practitioner_id):
    practitioner = db.session.get(Practitioner, practitioner_id)
    if practitioner is None:
        raise NotFound('Practitioner', practitioner_id)
    return practitioner


def load_service(service_id):
    service = db.session.get(Service, service_id)
    if service is None:
        raise NotFound('Service', service_id)
    return service


def load_prescription(prescription_id):
    prescription = db.session.get(Prescription, prescription_id)
    if prescription is None:
        raise NotFound('Prescription', prescription_id)
    return prescription
