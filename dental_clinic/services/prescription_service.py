"""
Prescription Service
Prescriptions with ordered medicine lines. Formatting and PDF output are
left to the presentation layer.
"""
import logging
from typing import Any, Dict, List, Optional

from dental_clinic.errors import ValidationError
from dental_clinic.extensions import db
from dental_clinic.models import Prescription, PrescriptionLine
from dental_clinic.services.sequence_service import next_display_id
from dental_clinic.utils.audit import log_audit
from dental_clinic.utils.queries import load_appointment, load_patient, load_prescription
from dental_clinic.utils.transaction import atomic, retry_read_once

logger = logging.getLogger(__name__)


def _normalize_lines(lines: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    if not isinstance(lines, list) or not lines:
        raise ValidationError('lines must be a non-empty list', field='lines')

    normalized = []
    for idx, item in enumerate(lines, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f'Line {idx}: must be an object', field='lines')
        medicine = (item.get('medicine') or '').strip()
        regimen = (item.get('regimen') or '').strip()
        quantity = item.get('quantity')

        if not medicine:
            raise ValidationError(f'Line {idx}: medicine is required', field='lines')
        if not regimen:
            raise ValidationError(f'Line {idx}: regimen is required', field='lines')
        try:
            if isinstance(quantity, bool):
                raise ValueError
            quantity = int(quantity)
            if quantity <= 0:
                raise ValueError
        except (ValueError, TypeError):
            raise ValidationError(f'Line {idx}: quantity must be a positive integer', field='lines')

        normalized.append({'medicine': medicine, 'regimen': regimen, 'quantity': quantity})
    return normalized


def create_prescription(
    patient_id: int,
    lines: List[Dict[str, Any]],
    appointment_id: Optional[int] = None,
    notes: Optional[str] = None,
    created_by: Optional[int] = None,
) -> Prescription:
    """
    Write a prescription for a patient, optionally tied to one of their appointments.

    Args:
        patient_id: Patient ID (required)
        lines: [{medicine, regimen, quantity}, ...] in display order
        appointment_id: Appointment it was written in (optional)
        notes: Additional instructions (optional)
        created_by: Prescribing staff user (optional)

    Raises:
        ValidationError, NotFound, SequenceUnavailable
    """
    items = _normalize_lines(lines)

    with atomic('create_prescription'):
        load_patient(patient_id)
        if appointment_id is not None:
            appointment = load_appointment(appointment_id)
            if appointment.patient_id != patient_id:
                raise ValidationError(
                    f'Appointment {appointment.serial} belongs to another patient', field='appointment_id'
                )

        prescription = Prescription(
            serial=next_display_id('prescription'),
            patient_id=patient_id,
            appointment_id=appointment_id,
            notes=notes,
            created_by=created_by,
        )
        for position, item in enumerate(items, start=1):
            prescription.lines.append(PrescriptionLine(position=position, **item))
        db.session.add(prescription)
        db.session.flush()

        log_audit('prescription', 'create', user_id=created_by, entity_id=prescription.serial,
                  details={'patient_id': patient_id, 'appointment_id': appointment_id, 'lines': len(items)})

    logger.info("Prescription %s created for patient %s", prescription.serial, patient_id)
    return prescription


@retry_read_once
def get_prescription(prescription_id: int) -> Prescription:
    return load_prescription(prescription_id)


@retry_read_once
def list_prescriptions(patient_id: int) -> List[Prescription]:
    load_patient(patient_id)
    return (
        Prescription.query.filter(Prescription.patient_id == patient_id)
        .order_by(Prescription.created_at.desc(), Prescription.id.desc())
        .all()
    )


def delete_prescription(prescription_id: int, user_id: Optional[int] = None) -> None:
    """Delete a prescription and its lines."""
    with atomic('delete_prescription'):
        prescription = load_prescription(prescription_id)
        serial = prescription.serial
        db.session.delete(prescription)
        log_audit('prescription', 'delete', user_id=user_id, entity_id=serial)
    logger.info("Prescription %s deleted", serial)
