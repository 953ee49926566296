"""
Patient Service
Registration and demographic updates. The display serial is minted once,
at registration, and never changes.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import or_

from dental_clinic.errors import ValidationError
from dental_clinic.extensions import db
from dental_clinic.models import MEDICAL_QUESTIONS, Patient
from dental_clinic.services.sequence_service import next_display_id
from dental_clinic.utils.audit import log_audit
from dental_clinic.utils.parsing import parse_date
from dental_clinic.utils.queries import load_patient
from dental_clinic.utils.transaction import atomic, retry_read_once

logger = logging.getLogger(__name__)

DEMOGRAPHIC_FIELDS = ('first_name', 'last_name', 'gender', 'birth_date', 'phone', 'email', 'address', 'notes')
REQUIRED_FIELDS = ('first_name', 'last_name')


def normalize_questionnaire(answers: Optional[Dict[str, Any]], current: Optional[Dict[str, Any]] = None):
    """
    Validate questionnaire answers and merge them over current ones.

    Each answer is either a bool or {"answer": bool, "note": str}.
    """
    merged = dict(current or {key: {'answer': False, 'note': None} for key in MEDICAL_QUESTIONS})
    if not answers:
        return merged
    if not isinstance(answers, dict):
        raise ValidationError('questionnaire must be an object', field='questionnaire')

    unknown = set(answers) - set(MEDICAL_QUESTIONS)
    if unknown:
        raise ValidationError(f"Unknown questionnaire items: {', '.join(sorted(unknown))}", field='questionnaire')

    for key, value in answers.items():
        if isinstance(value, bool):
            merged[key] = {'answer': value, 'note': merged.get(key, {}).get('note')}
        elif isinstance(value, dict) and isinstance(value.get('answer', False), bool):
            note = value.get('note')
            if note is not None and not isinstance(note, str):
                raise ValidationError(f'questionnaire.{key}.note must be text', field='questionnaire')
            merged[key] = {'answer': value.get('answer', False), 'note': note or None}
        else:
            raise ValidationError(f'questionnaire.{key} must be yes/no', field='questionnaire')
    return merged


def _clean(fields: Dict[str, Any]) -> Dict[str, Any]:
    cleaned = {}
    for name, value in fields.items():
        if name == 'birth_date':
            value = parse_date(value, field='birth_date')
        elif isinstance(value, str):
            value = value.strip() or None
        cleaned[name] = value
    return cleaned


def register_patient(user_id: Optional[int] = None, questionnaire=None, **fields) -> Patient:
    """
    Register a patient and assign its PAT- serial.

    Raises:
        ValidationError: missing names or unknown fields
        SequenceUnavailable, StorageUnavailable
    """
    unknown = set(fields) - set(DEMOGRAPHIC_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown patient fields: {', '.join(sorted(unknown))}")
    fields = _clean(fields)
    for name in REQUIRED_FIELDS:
        if not fields.get(name):
            raise ValidationError(f'Field "{name}" is required', field=name)

    answers = normalize_questionnaire(questionnaire)

    with atomic('register_patient'):
        patient = Patient(serial=next_display_id('patient'), **fields)
        patient.questionnaire = answers
        db.session.add(patient)
        db.session.flush()
        log_audit('patient', 'create', user_id=user_id, entity_id=patient.serial,
                  details={'name': patient.full_name})

    logger.info("Patient %s registered", patient.serial)
    return patient


def update_patient(patient_id: int, user_id: Optional[int] = None, questionnaire=None, **fields) -> Patient:
    """Update demographics and questionnaire answers; the serial is immutable."""
    if 'serial' in fields or 'id' in fields:
        raise ValidationError('Patient serial and id cannot be changed', field='serial')
    unknown = set(fields) - set(DEMOGRAPHIC_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown patient fields: {', '.join(sorted(unknown))}")
    fields = _clean(fields)
    for name in REQUIRED_FIELDS:
        if name in fields and not fields[name]:
            raise ValidationError(f'Field "{name}" cannot be empty', field=name)

    with atomic('update_patient'):
        patient = load_patient(patient_id)
        for name, value in fields.items():
            setattr(patient, name, value)
        if questionnaire is not None:
            patient.questionnaire = normalize_questionnaire(questionnaire, patient.questionnaire)
        log_audit('patient', 'update', user_id=user_id, entity_id=patient.serial,
                  details={'fields': sorted(fields) + (['questionnaire'] if questionnaire is not None else [])})

    return patient


@retry_read_once
def get_patient(patient_id: int) -> Patient:
    return load_patient(patient_id)


@retry_read_once
def search_patients(query: Optional[str] = None, limit: int = 20) -> List[Patient]:
    """Match serial, names or phone (case-insensitive substring)."""
    patients = Patient.query
    if query:
        term = f"%{query.strip()}%"
        patients = patients.filter(or_(
            Patient.serial.ilike(term),
            Patient.first_name.ilike(term),
            Patient.last_name.ilike(term),
            Patient.phone.ilike(term),
        ))
    return patients.order_by(Patient.last_name, Patient.first_name, Patient.id).limit(limit).all()
