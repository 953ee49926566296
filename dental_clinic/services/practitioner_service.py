"""
Practitioner Service
Dentists that appointments can be booked with
"""
import logging
from typing import List, Optional

from dental_clinic.errors import ValidationError
from dental_clinic.extensions import db
from dental_clinic.models import Practitioner
from dental_clinic.utils.audit import log_audit
from dental_clinic.utils.queries import load_practitioner
from dental_clinic.utils.transaction import atomic, retry_read_once

logger = logging.getLogger(__name__)

PRACTITIONER_FIELDS = ('first_name', 'last_name', 'specialization', 'phone', 'email', 'is_active')


def _validate(fields, creating, practitioner_id=None):
    unknown = set(fields) - set(PRACTITIONER_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown practitioner fields: {', '.join(sorted(unknown))}")
    for name in ('first_name', 'last_name'):
        if (creating or name in fields) and not (fields.get(name) or '').strip():
            raise ValidationError(f'Field "{name}" is required', field=name)
    if fields.get('email'):
        existing = Practitioner.query.filter(Practitioner.email == fields['email']).first()
        if existing is not None and existing.id != practitioner_id:
            raise ValidationError('Email already exists', field='email')


def create_practitioner(user_id: Optional[int] = None, **fields) -> Practitioner:
    _validate(fields, creating=True)
    with atomic('create_practitioner'):
        practitioner = Practitioner(**fields)
        db.session.add(practitioner)
        db.session.flush()
        log_audit('practitioner', 'create', user_id=user_id, entity_id=practitioner.id,
                  details={'name': practitioner.display_name})
    logger.info("Practitioner %s created", practitioner.display_name)
    return practitioner


def update_practitioner(practitioner_id: int, user_id: Optional[int] = None, **fields) -> Practitioner:
    with atomic('update_practitioner'):
        practitioner = load_practitioner(practitioner_id)
        _validate(fields, creating=False, practitioner_id=practitioner.id)
        for name, value in fields.items():
            setattr(practitioner, name, value)
        log_audit('practitioner', 'update', user_id=user_id, entity_id=practitioner.id,
                  details={'fields': sorted(fields)})
    return practitioner


@retry_read_once
def get_practitioner(practitioner_id: int) -> Practitioner:
    return load_practitioner(practitioner_id)


@retry_read_once
def list_practitioners(active_only: bool = True) -> List[Practitioner]:
    query = Practitioner.query
    if active_only:
        query = query.filter(Practitioner.is_active.is_(True))
    return query.order_by(Practitioner.last_name, Practitioner.first_name).all()
