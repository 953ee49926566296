"""
Catalog Service
Billable services and their current prices. Recorded procedures keep the
price they were charged, so price edits here never reach past appointments.
"""
import logging
from typing import List, Optional

from dental_clinic.errors import ValidationError
from dental_clinic.extensions import db
from dental_clinic.models import Service
from dental_clinic.utils.audit import log_audit
from dental_clinic.utils.parsing import parse_money
from dental_clinic.utils.queries import load_service
from dental_clinic.utils.transaction import atomic, retry_read_once

logger = logging.getLogger(__name__)


def _price(value):
    try:
        return parse_money(value)
    except ValueError as e:
        raise ValidationError(f'Invalid price: {e}', field='price')


def _check_name(name, service_id=None):
    if not name or not name.strip():
        raise ValidationError('Field "name" is required', field='name')
    existing = Service.query.filter(Service.name == name.strip()).first()
    if existing is not None and existing.id != service_id:
        raise ValidationError(f'Service "{name}" already exists', field='name')


def create_service(name: str, price, category: Optional[str] = None,
                   user_id: Optional[int] = None) -> Service:
    _check_name(name)
    amount = _price(price)
    with atomic('create_service'):
        service = Service(name=name.strip(), price=amount, category=category, is_active=True)
        db.session.add(service)
        db.session.flush()
        log_audit('service', 'create', user_id=user_id, entity_id=service.id,
                  details={'name': service.name, 'price': amount})
    logger.info("Service %s created at %s", service.name, amount)
    return service


def update_service(service_id: int, user_id: Optional[int] = None, **fields) -> Service:
    """Edit name, category, price or is_active of a catalog entry."""
    unknown = set(fields) - {'name', 'category', 'price', 'is_active'}
    if unknown:
        raise ValidationError(f"Unknown service fields: {', '.join(sorted(unknown))}")

    with atomic('update_service'):
        service = load_service(service_id)
        if 'name' in fields:
            _check_name(fields['name'], service_id=service.id)
            service.name = fields['name'].strip()
        if 'price' in fields:
            service.price = _price(fields['price'])
        if 'category' in fields:
            service.category = fields['category']
        if 'is_active' in fields:
            service.is_active = bool(fields['is_active'])
        log_audit('service', 'update', user_id=user_id, entity_id=service.id,
                  details={k: v for k, v in fields.items()})
    return service


@retry_read_once
def get_service(service_id: int) -> Service:
    return load_service(service_id)


@retry_read_once
def list_services(category: Optional[str] = None, active_only: bool = True) -> List[Service]:
    query = Service.query
    if category:
        query = query.filter(Service.category == category)
    if active_only:
        query = query.filter(Service.is_active.is_(True))
    return query.order_by(Service.category, Service.name).all()
