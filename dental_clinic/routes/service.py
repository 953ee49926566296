"""
Service catalog routes (billable procedures and their list prices)
"""
from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from dental_clinic.errors import ValidationError
from dental_clinic.services import catalog_service
from dental_clinic.utils.decorators import require_role, get_current_user_id
from dental_clinic.utils.parsing import parse_bool

service_bp = Blueprint('service', __name__, url_prefix='/api/services')


@service_bp.route('', methods=['GET'])
@jwt_required()
def list_services():
    """
    Query params:
        category: Filter by category (optional)
        include_inactive: true/false (default false)
    """
    services = catalog_service.list_services(
        category=request.args.get('category') or None,
        active_only=not parse_bool(request.args.get('include_inactive', 'false')),
    )
    return jsonify({'success': True, 'data': [s.to_dict() for s in services]}), 200


@service_bp.route('/<int:service_id>', methods=['GET'])
@jwt_required()
def get_service(service_id):
    service = catalog_service.get_service(service_id)
    return jsonify({'success': True, 'data': service.to_dict()}), 200


@service_bp.route('', methods=['POST'])
@jwt_required()
@require_role('admin')
def create_service():
    """
    Body:
        name (required), price (required, decimal string e.g. "75.50"), category
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    if data.get('price') is None:
        raise ValidationError('Field "price" is required', field='price')

    service = catalog_service.create_service(
        name=data.get('name'),
        price=data['price'],
        category=data.get('category'),
        user_id=get_current_user_id(),
    )
    return jsonify({
        'success': True,
        'data': service.to_dict(),
        'message': 'Service created successfully'
    }), 201


@service_bp.route('/<int:service_id>', methods=['PUT'])
@jwt_required()
@require_role('admin')
def update_service(service_id):
    """Price changes apply to procedures recorded afterwards only."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        raise ValidationError('Request body must be a non-empty JSON object')
    if 'is_active' in data:
        data['is_active'] = parse_bool(data['is_active'])

    service = catalog_service.update_service(service_id, user_id=get_current_user_id(), **data)
    return jsonify({
        'success': True,
        'data': service.to_dict(),
        'message': 'Service updated successfully'
    }), 200
