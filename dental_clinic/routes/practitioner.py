from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from dental_clinic.errors import ValidationError
from dental_clinic.services import practitioner_service
from dental_clinic.utils.decorators import require_role, get_current_user_id
from dental_clinic.utils.parsing import parse_bool

practitioner_bp = Blueprint('practitioner', __name__, url_prefix='/api/practitioners')


def _fields():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        raise ValidationError('Request body must be a non-empty JSON object')
    if 'is_active' in data:
        data['is_active'] = parse_bool(data['is_active'])
    return data


@practitioner_bp.route('', methods=['GET'])
@jwt_required()
def list_practitioners():
    """
    List practitioners
    Query params: include_inactive (true/false, default false)
    """
    active_only = not parse_bool(request.args.get('include_inactive', 'false'))
    practitioners = practitioner_service.list_practitioners(active_only=active_only)
    return jsonify({'success': True, 'data': [p.to_dict() for p in practitioners]}), 200


@practitioner_bp.route('/<int:practitioner_id>', methods=['GET'])
@jwt_required()
def get_practitioner(practitioner_id):
    practitioner = practitioner_service.get_practitioner(practitioner_id)
    return jsonify({'success': True, 'data': practitioner.to_dict()}), 200


@practitioner_bp.route('', methods=['POST'])
@jwt_required()
@require_role('admin')
def create_practitioner():
    """
    Add a practitioner
    Access: admin only
    Body: first_name, last_name (required), specialization, phone, email
    """
    practitioner = practitioner_service.create_practitioner(user_id=get_current_user_id(), **_fields())
    return jsonify({
        'success': True,
        'data': practitioner.to_dict(),
        'message': 'Practitioner created successfully'
    }), 201


@practitioner_bp.route('/<int:practitioner_id>', methods=['PUT'])
@jwt_required()
@require_role('admin')
def update_practitioner(practitioner_id):
    practitioner = practitioner_service.update_practitioner(
        practitioner_id, user_id=get_current_user_id(), **_fields()
    )
    return jsonify({
        'success': True,
        'data': practitioner.to_dict(),
        'message': 'Practitioner updated successfully'
    }), 200
