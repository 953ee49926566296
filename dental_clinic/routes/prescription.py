from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from dental_clinic.errors import ValidationError
from dental_clinic.services import prescription_service
from dental_clinic.utils.decorators import require_role, get_current_user_id
from dental_clinic.utils.parsing import parse_int

prescription_bp = Blueprint('prescription', __name__, url_prefix='/api/prescriptions')


@prescription_bp.route('', methods=['POST'])
@jwt_required()
@require_role('dentist', 'admin')
def create_prescription():
    """
    Create a prescription (dentist only)
    Body:
        patient_id: Patient ID (required)
        appointment_id: Appointment it was written in (optional)
        lines: [{medicine, regimen, quantity}, ...] (required)
        notes: Additional instructions (optional)
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    if data.get('patient_id') is None:
        raise ValidationError('Field "patient_id" is required', field='patient_id')
    appointment_id = data.get('appointment_id')

    prescription = prescription_service.create_prescription(
        patient_id=parse_int(data['patient_id'], 'patient_id'),
        lines=data.get('lines'),
        appointment_id=parse_int(appointment_id, 'appointment_id') if appointment_id is not None else None,
        notes=data.get('notes'),
        created_by=get_current_user_id(),
    )
    return jsonify({
        'success': True,
        'data': prescription.to_dict(),
        'message': 'Prescription created successfully'
    }), 201


@prescription_bp.route('/<int:prescription_id>', methods=['GET'])
@jwt_required()
def get_prescription(prescription_id):
    prescription = prescription_service.get_prescription(prescription_id)
    return jsonify({'success': True, 'data': prescription.to_dict()}), 200


@prescription_bp.route('/<int:prescription_id>', methods=['DELETE'])
@jwt_required()
@require_role('dentist', 'admin')
def delete_prescription(prescription_id):
    prescription_service.delete_prescription(prescription_id, user_id=get_current_user_id())
    return jsonify({
        'success': True,
        'message': 'Prescription deleted successfully'
    }), 200
