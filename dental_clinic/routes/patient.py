from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from dental_clinic.errors import ValidationError
from dental_clinic.models import MEDICAL_QUESTIONS
from dental_clinic.services import appointment_service, patient_service, prescription_service
from dental_clinic.utils.decorators import require_role, get_current_user_id

patient_bp = Blueprint('patient', __name__, url_prefix='/api/patients')


def _split_payload(data):
    """Separate questionnaire answers from demographic fields."""
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    fields = {k: v for k, v in data.items() if k in patient_service.DEMOGRAPHIC_FIELDS}
    unknown = set(data) - set(patient_service.DEMOGRAPHIC_FIELDS) - {'questionnaire', 'serial', 'id'}
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")
    return fields, data.get('questionnaire')


@patient_bp.route('', methods=['GET'])
@jwt_required()
def list_patients():
    """
    Search patients
    Query params: search (serial, name or phone), limit
    """
    limit = request.args.get('limit', 20, type=int)
    if limit < 1 or limit > 100:
        limit = 20
    patients = patient_service.search_patients(request.args.get('search', '').strip() or None, limit=limit)
    return jsonify({
        'success': True,
        'data': [p.to_dict() for p in patients],
        'count': len(patients)
    }), 200


@patient_bp.route('/questionnaire', methods=['GET'])
@jwt_required()
def questionnaire_items():
    """Medical questionnaire keys, in display order."""
    return jsonify({'success': True, 'data': list(MEDICAL_QUESTIONS)}), 200


@patient_bp.route('/<int:patient_id>', methods=['GET'])
@jwt_required()
def get_patient(patient_id):
    patient = patient_service.get_patient(patient_id)
    return jsonify({'success': True, 'data': patient.to_dict()}), 200


@patient_bp.route('', methods=['POST'])
@jwt_required()
@require_role('receptionist', 'dentist', 'admin')
def create_patient():
    """
    Register new patient
    Access: receptionist, dentist, admin
    Body: first_name, last_name (required), gender, birth_date (YYYY-MM-DD),
          phone, email, address, notes, questionnaire {key: bool | {answer, note}}
    """
    data = request.get_json(silent=True)
    fields, questionnaire = _split_payload(data)
    if 'serial' in data:
        raise ValidationError('Patient serial is assigned automatically', field='serial')

    patient = patient_service.register_patient(
        user_id=get_current_user_id(), questionnaire=questionnaire, **fields
    )
    return jsonify({
        'success': True,
        'data': patient.to_dict(),
        'message': 'Patient created successfully'
    }), 201


@patient_bp.route('/<int:patient_id>', methods=['PUT'])
@jwt_required()
@require_role('receptionist', 'dentist', 'admin')
def update_patient(patient_id):
    """Update demographics and/or questionnaire answers. The serial cannot change."""
    data = request.get_json(silent=True)
    fields, questionnaire = _split_payload(data)
    for immutable in ('serial', 'id'):
        if immutable in data:
            fields[immutable] = data[immutable]

    patient = patient_service.update_patient(
        patient_id, user_id=get_current_user_id(), questionnaire=questionnaire, **fields
    )
    return jsonify({
        'success': True,
        'data': patient.to_dict(),
        'message': 'Patient updated successfully'
    }), 200


@patient_bp.route('/<int:patient_id>/appointments', methods=['GET'])
@jwt_required()
def patient_appointments(patient_id):
    """Appointment history of a patient, paginated."""
    patient_service.get_patient(patient_id)
    pagination = appointment_service.list_appointments(
        patient_id=patient_id,
        page=request.args.get('page', 1, type=int),
        per_page=request.args.get('limit', type=int),
    )
    return jsonify({
        'success': True,
        'data': [apt.to_dict() for apt in pagination.items],
        'pagination': {
            'page': pagination.page,
            'limit': pagination.per_page,
            'total': pagination.total,
            'pages': pagination.pages
        }
    }), 200


@patient_bp.route('/<int:patient_id>/prescriptions', methods=['GET'])
@jwt_required()
def patient_prescriptions(patient_id):
    prescriptions = prescription_service.list_prescriptions(patient_id)
    return jsonify({'success': True, 'data': [p.to_dict() for p in prescriptions]}), 200
