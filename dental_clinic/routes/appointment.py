from datetime import datetime, time, timedelta

from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required

from dental_clinic.errors import ValidationError
from dental_clinic.services import appointment_service, ledger_service
from dental_clinic.utils.decorators import require_role, get_current_user_id
from dental_clinic.utils.parsing import parse_bool, parse_date, parse_datetime, parse_int

appointment_bp = Blueprint('appointment', __name__, url_prefix='/api/appointments')

STAFF_ROLES = ('receptionist', 'dentist', 'admin')
CLINICAL_ROLES = ('dentist', 'admin')


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def _window(data):
    for field in ('start_time', 'end_time'):
        if not data.get(field):
            raise ValidationError(f'Field "{field}" is required', field=field)
    return parse_datetime(data['start_time'], 'start_time'), parse_datetime(data['end_time'], 'end_time')


def _range_args(start_name, end_name):
    """Datetime range from query args; a bare YYYY-MM-DD means midnight (see parse_datetime)."""
    values = []
    for name in (start_name, end_name):
        raw = request.args.get(name, type=str)
        if not raw:
            raise ValidationError(f'Query parameter "{name}" is required', field=name)
        values.append(parse_datetime(raw, name))
    return values


@appointment_bp.route('', methods=['GET'])
@jwt_required()
def list_appointments():
    """
    List appointments with filters and pagination.
    Query params:
        patient_id, practitioner_id: Filter by party (optional)
        status: Filter by status (optional)
        date_from, date_to: YYYY-MM-DD, start_time in [date_from, date_to] (optional)
        include_cancelled: true/false (default true)
        page, limit: Pagination
    """
    page = request.args.get('page', 1, type=int)
    limit = request.args.get('limit', type=int)
    date_from = parse_date(request.args.get('date_from'), 'date_from')
    date_to = parse_date(request.args.get('date_to'), 'date_to')

    pagination = appointment_service.list_appointments(
        patient_id=request.args.get('patient_id', type=int),
        practitioner_id=request.args.get('practitioner_id', type=int),
        status=request.args.get('status') or None,
        date_from=datetime.combine(date_from, time.min) if date_from else None,
        date_to=datetime.combine(date_to + timedelta(days=1), time.min) if date_to else None,
        include_cancelled=parse_bool(request.args.get('include_cancelled', 'true')),
        page=page,
        per_page=limit,
    )

    return jsonify({
        'success': True,
        'data': [apt.to_dict() for apt in pagination.items],
        'pagination': {
            'page': pagination.page,
            'limit': pagination.per_page,
            'total': pagination.total,
            'pages': pagination.pages,
            'has_next': pagination.has_next,
            'has_prev': pagination.has_prev
        }
    }), 200


@appointment_bp.route('/calendar', methods=['GET'])
@jwt_required()
def calendar_view():
    """
    Appointments overlapping a range.
    Query params:
        start, end: YYYY-MM-DD or YYYY-MM-DDTHH:MM (end exclusive)
        practitioner_id: optional
        include_cancelled: true/false (default false)
    """
    range_start, range_end = _range_args('start', 'end')
    appointments = appointment_service.get_calendar_view(
        range_start, range_end,
        practitioner_id=request.args.get('practitioner_id', type=int),
        include_cancelled=parse_bool(request.args.get('include_cancelled', 'false')),
    )
    return jsonify({
        'success': True,
        'data': [apt.to_dict() for apt in appointments],
        'range': {'start': range_start.isoformat(), 'end': range_end.isoformat()}
    }), 200


@appointment_bp.route('/revenue', methods=['GET'])
@jwt_required()
@require_role('admin')
def completed_revenue():
    """Total charged on completed appointments, completed within [start, end)."""
    range_start, range_end = _range_args('start', 'end')
    total = ledger_service.completed_revenue(
        range_start, range_end, practitioner_id=request.args.get('practitioner_id', type=int)
    )
    return jsonify({
        'success': True,
        'data': {'total': str(total), 'start': range_start.isoformat(), 'end': range_end.isoformat()}
    }), 200


@appointment_bp.route('/<int:appointment_id>', methods=['GET'])
@jwt_required()
def get_appointment(appointment_id):
    """Get single appointment by ID with its procedures."""
    appointment = appointment_service.get_appointment(appointment_id)
    return jsonify({'success': True, 'data': appointment.to_dict(include_procedures=True)}), 200


@appointment_bp.route('', methods=['POST'])
@jwt_required()
@require_role(*STAFF_ROLES)
def create_appointment():
    """
    Create new appointment (status DRAFT)
    Access: receptionist, dentist, admin
    Body:
        patient_id (required), start_time, end_time (required, ISO),
        practitioner_id, appointment_type (reserved|walk_in), all_day,
        chief_complaints, notes
    """
    data = _json_body()
    if data.get('patient_id') is None:
        raise ValidationError('Field "patient_id" is required', field='patient_id')
    start_time, end_time = _window(data)
    practitioner_id = data.get('practitioner_id')

    user_id = get_current_user_id()
    appointment = appointment_service.create_appointment(
        patient_id=parse_int(data['patient_id'], 'patient_id'),
        start_time=start_time,
        end_time=end_time,
        practitioner_id=parse_int(practitioner_id, 'practitioner_id') if practitioner_id is not None else None,
        appointment_type=data.get('appointment_type', 'reserved'),
        chief_complaints=data.get('chief_complaints'),
        notes=data.get('notes'),
        all_day=parse_bool(data.get('all_day', False)),
        assigned_to_id=user_id,
        user_id=user_id,
    )

    return jsonify({
        'success': True,
        'data': appointment.to_dict(),
        'message': 'Appointment created successfully'
    }), 201


@appointment_bp.route('/<int:appointment_id>', methods=['PUT'])
@jwt_required()
@require_role(*STAFF_ROLES)
def update_appointment(appointment_id):
    """
    Update descriptive fields
    Body: any of chief_complaints, notes, appointment_type, practitioner_id, assigned_to_id
    Note: window changes go through /reschedule, status through /status
    """
    data = _json_body()
    fields = {k: data[k] for k in appointment_service.UPDATABLE_FIELDS if k in data}
    if not fields:
        raise ValidationError('No updatable fields supplied')
    for key in ('practitioner_id', 'assigned_to_id'):
        if fields.get(key) is not None:
            fields[key] = parse_int(fields[key], key)

    appointment = appointment_service.update_appointment(appointment_id, user_id=get_current_user_id(), **fields)
    return jsonify({
        'success': True,
        'data': appointment.to_dict(),
        'message': 'Appointment updated successfully'
    }), 200


@appointment_bp.route('/<int:appointment_id>/reschedule', methods=['PUT'])
@jwt_required()
@require_role(*STAFF_ROLES)
def reschedule_appointment(appointment_id):
    """Body: start_time, end_time (required), all_day (optional)"""
    data = _json_body()
    start_time, end_time = _window(data)
    appointment = appointment_service.reschedule_appointment(
        appointment_id, start_time, end_time,
        all_day=parse_bool(data['all_day']) if 'all_day' in data else None,
        user_id=get_current_user_id(),
    )
    return jsonify({
        'success': True,
        'data': appointment.to_dict(),
        'message': 'Appointment rescheduled successfully'
    }), 200


@appointment_bp.route('/<int:appointment_id>/status', methods=['PUT'])
@jwt_required()
@require_role(*STAFF_ROLES)
def update_appointment_status(appointment_id):
    """
    Update appointment status
    Body: status (required), override (completing without procedures), reason
    Status values: DRAFT, CONFIRMED, IN_EXAM, EXAM_COMPLETED, COMPLETED, CANCELLED
    """
    data = _json_body()
    new_status = data.get('status')
    if not new_status:
        raise ValidationError('Field "status" is required', field='status')

    appointment = appointment_service.change_status(
        appointment_id, new_status,
        override=parse_bool(data.get('override', False)),
        reason=data.get('reason'),
        user_id=get_current_user_id(),
    )
    return jsonify({
        'success': True,
        'data': appointment.to_dict(),
        'message': f'Appointment status updated to {appointment.status.value}'
    }), 200


@appointment_bp.route('/<int:appointment_id>/cancel', methods=['POST'])
@jwt_required()
@require_role(*STAFF_ROLES)
def cancel_appointment(appointment_id):
    data = request.get_json(silent=True) or {}
    appointment = appointment_service.cancel_appointment(
        appointment_id, reason=data.get('reason'), user_id=get_current_user_id()
    )
    return jsonify({
        'success': True,
        'data': appointment.to_dict(),
        'message': 'Appointment cancelled'
    }), 200


@appointment_bp.route('/<int:appointment_id>', methods=['DELETE'])
@jwt_required()
@require_role('admin')
def delete_appointment(appointment_id):
    """
    Hard-delete an appointment with its procedures and attachments.
    Access: admin only
    """
    info = appointment_service.delete_appointment(appointment_id, user_id=get_current_user_id())
    return jsonify({
        'success': True,
        'message': f'Appointment {info["serial"]} deleted successfully',
        'data': info
    }), 200


@appointment_bp.route('/<int:appointment_id>/procedures', methods=['GET'])
@jwt_required()
def list_procedures(appointment_id):
    procedures = ledger_service.list_procedures(appointment_id)
    return jsonify({'success': True, 'data': [p.to_dict() for p in procedures]}), 200


@appointment_bp.route('/<int:appointment_id>/procedures', methods=['POST'])
@jwt_required()
@require_role(*CLINICAL_ROLES)
def add_procedure(appointment_id):
    """
    Record a procedure on a tooth
    Body:
        tooth_number: FDI number, e.g. 36 (required)
        service_id: Catalog service (optional)
        cost: Decimal string, defaults to the service price
        notes: optional
    """
    data = _json_body()
    if data.get('tooth_number') is None:
        raise ValidationError('Field "tooth_number" is required', field='tooth_number')
    service_id = data.get('service_id')

    procedure = ledger_service.add_procedure(
        appointment_id,
        tooth_number=data['tooth_number'],
        service_id=parse_int(service_id, 'service_id') if service_id is not None else None,
        cost=data.get('cost'),
        notes=data.get('notes'),
        user_id=get_current_user_id(),
    )
    return jsonify({
        'success': True,
        'data': procedure.to_dict(),
        'message': 'Procedure recorded'
    }), 201


@appointment_bp.route('/<int:appointment_id>/procedures/<int:procedure_id>', methods=['DELETE'])
@jwt_required()
@require_role(*CLINICAL_ROLES)
def remove_procedure(appointment_id, procedure_id):
    ledger_service.remove_procedure(appointment_id, procedure_id, user_id=get_current_user_id())
    return jsonify({'success': True, 'message': f'Procedure {procedure_id} removed'}), 200


@appointment_bp.route('/<int:appointment_id>/ledger', methods=['GET'])
@jwt_required()
def get_ledger(appointment_id):
    """Procedures, running total and (once completed) the frozen total."""
    appointment = appointment_service.get_appointment(appointment_id)
    return jsonify({
        'success': True,
        'data': {
            'appointment_id': appointment.id,
            'serial': appointment.serial,
            'status': appointment.status.value,
            'procedures': [p.to_dict() for p in appointment.procedures],
            'total_cost': str(ledger_service.total_cost(appointment_id)),
            'frozen_total': str(appointment.total_cost) if appointment.total_cost is not None else None,
        }
    }), 200


@appointment_bp.route('/<int:appointment_id>/attachments', methods=['POST'])
@jwt_required()
@require_role(*STAFF_ROLES)
def record_attachment(appointment_id):
    """Register a file already stored by the attachment service. Body: storage_key, filename, content_type"""
    data = _json_body()
    attachment = appointment_service.record_attachment(
        appointment_id,
        storage_key=data.get('storage_key'),
        filename=data.get('filename'),
        content_type=data.get('content_type'),
        user_id=get_current_user_id(),
    )
    return jsonify({'success': True, 'data': attachment.to_dict()}), 201
