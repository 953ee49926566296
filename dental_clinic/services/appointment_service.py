"""
Appointment Service
Create, reschedule, update, status changes, cancellation and deletion of
appointments. The HTTP layer (and any other caller) goes through here.
"""
import logging
from datetime import datetime
from typing import Optional

from flask import current_app

from dental_clinic.errors import AppointmentClosed, AttachmentCleanupFailed, ValidationError
from dental_clinic.extensions import db
from dental_clinic.models import Appointment, AppointmentStatus, AppointmentType, Attachment, Prescription
from dental_clinic.services import scheduling_service, status_workflow
from dental_clinic.services.attachment_storage import get_attachment_storage
from dental_clinic.services.sequence_service import next_display_id
from dental_clinic.utils.audit import log_audit
from dental_clinic.utils.queries import load_appointment, load_patient, load_practitioner
from dental_clinic.utils.transaction import atomic, retry_read_once

logger = logging.getLogger(__name__)

# Statuses in which the time window and practitioner may still change
RESCHEDULABLE = (AppointmentStatus.DRAFT, AppointmentStatus.CONFIRMED)

UPDATABLE_FIELDS = ('chief_complaints', 'notes', 'appointment_type', 'assigned_to_id', 'practitioner_id')


def coerce_type(value) -> AppointmentType:
    if isinstance(value, AppointmentType):
        return value
    try:
        return AppointmentType(str(value).strip().lower())
    except ValueError:
        valid = ', '.join(t.value for t in AppointmentType)
        raise ValidationError(f'Invalid appointment type {value!r}. Valid values: {valid}', field='appointment_type')


def create_appointment(
    patient_id: int,
    start_time: datetime,
    end_time: datetime,
    practitioner_id: Optional[int] = None,
    appointment_type=AppointmentType.RESERVED,
    chief_complaints: Optional[str] = None,
    notes: Optional[str] = None,
    all_day: bool = False,
    assigned_to_id: Optional[int] = None,
    user_id: Optional[int] = None,
) -> Appointment:
    """
    Book a new appointment in DRAFT.

    The parties are locked, the window checked, the serial minted and the
    row inserted in a single transaction.

    Args:
        patient_id: Patient ID (required)
        start_time: Window start
        end_time: Window end (exclusive)
        practitioner_id: Practitioner ID (optional, unassigned is allowed)
        appointment_type: reserved or walk_in
        chief_complaints: Free text (optional)
        notes: Free text (optional)
        all_day: Block the whole date(s) instead of the exact window
        assigned_to_id: Staff member handling the appointment (optional)
        user_id: Acting user, for the audit log

    Returns:
        Appointment: The created appointment

    Raises:
        InvalidWindow, NotFound, SchedulingConflict, SequenceUnavailable,
        StorageUnavailable
    """
    appointment_type = coerce_type(appointment_type)
    start_time, end_time = scheduling_service.validate_window(start_time, end_time)

    with atomic('create_appointment'):
        load_patient(patient_id)
        if practitioner_id is not None:
            load_practitioner(practitioner_id)

        scheduling_service.lock_parties(practitioner_id, patient_id)
        scheduling_service.ensure_available(
            start_time, end_time,
            practitioner_id=practitioner_id,
            patient_id=patient_id,
            all_day=all_day,
        )

        appointment = Appointment(
            serial=next_display_id('appointment'),
            patient_id=patient_id,
            practitioner_id=practitioner_id,
            assigned_to_id=assigned_to_id,
            start_time=start_time,
            end_time=end_time,
            all_day=bool(all_day),
            status=AppointmentStatus.DRAFT,
            appointment_type=appointment_type,
            chief_complaints=chief_complaints,
            notes=notes,
        )
        db.session.add(appointment)
        db.session.flush()

        log_audit(
            'appointment', 'create', user_id=user_id, entity_id=appointment.serial,
            details={'patient_id': patient_id, 'practitioner_id': practitioner_id,
                     'start_time': start_time, 'end_time': end_time, 'all_day': all_day},
        )

    logger.info("Appointment %s created for patient %s (%s - %s)",
                appointment.serial, patient_id, start_time, end_time)
    return appointment


def reschedule_appointment(
    appointment_id: int,
    start_time: datetime,
    end_time: datetime,
    all_day: Optional[bool] = None,
    user_id: Optional[int] = None,
) -> Appointment:
    """
    Move an appointment to a new window while it is DRAFT or CONFIRMED.

    Raises:
        NotFound, InvalidWindow, AppointmentClosed, SchedulingConflict
    """
    start_time, end_time = scheduling_service.validate_window(start_time, end_time)

    with atomic('reschedule_appointment'):
        appointment = load_appointment(appointment_id, for_update=True)
        if appointment.status not in RESCHEDULABLE:
            raise AppointmentClosed(appointment.id, appointment.status, 'reschedule')

        new_all_day = appointment.all_day if all_day is None else bool(all_day)
        scheduling_service.lock_parties(appointment.practitioner_id, appointment.patient_id)
        scheduling_service.ensure_available(
            start_time, end_time,
            practitioner_id=appointment.practitioner_id,
            patient_id=appointment.patient_id,
            exclude_appointment_id=appointment.id,
            all_day=new_all_day,
        )

        previous = {'start_time': appointment.start_time, 'end_time': appointment.end_time}
        appointment.start_time = start_time
        appointment.end_time = end_time
        appointment.all_day = new_all_day

        log_audit(
            'appointment', 'reschedule', user_id=user_id, entity_id=appointment.serial,
            details={'from': previous, 'to': {'start_time': start_time, 'end_time': end_time}},
        )

    logger.info("Appointment %s rescheduled to %s - %s", appointment.serial, start_time, end_time)
    return appointment


def update_appointment(appointment_id: int, user_id: Optional[int] = None, **fields) -> Appointment:
    """
    Edit the descriptive fields of an appointment.

    chief_complaints, notes, appointment_type and assigned_to_id can change
    until the appointment is COMPLETED or CANCELLED. practitioner_id can only
    change while the appointment can still be rescheduled, and the new
    practitioner must be free for the window.
    """
    unknown = set(fields) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot update appointment fields: {', '.join(sorted(unknown))}")

    with atomic('update_appointment'):
        appointment = load_appointment(appointment_id, for_update=True)
        if appointment.status.is_terminal:
            raise AppointmentClosed(appointment.id, appointment.status, 'update')

        if 'practitioner_id' in fields and fields['practitioner_id'] != appointment.practitioner_id:
            if appointment.status not in RESCHEDULABLE:
                raise AppointmentClosed(appointment.id, appointment.status, 'reassign practitioner')
            new_practitioner_id = fields['practitioner_id']
            if new_practitioner_id is not None:
                load_practitioner(new_practitioner_id)
                scheduling_service.lock_parties(new_practitioner_id, None)
                scheduling_service.ensure_available(
                    appointment.start_time, appointment.end_time,
                    practitioner_id=new_practitioner_id,
                    exclude_appointment_id=appointment.id,
                    all_day=appointment.all_day,
                )
            appointment.practitioner_id = new_practitioner_id

        if 'appointment_type' in fields:
            appointment.appointment_type = coerce_type(fields['appointment_type'])
        for field in ('chief_complaints', 'notes', 'assigned_to_id'):
            if field in fields:
                setattr(appointment, field, fields[field])

        log_audit('appointment', 'update', user_id=user_id, entity_id=appointment.serial,
                  details={'fields': sorted(fields)})

    return appointment


def change_status(
    appointment_id: int,
    target_status,
    override: bool = False,
    user_id: Optional[int] = None,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Appointment:
    """
    Apply a workflow transition (see status_workflow.TRANSITIONS).

    Raises:
        NotFound, ValidationError (unknown status), IllegalTransition
    """
    target = status_workflow.coerce_status(target_status)
    with atomic('change_status'):
        appointment = load_appointment(appointment_id, for_update=True)
        status_workflow.apply_transition(
            appointment, target, override=override, user_id=user_id, reason=reason, now=now,
        )
    return appointment


def cancel_appointment(appointment_id: int, reason: Optional[str] = None,
                       user_id: Optional[int] = None) -> Appointment:
    """Cancel from any non-terminal status. The record is kept for audit."""
    return change_status(appointment_id, AppointmentStatus.CANCELLED, user_id=user_id, reason=reason)


def record_attachment(appointment_id: int, storage_key: str, filename: str,
                      content_type: Optional[str] = None, user_id: Optional[int] = None) -> Attachment:
    """Register a file the storage collaborator has stored for the appointment."""
    if not storage_key or not filename:
        raise ValidationError('storage_key and filename are required', field='storage_key' if not storage_key else 'filename')

    with atomic('record_attachment'):
        appointment = load_appointment(appointment_id)
        attachment = Attachment(storage_key=storage_key, filename=filename, content_type=content_type)
        appointment.attachments.append(attachment)
        log_audit('appointment', 'attach', user_id=user_id, entity_id=appointment.serial,
                  details={'storage_key': storage_key, 'filename': filename})
    return attachment


def delete_appointment(appointment_id: int, user_id: Optional[int] = None) -> dict:
    """
    Administrative hard delete, cascading to procedures and attachments.

    Rows are removed inside the transaction first; the storage collaborator
    is then asked to drop the files, and only its confirmation lets the
    transaction commit. Prescriptions written during the appointment stay
    with the patient and lose the link.

    Returns:
        dict: id and serial of the deleted appointment

    Raises:
        NotFound, AttachmentCleanupFailed (nothing is deleted)
    """
    storage = get_attachment_storage()

    with atomic('delete_appointment'):
        appointment = load_appointment(appointment_id, for_update=True)
        info = {'id': appointment.id, 'serial': appointment.serial}

        Prescription.query.filter(Prescription.appointment_id == appointment.id).update(
            {'appointment_id': None}, synchronize_session=False
        )
        db.session.delete(appointment)
        db.session.flush()

        try:
            confirmed = storage.delete_attachments_for(info['id'])
        except Exception as e:
            logger.error("Attachment storage failed for %s: %s", info['serial'], e, exc_info=True)
            raise AttachmentCleanupFailed(info['id'], str(e)) from e
        if not confirmed:
            logger.warning("Attachment storage refused cleanup for %s", info['serial'])
            raise AttachmentCleanupFailed(info['id'])

        log_audit('appointment', 'delete', user_id=user_id, entity_id=info['serial'], details=info)

    logger.info("Appointment %s deleted", info['serial'])
    return info


@retry_read_once
def get_appointment(appointment_id: int) -> Appointment:
    return load_appointment(appointment_id)


@retry_read_once
def list_appointments(
    patient_id: Optional[int] = None,
    practitioner_id: Optional[int] = None,
    status=None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    include_cancelled: bool = True,
    page: int = 1,
    per_page: Optional[int] = None,
):
    """
    Filtered, paginated appointment listing ordered by start time.

    date_from / date_to bound start_time as [date_from, date_to).

    Returns:
        flask_sqlalchemy Pagination
    """
    per_page = per_page or current_app.config.get('DEFAULT_PAGE_SIZE', 20)
    max_page_size = current_app.config.get('MAX_PAGE_SIZE', 100)
    if page < 1:
        page = 1
    if per_page < 1 or per_page > max_page_size:
        per_page = current_app.config.get('DEFAULT_PAGE_SIZE', 20)

    query = Appointment.query
    if patient_id is not None:
        query = query.filter(Appointment.patient_id == patient_id)
    if practitioner_id is not None:
        query = query.filter(Appointment.practitioner_id == practitioner_id)
    if status is not None:
        query = query.filter(Appointment.status == status_workflow.coerce_status(status))
    elif not include_cancelled:
        query = query.filter(Appointment.status != AppointmentStatus.CANCELLED)
    if date_from is not None:
        query = query.filter(Appointment.start_time >= date_from)
    if date_to is not None:
        query = query.filter(Appointment.start_time < date_to)

    return query.order_by(Appointment.start_time.asc(), Appointment.id.asc()).paginate(
        page=page, per_page=per_page, error_out=False
    )


@retry_read_once
def get_calendar_view(
    range_start: datetime,
    range_end: datetime,
    practitioner_id: Optional[int] = None,
    include_cancelled: bool = False,
):
    """
    Appointments overlapping [range_start, range_end), all-day ones by their whole dates.

    Raises:
        InvalidWindow: range_end is not after range_start
    """
    range_start, range_end = scheduling_service.validate_window(range_start, range_end)
    query_start, query_end = scheduling_service.day_bounds(range_start, range_end)

    query = Appointment.query.filter(
        Appointment.start_time < query_end,
        Appointment.end_time > query_start,
    )
    if practitioner_id is not None:
        query = query.filter(Appointment.practitioner_id == practitioner_id)
    if not include_cancelled:
        query = query.filter(Appointment.status != AppointmentStatus.CANCELLED)

    result = []
    for appointment in query.order_by(Appointment.start_time.asc(), Appointment.id.asc()):
        start, end = scheduling_service.effective_window(
            appointment.start_time, appointment.end_time, appointment.all_day
        )
        if scheduling_service.overlaps(start, end, range_start, range_end):
            result.append(appointment)
    return result
