from .sequence_service import next_display_id, ensure_sequences

from .scheduling_service import check_availability, Conflict

from .ledger_service import (
    add_procedure,
    remove_procedure,
    list_procedures,
    total_cost,
    completed_revenue,
)

from .appointment_service import (
    create_appointment,
    reschedule_appointment,
    update_appointment,
    change_status,
    cancel_appointment,
    delete_appointment,
    record_attachment,
    get_appointment,
    list_appointments,
    get_calendar_view,
)

from .attachment_storage import AttachmentStorage, set_attachment_storage

__all__ = [
    # Sequences
    "next_display_id",
    "ensure_sequences",
    # Scheduling
    "check_availability",
    "Conflict",
    # Ledger
    "add_procedure",
    "remove_procedure",
    "list_procedures",
    "total_cost",
    "completed_revenue",
    # Appointments
    "create_appointment",
    "reschedule_appointment",
    "update_appointment",
    "change_status",
    "cancel_appointment",
    "delete_appointment",
    "record_attachment",
    "get_appointment",
    "list_appointments",
    "get_calendar_view",
    # Collaborators
    "AttachmentStorage",
    "set_attachment_storage",
]
