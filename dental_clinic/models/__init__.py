from .patient import Patient, MEDICAL_QUESTIONS
from .practitioner import Practitioner
from .service import Service
from .appointment import Appointment, AppointmentStatus, AppointmentType
from .dental_procedure import DentalProcedure
from .attachment import Attachment
from .prescription import Prescription, PrescriptionLine
from .sequence_counter import SequenceCounter
from .audit_log import AuditLog

__all__ = [
    "Patient", "MEDICAL_QUESTIONS", "Practitioner", "Service",
    "Appointment", "AppointmentStatus", "AppointmentType",
    "DentalProcedure", "Attachment", "Prescription", "PrescriptionLine",
    "SequenceCounter", "AuditLog",
]
