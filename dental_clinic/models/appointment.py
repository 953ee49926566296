import enum

from dental_clinic.extensions import db
from .base import TimestampMixin


class AppointmentStatus(str, enum.Enum):
    DRAFT = 'DRAFT'
    CONFIRMED = 'CONFIRMED'
    IN_EXAM = 'IN_EXAM'
    EXAM_COMPLETED = 'EXAM_COMPLETED'
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'

    @property
    def is_terminal(self):
        return self in (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED)


class AppointmentType(str, enum.Enum):
    RESERVED = 'reserved'
    WALK_IN = 'walk_in'


class Appointment(db.Model, TimestampMixin):
    __tablename__ = 'appointments'
    __table_args__ = (
        db.CheckConstraint('end_time > start_time', name='ck_appointments_window'),
        db.Index('ix_appointments_practitioner_window', 'practitioner_id', 'start_time', 'end_time'),
        db.Index('ix_appointments_patient_window', 'patient_id', 'start_time', 'end_time'),
    )

    id = db.Column(db.Integer, primary_key=True)
    serial = db.Column(db.String(20), unique=True, nullable=False, index=True)  # e.g., APT-000123

    # Parties
    patient_id = db.Column(db.Integer, db.ForeignKey('patients.id'), nullable=False)
    practitioner_id = db.Column(db.Integer, db.ForeignKey('practitioners.id'), nullable=True)
    assigned_to_id = db.Column(db.Integer, nullable=True)  # staff identity from the auth layer

    # Window (clinic local time)
    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=False)
    all_day = db.Column(db.Boolean, default=False, nullable=False)

    status = db.Column(
        db.Enum(AppointmentStatus, name='appointment_status', native_enum=False, length=20),
        default=AppointmentStatus.DRAFT,
        nullable=False,
        index=True,
    )
    appointment_type = db.Column(
        db.Enum(AppointmentType, name='appointment_type', native_enum=False, length=20,
                values_callable=lambda members: [m.value for m in members]),
        default=AppointmentType.RESERVED,
        nullable=False,
    )

    # Clinical
    chief_complaints = db.Column(db.Text)
    notes = db.Column(db.Text)

    # Ledger snapshot, frozen when the appointment is completed
    total_cost = db.Column(db.Numeric(10, 2), nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True, index=True)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancellation_reason = db.Column(db.Text)

    # Relationships (the appointment owns its procedures and attachments)
    patient = db.relationship('Patient', lazy='joined')
    practitioner = db.relationship('Practitioner', lazy='joined')
    procedures = db.relationship(
        'DentalProcedure',
        back_populates='appointment',
        cascade='all, delete-orphan',
        order_by='DentalProcedure.position',
        lazy='select',
    )
    attachments = db.relationship(
        'Attachment',
        back_populates='appointment',
        cascade='all, delete-orphan',
        lazy='select',
    )

    @property
    def is_active(self):
        return self.status != AppointmentStatus.CANCELLED

    def to_dict(self, include_procedures=False):
        data = {
            'id': self.id,
            'serial': self.serial,
            'patient_id': self.patient_id,
            'patient_serial': self.patient.serial if self.patient else None,
            'patient_name': self.patient.full_name if self.patient else None,
            'practitioner_id': self.practitioner_id,
            'practitioner_name': self.practitioner.display_name if self.practitioner else None,
            'assigned_to_id': self.assigned_to_id,
            'start_time': self.start_time.isoformat() if self.start_time else None,
            'end_time': self.end_time.isoformat() if self.end_time else None,
            'all_day': self.all_day,
            'status': self.status.value if self.status else None,
            'appointment_type': self.appointment_type.value if self.appointment_type else None,
            'chief_complaints': self.chief_complaints,
            'notes': self.notes,
            'total_cost': str(self.total_cost) if self.total_cost is not None else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'cancelled_at': self.cancelled_at.isoformat() if self.cancelled_at else None,
            'cancellation_reason': self.cancellation_reason,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_procedures:
            data['procedures'] = [p.to_dict() for p in self.procedures]
        return data

    def __repr__(self):
        return f"<Appointment {self.serial} patient={self.patient_id} {self.start_time} [{self.status}]>"
