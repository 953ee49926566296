from dental_clinic.extensions import db
from .base import TimestampMixin


class Attachment(db.Model, TimestampMixin):
    """Database record of a file kept by the external attachment storage."""
    __tablename__ = 'attachments'

    id = db.Column(db.Integer, primary_key=True)
    appointment_id = db.Column(
        db.Integer, db.ForeignKey('appointments.id', ondelete='CASCADE'), nullable=False, index=True
    )
    storage_key = db.Column(db.String(500), nullable=False)
    filename = db.Column(db.String(255), nullable=False)
    content_type = db.Column(db.String(100))

    appointment = db.relationship('Appointment', back_populates='attachments')

    def to_dict(self):
        return {
            'id': self.id,
            'appointment_id': self.appointment_id,
            'storage_key': self.storage_key,
            'filename': self.filename,
            'content_type': self.content_type,
        }
