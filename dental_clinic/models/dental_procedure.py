from dental_clinic.extensions import db
from .base import TimestampMixin


class DentalProcedure(db.Model, TimestampMixin):
    __tablename__ = 'dental_procedures'

    id = db.Column(db.Integer, primary_key=True)
    appointment_id = db.Column(
        db.Integer, db.ForeignKey('appointments.id', ondelete='CASCADE'), nullable=False, index=True
    )
    # FDI two-digit notation: 11-48 permanent, 51-85 primary
    tooth_number = db.Column(db.SmallInteger, nullable=False)
    service_id = db.Column(db.Integer, db.ForeignKey('services.id', ondelete='SET NULL'), nullable=True)
    cost = db.Column(db.Numeric(10, 2), nullable=False)  # price snapshot at recording time
    notes = db.Column(db.Text)
    position = db.Column(db.Integer, nullable=False, default=0)

    appointment = db.relationship('Appointment', back_populates='procedures')
    service = db.relationship('Service', lazy='joined')

    __table_args__ = (
        db.CheckConstraint('cost >= 0', name='ck_dental_procedures_cost'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'appointment_id': self.appointment_id,
            'tooth_number': self.tooth_number,
            'service_id': self.service_id,
            'service_name': self.service.name if self.service else None,
            'cost': str(self.cost),
            'notes': self.notes,
            'position': self.position,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<DentalProcedure tooth={self.tooth_number} cost={self.cost} appointment={self.appointment_id}>"
