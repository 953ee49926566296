from dental_clinic.extensions import db
from .base import TimestampMixin


class Prescription(db.Model, TimestampMixin):
    """
    Prescription model - one patient, optionally tied to the appointment it was
    written in, with an ordered list of medicine lines.
    """

    __tablename__ = "prescriptions"

    id = db.Column(db.Integer, primary_key=True)
    serial = db.Column(db.String(20), unique=True, nullable=False, index=True)  # e.g., PRS-000007

    patient_id = db.Column(
        db.Integer, db.ForeignKey("patients.id"), nullable=False, index=True
    )
    # Kept when the appointment is deleted
    appointment_id = db.Column(
        db.Integer, db.ForeignKey("appointments.id", ondelete="SET NULL"), nullable=True, index=True
    )

    notes = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.Integer, nullable=True, index=True)  # staff identity from the auth layer

    lines = db.relationship(
        "PrescriptionLine",
        back_populates="prescription",
        cascade="all, delete-orphan",
        order_by="PrescriptionLine.position",
    )
    patient = db.relationship("Patient", lazy=True)

    def to_dict(self):
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "serial": self.serial,
            "patient_id": self.patient_id,
            "appointment_id": self.appointment_id,
            "notes": self.notes or "",
            "lines": [line.to_dict() for line in self.lines],
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Prescription {self.serial} - Patient: {self.patient_id}>"


class PrescriptionLine(db.Model):
    __tablename__ = "prescription_lines"

    id = db.Column(db.Integer, primary_key=True)
    prescription_id = db.Column(
        db.Integer, db.ForeignKey("prescriptions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = db.Column(db.Integer, nullable=False, default=0)
    medicine = db.Column(db.String(255), nullable=False)
    regimen = db.Column(db.String(255), nullable=False)  # e.g., "1-0-1 after meals for 5 days"
    quantity = db.Column(db.Integer, nullable=False)

    prescription = db.relationship("Prescription", back_populates="lines")

    def to_dict(self):
        return {
            "medicine": self.medicine,
            "regimen": self.regimen,
            "quantity": self.quantity,
        }
