from dental_clinic.extensions import db
from .base import TimestampMixin


class Practitioner(db.Model, TimestampMixin):
    __tablename__ = 'practitioners'

    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    specialization = db.Column(db.String(100))  # e.g., Orthodontics, Endodontics
    phone = db.Column(db.String(20))
    email = db.Column(db.String(120), unique=True, nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    @property
    def display_name(self):
        return f"Dr. {self.first_name} {self.last_name}"

    def to_dict(self):
        return {
            'id': self.id,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'display_name': self.display_name,
            'specialization': self.specialization,
            'phone': self.phone,
            'email': self.email,
            'is_active': self.is_active,
        }

    def __repr__(self):
        return f"<Practitioner {self.display_name} - {self.specialization}>"
