from dental_clinic.extensions import db
from .base import TimestampMixin
import json

# Fixed yes/no medical questionnaire; each answer may carry a free-text note
MEDICAL_QUESTIONS = (
    'heart_disease',
    'hypertension',
    'diabetes',
    'bleeding_disorder',
    'allergies',
    'pregnancy',
    'smoker',
    'taking_medication',
    'infectious_disease',
    'previous_surgery',
)


class Patient(db.Model, TimestampMixin):
    __tablename__ = 'patients'

    id = db.Column(db.Integer, primary_key=True)
    serial = db.Column(db.String(20), unique=True, nullable=False, index=True)  # e.g., PAT-000042

    # Personal
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    gender = db.Column(db.String(20))
    birth_date = db.Column(db.Date)
    phone = db.Column(db.String(20), index=True)
    email = db.Column(db.String(120))
    address = db.Column(db.String(255))
    notes = db.Column(db.Text)

    # {question: {"answer": bool, "note": str}} for every key in MEDICAL_QUESTIONS
    questionnaire_json = db.Column(db.Text)

    @property
    def questionnaire(self):
        """Full questionnaire, unanswered questions reported as False with no note."""
        stored = {}
        if self.questionnaire_json:
            try:
                stored = json.loads(self.questionnaire_json)
            except (TypeError, json.JSONDecodeError):
                stored = {}
        return {
            key: {
                'answer': bool(stored.get(key, {}).get('answer', False)),
                'note': stored.get(key, {}).get('note'),
            }
            for key in MEDICAL_QUESTIONS
        }

    @questionnaire.setter
    def questionnaire(self, value):
        self.questionnaire_json = json.dumps(value) if value is not None else None

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    def to_dict(self):
        return {
            'id': self.id,
            'serial': self.serial,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'gender': self.gender,
            'birth_date': self.birth_date.isoformat() if self.birth_date else None,
            'phone': self.phone,
            'email': self.email,
            'address': self.address,
            'notes': self.notes,
            'questionnaire': self.questionnaire,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Patient {self.first_name} {self.last_name} ({self.serial})>"
