from datetime import datetime

from dental_clinic.extensions import db


class TimestampMixin:
    """created_at / updated_at columns shared by all records."""
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
