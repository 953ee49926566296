from dental_clinic.extensions import db
from .base import TimestampMixin


class Service(db.Model, TimestampMixin):
    """Price catalog entry. Procedures copy its price; they never follow later changes."""
    __tablename__ = 'services'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), unique=True, nullable=False)
    category = db.Column(db.String(100), index=True)  # e.g., Restorative, Surgery
    price = db.Column(db.Numeric(10, 2), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'category': self.category,
            'price': str(self.price) if self.price is not None else None,
            'is_active': self.is_active,
        }

    def __repr__(self):
        return f"<Service {self.name} ({self.price})>"
