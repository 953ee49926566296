from .health import health_bp
from .patient import patient_bp
from .practitioner import practitioner_bp
from .service import service_bp
from .appointment import appointment_bp
from .prescription import prescription_bp

__all__ = [
    'health_bp',
    'patient_bp',
    'practitioner_bp',
    'service_bp',
    'appointment_bp',
    'prescription_bp',
]
