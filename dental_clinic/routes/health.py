"""
Health check endpoints for monitoring and load balancers
"""
from flask import Blueprint, jsonify
from sqlalchemy.exc import SQLAlchemyError
from dental_clinic.extensions import db
from dental_clinic.models import SequenceCounter
from dental_clinic.services.sequence_service import SERIAL_PREFIXES
from datetime import datetime

health_bp = Blueprint('health', __name__, url_prefix='/health')


@health_bp.route('', methods=['GET'])
@health_bp.route('/ping', methods=['GET'])
def health_check():
    """Basic health check - no database connection"""
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.utcnow().isoformat(),
        'service': 'dental-clinic-core'
    }), 200


@health_bp.route('/ready', methods=['GET'])
def readiness_check():
    """Readiness check - database reachable and serial counters seeded"""
    try:
        db.session.execute(db.text('SELECT 1'))
        db_status = 'connected'
        seeded = {row.kind for row in SequenceCounter.query.all()}
        missing = sorted(set(SERIAL_PREFIXES) - seeded)
    except SQLAlchemyError as e:
        db.session.rollback()
        db_status = f'error: {str(e)}'
        missing = sorted(SERIAL_PREFIXES)

    ready = db_status == 'connected' and not missing
    return jsonify({
        'status': 'ready' if ready else 'not_ready',
        'database': db_status,
        'missing_sequences': missing,
        'timestamp': datetime.utcnow().isoformat()
    }), 200 if ready else 503


@health_bp.route('/live', methods=['GET'])
def liveness_check():
    """Liveness check for Kubernetes/containers"""
    return jsonify({
        'status': 'alive',
        'timestamp': datetime.utcnow().isoformat()
    }), 200
