from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException
from .extensions import db, migrate
import logging
import os

# Setup basic logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s %(levelname)s: %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(config_name=None):
    """Create Flask application factory"""
    app = Flask(__name__)

    # Load configuration
    if config_name:
        from dental_clinic.config import config
        app.config.from_object(config.get(config_name, config['default']))
    else:
        from dental_clinic.config import get_config
        app.config.from_object(get_config())

    # Ensure production mode if FLASK_ENV is production
    if os.getenv('FLASK_ENV') == 'production':
        app.config['DEBUG'] = False
        app.config['TESTING'] = False

    from dental_clinic.config import DEFAULT_SECRET_KEY
    if not app.debug and not app.testing and app.config['SECRET_KEY'] == DEFAULT_SECRET_KEY:
        raise ValueError("SECRET_KEY environment variable must be set in production")

    logging.getLogger('dental_clinic').setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    # Initialize extensions first (before error handlers)
    db.init_app(app)
    migrate.init_app(app, db)

    # Initialize JWT (tokens are issued by the identity service)
    from flask_jwt_extended import JWTManager
    JWTManager(app)

    # Initialize CORS
    from dental_clinic.utils.cors import init_cors
    init_cors(app)

    # Attachment storage collaborator; deployments install a real backend
    from dental_clinic.services.attachment_storage import NullAttachmentStorage, set_attachment_storage
    set_attachment_storage(app, NullAttachmentStorage())

    # Domain errors carry their own status code
    from dental_clinic.errors import ClinicError

    @app.errorhandler(ClinicError)
    def handle_clinic_error(e):
        if e.status_code >= 500:
            logger.error("%s: %s", e.code, e.message)
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Internal Server Error: {error}", exc_info=True)
        return jsonify({
            'success': False,
            'error': 'Internal server error. Check server logs for details.'
        }), 500

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({
            'success': False,
            'error': 'Endpoint not found'
        }), 404

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        return jsonify({
            'success': False,
            'error': e.description
        }), e.code

    @app.errorhandler(Exception)
    def handle_exception(e):
        logger.error(f"Unhandled exception: {e}", exc_info=True)
        return jsonify({
            'success': False,
            'error': f'An error occurred: {str(e)}'
        }), 500

    # Setup logging
    if not app.debug and not app.testing:
        from logging.handlers import RotatingFileHandler

        log_file = app.config['LOG_FILE']
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10240000,
            backupCount=10
        )
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)
        logging.getLogger('dental_clinic').addHandler(file_handler)
        app.logger.setLevel(logging.INFO)
        app.logger.info('Application startup')

    # Security headers middleware
    @app.after_request
    def set_security_headers(response):
        """Add security headers to all responses"""
        if not app.debug:
            response.headers['X-Content-Type-Options'] = 'nosniff'
            response.headers['X-Frame-Options'] = 'DENY'
            response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
            # Only add HSTS if using HTTPS
            if request.is_secure:
                response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        return response

    # Import models to register them with SQLAlchemy
    with app.app_context():
        from .models import (  # noqa: F401
            Patient, Practitioner, Service, Appointment, DentalProcedure, Attachment,
            Prescription, PrescriptionLine, SequenceCounter, AuditLog,
        )

        # Register blueprints
        from .routes import (
            health_bp, patient_bp, practitioner_bp, service_bp, appointment_bp, prescription_bp,
        )
        app.register_blueprint(health_bp)  # Register health check first
        app.register_blueprint(patient_bp)
        app.register_blueprint(practitioner_bp)
        app.register_blueprint(service_bp)
        app.register_blueprint(appointment_bp)
        app.register_blueprint(prescription_bp)

    register_cli(app)

    return app


def register_cli(app):
    import click

    @app.cli.command('create-db')
    def create_db():
        """Create all tables and serial counters (development only)."""
        db.create_all()
        from dental_clinic.services.sequence_service import ensure_sequences
        ensure_sequences()
        click.echo('Database tables created.')

    @app.cli.command('init-sequences')
    def init_sequences():
        """Create missing serial counters (patient, appointment, prescription)."""
        from dental_clinic.services.sequence_service import ensure_sequences
        ensure_sequences()
        click.echo('Sequence counters ready.')
