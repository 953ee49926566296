import os
from dotenv import load_dotenv

load_dotenv()

DEFAULT_SECRET_KEY = 'dev-secret-key-change-in-production'


class Config:
    """Base configuration"""
    SECRET_KEY = os.getenv('SECRET_KEY') or DEFAULT_SECRET_KEY
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY') or SECRET_KEY

    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'postgresql://localhost/dental_clinic')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
        'pool_size': 10,
        'max_overflow': 20
    }

    # Workflow
    # CONFIRMED -> IN_EXAM requires the appointment start to have passed (walk-ins exempt)
    ENFORCE_EXAM_START_TIME = os.getenv('ENFORCE_EXAM_START_TIME', 'true').lower() == 'true'

    # Listing
    DEFAULT_PAGE_SIZE = int(os.getenv('DEFAULT_PAGE_SIZE', '20'))
    MAX_PAGE_SIZE = int(os.getenv('MAX_PAGE_SIZE', '100'))

    # IANA zone appointment times are stored in; offset-aware input is converted to it.
    # Unset means the server's local zone.
    CLINIC_TIMEZONE = os.getenv('CLINIC_TIMEZONE') or None

    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*')

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FILE = os.getenv('LOG_FILE', 'logs/app.log')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False

    # Database connection pool for production
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 3600,
        'pool_size': 20,
        'max_overflow': 40,
        'connect_args': {
            'connect_timeout': 10,
            'options': '-c statement_timeout=30000'
        }
    }

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'WARNING')


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    DEBUG = True
    SECRET_KEY = 'testing-secret-key'
    JWT_SECRET_KEY = 'testing-jwt-secret-key-with-enough-length'
    SQLALCHEMY_DATABASE_URI = os.getenv('TEST_DATABASE_URL', 'sqlite:///:memory:')
    # SQLite rejects pool sizing arguments
    SQLALCHEMY_ENGINE_OPTIONS = {}


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config():
    """Get configuration based on FLASK_ENV"""
    env = os.getenv('FLASK_ENV', 'development')
    return config.get(env, config['default'])
