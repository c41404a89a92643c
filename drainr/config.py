# drainr/config.py
import os
import json
import logging
from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, '..', '.env'))

logger = logging.getLogger(__name__)

DEFAULT_PIPE_PRICING = {
    '100mm': {'per_meter': 409.09, 'per_junction': 681.82},
    '150mm': {'per_meter': 545.45, 'per_junction': 818.18},
}


def _normalize_database_url(database_url):
    """SQLAlchemy only accepts the postgresql:// scheme"""
    if database_url and database_url.startswith('postgres://'):
        return database_url.replace('postgres://', 'postgresql://', 1)
    return database_url


def _load_pipe_pricing():
    """Read PIPE_PRICING as JSON, falling back to the default rate card"""
    raw = os.environ.get('PIPE_PRICING')
    if not raw:
        return DEFAULT_PIPE_PRICING
    try:
        pricing = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"PIPE_PRICING is not valid JSON, using defaults: {e}")
        return DEFAULT_PIPE_PRICING
    if not isinstance(pricing, dict) or not pricing:
        logger.warning("PIPE_PRICING must be a non-empty object, using defaults")
        return DEFAULT_PIPE_PRICING
    return pricing


class Config:
    """Base configuration"""

    # Security Configuration
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    SQLALCHEMY_DATABASE_URI = None  # Set in __init__
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_recycle': 3600,
        'pool_pre_ping': True,
    }

    CORS_ORIGINS = [
        'http://localhost:3000',
        'http://127.0.0.1:3000',
    ]
    CORS_SUPPORTS_CREDENTIALS = False

    # Outbound HTTP
    HTTP_TIMEOUT = float(os.environ.get('HTTP_TIMEOUT', 15))

    # Business & Document Settings
    TIMEZONE = os.environ.get('TIMEZONE', 'Australia/Sydney')
    QUOTE_VALID_DAYS = int(os.environ.get('QUOTE_VALID_DAYS', 30))

    COMPANY_NAME = os.environ.get('COMPANY_NAME', 'Drainr Environmental Services')
    COMPANY_ADDRESS = os.environ.get('COMPANY_ADDRESS', '')
    COMPANY_PHONE = os.environ.get('COMPANY_PHONE', '')
    COMPANY_EMAIL = os.environ.get('COMPANY_EMAIL', 'quotes@drainr.com.au')
    COMPANY_ABN = os.environ.get('COMPANY_ABN', '')

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    def __init__(self):
        self.SQLALCHEMY_DATABASE_URI = self.get_database_url()

        # Credentials
        self.ADMIN_SECRET = os.environ.get('ADMIN_SECRET', '')
        self.INTAKE_SECRET = os.environ.get('INTAKE_SECRET') or os.environ.get('VIEWER_INTAKE_SECRET', '')

        # Public links
        self.PUBLIC_QUOTE_BASE_URL = os.environ.get('PUBLIC_QUOTE_BASE_URL', '')
        self.REACTIVATION_EMAIL = os.environ.get('REACTIVATION_EMAIL', self.COMPANY_EMAIL)
        self.REACTIVATION_PHONE = os.environ.get('REACTIVATION_PHONE', '')

        # ServiceM8
        self.SERVICEM8_API_KEY = os.environ.get('SERVICEM8_API_KEY', '')
        self.SERVICEM8_API_BASE = os.environ.get('SERVICEM8_API_BASE', 'https://api.servicem8.com/api_1.0')

        # Mux direct uploads
        self.MUX_TOKEN_ID = os.environ.get('MUX_TOKEN_ID', '')
        self.MUX_TOKEN_SECRET = os.environ.get('MUX_TOKEN_SECRET', '')
        self.MUX_API_BASE = os.environ.get('MUX_API_BASE', 'https://api.mux.com')
        self.MUX_CORS_ORIGIN = os.environ.get('MUX_CORS_ORIGIN', '*')

        # Zapier relay to Qwilr
        self.ZAPIER_WEBHOOK_URL = os.environ.get('ZAPIER_WEBHOOK_URL', '')

        # Pricing
        self.SETUP_COST = float(os.environ.get('SETUP_COST', 2272.73))
        self.DIGGING_PER_HOUR = float(os.environ.get('DIGGING_PER_HOUR', 150.00))
        self.PIPE_PRICING = _load_pipe_pricing()

    @staticmethod
    def get_database_url():
        """Get properly formatted database URL string"""
        database_url = _normalize_database_url(os.environ.get('DATABASE_URL'))
        if database_url:
            return database_url
        return 'sqlite:///' + os.path.join(basedir, '..', 'instance', 'drainr_quotes.db')


class DevelopmentConfig(Config):
    """Development configuration for local testing"""
    DEBUG = True
    DEVELOPMENT = True

    def __init__(self):
        super().__init__()

        dev_database_url = _normalize_database_url(os.environ.get('DEV_DATABASE_URL'))
        if dev_database_url:
            self.SQLALCHEMY_DATABASE_URI = dev_database_url

        self.CORS_ORIGINS = Config.CORS_ORIGINS + [
            'http://localhost:3001',
            'https://*.ngrok-free.app',
        ]


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    DEVELOPMENT = False

    def __init__(self):
        super().__init__()

        secret_key = os.environ.get('SECRET_KEY')
        if not secret_key:
            raise ValueError("SECRET_KEY environment variable is required for production")
        self.SECRET_KEY = secret_key

        database_url = _normalize_database_url(os.environ.get('DATABASE_URL'))
        if not database_url:
            raise ValueError("DATABASE_URL environment variable is required for production")
        self.SQLALCHEMY_DATABASE_URI = database_url

        if not self.ADMIN_SECRET:
            raise ValueError("ADMIN_SECRET environment variable is required for production")

        origins = os.environ.get('CORS_ORIGINS', '')
        self.CORS_ORIGINS = [o.strip() for o in origins.split(',') if o.strip()]

        self.SQLALCHEMY_ENGINE_OPTIONS = {
            'pool_recycle': 3600,
            'pool_pre_ping': True,
            'pool_size': 10,
            'max_overflow': 20,
            'pool_timeout': 30,
        }

        if not self.SERVICEM8_API_KEY:
            logger.warning("SERVICEM8_API_KEY not set - job lookups will fail")
        if not (self.MUX_TOKEN_ID and self.MUX_TOKEN_SECRET):
            logger.warning("MUX_TOKEN_ID/MUX_TOKEN_SECRET not set - video uploads will fail")


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    SECRET_KEY = 'testing-secret-key'

    def __init__(self):
        super().__init__()
        self.SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
        self.SQLALCHEMY_ENGINE_OPTIONS = {}
        self.CORS_ORIGINS = ['*']

        self.ADMIN_SECRET = 'test-admin-secret'
        self.INTAKE_SECRET = 'test-intake-secret'
        self.PUBLIC_QUOTE_BASE_URL = 'https://quotes.example.com'
        self.REACTIVATION_EMAIL = 'quotes@example.com'
        self.REACTIVATION_PHONE = '0400000000'
        self.SERVICEM8_API_KEY = 'test-servicem8-key'
        self.MUX_TOKEN_ID = 'test-mux-id'
        self.MUX_TOKEN_SECRET = 'test-mux-secret'
        self.ZAPIER_WEBHOOK_URL = 'https://hooks.zapier.example.com/catch/1/abc'

        self.SETUP_COST = 2272.73
        self.DIGGING_PER_HOUR = 150.00
        self.PIPE_PRICING = DEFAULT_PIPE_PRICING


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config_name():
    """Detect environment from environment variables"""
    flask_env = os.environ.get('FLASK_ENV', '').lower()
    if flask_env in ['production', 'testing', 'development']:
        return flask_env

    if os.environ.get('TESTING') or os.environ.get('CI'):
        return 'testing'

    if os.environ.get('DATABASE_URL', '').startswith(('postgres://', 'postgresql://')):
        return 'production'

    return 'development'


__all__ = [
    'config',
    'get_config_name',
]
