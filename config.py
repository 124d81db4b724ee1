"""
Centralized Configuration for RentalHub
Manages environment-specific settings, secrets, and integration credentials.
"""
import os
import tempfile
from datetime import timedelta

class Config:
    """Base configuration with defaults"""

    # Flask Settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or os.urandom(32).hex()
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB max import upload
    JSON_SORT_KEYS = False

    # CORS Settings
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')
    CORS_METHODS = ['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS']
    CORS_ALLOW_HEADERS = ['Content-Type', 'Authorization', 'X-Requested-With', 'Stripe-Signature']

    # Database Settings
    DATABASE_URL = os.environ.get('DATABASE_URL', 'postgresql://localhost/rentalhub')
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }

    # File fallback store used when the database is unreachable
    FALLBACK_DATA_FOLDER = os.environ.get('FALLBACK_DATA_FOLDER', 'temp-data')

    # AI Service
    ANTHROPIC_API_KEY = os.environ.get('ANTHROPIC_API_KEY')
    AI_MODELS = {
        'claude': {
            'model': os.environ.get('CLAUDE_MODEL', 'claude-sonnet-4-20250514'),
            'max_tokens': 1500,
            'temperature': 0.2,
        },
        'claude_fast': {
            'model': os.environ.get('CLAUDE_FAST_MODEL', 'claude-3-5-haiku-20241022'),
            'max_tokens': 1500,
            'temperature': 0.3,
        },
    }
    AI_TIMEOUT = int(os.environ.get('AI_TIMEOUT', '60'))  # seconds

    # Stripe
    STRIPE_SECRET_KEY = os.environ.get('STRIPE_SECRET_KEY')
    STRIPE_WEBHOOK_SECRET = os.environ.get('STRIPE_WEBHOOK_SECRET')
    PLATFORM_FEE_PERCENT = float(os.environ.get('PLATFORM_FEE_PERCENT', '0.025'))
    PLATFORM_FEE_FIXED_CENTS = int(os.environ.get('PLATFORM_FEE_FIXED_CENTS', '30'))

    # Review and social lookups
    GOOGLE_PLACES_API_KEY = os.environ.get('GOOGLE_PLACES_API_KEY')
    FACEBOOK_APP_ID = os.environ.get('FACEBOOK_APP_ID')
    FACEBOOK_APP_SECRET = os.environ.get('FACEBOOK_APP_SECRET')

    # SMS
    TWILIO_ACCOUNT_SID = os.environ.get('TWILIO_ACCOUNT_SID')
    TWILIO_AUTH_TOKEN = os.environ.get('TWILIO_AUTH_TOKEN')
    TWILIO_PHONE_NUMBER = os.environ.get('TWILIO_PHONE_NUMBER')

    # Pricing defaults (a business can override with settings.tax_rate)
    DEFAULT_RENTAL_TAX_RATE = float(os.environ.get('DEFAULT_RENTAL_TAX_RATE', '0.08'))
    DEFAULT_INVOICE_TAX_RATE = float(os.environ.get('DEFAULT_INVOICE_TAX_RATE', '0.055'))

    # Outbound HTTP
    HTTP_TIMEOUT = int(os.environ.get('HTTP_TIMEOUT', '30'))  # seconds
    WEB_INTELLIGENCE_TIMEOUT = int(os.environ.get('WEB_INTELLIGENCE_TIMEOUT', '10'))

    # Logging Configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    LOG_FILE = os.environ.get('LOG_FILE', 'rentalhub.log')

    # Session Configuration
    SESSION_PERMANENT = False
    PERMANENT_SESSION_LIFETIME = timedelta(days=7)


class DevelopmentConfig(Config):
    """Development-specific configuration"""
    DEBUG = True
    TESTING = False
    LOG_LEVEL = 'DEBUG'
    DATABASE_URL = os.environ.get('DATABASE_URL', 'sqlite:///rentalhub-dev.db')
    # Allow all CORS in development
    CORS_ORIGINS = ['*']


class ProductionConfig(Config):
    """Production-specific configuration"""
    DEBUG = False
    TESTING = False
    # Strict CORS in production
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', 'https://rentalhub.app').split(',')
    # Force HTTPS
    PREFERRED_URL_SCHEME = 'https'
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'


class TestingConfig(Config):
    """Testing-specific configuration"""
    DEBUG = True
    TESTING = True
    DATABASE_URL = 'sqlite://'
    FALLBACK_DATA_FOLDER = os.path.join(tempfile.gettempdir(), 'rentalhub-test-data')
    LOG_LEVEL = 'WARNING'
    # External integrations stay off unless a test patches them in
    ANTHROPIC_API_KEY = None
    STRIPE_SECRET_KEY = None
    STRIPE_WEBHOOK_SECRET = None
    GOOGLE_PLACES_API_KEY = None
    FACEBOOK_APP_ID = None
    FACEBOOK_APP_SECRET = None
    TWILIO_ACCOUNT_SID = None
    TWILIO_AUTH_TOKEN = None
    TWILIO_PHONE_NUMBER = None


# Configuration selector
config_by_name = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig,
}


def get_config():
    """Get configuration based on FLASK_ENV environment variable"""
    env = os.environ.get('FLASK_ENV', 'development')
    return config_by_name.get(env, DevelopmentConfig)
