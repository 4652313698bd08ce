"""
Centralized Configuration for The Darji Back Office
Manages environment-specific settings, secrets, and service configurations.
"""
import os


class Config:
    """Base configuration with defaults"""

    # Flask Settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or os.urandom(32).hex()
    MAX_CONTENT_LENGTH = 50 * 1024 * 1024  # 50MB per request
    MAX_UPLOAD_SIZE = int(os.environ.get('MAX_UPLOAD_SIZE', 5 * 1024 * 1024))  # 5MB per image
    JSON_SORT_KEYS = False

    # JWT Settings
    JWT_SECRET = os.environ.get('JWT_SECRET')
    JWT_ALGORITHM = 'HS256'
    JWT_EXPIRES_IN = os.environ.get('JWT_EXPIRES_IN', '7d')

    # CORS Settings
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')
    CORS_METHODS = ['GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS']
    CORS_ALLOW_HEADERS = ['Content-Type', 'Authorization', 'X-Requested-With']

    # Database Settings
    DATABASE_URL = os.environ.get('DATABASE_URL', 'sqlite:///thedarji.db')
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }

    # File Storage Paths
    BASE_DIR = os.path.dirname(os.path.abspath(__file__))
    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER', 'uploads')
    INVOICE_FOLDER = os.environ.get('INVOICE_FOLDER', 'invoices')

    # AWS S3 (optional - local storage is used when credentials are missing)
    AWS_REGION = os.environ.get('AWS_REGION')
    AWS_ACCESS_KEY_ID = os.environ.get('AWS_ACCESS_KEY_ID')
    AWS_SECRET_ACCESS_KEY = os.environ.get('AWS_SECRET_ACCESS_KEY')
    AWS_S3_BUCKET = os.environ.get('AWS_S3_BUCKET', 'thedarji-uploads')
    AWS_S3_INVOICE_BUCKET = os.environ.get('AWS_S3_INVOICE_BUCKET', 'thedarji-invoices')
    AWS_DEFAULT_REGION = 'ap-south-1'

    # Business Details (printed on invoices and messages)
    SHOP_NAME = os.environ.get('SHOP_NAME', 'The Darji')
    BUSINESS_PHONE = os.environ.get('BUSINESS_PHONE', '+91-8854017433')
    BUSINESS_EMAIL = os.environ.get('BUSINESS_EMAIL', 'thedarji.creations@gmail.com')
    BUSINESS_INSTAGRAM = os.environ.get('BUSINESS_INSTAGRAM', 'thedarji.creations')

    # Background Scheduler
    SCHEDULER_ENABLED = os.environ.get('SCHEDULER_ENABLED', 'true').lower() == 'true'

    # Logging Configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    LOG_FILE = os.environ.get('LOG_FILE', 'app.log')


class DevelopmentConfig(Config):
    """Development-specific configuration"""
    DEBUG = True
    TESTING = False
    LOG_LEVEL = 'DEBUG'
    # Allow all CORS in development
    CORS_ORIGINS = ['*']
    JWT_SECRET = os.environ.get('JWT_SECRET', 'thedarji-development-jwt-secret-change-me')


class ProductionConfig(Config):
    """Production-specific configuration"""
    DEBUG = False
    TESTING = False
    # Strict CORS in production
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', 'https://thedarji.onrender.com').split(',')
    # Force HTTPS
    PREFERRED_URL_SCHEME = 'https'
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'


class TestingConfig(Config):
    """Testing-specific configuration"""
    DEBUG = True
    TESTING = True
    DATABASE_URL = 'sqlite:///:memory:'
    JWT_SECRET = 'test-jwt-secret-minimum-32-chars-long-for-security'
    SCHEDULER_ENABLED = False
    # Never talk to AWS from tests
    AWS_REGION = None
    AWS_ACCESS_KEY_ID = None
    AWS_SECRET_ACCESS_KEY = None


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
