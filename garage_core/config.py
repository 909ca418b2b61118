import os
from datetime import timedelta
from dotenv import load_dotenv

# Load .env early
load_dotenv()


class Config:
    """Base configuration (shared by all environments)"""

    # Security
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-key-please-change-12345')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    PERMANENT_SESSION_LIFETIME = timedelta(minutes=60)
    SESSION_COOKIE_HTTPONLY = True

    # CSRF Protection (JSON clients send the token in the X-CSRFToken header)
    WTF_CSRF_ENABLED = True
    WTF_CSRF_SECRET_KEY = os.environ.get('WTF_CSRF_SECRET_KEY', 'another-dev-secret-change-me')
    WTF_CSRF_TIME_LIMIT = 3600  # 1 hour

    # Passwords
    BCRYPT_LOG_ROUNDS = int(os.environ.get('BCRYPT_LOG_ROUNDS', 12))
    PASSWORD_RESET_MAX_AGE = int(os.environ.get('PASSWORD_RESET_MAX_AGE', 3600))
    PASSWORD_RESET_URL = os.environ.get('PASSWORD_RESET_URL', 'http://localhost:3000/auth/reset-password')

    # Uploads / generated invoices
    BASE_DIR = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    LOCAL_STORAGE_FOLDER = os.environ.get(
        'LOCAL_STORAGE_FOLDER', os.path.join(BASE_DIR, 'static', 'generated_pdfs')
    )
    INVOICE_STORAGE_PATH = os.environ.get('INVOICE_STORAGE_PATH', 'invoices')
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB

    # Email
    MAIL_SERVER = os.environ.get('MAIL_SERVER', 'smtp.gmail.com')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', 587))
    MAIL_USE_TLS = os.environ.get('MAIL_USE_TLS', 'True').lower() == 'true'
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER', 'no-reply@garagemap.app')

    # AWS S3 (optional, falls back to LOCAL_STORAGE_FOLDER)
    AWS_ACCESS_KEY_ID = os.environ.get('AWS_ACCESS_KEY_ID')
    AWS_SECRET_ACCESS_KEY = os.environ.get('AWS_SECRET_ACCESS_KEY')
    AWS_S3_BUCKET = os.environ.get('AWS_S3_BUCKET')
    AWS_S3_REGION = os.environ.get('AWS_S3_REGION', 'us-east-1')
    AWS_S3_CUSTOM_DOMAIN = (
        f"{AWS_S3_BUCKET}.s3.{AWS_S3_REGION}.amazonaws.com"
        if AWS_S3_BUCKET else None
    )

    # Invoices
    DEFAULT_SERVICE_NAME = os.environ.get('DEFAULT_SERVICE_NAME', 'GarageMap Service')

    # i18n
    BABEL_DEFAULT_LOCALE = 'en'
    BABEL_SUPPORTED_LOCALES = ['en']

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    def validate(self):
        if not self.SECRET_KEY or len(self.SECRET_KEY) < 16:
            raise ValueError("SECRET_KEY must be set and secure")
        if not self.WTF_CSRF_SECRET_KEY:
            raise ValueError("WTF_CSRF_SECRET_KEY must be set")
        if not hasattr(self, 'SQLALCHEMY_DATABASE_URI') or not self.SQLALCHEMY_DATABASE_URI:
            raise ValueError("SQLALCHEMY_DATABASE_URI must be set")


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///garagemap.db')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')


class TestingConfig(Config):
    TESTING = True
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    WTF_CSRF_ENABLED = False
    PRESERVE_CONTEXT_ON_EXCEPTION = False
    BCRYPT_LOG_ROUNDS = 4
    AWS_S3_BUCKET = None
    AWS_S3_CUSTOM_DOMAIN = None
    MAIL_USERNAME = None
    MAIL_PASSWORD = None


class ProductionConfig(Config):
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL')
    SESSION_COOKIE_SECURE = True

    def validate(self):
        if not self.SQLALCHEMY_DATABASE_URI:
            raise ValueError("DATABASE_URL is required in production")
        super().validate()


# Shortcut dictionary
config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}
