from dotenv import load_dotenv
import os

load_dotenv()


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_csv(name, default_csv):
    value = os.environ.get(name, default_csv)
    return [item.strip() for item in value.split(",") if item.strip()]


def _database_uri():
    url = os.environ.get('DATABASE_URL')
    if url:
        return url
    user = os.environ.get('DB_USER', 'postgres')
    password = os.environ.get('DB_PASSWORD', 'password')
    host = os.environ.get('DB_HOST', 'localhost')
    port = os.environ.get('DB_PORT', '5432')
    name = os.environ.get('DB_NAME', 'aims_db')
    return f'postgresql://{user}:{password}@{host}:{port}/{name}'


class Config:
    LOCALHOST_ONLY = _env_bool("AIMS_LOCALHOST_ONLY", True)
    SECRET_KEY = os.environ.get('SESSION_SECRET', 'aims-local-session-secret')

    # Database configuration
    SQLALCHEMY_DATABASE_URI = _database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_recycle": 300,
        "pool_pre_ping": True,
    }

    # Flask-Limiter Storage
    # Default to in-memory for local/dev; override with REDIS_URL for production
    RATELIMIT_STORAGE_URI = os.environ.get('REDIS_URL', 'memory://')
    RATELIMIT_ENABLED = True
    OTP_RATE_LIMIT = '5 per minute'

    CORS_ALLOWED_ORIGINS = _env_csv(
        'AIMS_CORS_ALLOWED_ORIGINS',
        'http://localhost:3000,http://127.0.0.1:3000'
    )

    # JSON API: session tokens travel in headers, so no CSRF cookie
    WTF_CSRF_ENABLED = False

    # Login / signup
    OTP_TTL_MINUTES = int(os.environ.get('AIMS_OTP_TTL_MINUTES', '5'))
    ALLOWED_EMAIL_DOMAIN = os.environ.get('AIMS_EMAIL_DOMAIN', 'iitrpr.ac.in')

    # Academic rules
    MAX_CREDITS_PER_SESSION = 24
    CURRENT_ACAD_SESSION = os.environ.get('AIMS_CURRENT_SESSION', '2025-II')
    APP_TIMEZONE = os.environ.get('AIMS_TIMEZONE', 'Asia/Kolkata')

    # Flask-Mail (sending is skipped when MAIL_SERVER is empty)
    MAIL_SERVER = os.environ.get('MAIL_SERVER', '')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', '465'))
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME', '')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD', '')
    MAIL_USE_SSL = _env_bool('MAIL_USE_SSL', True)
    MAIL_USE_TLS = _env_bool('MAIL_USE_TLS', False)
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER', 'AIMS-Lite <no-reply@localhost>')
    MAIL_SUPPRESS_SEND = _env_bool('MAIL_SUPPRESS_SEND', False)

    # Application Settings
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    VERSION = '1.0.0'
    DEBUG = _env_bool('FLASK_DEBUG', False)
    TESTING = False


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False
    MAIL_SUPPRESS_SEND = True
    LOG_LEVEL = 'WARNING'
