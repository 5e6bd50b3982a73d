from dotenv import load_dotenv
import os

load_dotenv()


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name, default):
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_csv(name, default_csv):
    value = os.environ.get(name, default_csv)
    return [item.strip() for item in value.split(",") if item.strip()]


class Config:
    SECRET_KEY = os.environ.get('SESSION_SECRET', 'attendtrack-local-session-secret')

    # Remote student/attendance API. Leave empty to run against the in-process demo backend.
    API_BASE_URL = os.environ.get('ATTENDTRACK_API_URL', '').rstrip('/')
    API_KEY = os.environ.get('ATTENDTRACK_API_KEY', '')
    API_TIMEOUT = _env_float('ATTENDTRACK_API_TIMEOUT', 10.0)
    REPORT_SCANS = _env_bool('ATTENDTRACK_REPORT_SCANS', False)

    # Flask-Limiter storage, in-memory unless REDIS_URL is provided
    RATELIMIT_STORAGE_URI = os.environ.get('REDIS_URL', 'memory://')
    API_RATE_LIMIT = '100 per minute'

    # Hardware simulation timings (seconds)
    SCAN_DELAY = 0.5
    RESULT_RESET_DELAY = 5.0
    HEARTBEAT_INTERVAL = 5.0
    SMS_DELIVERY_DELAY = 2.0
    TOAST_DURATION = 5.0

    # Dashboard settings defaults, editable by admins at runtime
    SCHOOL_NAME = os.environ.get('ATTENDTRACK_SCHOOL_NAME', 'Demo School')
    LATE_THRESHOLD = os.environ.get('ATTENDTRACK_LATE_THRESHOLD', '08:30')
    SCANNER_LOCATION = os.environ.get('ATTENDTRACK_SCANNER_LOCATION', 'Main Entrance')
    SCANNER_FIRMWARE = '1.0.3'
    SMS_TEMPLATE = '[AttendTrack] {student_name} checked {action} at {time} on {date}. Status: {status}'
    ENABLE_SMS_NOTIFICATIONS = _env_bool('ATTENDTRACK_ENABLE_SMS', True)
    SMS_NETWORK_OPERATOR = 'SMART'

    # Seed the demo backend and ledger with sample students and history
    SEED_DEMO_DATA = _env_bool('ATTENDTRACK_SEED_DEMO_DATA', True)
    START_SCHEDULER = True

    LOG_LEVEL = os.environ.get('ATTENDTRACK_LOG_LEVEL', 'INFO')

    # Security Settings
    SESSION_COOKIE_SECURE = _env_bool('SESSION_COOKIE_SECURE', False)
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    PERMANENT_SESSION_LIFETIME = 3600  # 1 hour
    CORS_ALLOWED_ORIGINS = _env_csv(
        'ATTENDTRACK_CORS_ALLOWED_ORIGINS',
        'http://localhost:5000,http://127.0.0.1:5000'
    )

    VERSION = '1.0.0'
    DEBUG = _env_bool('FLASK_DEBUG', False)
    TESTING = False


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'attendtrack-test-secret'
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False
    API_BASE_URL = ''
    REPORT_SCANS = False
    SEED_DEMO_DATA = True
    START_SCHEDULER = False
    LOG_LEVEL = 'WARNING'
