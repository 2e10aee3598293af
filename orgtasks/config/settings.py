import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes')


class Settings:
    # Flask settings
    SECRET_KEY = os.getenv('SECRET_KEY')
    FLASK_ENV = os.getenv('FLASK_ENV', 'development')
    DEBUG = FLASK_ENV == 'development'
    DEV_MODE = _env_bool('DEV_MODE', 'false')
    PORT = int(os.getenv('PORT', 5000))
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # CORS settings
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '*').split(',')
    FRONTEND_URL = os.getenv('FRONTEND_URL', 'http://localhost:5173')

    # Token settings
    JWT_SECRET = os.getenv('JWT_SECRET') or os.getenv('SECRET_KEY')
    JWT_ALGORITHM = 'HS256'
    JWT_EXPIRES_HOURS = int(os.getenv('JWT_EXPIRES_HOURS', 24))
    BCRYPT_ROUNDS = int(os.getenv('BCRYPT_ROUNDS', 12))

    # Invitations
    INVITATION_TTL_HOURS = int(os.getenv('INVITATION_TTL_HOURS', 24))

    # Expiry scheduler
    ENABLE_SCHEDULER = _env_bool('ENABLE_SCHEDULER', 'true')
    EXPIRY_SWEEP_INTERVAL_SECONDS = int(os.getenv('EXPIRY_SWEEP_INTERVAL_SECONDS', 3600))
    REMINDER_SWEEP_INTERVAL_SECONDS = int(os.getenv('REMINDER_SWEEP_INTERVAL_SECONDS', 3600))
    REMINDER_SWEEP_OFFSET_SECONDS = int(os.getenv('REMINDER_SWEEP_OFFSET_SECONDS', 1800))
    REMINDER_WINDOW_HOURS = int(os.getenv('REMINDER_WINDOW_HOURS', 24))

    # Firebase settings
    FIREBASE_PROJECT_ID = os.getenv('FIREBASE_PROJECT_ID')
    FIRESTORE_EMULATOR_HOST = os.getenv('FIRESTORE_EMULATOR_HOST')

    # Email settings (optional)
    RESEND_API_KEY = os.getenv('RESEND_API_KEY')
    SMTP_HOST = os.getenv('SMTP_HOST')
    SMTP_PORT = int(os.getenv('SMTP_PORT', 587))
    SMTP_USER = os.getenv('SMTP_USER')
    SMTP_PASSWORD = os.getenv('SMTP_PASSWORD')
    EMAIL_FROM = os.getenv('EMAIL_FROM') or os.getenv('SMTP_USER')

    @classmethod
    def validate(cls):
        """Validate required settings"""
        if cls.DEV_MODE or cls.FLASK_ENV == 'development':
            return True

        if not cls.JWT_SECRET:
            raise ValueError("Missing required environment variable: JWT_SECRET (or SECRET_KEY)")

        # Validate signing key strength
        if len(cls.JWT_SECRET) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters long")

        return True
