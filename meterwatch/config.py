"""
Application configuration.
"""
import os

from dotenv import load_dotenv

load_dotenv()


class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    DEBUG = os.environ.get('FLASK_DEBUG', 'False').lower() == 'true'

    # Shared store
    DATABASE_URL = os.environ.get('DATABASE_URL')

    # Sync engine: full re-read of all four collections every N seconds
    SYNC_POLL_INTERVAL = float(os.environ.get('SYNC_POLL_INTERVAL', '5'))
    SYNC_AUTOSTART = os.environ.get('SYNC_AUTOSTART', 'True').lower() == 'true'

    # OCR collaborator (Gemini REST API)
    GEMINI_API_KEY = os.environ.get('GEMINI_API_KEY') or os.environ.get('API_KEY')
    OCR_MODEL = os.environ.get('OCR_MODEL', 'gemini-3-flash-preview')
    OCR_ENDPOINT = os.environ.get(
        'OCR_ENDPOINT',
        'https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent'
    )
    OCR_TIMEOUT = float(os.environ.get('OCR_TIMEOUT', '30'))

    # Reading submission
    MAX_IMAGE_LENGTH = int(os.environ.get('MAX_IMAGE_LENGTH', str(8 * 1024 * 1024)))

    # Spreadsheet import
    DEFAULT_ALLOWED_DAILY_CONSUMPTION = float(
        os.environ.get('DEFAULT_ALLOWED_DAILY_CONSUMPTION', '5000')
    )
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024

    # Bootstrap account created when the users table is empty
    BOOTSTRAP_ADMIN_PASSWORD = os.environ.get('BOOTSTRAP_ADMIN_PASSWORD', 'admin')
