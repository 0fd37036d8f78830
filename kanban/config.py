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
    TESTING = False

    # Storage
    DATABASE_URL = os.environ.get('DATABASE_URL')
    SQL_ECHO = os.environ.get('SQL_ECHO', 'False').lower() == 'true'

    # Session credential (signed cookie issued at login/registration)
    AUTH_COOKIE_NAME = os.environ.get('AUTH_COOKIE_NAME', 'token')
    SESSION_LIFETIME_SECONDS = int(os.environ.get('SESSION_LIFETIME_SECONDS', 24 * 60 * 60))
    AUTH_COOKIE_SECURE = os.environ.get('AUTH_COOKIE_SECURE', 'False').lower() == 'true'

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()


class TestConfig(Config):
    """In-memory SQLite configuration used by the test suite."""
    TESTING = True
    DEBUG = False
    SECRET_KEY = 'test-secret-key'
    DATABASE_URL = 'sqlite://'
    SQL_ECHO = False
    LOG_LEVEL = 'DEBUG'
