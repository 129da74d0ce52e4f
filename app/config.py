"""
Application configuration settings.

This module defines the base configuration class (`Config`) for the Flask
application and a `TestingConfig` used by the test-suite. Values are read from
environment variables where it makes sense so the same code runs locally, in a
container, and under pytest.

The application factory (`create_app` in app/__init__.py) loads `Config` by
default; callers may pass another class (or a dict of overrides) instead.
"""
import os
from datetime import timedelta

# Project root (one level up from the 'app' package).
BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Fallback signing key for local development only; create_app warns when it is in use.
DEV_SECRET_KEY = 'unsafe-dev-secret-key-change-me'


class Config:
    """
    Base configuration class for the Flask application.
    Settings defined here can be accessed via `current_app.config`.
    """

    # --- Security Settings ---
    # SECRET_KEY signs the session cookie and CSRF tokens.
    SECRET_KEY = os.getenv('SECRET_KEY', DEV_SECRET_KEY)

    # JWT_SECRET_KEY signs bearer tokens handed out by /api/v1/token.
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'unsafe-dev-jwt-secret-key-change-me')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=int(os.getenv('JWT_TOKEN_EXPIRE_HOURS', '1')))

    # --- Storage Locations ---
    # DATA_DIR holds everything written at runtime: the SQLite file and uploaded photos.
    DATA_DIR = os.getenv('DATA_DIR', os.path.join(BASE_DIR, 'data'))
    DATABASE = os.getenv('DATABASE', os.path.join(DATA_DIR, 'instance', 'stores.db'))
    UPLOAD_FOLDER = os.getenv('UPLOAD_FOLDER', os.path.join(DATA_DIR, 'uploads'))

    # MAX_CONTENT_LENGTH: Maximum allowed request size (in bytes). 10 MB.
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024

    # --- Store Listing / Query Tunables ---
    STORES_PER_PAGE = 6
    SEARCH_RESULT_LIMIT = 5
    NEAR_RESULT_LIMIT = 10
    NEAR_MAX_DISTANCE_METERS = 10000  # 10km
    TOP_STORES_LIMIT = 10
    TOP_STORES_MIN_REVIEWS = 2

    # Uploaded photos are resized to this width; height follows the aspect ratio.
    PHOTO_WIDTH = 800

    # --- Accounts ---
    PASSWORD_RESET_EXPIRES = timedelta(hours=1)

    # --- Outgoing Mail (password reset links) ---
    MAIL_SERVER = os.getenv('MAIL_SERVER', 'localhost')
    MAIL_PORT = int(os.getenv('MAIL_PORT', '587'))
    MAIL_USERNAME = os.getenv('MAIL_USERNAME', '')
    MAIL_PASSWORD = os.getenv('MAIL_PASSWORD', '')
    MAIL_USE_TLS = os.getenv('MAIL_USE_TLS', 'True').lower() == 'true'
    MAIL_DEFAULT_SENDER = os.getenv('MAIL_DEFAULT_SENDER', 'noreply@example.com')
    # When True, messages are logged instead of being handed to the SMTP server.
    MAIL_SUPPRESS_SEND = os.getenv('MAIL_SUPPRESS_SEND', 'False').lower() == 'true'

    # --- Presentation ---
    SITE_NAME = os.getenv('SITE_NAME', 'Store Finder')
    # Google Maps key used by the browser-side autocomplete and map widgets.
    MAP_KEY = os.getenv('MAP_KEY', '')

    # --- Session Cookie Security Settings ---
    # SESSION_COOKIE_SECURE: only send the cookie over HTTPS. Disable for plain-HTTP local development.
    SESSION_COOKIE_SECURE = os.getenv('SESSION_COOKIE_SECURE', 'True').lower() == 'true'
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    # Flask-WTF CSRF token validity period in seconds.
    WTF_CSRF_TIME_LIMIT = 3600


class TestingConfig(Config):
    """Configuration used by the pytest suite. Paths are overridden per test."""
    TESTING = True
    SECRET_KEY = 'testing-secret-key'
    JWT_SECRET_KEY = 'testing-jwt-secret-key-with-enough-length'
    WTF_CSRF_ENABLED = False  # Forms are posted directly by the test client.
    SESSION_COOKIE_SECURE = False
    MAIL_SUPPRESS_SEND = True
