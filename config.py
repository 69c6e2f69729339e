"""
Application Configuration

Centralizes all Flask and application configuration settings.
"""

import os

# Base directory of the application
BASE_DIR = os.path.dirname(os.path.abspath(__file__))


def _env_float(name, default):
    try:
        return float(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


def _env_int(name, default):
    try:
        return int(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


class Config:
    """Base configuration class."""

    # Flask settings
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-only-change-in-production')
    JSON_SORT_KEYS = False

    # SQLAlchemy settings
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///tracker.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Calendar dates are computed in this zone (IANA name)
    TRACKER_TIMEZONE = os.environ.get('TRACKER_TIMEZONE', 'UTC')

    # Seconds to wait before an edited day is written back
    AUTOSAVE_DELAY = _env_float('AUTOSAVE_DELAY', 0.5)

    # Plan reconciliation: failures before giving up, and backoff in seconds
    CONSISTENCY_MAX_ATTEMPTS = _env_int('CONSISTENCY_MAX_ATTEMPTS', 3)
    RECONCILE_BACKOFF_BASE = _env_float('RECONCILE_BACKOFF_BASE', 1.0)
    RECONCILE_BACKOFF_MAX = _env_float('RECONCILE_BACKOFF_MAX', 60.0)

    # Cached history lists keep at most this many entries / days
    HISTORY_CACHE_LIMIT = _env_int('HISTORY_CACHE_LIMIT', 90)

    # Users kept in memory (plan managers and cached history), least recently seen dropped first
    MAX_TRACKED_USERS = _env_int('MAX_TRACKED_USERS', 1000)

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    AUTOSAVE_DELAY = _env_float('AUTOSAVE_DELAY', 1.0)


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    AUTOSAVE_DELAY = 0
    RECONCILE_BACKOFF_BASE = 0
    MAX_TRACKED_USERS = 20
    LOG_LEVEL = 'WARNING'


# Configuration dictionary for easy access
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config(env=None):
    """Get configuration based on environment."""
    if env is None:
        env = os.environ.get('FLASK_ENV', 'development')
    return config.get(env, config['default'])
