"""Flask application configuration."""
import os
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]


class Config:
    """Base configuration."""

    # Flask
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')
    JSON_SORT_KEYS = False
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Storage: 'file', 'memory' or 'database'
    STORAGE_BACKEND = os.environ.get('STORAGE_BACKEND', 'file')
    DATA_DIR = os.environ.get('DATA_DIR', str(REPO_ROOT / 'data'))

    # Database (only used by the 'database' storage backend)
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        'DATABASE_URL',
        'sqlite:///cgl_prep.db'
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }

    # Daily content sizes
    DAILY_VOCABULARY_COUNT = 10
    DAILY_IDIOM_COUNT = 5
    DAILY_QUIZ_COUNT = 5
    DAILY_NEWS_COUNT = 5
    DAILY_GK_FACT_COUNT = 8
    MIN_GK_FACT_COUNT = 5

    # CORS (for development)
    CORS_ALLOWED_ORIGINS = os.environ.get('CORS_ALLOWED_ORIGINS', '*')


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'WARNING')


class TestingConfig(Config):
    """Test configuration: nothing touches disk."""
    DEBUG = False
    TESTING = True
    STORAGE_BACKEND = 'memory'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
