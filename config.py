"""
Application Configuration

Centralizes all Flask and store configuration settings.
"""

import os

# Base directory of the application
BASE_DIR = os.path.dirname(os.path.abspath(__file__))


class Config:
    """Base configuration class."""

    # Store settings
    STORE_PATH = os.environ.get('RECIPEBOOK_STORE', os.path.join(BASE_DIR, 'RecipeBook.sqlite'))
    TEMPORARY_STORE_PATH = None  # defaults to TemporaryRecipeBook.sqlite beside the store
    MAPPING_NAME = 'v1'

    # SQLAlchemy settings (URI is set from STORE_PATH once the store is prepared)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = 'INFO'


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    LOG_LEVEL = 'DEBUG'


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False


class TestingConfig(Config):
    """Testing configuration. Tests pass STORE_PATH explicitly."""
    TESTING = True
    STORE_PATH = None


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
