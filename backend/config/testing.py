"""Testing configuration."""
from .base import BaseConfig

class TestingConfig(BaseConfig):
    """Testing configuration class."""
    
    DEBUG = False
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    
    # Rate Limiting (disabled for testing)
    RATELIMIT_ENABLED = False
    
    # Small stripe count so tests exercise shared stripes
    TOKEN_STORE_STRIPES = 4
    
    MAX_CONTENT_LENGTH = 4 * 1024 * 1024  # 4MB for testing
    
    # Logging
    LOG_LEVEL = 'WARNING'
