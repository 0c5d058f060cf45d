"""Production configuration."""
import os

from .base import BaseConfig

class ProductionConfig(BaseConfig):
    """Production configuration class."""
    
    DEBUG = False
    TESTING = False
    SECRET_KEY = os.getenv('SECRET_KEY')  # Must be set in production
    
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', '').split(',') if os.getenv('CORS_ORIGINS') else []
    
    # Rate Limiting
    RATELIMIT_STORAGE_URI = os.getenv('RATELIMIT_STORAGE_URI', 'memory://')
    RATELIMIT_DEFAULT = "100 per hour"
    
    # Shorter codes make screenshots shared outside the room less useful
    QR_TOKEN_TTL_MINUTES = int(os.getenv('QR_TOKEN_TTL_MINUTES', 10))
    QR_TOKEN_MAX_TTL_MINUTES = 4 * 60
    
    # File Upload
    MAX_CONTENT_LENGTH = 8 * 1024 * 1024  # 8MB in production
    
    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FILE = os.getenv('LOG_FILE', '/app/logs/app.log')
