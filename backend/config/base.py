"""Settings shared by every environment."""
import os

class BaseConfig:
    """Base configuration class."""
    
    SECRET_KEY = os.getenv('SECRET_KEY') or 'dev-secret-key-change-in-production'
    JSON_SORT_KEYS = False
    
    # CORS
    CORS_ORIGINS = ["http://localhost:*", "http://127.0.0.1:*"]
    
    # Rate Limiting
    RATELIMIT_STORAGE_URI = os.getenv('RATELIMIT_STORAGE_URI', 'memory://')
    RATELIMIT_DEFAULT = "200 per day;50 per hour"
    RATELIMIT_ENABLED = True
    
    # QR check-in tokens
    QR_TOKEN_TTL_MINUTES = 30
    QR_TOKEN_MAX_TTL_MINUTES = 24 * 60
    QR_ROTATION_MAX_COUNT = 10
    QR_IMAGE_SIZE = 300  # pixels, square
    QR_MAX_IMAGE_SIZE = 2000
    QR_ERROR_CORRECTION = 'M'
    
    # Token store
    TOKEN_STORE_STRIPES = 16
    
    # Photo quality heuristic
    PHOTO_MIN_DIMENSION = 400  # pixels
    PHOTO_MIN_ASPECT = 0.6
    PHOTO_MAX_ASPECT = 1.2
    PHOTO_MIN_BYTES = 50000
    
    # Request limits
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB
    
    # Logging
    LOG_LEVEL = 'INFO'
    LOG_FILE = 'logs/app.log'
