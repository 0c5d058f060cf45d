"""Development configuration."""
import os

from .base import BaseConfig

class DevelopmentConfig(BaseConfig):
    """Development configuration class."""
    
    DEBUG = True
    TESTING = False
    
    # Looser limits while building the UI against the API
    RATELIMIT_DEFAULT = "1000 per hour"
    
    # Longer-lived codes so a projected QR survives a whole demo
    QR_TOKEN_TTL_MINUTES = int(os.getenv('QR_TOKEN_TTL_MINUTES', 30))
    
    LOG_LEVEL = 'DEBUG'
