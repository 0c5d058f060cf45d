"""Check-in services."""
from .token_store import InMemoryTokenStore, TokenStore
from .qr_service import QRTokenService
from .geofence_service import GeofenceService
from .photo_service import PhotoQualityService
from .session_registry import SessionConfig, SessionRegistry
from .verification_service import CheckInVerifier

__all__ = [
    'InMemoryTokenStore', 'TokenStore', 'QRTokenService', 'GeofenceService',
    'PhotoQualityService', 'SessionConfig', 'SessionRegistry', 'CheckInVerifier'
]
