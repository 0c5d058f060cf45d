"""Geolocation data structures."""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Optional

class AccuracyLevel(str, Enum):
    """Advisory band for a device-reported accuracy radius."""
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"

@dataclass
class GeoPoint:
    """A device location fix."""
    latitude: float
    longitude: float
    accuracy: float = 0.0  # meters
    timestamp: Optional[datetime] = None

@dataclass(frozen=True)
class ClassGeofence:
    """Circular area a class session may be checked into from."""
    latitude: float
    longitude: float
    radius_meters: float
    name: Optional[str] = None
    
    def to_dict(self) -> Dict:
        return {
            'latitude': self.latitude,
            'longitude': self.longitude,
            'radius_meters': self.radius_meters,
            'name': self.name
        }

@dataclass
class LocationCheck:
    """Result of evaluating one point against one geofence."""
    distance_meters: float
    inside: bool
    accuracy_level: AccuracyLevel
    satisfied: bool
    message: str
