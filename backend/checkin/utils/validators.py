"""Validation utilities for request payloads."""
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from checkin.models.location import ClassGeofence, GeoPoint
from checkin.models.verification import CheckInPolicy
from checkin.utils.clock import from_epoch_ms

class ValidationError(Exception):
    """Raised when a request body is missing or malformed."""
    pass

POLICY_FLAGS = ('require_photo', 'require_qr', 'require_location', 'allow_qr', 'allow_location')

class Validator:
    """Validation helper class."""
    
    @staticmethod
    def require_json(data: Any) -> Dict:
        """Ensure a request body is a JSON object."""
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        return data
    
    @staticmethod
    def validate_required_fields(data: Dict, required_fields: List[str]) -> None:
        """Validate required fields in data."""
        missing = [field for field in required_fields if data.get(field) in (None, '')]
        if missing:
            raise ValidationError(f"Missing required field: {', '.join(missing)}")
    
    @staticmethod
    def validate_number(value: Any, name: str, minimum: float = None, maximum: float = None) -> float:
        """Validate a numeric field and its bounds."""
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(f"{name} must be a number")
        if isinstance(value, float) and not math.isfinite(value):
            raise ValidationError(f"{name} must be a finite number")
        if minimum is not None and value < minimum:
            raise ValidationError(f"{name} must be at least {minimum}")
        if maximum is not None and value > maximum:
            raise ValidationError(f"{name} must be at most {maximum}")
        return float(value)
    
    @staticmethod
    def validate_ttl(value: Any, max_minutes: float) -> Optional[float]:
        """Validate an optional token TTL in minutes."""
        if value is None:
            return None
        ttl = Validator.validate_number(value, 'ttl_minutes', maximum=max_minutes)
        if ttl <= 0:
            raise ValidationError("ttl_minutes must be positive")
        return ttl
    
    @staticmethod
    def validate_coordinates(data: Any, name: str = 'location') -> Dict[str, float]:
        """Validate a latitude/longitude pair."""
        if not isinstance(data, dict):
            raise ValidationError(f"{name} must be an object")
        Validator.validate_required_fields(data, ['latitude', 'longitude'])
        return {
            'latitude': Validator.validate_number(data['latitude'], 'latitude', -90, 90),
            'longitude': Validator.validate_number(data['longitude'], 'longitude', -180, 180)
        }
    
    @staticmethod
    def parse_location(data: Any) -> GeoPoint:
        """Build a GeoPoint from a request payload."""
        coordinates = Validator.validate_coordinates(data)
        accuracy = data.get('accuracy', 0.0)
        timestamp = data.get('timestamp')
        return GeoPoint(
            latitude=coordinates['latitude'],
            longitude=coordinates['longitude'],
            accuracy=Validator.validate_number(accuracy, 'accuracy', minimum=0),
            timestamp=Validator.parse_timestamp(timestamp, 'timestamp') if timestamp is not None else None
        )
    
    @staticmethod
    def parse_geofence(data: Any) -> ClassGeofence:
        """Build a ClassGeofence from a request payload."""
        coordinates = Validator.validate_coordinates(data, 'geofence')
        if data.get('radius_meters') is None:
            raise ValidationError("Missing required field: radius_meters")
        radius = Validator.validate_number(data['radius_meters'], 'radius_meters', minimum=0)
        return ClassGeofence(
            latitude=coordinates['latitude'],
            longitude=coordinates['longitude'],
            radius_meters=radius,
            name=data.get('name')
        )
    
    @staticmethod
    def parse_policy(data: Any) -> CheckInPolicy:
        """Build a CheckInPolicy from a request payload."""
        if data is None:
            return CheckInPolicy()
        if not isinstance(data, dict):
            raise ValidationError("policy must be an object")
        
        flags = {}
        for flag in POLICY_FLAGS:
            if flag in data:
                if not isinstance(data[flag], bool):
                    raise ValidationError(f"{flag} must be true or false")
                flags[flag] = data[flag]
        
        starts_at = data.get('starts_at')
        late_after = data.get('late_after_minutes')
        return CheckInPolicy(
            starts_at=Validator.parse_timestamp(starts_at, 'starts_at') if starts_at is not None else None,
            late_after_minutes=(
                Validator.validate_number(late_after, 'late_after_minutes', minimum=0, maximum=24 * 60)
                if late_after is not None else None
            ),
            **flags
        )
    
    @staticmethod
    def parse_timestamp(value: Any, name: str) -> datetime:
        """Accept epoch milliseconds or an ISO-8601 string; naive values are UTC."""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            try:
                return from_epoch_ms(value)
            except (OverflowError, OSError, ValueError):
                raise ValidationError(f"Invalid {name} format")
        if isinstance(value, str):
            try:
                moment = datetime.fromisoformat(value.replace('Z', '+00:00'))
            except ValueError:
                raise ValidationError(f"Invalid {name} format")
            if moment.tzinfo is None:
                moment = moment.replace(tzinfo=timezone.utc)
            return moment
        raise ValidationError(f"Invalid {name} format")
