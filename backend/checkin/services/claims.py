"""Provider interfaces used by the calling layer to assemble claims.

The verifier only ever sees already-captured values; device access
(geolocation, camera) belongs to whatever builds the claim.
"""
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from checkin.models.location import GeoPoint
from checkin.models.verification import CheckInClaim, PhotoData

@runtime_checkable
class LocationProvider(Protocol):
    """Source of the device's current location fix."""

    def current_location(self) -> GeoPoint:
        ...

@runtime_checkable
class PhotoCaptureProvider(Protocol):
    """Source of a freshly captured verification photo."""

    def capture_photo(self) -> PhotoData:
        ...

def collect_claim(
    session_id: str,
    student_id: str,
    scanned_payload: Optional[str] = None,
    location_provider: Optional[LocationProvider] = None,
    photo_provider: Optional[PhotoCaptureProvider] = None,
    device_info: Optional[Dict[str, Any]] = None
) -> CheckInClaim:
    """Build a claim, calling each provided device source exactly once."""
    location = location_provider.current_location() if location_provider else None
    photo = photo_provider.capture_photo() if photo_provider else None
    return CheckInClaim(
        session_id=session_id,
        student_id=student_id,
        scanned_payload=scanned_payload,
        location=location,
        photo=photo,
        device_info=dict(device_info or {})
    )
