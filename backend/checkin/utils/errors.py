"""Infrastructure error classes.

Expected check-in outcomes (expired token, outside geofence, bad photo...)
are never raised; they travel as ``RejectionReason`` values. The classes
here signal bugs or resource problems the caller cannot fix by rescanning.
"""

class CheckInError(Exception):
    """Base class for infrastructure failures in the check-in core."""
    pass

class QRRenderError(CheckInError):
    """Encoding a token payload into a QR image failed."""
    pass

class TokenStoreError(CheckInError):
    """The active-token store is in an inconsistent state."""
    pass
