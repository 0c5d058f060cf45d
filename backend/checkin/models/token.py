"""Check-in token data structures."""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from checkin.utils.clock import to_epoch_ms

# Discriminator embedded in every payload
CHECKIN_TOKEN_TYPE = 'attendance-checkin'

class RejectionReason(str, Enum):
    """Why a check-in (or one of its checks) was refused."""
    MALFORMED = "malformed"
    UNKNOWN_TOKEN = "unknown token"
    EXPIRED = "expired"
    PAYLOAD_MISMATCH = "payload mismatch"
    SESSION_MISMATCH = "session mismatch"
    OUTSIDE_GEOFENCE = "outside geofence"
    POOR_ACCURACY = "poor accuracy"
    PHOTO_QUALITY = "photo quality insufficient"
    PHOTO_REQUIRED = "photo required"
    QR_REQUIRED = "qr required"
    LOCATION_REQUIRED = "location required"
    INSUFFICIENT_EVIDENCE = "insufficient evidence"

@dataclass
class CheckInToken:
    """A time-bounded QR token authorizing check-in to one session."""
    id: str
    session_id: str
    payload: str
    issued_at: datetime
    expires_at: datetime
    active: bool = True
    
    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at
    
    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'session_id': self.session_id,
            'payload': self.payload,
            'issued_at': self.issued_at.isoformat(),
            'expires_at': self.expires_at.isoformat(),
            'issued_at_ms': to_epoch_ms(self.issued_at),
            'expires_at_ms': to_epoch_ms(self.expires_at),
            'active': self.active
        }

@dataclass
class TokenValidation:
    """Outcome of validating a scanned payload: a token or a reason."""
    token: Optional[CheckInToken] = None
    reason: Optional[RejectionReason] = None
    
    @property
    def accepted(self) -> bool:
        return self.token is not None and self.reason is None
    
    @classmethod
    def ok(cls, token: CheckInToken) -> 'TokenValidation':
        return cls(token=token)
    
    @classmethod
    def rejected(cls, reason: RejectionReason) -> 'TokenValidation':
        return cls(reason=reason)
