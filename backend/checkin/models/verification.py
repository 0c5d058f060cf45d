"""Check-in claim, policy and verdict data structures."""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from checkin.models.location import AccuracyLevel, GeoPoint
from checkin.models.photo import PhotoQualityVerdict
from checkin.models.token import RejectionReason

# Raw bytes, or a ``data:image/...;base64,`` string as captured by a browser
PhotoData = Union[bytes, str]

class VerificationStage(str, Enum):
    """States a claim moves through inside the verifier."""
    RECEIVED = "received"
    TOKEN_CHECKED = "token-checked"
    LOCATION_CHECKED = "location-checked"
    PHOTO_CHECKED = "photo-checked"
    DECIDED = "decided"

class AttendanceStatus(str, Enum):
    PRESENT = "present"
    LATE = "late"
    REJECTED = "rejected"

@dataclass
class CheckInPolicy:
    """Per-session rules deciding which evidence is sufficient."""
    require_photo: bool = False
    require_qr: bool = False
    require_location: bool = False
    allow_qr: bool = True
    allow_location: bool = True
    starts_at: Optional[datetime] = None
    late_after_minutes: Optional[float] = None
    
    def late_cutoff(self) -> Optional[datetime]:
        if self.starts_at is None or self.late_after_minutes is None:
            return None
        return self.starts_at + timedelta(minutes=self.late_after_minutes)
    
    def to_dict(self) -> Dict:
        return {
            'require_photo': self.require_photo,
            'require_qr': self.require_qr,
            'require_location': self.require_location,
            'allow_qr': self.allow_qr,
            'allow_location': self.allow_location,
            'starts_at': self.starts_at.isoformat() if self.starts_at else None,
            'late_after_minutes': self.late_after_minutes
        }

@dataclass
class CheckInClaim:
    """Evidence a student submits for one session."""
    session_id: str
    student_id: str
    scanned_payload: Optional[str] = None
    location: Optional[GeoPoint] = None
    photo: Optional[PhotoData] = None
    submitted_at: Optional[datetime] = None
    device_info: Dict[str, Any] = field(default_factory=dict)

@dataclass
class CheckInVerdict:
    """Accept/reject outcome of a claim, with diagnostics."""
    accepted: bool
    status: AttendanceStatus
    reasons: List[RejectionReason] = field(default_factory=list)
    warnings: List[RejectionReason] = field(default_factory=list)
    messages: List[str] = field(default_factory=list)
    matched_token_id: Optional[str] = None
    distance_meters: Optional[float] = None
    accuracy_level: Optional[AccuracyLevel] = None
    photo_verdict: Optional[PhotoQualityVerdict] = None
    stages: List[VerificationStage] = field(default_factory=list)
    
    def to_dict(self) -> Dict:
        return {
            'accepted': self.accepted,
            'status': self.status.value,
            'reasons': [reason.value for reason in self.reasons],
            'warnings': [reason.value for reason in self.warnings],
            'messages': list(self.messages),
            'matched_token_id': self.matched_token_id,
            'distance_meters': (
                round(self.distance_meters, 2) if self.distance_meters is not None else None
            ),
            'accuracy_level': self.accuracy_level.value if self.accuracy_level else None,
            'photo_verdict': self.photo_verdict.to_dict() if self.photo_verdict else None,
            'stages': [stage.value for stage in self.stages]
        }
