"""Models package with all check-in data structures."""
from .token import CHECKIN_TOKEN_TYPE, CheckInToken, RejectionReason, TokenValidation
from .location import AccuracyLevel, ClassGeofence, GeoPoint, LocationCheck
from .photo import PhotoQualityVerdict
from .verification import (
    AttendanceStatus, CheckInClaim, CheckInPolicy, CheckInVerdict,
    PhotoData, VerificationStage
)

__all__ = [
    'CHECKIN_TOKEN_TYPE', 'CheckInToken', 'RejectionReason', 'TokenValidation',
    'AccuracyLevel', 'ClassGeofence', 'GeoPoint', 'LocationCheck',
    'PhotoQualityVerdict',
    'AttendanceStatus', 'CheckInClaim', 'CheckInPolicy', 'CheckInVerdict',
    'PhotoData', 'VerificationStage'
]
