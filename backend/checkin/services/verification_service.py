"""Check-in verification: combines token, location and photo checks into one verdict."""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from checkin.models.location import AccuracyLevel, ClassGeofence
from checkin.models.photo import PhotoQualityVerdict
from checkin.models.token import RejectionReason
from checkin.models.verification import (
    AttendanceStatus, CheckInClaim, CheckInPolicy, CheckInVerdict, VerificationStage
)
from checkin.services.geofence_service import GeofenceService
from checkin.services.photo_service import PhotoQualityService
from checkin.services.qr_service import QRTokenService
from checkin.services.session_registry import SessionRegistry
from checkin.utils.clock import Clock, utc_now

logger = logging.getLogger(__name__)

REASON_MESSAGES = {
    RejectionReason.MALFORMED: "This QR code is not an attendance code. Scan the code shown by your lecturer.",
    RejectionReason.UNKNOWN_TOKEN: "This QR code is no longer active. Ask your lecturer to show a fresh code.",
    RejectionReason.EXPIRED: "This QR code has expired. Scan the current code.",
    RejectionReason.PAYLOAD_MISMATCH: "This QR code could not be verified. Scan the current code again.",
    RejectionReason.SESSION_MISMATCH: "This QR code belongs to a different class session.",
    RejectionReason.PHOTO_QUALITY: "Your verification photo could not be used. Please retake it.",
    RejectionReason.PHOTO_REQUIRED: "A verification photo is required for this session.",
    RejectionReason.QR_REQUIRED: "Scanning the class QR code is required for this session.",
    RejectionReason.LOCATION_REQUIRED: "Your location inside the classroom is required for this session.",
    RejectionReason.INSUFFICIENT_EVIDENCE: "Scan the class QR code or share your location to check in.",
}

QR_REASONS = frozenset({
    RejectionReason.MALFORMED,
    RejectionReason.UNKNOWN_TOKEN,
    RejectionReason.EXPIRED,
    RejectionReason.PAYLOAD_MISMATCH,
    RejectionReason.SESSION_MISMATCH,
})

LOCATION_REASONS = frozenset({
    RejectionReason.OUTSIDE_GEOFENCE,
    RejectionReason.POOR_ACCURACY,
})

@dataclass
class _ClaimProgress:
    """Working state of one claim while it moves through the stages."""
    stages: List[VerificationStage] = field(default_factory=lambda: [VerificationStage.RECEIVED])
    reasons: List[RejectionReason] = field(default_factory=list)
    messages: List[str] = field(default_factory=list)
    qr_ok: bool = False
    location_ok: bool = False
    matched_token_id: Optional[str] = None
    distance_meters: Optional[float] = None
    accuracy_level: Optional[AccuracyLevel] = None
    photo_verdict: Optional[PhotoQualityVerdict] = None

    def fail(self, reason: RejectionReason, message: Optional[str] = None) -> None:
        if reason not in self.reasons:
            self.reasons.append(reason)
        text = message or REASON_MESSAGES.get(reason)
        if text and text not in self.messages:
            self.messages.append(text)

class CheckInVerifier:
    """
    Decides whether a check-in claim is trustworthy.

    Flow per claim: received -> token-checked -> location-checked ->
    photo-checked -> decided, skipping stages whose input is absent.

    Rules:
    - A valid QR token OR a location inside the geofence (with usable
      accuracy) is sufficient evidence, unless the policy makes one of
      them mandatory.
    - A photo is advisory unless the policy requires it.
    - Failed non-decisive checks are reported as warnings on acceptance.
    """

    def __init__(
        self,
        qr_service: QRTokenService,
        photo_service: Optional[PhotoQualityService] = None,
        sessions: Optional[SessionRegistry] = None,
        clock: Optional[Clock] = None
    ):
        self.qr_service = qr_service
        self.photo_service = photo_service or PhotoQualityService()
        self.sessions = sessions
        self.clock = clock or qr_service.clock or utc_now

    def verify(
        self,
        claim: CheckInClaim,
        geofence: Optional[ClassGeofence] = None,
        policy: Optional[CheckInPolicy] = None
    ) -> CheckInVerdict:
        """Evaluate one claim and return its verdict."""
        session_config = self.sessions.get(claim.session_id) if self.sessions else None
        if geofence is None and session_config is not None:
            geofence = session_config.geofence
        if policy is None:
            policy = session_config.policy if session_config is not None else CheckInPolicy()

        progress = _ClaimProgress()

        if claim.scanned_payload is not None:
            self._check_token(claim, progress)
        if claim.location is not None:
            self._check_location(claim, geofence, progress)
        if claim.photo is not None:
            self._check_photo(claim, progress)

        verdict = self._decide(claim, policy, progress)
        logger.debug(
            "Check-in for student %s in session %s: %s %s",
            claim.student_id, claim.session_id, verdict.status.value,
            [reason.value for reason in verdict.reasons]
        )
        return verdict

    # =================== STAGES ===================

    def _check_token(self, claim: CheckInClaim, progress: _ClaimProgress) -> None:
        validation = self.qr_service.validate(claim.scanned_payload)
        if not validation.accepted:
            progress.fail(validation.reason)
        elif validation.token.session_id != claim.session_id:
            progress.fail(RejectionReason.SESSION_MISMATCH)
        else:
            progress.qr_ok = True
            progress.matched_token_id = validation.token.id
        progress.stages.append(VerificationStage.TOKEN_CHECKED)

    def _check_location(
        self,
        claim: CheckInClaim,
        geofence: Optional[ClassGeofence],
        progress: _ClaimProgress
    ) -> None:
        if geofence is None:
            # Nothing to compare against; the location cannot count as evidence
            progress.messages.append("No classroom location is configured for this session.")
            return

        check = GeofenceService.evaluate_location(claim.location, geofence)
        progress.distance_meters = check.distance_meters
        progress.accuracy_level = check.accuracy_level

        if not check.inside:
            progress.fail(RejectionReason.OUTSIDE_GEOFENCE, check.message)
        elif not check.satisfied:
            progress.fail(RejectionReason.POOR_ACCURACY, check.message)
        else:
            progress.location_ok = True
        progress.stages.append(VerificationStage.LOCATION_CHECKED)

    def _check_photo(self, claim: CheckInClaim, progress: _ClaimProgress) -> None:
        progress.photo_verdict = self.photo_service.assess(claim.photo)
        progress.stages.append(VerificationStage.PHOTO_CHECKED)

    # =================== DECISION ===================

    def _decide(
        self,
        claim: CheckInClaim,
        policy: CheckInPolicy,
        progress: _ClaimProgress
    ) -> CheckInVerdict:
        blocking = []

        evidence_ok = (
            (policy.allow_qr and progress.qr_ok) or
            (policy.allow_location and progress.location_ok)
        )
        if not evidence_ok:
            blocking.extend(progress.reasons)
            explained = any(
                reason in QR_REASONS or reason in LOCATION_REASONS
                for reason in progress.reasons
            )
            if not explained:
                blocking.append(RejectionReason.INSUFFICIENT_EVIDENCE)

        if policy.require_qr and not progress.qr_ok:
            blocking.extend(r for r in progress.reasons if r in QR_REASONS)
            if claim.scanned_payload is None:
                blocking.append(RejectionReason.QR_REQUIRED)

        if policy.require_location and not progress.location_ok:
            blocking.extend(r for r in progress.reasons if r in LOCATION_REASONS)
            if RejectionReason.OUTSIDE_GEOFENCE not in progress.reasons and \
                    RejectionReason.POOR_ACCURACY not in progress.reasons:
                blocking.append(RejectionReason.LOCATION_REQUIRED)

        if policy.require_photo:
            if progress.photo_verdict is None:
                blocking.append(RejectionReason.PHOTO_REQUIRED)
            elif not progress.photo_verdict.acceptable:
                blocking.append(RejectionReason.PHOTO_QUALITY)

        reasons = _unique(blocking)
        accepted = not reasons

        messages = list(progress.messages)
        for reason in reasons:
            text = REASON_MESSAGES.get(reason)
            if text and text not in messages:
                messages.append(text)
        if progress.photo_verdict is not None and not progress.photo_verdict.acceptable:
            messages.extend(
                s for s in progress.photo_verdict.suggestions if s not in messages
            )

        if accepted:
            status = self._attendance_status(claim, policy)
        else:
            status = AttendanceStatus.REJECTED

        progress.stages.append(VerificationStage.DECIDED)

        return CheckInVerdict(
            accepted=accepted,
            status=status,
            reasons=reasons,
            warnings=[] if not accepted else list(progress.reasons),
            messages=messages,
            matched_token_id=progress.matched_token_id,
            distance_meters=progress.distance_meters,
            accuracy_level=progress.accuracy_level,
            photo_verdict=progress.photo_verdict,
            stages=list(progress.stages)
        )

    def _attendance_status(self, claim: CheckInClaim, policy: CheckInPolicy) -> AttendanceStatus:
        cutoff = policy.late_cutoff()
        if cutoff is None:
            return AttendanceStatus.PRESENT
        submitted_at = claim.submitted_at or self.clock()
        return AttendanceStatus.LATE if submitted_at > cutoff else AttendanceStatus.PRESENT

def _unique(reasons: List[RejectionReason]) -> List[RejectionReason]:
    seen = []
    for reason in reasons:
        if reason not in seen:
            seen.append(reason)
    return seen
