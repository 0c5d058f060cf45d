"""Tests for check-in verification decisions."""
from datetime import timedelta

import pytest

from checkin.models import (
    AccuracyLevel, AttendanceStatus, CheckInClaim, CheckInPolicy, ClassGeofence,
    RejectionReason, VerificationStage
)

from conftest import make_photo, point_north_of

def claim_for(session_id='S1', **kwargs):
    return CheckInClaim(session_id=session_id, student_id='st-001', **kwargs)

def test_valid_token_accepted(verifier, qr_service):
    token = qr_service.issue('S1', ttl_minutes=30)

    verdict = verifier.verify(claim_for(scanned_payload=token.payload))

    assert verdict.accepted
    assert verdict.status == AttendanceStatus.PRESENT
    assert verdict.reasons == []
    assert verdict.matched_token_id == token.id
    assert verdict.distance_meters is None
    assert verdict.photo_verdict is None
    assert verdict.stages == [
        VerificationStage.RECEIVED, VerificationStage.TOKEN_CHECKED, VerificationStage.DECIDED
    ]

def test_expired_token_rejected(verifier, qr_service, clock):
    token = qr_service.issue('S1', ttl_minutes=30)
    clock.advance(minutes=31)

    verdict = verifier.verify(claim_for(scanned_payload=token.payload))

    assert not verdict.accepted
    assert verdict.status == AttendanceStatus.REJECTED
    assert verdict.reasons == [RejectionReason.EXPIRED]
    assert verdict.matched_token_id is None

def test_token_of_other_session_rejected(verifier, qr_service):
    token = qr_service.issue('S2')

    verdict = verifier.verify(claim_for('S1', scanned_payload=token.payload))

    assert not verdict.accepted
    assert verdict.reasons == [RejectionReason.SESSION_MISMATCH]

def test_malformed_payload_rejected(verifier):
    verdict = verifier.verify(claim_for(scanned_payload='{"type":"something-else"}'))
    assert verdict.reasons == [RejectionReason.MALFORMED]

def test_no_evidence_rejected(verifier):
    verdict = verifier.verify(claim_for())

    assert not verdict.accepted
    assert verdict.reasons == [RejectionReason.INSUFFICIENT_EVIDENCE]
    assert verdict.stages == [VerificationStage.RECEIVED, VerificationStage.DECIDED]

def test_location_outside_then_inside_larger_geofence(verifier, geofence):
    """50m from a 30m fence is rejected; the same claim passes a 60m fence."""
    location = point_north_of(geofence.latitude, geofence.longitude, 50)

    verdict = verifier.verify(claim_for(location=location), geofence=geofence)
    assert not verdict.accepted
    assert RejectionReason.OUTSIDE_GEOFENCE in verdict.reasons
    assert "outside geofence" in verdict.reasons
    assert verdict.distance_meters == pytest.approx(50, abs=0.01)
    assert any('50m away' in message for message in verdict.messages)

    wider = ClassGeofence(geofence.latitude, geofence.longitude, radius_meters=60)
    verdict = verifier.verify(claim_for(location=location), geofence=wider)
    assert verdict.accepted
    assert verdict.reasons == []
    assert verdict.accuracy_level == AccuracyLevel.EXCELLENT

def test_poor_accuracy_inside_geofence_rejected(verifier, geofence):
    location = point_north_of(geofence.latitude, geofence.longitude, 20, accuracy=35)

    verdict = verifier.verify(claim_for(location=location), geofence=geofence)

    assert not verdict.accepted
    assert verdict.reasons == [RejectionReason.POOR_ACCURACY]
    assert verdict.accuracy_level == AccuracyLevel.POOR

def test_location_without_geofence_is_not_evidence(verifier, geofence):
    location = point_north_of(geofence.latitude, geofence.longitude, 0)

    verdict = verifier.verify(claim_for(location=location))

    assert not verdict.accepted
    assert verdict.reasons == [RejectionReason.INSUFFICIENT_EVIDENCE]
    assert verdict.distance_meters is None
    assert VerificationStage.LOCATION_CHECKED not in verdict.stages

def test_location_rescues_failed_qr(verifier, qr_service, geofence, clock):
    """Strongest evidence wins: a good location outweighs an expired code."""
    token = qr_service.issue('S1', ttl_minutes=5)
    clock.advance(minutes=10)
    location = point_north_of(geofence.latitude, geofence.longitude, 5)

    verdict = verifier.verify(
        claim_for(scanned_payload=token.payload, location=location), geofence=geofence
    )

    assert verdict.accepted
    assert verdict.reasons == []
    assert verdict.warnings == [RejectionReason.EXPIRED]

def test_qr_rescues_location_outside(verifier, qr_service, geofence):
    token = qr_service.issue('S1')
    location = point_north_of(geofence.latitude, geofence.longitude, 500)

    verdict = verifier.verify(
        claim_for(scanned_payload=token.payload, location=location), geofence=geofence
    )

    assert verdict.accepted
    assert verdict.warnings == [RejectionReason.OUTSIDE_GEOFENCE]
    assert verdict.matched_token_id == token.id
    assert verdict.distance_meters == pytest.approx(500, abs=0.1)

def test_both_failing_reports_union(verifier, qr_service, geofence, clock):
    token = qr_service.issue('S1', ttl_minutes=5)
    clock.advance(minutes=10)
    location = point_north_of(geofence.latitude, geofence.longitude, 200)

    verdict = verifier.verify(
        claim_for(scanned_payload=token.payload, location=location), geofence=geofence
    )

    assert not verdict.accepted
    assert verdict.reasons == [RejectionReason.EXPIRED, RejectionReason.OUTSIDE_GEOFENCE]

def test_required_photo_with_low_resolution_rejected(verifier, qr_service):
    """A valid token does not save a claim whose required photo is unusable."""
    token = qr_service.issue('S1')
    policy = CheckInPolicy(require_photo=True)

    verdict = verifier.verify(
        claim_for(scanned_payload=token.payload, photo=make_photo(100, 120)), policy=policy
    )

    assert not verdict.accepted
    assert verdict.reasons == [RejectionReason.PHOTO_QUALITY]
    assert verdict.matched_token_id == token.id
    assert 'Photo resolution is too low' in verdict.photo_verdict.issues
    assert 'Ensure good lighting and hold camera steady' in verdict.messages

def test_required_photo_missing(verifier, qr_service):
    token = qr_service.issue('S1')

    verdict = verifier.verify(
        claim_for(scanned_payload=token.payload), policy=CheckInPolicy(require_photo=True)
    )

    assert verdict.reasons == [RejectionReason.PHOTO_REQUIRED]

def test_required_photo_acceptable(verifier, qr_service, good_photo):
    token = qr_service.issue('S1')

    verdict = verifier.verify(
        claim_for(scanned_payload=token.payload, photo=good_photo),
        policy=CheckInPolicy(require_photo=True)
    )

    assert verdict.accepted
    assert verdict.photo_verdict.acceptable
    assert VerificationStage.PHOTO_CHECKED in verdict.stages

def test_optional_photo_is_advisory(verifier, qr_service):
    token = qr_service.issue('S1')

    verdict = verifier.verify(claim_for(scanned_payload=token.payload, photo=b'corrupt'))

    assert verdict.accepted
    assert verdict.photo_verdict is not None
    assert not verdict.photo_verdict.acceptable

def test_photo_alone_is_not_evidence(verifier, good_photo):
    verdict = verifier.verify(claim_for(photo=good_photo))

    assert not verdict.accepted
    assert verdict.reasons == [RejectionReason.INSUFFICIENT_EVIDENCE]

def test_require_qr_policy(verifier, geofence):
    location = point_north_of(geofence.latitude, geofence.longitude, 5)
    policy = CheckInPolicy(require_qr=True)

    verdict = verifier.verify(claim_for(location=location), geofence=geofence, policy=policy)

    assert not verdict.accepted
    assert verdict.reasons == [RejectionReason.QR_REQUIRED]

def test_require_qr_policy_keeps_token_reason(verifier, qr_service, geofence, clock):
    token = qr_service.issue('S1', ttl_minutes=1)
    clock.advance(minutes=2)
    location = point_north_of(geofence.latitude, geofence.longitude, 5)

    verdict = verifier.verify(
        claim_for(scanned_payload=token.payload, location=location),
        geofence=geofence,
        policy=CheckInPolicy(require_qr=True)
    )

    assert verdict.reasons == [RejectionReason.EXPIRED]

def test_require_location_policy(verifier, qr_service):
    token = qr_service.issue('S1')

    verdict = verifier.verify(
        claim_for(scanned_payload=token.payload), policy=CheckInPolicy(require_location=True)
    )

    assert not verdict.accepted
    assert verdict.reasons == [RejectionReason.LOCATION_REQUIRED]

def test_disallowed_qr_does_not_count(verifier, qr_service):
    token = qr_service.issue('S1')

    verdict = verifier.verify(
        claim_for(scanned_payload=token.payload), policy=CheckInPolicy(allow_qr=False)
    )

    assert not verdict.accepted
    assert verdict.reasons == [RejectionReason.INSUFFICIENT_EVIDENCE]

def test_late_status(verifier, qr_service, clock):
    policy = CheckInPolicy(starts_at=clock.now, late_after_minutes=10)
    token = qr_service.issue('S1', ttl_minutes=60)

    on_time = verifier.verify(claim_for(scanned_payload=token.payload), policy=policy)
    assert on_time.status == AttendanceStatus.PRESENT

    clock.advance(minutes=15)
    late = verifier.verify(claim_for(scanned_payload=token.payload), policy=policy)
    assert late.accepted
    assert late.status == AttendanceStatus.LATE

def test_submitted_at_overrides_clock(verifier, qr_service, clock):
    policy = CheckInPolicy(starts_at=clock.now, late_after_minutes=10)
    token = qr_service.issue('S1')

    verdict = verifier.verify(
        claim_for(scanned_payload=token.payload, submitted_at=clock.now + timedelta(minutes=11)),
        policy=policy
    )

    assert verdict.status == AttendanceStatus.LATE

def test_registry_configuration_used(verifier, sessions, geofence):
    sessions.register('S1', geofence=geofence, policy=CheckInPolicy(require_photo=True))
    location = point_north_of(geofence.latitude, geofence.longitude, 5)

    verdict = verifier.verify(claim_for(location=location))

    assert not verdict.accepted
    assert verdict.reasons == [RejectionReason.PHOTO_REQUIRED]
    assert verdict.distance_meters == pytest.approx(5, abs=0.01)

def test_explicit_arguments_override_registry(verifier, sessions, geofence):
    sessions.register('S1', geofence=geofence, policy=CheckInPolicy(require_photo=True))
    location = point_north_of(geofence.latitude, geofence.longitude, 5)

    verdict = verifier.verify(claim_for(location=location), policy=CheckInPolicy())

    assert verdict.accepted

def test_rotated_tokens_both_check_in(verifier, qr_service, clock):
    first = qr_service.issue('S1', ttl_minutes=30)
    clock.advance(minutes=2)
    second = qr_service.rotate('S1', ttl_minutes=30)

    assert verifier.verify(claim_for(scanned_payload=first.payload)).matched_token_id == first.id
    assert verifier.verify(claim_for(scanned_payload=second.payload)).matched_token_id == second.id

def test_verdict_to_dict(verifier, qr_service, geofence):
    token = qr_service.issue('S1')
    location = point_north_of(geofence.latitude, geofence.longitude, 12.3456, accuracy=7)

    data = verifier.verify(
        claim_for(scanned_payload=token.payload, location=location), geofence=geofence
    ).to_dict()

    assert data['accepted'] is True
    assert data['status'] == 'present'
    assert data['reasons'] == []
    assert data['distance_meters'] == pytest.approx(12.35, abs=0.01)
    assert data['accuracy_level'] == 'good'
    assert data['stages'] == ['received', 'token-checked', 'location-checked', 'decided']
