"""Attendance check-in endpoint."""
from flask import Blueprint, request

from checkin import limiter
from checkin.models.verification import CheckInClaim
from checkin.utils.helpers import get_services, success_response
from checkin.utils.validators import ValidationError, Validator

attendance_bp = Blueprint('attendance', __name__)

@attendance_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='Attendance service is running')

@attendance_bp.route('/checkin', methods=['POST'])
@limiter.limit("60 per minute")
def check_in():
    """
    Verify a check-in claim.

    Rejected claims are a normal outcome and still answer 200; the verdict
    carries the reasons the client should show the student.
    """
    data = Validator.require_json(request.get_json(silent=True))
    Validator.validate_required_fields(data, ['session_id', 'student_id'])

    qr_data = data.get('qr_data')
    if qr_data is not None and not isinstance(qr_data, str):
        raise ValidationError("qr_data must be a string")

    photo = data.get('photo')
    if photo is not None and not isinstance(photo, str):
        raise ValidationError("photo must be a base64 data URL")

    device_info = data.get('device_info') or {}
    if not isinstance(device_info, dict):
        raise ValidationError("device_info must be an object")

    claim = CheckInClaim(
        session_id=str(data['session_id']),
        student_id=str(data['student_id']),
        scanned_payload=qr_data,
        location=Validator.parse_location(data['location']) if data.get('location') is not None else None,
        photo=photo,
        device_info=device_info
    )

    verdict = get_services().verifier.verify(claim)

    return success_response(
        data={
            'session_id': claim.session_id,
            'student_id': claim.student_id,
            'verdict': verdict.to_dict()
        },
        message="Check-in accepted" if verdict.accepted else "Check-in rejected"
    )
