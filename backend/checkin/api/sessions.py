"""Session check-in configuration endpoints."""
from flask import Blueprint, request

from checkin.utils.helpers import error_response, get_services, success_response
from checkin.utils.validators import Validator

sessions_bp = Blueprint('sessions', __name__)

@sessions_bp.route('/<session_id>', methods=['PUT'])
def configure_session(session_id):
    """Register the geofence and policy of a session."""
    data = Validator.require_json(request.get_json(silent=True))

    geofence = Validator.parse_geofence(data['geofence']) if data.get('geofence') is not None else None
    policy = Validator.parse_policy(data.get('policy'))

    config = get_services().sessions.register(session_id, geofence, policy)

    return success_response(data=config.to_dict(), message="Session configured")

@sessions_bp.route('/<session_id>', methods=['GET'])
def get_session(session_id):
    """Get the check-in configuration of a session."""
    config = get_services().sessions.get(session_id)
    if config is None:
        return error_response("Session not configured", 404)

    return success_response(data=config.to_dict())

@sessions_bp.route('/<session_id>', methods=['DELETE'])
def remove_session(session_id):
    """Forget a session's configuration."""
    if not get_services().sessions.remove(session_id):
        return error_response("Session not configured", 404)

    return success_response(data={'session_id': session_id}, message="Session removed")
