"""QR check-in token API endpoints."""
import io

from flask import Blueprint, current_app, request, send_file

from checkin import limiter
from checkin.utils.helpers import error_response, get_services, success_response
from checkin.utils.validators import ValidationError, Validator

qr_bp = Blueprint('qr', __name__)

def _token_response(token) -> dict:
    data = token.to_dict()
    data['qr_image'] = get_services().qr.render_data_url(token)
    return data

@qr_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='QR service is running')

@qr_bp.route('/sessions/<session_id>/tokens', methods=['POST'])
@limiter.limit("30 per minute")
def issue_token(session_id):
    """Issue a check-in token for a session."""
    data = Validator.require_json(request.get_json(silent=True))
    ttl = Validator.validate_ttl(data.get('ttl_minutes'), current_app.config['QR_TOKEN_MAX_TTL_MINUTES'])

    token = get_services().qr.issue(session_id, ttl)

    return success_response(
        data=_token_response(token),
        message="QR code generated successfully",
        status_code=201
    )

@qr_bp.route('/sessions/<session_id>/rotate', methods=['POST'])
@limiter.limit("30 per minute")
def rotate_tokens(session_id):
    """Issue one or more additional tokens; earlier tokens stay valid."""
    data = Validator.require_json(request.get_json(silent=True))
    ttl = Validator.validate_ttl(data.get('ttl_minutes'), current_app.config['QR_TOKEN_MAX_TTL_MINUTES'])

    count = data.get('count', 1)
    if isinstance(count, bool) or not isinstance(count, int):
        raise ValidationError("count must be an integer")
    max_count = current_app.config['QR_ROTATION_MAX_COUNT']
    if count < 1 or count > max_count:
        raise ValidationError(f"count must be between 1 and {max_count}")

    tokens = get_services().qr.rotate_many(session_id, count, ttl)

    return success_response(
        data={'tokens': [_token_response(token) for token in tokens]},
        message=f"Generated {len(tokens)} QR codes successfully",
        status_code=201
    )

@qr_bp.route('/sessions/<session_id>/active', methods=['GET'])
def active_token(session_id):
    """Get the newest live token of a session."""
    token = get_services().qr.lookup_active(session_id)
    if token is None:
        return error_response("No active QR code for this session", 404)

    return success_response(data=_token_response(token))

@qr_bp.route('/tokens/<token_id>/image', methods=['GET'])
def token_image(token_id):
    """Serve the QR code of an active token as PNG."""
    services = get_services()
    token = services.qr.get(token_id)
    if token is None:
        return error_response("QR code not found or expired", 404)

    size = request.args.get('size', type=int)
    max_size = current_app.config['QR_MAX_IMAGE_SIZE']
    if size is not None and size > max_size:
        raise ValidationError(f"size must be at most {max_size}")
    png = services.qr.render(token, size)
    return send_file(io.BytesIO(png), mimetype='image/png', download_name=f"{token.id}.png")

@qr_bp.route('/tokens/<token_id>', methods=['DELETE'])
def deactivate_token(token_id):
    """Deactivate a token before it expires."""
    if not get_services().qr.deactivate(token_id):
        return error_response("QR code not found", 404)

    return success_response(data={'token_id': token_id}, message="QR code deactivated")

@qr_bp.route('/validate', methods=['POST'])
@limiter.limit("120 per minute")
def validate_qr():
    """Validate scanned QR code data."""
    data = Validator.require_json(request.get_json(silent=True))
    if 'qr_data' not in data:
        raise ValidationError("QR data is required")

    validation = get_services().qr.validate(data['qr_data'])

    if not validation.accepted:
        return success_response(
            data={'valid': False, 'reason': validation.reason.value},
            message="QR code is not valid"
        )

    token = validation.token
    return success_response(
        data={
            'valid': True,
            'token_id': token.id,
            'session_id': token.session_id,
            'expires_at': token.expires_at.isoformat()
        },
        message="QR code is valid"
    )

@qr_bp.route('/stats', methods=['GET'])
def qr_stats():
    """Active-token statistics."""
    return success_response(data=get_services().qr.stats())

@qr_bp.route('/sweep', methods=['POST'])
def sweep_tokens():
    """Evict expired tokens now."""
    evicted = get_services().qr.sweep()
    return success_response(data={'evicted': evicted}, message=f"Evicted {evicted} expired QR codes")
