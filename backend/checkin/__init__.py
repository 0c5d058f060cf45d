"""Attendance Check-In Verification Service - Application Factory."""
import logging
import os
from dataclasses import dataclass

from flask import Flask, jsonify
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from checkin.services.photo_service import PhotoQualityService
from checkin.services.qr_service import QRTokenService
from checkin.services.session_registry import SessionRegistry
from checkin.services.verification_service import CheckInVerifier
from checkin.utils.clock import Clock

# Initialize extensions
limiter = Limiter(key_func=get_remote_address)

@dataclass
class CheckInServices:
    """Service objects owned by one application instance."""
    qr: QRTokenService
    photos: PhotoQualityService
    sessions: SessionRegistry
    verifier: CheckInVerifier

def create_app(config_name: str = None, clock: Clock = None) -> Flask:
    """Application factory pattern."""
    app = Flask(__name__)

    # Load configuration
    from config import get_config
    config_class = get_config(config_name)
    app.config.from_object(config_class)

    # Initialize extensions
    limiter.init_app(app)

    # Configure CORS
    CORS(app, origins=app.config.get('CORS_ORIGINS', ["*"]))

    # Setup logging
    setup_logging(app)

    # Build services
    app.extensions['checkin'] = build_services(app, clock)

    # Register blueprints
    register_blueprints(app)

    # Register error handlers
    register_error_handlers(app)

    # Add CLI commands
    register_commands(app)

    # Add health check
    @app.route('/health')
    def health_check():
        return jsonify({
            'status': 'healthy',
            'service': 'Attendance Check-In Verification',
            'version': '1.0.0'
        })

    return app

def build_services(app: Flask, clock: Clock = None) -> CheckInServices:
    """Construct the check-in services from app configuration."""
    qr = QRTokenService.from_config(app.config, clock=clock)
    photos = PhotoQualityService.from_config(app.config)
    sessions = SessionRegistry()
    verifier = CheckInVerifier(qr, photos, sessions, clock=clock)
    return CheckInServices(qr=qr, photos=photos, sessions=sessions, verifier=verifier)

def register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""
    from checkin.api.qr import qr_bp
    from checkin.api.sessions import sessions_bp
    from checkin.api.attendance import attendance_bp

    app.register_blueprint(qr_bp, url_prefix='/api/qr')
    app.register_blueprint(sessions_bp, url_prefix='/api/sessions')
    app.register_blueprint(attendance_bp, url_prefix='/api/attendance')

def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from checkin.utils.helpers import handle_error
    from checkin.utils.errors import CheckInError
    from checkin.utils.validators import ValidationError
    from werkzeug.exceptions import HTTPException

    @app.errorhandler(ValidationError)
    def validation_error(error):
        return handle_error(error, 400)

    @app.errorhandler(CheckInError)
    def checkin_error(error):
        app.logger.error("Check-in infrastructure failure: %s", error)
        return handle_error(error, 500)

    @app.errorhandler(HTTPException)
    def handle_exception(e):
        return handle_error(e.description, e.code)

def setup_logging(app: Flask) -> None:
    """Setup application logging."""
    level = getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO)
    logging.getLogger('checkin').setLevel(level)

    if not app.debug and not app.testing:
        log_file = app.config.get('LOG_FILE', 'logs/app.log')
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(level)
        app.logger.addHandler(file_handler)
        logging.getLogger('checkin').addHandler(file_handler)

        app.logger.setLevel(level)
        app.logger.info('Attendance check-in service startup')

def register_commands(app: Flask) -> None:
    """Register CLI commands."""
    import click

    @app.cli.command('render-qr')
    @click.argument('session_id')
    @click.option('--ttl', type=float, default=None, help='Token lifetime in minutes')
    @click.option('--size', type=click.IntRange(max=app.config['QR_MAX_IMAGE_SIZE']), default=None,
                  help='Image size in pixels')
    @click.option('--output', '-o', type=click.Path(dir_okay=False, writable=True),
                  default=None, help='PNG file to write (default: <token id>.png)')
    def render_qr(session_id, ttl, size, output):
        """Issue a check-in token and write its QR code to a PNG file."""
        services = app.extensions['checkin']
        token = services.qr.issue(session_id, ttl)
        path = output or f"{token.id}.png"
        with open(path, 'wb') as fh:
            fh.write(services.qr.render(token, size))
        click.echo(f'Token: {token.id}')
        click.echo(f'Expires: {token.expires_at.isoformat()}')
        click.echo(f'QR code written to {path}')
