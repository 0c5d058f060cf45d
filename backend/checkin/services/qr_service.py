"""QR check-in token issuance and validation service."""
import base64
import io
import json
import logging
import secrets
from datetime import timedelta
from typing import Dict, List, Optional, Union

import qrcode
from qrcode.exceptions import DataOverflowError
from PIL import Image

from checkin.models.token import (
    CHECKIN_TOKEN_TYPE, CheckInToken, RejectionReason, TokenValidation
)
from checkin.services.token_store import InMemoryTokenStore, TokenStore
from checkin.utils.clock import Clock, to_epoch_ms, utc_now
from checkin.utils.errors import QRRenderError

logger = logging.getLogger(__name__)

ERROR_CORRECTION_LEVELS = {
    'L': qrcode.constants.ERROR_CORRECT_L,
    'M': qrcode.constants.ERROR_CORRECT_M,
    'Q': qrcode.constants.ERROR_CORRECT_Q,
    'H': qrcode.constants.ERROR_CORRECT_H,
}

class QRTokenService:
    """
    Issues short-lived check-in tokens per session and validates scans.

    Tokens are multi-use during their validity window: every student in
    the room scans the same displayed code. Rotation adds tokens without
    touching older ones, which expire on their own schedule.
    """

    DEFAULT_TTL_MINUTES = 30
    DEFAULT_IMAGE_SIZE = 300
    MIN_IMAGE_SIZE = 250  # smaller codes decode poorly on phone cameras
    MAX_IMAGE_SIZE = 2000
    IMAGE_BORDER = 2
    MAX_ID_ATTEMPTS = 5

    def __init__(
        self,
        store: Optional[TokenStore] = None,
        clock: Optional[Clock] = None,
        default_ttl_minutes: float = DEFAULT_TTL_MINUTES,
        max_ttl_minutes: Optional[float] = None,
        image_size: int = DEFAULT_IMAGE_SIZE,
        error_correction: str = 'M',
        max_image_size: int = MAX_IMAGE_SIZE
    ):
        if error_correction not in ERROR_CORRECTION_LEVELS:
            raise ValueError(f"Unknown error correction level: {error_correction}")
        self.store = store if store is not None else InMemoryTokenStore()
        self.clock = clock or utc_now
        self.default_ttl_minutes = default_ttl_minutes
        self.max_ttl_minutes = max_ttl_minutes
        self.max_image_size = max(max_image_size, self.MIN_IMAGE_SIZE)
        self.image_size = min(max(image_size, self.MIN_IMAGE_SIZE), self.max_image_size)
        self.error_correction = error_correction

    @classmethod
    def from_config(cls, config, store: TokenStore = None, clock: Clock = None) -> 'QRTokenService':
        """Build the service from a Flask-style config mapping."""
        return cls(
            store=store or InMemoryTokenStore(config.get('TOKEN_STORE_STRIPES', 16)),
            clock=clock,
            default_ttl_minutes=config.get('QR_TOKEN_TTL_MINUTES', cls.DEFAULT_TTL_MINUTES),
            max_ttl_minutes=config.get('QR_TOKEN_MAX_TTL_MINUTES'),
            image_size=config.get('QR_IMAGE_SIZE', cls.DEFAULT_IMAGE_SIZE),
            error_correction=config.get('QR_ERROR_CORRECTION', 'M'),
            max_image_size=config.get('QR_MAX_IMAGE_SIZE', cls.MAX_IMAGE_SIZE)
        )

    # =================== ISSUANCE ===================

    def issue(self, session_id: str, ttl_minutes: Optional[float] = None) -> CheckInToken:
        """Generate, store and return a fresh token for a session."""
        if not session_id:
            raise ValueError("session_id is required")
        ttl = self.default_ttl_minutes if ttl_minutes is None else ttl_minutes
        if ttl <= 0:
            raise ValueError("ttl_minutes must be positive")
        if self.max_ttl_minutes is not None and ttl > self.max_ttl_minutes:
            raise ValueError(f"ttl_minutes may not exceed {self.max_ttl_minutes}")

        issued_at = self.clock()
        expires_at = issued_at + timedelta(minutes=ttl)
        token_id = self._new_token_id(session_id, issued_at)

        token = CheckInToken(
            id=token_id,
            session_id=session_id,
            payload=self.build_payload(session_id, token_id, issued_at, expires_at),
            issued_at=issued_at,
            expires_at=expires_at
        )
        self.store.add(token)
        logger.info("Issued check-in token %s for session %s (ttl %s min)", token_id, session_id, ttl)

        self._cleanup_expired(keep=token_id)
        return token

    def rotate(self, session_id: str, ttl_minutes: Optional[float] = None) -> CheckInToken:
        """Issue a new displayed code; earlier tokens stay valid until they expire."""
        return self.issue(session_id, ttl_minutes)

    def rotate_many(
        self,
        session_id: str,
        count: int = 3,
        ttl_minutes: Optional[float] = None
    ) -> List[CheckInToken]:
        """Issue a batch of tokens for a rotating display."""
        if count < 1:
            raise ValueError("count must be at least 1")
        return [self.rotate(session_id, ttl_minutes) for _ in range(count)]

    @staticmethod
    def build_payload(session_id: str, token_id: str, issued_at, expires_at) -> str:
        """Serialize the wire payload; key order and separators are fixed."""
        return json.dumps({
            'sessionId': session_id,
            'tokenId': token_id,
            'issuedAt': to_epoch_ms(issued_at),
            'expiresAt': to_epoch_ms(expires_at),
            'type': CHECKIN_TOKEN_TYPE
        }, separators=(',', ':'))

    def _new_token_id(self, session_id: str, issued_at) -> str:
        for _ in range(self.MAX_ID_ATTEMPTS):
            token_id = f"qr_{session_id}_{to_epoch_ms(issued_at)}_{secrets.token_hex(6)}"
            if not self.store.contains(token_id):
                return token_id
        raise RuntimeError("Could not generate a unique token id")

    # =================== RENDERING ===================

    def render(self, token: Union[CheckInToken, str], size: Optional[int] = None) -> bytes:
        """
        Encode a token payload as a square PNG QR code.

        Raises:
            QRRenderError: the payload could not be encoded
            ValueError: size is larger than the configured maximum
        """
        payload = token.payload if isinstance(token, CheckInToken) else token
        if not isinstance(payload, str) or not payload:
            raise QRRenderError("QR payload must be a non-empty string")
        size = max(size or self.image_size, self.MIN_IMAGE_SIZE)
        if size > self.max_image_size:
            raise ValueError(f"QR image size may not exceed {self.max_image_size}px")

        try:
            qr = qrcode.QRCode(
                version=None,  # Auto-determine size
                error_correction=ERROR_CORRECTION_LEVELS[self.error_correction],
                box_size=1,
                border=self.IMAGE_BORDER,
            )
            qr.add_data(payload)
            qr.make(fit=True)

            # Smallest whole box size that covers the target, then scale down
            total_modules = qr.modules_count + 2 * self.IMAGE_BORDER
            qr.box_size = max(1, -(-size // total_modules))

            img = qr.make_image(fill_color="black", back_color="white")
            raw = io.BytesIO()
            img.save(raw, format="PNG")

            raw.seek(0)
            with Image.open(raw) as native:
                scaled = native.convert('L')
                if scaled.size != (size, size):
                    scaled = scaled.resize((size, size), Image.Resampling.NEAREST)
                out = io.BytesIO()
                scaled.save(out, format="PNG")
            return out.getvalue()
        except (DataOverflowError, ValueError, OSError) as e:
            logger.exception("Failed to render QR code")
            raise QRRenderError(f"Failed to generate QR code: {e}") from e

    def render_data_url(self, token: Union[CheckInToken, str], size: Optional[int] = None) -> str:
        """PNG QR code as a data URL for direct use in an <img> tag."""
        img_str = base64.b64encode(self.render(token, size)).decode()
        return f"data:image/png;base64,{img_str}"

    # =================== VALIDATION ===================

    def validate(self, scanned_payload: str) -> TokenValidation:
        """
        Validate a scanned QR payload against the active tokens.

        Expected failures come back as a rejection reason, never raised.
        A successful validation leaves the token active.
        """
        token_id = self._parse_token_id(scanned_payload)
        if token_id is None:
            logger.debug("Rejected scan: malformed payload")
            return TokenValidation.rejected(RejectionReason.MALFORMED)

        stored = self.store.get(token_id)
        if stored is None:
            logger.debug("Rejected scan: unknown token %s", token_id)
            return TokenValidation.rejected(RejectionReason.UNKNOWN_TOKEN)

        if stored.is_expired(self.clock()):
            self.store.remove(token_id)
            logger.debug("Rejected scan: token %s expired", token_id)
            return TokenValidation.rejected(RejectionReason.EXPIRED)

        if stored.payload != scanned_payload:
            logger.debug("Rejected scan: payload mismatch for token %s", token_id)
            return TokenValidation.rejected(RejectionReason.PAYLOAD_MISMATCH)

        return TokenValidation.ok(stored)

    @staticmethod
    def _parse_token_id(scanned_payload) -> Optional[str]:
        if not isinstance(scanned_payload, str):
            return None
        try:
            data = json.loads(scanned_payload)
        except (ValueError, RecursionError):
            return None

        if not isinstance(data, dict) or data.get('type') != CHECKIN_TOKEN_TYPE:
            return None
        token_id = data.get('tokenId')
        if not isinstance(token_id, str) or not isinstance(data.get('sessionId'), str):
            return None
        return token_id

    # =================== LIFECYCLE ===================

    def deactivate(self, token_id: str) -> bool:
        """Remove a token early. Returns whether it was active."""
        removed = self.store.remove(token_id)
        if removed is not None:
            logger.info("Deactivated check-in token %s", token_id)
        return removed is not None

    def get(self, token_id: str) -> Optional[CheckInToken]:
        """Return an active, unexpired token by id."""
        token = self.store.get(token_id)
        if token is None or token.is_expired(self.clock()):
            return None
        return token

    def lookup_active(self, session_id: str) -> Optional[CheckInToken]:
        """Newest live token of a session, for display continuity."""
        now = self.clock()
        live = []
        for token in self.store.for_session(session_id):
            if token.is_expired(now):
                self.store.remove(token.id)
            else:
                live.append(token)
        if not live:
            return None
        return max(live, key=lambda t: t.issued_at)

    def sweep(self) -> int:
        """Evict every expired token now. Returns how many were removed."""
        evicted = self._cleanup_expired()
        if evicted:
            logger.warning("Token sweep evicted %d expired token(s)", evicted)
        return evicted

    def _cleanup_expired(self, keep: Optional[str] = None) -> int:
        return len(self.store.evict_expired(self.clock(), keep=keep))

    def stats(self) -> Dict:
        """Active-token statistics."""
        return {
            'total_active': len(self.store),
            'active_sessions': sorted(self.store.session_ids())
        }
