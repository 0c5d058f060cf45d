"""Photo quality screening for verification photos."""
import base64
import binascii
import io
import logging
import re
from typing import Optional, Tuple

from PIL import Image

from checkin.models.photo import PhotoQualityVerdict
from checkin.models.verification import PhotoData

logger = logging.getLogger(__name__)

DATA_URL_PATTERN = re.compile(r'^data:image/[\w.+-]+;base64,(?P<body>.*)$', re.DOTALL)

class PhotoQualityService:
    """
    Heuristic gate rejecting technically unusable captures.

    Only dimensions, orientation and payload size are inspected; no
    identity matching happens here.
    """

    MIN_DIMENSION = 400  # pixels, both sides
    MIN_ASPECT = 0.6
    MAX_ASPECT = 1.2
    MIN_BYTES = 50000

    def __init__(
        self,
        min_dimension: int = MIN_DIMENSION,
        min_aspect: float = MIN_ASPECT,
        max_aspect: float = MAX_ASPECT,
        min_bytes: int = MIN_BYTES
    ):
        self.min_dimension = min_dimension
        self.min_aspect = min_aspect
        self.max_aspect = max_aspect
        self.min_bytes = min_bytes

    @classmethod
    def from_config(cls, config) -> 'PhotoQualityService':
        return cls(
            min_dimension=config.get('PHOTO_MIN_DIMENSION', cls.MIN_DIMENSION),
            min_aspect=config.get('PHOTO_MIN_ASPECT', cls.MIN_ASPECT),
            max_aspect=config.get('PHOTO_MAX_ASPECT', cls.MAX_ASPECT),
            min_bytes=config.get('PHOTO_MIN_BYTES', cls.MIN_BYTES)
        )

    def assess(self, photo: PhotoData) -> PhotoQualityVerdict:
        """Assess a photo given as raw bytes or a base64 data URL."""
        decoded = self._decode(photo)
        if decoded is None:
            return PhotoQualityVerdict(
                acceptable=False,
                issues=['Failed to load photo'],
                suggestions=['Try capturing the photo again']
            )

        raw, estimated_bytes = decoded
        dimensions = self._read_dimensions(raw)
        if dimensions is None:
            return PhotoQualityVerdict(
                acceptable=False,
                issues=['Failed to load photo'],
                suggestions=['Try capturing the photo again'],
                estimated_bytes=estimated_bytes
            )

        width, height = dimensions
        issues = []
        suggestions = []

        if width < self.min_dimension or height < self.min_dimension:
            issues.append('Photo resolution is too low')
            suggestions.append('Ensure good lighting and hold camera steady')

        aspect_ratio = width / height
        if aspect_ratio < self.min_aspect or aspect_ratio > self.max_aspect:
            issues.append('Photo aspect ratio is not ideal')
            suggestions.append('Hold phone in portrait orientation')

        if estimated_bytes < self.min_bytes:
            issues.append('Photo file size is too small')
            suggestions.append('Move closer to camera or improve lighting')

        return PhotoQualityVerdict(
            acceptable=len(issues) == 0,
            issues=issues,
            suggestions=suggestions,
            width=width,
            height=height,
            estimated_bytes=estimated_bytes
        )

    @staticmethod
    def _decode(photo: PhotoData) -> Optional[Tuple[bytes, int]]:
        """Return (image bytes, estimated encoded size) or None."""
        if isinstance(photo, (bytes, bytearray)):
            return bytes(photo), len(photo)
        if not isinstance(photo, str):
            return None

        match = DATA_URL_PATTERN.match(photo.strip())
        body = match.group('body') if match else photo.strip()
        # Rough size of the original file behind the base64 text
        estimated_bytes = round(len(body) * 0.75)
        try:
            return base64.b64decode(body, validate=True), estimated_bytes
        except (binascii.Error, ValueError):
            return None

    @staticmethod
    def _read_dimensions(raw: bytes) -> Optional[Tuple[int, int]]:
        if not raw:
            return None
        try:
            with Image.open(io.BytesIO(raw)) as img:
                img.load()
                width, height = img.size
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            logger.debug("Photo could not be decoded: %s", e)
            return None
        if width <= 0 or height <= 0:
            return None
        return width, height
