"""Shared fixtures for check-in tests."""
import base64
import io
import math
import os
from datetime import datetime, timedelta, timezone

import pytest
from PIL import Image

from checkin import create_app
from checkin.models import ClassGeofence, GeoPoint
from checkin.services import (
    CheckInVerifier, InMemoryTokenStore, PhotoQualityService, QRTokenService, SessionRegistry
)

EARTH_RADIUS_METERS = 6371000

class FakeClock:
    """Controllable clock returning aware UTC datetimes."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2024, 9, 2, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)

def point_north_of(latitude: float, longitude: float, meters: float, accuracy: float = 3.0) -> GeoPoint:
    """A point the given distance due north of a coordinate."""
    delta = math.degrees(meters / EARTH_RADIUS_METERS)
    return GeoPoint(latitude=latitude + delta, longitude=longitude, accuracy=accuracy)

def make_photo(width: int, height: int, fmt: str = 'PNG', noisy: bool = True) -> bytes:
    """Encode a test image; noise keeps the encoded size realistic."""
    if noisy:
        img = Image.frombytes('RGB', (width, height), os.urandom(width * height * 3))
    else:
        img = Image.new('RGB', (width, height), 'white')
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()

def as_data_url(raw: bytes, mime: str = 'image/png') -> str:
    return f"data:{mime};base64,{base64.b64encode(raw).decode()}"

@pytest.fixture
def clock():
    """Fake clock shared by the services under test."""
    return FakeClock()

@pytest.fixture
def qr_service(clock):
    """QR token service on a fake clock."""
    return QRTokenService(store=InMemoryTokenStore(stripes=4), clock=clock)

@pytest.fixture
def sessions():
    return SessionRegistry()

@pytest.fixture
def verifier(qr_service, sessions, clock):
    """Verifier wired to the fake-clock QR service."""
    return CheckInVerifier(qr_service, PhotoQualityService(), sessions, clock=clock)

@pytest.fixture
def geofence():
    """Lecture hall geofence, 30m radius."""
    return ClassGeofence(latitude=51.5246, longitude=-0.1340, radius_meters=30, name='Hall A')

@pytest.fixture
def good_photo():
    """Portrait photo that passes every quality check."""
    return make_photo(600, 800)

@pytest.fixture
def app(clock):
    """Create test app."""
    app = create_app('testing', clock=clock)
    yield app

@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()
