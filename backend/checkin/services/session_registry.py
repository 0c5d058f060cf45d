"""In-memory registry of per-session check-in configuration."""
import threading
from dataclasses import dataclass, field
from typing import Dict, Optional

from checkin.models.location import ClassGeofence
from checkin.models.verification import CheckInPolicy

@dataclass
class SessionConfig:
    """Geofence and policy a session's check-ins are judged against."""
    session_id: str
    geofence: Optional[ClassGeofence] = None
    policy: CheckInPolicy = field(default_factory=CheckInPolicy)

    def to_dict(self) -> Dict:
        return {
            'session_id': self.session_id,
            'geofence': self.geofence.to_dict() if self.geofence else None,
            'policy': self.policy.to_dict()
        }

class SessionRegistry:
    """Maps session ids to their configuration. Safe to share across threads."""

    def __init__(self):
        self._lock = threading.RLock()
        self._sessions: Dict[str, SessionConfig] = {}

    def register(
        self,
        session_id: str,
        geofence: Optional[ClassGeofence] = None,
        policy: Optional[CheckInPolicy] = None
    ) -> SessionConfig:
        """Create or replace the configuration of a session."""
        config = SessionConfig(
            session_id=session_id,
            geofence=geofence,
            policy=policy or CheckInPolicy()
        )
        with self._lock:
            self._sessions[session_id] = config
        return config

    def get(self, session_id: str) -> Optional[SessionConfig]:
        with self._lock:
            return self._sessions.get(session_id)

    def remove(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions
