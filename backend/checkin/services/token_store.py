"""Active check-in token storage."""
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

from checkin.models.token import CheckInToken
from checkin.utils.errors import TokenStoreError

class TokenStore(ABC):
    """Storage contract for the active-token set."""

    @abstractmethod
    def add(self, token: CheckInToken) -> None:
        """Store a token under its id."""

    @abstractmethod
    def get(self, token_id: str) -> Optional[CheckInToken]:
        """Return the stored token or ``None``."""

    @abstractmethod
    def remove(self, token_id: str) -> Optional[CheckInToken]:
        """Remove a token and return it, or ``None`` when absent."""

    @abstractmethod
    def contains(self, token_id: str) -> bool:
        pass

    @abstractmethod
    def for_session(self, session_id: str) -> List[CheckInToken]:
        """Tokens of one session, oldest first."""

    @abstractmethod
    def evict_expired(self, now: datetime, keep: Optional[str] = None) -> List[CheckInToken]:
        """Remove every token with ``expires_at < now`` except ``keep``."""

    @abstractmethod
    def session_ids(self) -> List[str]:
        pass

    @abstractmethod
    def __len__(self) -> int:
        pass

class InMemoryTokenStore(TokenStore):
    """
    Thread-safe in-memory token store.

    Tokens live in one bucket per session. Each session hashes onto one of
    a fixed number of lock stripes, so writers on different sessions
    normally never wait on each other and no lock spans all sessions.
    ``_index`` maps token id to session id and is only written while the
    owning session's stripe is held.
    """

    def __init__(self, stripes: int = 16):
        if stripes < 1:
            raise ValueError("stripes must be at least 1")
        self._locks = [threading.Lock() for _ in range(stripes)]
        self._sessions: Dict[str, Dict[str, CheckInToken]] = {}
        self._index: Dict[str, str] = {}

    def _lock_for(self, session_id: str) -> threading.Lock:
        return self._locks[hash(session_id) % len(self._locks)]

    def add(self, token: CheckInToken) -> None:
        with self._lock_for(token.session_id):
            if token.id in self._index:
                raise TokenStoreError(f"Token id already stored: {token.id}")
            self._sessions.setdefault(token.session_id, {})[token.id] = token
            self._index[token.id] = token.session_id

    def get(self, token_id: str) -> Optional[CheckInToken]:
        session_id = self._index.get(token_id)
        if session_id is None:
            return None
        with self._lock_for(session_id):
            bucket = self._sessions.get(session_id, {})
            return bucket.get(token_id)

    def remove(self, token_id: str) -> Optional[CheckInToken]:
        session_id = self._index.get(token_id)
        if session_id is None:
            return None
        with self._lock_for(session_id):
            return self._remove_locked(session_id, token_id)

    def _remove_locked(self, session_id: str, token_id: str) -> Optional[CheckInToken]:
        if self._index.get(token_id) != session_id:
            # Removed by another thread between lookup and lock
            return None
        bucket = self._sessions.get(session_id)
        if bucket is None or token_id not in bucket:
            raise TokenStoreError(
                f"Token {token_id} indexed under session {session_id} but not stored"
            )
        token = bucket.pop(token_id)
        del self._index[token_id]
        if not bucket:
            del self._sessions[session_id]
        token.active = False
        return token

    def contains(self, token_id: str) -> bool:
        return token_id in self._index

    def for_session(self, session_id: str) -> List[CheckInToken]:
        with self._lock_for(session_id):
            return list(self._sessions.get(session_id, {}).values())

    def evict_expired(self, now: datetime, keep: Optional[str] = None) -> List[CheckInToken]:
        evicted = []
        for session_id in self.session_ids():
            with self._lock_for(session_id):
                bucket = self._sessions.get(session_id, {})
                expired_ids = [
                    token_id for token_id, token in bucket.items()
                    if token_id != keep and token.expires_at < now
                ]
                for token_id in expired_ids:
                    evicted.append(self._remove_locked(session_id, token_id))
        return evicted

    def session_ids(self) -> List[str]:
        return list(self._sessions.keys())

    def __len__(self) -> int:
        return len(self._index)
