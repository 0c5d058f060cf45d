"""Tests for the striped in-memory token store."""
import threading
from datetime import datetime, timedelta, timezone

import pytest

from checkin.models import CheckInToken
from checkin.services import InMemoryTokenStore
from checkin.utils.errors import TokenStoreError

NOW = datetime(2024, 9, 2, 9, 0, tzinfo=timezone.utc)

def make_token(token_id, session_id='S1', minutes=10):
    return CheckInToken(
        id=token_id,
        session_id=session_id,
        payload=f'{{"tokenId":"{token_id}"}}',
        issued_at=NOW,
        expires_at=NOW + timedelta(minutes=minutes)
    )

def test_add_get_remove():
    store = InMemoryTokenStore(stripes=2)
    token = make_token('t1')
    store.add(token)

    assert store.contains('t1')
    assert store.get('t1') is token
    assert len(store) == 1

    assert store.remove('t1') is token
    assert token.active is False
    assert store.get('t1') is None
    assert store.remove('t1') is None
    assert store.session_ids() == []

def test_duplicate_id_rejected():
    store = InMemoryTokenStore()
    store.add(make_token('t1'))
    with pytest.raises(TokenStoreError):
        store.add(make_token('t1', session_id='S2'))

def test_for_session_keeps_issue_order():
    store = InMemoryTokenStore()
    tokens = [make_token(f"t{i}") for i in range(3)]
    for token in tokens:
        store.add(token)
    store.add(make_token('other', session_id='S2'))

    assert store.for_session('S1') == tokens
    assert store.for_session('missing') == []

def test_evict_expired_keeps_given_token():
    store = InMemoryTokenStore()
    store.add(make_token('short', minutes=1))
    store.add(make_token('keep', minutes=1))
    store.add(make_token('long', minutes=60))

    evicted = store.evict_expired(NOW + timedelta(minutes=2), keep='keep')

    assert [t.id for t in evicted] == ['short']
    assert store.contains('keep')
    assert store.contains('long')

def test_evict_boundary_is_strict():
    store = InMemoryTokenStore()
    store.add(make_token('t1', minutes=1))
    assert store.evict_expired(NOW + timedelta(minutes=1)) == []

def test_invalid_stripe_count():
    with pytest.raises(ValueError):
        InMemoryTokenStore(stripes=0)

def test_inconsistent_state_is_reported():
    store = InMemoryTokenStore()
    store.add(make_token('t1'))
    store._sessions['S1'].pop('t1')

    with pytest.raises(TokenStoreError):
        store.remove('t1')

def test_concurrent_writers_across_sessions():
    store = InMemoryTokenStore(stripes=3)

    def writer(session_id):
        for i in range(100):
            token_id = f"{session_id}-{i}"
            store.add(make_token(token_id, session_id=session_id))
            if i % 2:
                store.remove(token_id)

    threads = [threading.Thread(target=writer, args=(f"S{n}",)) for n in range(10)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(store) == 10 * 50
    assert sorted(store.session_ids()) == sorted(f"S{n}" for n in range(10))
