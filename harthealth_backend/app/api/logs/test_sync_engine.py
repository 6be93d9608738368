# app/api/logs/test_sync_engine.py
import asyncio

import pytest

from app.api.logs.categories import WORKOUT
from app.api.logs.sync_engine import SyncEngine
from app.models.log_record import CoachingStatus, LogRecord
from app.models.session import Entitlement, SessionContext

SESSION = SessionContext(user_id='u1')
PRO = Entitlement(authenticated=True, subscribed=True)
FREE = Entitlement(authenticated=True, subscribed=False)


@pytest.fixture
def engine(local_cache, firestore):
    return SyncEngine(WORKOUT, local_cache, firestore)


def _cached(local_cache, owner='u1'):
    return asyncio.run(local_cache.get_json(f'workoutLogs:{owner}'))


def test_persist_free_user_writes_local_only(engine, local_cache, firestore):
    records = [LogRecord(id='a'), LogRecord(id='b')]

    out = asyncio.run(engine.persist(records, SESSION, FREE))

    assert [r.id for r in out] == ['a', 'b']
    assert [item['id'] for item in _cached(local_cache)] == ['a', 'b']
    assert firestore.set_calls == []


def test_persist_anonymous_uses_local_owner(engine, local_cache, firestore):
    asyncio.run(engine.persist([LogRecord(id='a')], SessionContext(), PRO))
    assert _cached(local_cache, 'local')[0]['id'] == 'a'
    assert firestore.set_calls == []


def test_persist_subscriber_upserts_with_composed_handle(engine, local_cache, firestore):
    records = [LogRecord(id='a', entries=[{'type': 'Cardio', 'exercise': 'Run'}])]

    out = asyncio.run(engine.persist(records, SESSION, PRO))

    assert out[0].remote_handle == 'u1_a'
    assert out[0].owner_id == 'u1'
    doc = firestore.docs('workoutLogs')['u1_a']
    assert doc['userId'] == 'u1'
    assert doc['rows'][0]['exercise'] == 'Run'
    assert 'remoteHandle' not in doc and 'status' not in doc
    # 로컬 캐시에는 문서 ID까지 기록
    assert _cached(local_cache)[0]['remoteHandle'] == 'u1_a'


def test_persist_keeps_existing_handle(engine, firestore):
    records = [LogRecord(id='a', remote_handle='legacy-doc')]
    out = asyncio.run(engine.persist(records, SESSION, PRO))
    assert out[0].remote_handle == 'legacy-doc'
    assert list(firestore.docs('workoutLogs')) == ['legacy-doc']


def test_persist_is_idempotent(engine, firestore):
    records = [LogRecord(id='a'), LogRecord(id='b')]
    first = asyncio.run(engine.persist(records, SESSION, PRO))
    asyncio.run(engine.persist(first, SESSION, PRO))
    assert sorted(firestore.docs('workoutLogs')) == ['u1_a', 'u1_b']


def test_persist_partial_failure_keeps_other_records(engine, local_cache, firestore):
    firestore.fail_write_ids = {'u1_b'}
    records = [LogRecord(id='a'), LogRecord(id='b')]

    out = asyncio.run(engine.persist(records, SESSION, PRO))

    assert out[0].remote_handle == 'u1_a'
    assert out[1].remote_handle is None
    assert 'u1_a' in firestore.docs('workoutLogs')
    assert [item['id'] for item in _cached(local_cache)] == ['a', 'b']


def test_persist_does_not_store_coaching_status(engine, local_cache):
    asyncio.run(engine.persist([LogRecord(id='a', coaching_status=CoachingStatus.PENDING)], SESSION, FREE))
    assert 'status' not in _cached(local_cache)[0]


def test_write_local_failure_is_reported(engine, monkeypatch):
    async def broken(key, value):
        raise OSError("disk full")

    monkeypatch.setattr(engine.local_cache, 'set_json', broken)
    assert asyncio.run(engine.write_local([LogRecord(id='a')], SESSION)) is False


def test_delete_removes_remote_document(engine, local_cache, firestore):
    synced = asyncio.run(engine.persist([LogRecord(id='a'), LogRecord(id='b')], SESSION, PRO))

    remaining = asyncio.run(engine.delete(synced[0], synced[1:], SESSION, PRO))

    assert [r.id for r in remaining] == ['b']
    assert ('workoutLogs', 'u1_a') in firestore.delete_calls
    assert list(firestore.docs('workoutLogs')) == ['u1_b']
    assert [item['id'] for item in _cached(local_cache)] == ['b']


def test_delete_remote_failure_does_not_restore(engine, local_cache, firestore):
    firestore.fail_deletes = True
    record = LogRecord(id='a')

    remaining = asyncio.run(engine.delete(record, [], SESSION, FREE))

    assert remaining == []
    assert firestore.delete_calls == [('workoutLogs', 'u1_a')]
    assert _cached(local_cache) == []


def test_delete_without_session_skips_remote(engine, firestore):
    asyncio.run(engine.delete(LogRecord(id='a'), [], SessionContext(), Entitlement()))
    assert firestore.delete_calls == []
