# app/api/logs/test_reconciler.py
import asyncio
from datetime import datetime, timezone

import pytest

from app.api.logs.categories import EATING, WORKOUT
from app.api.logs.reconciler import Reconciler, dedupe_by_id, reconcile
from app.api.logs.sync_engine import SyncEngine
from app.models.log_record import LogRecord
from app.models.session import SessionContext
from app.services.firestore_service import RemoteDocument

SESSION = SessionContext(user_id='u1')


def _dt(day, hour=0):
    return datetime(2024, 3, day, hour, tzinfo=timezone.utc)


@pytest.fixture
def reconciler(local_cache, firestore):
    engine = SyncEngine(EATING, local_cache, firestore)
    return Reconciler(EATING, local_cache, firestore, engine)


def test_dedupe_keeps_latest_date_in_first_position():
    records = [
        LogRecord(id='a', date=_dt(1), feedback='old'),
        LogRecord(id='b', date=_dt(2)),
        LogRecord(id='a', date=_dt(5), feedback='new'),
        LogRecord(id='a', date=_dt(3), feedback='middle'),
    ]
    out = dedupe_by_id(records)
    assert [r.id for r in out] == ['a', 'b']
    assert out[0].feedback == 'new'


def test_dedupe_tie_prefers_later_record():
    records = [LogRecord(id='a', date=_dt(1), feedback='first'), LogRecord(id='a', date=_dt(1), feedback='second')]
    assert dedupe_by_id(records)[0].feedback == 'second'


def test_dedupe_passes_through_missing_ids():
    records = [LogRecord(id=None), LogRecord(id=None)]
    assert len(dedupe_by_id(records)) == 2


def test_reconcile_prefers_remote_wholesale():
    local = [LogRecord(id='a', feedback='local')]
    remote = [LogRecord(id='b', feedback='remote')]
    out, changed = reconcile(local, remote)
    assert [r.id for r in out] == ['b']
    assert changed is False


def test_reconcile_falls_back_to_local():
    out, changed = reconcile([LogRecord(id='a')], [])
    assert [r.id for r in out] == ['a']
    assert changed is False


def test_reconcile_creates_single_empty_log():
    out, changed = reconcile([], [])
    assert len(out) == 1
    assert out[0].id and out[0].entries == [] and out[0].feedback == ''
    # 새로 발급한 id는 보정으로 보지 않음
    assert changed is False


def test_reconcile_repairs_missing_ids():
    out, changed = reconcile([LogRecord(id=None), LogRecord(id='a')], [])
    assert changed is True
    assert all(r.id for r in out)


def test_record_from_document_recovers_id_from_handle(reconciler):
    doc = RemoteDocument(doc_id='u1_171', data={'userId': 'u1', 'date': '2024-03-07T00:00:00Z', 'meals': []})
    record = reconciler.record_from_document(doc, 'u1')
    assert record.id == '171'
    assert record.remote_handle == 'u1_171'

    legacy = RemoteDocument(doc_id='auto-generated', data={'userId': 'u1', 'id': '99'})
    record = reconciler.record_from_document(legacy, 'u1')
    assert record.id == '99'
    assert record.remote_handle == 'auto-generated'

    bare = RemoteDocument(doc_id='legacyDoc', data={'userId': 'u1'})
    assert reconciler.record_from_document(bare, 'u1').id == 'legacyDoc'


def test_load_without_session_reads_nothing(reconciler, firestore):
    firestore.fail_reads = True
    assert asyncio.run(reconciler.load(SessionContext())) == []


def test_load_prefers_remote_records(reconciler, local_cache, firestore):
    asyncio.run(local_cache.set_json('eatingLogs:u1', [{'id': 'local-1', 'meals': []}]))
    firestore.docs('eatingLogs')['u1_r1'] = {'id': 'r1', 'userId': 'u1', 'date': '2024-03-07T00:00:00Z', 'meals': []}
    firestore.docs('eatingLogs')['u2_r2'] = {'id': 'r2', 'userId': 'u2', 'meals': []}

    records = asyncio.run(reconciler.load(SESSION))

    assert [r.id for r in records] == ['r1']
    assert records[0].remote_handle == 'u1_r1'
    # 로컬 전용 기록은 덮어쓰기 전까지 캐시에 남아 있음
    assert asyncio.run(local_cache.get_json('eatingLogs:u1')) == [{'id': 'local-1', 'meals': []}]


def test_load_uses_local_when_remote_fails(reconciler, local_cache, firestore):
    asyncio.run(local_cache.set_json('eatingLogs:u1', [
        {'id': 'l1', 'date': '2024-03-07T00:00:00Z', 'meals': [{'type': 'Lunch', 'name': 'Salad'}]},
        'garbage',
    ]))
    firestore.fail_reads = True

    records = asyncio.run(reconciler.load(SESSION))

    assert [r.id for r in records] == ['l1']
    assert records[0].entries[0]['name'] == 'Salad'


def test_load_writes_repaired_ids_to_local_only(reconciler, local_cache, firestore):
    asyncio.run(local_cache.set_json('eatingLogs:u1', [
        {'date': '2024-03-01T00:00:00Z', 'meals': []},
        {'id': 'a', 'date': '2024-03-02T00:00:00Z', 'meals': []},
    ]))

    records = asyncio.run(reconciler.load(SESSION))

    assert len(records) == 2 and all(r.id for r in records)
    cached = asyncio.run(local_cache.get_json('eatingLogs:u1'))
    assert [item['id'] for item in cached] == [r.id for r in records]
    assert firestore.set_calls == []


def test_remote_document_without_id_keeps_stable_id(reconciler, firestore):
    firestore.docs('eatingLogs')['legacyDoc'] = {'userId': 'u1', 'date': '2024-03-02T00:00:00Z', 'meals': []}

    first = asyncio.run(reconciler.load(SESSION))
    second = asyncio.run(reconciler.load(SESSION))

    assert [r.id for r in first] == ['legacyDoc']
    assert [r.id for r in second] == [r.id for r in first]
    assert first[0].remote_handle == 'legacyDoc'


def test_load_empty_everywhere_yields_one_log_without_writes(reconciler, local_cache, firestore):
    records = asyncio.run(reconciler.load(SESSION))
    assert len(records) == 1
    assert asyncio.run(local_cache.get_json('eatingLogs:u1')) is None
    assert firestore.set_calls == []


def test_categories_do_not_share_cache(local_cache, firestore):
    engine = SyncEngine(WORKOUT, local_cache, firestore)
    workout = Reconciler(WORKOUT, local_cache, firestore, engine)
    asyncio.run(local_cache.set_json('eatingLogs:u1', [{'id': 'meal-log'}]))

    records = asyncio.run(workout.load(SESSION))

    assert [r.id for r in records] != ['meal-log']
