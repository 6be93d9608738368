# app/api/goals/test_goals_services.py
import asyncio

import pytest

from app.api.goals.schemas import normalize_text_list
from app.models.session import SessionContext
from app.models.user_journal import UserJournal

SESSION = SessionContext(user_id='u1')


def test_normalize_text_list():
    assert normalize_text_list(['  a ', {'text': 'b'}, '', {'text': '  '}, 3, None]) == ['a', 'b']
    assert normalize_text_list('not a list') == []
    assert normalize_text_list(None) == []


def test_load_prefers_firestore_and_refreshes_cache(goals, firestore, local_cache):
    asyncio.run(local_cache.set_json('personalGoals:u1', {'goals': ['old'], 'memories': []}))
    firestore.docs('userJournal')['u1'] = {'goals': [{'text': 'Run a 5k'}], 'memories': ['Bad knee']}

    journal = asyncio.run(goals.load(SESSION))

    assert journal == UserJournal(goals=['Run a 5k'], memories=['Bad knee'])
    assert asyncio.run(local_cache.get_json('personalGoals:u1')) == {'goals': ['Run a 5k'], 'memories': ['Bad knee']}


def test_load_falls_back_to_cache(goals, firestore, local_cache):
    asyncio.run(local_cache.set_json('personalGoals:u1', {'goals': ['cached'], 'memories': []}))
    firestore.fail_reads = True

    assert asyncio.run(goals.load(SESSION)).goals == ['cached']


def test_logged_out_gets_empty_journal_and_no_writes(goals, firestore):
    anonymous = SessionContext()
    assert asyncio.run(goals.load(anonymous)).is_empty()
    assert asyncio.run(goals.add_goal(anonymous, 'x')).is_empty()
    assert firestore.set_calls == []


def test_add_and_remove_items_persist(goals, firestore):
    asyncio.run(goals.add_goal(SESSION, '  Run a 5k  '))
    asyncio.run(goals.add_goal(SESSION, 'Sleep 8h'))
    asyncio.run(goals.add_memory(SESSION, 'Vegetarian'))
    journal = asyncio.run(goals.remove_goal(SESSION, 0))

    assert journal == UserJournal(goals=['Sleep 8h'], memories=['Vegetarian'])
    assert firestore.docs('userJournal')['u1'] == {'goals': ['Sleep 8h'], 'memories': ['Vegetarian']}

    journal = asyncio.run(goals.remove_memory(SESSION, 0))
    assert journal.memories == []


def test_blank_text_is_ignored(goals, firestore):
    asyncio.run(goals.add_goal(SESSION, '   '))
    assert firestore.set_calls == []


def test_remove_out_of_range(goals):
    with pytest.raises(IndexError):
        asyncio.run(goals.remove_goal(SESSION, 0))
    with pytest.raises(IndexError):
        asyncio.run(goals.remove_memory(SESSION, -1))


def test_persist_failure_is_logged_not_raised(goals, firestore):
    firestore.fail_writes = True
    journal = asyncio.run(goals.add_goal(SESSION, 'Run'))
    assert journal.goals == ['Run']


def test_resolve_context_order(goals, local_cache, firestore):
    asyncio.run(local_cache.set_json('personalGoals', {'goals': ['legacy'], 'memories': ['legacy memory']}))
    assert asyncio.run(goals.resolve_context(SESSION)).goals == ['legacy']

    asyncio.run(local_cache.set_json('personalGoals:u1', {'goals': ['personal'], 'memories': []}))
    assert asyncio.run(goals.resolve_context(SESSION)).goals == ['personal']

    asyncio.run(local_cache.set_json('goals:u1', ['split']))
    assert asyncio.run(goals.resolve_context(SESSION)) == UserJournal(goals=['split'], memories=[])

    firestore.docs('userJournal')['u1'] = {'goals': [], 'memories': [{'text': 'remote memory'}]}
    assert asyncio.run(goals.resolve_context(SESSION)) == UserJournal(goals=['split'], memories=['remote memory'])


def test_user_context_text(goals, firestore):
    assert asyncio.run(goals.user_context_text(SESSION)) == "User Goals:\nNone\n\nImportant Memories:\nNone"

    firestore.docs('userJournal')['u1'] = {'goals': ['A', 'B'], 'memories': ['C']}
    assert asyncio.run(goals.user_context_text(SESSION)) == "User Goals:\n- A\n- B\n\nImportant Memories:\n- C"


def test_forget_releases_cached_journal(goals):
    asyncio.run(goals.add_goal(SESSION, 'Run'))
    assert 'u1' in goals._journals

    goals.forget(SESSION)
    goals.forget(SessionContext())

    assert 'u1' not in goals._journals
    assert asyncio.run(goals.current(SESSION)).goals == ['Run']
