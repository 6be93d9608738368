# conftest.py
"""
공용 테스트 픽스처

Firestore와 AI 피드백 서버는 메모리 기반 가짜 객체로 대체하고,
로컬 캐시는 tmp_path 아래 실제 JSON 파일을 사용합니다.
"""

import asyncio
import copy
from typing import Any, Dict, List, Optional

import pytest

from app import build_log_services, create_app
from app.api.goals.services import GoalsService
from app.services.firestore_service import RemoteDocument
from app.services.local_cache_service import LocalCacheService
from app.services.subscription_service import SubscriptionService


class FakeFirestoreService:
    """FirestoreService와 같은 인터페이스를 가진 메모리 저장소"""

    def __init__(self):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.fail_reads = False
        self.fail_writes = False
        self.fail_deletes = False
        self.fail_write_ids = set()
        self.set_calls: List[tuple] = []
        self.delete_calls: List[tuple] = []
        self.watchers: List[tuple] = []

    def docs(self, collection_name: str) -> Dict[str, Dict[str, Any]]:
        return self.collections.setdefault(collection_name, {})

    def subscribe(self, user_id: str, is_subscriber: bool = True):
        self.docs('users')[user_id] = {'isSubscriber': is_subscriber}

    async def query_by_owner(self, collection_name: str, user_id: str) -> List[RemoteDocument]:
        await asyncio.sleep(0)
        if self.fail_reads:
            raise ConnectionError("firestore unavailable")
        return [
            RemoteDocument(doc_id=doc_id, data=copy.deepcopy(data))
            for doc_id, data in self.docs(collection_name).items()
            if data.get('userId') == user_id
        ]

    async def get_document(self, collection_name: str, doc_id: str) -> Optional[Dict[str, Any]]:
        await asyncio.sleep(0)
        if self.fail_reads:
            raise ConnectionError("firestore unavailable")
        data = self.docs(collection_name).get(doc_id)
        return copy.deepcopy(data) if data is not None else None

    async def set_document(self, collection_name: str, doc_id: str, data: Dict[str, Any]):
        await asyncio.sleep(0)
        self.set_calls.append((collection_name, doc_id))
        if self.fail_writes or doc_id in self.fail_write_ids:
            raise ConnectionError("firestore unavailable")
        self.docs(collection_name)[doc_id] = copy.deepcopy(data)

    async def delete_document(self, collection_name: str, doc_id: str):
        await asyncio.sleep(0)
        self.delete_calls.append((collection_name, doc_id))
        if self.fail_deletes:
            raise ConnectionError("firestore unavailable")
        self.docs(collection_name).pop(doc_id, None)

    def watch_document(self, collection_name, doc_id, on_change, on_error=None):
        self.watchers.append((collection_name, doc_id, on_change, on_error))
        return lambda: self.watchers.remove((collection_name, doc_id, on_change, on_error))


class FakeCoachingService:
    """
    CoachingService 대역. gate가 설정되어 있으면 응답 전에 대기합니다.
    error를 지정하면 응답 대신 그 예외를 발생시킵니다.
    """

    def __init__(self, reply: str = 'Great session!'):
        self.reply = reply
        self.error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.calls: List[Dict[str, Any]] = []

    def init_app(self, app):
        pass

    async def request_feedback(self, messages, id_token=None, **options):
        self.calls.append({'messages': messages, 'id_token': id_token, 'options': options})
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def firestore():
    return FakeFirestoreService()


@pytest.fixture
def local_cache(tmp_path):
    return LocalCacheService(str(tmp_path / 'cache'))


@pytest.fixture
def coaching():
    return FakeCoachingService()


@pytest.fixture
def subscriptions(firestore):
    return SubscriptionService(firestore)


@pytest.fixture
def goals(local_cache, firestore):
    return GoalsService(local_cache, firestore)


@pytest.fixture
def log_services(local_cache, firestore, subscriptions, coaching, goals):
    """{'workout_logs': LogBookService, 'eating_logs': LogBookService}"""
    return build_log_services(local_cache, firestore, subscriptions, coaching, goals)


@pytest.fixture
def app(tmp_path, firestore, coaching):
    def verifier(id_token):
        if id_token != 'valid-id-token':
            raise ValueError('bad token')
        return {'uid': 'user-1', 'email': 'user1@example.com'}

    app = create_app(
        'testing',
        services={
            'firestore': firestore,
            'coaching': coaching,
            'id_token_verifier': verifier,
        },
        config={'LOCAL_CACHE_DIR': str(tmp_path / 'app_cache')},
    )
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    from flask_jwt_extended import create_access_token

    with app.app_context():
        token = create_access_token(identity='user-1')
    return {'Authorization': f'Bearer {token}'}
