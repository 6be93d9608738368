# app/services/firestore_service.py
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from firebase_admin import firestore

logger = logging.getLogger(__name__)


@dataclass
class RemoteDocument:
    """Firestore 문서 ID와 데이터 묶음"""
    doc_id: str
    data: Dict[str, Any]


class FirestoreService:
    """
    Firestore 문서 저장소 어댑터.
    동기 SDK 호출은 asyncio.to_thread로 넘겨 일지 서비스의 이벤트 루프를 막지 않습니다.
    모든 실패는 로그를 남긴 뒤 호출자에게 전파합니다. (무시 여부는 호출자가 결정)
    """

    def __init__(self, db=None):
        self.db = db

    def init_app(self, app=None):
        """firebase_admin 초기화 이후 호출되어 Firestore 클라이언트를 설정합니다."""
        self.db = firestore.client()
        logger.info("FirestoreService: Firestore 클라이언트가 초기화되었습니다.")

    def _collection(self, collection_name: str):
        if self.db is None:
            raise RuntimeError("FirestoreService가 초기화되지 않았습니다. init_app을 먼저 호출해주세요.")
        return self.db.collection(collection_name)

    def _query_by_owner(self, collection_name: str, user_id: str) -> List[RemoteDocument]:
        docs = self._collection(collection_name).where('userId', '==', user_id).stream()
        return [RemoteDocument(doc_id=doc.id, data=doc.to_dict() or {}) for doc in docs]

    def _get(self, collection_name: str, doc_id: str) -> Optional[Dict[str, Any]]:
        snapshot = self._collection(collection_name).document(doc_id).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict() or {}

    async def query_by_owner(self, collection_name: str, user_id: str) -> List[RemoteDocument]:
        """userId == user_id 조건으로 컬렉션의 문서를 모두 조회합니다."""
        try:
            return await asyncio.to_thread(self._query_by_owner, collection_name, user_id)
        except Exception as e:
            logger.error(f"Firestore 조회 실패 (Collection: {collection_name}, userId: {user_id}): {e}")
            raise

    async def get_document(self, collection_name: str, doc_id: str) -> Optional[Dict[str, Any]]:
        try:
            return await asyncio.to_thread(self._get, collection_name, doc_id)
        except Exception as e:
            logger.error(f"Firestore 문서 조회 실패 (Collection: {collection_name}, Doc ID: {doc_id}): {e}")
            raise

    async def set_document(self, collection_name: str, doc_id: str, data: Dict[str, Any]):
        """지정한 문서 ID에 전체 데이터를 덮어씁니다 (upsert)."""
        try:
            doc_ref = self._collection(collection_name).document(doc_id)
            await asyncio.to_thread(doc_ref.set, data)
            logger.info(f"Firestore 저장 성공 (Collection: {collection_name}, Doc ID: {doc_id})")
        except Exception as e:
            logger.error(f"Firestore 저장 실패 (Collection: {collection_name}, Doc ID: {doc_id}): {e}")
            raise

    async def delete_document(self, collection_name: str, doc_id: str):
        try:
            doc_ref = self._collection(collection_name).document(doc_id)
            await asyncio.to_thread(doc_ref.delete)
            logger.info(f"Firestore 삭제 성공 (Collection: {collection_name}, Doc ID: {doc_id})")
        except Exception as e:
            logger.error(f"Firestore 삭제 실패 (Collection: {collection_name}, Doc ID: {doc_id}): {e}")
            raise

    def watch_document(
        self,
        collection_name: str,
        doc_id: str,
        on_change: Callable[[Optional[Dict[str, Any]]], None],
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> Callable[[], None]:
        """
        문서 변경을 실시간으로 구독합니다. 반환된 함수를 호출하면 구독이 해제됩니다.

        :param on_change: 문서 데이터(없으면 None)를 받는 콜백
        :param on_error: 스냅샷 처리 중 예외를 받는 콜백
        """
        doc_ref = self._collection(collection_name).document(doc_id)

        def _on_snapshot(doc_snapshots, changes, read_time):
            try:
                snapshot = doc_snapshots[0] if doc_snapshots else None
                if snapshot is None or not snapshot.exists:
                    on_change(None)
                else:
                    on_change(snapshot.to_dict() or {})
            except Exception as e:
                logger.error(f"Firestore 스냅샷 처리 실패 (Collection: {collection_name}, Doc ID: {doc_id}): {e}")
                if on_error:
                    on_error(e)

        watch = doc_ref.on_snapshot(_on_snapshot)
        return watch.unsubscribe
