# app/api/logs/reconciler.py
"""
로컬 캐시와 Firestore에서 각각 읽은 일지를 하나의 기준 목록으로 조정합니다.

1. Firestore 기록이 있으면 그것을, 없으면 로컬 캐시를 기준으로 선택 (필드 병합 아님)
2. 기준 목록이 비어 있으면 빈 기본 일지 1건 생성
3. 같은 id는 date가 더 늦은 기록만 유지 (같으면 나중에 나온 기록)
4. 누락/중복 id 보정
5. 4에서 id가 바뀌었으면 로컬 캐시에만 즉시 반영 (Firestore 기록은 사용자 편집 시에만)
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Sequence, Tuple

from app.models.log_record import LogRecord
from app.models.session import SessionContext
from app.services.firestore_service import RemoteDocument
from app.utils.id_utils import allocate, ensure_unique

from .categories import LogCategory
from .schemas import CACHE_EXCLUDE
from .sync_engine import SyncEngine

logger = logging.getLogger(__name__)


def _as_utc(dt: datetime) -> datetime:
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


def create_empty_log() -> LogRecord:
    return LogRecord(id=allocate())


def dedupe_by_id(records: Sequence[LogRecord]) -> List[LogRecord]:
    """id별로 date가 가장 늦은 기록만 남깁니다. 첫 등장 위치를 유지하고, id 없는 기록은 그대로 둡니다."""
    slots: List[LogRecord] = []
    positions: Dict[str, int] = {}

    for record in records:
        if not record.id:
            slots.append(record)
            continue
        idx = positions.get(record.id)
        if idx is None:
            positions[record.id] = len(slots)
            slots.append(record)
        elif _as_utc(record.date) >= _as_utc(slots[idx].date):
            slots[idx] = record

    return slots


def reconcile(local: Sequence[LogRecord], remote: Sequence[LogRecord]) -> Tuple[List[LogRecord], bool]:
    """
    :return: (기준 목록, id 보정 여부)
    """
    base = list(remote) if remote else list(local)
    if not base:
        base = [create_empty_log()]

    return ensure_unique(dedupe_by_id(base))


class Reconciler:

    def __init__(self, category: LogCategory, local_cache, firestore_service, sync_engine: SyncEngine):
        self.category = category
        self.local_cache = local_cache
        self.firestore = firestore_service
        self.sync_engine = sync_engine
        self._schema = category.schema_class(exclude=CACHE_EXCLUDE)

    def record_from_document(self, doc: RemoteDocument, user_id: str) -> LogRecord:
        """Firestore 문서를 일지로 변환합니다. 문서 ID는 remote_handle로 보존합니다."""
        record = self._schema.load(dict(doc.data))
        record.remote_handle = doc.doc_id
        if not record.id:
            # '<uid>_<id>' 형태면 원래 id 복원, 아니면 문서 ID 자체를 id로 사용
            prefix = f"{user_id}_"
            if doc.doc_id.startswith(prefix) and len(doc.doc_id) > len(prefix):
                record.id = doc.doc_id[len(prefix):]
            else:
                record.id = doc.doc_id
        return record

    async def read_local(self, session: SessionContext) -> List[LogRecord]:
        key = self.category.cache_key(session.cache_owner)
        try:
            raw = await self.local_cache.get_json(key)
        except Exception as e:
            logger.warning(f"로컬 캐시 읽기 실패 (key: {key}): {e}")
            return []

        if not isinstance(raw, list):
            return []

        records = []
        for item in raw:
            try:
                records.append(self._schema.load(item))
            except Exception as e:
                logger.warning(f"로컬 캐시 항목 무시 (key: {key}): {e}")
        return records

    async def read_remote(self, session: SessionContext) -> List[LogRecord]:
        if not session.authenticated:
            return []
        try:
            docs = await self.firestore.query_by_owner(self.category.collection, session.user_id)
        except Exception as e:
            logger.warning(f"Firestore 읽기 실패 ({self.category.collection}, userId: {session.user_id}): {e}")
            return []

        records = []
        for doc in docs:
            try:
                records.append(self.record_from_document(doc, session.user_id))
            except Exception as e:
                logger.warning(f"Firestore 문서 무시 ({self.category.collection}, Doc ID: {doc.doc_id}): {e}")
        return records

    async def load(self, session: SessionContext) -> List[LogRecord]:
        """세션 시작 시 기준 목록을 만듭니다. 비로그인 상태면 아무것도 읽지 않고 빈 목록입니다."""
        if not session.authenticated:
            return []

        local, remote = await asyncio.gather(self.read_local(session), self.read_remote(session))
        records, changed = reconcile(local, remote)

        if changed:
            await self.sync_engine.write_local(records, session)
            logger.info(f"{self.category.collection}: 보정된 id를 로컬 캐시에 반영 (userId: {session.user_id})")

        return records
