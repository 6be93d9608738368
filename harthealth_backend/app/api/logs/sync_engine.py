# app/api/logs/sync_engine.py
"""
일지 목록을 로컬 캐시와 Firestore에 함께 기록하는 동기화 엔진

- 로컬 캐시: 구독 여부와 관계없이 항상 기록
- Firestore: 로그인 + 구독 상태일 때만 기록 (대기열/소급 동기화 없음)
- 두 저장소 사이의 트랜잭션은 없으며, 같은 문서 ID로 덮어쓰는 멱등 upsert만 사용
"""

import asyncio
import logging
from dataclasses import replace
from typing import List, Sequence

from app.models.log_record import LogRecord
from app.models.session import Entitlement, SessionContext

from .categories import LogCategory
from .schemas import CACHE_EXCLUDE, REMOTE_EXCLUDE

logger = logging.getLogger(__name__)


class SyncEngine:

    def __init__(self, category: LogCategory, local_cache, firestore_service):
        self.category = category
        self.local_cache = local_cache
        self.firestore = firestore_service
        self._cache_schema = category.schema_class(many=True, exclude=CACHE_EXCLUDE)
        self._remote_schema = category.schema_class(exclude=REMOTE_EXCLUDE)

    async def write_local(self, records: Sequence[LogRecord], session: SessionContext) -> bool:
        """로컬 캐시에 목록 전체를 저장합니다. 실패는 로그만 남깁니다."""
        key = self.category.cache_key(session.cache_owner)
        try:
            await self.local_cache.set_json(key, self._cache_schema.dump(list(records)))
            return True
        except Exception as e:
            logger.error(f"로컬 캐시 저장 실패 (key: {key}): {e}", exc_info=True)
            return False

    async def _upsert(self, record: LogRecord, user_id: str) -> LogRecord:
        # 이미 연결된 문서가 있으면 그 문서를, 없으면 '<uid>_<id>' 문서를 대상으로 합니다.
        handle = record.remote_handle or record.composed_handle(user_id)
        stamped = replace(record, owner_id=user_id)
        await self.firestore.set_document(self.category.collection, handle, self._remote_schema.dump(stamped))
        return replace(stamped, remote_handle=handle)

    async def persist(
        self,
        records: Sequence[LogRecord],
        session: SessionContext,
        entitlement: Entitlement,
    ) -> List[LogRecord]:
        """
        목록을 로컬 캐시에 저장하고, 권한이 있으면 Firestore에도 기록합니다.

        :return: Firestore 문서 ID(remote_handle)가 반영된 목록. 호출자는 이 값을 메모리 목록에 반영합니다.
        """
        records = list(records)
        await self.write_local(records, session)

        if not (session.authenticated and entitlement.can_sync):
            return records

        results = await asyncio.gather(
            *(self._upsert(record, session.user_id) for record in records),
            return_exceptions=True,
        )

        synced: List[LogRecord] = []
        failures = 0
        for record, result in zip(records, results):
            if isinstance(result, Exception):
                failures += 1
                logger.warning(f"Firestore 동기화 실패 ({self.category.collection}, id: {record.id}): {result}")
                synced.append(record)
            else:
                synced.append(result)

        if failures:
            logger.warning(f"{self.category.collection}: {len(records)}건 중 {failures}건 동기화 실패")

        await self.write_local(synced, session)
        return synced

    async def delete(
        self,
        record: LogRecord,
        remaining: Sequence[LogRecord],
        session: SessionContext,
        entitlement: Entitlement,
    ) -> List[LogRecord]:
        """
        삭제 후 남은 목록을 저장하고, 해당 Firestore 문서를 최선 노력으로 삭제합니다.
        원격 삭제 실패는 로컬 삭제를 되돌리지 않습니다.
        """
        persisted = await self.persist(remaining, session, entitlement)

        if session.authenticated:
            handle = record.remote_handle or record.composed_handle(session.user_id)
            try:
                await self.firestore.delete_document(self.category.collection, handle)
            except Exception as e:
                logger.warning(f"Firestore 삭제 실패 ({self.category.collection}, Doc ID: {handle}): {e}")

        return persisted
