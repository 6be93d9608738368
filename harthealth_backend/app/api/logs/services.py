# app/api/logs/services.py
import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, List, Optional

from app.core.exceptions import (
    CoachingServiceError,
    LoginRequiredError,
    LogNotFoundError,
    SubscriptionRequiredError,
)
from app.models.log_record import CoachingStatus, LogRecord
from app.models.session import SessionContext

from .categories import LogCategory
from .coaching import CoachingRequestBuilder
from .reconciler import Reconciler, create_empty_log
from .sync_engine import SyncEngine

logger = logging.getLogger(__name__)


class LogBookService:
    """
    카테고리 하나(운동 또는 식단)의 사용자별 메모리 목록과 편집 동작을 담당하는 서비스 클래스.

    - 목록은 수정할 때마다 통째로 새 리스트로 교체합니다 (제자리 수정 없음).
    - 모든 편집은 SyncEngine.persist를 거쳐 로컬 캐시/Firestore에 반영됩니다.
    - AI 피드백 요청 상태는 기록별 CoachingStatus로 관리합니다.
    """

    def __init__(
        self,
        category: LogCategory,
        reconciler: Reconciler,
        sync_engine: SyncEngine,
        subscription_service,
        coaching_service,
        request_builder: CoachingRequestBuilder,
    ):
        self.category = category
        self.reconciler = reconciler
        self.sync_engine = sync_engine
        self.subscriptions = subscription_service
        self.coaching = coaching_service
        self.request_builder = request_builder
        self._books: Dict[str, List[LogRecord]] = {}
        logger.info(f"LogBookService initialized ({category.collection}).")

    # --- 목록 조회 ---

    def records(self, session: SessionContext) -> List[LogRecord]:
        return list(self._books.get(session.cache_owner, []))

    async def load(self, session: SessionContext) -> List[LogRecord]:
        """세션 시작 시 로컬/Firestore를 조정해 기준 목록을 만듭니다."""
        records = await self.reconciler.load(session)

        # 요청 진행 중인 기록의 상태는 다시 불러와도 유지
        pending = {r.id for r in self._books.get(session.cache_owner, []) if r.is_pending}
        if pending:
            records = [
                replace(r, coaching_status=CoachingStatus.PENDING) if r.id in pending else r
                for r in records
            ]

        self._books[session.cache_owner] = records
        return list(records)

    def forget(self, session: SessionContext):
        """
        로그아웃 시 사용자의 메모리 목록을 버립니다. 저장소는 그대로이며 다음 요청에서 다시 불러옵니다.
        진행 중이던 AI 피드백 응답은 삭제된 기록과 같이 버려집니다.
        """
        self._books.pop(session.cache_owner, None)

    async def _current(self, session: SessionContext) -> List[LogRecord]:
        if session.cache_owner not in self._books:
            await self.load(session)
        return self._books[session.cache_owner]

    @staticmethod
    def _find(records: List[LogRecord], log_id: str) -> LogRecord:
        for record in records:
            if record.id == log_id:
                return record
        raise LogNotFoundError(f"일지를 찾을 수 없습니다: {log_id}")

    # --- 저장 ---

    def _mirror_handles(self, session: SessionContext, synced: List[LogRecord]):
        """동기화 중 부여된 Firestore 문서 ID를 현재 메모리 목록에 반영합니다."""
        handles = {r.id: r.remote_handle for r in synced if r.remote_handle}
        current = self._books.get(session.cache_owner, [])
        self._books[session.cache_owner] = [
            replace(r, remote_handle=handles[r.id], owner_id=session.user_id)
            if r.id in handles and r.remote_handle != handles[r.id] else r
            for r in current
        ]

    async def _commit(self, session: SessionContext, records: List[LogRecord]) -> List[LogRecord]:
        self._books[session.cache_owner] = records
        entitlement = await self.subscriptions.entitlement_for(session)
        synced = await self.sync_engine.persist(records, session, entitlement)
        self._mirror_handles(session, synced)

        current = self._books[session.cache_owner]
        if current != synced:
            # 동기화 중 다른 편집이 들어온 경우 최신 목록으로 캐시를 다시 맞춤
            await self.sync_engine.write_local(current, session)
        return list(current)

    async def _update_record(
        self,
        session: SessionContext,
        log_id: str,
        change: Callable[[LogRecord], LogRecord],
    ) -> LogRecord:
        records = await self._current(session)
        self._find(records, log_id)
        updated = [change(r) if r.id == log_id else r for r in records]
        result = await self._commit(session, updated)
        return self._find(result, log_id)

    # --- 편집 동작 ---

    async def add_log(self, session: SessionContext) -> LogRecord:
        """빈 일지를 목록 맨 앞에 추가합니다."""
        new_log = create_empty_log()
        records = await self._current(session)
        result = await self._commit(session, [new_log, *records])
        return self._find(result, new_log.id)

    async def update_date(self, session: SessionContext, log_id: str, date: datetime) -> LogRecord:
        return await self._update_record(session, log_id, lambda r: replace(r, date=date))

    async def toggle_collapse(self, session: SessionContext, log_id: str) -> LogRecord:
        return await self._update_record(session, log_id, lambda r: replace(r, collapsed=not r.collapsed))

    async def set_collapsed(self, session: SessionContext, log_id: str, collapsed: bool) -> LogRecord:
        record = self._find(await self._current(session), log_id)
        if record.collapsed == collapsed:
            return record
        return await self.toggle_collapse(session, log_id)

    async def add_entry(self, session: SessionContext, log_id: str, entry_type: str) -> LogRecord:
        entry = self.category.new_entry(entry_type)
        return await self._update_record(session, log_id, lambda r: replace(r, entries=[*r.entries, entry]))

    async def update_entry(self, session: SessionContext, log_id: str, index: int, changes: Dict[str, str]) -> LogRecord:
        allowed = self.category.editable_fields()
        unknown = [key for key in changes if key not in allowed]
        if unknown:
            raise ValueError(f"수정할 수 없는 필드입니다: {', '.join(unknown)} (가능한 필드: {', '.join(allowed)})")

        record = self._find(await self._current(session), log_id)
        if not 0 <= index < len(record.entries):
            raise IndexError(f"항목 인덱스 범위를 벗어났습니다: {index}")

        def _apply(r: LogRecord) -> LogRecord:
            entries = [
                {**entry, **changes} if i == index else entry
                for i, entry in enumerate(r.entries)
            ]
            return replace(r, entries=entries)

        return await self._update_record(session, log_id, _apply)

    async def remove_entry(self, session: SessionContext, log_id: str, index: int) -> LogRecord:
        record = self._find(await self._current(session), log_id)
        if not 0 <= index < len(record.entries):
            raise IndexError(f"항목 인덱스 범위를 벗어났습니다: {index}")

        return await self._update_record(
            session, log_id,
            lambda r: replace(r, entries=[e for i, e in enumerate(r.entries) if i != index]),
        )

    async def delete_log(self, session: SessionContext, log_id: str) -> List[LogRecord]:
        """
        메모리 목록과 로컬 캐시에서 즉시 삭제하고, Firestore 문서는 최선 노력으로 삭제합니다.
        """
        records = await self._current(session)
        target = self._find(records, log_id)
        remaining = [r for r in records if r.id != log_id]
        self._books[session.cache_owner] = remaining

        entitlement = await self.subscriptions.entitlement_for(session)
        synced = await self.sync_engine.delete(target, remaining, session, entitlement)
        self._mirror_handles(session, synced)
        return list(self._books[session.cache_owner])

    # --- AI 피드백 ---

    def _set_status(self, session: SessionContext, log_id: str, status: CoachingStatus):
        records = self._books.get(session.cache_owner)
        if records is None:
            return
        self._books[session.cache_owner] = [
            replace(r, coaching_status=status) if r.id == log_id else r
            for r in records
        ]

    async def submit_feedback(self, session: SessionContext, log_id: str) -> Optional[LogRecord]:
        """
        기록 한 건에 대한 AI 코칭 피드백을 요청하고 결과를 기록에 붙여 저장합니다.

        :return: 피드백이 반영된 기록. 항목이 없거나, 이미 요청 중이거나,
                 응답 전에 기록이 삭제된 경우에는 None (아무 것도 하지 않음)
        :raises LoginRequiredError: 로그인 세션 없음 (네트워크 호출 전)
        :raises SubscriptionRequiredError: 구독 필요 (구독 조회 결과 또는 서버 402)
        :raises CoachingServiceError: 그 외 요청 실패
        """
        records = await self._current(session)
        record = self._find(records, log_id)

        if record.is_pending or not record.entries:
            return None
        if not session.authenticated:
            raise LoginRequiredError("Please log in to submit and get AI feedback.")

        # 첫 await 이전에 상태를 바꿔 같은 기록의 중복 요청을 막음
        self._set_status(session, log_id, CoachingStatus.PENDING)
        try:
            entitlement = await self.subscriptions.entitlement_for(session)
            if not entitlement.subscribed:
                raise SubscriptionRequiredError("HartHealth Pro required for AI feedback.")

            messages = await self.request_builder.build_messages(session, record)
            feedback = await self.coaching.request_feedback(
                messages,
                id_token=session.id_token,
                **self.request_builder.request_options,
            )

            current = self._books.get(session.cache_owner, [])
            if not any(r.id == log_id for r in current):
                logger.info(f"삭제된 일지의 피드백 응답을 버립니다 ({self.category.collection}, id: {log_id})")
                return None

            await self._commit(
                session,
                [replace(r, feedback=feedback) if r.id == log_id else r for r in current],
            )
        except (LoginRequiredError, SubscriptionRequiredError, CoachingServiceError):
            raise
        except Exception as e:
            logger.error(f"AI 피드백 처리 실패 ({self.category.collection}, id: {log_id}): {e}", exc_info=True)
            raise CoachingServiceError("AI feedback failed.") from e
        finally:
            self._set_status(session, log_id, CoachingStatus.IDLE)

        return self._find(self._books[session.cache_owner], log_id)
