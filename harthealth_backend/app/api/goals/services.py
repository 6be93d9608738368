# app/api/goals/services.py
import logging
from dataclasses import replace
from typing import Dict, List

from app.models.session import SessionContext
from app.models.user_journal import UserJournal

from .schemas import UserJournalSchema, normalize_text_list

logger = logging.getLogger(__name__)

JOURNAL_COLLECTION = 'userJournal'
LEGACY_PERSONAL_KEY = 'personalGoals'


def personal_key(user_id: str) -> str:
    return f"personalGoals:{user_id}"


def goals_key(user_id: str) -> str:
    return f"goals:{user_id}"


def memories_key(user_id: str) -> str:
    return f"memories:{user_id}"


class GoalsService:
    """
    개인 목표/메모 관리 서비스.
    Firestore 'userJournal/{uid}'가 기준이며 로컬 캐시는 사본입니다.
    구독 여부와 관계없이 로그인 사용자라면 Firestore에 저장합니다.
    """

    def __init__(self, local_cache, firestore_service):
        self.local_cache = local_cache
        self.firestore = firestore_service
        self.schema = UserJournalSchema()
        self._journals: Dict[str, UserJournal] = {}

    async def load(self, session: SessionContext) -> UserJournal:
        """로컬 캐시를 먼저 읽고, Firestore 문서가 있으면 그 값으로 교체 후 캐시를 갱신합니다."""
        if not session.authenticated:
            return UserJournal()

        uid = session.user_id
        journal = UserJournal()

        try:
            local = await self.local_cache.get_json(personal_key(uid))
            if isinstance(local, dict):
                journal = self.schema.load(local)
        except Exception as e:
            logger.warning(f"개인 목표 로컬 캐시 읽기 실패 (user_id: {uid}): {e}")

        try:
            remote = await self.firestore.get_document(JOURNAL_COLLECTION, uid)
            if remote is not None:
                journal = self.schema.load(remote)
                await self.local_cache.set_json(personal_key(uid), self.schema.dump(journal))
        except Exception as e:
            logger.warning(f"개인 목표 Firestore 읽기 실패 (user_id: {uid}): {e}")

        self._journals[uid] = journal
        return journal

    async def persist(self, session: SessionContext, journal: UserJournal):
        """로그아웃 상태에서는 저장하지 않습니다."""
        if not session.authenticated:
            return

        uid = session.user_id
        self._journals[uid] = journal
        data = self.schema.dump(journal)
        try:
            await self.local_cache.set_json(personal_key(uid), data)
            await self.firestore.set_document(JOURNAL_COLLECTION, uid, data)
        except Exception as e:
            logger.warning(f"개인 목표 저장 실패 (user_id: {uid}): {e}")

    def forget(self, session: SessionContext):
        """로그아웃 시 메모리에 보관한 목표/메모를 버립니다."""
        if session.user_id:
            self._journals.pop(session.user_id, None)

    async def current(self, session: SessionContext) -> UserJournal:
        if not session.authenticated:
            return UserJournal()
        journal = self._journals.get(session.user_id)
        if journal is None:
            journal = await self.load(session)
        return journal

    async def _update(self, session: SessionContext, **changes) -> UserJournal:
        journal = replace(await self.current(session), **changes)
        await self.persist(session, journal)
        return journal

    async def add_goal(self, session: SessionContext, text: str) -> UserJournal:
        journal = await self.current(session)
        if not session.authenticated or not text.strip():
            return journal
        return await self._update(session, goals=[*journal.goals, text.strip()])

    async def remove_goal(self, session: SessionContext, index: int) -> UserJournal:
        journal = await self.current(session)
        if not 0 <= index < len(journal.goals):
            raise IndexError(f"목표 인덱스 범위를 벗어났습니다: {index}")
        return await self._update(session, goals=[g for i, g in enumerate(journal.goals) if i != index])

    async def add_memory(self, session: SessionContext, text: str) -> UserJournal:
        journal = await self.current(session)
        if not session.authenticated or not text.strip():
            return journal
        return await self._update(session, memories=[*journal.memories, text.strip()])

    async def remove_memory(self, session: SessionContext, index: int) -> UserJournal:
        journal = await self.current(session)
        if not 0 <= index < len(journal.memories):
            raise IndexError(f"메모 인덱스 범위를 벗어났습니다: {index}")
        return await self._update(session, memories=[m for i, m in enumerate(journal.memories) if i != index])

    async def _read_cached_list(self, key: str) -> List[str]:
        try:
            return normalize_text_list(await self.local_cache.get_json(key))
        except Exception:
            logger.debug(f"캐시 목록 읽기 실패 (key: {key})", exc_info=True)
            return []

    async def _read_cached_journal(self, key: str) -> UserJournal:
        try:
            raw = await self.local_cache.get_json(key)
            if isinstance(raw, dict):
                return self.schema.load(raw)
        except Exception:
            logger.debug(f"캐시 문서 읽기 실패 (key: {key})", exc_info=True)
        return UserJournal()

    async def resolve_context(self, session: SessionContext) -> UserJournal:
        """
        AI 피드백 개인화에 쓸 목표/메모를 모읍니다.

        우선순위: 'goals:<uid>'/'memories:<uid>' -> 'personalGoals:<uid>' -> 예전 전역 키 'personalGoals',
        마지막으로 Firestore 'userJournal/<uid>'에 값이 있으면 항목별로 덮어씁니다.
        """
        uid = session.user_id
        goals: List[str] = []
        memories: List[str] = []

        if uid:
            goals = await self._read_cached_list(goals_key(uid))
            memories = await self._read_cached_list(memories_key(uid))

        if not goals and not memories and uid:
            journal = await self._read_cached_journal(personal_key(uid))
            goals, memories = journal.goals, journal.memories

        if not goals and not memories:
            journal = await self._read_cached_journal(LEGACY_PERSONAL_KEY)
            goals, memories = journal.goals, journal.memories

        if uid:
            try:
                remote = await self.firestore.get_document(JOURNAL_COLLECTION, uid)
                if remote:
                    remote_goals = normalize_text_list(remote.get('goals'))
                    remote_memories = normalize_text_list(remote.get('memories'))
                    if remote_goals:
                        goals = remote_goals
                    if remote_memories:
                        memories = remote_memories
            except Exception as e:
                logger.warning(f"개인 목표 Firestore 읽기 실패 (user_id: {uid}): {e}")

        return UserJournal(goals=goals, memories=memories)

    async def user_context_text(self, session: SessionContext) -> str:
        journal = await self.resolve_context(session)
        goals_line = '\n'.join(f"- {g}" for g in journal.goals) if journal.goals else 'None'
        memories_line = '\n'.join(f"- {m}" for m in journal.memories) if journal.memories else 'None'
        return f"User Goals:\n{goals_line}\n\nImportant Memories:\n{memories_line}"
