# app/models/session.py
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SessionContext:
    """
    요청 단위로 전달되는 로그인 세션 정보.
    전역 '현재 사용자' 대신 모든 일지 서비스 호출에 명시적으로 넘깁니다.
    """
    user_id: Optional[str] = None
    id_token: Optional[str] = None  # AI 피드백 서버 Bearer 인증용 Firebase ID Token

    @property
    def authenticated(self) -> bool:
        return bool(self.user_id)

    @property
    def cache_owner(self) -> str:
        """로컬 캐시 키에 사용하는 소유자 이름 (비로그인: 'local')"""
        return self.user_id or 'local'


@dataclass(frozen=True)
class Entitlement:
    """로그인 + 구독 상태. 클라우드 동기화와 AI 피드백 요청의 조건입니다."""
    authenticated: bool = False
    subscribed: bool = False

    @property
    def can_sync(self) -> bool:
        return self.authenticated and self.subscribed
