# app/services/subscription_service.py
import logging
from typing import Callable, Optional

from app.models.session import Entitlement, SessionContext

logger = logging.getLogger(__name__)

USERS_COLLECTION = 'users'


class SubscriptionService:
    """
    'users/{uid}.isSubscriber' 플래그로 구독 여부를 판단합니다.
    조회 실패나 문서 부재는 모두 미구독(False)으로 취급합니다.
    """

    def __init__(self, firestore_service):
        self.firestore = firestore_service

    async def fetch_is_subscriber(self, user_id: Optional[str]) -> bool:
        """1회성 구독 여부 조회"""
        if not user_id:
            return False
        try:
            data = await self.firestore.get_document(USERS_COLLECTION, user_id)
        except Exception as e:
            logger.warning(f"구독 상태 조회 실패 (user_id: {user_id}): {e}")
            return False
        return bool((data or {}).get('isSubscriber'))

    async def entitlement_for(self, session: SessionContext) -> Entitlement:
        if not session.authenticated:
            return Entitlement(authenticated=False, subscribed=False)
        subscribed = await self.fetch_is_subscriber(session.user_id)
        return Entitlement(authenticated=True, subscribed=subscribed)

    def watch(self, user_id: str, callback: Callable[[bool], None]) -> Callable[[], None]:
        """
        구독 상태 변경을 실시간으로 전달합니다.
        스냅샷 오류가 나면 False를 전달합니다.

        :return: 구독 해제 함수
        """
        return self.firestore.watch_document(
            USERS_COLLECTION,
            user_id,
            on_change=lambda data: callback(bool((data or {}).get('isSubscriber'))),
            on_error=lambda e: callback(False),
        )
