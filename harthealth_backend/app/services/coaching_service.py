# app/services/coaching_service.py
import logging
from typing import Any, Dict, List, Optional

import httpx
from flask import Flask

from app.core.exceptions import CoachingServiceError, SubscriptionRequiredError

logger = logging.getLogger(__name__)

NO_FEEDBACK_TEXT = 'No feedback received.'


class CoachingService:
    """
    AI 피드백 서버(groq 채팅 프록시) 연동을 담당하는 서비스 클래스.
    요청마다 httpx.AsyncClient를 새로 열어 요청 단위 이벤트 루프에서도 안전하게 사용합니다.
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = None
        self.chat_path = '/ai/groq-chat'
        self.model = None
        self.timeout = 60.0
        # 테스트에서 httpx.MockTransport를 주입합니다.
        self.transport = transport

    def init_app(self, app: Flask):
        """Flask 앱 설정에서 서버 주소와 모델 정보를 읽어옵니다."""
        base_url = app.config.get('COACHING_BASE_URL')
        if not base_url:
            raise ValueError("COACHING_BASE_URL 설정이 .env 파일에 필요합니다.")

        self.base_url = base_url.rstrip('/')
        self.chat_path = app.config.get('COACHING_CHAT_PATH', self.chat_path)
        self.model = app.config.get('COACHING_MODEL')
        self.timeout = app.config.get('COACHING_TIMEOUT', self.timeout)
        logger.info(f"CoachingService: {self.base_url}{self.chat_path} ({self.model}) 연동 준비 완료")

    def build_payload(self, messages: List[Dict[str, str]], **options: Any) -> Dict[str, Any]:
        payload = {'model': self.model, 'messages': messages}
        payload.update({k: v for k, v in options.items() if v is not None})
        return payload

    async def request_feedback(
        self,
        messages: List[Dict[str, str]],
        id_token: Optional[str] = None,
        **options: Any,
    ) -> str:
        """
        채팅 메시지를 전송하고 생성된 피드백 텍스트를 반환합니다.

        :param messages: [{role, content}, ...]
        :param id_token: Firebase ID Token (있으면 Bearer 헤더로 전달)
        :param options: temperature, max_tokens 등 추가 요청 필드
        :raises SubscriptionRequiredError: HTTP 402
        :raises CoachingServiceError: 그 외 비정상 응답 또는 네트워크 오류
        """
        if not self.base_url:
            raise RuntimeError("CoachingService가 초기화되지 않았습니다. init_app을 먼저 호출해주세요.")

        headers = {'Content-Type': 'application/json'}
        if id_token:
            headers['Authorization'] = f"Bearer {id_token}"

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                response = await client.post(
                    self.chat_path,
                    json=self.build_payload(messages, **options),
                    headers=headers,
                )
        except httpx.HTTPError as e:
            logger.error(f"AI 피드백 서버 호출 실패: {e}", exc_info=True)
            raise CoachingServiceError(f"AI feedback request failed: {e}") from e

        if response.status_code == 402:
            raise SubscriptionRequiredError("Subscription required for AI feedback.")

        if not response.is_success:
            try:
                body = response.json()
            except ValueError:
                body = None
            detail = body.get('detail') if isinstance(body, dict) else None
            message = detail or f"Server error {response.status_code}"
            logger.error(f"AI 피드백 서버 오류 응답: {response.status_code} - {message}")
            raise CoachingServiceError(message, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            raise CoachingServiceError("AI feedback response is not valid JSON.") from e

        return self.extract_feedback(data)

    @staticmethod
    def extract_feedback(data: Any) -> str:
        """choices[0].message.content를 꺼냅니다. 없으면 기본 문구."""
        try:
            content = data['choices'][0]['message']['content']
        except (KeyError, IndexError, TypeError):
            content = None
        return content or NO_FEEDBACK_TEXT
