# app/core/exceptions.py
"""일지 서비스에서 사용자에게 안내해야 하는 예외들. 라우트에서 HTTP 응답으로 변환됩니다."""


class LoginRequiredError(Exception):
    """로그인 세션 없이 AI 피드백을 요청한 경우 (네트워크 호출 전에 발생)"""


class SubscriptionRequiredError(Exception):
    """구독(HartHealth Pro)이 필요한 경우. 일반 오류와 구분해 업그레이드 안내를 띄웁니다."""


class CoachingServiceError(Exception):
    """AI 피드백 서버 호출 실패 (402 이외의 비정상 응답, 네트워크 오류)"""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class LogNotFoundError(LookupError):
    """현재 목록에 없는 일지 ID"""
