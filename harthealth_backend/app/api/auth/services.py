# app/api/auth/services.py
import logging
from typing import Any, Dict, Optional

from firebase_admin import auth as firebase_auth
from flask import Flask


class AuthService:
    """Firebase ID Token 검증을 담당합니다. 검증된 uid가 일지 서비스의 사용자 ID가 됩니다."""

    def __init__(self):
        self.app: Optional[Flask] = None
        self.verifier = firebase_auth.verify_id_token

    def init_app(self, app: Flask, verifier=None):
        """앱 초기화 과정에서 호출됩니다. 테스트에서는 verifier를 주입합니다."""
        self.app = app
        if verifier is not None:
            self.verifier = verifier

    def verify_id_token(self, id_token: str) -> Dict[str, Any]:
        """
        Firebase ID Token을 검증하고 디코딩된 클레임을 반환합니다.

        :raises ValueError: 토큰이 유효하지 않거나 uid가 없는 경우
        """
        try:
            claims = self.verifier(id_token)
        except Exception as e:
            logging.warning(f"Firebase ID Token 검증 실패: {e}")
            raise ValueError("유효하지 않은 Firebase ID Token입니다.") from e

        if not claims or not claims.get('uid'):
            raise ValueError("Firebase ID Token에 uid가 없습니다.")
        return claims


auth_service = AuthService()
