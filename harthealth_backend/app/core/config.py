# app/core/config.py

import os


class Config:
    """모든 환경 설정의 기반이 되는 공통 설정 클래스입니다."""
    # JWT 토큰 서명 키. Firebase ID Token 검증 후 발급하는 자체 토큰에 사용됩니다.
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')

    # 로컬 캐시(JSON 파일) 저장 위치
    LOCAL_CACHE_DIR = os.getenv('LOCAL_CACHE_DIR', os.path.join(os.getcwd(), '.journal_cache'))

    # AI 피드백 서버 (groq 프록시)
    COACHING_BASE_URL = os.getenv('COACHING_BASE_URL', 'https://hartbackend.onrender.com')
    COACHING_CHAT_PATH = os.getenv('COACHING_CHAT_PATH', '/ai/groq-chat')
    COACHING_MODEL = os.getenv('COACHING_MODEL', 'llama3-70b-8192')
    COACHING_TIMEOUT = float(os.getenv('COACHING_TIMEOUT', '60'))

    # 교차 요약(운동 <-> 식단)에 포함할 최근 기록 범위
    RECENT_SUMMARY_DAYS = int(os.getenv('RECENT_SUMMARY_DAYS', '7'))
    RECENT_SUMMARY_ITEMS = int(os.getenv('RECENT_SUMMARY_ITEMS', '3'))


class DevelopmentConfig(Config):
    """개발 환경을 위한 설정 클래스입니다."""
    DEBUG = True
    FIREBASE_CREDENTIALS_PATH = os.getenv('DEV_FIREBASE_CREDENTIALS_PATH')


class TestingConfig(Config):
    """테스트 환경을 위한 설정 클래스입니다. Firebase는 초기화하지 않고 서비스를 주입받습니다."""
    TESTING = True
    DEBUG = False
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', 'testing-secret-key-with-enough-length')
    FIREBASE_CREDENTIALS_PATH = os.getenv('TEST_FIREBASE_CREDENTIALS_PATH')


config_by_name = dict(
    development=DevelopmentConfig,
    testing=TestingConfig
)
