# app/__init__.py

# =====================================================================================
# 1. 환경 변수 로드 (가장 먼저 실행)
# =====================================================================================
from dotenv import load_dotenv
load_dotenv()

# =====================================================================================
# 2. 모듈 임포트 (Module Imports)
# =====================================================================================
import os
import logging
from typing import Any, Dict, Optional
from flask import Flask, jsonify
from marshmallow import ValidationError
from flask_jwt_extended import JWTManager
import firebase_admin
from firebase_admin import credentials

# - 설정
from app.core.config import config_by_name

# - API 블루프린트
from app.api.auth.routes import auth_bp
from app.api.goals.routes import goals_bp
from app.api.logs.routes import workout_logs_bp, eating_logs_bp

# - 서비스 모듈
from app.services.local_cache_service import LocalCacheService
from app.services.firestore_service import FirestoreService
from app.services.subscription_service import SubscriptionService
from app.services.coaching_service import CoachingService
from app.api.auth.services import auth_service
from app.api.goals.services import GoalsService
from app.api.logs.categories import CATEGORIES, COUNTERPART
from app.api.logs.coaching import CoachingRequestBuilder
from app.api.logs.reconciler import Reconciler
from app.api.logs.services import LogBookService
from app.api.logs.sync_engine import SyncEngine


def build_log_services(
    local_cache,
    firestore_service,
    subscription_service,
    coaching_service,
    goals_service,
    recent_days: int = 7,
    recent_items: int = 3,
) -> Dict[str, LogBookService]:
    """
    운동/식단 일지 서비스 생성.
    두 카테고리는 같은 구현을 공유하며, AI 피드백 요청 시 서로의 최근 기록을 참조합니다.
    """
    engines = {}
    reconcilers = {}
    for name, category in CATEGORIES.items():
        engines[name] = SyncEngine(category, local_cache, firestore_service)
        reconcilers[name] = Reconciler(category, local_cache, firestore_service, engines[name])

    books = {}
    for name, category in CATEGORIES.items():
        builder = CoachingRequestBuilder(
            category,
            goals_service=goals_service,
            counterpart_reconciler=reconcilers[COUNTERPART[name].name],
            recent_days=recent_days,
            recent_items=recent_items,
        )
        books[f'{name}_logs'] = LogBookService(
            category,
            reconciler=reconcilers[name],
            sync_engine=engines[name],
            subscription_service=subscription_service,
            coaching_service=coaching_service,
            request_builder=builder,
        )
    return books


def create_app(
    config_name: Optional[str] = None,
    services: Optional[Dict[str, Any]] = None,
    config: Optional[Dict[str, Any]] = None,
):
    """
    Flask 애플리케이션 팩토리 함수.

    :param config_name: 'development' | 'testing' (기본값: FLASK_ENV)
    :param services: 테스트용 서비스 주입 ('firestore', 'local_cache', 'coaching', 'id_token_verifier')
    :param config: app.config 덮어쓰기 값
    """
    # =====================================================================================
    # 3. Flask 앱 생성 및 기본 설정
    # =====================================================================================
    config_name = config_name or os.getenv('FLASK_ENV', 'development')
    services = services or {}

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    if config:
        app.config.update(config)
    app.json.ensure_ascii = False

    # =====================================================================================
    # 4. 확장 기능 및 외부 서비스 초기화
    # =====================================================================================
    JWTManager(app)

    if not app.config.get('TESTING') and not firebase_admin._apps:
        cred_path = app.config['FIREBASE_CREDENTIALS_PATH']
        if not cred_path or not os.path.exists(cred_path):
            raise FileNotFoundError(f"Firebase 인증 파일을 찾을 수 없습니다: {cred_path}")
        cred = credentials.Certificate(cred_path)
        firebase_admin.initialize_app(cred)

    # =====================================================================================
    # 5. 서비스 인스턴스 생성 및 'app.services'에 저장 (의존성 주입)
    # =====================================================================================
    app.services = {}

    # 5-1. 저장소 및 외부 연동 서비스
    try:
        firestore_instance = services.get('firestore')
        if firestore_instance is None:
            firestore_instance = FirestoreService()
            firestore_instance.init_app(app)
        app.services['firestore'] = firestore_instance

        local_cache_instance = services.get('local_cache') or LocalCacheService()
        local_cache_instance.init_app(app)
        app.services['local_cache'] = local_cache_instance
        logging.info("Storage services initialized successfully")
    except Exception as e:
        logging.error(f"Failed to initialize storage services: {e}")
        raise

    try:
        coaching_instance = services.get('coaching') or CoachingService()
        coaching_instance.init_app(app)
        app.services['coaching'] = coaching_instance
        logging.info("Coaching service initialized successfully")
    except Exception as e:
        logging.error(f"Failed to initialize coaching service: {e}")
        raise

    app.services['subscriptions'] = SubscriptionService(app.services['firestore'])

    # 5-2. 다른 서비스를 주입받아야 하는 도메인 서비스 생성
    app.services['goals'] = GoalsService(app.services['local_cache'], app.services['firestore'])
    app.services.update(build_log_services(
        app.services['local_cache'],
        app.services['firestore'],
        app.services['subscriptions'],
        app.services['coaching'],
        app.services['goals'],
        recent_days=app.config['RECENT_SUMMARY_DAYS'],
        recent_items=app.config['RECENT_SUMMARY_ITEMS'],
    ))

    # - 인증 서비스
    auth_service.init_app(app, verifier=services.get('id_token_verifier'))

    # =====================================================================================
    # 6. 블루프린트 등록
    # =====================================================================================
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(goals_bp, url_prefix='/api/goals')
    app.register_blueprint(workout_logs_bp, url_prefix='/api/workout-logs')
    app.register_blueprint(eating_logs_bp, url_prefix='/api/eating-logs')

    # =====================================================================================
    # 7. 전역 에러 핸들러 설정
    # =====================================================================================
    @app.errorhandler(ValidationError)
    def handle_marshmallow_validation(err):
        response = {"error_code": "VALIDATION_ERROR", "details": err.messages}
        return jsonify(response), 400

    @app.errorhandler(Exception)
    def handle_generic_exception(err):
        logging.error(f"An unhandled exception occurred: {err}", exc_info=True)
        response = {"error_code": "INTERNAL_SERVER_ERROR", "message": "서버 내부에서 예상치 못한 오류가 발생했습니다."}
        return jsonify(response), 500

    # =====================================================================================
    # 8. 로깅 및 앱 반환
    # =====================================================================================
    if not app.debug:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]')

    logging.info(f"Flask app created for '{config_name}' environment.")

    return app
