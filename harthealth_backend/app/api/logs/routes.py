# app/api/logs/routes.py
import logging
from typing import Optional

from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from app.core.exceptions import (
    CoachingServiceError,
    LoginRequiredError,
    LogNotFoundError,
    SubscriptionRequiredError,
)
from app.models.session import SessionContext

from .categories import EATING, WORKOUT, LogCategory
from .schemas import (
    EntryCreateSchema,
    EntryUpdateSchema,
    FeedbackRequestSchema,
    LogUpdateSchema,
)


def _session(id_token: Optional[str] = None) -> SessionContext:
    """JWT identity가 없으면 비로그인(로컬 전용) 세션입니다."""
    return SessionContext(user_id=get_jwt_identity(), id_token=id_token)


def _error(error_code: str, message: str, status: int):
    return jsonify({"error_code": error_code, "message": message}), status


def _login_required_error():
    """
    비로그인 세션의 'local' 목록은 한 기기 전용이라 HTTP로는 조회만 허용합니다.
    여러 비로그인 클라이언트가 같은 목록을 수정하지 못하도록 편집 요청은 거부합니다.
    """
    return _error("LOGIN_REQUIRED", "로그인 후 일지를 편집할 수 있습니다.", 401)


def create_logs_blueprint(category: LogCategory) -> Blueprint:
    """
    카테고리별 일지 API 블루프린트를 만듭니다.
    운동(/api/workout-logs)과 식단(/api/eating-logs)은 같은 엔드포인트 구성을 공유합니다.
    """
    bp = Blueprint(f'{category.name}_logs_bp', __name__)
    service_key = f'{category.name}_logs'

    def _service():
        return current_app.services[service_key]

    def _dump(records):
        return category.schema_class(many=True).dump(records)

    def _dump_one(record):
        return category.schema_class().dump(record)

    @bp.route('', methods=['GET'])
    @jwt_required(optional=True)
    async def list_logs():
        """세션 시작: 로컬 캐시와 Firestore를 조정한 기준 목록을 반환합니다."""
        try:
            records = await _service().load(_session())
            return jsonify(_dump(records)), 200
        except Exception as e:
            logging.error(f"{category.collection} 조회 API 오류: {e}", exc_info=True)
            return _error("FETCH_FAILED", "일지 조회 중 오류가 발생했습니다.", 500)

    @bp.route('', methods=['POST'])
    @jwt_required(optional=True)
    async def create_log():
        """빈 일지를 추가합니다."""
        if not get_jwt_identity():
            return _login_required_error()
        try:
            record = await _service().add_log(_session())
            return jsonify(_dump_one(record)), 201
        except Exception as e:
            logging.error(f"{category.collection} 생성 API 오류: {e}", exc_info=True)
            return _error("LOG_CREATION_FAILED", "일지 생성 중 오류가 발생했습니다.", 500)

    @bp.route('/<string:log_id>', methods=['PATCH'])
    @jwt_required(optional=True)
    async def update_log(log_id: str):
        """날짜 변경 및 접기/펼치기"""
        if not get_jwt_identity():
            return _login_required_error()
        service = _service()
        session = _session()
        try:
            data = LogUpdateSchema().load(request.get_json() or {})
            record = None
            if 'date' in data:
                record = await service.update_date(session, log_id, data['date'])
            if 'collapsed' in data:
                record = await service.set_collapsed(session, log_id, data['collapsed'])
            return jsonify(_dump_one(record)), 200
        except ValidationError as err:
            return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
        except LogNotFoundError as e:
            return _error("LOG_NOT_FOUND", str(e), 404)
        except Exception as e:
            logging.error(f"{category.collection} 수정 API 오류 (log_id: {log_id}): {e}", exc_info=True)
            return _error("LOG_UPDATE_FAILED", "일지 수정 중 오류가 발생했습니다.", 500)

    @bp.route('/<string:log_id>', methods=['DELETE'])
    @jwt_required(optional=True)
    async def delete_log(log_id: str):
        if not get_jwt_identity():
            return _login_required_error()
        try:
            records = await _service().delete_log(_session(), log_id)
            return jsonify(_dump(records)), 200
        except LogNotFoundError as e:
            return _error("LOG_NOT_FOUND", str(e), 404)
        except Exception as e:
            logging.error(f"{category.collection} 삭제 API 오류 (log_id: {log_id}): {e}", exc_info=True)
            return _error("LOG_DELETE_FAILED", "일지 삭제 중 오류가 발생했습니다.", 500)

    @bp.route('/<string:log_id>/entries', methods=['POST'])
    @jwt_required(optional=True)
    async def add_entry(log_id: str):
        if not get_jwt_identity():
            return _login_required_error()
        try:
            data = EntryCreateSchema().load(request.get_json() or {})
            record = await _service().add_entry(_session(), log_id, data['type'])
            return jsonify(_dump_one(record)), 201
        except ValidationError as err:
            return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
        except LogNotFoundError as e:
            return _error("LOG_NOT_FOUND", str(e), 404)
        except ValueError as e:
            return _error("INVALID_ENTRY_TYPE", str(e), 400)
        except Exception as e:
            logging.error(f"{category.collection} 항목 추가 API 오류 (log_id: {log_id}): {e}", exc_info=True)
            return _error("ENTRY_CREATION_FAILED", "항목 추가 중 오류가 발생했습니다.", 500)

    @bp.route('/<string:log_id>/entries/<int:index>', methods=['PATCH'])
    @jwt_required(optional=True)
    async def update_entry(log_id: str, index: int):
        if not get_jwt_identity():
            return _login_required_error()
        try:
            changes = EntryUpdateSchema().load(request.get_json() or {})
            record = await _service().update_entry(_session(), log_id, index, changes)
            return jsonify(_dump_one(record)), 200
        except ValidationError as err:
            return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
        except (LogNotFoundError, IndexError) as e:
            return _error("ENTRY_NOT_FOUND", str(e), 404)
        except ValueError as e:
            return _error("INVALID_ENTRY_FIELD", str(e), 400)
        except Exception as e:
            logging.error(f"{category.collection} 항목 수정 API 오류 (log_id: {log_id}, index: {index}): {e}", exc_info=True)
            return _error("ENTRY_UPDATE_FAILED", "항목 수정 중 오류가 발생했습니다.", 500)

    @bp.route('/<string:log_id>/entries/<int:index>', methods=['DELETE'])
    @jwt_required(optional=True)
    async def remove_entry(log_id: str, index: int):
        if not get_jwt_identity():
            return _login_required_error()
        try:
            record = await _service().remove_entry(_session(), log_id, index)
            return jsonify(_dump_one(record)), 200
        except (LogNotFoundError, IndexError) as e:
            return _error("ENTRY_NOT_FOUND", str(e), 404)
        except Exception as e:
            logging.error(f"{category.collection} 항목 삭제 API 오류 (log_id: {log_id}, index: {index}): {e}", exc_info=True)
            return _error("ENTRY_DELETE_FAILED", "항목 삭제 중 오류가 발생했습니다.", 500)

    @bp.route('/<string:log_id>/feedback', methods=['POST'])
    @jwt_required(optional=True)
    async def submit_feedback(log_id: str):
        """
        AI 코칭 피드백 요청.

        - 401 LOGIN_REQUIRED: 로그인 필요
        - 402 SUBSCRIPTION_REQUIRED: 구독 필요 (업그레이드 안내)
        - 409 FEEDBACK_SKIPPED: 같은 일지의 요청이 진행 중이거나 항목이 없음
        - 502 FEEDBACK_FAILED: AI 서버 오류
        """
        if not get_jwt_identity():
            return _login_required_error()
        try:
            data = FeedbackRequestSchema().load(request.get_json(silent=True) or {})
            record = await _service().submit_feedback(_session(data['id_token']), log_id)
            if record is None:
                return _error("FEEDBACK_SKIPPED", "이미 요청 중이거나 피드백을 요청할 항목이 없습니다.", 409)
            return jsonify(_dump_one(record)), 200
        except ValidationError as err:
            return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
        except LogNotFoundError as e:
            return _error("LOG_NOT_FOUND", str(e), 404)
        except LoginRequiredError:
            return _error("LOGIN_REQUIRED", "로그인 후 AI 피드백을 받을 수 있습니다.", 401)
        except SubscriptionRequiredError:
            return _error("SUBSCRIPTION_REQUIRED", "HartHealth Pro 구독 후 AI 피드백을 받을 수 있습니다.", 402)
        except CoachingServiceError as e:
            logging.warning(f"{category.collection} AI 피드백 실패 (log_id: {log_id}): {e}")
            return _error("FEEDBACK_FAILED", "AI 피드백을 받지 못했습니다.", 502)

    return bp


workout_logs_bp = create_logs_blueprint(WORKOUT)
eating_logs_bp = create_logs_blueprint(EATING)
