# app/api/goals/routes.py
import logging

from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import jwt_required, get_jwt_identity
from marshmallow import ValidationError

from app.models.session import SessionContext

from .schemas import TextItemCreateSchema, UserJournalSchema

goals_bp = Blueprint('goals_bp', __name__)


def _session() -> SessionContext:
    return SessionContext(user_id=get_jwt_identity())


@goals_bp.route('', methods=['GET'])
@jwt_required()
async def get_journal():
    """개인 목표와 메모를 조회합니다."""
    service = current_app.services['goals']
    try:
        journal = await service.load(_session())
        return jsonify(UserJournalSchema().dump(journal)), 200
    except Exception as e:
        logging.error(f"개인 목표 조회 API 오류: {e}", exc_info=True)
        return jsonify({"error_code": "FETCH_FAILED", "message": "개인 목표 조회 중 오류가 발생했습니다."}), 500


@goals_bp.route('/<string:kind>', methods=['POST'])
@jwt_required()
async def add_item(kind: str):
    """kind: goals | memories"""
    service = current_app.services['goals']
    if kind not in ('goals', 'memories'):
        return jsonify({"error_code": "INVALID_KIND", "message": "goals 또는 memories만 가능합니다."}), 404

    try:
        data = TextItemCreateSchema().load(request.get_json() or {})
        if kind == 'goals':
            journal = await service.add_goal(_session(), data['text'])
        else:
            journal = await service.add_memory(_session(), data['text'])
        return jsonify(UserJournalSchema().dump(journal)), 201
    except ValidationError as err:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": err.messages}), 400
    except Exception as e:
        logging.error(f"개인 목표 추가 API 오류 ({kind}): {e}", exc_info=True)
        return jsonify({"error_code": "CREATE_FAILED", "message": "추가 중 오류가 발생했습니다."}), 500


@goals_bp.route('/<string:kind>/<int:index>', methods=['DELETE'])
@jwt_required()
async def remove_item(kind: str, index: int):
    service = current_app.services['goals']
    if kind not in ('goals', 'memories'):
        return jsonify({"error_code": "INVALID_KIND", "message": "goals 또는 memories만 가능합니다."}), 404

    try:
        if kind == 'goals':
            journal = await service.remove_goal(_session(), index)
        else:
            journal = await service.remove_memory(_session(), index)
        return jsonify(UserJournalSchema().dump(journal)), 200
    except IndexError as e:
        return jsonify({"error_code": "ITEM_NOT_FOUND", "message": str(e)}), 404
    except Exception as e:
        logging.error(f"개인 목표 삭제 API 오류 ({kind}, index: {index}): {e}", exc_info=True)
        return jsonify({"error_code": "DELETE_FAILED", "message": "삭제 중 오류가 발생했습니다."}), 500
