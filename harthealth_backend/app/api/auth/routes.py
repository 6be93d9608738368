# app/api/auth/routes.py

import logging
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    jwt_required,
    get_jwt_identity,
)
from marshmallow import ValidationError

from app.api.auth.schemas import FirebaseLoginSchema, SubscriptionStatusSchema
from app.models.session import SessionContext
from .services import auth_service

auth_bp = Blueprint('auth_bp', __name__)


@auth_bp.route('/firebase', methods=['POST'])
def firebase_login():
    """Firebase ID Token을 검증하고 서비스 전용 Access/Refresh 토큰을 발급합니다."""
    try:
        validated_data = FirebaseLoginSchema().load(request.get_json() or {})
        claims = auth_service.verify_id_token(validated_data['id_token'])

        identity = claims['uid']
        access_token = create_access_token(identity=identity)
        refresh_token = create_refresh_token(identity=identity)

        return jsonify({
            "access_token": access_token,
            "refresh_token": refresh_token,
            "user_id": identity,
            "email": claims.get('email'),
        }), 200
    except ValidationError as e:
        return jsonify({"error_code": "VALIDATION_ERROR", "details": e.messages}), 400
    except ValueError as e:
        return jsonify({"error_code": "INVALID_ID_TOKEN", "message": str(e)}), 401
    except Exception as e:
        logging.error(f"Firebase 로그인 중 예외 발생: {e}", exc_info=True)
        return jsonify({"error_code": "INTERNAL_SERVER_ERROR", "message": "서버 내부 오류가 발생했습니다."}), 500


# --- 토큰 재발급 엔드포인트 ---
@auth_bp.route('/token/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh_token():
    """유효한 Refresh Token으로 새로운 Access Token을 발급합니다."""
    current_user_id = get_jwt_identity()
    new_access_token = create_access_token(identity=current_user_id)
    return jsonify(access_token=new_access_token), 200


# --- 로그아웃 ---
@auth_bp.route('/logout', methods=['POST'])
@jwt_required()
def logout():
    """메모리에 보관한 사용자의 일지 목록과 목표/메모를 정리합니다. 로컬 캐시와 Firestore는 유지됩니다."""
    session = SessionContext(user_id=get_jwt_identity())
    for key in ('workout_logs', 'eating_logs', 'goals'):
        current_app.services[key].forget(session)
    return jsonify({"message": "로그아웃되었습니다."}), 200


# --- 구독 상태 조회 ---
@auth_bp.route('/me/subscription', methods=['GET'])
@jwt_required()
async def subscription_status():
    """'users/{uid}.isSubscriber' 값을 1회 조회합니다."""
    user_id = get_jwt_identity()
    is_subscriber = await current_app.services['subscriptions'].fetch_is_subscriber(user_id)
    return jsonify(SubscriptionStatusSchema().dump({
        "user_id": user_id,
        "is_subscriber": is_subscriber,
    })), 200
