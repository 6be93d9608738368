#app/api/auth/schemas.py
from marshmallow import Schema, fields


class FirebaseLoginSchema(Schema):
    """Firebase 로그인 토큰 교환 요청의 유효성을 검사하는 스키마"""
    id_token = fields.Str(
        required=True,
        metadata={"description": "Firebase Auth에서 발급받은 ID Token"}
    )


class SubscriptionStatusSchema(Schema):
    """GET /api/auth/me/subscription 응답 스키마"""
    user_id = fields.Str()
    is_subscriber = fields.Bool()
