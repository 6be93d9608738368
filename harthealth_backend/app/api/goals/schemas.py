# app/api/goals/schemas.py
from typing import Any, List

from marshmallow import Schema, fields, validate, post_load, EXCLUDE

from app.models.user_journal import UserJournal


def normalize_text_list(value: Any) -> List[str]:
    """
    문자열 또는 {"text": ...} 객체가 섞인 목록을 공백 제거된 문자열 목록으로 통일합니다.
    빈 항목과 해석할 수 없는 항목은 버립니다.
    """
    if not isinstance(value, list):
        return []

    out = []
    for item in value:
        if isinstance(item, dict):
            item = item.get('text')
        if isinstance(item, str) and item.strip():
            out.append(item.strip())
    return out


class TextOrWrapperList(fields.Field):
    """['a', {'text': 'b'}] -> ['a', 'b']"""

    def _serialize(self, value, attr, obj, **kwargs):
        return list(value or [])

    def _deserialize(self, value, attr, data, **kwargs):
        return normalize_text_list(value)


class UserJournalSchema(Schema):
    """로컬 캐시 'personalGoals:<uid>' / Firestore 'userJournal/<uid>' 문서"""
    class Meta:
        unknown = EXCLUDE

    goals = TextOrWrapperList(load_default=list)
    memories = TextOrWrapperList(load_default=list)

    @post_load
    def make_journal(self, data, **kwargs) -> UserJournal:
        return UserJournal(**data)


class TextItemCreateSchema(Schema):
    """POST /api/goals/goals, /api/goals/memories 요청 본문"""
    text = fields.Str(required=True, validate=validate.Length(min=1, max=500))
