# app/api/logs/schemas.py
from marshmallow import (
    Schema, fields, validates_schema, ValidationError, post_load, EXCLUDE, INCLUDE
)

from app.models.log_record import CoachingStatus, LogRecord
from app.utils.datetime_utils import DateTimeUtils


class FlexibleDateTime(fields.Field):
    """
    ISO 문자열 / datetime / Firestore timestamp를 모두 받아 UTC datetime으로 읽고,
    쓸 때는 항상 ISO-8601 문자열(Z 접미사)로 내보내는 필드.
    """

    def _serialize(self, value, attr, obj, **kwargs):
        if value is None:
            return None
        return DateTimeUtils.to_iso_string(value)

    def _deserialize(self, value, attr, data, **kwargs):
        try:
            return DateTimeUtils.validate_datetime_field(value, attr or 'date')
        except ValueError as e:
            raise ValidationError(str(e))


def _entry_list_field(data_key: str) -> fields.List:
    return fields.List(
        fields.Dict(keys=fields.Str(), values=fields.Raw(allow_none=True)),
        data_key=data_key,
        load_default=list,
    )


class LogRecordSchema(Schema):
    """
    로컬 캐시, Firestore 문서, API 응답에 공통으로 쓰이는 일지 직렬화 스키마.
    카테고리별 하위 스키마가 entries 필드의 JSON 키(rows / meals)를 정합니다.
    """
    class Meta:
        unknown = EXCLUDE

    id = fields.Str(allow_none=True, load_default=None)
    date = FlexibleDateTime(load_default=DateTimeUtils.now)
    entries = _entry_list_field('entries')
    collapsed = fields.Bool(load_default=False)
    feedback = fields.Str(allow_none=True, load_default='')
    owner_id = fields.Str(data_key='userId', allow_none=True, load_default=None)
    remote_handle = fields.Str(data_key='remoteHandle', allow_none=True, load_default=None)
    coaching_status = fields.Enum(CoachingStatus, by_value=True, data_key='status', dump_only=True)

    @post_load
    def make_record(self, data, **kwargs) -> LogRecord:
        # 예전 버전에서 숫자로 저장된 칼로리 등도 문자열 필드로 통일
        data['entries'] = [
            {str(k): '' if v is None else str(v) for k, v in entry.items()}
            for entry in data.get('entries') or []
        ]
        data['feedback'] = data.get('feedback') or ''
        return LogRecord(**data)


class WorkoutLogSchema(LogRecordSchema):
    """Firestore 'workoutLogs' 문서 / 'workoutLogs:<uid>' 캐시 항목"""
    entries = _entry_list_field('rows')


class EatingLogSchema(LogRecordSchema):
    """Firestore 'eatingLogs' 문서 / 'eatingLogs:<uid>' 캐시 항목"""
    entries = _entry_list_field('meals')


# 저장소별 제외 필드
CACHE_EXCLUDE = ('coaching_status',)
REMOTE_EXCLUDE = ('coaching_status', 'remote_handle')


class LogUpdateSchema(Schema):
    """PATCH /api/<category>-logs/<log_id> 요청 본문"""
    date = FlexibleDateTime()
    collapsed = fields.Bool()

    @validates_schema
    def validate_not_empty(self, data, **kwargs):
        if 'date' not in data and 'collapsed' not in data:
            raise ValidationError("'date' 또는 'collapsed' 중 하나 이상이 필요합니다.")


class EntryCreateSchema(Schema):
    """POST /api/<category>-logs/<log_id>/entries 요청 본문"""
    type = fields.Str(required=True)


class EntryUpdateSchema(Schema):
    """
    PATCH /api/<category>-logs/<log_id>/entries/<index> 요청 본문.
    {필드명: 값} 형태이며 허용 필드는 카테고리 서비스에서 검증합니다.
    """
    class Meta:
        unknown = INCLUDE

    @validates_schema
    def validate_values(self, data, **kwargs):
        if not data:
            raise ValidationError("수정할 필드가 필요합니다.")
        for key, value in data.items():
            if not isinstance(value, str):
                raise ValidationError(f"'{key}' 값은 문자열이어야 합니다.", key)


class FeedbackRequestSchema(Schema):
    """POST /api/<category>-logs/<log_id>/feedback 요청 본문"""
    id_token = fields.Str(allow_none=True, load_default=None)
