# app/utils/datetime_utils.py
"""
일지(운동/식단) 기록에서 사용하는 시간/날짜 처리 유틸리티 모듈

이 모듈의 목적:
1. 로컬 캐시와 Firestore 모두 ISO-8601 문자열로 날짜를 저장
2. 읽을 때는 timezone-aware datetime(UTC)으로 복원
3. 최근 기록 요약을 위한 경과일 계산 통일
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional
from dateutil import parser as dateutil_parser

logger = logging.getLogger(__name__)


class DateTimeUtils:
    """시간/날짜 처리를 위한 중앙화된 유틸리티 클래스"""

    @staticmethod
    def now() -> datetime:
        """현재 시간을 UTC timezone-aware datetime으로 반환"""
        return datetime.now(timezone.utc)

    @staticmethod
    def parse_iso_datetime(iso_string: str) -> datetime:
        """
        ISO 포맷 문자열을 datetime 객체로 파싱

        지원 포맷:
        - 2024-01-15T10:30:00Z
        - 2024-01-15T10:30:00.123Z  (JS Date.toISOString 결과)
        - 2024-01-15T10:30:00+09:00
        - 2024-01-15T10:30:00
        """
        try:
            if not iso_string:
                raise ValueError("빈 문자열은 파싱할 수 없습니다")

            if iso_string.endswith('Z'):
                iso_string = iso_string[:-1] + '+00:00'

            dt = dateutil_parser.isoparse(iso_string)

            # timezone-naive인 경우 UTC로 가정
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)

            return dt.astimezone(timezone.utc)

        except Exception as e:
            logger.error(f"ISO datetime 파싱 실패: {iso_string} - {e}")
            raise ValueError(f"잘못된 ISO 날짜 형식입니다: {iso_string}")

    @staticmethod
    def to_iso_string(dt: datetime) -> str:
        """datetime 객체를 ISO 포맷 문자열(Z 접미사)로 변환"""
        try:
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            else:
                dt = dt.astimezone(timezone.utc)

            return dt.isoformat().replace('+00:00', 'Z')

        except Exception as e:
            logger.error(f"ISO 문자열 변환 실패: {dt} - {e}")
            raise ValueError(f"datetime 객체를 ISO 문자열로 변환할 수 없습니다: {dt}")

    @staticmethod
    def validate_datetime_field(value: Any, field_name: str = "date") -> datetime:
        """
        저장소(로컬 캐시/Firestore) 또는 API 요청에서 받은 날짜 값을 검증하고 변환

        Args:
            value: ISO 문자열, datetime 객체, Firestore timestamp 중 하나
            field_name: 필드명 (오류 메시지용)

        Returns:
            UTC timezone-aware datetime 객체

        Raises:
            ValueError: 잘못된 형식이거나 파싱할 수 없는 경우
        """
        if value is None:
            raise ValueError(f"{field_name}은 필수 필드입니다")

        if isinstance(value, str):
            return DateTimeUtils.parse_iso_datetime(value)

        if isinstance(value, datetime):
            if value.tzinfo is None:
                return value.replace(tzinfo=timezone.utc)
            return value.astimezone(timezone.utc)

        # Firestore timestamp (DatetimeWithNanoseconds 이외의 구버전 Timestamp 포함)
        if hasattr(value, 'timestamp'):
            try:
                return datetime.fromtimestamp(value.timestamp(), tz=timezone.utc)
            except Exception as e:
                logger.error(f"{field_name} timestamp 변환 실패: {value} - {e}")

        raise ValueError(f"잘못된 {field_name} 형식입니다: {value}")

    @staticmethod
    def days_since(dt: datetime, reference: Optional[datetime] = None) -> float:
        """reference(기본값: 현재) 기준으로 dt 이후 경과한 일 수 (소수 포함)"""
        reference = reference or DateTimeUtils.now()
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return (reference - dt).total_seconds() / 86400

    @staticmethod
    def to_month_day(dt: datetime) -> str:
        """요약 문구용 M/D 표기 (예: 3/7)"""
        return f"{dt.month}/{dt.day}"


# 편의를 위한 글로벌 함수들
def now() -> datetime:
    """현재 UTC 시간 반환"""
    return DateTimeUtils.now()

def parse_iso(iso_string: str) -> datetime:
    """ISO 문자열을 datetime으로 파싱"""
    return DateTimeUtils.parse_iso_datetime(iso_string)

def to_iso(dt: datetime) -> str:
    """datetime을 ISO 문자열로 변환"""
    return DateTimeUtils.to_iso_string(dt)

def validate_datetime(value: Any, field_name: str = "date") -> datetime:
    """datetime 필드 검증"""
    return DateTimeUtils.validate_datetime_field(value, field_name)
