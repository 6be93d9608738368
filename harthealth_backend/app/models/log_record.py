# app/models/log_record.py
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from app.utils.datetime_utils import DateTimeUtils


class CoachingStatus(str, Enum):
    """기록별 AI 피드백 요청 상태. 저장소에는 기록되지 않습니다."""
    IDLE = 'idle'
    PENDING = 'pending'


@dataclass
class LogRecord:
    """
    운동/식단 일지 한 건.
    로컬 캐시 '<category>Logs:<uid>' 배열 원소이자 Firestore '<category>Logs' 컬렉션 문서 구조.
    """
    id: Optional[str]
    date: datetime = field(default_factory=DateTimeUtils.now)
    entries: List[Dict[str, str]] = field(default_factory=list)  # 운동 rows / 식단 meals
    collapsed: bool = False  # UI 전용 표시 플래그
    feedback: str = ''
    owner_id: Optional[str] = None  # Firestore 'userId'
    remote_handle: Optional[str] = None  # Firestore 문서 ID, 최초 동기화 이후 고정
    coaching_status: CoachingStatus = CoachingStatus.IDLE

    @property
    def is_pending(self) -> bool:
        return self.coaching_status is CoachingStatus.PENDING

    def composed_handle(self, owner_id: str) -> str:
        """remote_handle이 없을 때 사용하는 결정적 문서 ID"""
        return f"{owner_id}_{self.id}"
