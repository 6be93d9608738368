# app/utils/id_utils.py
"""
일지 기록 ID 발급 유틸리티

ID 형식: "<밀리초 타임스탬프>-<7자리 랜덤 접미사>" (예: 1718000000000-3f9a2c1)
"""

import threading
import time
import uuid
from dataclasses import replace
from typing import List, Optional, Sequence, Set, Tuple, TypeVar

T = TypeVar('T')

_SUFFIX_LENGTH = 7
_clock_lock = threading.Lock()
_last_ms = 0


def _monotonic_ms() -> int:
    """프로세스 내에서 감소하지 않는 밀리초 타임스탬프"""
    global _last_ms
    with _clock_lock:
        current = int(time.time() * 1000)
        if current < _last_ms:
            current = _last_ms
        _last_ms = current
        return current


def allocate() -> str:
    """새 기록 ID를 발급합니다."""
    return f"{_monotonic_ms()}-{uuid.uuid4().hex[:_SUFFIX_LENGTH]}"


def ensure_unique(records: Sequence[T]) -> Tuple[List[T], bool]:
    """
    ID가 없는 기록에는 새 ID를, 앞에서 이미 등장한 ID를 가진 기록에는 재발급된 ID를 부여합니다.

    같은 목록에 다시 실행해도 더 이상 바뀌는 것이 없습니다.

    :param records: `id` 필드를 가진 dataclass 기록 목록
    :return: (보정된 새 목록, 변경 여부)
    """
    seen: Set[str] = set()
    changed = False
    out: List[T] = []

    for record in records:
        record_id: Optional[str] = getattr(record, 'id', None)
        if not record_id:
            record_id = allocate()
            changed = True
        while record_id in seen:
            record_id = allocate()
            changed = True
        seen.add(record_id)

        if record_id != getattr(record, 'id', None):
            record = replace(record, id=record_id)
        out.append(record)

    return out, changed
