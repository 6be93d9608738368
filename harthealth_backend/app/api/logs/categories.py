# app/api/logs/categories.py
"""
일지 카테고리(운동/식단) 정의

두 카테고리는 동일한 조정/동기화 로직을 공유하고, 기록 모양과 요약 문구만 다릅니다.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple, Type

from .schemas import EatingLogSchema, LogRecordSchema, WorkoutLogSchema

Entry = Dict[str, str]


@dataclass(frozen=True)
class LogCategory:
    name: str                       # 'workout' | 'eating'
    collection: str                 # Firestore 컬렉션 이름이자 로컬 캐시 키 접두사
    entry_types: Tuple[str, ...]
    entry_fields: Tuple[str, ...]   # 'type' 포함, 모두 문자열 필드
    schema_class: Type[LogRecordSchema]
    summarize_entry: Callable[[int, Entry], str]
    summarize_recent_entry: Callable[[Entry], str]
    empty_recent_text: str

    def cache_key(self, owner: str) -> str:
        return f"{self.collection}:{owner}"

    def new_entry(self, entry_type: str) -> Entry:
        if entry_type not in self.entry_types:
            raise ValueError(
                f"유효하지 않은 항목 타입입니다: {entry_type} (가능한 타입: {', '.join(self.entry_types)})"
            )
        entry = {name: '' for name in self.entry_fields}
        entry['type'] = entry_type
        return entry

    def editable_fields(self) -> Tuple[str, ...]:
        return tuple(name for name in self.entry_fields if name != 'type')

    def summarize_entries(self, entries: List[Entry]) -> str:
        """AI 피드백 요청에 넣을 오늘 기록 요약"""
        return '\n'.join(self.summarize_entry(i + 1, entry) for i, entry in enumerate(entries))


# --- 운동 ---

_WORKOUT_FIELDS = ('type', 'exercise', 'sets', 'reps', 'weight', 'duration', 'distance', 'pace', 'notes')


def _summarize_workout_row(index: int, row: Entry) -> str:
    details = ', '.join(
        f"{key}={row[key]}"
        for key in _WORKOUT_FIELDS
        if key not in ('type', 'exercise', 'notes') and str(row.get(key) or '').strip()
    )
    line = f"{index}. [{row.get('type', '')}] {row.get('exercise') or 'N/A'}"
    if details:
        line += f" — {details}"
    if row.get('notes'):
        line += f" | notes: {row['notes']}"
    return line


def _summarize_recent_workout_row(row: Entry) -> str:
    base = row.get('exercise') or row.get('type') or 'exercise'

    if row.get('sets') or row.get('reps') or row.get('weight'):
        parts = [
            f"{row['sets']} sets" if row.get('sets') else '',
            f"{row['reps']} reps" if row.get('reps') else '',
            f"{row['weight']} wt" if row.get('weight') else '',
        ]
    elif row.get('duration') or row.get('distance') or row.get('pace'):
        parts = [
            f"{row['duration']} min" if row.get('duration') else '',
            f"{row['distance']} mi" if row.get('distance') else '',
            f"{row['pace']} pace" if row.get('pace') else '',
        ]
    else:
        return base

    joined = ' • '.join(p for p in parts if p)
    return f"{base} — {joined}" if joined else base


# --- 식단 ---

def _summarize_meal(index: int, meal: Entry) -> str:
    notes = f"({meal['notes']})" if meal.get('notes') else ''
    return f"{index}. [{meal.get('type', '')}] {meal.get('name') or 'N/A'} — {meal.get('calories', '')} cal {notes}".rstrip()


def _summarize_recent_meal(meal: Entry) -> str:
    name = meal.get('name') or meal.get('type') or 'meal'
    calories = f"{meal['calories']} cal" if meal.get('calories') else ''
    return ' — '.join(p for p in (name, calories) if p)


WORKOUT = LogCategory(
    name='workout',
    collection='workoutLogs',
    entry_types=('Strength', 'Cardio', 'Fitness'),
    entry_fields=_WORKOUT_FIELDS,
    schema_class=WorkoutLogSchema,
    summarize_entry=_summarize_workout_row,
    summarize_recent_entry=_summarize_recent_workout_row,
    empty_recent_text='no details',
)

EATING = LogCategory(
    name='eating',
    collection='eatingLogs',
    entry_types=('Breakfast', 'Lunch', 'Dinner', 'Snack'),
    entry_fields=('type', 'name', 'calories', 'notes'),
    schema_class=EatingLogSchema,
    summarize_entry=_summarize_meal,
    summarize_recent_entry=_summarize_recent_meal,
    empty_recent_text='no meals logged',
)

CATEGORIES = {c.name: c for c in (WORKOUT, EATING)}

# AI 피드백 요청 시 교차 요약을 가져올 상대 카테고리
COUNTERPART = {'workout': EATING, 'eating': WORKOUT}
