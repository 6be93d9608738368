# app/api/logs/coaching.py
"""
AI 코칭 피드백 요청 메시지 구성

오늘 기록 요약 + 개인 목표/메모 + 상대 카테고리(운동 <-> 식단)의 최근 기록 요약을 묶어
채팅 메시지 목록을 만듭니다.
"""

import logging
from typing import Any, Dict, List

from app.models.log_record import LogRecord
from app.models.session import SessionContext
from app.utils.datetime_utils import DateTimeUtils

from .categories import LogCategory

logger = logging.getLogger(__name__)


WORKOUT_SYSTEM_PROMPT = """You are a precise, encouraging personal coach.
- Use the user's goals/memories as context.
- Analyze whether today's workout moves the user toward those goals.
- Call out concrete physiological benefits (strength, hypertrophy, endurance, VO2max, mobility, etc.).
- If misaligned, explain *why* and give a fix.
- Keep tone supportive and direct. Use short bullets and clear headings."""

WORKOUT_SECTIONS = """Write the response with these sections:

**Benefits You Just Earned**
- 4-8 bullets naming specific adaptations and muscle groups from today's session.

**Alignment With Your Goals**
- State explicitly which goal(s) this session supports (or doesn't) and *why*.

**What To Do Next**
- 3 specific actions for the next session/week (progression for strength; time/distance/pace/HR for cardio; recovery notes).

**Fueling Check (from recent meals)**
- 2-4 bullets connecting recent nutrition to today's training and concrete fixes for next session."""

EATING_SYSTEM_PROMPT = (
    "You are a world-class nutritionist. Be supportive, specific, and realistic. "
    "Use the user's goals/memories for context and keep advice practical."
)

EATING_SECTIONS = """Write the response with these sections:

**What You Ate Today (parsed)**
- Brief bullet list that restates the meals with simple labels and approx calories if provided.

**Alignment With Your Goals**
- Call out which goals this day supports (or not) and *why*.

**Training Fit (from recent workouts)**
- 2-4 bullets linking today's fueling to recent training demands, with concrete fixes for the next session.

**What To Do Next**
- 3 highly specific actions for tomorrow: meal ideas with amounts, fluid targets, simple swaps."""

_PROMPTS = {
    'workout': {
        'system': WORKOUT_SYSTEM_PROMPT,
        'today_heading': "TODAY'S WORKOUT:",
        'recent_heading': 'RECENT EATING (last week, most recent first):',
        'context_heading': 'USER CONTEXT (goals + memories):',
        'sections': WORKOUT_SECTIONS,
        'options': {'temperature': 0.6, 'max_tokens': 700},
    },
    'eating': {
        'system': EATING_SYSTEM_PROMPT,
        'today_heading': "TODAY'S MEALS (user-entered):",
        'recent_heading': 'RECENT WORKOUTS (last week, most recent first):',
        'context_heading': 'USER CONTEXT (goals & memories):',
        'sections': EATING_SECTIONS,
        'options': {},
    },
}


class CoachingRequestBuilder:

    def __init__(
        self,
        category: LogCategory,
        goals_service,
        counterpart_reconciler,
        recent_days: int = 7,
        recent_items: int = 3,
    ):
        self.category = category
        self.goals = goals_service
        self.counterpart = counterpart_reconciler
        self.recent_days = recent_days
        self.recent_items = recent_items
        self.prompt = _PROMPTS[category.name]

    @property
    def request_options(self) -> Dict[str, Any]:
        return dict(self.prompt['options'])

    def format_recent(self, records: List[LogRecord], reference=None) -> str:
        """최근 기록을 최신순으로 정렬해 '1. 3/7: ...' 형식의 요약 줄로 만듭니다."""
        reference = reference or DateTimeUtils.now()
        category = self.counterpart.category

        items = sorted(records, key=lambda r: DateTimeUtils.validate_datetime_field(r.date), reverse=True)
        items = [r for r in items if DateTimeUtils.days_since(r.date, reference) <= self.recent_days]
        items = items[:self.recent_items]

        lines = []
        for i, record in enumerate(items, start=1):
            bits = ' | '.join(category.summarize_recent_entry(e) for e in record.entries[:3])
            lines.append(f"{i}. {DateTimeUtils.to_month_day(record.date)}: {bits or category.empty_recent_text}")
        return '\n'.join(lines)

    async def recent_summary(self, session: SessionContext) -> str:
        """상대 카테고리의 최근 기록 요약 (Firestore 우선, 없으면 로컬 캐시). 실패 시 빈 문자열."""
        if not session.authenticated:
            return ''
        try:
            records = await self.counterpart.read_remote(session)
            if not records:
                records = await self.counterpart.read_local(session)
            return self.format_recent(records)
        except Exception as e:
            logger.warning(f"최근 기록 요약 실패 ({self.counterpart.category.collection}): {e}")
            return ''

    async def build_messages(self, session: SessionContext, record: LogRecord) -> List[Dict[str, str]]:
        summary = self.category.summarize_entries(record.entries)
        user_context = await self.goals.user_context_text(session)
        recent = await self.recent_summary(session)

        parts = [
            f"{self.prompt['context_heading']}\n{user_context}",
            f"{self.prompt['today_heading']}\n{summary}",
        ]
        if recent:
            parts.append(f"{self.prompt['recent_heading']}\n{recent}")
        parts.append(self.prompt['sections'])

        return [
            {'role': 'system', 'content': self.prompt['system']},
            {'role': 'user', 'content': '\n\n'.join(parts)},
        ]
