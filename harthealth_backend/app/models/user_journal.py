# app/models/user_journal.py
from dataclasses import dataclass, field
from typing import List


@dataclass
class UserJournal:
    """
    Firestore 'userJournal/{uid}' 문서 구조 (개인 목표 + 기억해둘 메모).
    """
    goals: List[str] = field(default_factory=list)
    memories: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.goals and not self.memories
