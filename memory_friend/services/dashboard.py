"""
Dashboard data for elders and caregivers: concurrent loads, timeline filters and grouping.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, TypeVar

from ..models.core import Memory, Question
from ..utils.logging_config import get_logger
from ..utils.timestamp_utils import to_local, utc_now
from .memory_management import MemoryManagementService

logger = get_logger(__name__)

T = TypeVar('T')

RECENT_QUESTION_COUNT = 3


@dataclass
class DashboardData:
    """Everything a dashboard renders for one elder."""
    elder_id: str
    memories: List[Memory] = field(default_factory=list)
    questions: List[Question] = field(default_factory=list)


def filter_memories(memories: Sequence[Memory], type_filter: str = 'all', tag_filter: str = '', search: str = '') -> List[Memory]:
    """Apply the caregiver timeline filters; all of them must pass."""
    needle = search.lower()
    result = []
    for memory in memories:
        if type_filter and type_filter != 'all' and memory.type != type_filter:
            continue
        if tag_filter and tag_filter not in memory.tags:
            continue
        if needle and needle not in memory.raw_text.lower():
            continue
        result.append(memory)
    return result


def collect_tags(memories: Sequence[Memory]) -> List[str]:
    """Unique tags across memories, in first-seen order."""
    seen: Dict[str, None] = {}
    for memory in memories:
        for tag in memory.tags:
            seen.setdefault(tag, None)
    return list(seen)


def group_by_date(memories: Sequence[Memory], tz_name: Optional[str] = None) -> Dict[str, List[Memory]]:
    """Group memories by local calendar day, newest day first.

    Memories without a timestamp are left out.
    """
    groups: Dict[str, List[Memory]] = {}
    for memory in memories:
        if memory.created_at is None:
            continue
        day = to_local(memory.created_at, tz_name).strftime('%Y-%m-%d')
        groups.setdefault(day, []).append(memory)
    return {day: groups[day] for day in sorted(groups, reverse=True)}


def format_time_ago(moment: datetime, now: Optional[datetime] = None) -> str:
    """Describe how long ago something happened, e.g. '5 minutes ago'."""
    now = now or utc_now()
    diff_seconds = (now - moment).total_seconds()
    minutes = int(diff_seconds // 60)
    hours = int(diff_seconds // 3600)
    days = int(diff_seconds // 86400)

    if minutes < 1:
        return 'Just now'
    if minutes < 60:
        return f'{minutes} minute{"" if minutes == 1 else "s"} ago'
    if hours < 24:
        return f'{hours} hour{"" if hours == 1 else "s"} ago'
    return f'{days} day{"" if days == 1 else "s"} ago'


def _load_or_empty(label: str, load: Callable[[], List[T]]) -> List[T]:
    try:
        return load()
    except Exception as e:
        logger.error(f'Dashboard {label} load failed, showing none: {e}')
        return []


class DashboardService:
    """Load an elder's memories and questions side by side."""

    def __init__(self, memory_service: MemoryManagementService):
        self.memory_service = memory_service

    def load(self, elder_id: str) -> DashboardData:
        """Load memories and questions concurrently.

        A failing load yields an empty list for that part only.
        """
        with ThreadPoolExecutor(max_workers=2) as pool:
            memories = pool.submit(_load_or_empty, 'memories', lambda: self.memory_service.list_memories(elder_id, limit=None))
            questions = pool.submit(_load_or_empty, 'questions', lambda: self.memory_service.list_questions(elder_id))
            return DashboardData(elder_id=elder_id, memories=memories.result(), questions=questions.result())

    @staticmethod
    def recent_questions(questions: Sequence[Question], now: Optional[datetime] = None) -> List[dict]:
        """The three newest questions with a relative answered time for the elder home view."""
        recent = []
        for question in list(questions)[:RECENT_QUESTION_COUNT]:
            item = question.to_dict()
            moment = question.answered_at or question.created_at
            item['answered_ago'] = format_time_ago(moment, now) if moment else None
            recent.append(item)
        return recent
