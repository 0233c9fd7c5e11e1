"""
Core data models for Memory Friend.

Rows live in the managed backend; these dataclasses are per-request copies.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..utils.timestamp_utils import parse_timestamp

MEMORY_TYPES = ('story', 'person', 'event', 'medication', 'routine', 'preference', 'other')

# Types offered by the memory form, mapped onto stored memory types
FORM_TYPE_MAPPING = {
    'object': 'other',
    'event': 'event',
    'reminder': 'routine',
    'other': 'other',
}

ROLE_ELDER = 'elder'
ROLE_CAREGIVER = 'caregiver'
ROLES = (ROLE_ELDER, ROLE_CAREGIVER)


def map_form_type(form_type: Optional[str]) -> str:
    """Map a memory-form type onto a stored memory type (missing or unknown -> other)."""
    if not form_type:
        return 'other'
    return FORM_TYPE_MAPPING.get(form_type, 'other')


@dataclass
class Memory:
    """A single recorded fact, event or reminder belonging to an elder."""
    id: str
    elder_id: str
    raw_text: str
    type: str = 'other'
    tags: List[str] = field(default_factory=list)  # Order as stored, never deduplicated
    structured_json: Dict[str, Any] = field(default_factory=dict)
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Memory':
        return cls(id=str(row.get('id', '')),
                   elder_id=str(row.get('elder_id', '')),
                   raw_text=row.get('raw_text') or '',
                   type=row.get('type') or 'other',
                   tags=list(row.get('tags') or []),
                   structured_json=dict(row.get('structured_json') or {}),
                   image_url=row.get('image_url'),
                   created_at=parse_timestamp(row.get('created_at')))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'elder_id': self.elder_id,
            'raw_text': self.raw_text,
            'type': self.type,
            'tags': list(self.tags),
            'structured_json': dict(self.structured_json),
            'image_url': self.image_url,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class Question:
    """A question asked by an elder; answer_text stays None until answered."""
    id: str
    elder_id: str
    question_text: str
    answer_text: Optional[str] = None
    created_at: Optional[datetime] = None
    answered_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Question':
        return cls(id=str(row.get('id', '')),
                   elder_id=str(row.get('elder_id', '')),
                   question_text=row.get('question_text') or '',
                   answer_text=row.get('answer_text'),
                   created_at=parse_timestamp(row.get('created_at')),
                   answered_at=parse_timestamp(row.get('answered_at')))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'elder_id': self.elder_id,
            'question_text': self.question_text,
            'answer_text': self.answer_text,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'answered_at': self.answered_at.isoformat() if self.answered_at else None,
        }


@dataclass
class Profile:
    """User profile.

    elder_id is the legacy single-elder link kept for caregivers created before the
    caregiver_elder_links table; it is not used to resolve elder context.
    """
    user_id: str
    role: Optional[str]
    full_name: Optional[str] = None
    elder_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Profile':
        return cls(user_id=str(row.get('user_id', '')),
                   role=row.get('role'),
                   full_name=row.get('full_name'),
                   elder_id=row.get('elder_id'))


@dataclass
class CaregiverElderLink:
    """Authorization link granting a caregiver visibility into an elder's data."""
    caregiver_user_id: str
    elder_user_id: str

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'CaregiverElderLink':
        return cls(caregiver_user_id=str(row.get('caregiver_user_id', '')), elder_user_id=str(row.get('elder_user_id', '')))


@dataclass
class DailySummary:
    """Narrative summary of one elder's memories for a local calendar day."""
    elder_id: str
    date: str  # YYYY-MM-DD
    summary_text: str


@dataclass
class MemoryMetadata:
    """Result of classifying a raw memory string."""
    type: str
    tags: List[str]
    structured: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.type, 'tags': list(self.tags), 'structured': dict(self.structured)}


@dataclass
class AnswerResult:
    """Answer to a question plus the memories it was grounded on.

    matched_memories holds three memories on the model path and zero or one on
    the keyword path.
    """
    answer: str
    matched_memories: List[Memory]

    def to_dict(self) -> Dict[str, Any]:
        return {'answer': self.answer, 'matchedMemories': [memory.to_dict() for memory in self.matched_memories]}


@dataclass
class ElderContext:
    """Which elder the current user is acting for, and in what role."""
    elder_id: Optional[str]
    role: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {'elderId': self.elder_id, 'role': self.role}
