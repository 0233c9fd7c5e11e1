"""
Keyword matching over memories, used when the model is unavailable.
"""

import re
from typing import List, Sequence

from ..models.core import Memory

_PUNCTUATION = re.compile(r'[?.,!]')
MIN_KEYWORD_LENGTH = 4


def extract_keywords(question: str) -> List[str]:
    """Lowercase the question, drop ? . , ! and keep words longer than three characters."""
    words = _PUNCTUATION.sub('', question.lower()).split()
    return [word for word in words if len(word) >= MIN_KEYWORD_LENGTH]


def memory_matches(memory: Memory, keywords: Sequence[str]) -> bool:
    text = memory.raw_text.lower()
    tags = [tag.lower() for tag in memory.tags]
    return any(keyword in text or any(keyword in tag for tag in tags) for keyword in keywords)


def match_memories_by_keyword(question: str, memories: Sequence[Memory]) -> List[Memory]:
    """Filter memories whose text or tags contain any question keyword.

    This is a filter, not a ranking: input order is preserved, so callers passing
    memories newest first get the most recent match first.
    """
    keywords = extract_keywords(question)
    if not keywords:
        return []
    return [memory for memory in memories if memory_matches(memory, keywords)]
