"""
Question answering over an elder's memories, with keyword fallback.
"""

from typing import List, Optional

from ..models.core import AnswerResult, Memory, Question
from ..utils.bedrock_llm import build_provider_chain
from ..utils.config import AppConfig
from ..utils.logging_config import get_logger
from ..utils.supabase_client import SupabaseClient, SupabaseError, eq
from ..utils.text_generation import ProviderChain, TextGenerationError
from ..utils.timestamp_utils import to_iso, utc_now
from .keyword_matcher import match_memories_by_keyword

logger = get_logger(__name__)

MEMORY_FETCH_LIMIT = 50
PROMPT_MEMORY_LIMIT = 10
MATCHED_MEMORY_COUNT = 3

NO_INFORMATION_ANSWER = ("I don't have any information about that yet. "
                         "Try adding a memory about it, and I'll remember it for next time.")

SYSTEM_PROMPT = """You are Memory Friend, a kind assistant helping an older adult remember things.
Answer only from the memories you are given. If they do not contain the answer, say so gently.
Answer warmly, in plain words, in at most 3 sentences."""

ANSWER_PROMPT = """Here are my memories, newest first:
{memories}

My question: {question}"""


class QuestionAnsweringError(Exception):
    """Custom exception for question answering errors."""
    pass


def format_memories_for_prompt(memories: List[Memory]) -> str:
    lines = []
    for i, memory in enumerate(memories, start=1):
        when = memory.created_at.strftime('%Y-%m-%d') if memory.created_at else 'unknown date'
        lines.append(f'{i}. ({when}, {memory.type}) {memory.raw_text}')
    return '\n'.join(lines)


def keyword_answer(question: str, memories: List[Memory]) -> AnswerResult:
    """Answer by quoting the most recent keyword-matched memory, never calling a model."""
    matches = match_memories_by_keyword(question, memories)
    if not matches:
        return AnswerResult(answer=NO_INFORMATION_ANSWER, matched_memories=[])

    best = matches[0]
    return AnswerResult(answer=f'Here is what I found in your memories: "{best.raw_text}"', matched_memories=[best])


class QuestionAnsweringService:
    """Answer natural-language questions from an elder's recorded memories."""

    def __init__(self,
                 app_config: Optional[AppConfig] = None,
                 supabase: Optional[SupabaseClient] = None,
                 generator: Optional[ProviderChain] = None):
        """Initialize the question answering service."""
        if app_config is None:
            from ..utils.config import config as app_config
        self.config = app_config
        self._supabase = supabase
        self._generator = generator

        logger.info('Initialized QuestionAnsweringService')

    @property
    def supabase(self) -> SupabaseClient:
        if self._supabase is None:
            self._supabase = SupabaseClient(self.config.supabase)
        return self._supabase

    @property
    def generator(self) -> ProviderChain:
        if self._generator is None:
            self._generator = build_provider_chain(self.config.bedrock_llm)
        return self._generator

    def answer(self, question: str, elder_id: str) -> AnswerResult:
        """Answer a question using the elder's most recent memories as context.

        Args:
            question: Free-text question
            elder_id: Elder whose memories ground the answer

        Returns:
            AnswerResult; matched_memories has 3 entries on the model path and 0-1
            on the keyword path

        Raises:
            QuestionAnsweringError: If the memories cannot be loaded
        """
        memories = self._load_memories(elder_id)

        if self.config.bedrock_llm.api_key and memories:
            try:
                return self._answer_with_model(question, memories)
            except TextGenerationError as e:
                logger.warning(f'Model answer failed, falling back to keyword matching: {e}')
            except Exception as e:
                logger.error(f'Unexpected error answering with model, falling back to keyword matching: {e}')
        else:
            logger.debug(f'Keyword answering for elder {elder_id} ({len(memories)} memories, '
                         f'api key: {bool(self.config.bedrock_llm.api_key)})')

        return keyword_answer(question, memories)

    def ask(self, question: str, elder_id: str) -> Question:
        """Answer a question and record it with its answer.

        Raises:
            ValueError: If the question is blank
            QuestionAnsweringError: If memories cannot be loaded or the question cannot be saved
        """
        question = (question or '').strip()
        if not question:
            raise ValueError('Please type a question to ask.')

        result = self.answer(question, elder_id)
        try:
            row = self.supabase.insert('questions', {
                'elder_id': elder_id,
                'question_text': question,
                'answer_text': result.answer,
                'answered_at': to_iso(utc_now()),
            })
        except SupabaseError as e:
            logger.error(f'Failed to save question for elder {elder_id}: {e}')
            raise QuestionAnsweringError(f'Saving question failed: {e}')

        return Question.from_row(row)

    def _load_memories(self, elder_id: str) -> List[Memory]:
        try:
            rows = self.supabase.select('memories',
                                        filters=[('elder_id', eq(elder_id))],
                                        order='created_at.desc',
                                        limit=MEMORY_FETCH_LIMIT)
        except SupabaseError as e:
            logger.error(f'Failed to load memories for elder {elder_id}: {e}')
            raise QuestionAnsweringError(f'Loading memories failed: {e}')
        return [Memory.from_row(row) for row in rows]

    def _answer_with_model(self, question: str, memories: List[Memory]) -> AnswerResult:
        prompt = ANSWER_PROMPT.format(memories=format_memories_for_prompt(memories[:PROMPT_MEMORY_LIMIT]), question=question)
        text = self.generator.generate(prompt, system_prompt=SYSTEM_PROMPT).strip()
        if not text:
            raise TextGenerationError('Model returned an empty answer')
        return AnswerResult(answer=text, matched_memories=memories[:MATCHED_MEMORY_COUNT])
