"""
Daily summary generation from one day's memories.
"""

from typing import List, Optional

from ..models.core import DailySummary, Memory
from ..utils.bedrock_llm import build_provider_chain
from ..utils.config import AppConfig
from ..utils.logging_config import get_logger
from ..utils.supabase_client import SupabaseClient, SupabaseError, eq
from ..utils.text_generation import ProviderChain, TextGenerationError
from ..utils.timestamp_utils import day_bounds, to_iso

logger = get_logger(__name__)

NO_MEMORIES_SUMMARY = 'No memories recorded for today.'

SYSTEM_PROMPT = ('You write short, warm daily summaries for an older adult and their caregivers. '
                 'Write 3 to 5 sentences in plain words, using only the memories given.')

SUMMARY_PROMPT = """Summarize the day {date} from these memories, newest first:
{memories}"""


class DailySummaryError(Exception):
    """Custom exception for daily summary errors."""
    pass


def literal_summary(memories: List[Memory]) -> str:
    """Number each memory's text, one line per memory, in the given order."""
    return '\n'.join(f'{i}. {" ".join(memory.raw_text.split())}' for i, memory in enumerate(memories, start=1))


class DailySummaryService:
    """Summarize an elder's memories for a local calendar day."""

    def __init__(self,
                 app_config: Optional[AppConfig] = None,
                 supabase: Optional[SupabaseClient] = None,
                 generator: Optional[ProviderChain] = None):
        if app_config is None:
            from ..utils.config import config as app_config
        self.config = app_config
        self._supabase = supabase
        self._generator = generator

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

    def summarize(self, elder_id: str, date: str) -> str:
        """Summarize the memories recorded on a day.

        Args:
            elder_id: Elder whose memories are summarized
            date: Local calendar day, YYYY-MM-DD

        Returns:
            Model narrative, the numbered literal fallback, or NO_MEMORIES_SUMMARY

        Raises:
            ValueError: If date is not a valid YYYY-MM-DD day
            DailySummaryError: If the day's memories cannot be loaded
        """
        memories = self.load_day(elder_id, date)
        if not memories:
            return NO_MEMORIES_SUMMARY

        if self.config.bedrock_llm.api_key:
            try:
                prompt = SUMMARY_PROMPT.format(date=date, memories=literal_summary(memories))
                text = self.generator.generate(prompt, system_prompt=SYSTEM_PROMPT).strip()
                if text:
                    return text
                logger.warning('Model returned an empty summary, using literal summary')
            except TextGenerationError as e:
                logger.warning(f'Summary generation failed, using literal summary: {e}')
            except Exception as e:
                logger.error(f'Unexpected error generating summary, using literal summary: {e}')

        return literal_summary(memories)

    def load_day(self, elder_id: str, date: str) -> List[Memory]:
        start, end = day_bounds(date, self.config.timezone)
        try:
            rows = self.supabase.select('memories',
                                        filters=[('elder_id', eq(elder_id)), ('created_at', f'gte.{to_iso(start)}'),
                                                 ('created_at', f'lte.{to_iso(end)}')],
                                        order='created_at.desc')
        except SupabaseError as e:
            logger.error(f'Failed to load memories for elder {elder_id} on {date}: {e}')
            raise DailySummaryError(f'Loading memories failed: {e}')

        logger.debug(f'Loaded {len(rows)} memories for elder {elder_id} on {date}')
        return [Memory.from_row(row) for row in rows]

    def save(self, elder_id: str, date: str, summary_text: str) -> DailySummary:
        """Store a summary, replacing any earlier one for the same elder and day."""
        try:
            self.supabase.upsert('daily_summaries', {
                'elder_id': elder_id,
                'date': date,
                'summary_text': summary_text
            },
                                 on_conflict='elder_id,date')
        except SupabaseError as e:
            logger.error(f'Failed to save daily summary for elder {elder_id} on {date}: {e}')
            raise DailySummaryError(f'Saving summary failed: {e}')
        return DailySummary(elder_id=elder_id, date=date, summary_text=summary_text)
