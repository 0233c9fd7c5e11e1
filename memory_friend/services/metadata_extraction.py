"""
Memory metadata extraction: Bedrock classification with a keyword-bucket fallback.
"""

import json
from typing import Any, Dict, List, Optional

from ..models.core import FORM_TYPE_MAPPING, MEMORY_TYPES, MemoryMetadata, map_form_type
from ..utils.bedrock_llm import build_provider_chain
from ..utils.config import AppConfig
from ..utils.json_utils import parse_json_response
from ..utils.logging_config import get_logger
from ..utils.text_generation import ProviderChain, TextGenerationError

logger = get_logger(__name__)

# Checked in this order; the first bucket with a hit decides the type
TYPE_KEYWORD_BUCKETS = (
    ('medication', ('medication', 'medicine', 'pill', 'tablet', 'prescription', 'dose', 'doctor', 'pharmacy')),
    ('person', ('daughter', 'son', 'wife', 'husband', 'grandson', 'granddaughter', 'grandchild', 'sister', 'brother',
                'friend', 'neighbor', 'named')),
    ('event', ('birthday', 'wedding', 'party', 'anniversary', 'holiday', 'visit', 'trip', 'appointment', 'meeting')),
    ('routine', ('every day', 'every morning', 'every night', 'every week', 'daily', 'usually', 'routine')),
    ('preference', ('favorite', 'favourite', 'prefer', 'love', 'like', 'enjoy', 'dislike', 'hate')),
)

TAG_WORDS = ('keys', 'wallet', 'glasses', 'phone', 'medication')

SYSTEM_PROMPT = 'You classify short personal memories written by older adults. You reply with JSON only.'

EXTRACTION_PROMPT = """Analyze this memory and extract structured information.

Memory: "{raw_text}"

Return ONLY valid JSON with this exact format:
{{
  "type": "story|person|event|medication|routine|preference|other",
  "objects": ["physical objects mentioned"],
  "locations": ["places mentioned"],
  "people": ["people mentioned"],
  "tags": ["short lowercase keywords"]
}}"""


class MetadataExtractionService:
    """Classify raw memory text into a type, tags and structured details."""

    def __init__(self, app_config: Optional[AppConfig] = None, generator: Optional[ProviderChain] = None):
        """
        Args:
            app_config: Application configuration (global config if None)
            generator: Provider chain to use instead of building one from config
        """
        if app_config is None:
            from ..utils.config import config as app_config
        self.config = app_config
        self._generator = generator

    @property
    def generator(self) -> ProviderChain:
        if self._generator is None:
            self._generator = build_provider_chain(self.config.bedrock_llm)
        return self._generator

    def extract(self, raw_text: str) -> MemoryMetadata:
        """Extract metadata, never raising.

        Uses the model when an API key is configured, otherwise (or on any model
        failure) the keyword-bucket fallback.
        """
        if not self.config.bedrock_llm.api_key:
            logger.debug('No generative API key configured, using keyword extraction')
            return self.fallback_extract(raw_text)

        try:
            return self._extract_with_model(raw_text)
        except Exception as e:
            logger.warning(f'Metadata extraction fell back to keywords: {e}')
            return self.fallback_extract(raw_text)

    def _extract_with_model(self, raw_text: str) -> MemoryMetadata:
        response = self.generator.generate(EXTRACTION_PROMPT.format(raw_text=raw_text), system_prompt=SYSTEM_PROMPT)
        try:
            data = parse_json_response(response)
        except json.JSONDecodeError as e:
            raise TextGenerationError(f'Model returned invalid JSON: {e}')
        if not isinstance(data, dict):
            raise TextGenerationError(f'Expected JSON object, got {type(data).__name__}')

        memory_type = str(data.get('type') or 'other').strip().lower()
        if memory_type not in MEMORY_TYPES:
            if memory_type not in FORM_TYPE_MAPPING:
                logger.warning(f"Model returned unknown memory type '{memory_type}', using 'other'")
            memory_type = map_form_type(memory_type)

        metadata = MemoryMetadata(type=memory_type,
                                  tags=_string_list(data.get('tags')),
                                  structured={
                                      'objects': _string_list(data.get('objects')),
                                      'locations': _string_list(data.get('locations')),
                                      'people': _string_list(data.get('people')),
                                  })
        logger.debug(f'Extracted metadata with model: type={metadata.type}, {len(metadata.tags)} tags')
        return metadata

    @staticmethod
    def fallback_extract(raw_text: str) -> MemoryMetadata:
        """Keyword-bucket classification; structured is always empty."""
        text = raw_text.lower()

        memory_type = 'other'
        for bucket_type, keywords in TYPE_KEYWORD_BUCKETS:
            if any(keyword in text for keyword in keywords):
                memory_type = bucket_type
                break

        tags = [word for word in TAG_WORDS if word in text]
        return MemoryMetadata(type=memory_type, tags=tags, structured={})


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None and str(item).strip()]


def metadata_to_row(metadata: MemoryMetadata) -> Dict[str, Any]:
    return {'type': metadata.type, 'tags': list(metadata.tags), 'structured_json': dict(metadata.structured)}
