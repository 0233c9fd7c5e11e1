"""
Text generation providers and the ordered fallback chain over them.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from .logging_config import get_logger

logger = get_logger(__name__)


class TextGenerationError(Exception):
    """Base exception for text generation failures."""
    pass


class ModelNotFoundError(TextGenerationError):
    """Raised when a provider's model does not exist or is not enabled."""
    pass


class TextGenerationProvider(ABC):
    """A capability that turns a prompt into text."""

    name: str = 'provider'

    @abstractmethod
    def generate(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """Generate text for the prompt.

        Raises:
            ModelNotFoundError: If the underlying model is unavailable
            TextGenerationError: For any other failure (quota, network, bad response)
        """


class ProviderChain:
    """Try providers in order, moving on only when a model is not found.

    Any other failure aborts the whole chain so callers can fall back straight away.
    """

    def __init__(self, providers: Sequence[TextGenerationProvider]):
        self.providers: List[TextGenerationProvider] = list(providers)

    def __len__(self) -> int:
        return len(self.providers)

    def generate(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """Generate text with the first provider whose model exists.

        Raises:
            ModelNotFoundError: If every provider reported its model missing
            TextGenerationError: On the first non model-not-found failure
        """
        if not self.providers:
            raise TextGenerationError('No text generation providers configured')

        for provider in self.providers:
            try:
                text = provider.generate(prompt, system_prompt)
                logger.debug(f'Text generated by {provider.name}')
                return text
            except ModelNotFoundError as e:
                logger.warning(f'Model {provider.name} not found, trying next: {e}')
                continue

        raise ModelNotFoundError(f'None of the {len(self.providers)} configured models are available')
