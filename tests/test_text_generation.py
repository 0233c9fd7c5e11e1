"""Tests for the provider chain."""

from typing import List, Optional

import pytest

from memory_friend.utils.text_generation import (ModelNotFoundError, ProviderChain, TextGenerationError,
                                                 TextGenerationProvider)


class FakeProvider(TextGenerationProvider):
    """Provider that returns a fixed reply or raises a fixed error."""

    def __init__(self, name: str, reply: str = '', error: Optional[Exception] = None):
        self.name = name
        self.reply = reply
        self.error = error
        self.prompts: List[str] = []

    def generate(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.reply


class TestProviderChain:

    def test_first_provider_answers(self):
        first, second = FakeProvider('a', reply='one'), FakeProvider('b', reply='two')
        assert ProviderChain([first, second]).generate('hi') == 'one'
        assert second.prompts == []

    def test_advances_on_model_not_found(self):
        first = FakeProvider('a', error=ModelNotFoundError('missing'))
        second = FakeProvider('b', reply='two')
        assert ProviderChain([first, second]).generate('hi') == 'two'
        assert first.prompts == ['hi']

    def test_other_errors_abort_the_chain(self):
        first = FakeProvider('a', error=TextGenerationError('quota exceeded'))
        second = FakeProvider('b', reply='two')
        with pytest.raises(TextGenerationError, match='quota'):
            ProviderChain([first, second]).generate('hi')
        assert second.prompts == []

    def test_all_models_missing(self):
        chain = ProviderChain([FakeProvider('a', error=ModelNotFoundError('x')), FakeProvider('b', error=ModelNotFoundError('y'))])
        with pytest.raises(ModelNotFoundError):
            chain.generate('hi')

    def test_empty_chain(self):
        with pytest.raises(TextGenerationError):
            ProviderChain([]).generate('hi')
