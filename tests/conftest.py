"""Shared fixtures and factories for Memory Friend tests."""

import time
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from unittest.mock import Mock

import pytest

from memory_friend.models.core import Memory
from memory_friend.utils.config import AppConfig, AuthConfig, BedrockLLMConfig, MCPConfig, SupabaseConfig
from memory_friend.utils.text_generation import ProviderChain

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_config(api_key: Optional[str] = None,
                model_ids: Optional[List[str]] = None,
                url: str = 'https://project.supabase.co',
                dev_bypass_auth: bool = False) -> AppConfig:
    """Build an AppConfig without touching the environment."""
    return AppConfig(environment='test',
                     log_level='DEBUG',
                     supabase=SupabaseConfig(url=url, key='service-key', anon_key='anon-key', storage_bucket='memory-images'),
                     bedrock_llm=BedrockLLMConfig(region='us-east-1',
                                                  model_ids=model_ids or ['model-a', 'model-b'],
                                                  api_key=api_key,
                                                  max_tokens=256,
                                                  temperature=0.0),
                     auth=AuthConfig(dev_bypass_auth=dev_bypass_auth),
                     mcp=MCPConfig(transport='http', host='127.0.0.1', port=8000),
                     timezone='UTC')


def make_memory(raw_text: str, minutes_ago: int = 0, tags: Optional[List[str]] = None, type: str = 'other',
                id: Optional[str] = None) -> Memory:
    return Memory(id=id or f'mem-{minutes_ago}-{abs(hash(raw_text)) % 1000}',
                  elder_id='elder-1',
                  raw_text=raw_text,
                  type=type,
                  tags=tags or [],
                  created_at=BASE_TIME - timedelta(minutes=minutes_ago))


def memory_row(raw_text: str, minutes_ago: int = 0, tags: Optional[List[str]] = None, type: str = 'other') -> dict:
    """Backend row form of make_memory."""
    return make_memory(raw_text, minutes_ago, tags, type).to_dict()


@pytest.fixture
def config_without_key() -> AppConfig:
    return make_config(api_key=None)


@pytest.fixture
def config_with_key() -> AppConfig:
    return make_config(api_key='bedrock-key')


@pytest.fixture
def supabase() -> Mock:
    """A stand-in SupabaseClient; tests set return values per call."""
    client = Mock()
    client.select.return_value = []
    return client


@pytest.fixture
def generator() -> Mock:
    return Mock(spec=ProviderChain)


@pytest.fixture
def new_york_host(monkeypatch):
    """Run with the host's local timezone set to America/New_York (observes DST)."""
    monkeypatch.setenv('TZ', 'America/New_York')
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()
