"""Tests for JSON, timestamp, configuration and logging helpers."""

import json
import logging
from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_config

from memory_friend.utils import config as config_module
from memory_friend.utils.json_utils import clean_json_response, parse_json_response
from memory_friend.utils.logging_config import get_logger, setup_logging
from memory_friend.utils.timestamp_utils import day_bounds, parse_timestamp, to_iso


class TestCleanJsonResponse:

    @pytest.mark.parametrize('raw', [
        '{"a": 1}',
        '```json\n{"a": 1}\n```',
        '```\n{"a": 1}\n```',
        '  ```JSON\n{"a": 1}```  ',
        '```json{"a": 1}```',
    ])
    def test_fences_removed(self, raw):
        assert json.loads(clean_json_response(raw)) == {'a': 1}

    def test_invalid_json_raises(self):
        with pytest.raises(json.JSONDecodeError):
            parse_json_response('```json\nnot json\n```')


class TestDayBounds:

    def test_utc_bounds(self):
        start, end = day_bounds('2024-05-01', 'UTC')
        assert to_iso(start) == '2024-05-01T00:00:00.000+00:00'
        assert to_iso(end) == '2024-05-01T23:59:59.999+00:00'

    def test_named_timezone_offset(self):
        start, _ = day_bounds('2024-01-15', 'America/New_York')
        assert to_iso(start) == '2024-01-15T00:00:00.000-05:00'

    def test_host_local_winter_day(self, new_york_host):
        start, end = day_bounds('2026-01-15')
        assert start.utcoffset() == timedelta(hours=-5)
        assert to_iso(start) == '2026-01-15T00:00:00.000-05:00'
        assert to_iso(end) == '2026-01-15T23:59:59.999-05:00'

    def test_host_local_summer_day(self, new_york_host):
        start, _ = day_bounds('2026-07-15')
        assert start.utcoffset() == timedelta(hours=-4)

    def test_host_local_dst_change_day(self, new_york_host):
        # Clocks go forward at 02:00 on 2026-03-08
        start, end = day_bounds('2026-03-08')
        assert start.utcoffset() == timedelta(hours=-5)
        assert end.utcoffset() == timedelta(hours=-4)

    def test_rejects_other_formats(self):
        with pytest.raises(ValueError):
            day_bounds('2024/05/01', 'UTC')


class TestParseTimestamp:

    def test_zulu_suffix(self):
        assert parse_timestamp('2024-05-01T10:00:00Z') == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)

    def test_naive_is_utc(self):
        assert parse_timestamp('2024-05-01T10:00:00').tzinfo == timezone.utc

    def test_empty(self):
        assert parse_timestamp(None) is None


class TestLoadConfig:

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv('SUPABASE_URL', 'https://x.supabase.co/')
        monkeypatch.setenv('SUPABASE_ANON_KEY', 'anon')
        monkeypatch.delenv('SUPABASE_SERVICE_ROLE_KEY', raising=False)
        monkeypatch.setenv('BEDROCK_LLM_MODEL_IDS', 'one, two ,,three')
        monkeypatch.setenv('BEDROCK_API_KEY', 'secret')
        monkeypatch.setenv('DEV_BYPASS_AUTH', 'true')

        loaded = config_module.load_config()

        assert loaded.supabase.url == 'https://x.supabase.co'
        assert loaded.supabase.key == 'anon'
        assert loaded.supabase.is_configured
        assert loaded.bedrock_llm.model_ids == ['one', 'two', 'three']
        assert loaded.bedrock_llm.api_key == 'secret'
        assert loaded.auth.dev_bypass_auth is True

    def test_missing_api_key_disables_generation(self, monkeypatch):
        monkeypatch.delenv('BEDROCK_API_KEY', raising=False)
        assert config_module.load_config().bedrock_llm.api_key is None


class TestLogging:

    def test_module_loggers_nest_under_app_logger(self):
        assert get_logger('memory_friend.services.dashboard').name == 'memory_friend.services.dashboard'
        assert get_logger('scratch').name == 'memory_friend.scratch'

    def test_setup_logging_quiets_libraries(self):
        setup_logging(make_config())
        assert logging.getLogger('memory_friend').level == logging.DEBUG
        assert logging.getLogger('botocore').level == logging.WARNING
