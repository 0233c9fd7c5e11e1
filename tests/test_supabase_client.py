"""Tests for SupabaseClient request building and error mapping."""

from unittest.mock import Mock

import pytest
import requests

from conftest import make_config

from memory_friend.utils.config import SupabaseConfig
from memory_friend.utils.supabase_client import (AuthenticationError, SupabaseClient, SupabaseError,
                                                 extract_access_token)


def make_response(status_code: int = 200, body=None, text: str = '') -> Mock:
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.content = b'x' if body is not None or text else b''
    response.text = text
    if body is None:
        response.json.side_effect = ValueError('no json')
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def session() -> Mock:
    session = Mock()
    session.headers = {}
    return session


@pytest.fixture
def client(session) -> SupabaseClient:
    return SupabaseClient(make_config().supabase, session=session)


class TestConstruction:

    def test_server_client_uses_service_key(self, session):
        SupabaseClient(make_config().supabase, session=session)
        assert session.headers['apikey'] == 'service-key'
        assert session.headers['Authorization'] == 'Bearer service-key'

    def test_user_client_uses_anon_key_and_token(self, session):
        SupabaseClient(make_config().supabase, access_token='jwt', session=session)
        assert session.headers['apikey'] == 'anon-key'
        assert session.headers['Authorization'] == 'Bearer jwt'

    def test_missing_configuration(self):
        with pytest.raises(SupabaseError):
            SupabaseClient(SupabaseConfig(url='', key='', anon_key='', storage_bucket='b'))


class TestQueries:

    def test_select_builds_postgrest_params(self, client, session):
        session.request.return_value = make_response(body=[{'id': '1'}])

        rows = client.select('memories',
                             filters=[('elder_id', 'eq.e1'), ('created_at', 'gte.a'), ('created_at', 'lte.b')],
                             order='created_at.desc',
                             limit=50)

        assert rows == [{'id': '1'}]
        session.request.assert_called_once_with('GET',
                                                'https://project.supabase.co/rest/v1/memories',
                                                params=[('select', '*'), ('elder_id', 'eq.e1'), ('created_at', 'gte.a'),
                                                        ('created_at', 'lte.b'), ('order', 'created_at.desc'),
                                                        ('limit', '50')])

    def test_select_one_returns_none_when_empty(self, client, session):
        session.request.return_value = make_response(body=[])
        assert client.select_one('profiles', [('user_id', 'eq.u1')]) is None

    def test_insert_returns_stored_row(self, client, session):
        session.request.return_value = make_response(status_code=201, body=[{'id': 'm1', 'tags': ['health']}])
        row = client.insert('memories', {'tags': ['health']})
        assert row == {'id': 'm1', 'tags': ['health']}
        assert session.request.call_args.kwargs['headers'] == {'Prefer': 'return=representation'}

    def test_error_message_from_backend(self, client, session):
        session.request.return_value = make_response(status_code=400, body={'message': 'No elder with that email'})
        with pytest.raises(SupabaseError, match='No elder with that email') as excinfo:
            client.rpc('link_caregiver_to_elder_by_email', {'caregiver_uid': 'c1', 'elder_email': 'a@b.c'})
        assert excinfo.value.status_code == 400

    def test_network_error(self, client, session):
        session.request.side_effect = requests.ConnectionError('refused')
        with pytest.raises(SupabaseError):
            client.select('memories')

    def test_public_url(self, client):
        assert client.public_url('memory-images', 'e1/x.png') == \
            'https://project.supabase.co/storage/v1/object/public/memory-images/e1/x.png'


class TestGetUser:

    def test_returns_user(self, session):
        session.request.return_value = make_response(body={'id': 'u1', 'email': 'a@b.c'})
        client = SupabaseClient(make_config().supabase, access_token='jwt', session=session)
        assert client.get_user()['id'] == 'u1'
        assert session.request.call_args[0] == ('GET', 'https://project.supabase.co/auth/v1/user')

    def test_rejected_token(self, session):
        session.request.return_value = make_response(status_code=401, body={'msg': 'invalid JWT'})
        client = SupabaseClient(make_config().supabase, access_token='bad', session=session)
        with pytest.raises(AuthenticationError):
            client.get_user()

    def test_server_client_has_no_user(self, client):
        with pytest.raises(AuthenticationError):
            client.get_user()


def test_extract_access_token_prefers_current_cookie():
    assert extract_access_token({'sb-access-token': 'new', 'supabase-auth-token': 'old'}) == 'new'
    assert extract_access_token({'supabase-auth-token': 'old'}) == 'old'
    assert extract_access_token({}) is None
