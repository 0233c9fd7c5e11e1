"""Tests for ElderContextService."""

import pytest

from memory_friend.models.core import ElderContext
from memory_friend.services.elder_context import (ElderContextService, LinkLoadError, ProfileLoadError,
                                                  ProfileNotFoundError, UnknownRoleError)
from memory_friend.utils.supabase_client import SupabaseError


@pytest.fixture
def service(supabase) -> ElderContextService:
    return ElderContextService(supabase)


def links(*elder_ids):
    return [{'caregiver_user_id': 'care-1', 'elder_user_id': elder_id} for elder_id in elder_ids]


class TestResolve:

    def test_elder_uses_own_id(self, service, supabase):
        supabase.select_one.return_value = {'user_id': 'elder-1', 'role': 'elder'}
        assert service.resolve('elder-1') == ElderContext(elder_id='elder-1', role='elder')
        supabase.select.assert_not_called()

    def test_caregiver_without_links(self, service, supabase):
        supabase.select_one.return_value = {'user_id': 'care-1', 'role': 'caregiver'}
        supabase.select.return_value = []
        assert service.resolve('care-1') == ElderContext(elder_id=None, role='caregiver')

    def test_caregiver_gets_requested_linked_elder(self, service, supabase):
        supabase.select_one.return_value = {'user_id': 'care-1', 'role': 'caregiver'}
        supabase.select.return_value = links('elder-1', 'elder-2')
        assert service.resolve('care-1', 'elder-2').elder_id == 'elder-2'

    def test_caregiver_unlinked_request_gets_first_link(self, service, supabase):
        supabase.select_one.return_value = {'user_id': 'care-1', 'role': 'caregiver'}
        supabase.select.return_value = links('elder-1', 'elder-2')
        assert service.resolve('care-1', 'elder-9').elder_id == 'elder-1'

    def test_legacy_profile_elder_id_is_ignored(self, service, supabase):
        supabase.select_one.return_value = {'user_id': 'care-1', 'role': 'caregiver', 'elder_id': 'legacy-elder'}
        supabase.select.return_value = []
        assert service.resolve('care-1').elder_id is None

    def test_link_query_filters_by_caregiver(self, service, supabase):
        supabase.select_one.return_value = {'user_id': 'care-1', 'role': 'caregiver'}
        service.resolve('care-1')
        supabase.select.assert_called_once_with('caregiver_elder_links', filters=[('caregiver_user_id', 'eq.care-1')])


class TestResolveErrors:

    def test_missing_profile(self, service, supabase):
        supabase.select_one.return_value = None
        with pytest.raises(ProfileNotFoundError):
            service.resolve('ghost')

    def test_profile_query_failure(self, service, supabase):
        supabase.select_one.side_effect = SupabaseError('boom')
        with pytest.raises(ProfileLoadError):
            service.resolve('care-1')

    def test_link_query_failure(self, service, supabase):
        supabase.select_one.return_value = {'user_id': 'care-1', 'role': 'caregiver'}
        supabase.select.side_effect = SupabaseError('boom')
        with pytest.raises(LinkLoadError) as excinfo:
            service.resolve('care-1')
        assert excinfo.value.role == 'caregiver'

    def test_unknown_role(self, service, supabase):
        supabase.select_one.return_value = {'user_id': 'x', 'role': 'admin'}
        with pytest.raises(UnknownRoleError):
            service.resolve('x')
