"""
Elder context resolution: which elder a signed-in user is acting for.
"""

from typing import List, Optional

from ..models.core import ROLE_CAREGIVER, ROLE_ELDER, CaregiverElderLink, ElderContext, Profile
from ..utils.logging_config import get_logger
from ..utils.supabase_client import SupabaseClient, SupabaseError, eq

logger = get_logger(__name__)


class ElderContextError(Exception):
    """Base exception for elder context resolution."""
    role: Optional[str] = None


class ProfileLoadError(ElderContextError):
    pass


class ProfileNotFoundError(ElderContextError):
    pass


class LinkLoadError(ElderContextError):
    role = ROLE_CAREGIVER


class UnknownRoleError(ElderContextError):
    pass


class ElderContextService:
    """Resolve elder context from profiles and caregiver_elder_links.

    The links table is authoritative; the legacy profiles.elder_id column is ignored.
    """

    def __init__(self, supabase: SupabaseClient):
        self.supabase = supabase

    def resolve(self, user_id: str, requested_elder_id: Optional[str] = None) -> ElderContext:
        """
        Resolve the elder a user acts for.

        Args:
            user_id: Authenticated user id
            requested_elder_id: Elder a caregiver asked for; honored only if linked

        Returns:
            ElderContext. A caregiver with no links gets ElderContext(None, 'caregiver').

        Raises:
            ProfileLoadError: If the profile query fails
            ProfileNotFoundError: If the user has no profile
            LinkLoadError: If a caregiver's links cannot be loaded
            UnknownRoleError: If the profile role is neither elder nor caregiver
        """
        profile = self.load_profile(user_id)

        if profile.role == ROLE_ELDER:
            return ElderContext(elder_id=user_id, role=ROLE_ELDER)

        if profile.role == ROLE_CAREGIVER:
            links = self.load_links(user_id)
            if not links:
                logger.debug(f'Caregiver {user_id} has no linked elders')
                return ElderContext(elder_id=None, role=ROLE_CAREGIVER)

            if requested_elder_id:
                for link in links:
                    if link.elder_user_id == requested_elder_id:
                        return ElderContext(elder_id=link.elder_user_id, role=ROLE_CAREGIVER)
                logger.warning(f'Caregiver {user_id} requested unlinked elder {requested_elder_id}, using first link')

            return ElderContext(elder_id=links[0].elder_user_id, role=ROLE_CAREGIVER)

        raise UnknownRoleError(f'Unknown role: {profile.role}')

    def load_profile(self, user_id: str) -> Profile:
        try:
            row = self.supabase.select_one('profiles', filters=[('user_id', eq(user_id))])
        except SupabaseError as e:
            logger.error(f'Could not load profile for {user_id}: {e}')
            raise ProfileLoadError(f'Could not load profile: {e}')
        if row is None:
            raise ProfileNotFoundError(f'Profile not found for user {user_id}')
        return Profile.from_row(row)

    def load_links(self, caregiver_id: str) -> List[CaregiverElderLink]:
        try:
            rows = self.supabase.select('caregiver_elder_links', filters=[('caregiver_user_id', eq(caregiver_id))])
        except SupabaseError as e:
            logger.error(f'Could not load caregiver links for {caregiver_id}: {e}')
            raise LinkLoadError(f'Could not load caregiver links: {e}')
        return [CaregiverElderLink.from_row(row) for row in rows]
