"""
Supabase REST client wrapper for tables, stored procedures, auth and storage.
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from .config import SupabaseConfig
from .logging_config import get_logger

logger = get_logger(__name__)

# Cookie names carrying the end-user access token, preferred first
ACCESS_TOKEN_COOKIES = ('sb-access-token', 'supabase-auth-token')

Filter = Tuple[str, str]


class SupabaseError(Exception):
    """Custom exception for backend errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(SupabaseError):
    """Raised when an access token cannot be resolved to a user."""
    pass


def eq(value: Any) -> str:
    return f'eq.{value}'


class SupabaseClient:
    """Supabase client speaking PostgREST, GoTrue and Storage over HTTP.

    With an access_token the client acts as that user (row-level security applies);
    without one it uses the configured server key.
    """

    def __init__(self, config: SupabaseConfig, access_token: Optional[str] = None, session: Optional[requests.Session] = None):
        """
        Initialize Supabase client.

        Args:
            config: SupabaseConfig instance with connection parameters
            access_token: End-user JWT to act as, or None for the server key
            session: Optional requests session (one is created if None)

        Raises:
            SupabaseError: If the backend URL or key is missing
        """
        if not config.url or not (config.anon_key if access_token else config.key):
            raise SupabaseError('Supabase is not configured')

        self.config = config
        self.access_token = access_token
        self.session = session or requests.Session()

        api_key = config.anon_key if access_token else config.key
        self.session.headers.update({
            'apikey': api_key,
            'Authorization': f'Bearer {access_token or api_key}',
        })

        logger.debug(f'Initialized Supabase client for {config.url} (user token: {bool(access_token)})')

    def _url(self, path: str) -> str:
        return f'{self.config.url}{path}'

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        try:
            response = self.session.request(method, self._url(path), **kwargs)
        except requests.RequestException as e:
            logger.error(f'Supabase request {method} {path} failed: {e}')
            raise SupabaseError(f'Supabase request failed: {e}')

        if not response.ok:
            message = self._error_message(response)
            logger.warning(f'Supabase {method} {path} returned {response.status_code}: {message}')
            raise SupabaseError(message, status_code=response.status_code)
        return response

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f'HTTP {response.status_code}'
        if isinstance(body, dict):
            for key in ('message', 'msg', 'error_description', 'error'):
                if body.get(key):
                    return str(body[key])
        return str(body)

    @staticmethod
    def _json(response: requests.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise SupabaseError(f'Invalid JSON from Supabase: {e}')

    def select(self,
               table: str,
               filters: Sequence[Filter] = (),
               order: Optional[str] = None,
               limit: Optional[int] = None,
               columns: str = '*') -> List[Dict[str, Any]]:
        """
        Select rows from a table.

        Args:
            table: Table name
            filters: (column, operator expression) pairs, e.g. ('elder_id', 'eq.123');
                a column may repeat to combine range filters
            order: PostgREST order expression, e.g. 'created_at.desc'
            limit: Maximum number of rows
            columns: Columns to select

        Returns:
            List of row dictionaries

        Raises:
            SupabaseError: If the query fails
        """
        params: List[Tuple[str, str]] = [('select', columns)]
        params.extend(filters)
        if order:
            params.append(('order', order))
        if limit is not None:
            params.append(('limit', str(limit)))

        rows = self._json(self._request('GET', f'/rest/v1/{table}', params=params))
        return rows or []

    def select_one(self, table: str, filters: Sequence[Filter] = ()) -> Optional[Dict[str, Any]]:
        """Select at most one row; returns None when nothing matches."""
        rows = self.select(table, filters, limit=1)
        return rows[0] if rows else None

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a row and return it as stored."""
        response = self._request('POST', f'/rest/v1/{table}', json=row, headers={'Prefer': 'return=representation'})
        rows = self._json(response) or []
        if not rows:
            raise SupabaseError(f'Insert into {table} returned no row')
        return rows[0]

    def upsert(self, table: str, row: Dict[str, Any], on_conflict: str) -> Dict[str, Any]:
        """Insert or update a row keyed on the on_conflict columns."""
        response = self._request('POST',
                                 f'/rest/v1/{table}',
                                 json=row,
                                 params={'on_conflict': on_conflict},
                                 headers={'Prefer': 'resolution=merge-duplicates,return=representation'})
        rows = self._json(response) or []
        return rows[0] if rows else row

    def rpc(self, function: str, params: Dict[str, Any]) -> Any:
        """Call a stored procedure."""
        return self._json(self._request('POST', f'/rest/v1/rpc/{function}', json=params))

    def get_user(self) -> Dict[str, Any]:
        """
        Resolve the client's access token to a user.

        Returns:
            GoTrue user dictionary (contains at least 'id')

        Raises:
            AuthenticationError: If there is no token or the backend rejects it
        """
        if not self.access_token:
            raise AuthenticationError('No access token')
        try:
            user = self._json(self._request('GET', '/auth/v1/user'))
        except SupabaseError as e:
            raise AuthenticationError(f'Could not resolve user: {e}', status_code=e.status_code)
        if not isinstance(user, dict) or not user.get('id'):
            raise AuthenticationError('Could not resolve user')
        return user

    def upload_object(self, bucket: str, path: str, content: bytes, content_type: str) -> str:
        """Upload bytes to a storage bucket; returns the object path."""
        self._request('POST',
                      f'/storage/v1/object/{bucket}/{path}',
                      data=content,
                      headers={
                          'Content-Type': content_type,
                          'x-upsert': 'false'
                      })
        logger.debug(f'Uploaded {len(content)} bytes to {bucket}/{path}')
        return path

    def public_url(self, bucket: str, path: str) -> str:
        return self._url(f'/storage/v1/object/public/{bucket}/{path}')

    def health_check(self) -> bool:
        """
        Perform a health check against the REST endpoint.

        Returns:
            True if the backend answers, False otherwise
        """
        try:
            self._request('GET', '/rest/v1/')
            return True
        except SupabaseError as e:
            logger.error(f'Supabase health check failed: {e}')
            return False


def extract_access_token(cookies: Dict[str, str]) -> Optional[str]:
    """Return the session access token from request cookies, or None."""
    for name in ACCESS_TOKEN_COOKIES:
        value = cookies.get(name)
        if value:
            return value
    return None
