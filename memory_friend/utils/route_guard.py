"""
Session guard for page routes.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import RedirectResponse

from .config import AuthConfig
from .logging_config import get_logger
from .supabase_client import extract_access_token

logger = get_logger(__name__)

PUBLIC_ROUTES = ('/auth', '/api', '/health', '/mcp')
PROTECTED_ROUTES = ('/elder', '/caregiver')


def is_public(path: str) -> bool:
    if path == '/':
        return True
    return any(path == route or path.startswith(route + '/') for route in PUBLIC_ROUTES)


def is_protected(path: str) -> bool:
    return any(path.startswith(route) for route in PROTECTED_ROUTES)


class SessionGuardMiddleware(BaseHTTPMiddleware):
    """Redirect unauthenticated requests for elder and caregiver pages to '/'.

    API routes are public here and check the session themselves.
    """

    def __init__(self, app, auth_config: AuthConfig):
        super().__init__(app)
        self.auth_config = auth_config

    async def dispatch(self, request, call_next):
        path = request.url.path
        if is_public(path) or self.auth_config.dev_bypass_auth:
            return await call_next(request)

        if is_protected(path) and not extract_access_token(request.cookies):
            logger.debug(f'Redirecting unauthenticated request for {path}')
            return RedirectResponse(url='/', status_code=307)

        return await call_next(request)
