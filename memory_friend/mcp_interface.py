"""
MCP Interface Layer using fastmcp: memory tools plus the app's HTTP routes.
"""
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple, Union

import uvicorn
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse

from .models.core import FORM_TYPE_MAPPING, MEMORY_TYPES, ROLE_CAREGIVER, ElderContext, map_form_type
from .services.daily_summary import DailySummaryError, DailySummaryService
from .services.dashboard import DashboardService, collect_tags, filter_memories, group_by_date
from .services.elder_context import (ElderContextService, LinkLoadError, ProfileLoadError, ProfileNotFoundError,
                                     UnknownRoleError)
from .services.keyword_matcher import match_memories_by_keyword
from .services.memory_management import ImageValidationError, MemoryManagementError, MemoryManagementService
from .services.metadata_extraction import MetadataExtractionService
from .services.question_answering import QuestionAnsweringError, QuestionAnsweringService
from .utils.config import AppConfig, config
from .utils.health_check import check_health, get_health_status, get_system_info
from .utils.logging_config import get_logger
from .utils.route_guard import SessionGuardMiddleware
from .utils.supabase_client import AuthenticationError, SupabaseClient, extract_access_token

logger = get_logger(__name__)

# Initialize FastMCP application
mcp = FastMCP('Memory Friend')


@lru_cache(maxsize=None)
def get_memory_service() -> MemoryManagementService:
    return MemoryManagementService(config)


@lru_cache(maxsize=None)
def get_question_service() -> QuestionAnsweringService:
    return QuestionAnsweringService(config)


@lru_cache(maxsize=None)
def get_summary_service() -> DailySummaryService:
    return DailySummaryService(config)


@lru_cache(maxsize=None)
def get_extraction_service() -> MetadataExtractionService:
    return MetadataExtractionService(config)


def user_client(access_token: str) -> SupabaseClient:
    """Backend client acting as the signed-in user."""
    return SupabaseClient(config.supabase, access_token=access_token)


# ---------------------------------------------------------------- MCP tools


@mcp.tool()
def answer_question(question: str, elder_id: str) -> Dict[str, Any]:
    """Answer a question from an elder's memories.

    Args:
        question: Natural language question
        elder_id: Elder whose memories are searched

    Returns:
        Dict with 'answer' and 'matchedMemories'
    """
    if not question or not question.strip():
        raise ToolError('Question is required')
    try:
        return get_question_service().answer(question, elder_id).to_dict()
    except QuestionAnsweringError as e:
        logger.error(f'Question answering error in MCP tool: {e}')
        raise ToolError(f'Answering failed: {e}')


@mcp.tool()
def ask_question(question: str, elder_id: str) -> Dict[str, Any]:
    """Answer a question and save it to the elder's question history."""
    try:
        return get_question_service().ask(question, elder_id).to_dict()
    except ValueError as e:
        raise ToolError(str(e))
    except QuestionAnsweringError as e:
        logger.error(f'Question answering error in MCP tool: {e}')
        raise ToolError(f'Asking failed: {e}')


@mcp.tool()
def extract_memory_metadata(raw_text: str) -> Dict[str, Any]:
    """Classify memory text into a type, tags and structured details."""
    return get_extraction_service().extract(raw_text).to_dict()


@mcp.tool()
def generate_daily_summary(elder_id: str, date: str, save: bool = False) -> str:
    """Summarize an elder's memories for a day.

    Args:
        elder_id: Elder whose memories are summarized
        date: Local calendar day, YYYY-MM-DD
        save: Also store the summary in daily_summaries
    """
    service = get_summary_service()
    try:
        summary = service.summarize(elder_id, date)
        if save:
            service.save(elder_id, date, summary)
        return summary
    except ValueError:
        raise ToolError(f'Invalid date {date!r}, expected YYYY-MM-DD')
    except DailySummaryError as e:
        logger.error(f'Daily summary error in MCP tool: {e}')
        raise ToolError(f'Summary failed: {e}')


@mcp.tool()
def create_memory(elder_id: str,
                  raw_text: str,
                  type: Optional[str] = None,
                  tags: Optional[List[str]] = None,
                  image_url: Optional[str] = None,
                  extract: bool = False) -> Dict[str, Any]:
    """Record a memory for an elder.

    Args:
        elder_id: Owning elder
        raw_text: What to remember (at most 5000 characters)
        type: Memory type; memory-form types (object, reminder) are mapped to stored types,
            anything else is rejected
        tags: Tags to store as given
        image_url: URL of an uploaded image
        extract: Classify the text when no type is given
    """
    if type is not None and type not in MEMORY_TYPES and type not in FORM_TYPE_MAPPING:
        raise ToolError(f'Unknown memory type: {type}')
    memory_type = type if type is None or type in MEMORY_TYPES else map_form_type(type)
    try:
        memory = get_memory_service().create_memory(elder_id,
                                                    raw_text,
                                                    type=memory_type,
                                                    tags=tags,
                                                    image_url=image_url,
                                                    extract=extract)
        return memory.to_dict()
    except MemoryManagementError as e:
        logger.error(f'Memory creation error in MCP tool: {e}')
        raise ToolError(str(e))


@mcp.tool()
def list_memories(elder_id: str, type: Optional[str] = None, tag: Optional[str] = None, limit: int = 50) -> List[Dict[str, Any]]:
    """List an elder's memories, newest first, optionally filtered by type or tag."""
    try:
        memories = get_memory_service().list_memories(elder_id, type=type, tag=tag, limit=limit)
    except MemoryManagementError as e:
        logger.error(f'Memory listing error in MCP tool: {e}')
        raise ToolError(str(e))
    logger.debug(f'MCP list returned {len(memories)} memories for elder {elder_id}')
    return [memory.to_dict() for memory in memories]


@mcp.tool()
def match_memories(question: str, elder_id: str) -> List[Tuple[str, str]]:
    """Keyword-match a question against an elder's 50 most recent memories.

    Returns:
        List of tuples (memory_id, raw_text), newest first
    """
    try:
        memories = get_memory_service().list_memories(elder_id)
    except MemoryManagementError as e:
        raise ToolError(str(e))
    return [(memory.id, memory.raw_text) for memory in match_memories_by_keyword(question, memories)]


@mcp.tool()
def system_info() -> Dict[str, Any]:
    """Service configuration summary and component health."""
    return get_system_info(config)


# -------------------------------------------------------------- HTTP routes


def _context_error(message: str, status_code: int, role: Optional[str] = None) -> JSONResponse:
    return JSONResponse({'elderId': None, 'role': role, 'error': message}, status_code=status_code)


async def _authenticate(request: Request, error) -> Union[Tuple[SupabaseClient, Dict[str, Any]], JSONResponse]:
    """Resolve the session cookie to (client, user), or an error response built with `error`."""
    token = extract_access_token(request.cookies)
    if not token:
        return error('Not authenticated', 401)
    if not config.supabase.is_configured:
        return error('Backend not configured', 500)

    supabase = user_client(token)
    try:
        user = await run_in_threadpool(supabase.get_user)
    except AuthenticationError as e:
        logger.warning(f'Session token rejected: {e}')
        return error('Could not resolve user', 401)
    return supabase, user


async def _resolve_context(request: Request) -> Union[Tuple[SupabaseClient, ElderContext], JSONResponse]:
    auth = await _authenticate(request, _context_error)
    if isinstance(auth, JSONResponse):
        return auth
    supabase, user = auth

    requested_elder_id = request.query_params.get('elderId') or None
    try:
        context = await run_in_threadpool(ElderContextService(supabase).resolve, user['id'], requested_elder_id)
    except ProfileLoadError:
        return _context_error('Could not load profile', 500)
    except ProfileNotFoundError:
        return _context_error('Profile not found', 404)
    except LinkLoadError:
        return _context_error('Could not load caregiver links', 500, role=ROLE_CAREGIVER)
    except UnknownRoleError:
        return _context_error('Unknown role', 400)
    return supabase, context


def parse_link_elder_body(body: Any) -> Optional[str]:
    """Return the trimmed elder email from a link request body, or None if invalid."""
    if not isinstance(body, dict):
        return None
    email = body.get('elderEmail')
    email = email.strip() if isinstance(email, str) else ''
    if not email or '@' not in email:
        return None
    return email


@mcp.custom_route('/api/caregivers/link-elder', methods=['POST'])
async def link_elder(request: Request) -> JSONResponse:
    """Link the signed-in caregiver to an elder by email."""
    try:
        body = await request.json()
    except ValueError:
        body = None

    elder_email = parse_link_elder_body(body)
    if not elder_email:
        return JSONResponse({'error': 'Invalid body: elderEmail is required'}, status_code=400)

    auth = await _authenticate(request, lambda message, status: JSONResponse({'error': message}, status_code=status))
    if isinstance(auth, JSONResponse):
        return auth
    supabase, user = auth

    service = MemoryManagementService(config, supabase=supabase)
    try:
        await run_in_threadpool(service.link_elder_by_email, user['id'], elder_email)
    except MemoryManagementError as e:
        return JSONResponse({'error': 'Failed to link elder', 'details': str(e)}, status_code=400)

    return JSONResponse({'success': True})


@mcp.custom_route('/api/memories/image', methods=['POST'])
async def upload_memory_image(request: Request) -> JSONResponse:
    """Upload a memory photo (multipart field 'file') for the current elder; returns its public URL."""
    resolved = await _resolve_context(request)
    if isinstance(resolved, JSONResponse):
        return resolved
    supabase, context = resolved
    if context.elder_id is None:
        return JSONResponse({**context.to_dict(), 'error': 'No elder connected'}, status_code=400)

    form = await request.form()
    upload = form.get('file')
    if not isinstance(upload, UploadFile):
        return JSONResponse({'error': 'Please choose a photo or image file (like .jpg or .png).'}, status_code=400)

    content = await upload.read()
    service = MemoryManagementService(config, supabase=supabase)
    try:
        url = await run_in_threadpool(service.upload_memory_image, context.elder_id, upload.filename, content,
                                      upload.content_type)
    except ImageValidationError as e:
        return JSONResponse({'error': str(e)}, status_code=400)
    except MemoryManagementError as e:
        return JSONResponse({'error': str(e)}, status_code=500)

    return JSONResponse({'url': url})


@mcp.custom_route('/api/current-elder', methods=['GET'])
async def current_elder(request: Request) -> JSONResponse:
    """Resolve which elder the signed-in user is acting for."""
    resolved = await _resolve_context(request)
    if isinstance(resolved, JSONResponse):
        return resolved
    _, context = resolved
    return JSONResponse(context.to_dict())


@mcp.custom_route('/caregiver/dashboard', methods=['GET'])
async def caregiver_dashboard(request: Request):
    """Filtered memory timeline and question history for a caregiver's elder."""
    resolved = await _resolve_context(request)
    if isinstance(resolved, JSONResponse):
        return resolved
    supabase, context = resolved

    if context.role != ROLE_CAREGIVER:
        return RedirectResponse(url='/elder/dashboard', status_code=307)
    if context.elder_id is None:
        return JSONResponse({**context.to_dict(), 'error': 'No elder connected'})

    service = DashboardService(MemoryManagementService(config, supabase=supabase))
    data = await run_in_threadpool(service.load, context.elder_id)

    params = request.query_params
    memories = filter_memories(data.memories,
                               type_filter=params.get('type', 'all'),
                               tag_filter=params.get('tag', ''),
                               search=params.get('q', ''))
    timeline = group_by_date(memories, config.timezone)
    return JSONResponse({
        **context.to_dict(),
        'stats': {
            'totalMemories': len(data.memories),
            'totalQuestions': len(data.questions),
        },
        'tags': collect_tags(data.memories),
        'timeline': {day: [memory.to_dict() for memory in day_memories] for day, day_memories in timeline.items()},
        'questions': [question.to_dict() for question in data.questions],
    })


@mcp.custom_route('/elder/dashboard', methods=['GET'])
async def elder_dashboard(request: Request):
    """Elder home view: the three most recent questions."""
    resolved = await _resolve_context(request)
    if isinstance(resolved, JSONResponse):
        return resolved
    supabase, context = resolved

    if context.role == ROLE_CAREGIVER:
        return RedirectResponse(url='/caregiver/dashboard', status_code=307)

    service = DashboardService(MemoryManagementService(config, supabase=supabase))
    data = await run_in_threadpool(service.load, context.elder_id)
    return JSONResponse({**context.to_dict(), 'recentQuestions': service.recent_questions(data.questions)})


@mcp.custom_route('/health', methods=['GET'])
async def health(request: Request) -> JSONResponse:
    status = await run_in_threadpool(get_health_status, config)
    healthy = all(component.get('healthy', False) for component in status.values())
    return JSONResponse({'healthy': healthy, 'components': status}, status_code=200 if healthy else 503)


def create_app(app_config: Optional[AppConfig] = None):
    """Build the ASGI app: MCP endpoint, HTTP routes and the session guard.

    A given app_config replaces the module configuration used by the tools,
    routes and cached services.
    """
    global config
    if app_config is not None and app_config is not config:
        config = app_config
        for factory in (get_memory_service, get_question_service, get_summary_service, get_extraction_service):
            factory.cache_clear()
    return mcp.http_app(middleware=[Middleware(SessionGuardMiddleware, auth_config=config.auth)])


if __name__ == '__main__':
    check_health(config)
    if config.mcp.transport == 'stdio':
        mcp.run(transport='stdio')
    else:
        uvicorn.run(create_app(), host=config.mcp.host, port=config.mcp.port)
