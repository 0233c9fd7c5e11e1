"""
Memory Management Service for creating and listing memories, questions and images.
"""

import mimetypes
import uuid
from typing import Any, Dict, List, Optional

from ..models.core import MEMORY_TYPES, Memory, Question
from ..utils.config import AppConfig
from ..utils.logging_config import get_logger
from ..utils.supabase_client import SupabaseClient, SupabaseError, eq
from .metadata_extraction import MetadataExtractionService, metadata_to_row

logger = get_logger(__name__)

MAX_TEXT_LENGTH = 5000
MAX_IMAGE_SIZE_MB = 5
MAX_IMAGE_SIZE_BYTES = MAX_IMAGE_SIZE_MB * 1024 * 1024
DEFAULT_LIST_LIMIT = 50

LINK_ELDER_FUNCTION = 'link_caregiver_to_elder_by_email'


class MemoryManagementError(Exception):
    """Custom exception for memory management errors."""
    pass


class MemoryValidationError(MemoryManagementError):
    """Raised for invalid memory input; the message is safe to show to the user."""
    pass


class ImageValidationError(MemoryManagementError):
    """Raised for an unacceptable image; the message is safe to show to the user."""
    pass


class MemoryManagementService:
    """Unified service for memory, question and caregiver-link operations."""

    def __init__(self,
                 app_config: Optional[AppConfig] = None,
                 supabase: Optional[SupabaseClient] = None,
                 extractor: Optional[MetadataExtractionService] = None):
        """Initialize the memory management service."""
        if app_config is None:
            from ..utils.config import config as app_config
        self.config = app_config
        self.supabase = supabase or SupabaseClient(app_config.supabase)
        self.extractor = extractor or MetadataExtractionService(app_config)

        logger.info('Initialized MemoryManagementService')

    def create_memory(self,
                      elder_id: str,
                      raw_text: str,
                      type: Optional[str] = None,
                      tags: Optional[List[str]] = None,
                      structured_json: Optional[Dict[str, Any]] = None,
                      image_url: Optional[str] = None,
                      extract: bool = False) -> Memory:
        """Create a memory for an elder.

        Args:
            elder_id: Owning elder
            raw_text: Memory text (trimmed, at most 5000 characters)
            type: Stored memory type; 'other' if None
            tags: Tags, stored exactly as given
            structured_json: Structured extraction result
            image_url: URL of an uploaded image
            extract: Fill type, tags and structured_json from metadata extraction
                when no type was given

        Returns:
            The memory as stored

        Raises:
            MemoryValidationError: If elder_id or raw_text is missing or too long, or type is unknown
            MemoryManagementError: If the backend insert fails
        """
        if not elder_id:
            raise MemoryValidationError("We couldn't find your account. Please sign in again, or ask a caregiver for help.")

        text = (raw_text or '').strip()
        if not text:
            raise MemoryValidationError("Please tell us what you'd like to remember.")
        if len(text) > MAX_TEXT_LENGTH:
            raise MemoryValidationError(f"That's a bit too long. Please keep it shorter - under {MAX_TEXT_LENGTH} characters.")
        if type is not None and type not in MEMORY_TYPES:
            raise MemoryValidationError(f'Unknown memory type: {type}')

        row = {
            'elder_id': elder_id,
            'raw_text': text,
            'type': type or 'other',
            'tags': list(tags) if tags is not None else [],
            'structured_json': structured_json or {},
        }
        if extract and type is None:
            metadata = metadata_to_row(self.extractor.extract(text))
            if tags is not None:
                metadata.pop('tags')
            if structured_json is not None:
                metadata.pop('structured_json')
            row.update(metadata)
        if image_url:
            row['image_url'] = image_url

        logger.info(f'Creating memory for elder {elder_id}')
        try:
            stored = self.supabase.insert('memories', row)
        except SupabaseError as e:
            logger.error(f'Error creating memory: {e}')
            raise MemoryManagementError(f'Memory creation failed: {e}')

        return Memory.from_row(stored)

    def list_memories(self,
                      elder_id: str,
                      type: Optional[str] = None,
                      tag: Optional[str] = None,
                      limit: Optional[int] = DEFAULT_LIST_LIMIT) -> List[Memory]:
        """List an elder's memories, newest first, optionally filtered by type or tag.

        Raises:
            MemoryManagementError: If the query fails
        """
        if not elder_id:
            raise MemoryValidationError('elderId is required')

        filters = [('elder_id', eq(elder_id))]
        if type:
            filters.append(('type', eq(type)))
        if tag:
            filters.append(('tags', f'cs.{{{tag}}}'))

        try:
            rows = self.supabase.select('memories', filters=filters, order='created_at.desc', limit=limit)
        except SupabaseError as e:
            logger.error(f'Error fetching memories: {e}')
            raise MemoryManagementError(f'Memory listing failed: {e}')

        return [Memory.from_row(row) for row in rows]

    def list_questions(self, elder_id: str, limit: Optional[int] = None) -> List[Question]:
        """List an elder's questions, newest first.

        Raises:
            MemoryManagementError: If the query fails
        """
        try:
            rows = self.supabase.select('questions', filters=[('elder_id', eq(elder_id))], order='created_at.desc', limit=limit)
        except SupabaseError as e:
            logger.error(f'Error fetching questions: {e}')
            raise MemoryManagementError(f'Question listing failed: {e}')

        return [Question.from_row(row) for row in rows]

    def upload_memory_image(self, elder_id: str, filename: str, content: bytes, content_type: str) -> str:
        """Validate and upload an image for a memory.

        Returns:
            Public URL of the stored image

        Raises:
            ImageValidationError: If the file is too large or not an image
            MemoryManagementError: If the upload fails
        """
        validate_image(len(content), content_type)

        extension = mimetypes.guess_extension(content_type) or ''
        if '.' in (filename or ''):
            extension = '.' + filename.rsplit('.', 1)[1].lower()
        path = f'{elder_id}/{uuid.uuid4()}{extension}'

        bucket = self.config.supabase.storage_bucket
        try:
            self.supabase.upload_object(bucket, path, content, content_type)
        except SupabaseError as e:
            logger.error(f'Image upload failed for elder {elder_id}: {e}')
            raise MemoryManagementError(f"We couldn't upload your image: {e}. Please try a smaller image.")

        return self.supabase.public_url(bucket, path)

    def link_elder_by_email(self, caregiver_id: str, elder_email: str) -> None:
        """Link a caregiver to the elder registered with an email address.

        Raises:
            MemoryManagementError: If the backend refuses the link
        """
        try:
            self.supabase.rpc(LINK_ELDER_FUNCTION, {'caregiver_uid': caregiver_id, 'elder_email': elder_email})
        except SupabaseError as e:
            logger.warning(f'Failed to link caregiver {caregiver_id} to {elder_email}: {e}')
            raise MemoryManagementError(str(e))

        logger.info(f'Linked caregiver {caregiver_id} to elder {elder_email}')


def validate_image(size: int, content_type: Optional[str]) -> None:
    """Check an image against the 5 MB and image/* limits.

    Raises:
        ImageValidationError: With a plain-language message
    """
    if size > MAX_IMAGE_SIZE_BYTES:
        raise ImageValidationError(f'Please choose a smaller image (under {MAX_IMAGE_SIZE_MB}MB). '
                                   'You can resize it on your device first.')
    if not (content_type or '').startswith('image/'):
        raise ImageValidationError('Please choose a photo or image file (like .jpg or .png).')
