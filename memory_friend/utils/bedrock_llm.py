"""
Amazon Bedrock text generation provider with model-availability error handling.
"""

from typing import Optional

import boto3
from botocore import UNSIGNED
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .config import BedrockLLMConfig
from .logging_config import get_logger
from .text_generation import ModelNotFoundError, ProviderChain, TextGenerationError, TextGenerationProvider

logger = get_logger(__name__)

MODEL_NOT_FOUND_CODES = ('ResourceNotFoundException', )


def bearer_token_handler(api_key: str):
    """botocore before-send handler that authenticates a request with a Bedrock API key."""

    def add_authorization(request, **kwargs):
        request.headers['Authorization'] = f'Bearer {api_key}'

    return add_authorization


def create_bedrock_client(config: BedrockLLMConfig):
    """Create a bedrock-runtime client with retries off.

    With an API key the client sends it as a bearer token on its own requests
    instead of SigV4-signing them.
    """
    if not config.api_key:
        return boto3.client('bedrock-runtime', region_name=config.region, config=BotoConfig(retries={'max_attempts': 0}))

    client = boto3.client('bedrock-runtime',
                          region_name=config.region,
                          config=BotoConfig(retries={'max_attempts': 0}, signature_version=UNSIGNED))
    client.meta.events.register('before-send.bedrock-runtime', bearer_token_handler(config.api_key))
    return client


class BedrockLLMError(TextGenerationError):
    """Custom exception for Bedrock LLM errors."""
    pass


def is_model_not_found(error: ClientError) -> bool:
    """Return True if a Bedrock ClientError means the model id is unknown or unavailable."""
    details = error.response.get('Error', {})
    code = details.get('Code', '')
    message = details.get('Message', '').lower()
    if code in MODEL_NOT_FOUND_CODES:
        return True
    return code == 'ValidationException' and 'model identifier' in message


class BedrockLLM(TextGenerationProvider):
    """Amazon Bedrock Converse client bound to a single model id."""

    def __init__(self, config: BedrockLLMConfig, model_id: str, client=None):
        """
        Initialize Bedrock LLM client.

        Args:
            config: BedrockLLMConfig instance with connection parameters
            model_id: Bedrock model identifier this provider calls
            client: Optional pre-built bedrock-runtime client
        """
        self.config = config
        self.model_id = model_id
        self.name = model_id

        self.bedrock_runtime = client or create_bedrock_client(config)

        logger.info(f'Initialized Bedrock LLM client with model: {self.model_id}')

    def generate(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """
        Generate a response for a single user prompt.

        Args:
            prompt: User prompt text
            system_prompt: Optional system prompt

        Returns:
            Response text (may be empty)

        Raises:
            ModelNotFoundError: If Bedrock does not know or serve the model
            BedrockLLMError: For quota, network or response errors
        """
        request = {
            'modelId': self.model_id,
            'messages': [{
                'role': 'user',
                'content': [{
                    'text': prompt
                }]
            }],
            'inferenceConfig': {
                'maxTokens': self.config.max_tokens,
                'temperature': self.config.temperature,
            },
        }
        if system_prompt:
            request['system'] = [{'text': system_prompt}]

        try:
            response = self.bedrock_runtime.converse(**request)
        except ClientError as e:
            if is_model_not_found(e):
                raise ModelNotFoundError(f'Bedrock model {self.model_id} not found: {e}')
            logger.warning(f'Bedrock LLM call failed for {self.model_id}: {e}')
            raise BedrockLLMError(f'Bedrock LLM request failed: {e}')
        except BotoCoreError as e:
            logger.warning(f'Bedrock LLM connection error for {self.model_id}: {e}')
            raise BedrockLLMError(f'Bedrock LLM connection failed: {e}')

        try:
            blocks = response['output']['message']['content']
        except (KeyError, TypeError) as e:
            raise BedrockLLMError(f'Unexpected Bedrock response shape: {e}')

        text = ''.join(block.get('text', '') for block in blocks if isinstance(block, dict))
        logger.debug(f'Bedrock LLM response generated successfully (length: {len(text)})')
        return text

    def health_check(self) -> bool:
        """
        Perform a health check on the Bedrock LLM service.

        Returns:
            True if service is healthy, False otherwise
        """
        try:
            response = self.generate('Hi', system_prompt="You are a helpful assistant. Respond with just 'OK'.")
            return len(response.strip()) > 0

        except Exception as e:
            logger.error(f'Bedrock LLM health check failed: {e}')
            return False


def build_provider_chain(config: BedrockLLMConfig, client=None) -> ProviderChain:
    """Build a chain with one Bedrock provider per configured model id, in order."""
    if client is None and config.model_ids:
        first = BedrockLLM(config, config.model_ids[0])
        client = first.bedrock_runtime
        providers = [first] + [BedrockLLM(config, model_id, client=client) for model_id in config.model_ids[1:]]
    else:
        providers = [BedrockLLM(config, model_id, client=client) for model_id in config.model_ids]
    return ProviderChain(providers)
