"""
Health check utilities for the application.
"""

from typing import Any, Dict, Optional

from .bedrock_llm import BedrockLLM
from .config import AppConfig
from .logging_config import get_logger
from .supabase_client import SupabaseClient

logger = get_logger(__name__)


def _resolve(config: Optional[AppConfig]) -> AppConfig:
    if config is None:
        from .config import config as default_config
        config = default_config
    return config


def check_health(config: Optional[AppConfig] = None) -> bool:
    """Check the health of all system components.

    Returns:
        True if all components are healthy, False otherwise
    """
    try:
        health_status = get_health_status(config)

        # Check if all components are healthy
        all_healthy = all(status.get('healthy', False) for status in health_status.values())

        if all_healthy:
            logger.info('All system components are healthy')
        else:
            logger.warning('Some system components are unhealthy')

        return all_healthy

    except Exception as e:
        logger.error(f'Health check failed: {e}')
        return False


def get_health_status(config: Optional[AppConfig] = None) -> Dict[str, Any]:
    """Get detailed health status of all components.

    Bedrock is reported as disabled (and healthy) when no API key is configured,
    since every AI feature then runs on its keyword fallback.

    Returns:
        Dictionary with health status of each component
    """
    config = _resolve(config)
    health_status = {}

    # Check Supabase
    try:
        supabase = SupabaseClient(config.supabase)
        health_status['supabase'] = {'healthy': supabase.health_check(), 'service': 'Supabase', 'endpoint': config.supabase.url}
    except Exception as e:
        health_status['supabase'] = {'healthy': False, 'service': 'Supabase', 'error': str(e)}

    # Check Bedrock LLM with the first configured model
    if not config.bedrock_llm.api_key or not config.bedrock_llm.model_ids:
        health_status['bedrock_llm'] = {'healthy': True, 'service': 'Amazon Bedrock LLM', 'enabled': False}
    else:
        model_id = config.bedrock_llm.model_ids[0]
        try:
            llm = BedrockLLM(config.bedrock_llm, model_id)
            health_status['bedrock_llm'] = {
                'healthy': llm.health_check(),
                'service': 'Amazon Bedrock LLM',
                'enabled': True,
                'model': model_id
            }
        except Exception as e:
            health_status['bedrock_llm'] = {'healthy': False, 'service': 'Amazon Bedrock LLM', 'error': str(e)}

    return health_status


def get_system_info(config: Optional[AppConfig] = None) -> Dict[str, Any]:
    """Get system information and configuration.

    Returns:
        Dictionary with system information
    """
    config = _resolve(config)
    return {
        'service_name': 'Memory Friend',
        'version': '1.0.0',
        'configuration': {
            'environment': config.environment,
            'bedrock_llm_models': list(config.bedrock_llm.model_ids),
            'generative_enabled': bool(config.bedrock_llm.api_key),
            'aws_region': config.bedrock_llm.region,
            'timezone': config.timezone or 'local',
        },
        'health_status': get_health_status(config)
    }
