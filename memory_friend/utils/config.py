"""
Configuration management for the managed backend, Bedrock and application settings.
"""

import os
from dataclasses import dataclass
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_MODEL_IDS = 'anthropic.claude-3-5-haiku-20241022-v1:0,anthropic.claude-3-haiku-20240307-v1:0,amazon.nova-lite-v1:0'


@dataclass
class SupabaseConfig:
    """Configuration for the managed Supabase backend."""
    url: str
    key: str  # Service role key for server-side work, anon key otherwise
    anon_key: str  # Key sent with end-user access tokens
    storage_bucket: str

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.anon_key)


@dataclass
class BedrockLLMConfig:
    """Configuration for Amazon Bedrock text generation."""
    region: str
    model_ids: List[str]
    api_key: Optional[str]
    max_tokens: int
    temperature: float


@dataclass
class AuthConfig:
    """Configuration for route protection."""
    dev_bypass_auth: bool


@dataclass
class MCPConfig:
    """Configuration for MCP interface."""
    transport: str
    host: str
    port: int


@dataclass
class AppConfig:
    """Main application configuration."""
    environment: str
    log_level: str
    supabase: SupabaseConfig
    bedrock_llm: BedrockLLMConfig
    auth: AuthConfig
    mcp: MCPConfig
    timezone: Optional[str] = None


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(',') if item.strip()]


def _as_bool(value: Optional[str]) -> bool:
    return (value or '').strip().lower() == 'true'


def load_config() -> AppConfig:
    """Load configuration from environment variables with defaults."""
    environment = os.getenv('ENVIRONMENT', 'development')

    # Supabase configuration
    anon_key = os.getenv('SUPABASE_ANON_KEY', '')
    service_key = os.getenv('SUPABASE_SERVICE_ROLE_KEY', '') or anon_key
    supabase_config = SupabaseConfig(url=os.getenv('SUPABASE_URL', '').rstrip('/'),
                                     key=service_key,
                                     anon_key=anon_key or service_key,
                                     storage_bucket=os.getenv('SUPABASE_STORAGE_BUCKET', 'memory-images'))

    # Bedrock configuration
    bedrock_llm_config = BedrockLLMConfig(region=os.getenv('BEDROCK_LLM_AWS_REGION', 'us-east-1'),
                                          model_ids=_split_list(os.getenv('BEDROCK_LLM_MODEL_IDS', DEFAULT_MODEL_IDS)),
                                          api_key=os.getenv('BEDROCK_API_KEY') or None,
                                          max_tokens=int(os.getenv('BEDROCK_LLM_MAX_TOKENS', '1024')),
                                          temperature=float(os.getenv('BEDROCK_LLM_TEMPERATURE', '0.3')))

    auth_config = AuthConfig(dev_bypass_auth=_as_bool(os.getenv('DEV_BYPASS_AUTH')))

    # MCP configuration
    mcp_config = MCPConfig(transport=os.getenv('MCP_TRANSPORT', 'http'),
                           host=os.getenv('MCP_HOST', '127.0.0.1'),
                           port=int(os.getenv('MCP_PORT', '8000')))

    return AppConfig(environment=environment,
                     log_level=os.getenv('LOG_LEVEL', 'INFO'),
                     supabase=supabase_config,
                     bedrock_llm=bedrock_llm_config,
                     auth=auth_config,
                     mcp=mcp_config,
                     timezone=os.getenv('APP_TIMEZONE') or None)


# Global configuration instance
config = load_config()
