"""Configuration models."""

from typing import List, Optional, Tuple
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.topics import DEFAULT_TOPIC_POOL


class LLMConfig(BaseModel):
    """LLM backend configuration (OpenAI or Azure OpenAI)."""
    api_key: Optional[str] = None
    # Azure OpenAI is used when an endpoint is configured
    azure_endpoint: Optional[str] = None
    azure_api_version: str = "2024-12-01-preview"

    # Model Selection
    knowledge_model: str = "gpt-4.1"
    trending_model: str = "gpt-4.1-mini"
    use_search_grounding: bool = True

    # Generation Parameters
    temperature: float = 0.9
    max_output_tokens: int = 4000
    request_timeout: float = 60.0

    @property
    def is_azure(self) -> bool:
        return bool(self.azure_endpoint)


class RetryConfig(BaseModel):
    """Backoff policy for backend calls."""
    max_attempts: int = Field(default=3, ge=1)
    base_delay_ms: int = Field(default=1000, ge=0)
    # Extra full backend calls when the response cannot be decoded
    decode_retries: int = Field(default=0, ge=0)


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Backend credentials
    openai_api_key: Optional[str] = None
    azure_openai_endpoint: Optional[str] = None
    azure_openai_api_version: str = "2024-12-01-preview"

    # Model Selection
    knowledge_model: str = "gpt-4.1"
    trending_model: str = "gpt-4.1-mini"
    use_search_grounding: bool = True
    temperature: float = 0.9
    max_output_tokens: int = 4000
    request_timeout: float = 60.0

    # Resilience
    max_attempts: int = 3
    base_delay_ms: int = 1000
    decode_retries: int = 0

    # Generation
    response_language: str = "Traditional Chinese (Taiwan)"
    trending_region: str = "Taiwan"
    default_count: int = 3
    max_count: int = 10
    trending_limit: int = 10
    trending_fallback_limit: int = 5
    topic_pool: Tuple[str, ...] = DEFAULT_TOPIC_POOL

    # HTTP
    cors_allow_origins: List[str] = ["*"]
    trending_cache_control: str = "s-maxage=300, stale-while-revalidate=60"

    # Application Configuration
    log_level: str = "INFO"

    @property
    def has_credentials(self) -> bool:
        return bool(self.openai_api_key and self.openai_api_key.strip())

    @property
    def llm_config(self) -> LLMConfig:
        """Get LLM configuration."""
        return LLMConfig(
            api_key=self.openai_api_key,
            azure_endpoint=self.azure_openai_endpoint,
            azure_api_version=self.azure_openai_api_version,
            knowledge_model=self.knowledge_model,
            trending_model=self.trending_model,
            use_search_grounding=self.use_search_grounding,
            temperature=self.temperature,
            max_output_tokens=self.max_output_tokens,
            request_timeout=self.request_timeout,
        )

    @property
    def retry_config(self) -> RetryConfig:
        """Get retry configuration."""
        return RetryConfig(
            max_attempts=self.max_attempts,
            base_delay_ms=self.base_delay_ms,
            decode_retries=self.decode_retries,
        )
