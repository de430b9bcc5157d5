"""
Configuration Management Module

This module handles all application configuration using Pydantic Settings.
Configuration is loaded from environment variables with strong typing and validation.

Design Decisions:
- Use Pydantic Settings for automatic environment variable loading
- Provide sensible defaults for optional settings
- Validate configuration at startup (fail-fast approach)
- Pricing table is read as JSON so it can live in a single env var
"""

from functools import lru_cache
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


SUPPORTED_PROVIDERS = {"anthropic", "openai", "gemini"}

DEFAULT_MODELS: Dict[str, str] = {
    "anthropic": "claude-3-haiku-20240307",
    "openai": "gpt-4o-mini",
    "gemini": "gemini-1.5-flash",
}


class ModelPricing(BaseModel):
    """Per-model token pricing, in currency units per 1K tokens."""
    input_cost_per_1k_tokens: float = Field(ge=0)
    output_cost_per_1k_tokens: float = Field(ge=0)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All sensitive values are loaded from environment variables only,
    never hardcoded or logged.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # =========================================================================
    # GitHub Configuration
    # =========================================================================
    github_token: str = Field(
        description="GitHub API token used for all REST calls"
    )

    github_api_url: str = Field(
        default="https://api.github.com",
        description="GitHub REST API base URL"
    )

    github_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for GitHub API requests"
    )

    bot_username: Optional[str] = Field(
        default=None,
        description="GitHub login the reviewer posts as, used to detect replies to the bot"
    )

    # =========================================================================
    # Webhook Configuration
    # =========================================================================
    github_webhook_secret: str = Field(
        description="Webhook secret for signature verification"
    )

    webhook_path: str = Field(
        default="/webhook",
        description="Path the webhook endpoint is mounted on"
    )

    # =========================================================================
    # AI Provider Configuration
    # =========================================================================
    ai_provider: str = Field(
        default="anthropic",
        description="AI provider: anthropic, openai or gemini"
    )

    ai_api_key: str = Field(
        description="API key for the selected AI provider"
    )

    ai_model: Optional[str] = Field(
        default=None,
        description="Model name; defaults to a per-provider model"
    )

    ai_max_tokens: int = Field(
        default=4096,
        ge=1,
        le=128000,
        description="Maximum tokens for AI response"
    )

    ai_temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=2.0,
        description="Temperature for AI responses"
    )

    ai_request_timeout: float = Field(
        default=120.0,
        gt=0,
        description="Timeout in seconds for a single AI completion call"
    )

    ai_pricing: Dict[str, ModelPricing] = Field(
        default_factory=dict,
        description="JSON pricing table keyed by model name"
    )

    track_requests: bool = Field(
        default=True,
        description="Emit a log entry for every AI API call"
    )

    # =========================================================================
    # Review Configuration
    # =========================================================================
    codebase_language: str = Field(
        default="TypeScript",
        description="Primary language of the reviewed codebase"
    )

    test_framework: str = Field(
        default="jest",
        description="Testing framework named in test generation prompts"
    )

    auto_generate_tests: bool = Field(
        default=False,
        description="Generate tests for changed files after each review"
    )

    test_source_extensions: str = Field(
        default=".ts,.js,.py",
        description="Comma-separated source extensions eligible for test generation"
    )

    # =========================================================================
    # Server Configuration
    # =========================================================================
    host: str = Field(
        default="0.0.0.0",
        description="Host to bind the server"
    )

    port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port to bind the server"
    )

    # =========================================================================
    # Logging Configuration
    # =========================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    log_json_format: bool = Field(
        default=True,
        description="Enable JSON logging format"
    )

    log_requests: bool = Field(
        default=False,
        description="Enable request/response logging"
    )

    # =========================================================================
    # Validators
    # =========================================================================
    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("ai_provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        """Ensure the AI provider is one we ship."""
        v_lower = v.strip().lower()
        if v_lower not in SUPPORTED_PROVIDERS:
            raise ValueError(
                f"Invalid AI provider: {v}. Must be one of {SUPPORTED_PROVIDERS}"
            )
        return v_lower

    @field_validator("webhook_path")
    @classmethod
    def validate_webhook_path(cls, v: str) -> str:
        if not v.startswith("/"):
            v = "/" + v
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================
    @property
    def resolved_model(self) -> str:
        """Configured model, or the default for the selected provider."""
        return self.ai_model or DEFAULT_MODELS[self.ai_provider]

    @property
    def test_extensions_list(self) -> List[str]:
        """Get list of source extensions eligible for test generation."""
        return [ext.strip() for ext in self.test_source_extensions.split(",") if ext.strip()]


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once,
    which is important for performance and consistency.

    Returns:
        Settings instance
    """
    return Settings()
