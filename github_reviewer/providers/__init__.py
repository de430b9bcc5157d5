"""
AI Providers Package

Capability interface and the vendor implementations behind it:
- base: AIProvider interface, shared accounting and review parsing
- ledger: request ledger and usage/cost analytics
- anthropic_provider / openai_provider / gemini_provider: vendor variants
"""

from typing import Optional

import structlog

from github_reviewer.config import Settings
from github_reviewer.providers.base import (
    AIProvider,
    AIProviderError,
    ApiResponse,
    CodebaseConfig,
    ProviderConfig,
    ProviderTimeoutError,
    extract_json_from_markdown,
)
from github_reviewer.providers.ledger import CallRecord, RequestLedger


def create_provider(
    settings: Settings,
    logger: Optional[structlog.stdlib.BoundLogger] = None
) -> AIProvider:
    """Build the provider selected by ``AI_PROVIDER``."""
    config = ProviderConfig(
        api_key=settings.ai_api_key,
        model=settings.resolved_model,
        max_tokens=settings.ai_max_tokens,
        temperature=settings.ai_temperature,
        timeout=settings.ai_request_timeout,
        pricing=settings.ai_pricing,
        tracking_enabled=settings.track_requests,
    )
    codebase = CodebaseConfig(
        language=settings.codebase_language,
        test_framework=settings.test_framework,
    )

    # Vendor SDKs are imported lazily so only the selected one must be importable
    if settings.ai_provider == "anthropic":
        from github_reviewer.providers.anthropic_provider import AnthropicProvider
        return AnthropicProvider(config, codebase, logger)
    if settings.ai_provider == "openai":
        from github_reviewer.providers.openai_provider import OpenAIProvider
        return OpenAIProvider(config, codebase, logger)
    if settings.ai_provider == "gemini":
        from github_reviewer.providers.gemini_provider import GeminiProvider
        return GeminiProvider(config, codebase, logger)

    raise ValueError(f"Unsupported AI provider: {settings.ai_provider}")


__all__ = [
    "AIProvider",
    "AIProviderError",
    "ApiResponse",
    "CallRecord",
    "CodebaseConfig",
    "ProviderConfig",
    "ProviderTimeoutError",
    "RequestLedger",
    "create_provider",
    "extract_json_from_markdown",
]
