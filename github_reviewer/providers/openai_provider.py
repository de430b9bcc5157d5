"""
OpenAI Provider

ChatGPT models through the Chat Completions API. Usage counts come on the
response envelope as ``prompt_tokens`` / ``completion_tokens``.
"""

from typing import Any, Dict, Optional

import structlog
from openai import AsyncOpenAI

from github_reviewer.providers.base import (
    AIProvider,
    CodebaseConfig,
    ProviderConfig,
    UnexpectedResponseError,
)
from github_reviewer.providers.pricing import TokenUsage


class OpenAIProvider(AIProvider):
    """AI provider backed by OpenAI's Chat Completions API."""

    service_name = "OpenAIProvider"
    display_name = "ChatGPT"

    def __init__(
        self,
        config: ProviderConfig,
        codebase: Optional[CodebaseConfig] = None,
        logger: Optional[structlog.stdlib.BoundLogger] = None
    ):
        super().__init__(config, codebase, logger)
        self.client = AsyncOpenAI(api_key=config.api_key)

    async def _create_completion(self, prompt: str, options: Dict[str, Any]) -> Any:
        params = dict(options)
        params.setdefault("messages", [{"role": "user", "content": prompt}])
        return await self.client.chat.completions.create(**params)

    def _extract_content(self, response: Any) -> str:
        choices = getattr(response, "choices", None)
        if choices:
            message = getattr(choices[0], "message", None)
            content = getattr(message, "content", None)
            if content:
                return content
        raise UnexpectedResponseError("Unexpected response format from ChatGPT API")

    def _extract_usage(self, response: Any) -> Optional[TokenUsage]:
        usage = getattr(response, "usage", None)
        if usage is None:
            return None
        return TokenUsage(
            input_tokens=usage.prompt_tokens,
            output_tokens=usage.completion_tokens,
        )
