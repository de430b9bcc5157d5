"""
Anthropic Provider

Claude models through the Messages API. Usage counts come on the response
envelope as ``input_tokens`` / ``output_tokens``.
"""

from typing import Any, Dict, Optional

import structlog
from anthropic import AsyncAnthropic

from github_reviewer.providers.base import (
    AIProvider,
    CodebaseConfig,
    ProviderConfig,
    UnexpectedResponseError,
)
from github_reviewer.providers.pricing import TokenUsage


class AnthropicProvider(AIProvider):
    """AI provider backed by Anthropic's Messages API."""

    service_name = "AnthropicProvider"
    display_name = "Claude"

    def __init__(
        self,
        config: ProviderConfig,
        codebase: Optional[CodebaseConfig] = None,
        logger: Optional[structlog.stdlib.BoundLogger] = None
    ):
        super().__init__(config, codebase, logger)
        self.client = AsyncAnthropic(api_key=config.api_key)

    async def _create_completion(self, prompt: str, options: Dict[str, Any]) -> Any:
        params = dict(options)
        params.setdefault("messages", [{"role": "user", "content": prompt}])
        return await self.client.messages.create(**params)

    def _extract_content(self, response: Any) -> str:
        blocks = getattr(response, "content", None)
        if isinstance(blocks, list) and blocks:
            block = blocks[0]
            if getattr(block, "type", None) == "text" and getattr(block, "text", None) is not None:
                return block.text
        raise UnexpectedResponseError("Unexpected response format from Claude API")

    def _extract_usage(self, response: Any) -> Optional[TokenUsage]:
        usage = getattr(response, "usage", None)
        if usage is None:
            return None
        return TokenUsage(
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
        )
