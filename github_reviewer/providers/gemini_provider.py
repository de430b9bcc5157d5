"""
Gemini Provider

Google Gemini models through the ``google-generativeai`` SDK. Construction
configures the API key and selects a model; usage counts come on the nested
``usage_metadata`` object as ``prompt_token_count`` / ``candidates_token_count``.
"""

from typing import Any, Dict, Optional

import google.generativeai as genai
import structlog

from github_reviewer.providers.base import (
    AIProvider,
    CodebaseConfig,
    ProviderConfig,
    UnexpectedResponseError,
)
from github_reviewer.providers.pricing import TokenUsage


class GeminiProvider(AIProvider):
    """AI provider backed by Google's Generative AI SDK."""

    service_name = "GeminiProvider"
    display_name = "Gemini"

    def __init__(
        self,
        config: ProviderConfig,
        codebase: Optional[CodebaseConfig] = None,
        logger: Optional[structlog.stdlib.BoundLogger] = None
    ):
        super().__init__(config, codebase, logger)
        genai.configure(api_key=config.api_key)
        self.model = genai.GenerativeModel(config.model)

    def _model_for(self, model_name: str) -> Any:
        # A per-call model override gets its own handle
        if model_name == self.config.model:
            return self.model
        return genai.GenerativeModel(model_name)

    async def _create_completion(self, prompt: str, options: Dict[str, Any]) -> Any:
        contents = options.get("contents") or [
            {"role": "user", "parts": [{"text": prompt}]}
        ]
        generation_config = {
            "max_output_tokens": options["max_tokens"],
            "temperature": options["temperature"],
        }
        model = self._model_for(options["model"])
        return await model.generate_content_async(
            contents,
            generation_config=generation_config
        )

    def _extract_content(self, response: Any) -> str:
        try:
            text = response.text
        except (AttributeError, ValueError) as e:
            # .text raises ValueError when the candidate was blocked or empty
            raise UnexpectedResponseError(
                f"Unexpected response format from Gemini API: {e}"
            ) from e
        if not isinstance(text, str):
            raise UnexpectedResponseError("Unexpected response format from Gemini API")
        return text

    def _extract_usage(self, response: Any) -> Optional[TokenUsage]:
        metadata = getattr(response, "usage_metadata", None)
        if metadata is None:
            return None
        input_tokens = getattr(metadata, "prompt_token_count", None)
        output_tokens = getattr(metadata, "candidates_token_count", None)
        if input_tokens is None or output_tokens is None:
            return None
        return TokenUsage(input_tokens=input_tokens, output_tokens=output_tokens)
