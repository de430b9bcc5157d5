"""
AI Provider Base Module

Defines the capability interface every AI provider implements and the
provider-independent behaviour they share: option resolution, timeouts,
request accounting, prompt building and review parsing.

Design Decisions:
- ``generate_response`` is the only place vendor calls happen, and it never
  raises: every failure becomes a failed ApiResponse plus a failed CallRecord
- Higher-level methods never catch; they raise AIProviderError chained to the
  underlying cause
- Each variant owns its vendor call and its content/usage extraction; the
  base class only sees the uniform TokenUsage it gets back
- Every vendor call is bounded by an explicit timeout
"""

import asyncio
import json
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import structlog
from pydantic import ValidationError

from github_reviewer.config import ModelPricing
from github_reviewer.logging_config import get_logger, log_api_call
from github_reviewer.models import CodeReview, ModelCostSummary, ReviewFile, UsageAnalytics
from github_reviewer.providers.ledger import CallRecord, RequestLedger, utc_now
from github_reviewer.providers.pricing import TokenUsage, calculate_cost, freeze_pricing
from github_reviewer.providers.prompts import (
    build_comment_prompt,
    build_review_prompt,
    build_test_prompt,
)

JSON_FENCE_START = re.compile(r"^```json\s*", re.MULTILINE)
JSON_FENCE_END = re.compile(r"\s*```$", re.MULTILINE)


class AIProviderError(Exception):
    """Raised by the high-level provider operations."""
    pass


class ProviderTimeoutError(AIProviderError):
    """A completion request exceeded the configured timeout."""
    pass


class UnexpectedResponseError(AIProviderError):
    """The vendor answered with a shape we cannot read text from."""
    pass


@dataclass
class ProviderConfig:
    """Connection and generation settings for one provider instance."""
    api_key: str
    model: str
    max_tokens: int = 4096
    temperature: float = 0.3
    timeout: float = 120.0
    pricing: Mapping[str, ModelPricing] = field(default_factory=dict)
    tracking_enabled: bool = True


@dataclass
class CodebaseConfig:
    """What the reviewed codebase looks like, for prompt building."""
    language: str = "TypeScript"
    test_framework: str = "jest"


@dataclass
class ApiResponse:
    """Outcome of a single completion request."""
    content: str
    success: bool
    error: Optional[BaseException] = None
    raw_response: Any = None


def extract_json_from_markdown(text: str) -> str:
    """
    Strip one leading ```json fence and one trailing ``` fence.

    Text without fences is returned unchanged.
    """
    if not text:
        return ""
    result = JSON_FENCE_START.sub("", text, count=1)
    return JSON_FENCE_END.sub("", result, count=1)


class AIProvider(ABC):
    """
    Capability interface shared by all AI providers.

    Subclasses implement the vendor call and the extraction of text and token
    usage from the vendor's response object.

    Usage:
        provider = OpenAIProvider(config, codebase)
        review = await provider.review_pull_request(files)
        stats = provider.get_usage_analytics()
    """

    service_name = "AIProvider"
    display_name = "AI"

    def __init__(
        self,
        config: ProviderConfig,
        codebase: Optional[CodebaseConfig] = None,
        logger: Optional[structlog.stdlib.BoundLogger] = None
    ):
        self.config = config
        self.codebase = codebase or CodebaseConfig()
        self.pricing = freeze_pricing(config.pricing)
        self.logger = logger or get_logger(__name__)
        self._ledger = RequestLedger()

    # =========================================================================
    # Vendor-specific hooks
    # =========================================================================
    @abstractmethod
    async def _create_completion(self, prompt: str, options: Dict[str, Any]) -> Any:
        """Send the request to the vendor and return its raw response."""

    @abstractmethod
    def _extract_content(self, response: Any) -> str:
        """Return the generated text, or raise UnexpectedResponseError."""

    @abstractmethod
    def _extract_usage(self, response: Any) -> Optional[TokenUsage]:
        """Return token counts if the vendor reported them."""

    # =========================================================================
    # Completion requests
    # =========================================================================
    def resolve_options(self, options: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Instance defaults overlaid with the caller's non-None options."""
        resolved: Dict[str, Any] = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
        }
        if options:
            resolved.update({k: v for k, v in options.items() if v is not None})
        return resolved

    async def generate_response(
        self,
        prompt: str,
        options: Optional[Dict[str, Any]] = None
    ) -> ApiResponse:
        """
        Send a prompt to the provider and track the request.

        Never raises. Failures of any kind come back as
        ``ApiResponse(success=False)`` and are recorded in the ledger.
        """
        resolved = self.resolve_options(options)
        timestamp = utc_now()
        started = time.perf_counter()
        response: Any = None

        try:
            response = await asyncio.wait_for(
                self._create_completion(prompt, resolved),
                timeout=self.config.timeout
            )
            content = self._extract_content(response)
            usage = self._extract_usage(response)
        except asyncio.TimeoutError:
            error = ProviderTimeoutError(
                f"{self.display_name} request timed out after {self.config.timeout}s"
            )
            return self._record_failure(prompt, resolved, timestamp, started, error, response)
        except Exception as e:
            return self._record_failure(prompt, resolved, timestamp, started, e, response)

        record = CallRecord(
            timestamp=timestamp,
            prompt=prompt,
            options=resolved,
            success=True,
            latency_ms=(time.perf_counter() - started) * 1000,
            raw_response=response,
        )
        if usage is not None:
            record.input_tokens = usage.input_tokens
            record.output_tokens = usage.output_tokens
            record.total_tokens = usage.total_tokens
            record.cost = calculate_cost(self.pricing, resolved["model"], usage)

        self._ledger.append(record)
        self.log_request(record)

        return ApiResponse(content=content, success=True, raw_response=response)

    def _record_failure(
        self,
        prompt: str,
        options: Dict[str, Any],
        timestamp: datetime,
        started: float,
        error: BaseException,
        response: Any
    ) -> ApiResponse:
        record = CallRecord(
            timestamp=timestamp,
            prompt=prompt,
            options=options,
            success=False,
            latency_ms=(time.perf_counter() - started) * 1000,
            raw_response=response,
            error=error,
        )
        self._ledger.append(record)
        self.log_request(record)

        return ApiResponse(content="", success=False, error=error, raw_response=response)

    def log_request(self, record: CallRecord) -> None:
        """Emit the API call entry and a one-line summary, if tracking is on."""
        if not self.config.tracking_enabled:
            return

        status = "SUCCESS" if record.success else "ERROR"
        log_api_call(
            self.logger,
            self.service_name,
            f"request-{record.model}",
            record.latency_ms,
            status,
            model=record.model,
            prompt_length=len(record.prompt),
            input_tokens=record.input_tokens,
            output_tokens=record.output_tokens,
            total_tokens=record.total_tokens,
            cost=record.cost,
            timestamp=record.timestamp.isoformat(),
        )

        if record.success:
            self.logger.info(
                f"{self.display_name} API request succeeded",
                model=record.model,
                latency_ms=round(record.latency_ms),
                input_tokens=record.input_tokens,
                output_tokens=record.output_tokens,
                cost=round(record.cost, 4) if record.cost is not None else None,
                prompt=record.prompt[:100] + "..."
            )
        else:
            self.logger.error(
                f"{self.display_name} API request failed",
                model=record.model,
                latency_ms=round(record.latency_ms),
                error=str(record.error),
                error_type=type(record.error).__name__,
                prompt=record.prompt[:100] + "..."
            )

    # =========================================================================
    # Review operations
    # =========================================================================
    async def review_pull_request(
        self,
        files: Sequence[Union[ReviewFile, Dict[str, Any]]]
    ) -> CodeReview:
        """
        Generate a structured review of the given files.

        Raises:
            AIProviderError: If the request fails or the output is not valid JSON
        """
        review_files = [
            f if isinstance(f, ReviewFile) else ReviewFile.model_validate(f)
            for f in files
        ]
        prompt = build_review_prompt(review_files, self.codebase.language)

        response = await self.generate_response(prompt)
        if not response.success:
            raise AIProviderError(
                f"Failed to generate PR review: {response.error}"
            ) from response.error

        return self.parse_review(response.content)

    def parse_review(self, content: str) -> CodeReview:
        """Parse provider output, fenced or not, into a CodeReview."""
        try:
            json_text = extract_json_from_markdown(content)
            if not json_text.strip():
                raise ValueError("Could not extract JSON from the response")
            data = json.loads(json_text)
        except ValueError as e:
            raise AIProviderError(f"Failed to parse response as JSON: {e}") from e

        try:
            return CodeReview.model_validate(data)
        except ValidationError as e:
            raise AIProviderError(f"Review JSON has an unexpected structure: {e}") from e

    async def generate_tests(self, file_path: str, file_content: str) -> str:
        """Generate test code for a file; the raw provider text is returned."""
        prompt = build_test_prompt(file_path, file_content, self.codebase.test_framework)

        response = await self.generate_response(prompt)
        if not response.success:
            raise AIProviderError(
                f"Failed to generate tests: {response.error}"
            ) from response.error

        return response.content

    async def respond_to_comment(
        self,
        user_comment: str,
        code_context: Optional[str] = None
    ) -> str:
        """Answer a developer's reply to one of the bot's review comments."""
        prompt = build_comment_prompt(user_comment, code_context)

        response = await self.generate_response(prompt)
        if not response.success:
            raise AIProviderError(
                f"Failed to generate comment response: {response.error}"
            ) from response.error

        return response.content

    # =========================================================================
    # Request ledger
    # =========================================================================
    def get_requests(self) -> List[CallRecord]:
        return self._ledger.records()

    def clear_requests(self) -> None:
        self._ledger.clear()

    def get_usage_analytics(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None
    ) -> UsageAnalytics:
        return self._ledger.usage_analytics(start_date, end_date)

    def get_cost_breakdown(self) -> Dict[str, ModelCostSummary]:
        return self._ledger.cost_breakdown()
