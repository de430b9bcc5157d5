"""
Tests for AI Providers

Covers the shared request accounting in the base class and the response
handling of each vendor variant.
"""

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import STUB_MODEL, StubProvider
from github_reviewer.config import ModelPricing, Settings
from github_reviewer.models import CodeReview, ReviewFile
from github_reviewer.providers import create_provider, extract_json_from_markdown
from github_reviewer.providers.anthropic_provider import AnthropicProvider
from github_reviewer.providers.base import (
    AIProviderError,
    ProviderConfig,
    ProviderTimeoutError,
    UnexpectedResponseError,
)
from github_reviewer.providers.gemini_provider import GeminiProvider
from github_reviewer.providers.openai_provider import OpenAIProvider

PRICING = {
    "gpt-4o-mini": ModelPricing(input_cost_per_1k_tokens=0.15, output_cost_per_1k_tokens=0.6),
    "claude-3-haiku-20240307": ModelPricing(input_cost_per_1k_tokens=0.25, output_cost_per_1k_tokens=1.25),
    "gemini-1.5-flash": ModelPricing(input_cost_per_1k_tokens=0.075, output_cost_per_1k_tokens=0.3),
}

REVIEW = {
    "comments": [{"path": "a.ts", "body": "ok", "position": 1}],
    "summary": "fine",
    "approved": True,
}


def config(model: str, **overrides) -> ProviderConfig:
    return ProviderConfig(api_key="test-key", model=model, pricing=PRICING, **overrides)


class SlowProvider(StubProvider):
    async def _create_completion(self, prompt, options):
        await asyncio.sleep(1)
        return "never"


class TestExtractJson:
    """Tests for markdown fence stripping."""

    def test_plain_text_unchanged(self):
        assert extract_json_from_markdown('{"a": 1}') == '{"a": 1}'

    def test_json_fence_stripped(self):
        assert extract_json_from_markdown('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_empty_input(self):
        assert extract_json_from_markdown("") == ""

    def test_other_language_fence_is_left_alone(self):
        text = '```python\nprint(1)\n```'
        assert extract_json_from_markdown(text).startswith("```python")


class TestGenerateResponse:
    """Tests for request tracking in the shared base class."""

    @pytest.mark.asyncio
    async def test_success_records_tokens_and_cost(self):
        provider = StubProvider(replies=["hello"])

        response = await provider.generate_response("prompt")

        assert response.success
        assert response.content == "hello"
        [record] = provider.get_requests()
        assert record.success
        assert record.model == STUB_MODEL
        assert record.input_tokens == 100
        assert record.output_tokens == 50
        assert record.total_tokens == record.input_tokens + record.output_tokens
        assert record.cost == pytest.approx(100 / 1000 * 0.01 + 50 / 1000 * 0.03)
        assert record.latency_ms >= 0

    @pytest.mark.asyncio
    async def test_unpriced_model_has_no_cost(self):
        provider = StubProvider(replies=["hello"])

        await provider.generate_response("prompt", {"model": "other-model"})

        [record] = provider.get_requests()
        assert record.model == "other-model"
        assert record.total_tokens == 150
        assert record.cost is None

    @pytest.mark.asyncio
    async def test_missing_usage_leaves_counts_unset(self):
        provider = StubProvider(replies=["hello"], usage=None)

        await provider.generate_response("prompt")

        [record] = provider.get_requests()
        assert record.input_tokens is None
        assert record.total_tokens is None
        assert record.cost is None

    @pytest.mark.asyncio
    async def test_failure_is_returned_and_recorded(self):
        error = RuntimeError("connection reset")
        provider = StubProvider(replies=[error])

        response = await provider.generate_response("prompt")

        assert not response.success
        assert response.content == ""
        assert response.error is error
        [record] = provider.get_requests()
        assert not record.success
        assert record.error is error
        assert record.model == STUB_MODEL
        assert record.cost is None

    @pytest.mark.asyncio
    async def test_caller_options_override_defaults(self):
        provider = StubProvider(replies=["hello"])

        await provider.generate_response("prompt", {"temperature": 0.9, "max_tokens": None})

        assert provider.options[0] == {"model": STUB_MODEL, "max_tokens": 4096, "temperature": 0.9}

    @pytest.mark.asyncio
    async def test_timeout_becomes_failed_response(self):
        provider = SlowProvider(config=ProviderConfig(api_key="test", model=STUB_MODEL, timeout=0.01))

        response = await provider.generate_response("prompt")

        assert not response.success
        assert isinstance(response.error, ProviderTimeoutError)
        assert len(provider.get_requests()) == 1

    @pytest.mark.asyncio
    async def test_clear_requests_resets_analytics(self):
        provider = StubProvider(replies=["a", "b"])
        await provider.generate_response("one")
        await provider.generate_response("two")

        provider.clear_requests()

        assert provider.get_requests() == []
        assert provider.get_usage_analytics().total_requests == 0
        assert provider.get_cost_breakdown() == {}

    @pytest.mark.asyncio
    async def test_analytics_over_provider_ledger(self):
        provider = StubProvider(replies=["a", RuntimeError("boom"), "c"])
        for prompt in ("one", "two", "three"):
            await provider.generate_response(prompt)

        stats = provider.get_usage_analytics()
        breakdown = provider.get_cost_breakdown()

        assert stats.total_requests == 3
        assert stats.failed_requests == 1
        assert stats.total_tokens == 300
        assert breakdown[STUB_MODEL].requests == 3
        assert breakdown[STUB_MODEL].cost == pytest.approx(stats.total_cost)


class TestReviewOperations:
    """Tests for the higher-level review operations."""

    @pytest.mark.asyncio
    async def test_review_returns_provider_structure(self):
        provider = StubProvider(replies=[json.dumps(REVIEW)])

        review = await provider.review_pull_request([{"filename": "a.ts", "content": "console.log(1)"}])

        assert review == CodeReview.model_validate(REVIEW)
        assert len(review.comments) == 1
        assert "### a.ts" in provider.prompts[0]
        assert "TypeScript" in provider.prompts[0]

    @pytest.mark.asyncio
    async def test_fenced_review_parses_like_unfenced(self):
        fenced = StubProvider(replies=["```json\n" + json.dumps(REVIEW) + "\n```"])
        plain = StubProvider(replies=[json.dumps(REVIEW)])
        files = [ReviewFile(filename="a.ts", content="console.log(1)")]

        assert await fenced.review_pull_request(files) == await plain.review_pull_request(files)

    @pytest.mark.asyncio
    async def test_malformed_json_raises(self):
        provider = StubProvider(replies=["{not json"])

        with pytest.raises(AIProviderError, match="Failed to parse response as JSON"):
            await provider.review_pull_request([ReviewFile(filename="a.ts", content="x")])

    @pytest.mark.asyncio
    async def test_empty_output_raises(self):
        provider = StubProvider(replies=["```json\n```"])

        with pytest.raises(AIProviderError, match="Failed to parse response as JSON"):
            await provider.review_pull_request([ReviewFile(filename="a.ts", content="x")])

    @pytest.mark.asyncio
    async def test_wrong_structure_raises(self):
        provider = StubProvider(replies=['{"comments": "none"}'])

        with pytest.raises(AIProviderError, match="unexpected structure"):
            await provider.review_pull_request([ReviewFile(filename="a.ts", content="x")])

    @pytest.mark.asyncio
    async def test_failed_request_raises_review_error(self):
        provider = StubProvider(replies=[RuntimeError("boom")])

        with pytest.raises(AIProviderError, match="Failed to generate PR review: boom"):
            await provider.review_pull_request([ReviewFile(filename="a.ts", content="x")])

    @pytest.mark.asyncio
    async def test_generate_tests_returns_raw_text(self):
        provider = StubProvider(replies=["describe('a', () => {});"])

        result = await provider.generate_tests("src/a.ts", "export const a = 1;")

        assert result == "describe('a', () => {});"
        assert "jest" in provider.prompts[0]
        assert "Filename: src/a.ts" in provider.prompts[0]

    @pytest.mark.asyncio
    async def test_generate_tests_failure(self):
        provider = StubProvider(replies=[RuntimeError("boom")])

        with pytest.raises(AIProviderError, match="Failed to generate tests"):
            await provider.generate_tests("src/a.ts", "x")

    @pytest.mark.asyncio
    async def test_respond_to_comment_includes_context(self):
        provider = StubProvider(replies=["Because it leaks."])

        reply = await provider.respond_to_comment("Why?", "const a = 1;")

        assert reply == "Because it leaks."
        assert "Why?" in provider.prompts[0]
        assert "const a = 1;" in provider.prompts[0]

    @pytest.mark.asyncio
    async def test_respond_to_comment_failure(self):
        provider = StubProvider(replies=[RuntimeError("boom")])

        with pytest.raises(AIProviderError, match="Failed to generate comment response"):
            await provider.respond_to_comment("Why?")


class TestOpenAIProvider:
    """Tests for the ChatGPT variant."""

    @pytest.mark.asyncio
    async def test_reads_content_and_usage(self):
        provider = OpenAIProvider(config("gpt-4o-mini"))
        provider.client = MagicMock()
        provider.client.chat.completions.create = AsyncMock(return_value=SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="hi"))],
            usage=SimpleNamespace(prompt_tokens=1000, completion_tokens=1000),
        ))

        response = await provider.generate_response("prompt")

        assert response.content == "hi"
        [record] = provider.get_requests()
        assert record.total_tokens == 2000
        assert record.cost == pytest.approx(0.75)
        kwargs = provider.client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]

    @pytest.mark.asyncio
    async def test_empty_choices_fail(self):
        provider = OpenAIProvider(config("gpt-4o-mini"))
        provider.client = MagicMock()
        provider.client.chat.completions.create = AsyncMock(
            return_value=SimpleNamespace(choices=[], usage=None)
        )

        response = await provider.generate_response("prompt")

        assert not response.success
        assert isinstance(response.error, UnexpectedResponseError)
        assert len(provider.get_requests()) == 1


class TestAnthropicProvider:
    """Tests for the Claude variant."""

    @pytest.mark.asyncio
    async def test_reads_content_and_usage(self):
        provider = AnthropicProvider(config("claude-3-haiku-20240307"))
        provider.client = MagicMock()
        provider.client.messages.create = AsyncMock(return_value=SimpleNamespace(
            content=[SimpleNamespace(type="text", text="hi")],
            usage=SimpleNamespace(input_tokens=2000, output_tokens=400),
        ))

        response = await provider.generate_response("prompt")

        assert response.content == "hi"
        [record] = provider.get_requests()
        assert record.input_tokens == 2000
        assert record.output_tokens == 400
        assert record.cost == pytest.approx(0.5 + 0.5)

    @pytest.mark.asyncio
    async def test_non_text_block_fails(self):
        provider = AnthropicProvider(config("claude-3-haiku-20240307"))
        provider.client = MagicMock()
        provider.client.messages.create = AsyncMock(return_value=SimpleNamespace(
            content=[SimpleNamespace(type="tool_use", text=None)],
            usage=SimpleNamespace(input_tokens=1, output_tokens=1),
        ))

        response = await provider.generate_response("prompt")

        assert not response.success
        assert isinstance(response.error, UnexpectedResponseError)


class TestGeminiProvider:
    """Tests for the Gemini variant."""

    @pytest.mark.asyncio
    async def test_reads_content_and_usage(self):
        provider = GeminiProvider(config("gemini-1.5-flash", max_tokens=256, temperature=0.1))
        provider.model = MagicMock()
        provider.model.generate_content_async = AsyncMock(return_value=SimpleNamespace(
            text="hi",
            usage_metadata=SimpleNamespace(prompt_token_count=1000, candidates_token_count=1000),
        ))

        response = await provider.generate_response("prompt")

        assert response.content == "hi"
        [record] = provider.get_requests()
        assert record.total_tokens == 2000
        assert record.cost == pytest.approx(0.375)
        kwargs = provider.model.generate_content_async.call_args.kwargs
        assert kwargs["generation_config"] == {"max_output_tokens": 256, "temperature": 0.1}

    @pytest.mark.asyncio
    async def test_partial_usage_metadata_is_not_counted(self):
        provider = GeminiProvider(config("gemini-1.5-flash"))
        provider.model = MagicMock()
        provider.model.generate_content_async = AsyncMock(return_value=SimpleNamespace(
            text="hi",
            usage_metadata=SimpleNamespace(prompt_token_count=1000, candidates_token_count=None),
        ))

        response = await provider.generate_response("prompt")

        assert response.success
        [record] = provider.get_requests()
        assert record.input_tokens is None
        assert record.total_tokens is None
        assert record.cost is None

    @pytest.mark.asyncio
    async def test_blocked_candidate_fails(self):
        class Blocked:
            usage_metadata = None

            @property
            def text(self):
                raise ValueError("response was blocked")

        provider = GeminiProvider(config("gemini-1.5-flash"))
        provider.model = MagicMock()
        provider.model.generate_content_async = AsyncMock(return_value=Blocked())

        response = await provider.generate_response("prompt")

        assert not response.success
        assert isinstance(response.error, UnexpectedResponseError)


class TestCreateProvider:
    """Tests for provider selection from settings."""

    @pytest.mark.parametrize("name, cls, model", [
        ("openai", OpenAIProvider, "gpt-4o-mini"),
        ("anthropic", AnthropicProvider, "claude-3-haiku-20240307"),
        ("gemini", GeminiProvider, "gemini-1.5-flash"),
    ])
    def test_selects_variant_and_default_model(self, name, cls, model):
        settings = Settings(
            github_token="t",
            github_webhook_secret="s",
            ai_api_key="k",
            ai_provider=name,
        )

        provider = create_provider(settings)

        assert isinstance(provider, cls)
        assert provider.config.model == model

    def test_explicit_model_and_pricing(self):
        settings = Settings(
            github_token="t",
            github_webhook_secret="s",
            ai_api_key="k",
            ai_provider="openai",
            ai_model="gpt-4o",
            ai_pricing={"gpt-4o": {"input_cost_per_1k_tokens": 5, "output_cost_per_1k_tokens": 15}},
            ai_request_timeout=5,
        )

        provider = create_provider(settings)

        assert provider.config.model == "gpt-4o"
        assert provider.config.timeout == 5
        assert provider.pricing["gpt-4o"].output_cost_per_1k_tokens == 15
