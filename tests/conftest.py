"""
Test Configuration

Pytest configuration and fixtures for the test suite.
"""

import os

# Required settings must exist before github_reviewer.main is imported
os.environ.setdefault("GITHUB_TOKEN", "test-github-token")
os.environ.setdefault("GITHUB_WEBHOOK_SECRET", "test_secret")
os.environ.setdefault("AI_API_KEY", "test-ai-key")
os.environ.setdefault("LOG_JSON_FORMAT", "false")

import base64
from typing import Any, Dict, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient

from github_reviewer.config import ModelPricing, Settings
from github_reviewer.models import (
    GitRef,
    GitHubUser,
    PullRequest,
    PullRequestFile,
    ReviewCommentData,
    ReviewState,
)
from github_reviewer.providers.base import AIProvider, ProviderConfig
from github_reviewer.providers.pricing import TokenUsage
from github_reviewer.services.github_client import GitHubAPIError

WEBHOOK_SECRET = "test_secret"
STUB_MODEL = "stub-model"


class StubProvider(AIProvider):
    """
    Provider whose vendor call returns queued replies.

    A queued exception is raised from the vendor call instead of returned.
    """

    service_name = "StubProvider"
    display_name = "Stub"

    def __init__(
        self,
        replies: Optional[List[Any]] = None,
        usage: Optional[TokenUsage] = TokenUsage(input_tokens=100, output_tokens=50),
        config: Optional[ProviderConfig] = None
    ):
        super().__init__(config or ProviderConfig(
            api_key="test",
            model=STUB_MODEL,
            pricing={
                STUB_MODEL: ModelPricing(input_cost_per_1k_tokens=0.01, output_cost_per_1k_tokens=0.03)
            },
        ))
        self.replies = list(replies or [])
        self.usage = usage
        self.prompts: List[str] = []
        self.options: List[Dict[str, Any]] = []

    async def _create_completion(self, prompt: str, options: Dict[str, Any]) -> Any:
        self.prompts.append(prompt)
        self.options.append(options)
        reply = self.replies.pop(0) if self.replies else '{"comments": [], "summary": "ok", "approved": true}'
        if isinstance(reply, BaseException):
            raise reply
        return reply

    def _extract_content(self, response: Any) -> str:
        return response

    def _extract_usage(self, response: Any) -> Optional[TokenUsage]:
        return self.usage


class FakeGitHub:
    """In-memory stand-in for GitHubClient."""

    def __init__(
        self,
        files: Optional[Dict[str, str]] = None,
        statuses: Optional[Dict[str, str]] = None,
        comments: Optional[List[ReviewCommentData]] = None,
        bot_username: Optional[str] = "review-bot",
        failing_paths: Optional[set] = None
    ):
        self.contents = dict(files or {})
        self.statuses = dict(statuses or {})
        self.comments = list(comments or [])
        self.bot_username = bot_username
        self.failing_paths = set(failing_paths or ())
        self.pull_request = PullRequest(
            number=42,
            title="Add new feature",
            head=GitRef(ref="feature-branch", sha="abc123def456"),
            base=GitRef(ref="main", sha="xyz789abc012"),
        )
        self.reviews: List[Dict[str, Any]] = []
        self.replies: List[Dict[str, Any]] = []
        self.content_requests: List[tuple] = []

    async def get_pull_request(self, owner: str, repo: str, pr_number: int) -> PullRequest:
        return self.pull_request.model_copy(update={"number": pr_number})

    async def get_pull_request_files(self, owner: str, repo: str, pr_number: int) -> List[PullRequestFile]:
        names = list(self.contents) + [n for n in self.statuses if n not in self.contents]
        return [
            PullRequestFile(filename=name, status=self.statuses.get(name, "modified"), patch="@@ -1 +1 @@")
            for name in names
        ]

    async def get_file_content(self, owner: str, repo: str, path: str, ref: str) -> str:
        self.content_requests.append((path, ref))
        if path in self.failing_paths or path not in self.contents:
            raise GitHubAPIError(f"Could not get content for {path}", status_code=404)
        return self.contents[path]

    async def create_review(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        commit_sha: str,
        body: str,
        event: ReviewState,
        comments: List[Dict[str, Any]]
    ) -> None:
        self.reviews.append({
            "pr_number": pr_number,
            "commit_sha": commit_sha,
            "body": body,
            "event": event,
            "comments": comments,
        })

    async def get_review_comments(self, owner: str, repo: str, pr_number: int) -> List[ReviewCommentData]:
        return list(self.comments)

    async def create_reply_comment(self, owner: str, repo: str, pr_number: int, body: str, comment_id: int) -> None:
        self.replies.append({"pr_number": pr_number, "body": body, "comment_id": comment_id})

    def is_bot_comment(self, comment: ReviewCommentData) -> bool:
        if not self.bot_username:
            return False
        return comment.author == self.bot_username


def make_comment(
    comment_id: int,
    author: str,
    body: str = "",
    path: Optional[str] = None,
    in_reply_to_id: Optional[int] = None
) -> ReviewCommentData:
    return ReviewCommentData(
        id=comment_id,
        body=body,
        user=GitHubUser(login=author),
        path=path,
        in_reply_to_id=in_reply_to_id,
    )


def encode_content(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        github_token="test-github-token",
        github_webhook_secret=WEBHOOK_SECRET,
        ai_api_key="test-ai-key",
        log_json_format=False,
    )


@pytest.fixture
def stub_provider() -> StubProvider:
    return StubProvider()


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub(files={"src/a.ts": "export const a = 1;\n"})


@pytest.fixture
def app(settings: Settings, stub_provider: StubProvider, fake_github: FakeGitHub):
    from github_reviewer.main import create_app

    return create_app(settings=settings, provider=stub_provider, github=fake_github)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """Create a test client for synchronous tests."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def sample_pr_payload() -> dict:
    """Sample pull request webhook payload."""
    return {
        "action": "opened",
        "number": 42,
        "pull_request": {
            "id": 123456789,
            "number": 42,
            "state": "open",
            "title": "Add new feature",
            "body": "This PR adds a new feature to the application.",
            "user": {
                "login": "testuser",
                "id": 12345,
                "type": "User"
            },
            "html_url": "https://github.com/owner/repo/pull/42",
            "head": {
                "ref": "feature-branch",
                "sha": "abc123def456"
            },
            "base": {
                "ref": "main",
                "sha": "xyz789abc012"
            },
            "created_at": "2024-01-15T10:00:00Z",
            "updated_at": "2024-01-15T10:00:00Z"
        },
        "repository": {
            "id": 111,
            "name": "repo",
            "full_name": "owner/repo",
            "private": False,
            "owner": {
                "login": "owner",
                "id": 1,
                "type": "User"
            },
            "html_url": "https://github.com/owner/repo",
            "default_branch": "main"
        },
        "sender": {
            "login": "testuser",
            "id": 12345,
            "type": "User"
        }
    }


@pytest.fixture
def sample_comment_payload() -> dict:
    """Sample pull_request_review_comment webhook payload."""
    return {
        "action": "created",
        "comment": {
            "id": 2002,
            "body": "Why is this a problem?",
            "user": {"login": "developer", "id": 7, "type": "User"},
            "path": "src/a.ts",
            "in_reply_to_id": 1001
        },
        "pull_request": {"number": 42},
        "repository": {
            "name": "repo",
            "owner": {"login": "owner", "id": 1, "type": "User"}
        }
    }
