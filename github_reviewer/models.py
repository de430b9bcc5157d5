"""
Data Models Module

This module defines the Pydantic models used throughout the application.
Strong typing ensures data integrity and provides clear contracts between components.

Design Decisions:
- Use Pydantic models for all data transfer objects
- Clear separation between GitHub models, webhook events, review models
  and analytics models
- Webhook events are a tagged union discriminated on ``kind``
"""

from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enums
# =============================================================================

class PRAction(str, Enum):
    """Pull request actions that trigger a review."""
    OPENED = "opened"
    SYNCHRONIZE = "synchronize"
    REOPENED = "reopened"


class ReviewState(str, Enum):
    """GitHub review states."""
    APPROVE = "APPROVE"
    REQUEST_CHANGES = "REQUEST_CHANGES"
    COMMENT = "COMMENT"


class CommentReplyStatus(str, Enum):
    """Outcome of handling a review comment webhook."""
    REPLIED = "replied"
    NOT_A_REPLY = "not_a_reply"
    PARENT_NOT_FOUND = "parent_not_found"
    NOT_BOT_THREAD = "not_bot_thread"
    OWN_COMMENT = "own_comment"
    FAILED = "failed"


# =============================================================================
# GitHub Models
# =============================================================================

class GitHubUser(BaseModel):
    """GitHub user information."""
    login: str
    id: Optional[int] = None
    type: str = "User"


class GitHubRepository(BaseModel):
    """GitHub repository information."""
    name: str
    owner: GitHubUser
    full_name: Optional[str] = None
    default_branch: str = "main"


class GitRef(BaseModel):
    """Head or base of a pull request."""
    ref: str
    sha: str


class PullRequest(BaseModel):
    """Pull request metadata."""
    number: int
    title: str
    body: Optional[str] = None
    user: Optional[GitHubUser] = None
    html_url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    head: GitRef
    base: GitRef


class PullRequestFile(BaseModel):
    """
    Information about a file in a pull request.

    Attributes:
        filename: Path to the file in the repository
        status: Change status (added, removed, modified, renamed, copied)
        patch: Unified diff patch (None for binary or very large files)
    """
    filename: str
    status: str
    additions: int = 0
    deletions: int = 0
    changes: int = 0
    patch: Optional[str] = None
    blob_url: Optional[str] = None
    raw_url: Optional[str] = None
    contents_url: Optional[str] = None

    @property
    def is_removed(self) -> bool:
        return self.status == "removed"


class ReviewCommentData(BaseModel):
    """A pull request review comment as GitHub reports it."""
    id: int
    body: str = ""
    user: Optional[GitHubUser] = None
    path: Optional[str] = None
    position: Optional[int] = None
    line: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    html_url: Optional[str] = None
    in_reply_to_id: Optional[int] = None

    @property
    def author(self) -> Optional[str]:
        return self.user.login if self.user else None


# =============================================================================
# Webhook Payload Models
# =============================================================================

class PullRequestNumber(BaseModel):
    number: int


class PullRequestWebhookPayload(BaseModel):
    """Fields of a ``pull_request`` payload needed to dispatch a review."""
    action: str
    number: int
    repository: GitHubRepository


class ReviewCommentWebhookPayload(BaseModel):
    """Fields of a ``pull_request_review_comment`` payload."""
    action: str
    comment: ReviewCommentData
    pull_request: PullRequestNumber
    repository: GitHubRepository


# =============================================================================
# Webhook Events
# =============================================================================

class PingEvent(BaseModel):
    kind: Literal["ping"] = "ping"


class PullRequestEvent(BaseModel):
    """A pull request was opened, updated or otherwise changed."""
    kind: Literal["pull_request"] = "pull_request"
    action: str
    pr_number: int
    owner: str
    repo: str

    @property
    def triggers_review(self) -> bool:
        return self.action in {a.value for a in PRAction}


class ReviewCommentEvent(BaseModel):
    """A review comment was created, edited or deleted."""
    kind: Literal["pull_request_review_comment"] = "pull_request_review_comment"
    action: str
    pr_number: int
    owner: str
    repo: str
    comment: ReviewCommentData


class UnsupportedEvent(BaseModel):
    """Any event type the gateway acknowledges without acting on."""
    kind: Literal["other"] = "other"
    event_type: Optional[str] = None


WebhookEvent = Annotated[
    Union[PingEvent, PullRequestEvent, ReviewCommentEvent, UnsupportedEvent],
    Field(discriminator="kind"),
]


# =============================================================================
# Review Models
# =============================================================================

class ReviewFile(BaseModel):
    """A changed file handed to the AI provider for review."""
    filename: str
    content: str
    patch: Optional[str] = None


class ReviewComment(BaseModel):
    """A single review comment produced by the AI provider."""
    model_config = ConfigDict(frozen=True)

    path: str
    body: str
    position: Optional[int] = None


class CodeReview(BaseModel):
    """
    Structured review of a pull request.

    Parsed once from the provider output and never mutated afterwards.
    """
    model_config = ConfigDict(frozen=True)

    comments: List[ReviewComment] = Field(default_factory=list)
    summary: str = ""
    approved: bool = False


class FileTestOutcome(BaseModel):
    """Result of generating and posting tests for one file."""
    path: str
    success: bool
    test_code: Optional[str] = None
    error: Optional[str] = None


class TestGenerationReport(BaseModel):
    """Per-file outcomes of a test generation batch."""
    __test__ = False  # not a pytest test class

    pr_number: int
    outcomes: List[FileTestOutcome] = Field(default_factory=list)

    @property
    def succeeded(self) -> List[FileTestOutcome]:
        return [o for o in self.outcomes if o.success]

    @property
    def failed(self) -> List[FileTestOutcome]:
        return [o for o in self.outcomes if not o.success]


# =============================================================================
# Analytics Models
# =============================================================================

class UsageAnalytics(BaseModel):
    """Aggregate statistics over a (date-filtered) view of the request ledger."""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    total_cost: float = 0.0
    average_latency_ms: float = 0.0
    requests_by_model: Dict[str, int] = Field(default_factory=dict)


class ModelCostSummary(BaseModel):
    """Per-model totals of the cost breakdown."""
    requests: int = 0
    tokens: int = 0
    cost: float = 0.0
