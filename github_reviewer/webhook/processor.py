"""
Webhook Processor Module

This module runs the work a webhook delivery triggers, after the HTTP
response has been sent: the review cycle for pull request events and the
reply flow for review comment events.

Design Decisions:
- Background work never raises; failures are logged
- Test generation collects a per-file outcome instead of silently skipping
  failed files, so partial failures are visible and testable
- Review submission always happens, even on provider failure; tests and
  replies are best effort
"""

import posixpath
from typing import Iterable, Optional, Tuple

import structlog

from github_reviewer.logging_config import get_logger
from github_reviewer.models import (
    CodeReview,
    CommentReplyStatus,
    FileTestOutcome,
    PullRequestEvent,
    PullRequestFile,
    ReviewCommentEvent,
    ReviewState,
    TestGenerationReport,
)
from github_reviewer.services.reviewer import CodeReviewer

TEST_STEM_SUFFIXES = ("_test", ".test", ".spec")

FENCE_LANGUAGES = {
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".py": "python",
    ".go": "go",
    ".java": "java",
    ".rb": "ruby",
}


def is_test_candidate(file: PullRequestFile, extensions: Iterable[str]) -> bool:
    """A changed source file that is not itself a test."""
    if file.is_removed:
        return False
    stem = posixpath.splitext(posixpath.basename(file.filename))[0]
    if stem in ("test", "spec") or stem.startswith("test_") or stem.endswith(TEST_STEM_SUFFIXES):
        return False
    return file.filename.endswith(tuple(extensions))


def format_test_comment(file_path: str, test_code: str) -> str:
    language = FENCE_LANGUAGES.get(posixpath.splitext(file_path)[1], "")
    return f"## Generated Tests for `{file_path}`\n```{language}\n{test_code}\n```"


class WebhookProcessor:
    """
    Executes the asynchronous side of webhook handling.

    Usage:
        processor = WebhookProcessor(reviewer, auto_generate_tests=True)
        await processor.process_pull_request(event)
    """

    def __init__(
        self,
        reviewer: CodeReviewer,
        auto_generate_tests: bool = False,
        test_extensions: Tuple[str, ...] = (".ts", ".js", ".py"),
        logger: Optional[structlog.stdlib.BoundLogger] = None
    ):
        self.reviewer = reviewer
        self.auto_generate_tests = auto_generate_tests
        self.test_extensions = tuple(test_extensions)
        self.logger = logger or get_logger(__name__)

    async def process_pull_request(self, event: PullRequestEvent) -> Optional[CodeReview]:
        """
        Review, submit and optionally generate tests for a pull request.

        Returns the submitted review, or None if the event was skipped or the
        cycle failed.
        """
        if not event.triggers_review:
            self.logger.debug("Ignoring pull request action", action=event.action)
            return None

        task_id = f"{event.owner}/{event.repo}#{event.pr_number}"
        self.logger.info("Processing pull request", task_id=task_id, action=event.action)

        try:
            review = await self.reviewer.review_pull_request(event.owner, event.repo, event.pr_number)
            self.logger.info(
                "Generated review",
                task_id=task_id,
                num_comments=len(review.comments),
                approved=review.approved
            )

            await self.reviewer.submit_review(event.owner, event.repo, event.pr_number, review)
            self.logger.info("Submitted review", task_id=task_id)

            if self.auto_generate_tests:
                report = await self.generate_tests_for_pr(event.owner, event.repo, event.pr_number)
                self.logger.info(
                    "Test generation finished",
                    task_id=task_id,
                    succeeded=len(report.succeeded),
                    failed=len(report.failed)
                )

            return review

        except Exception as e:
            self.logger.error(
                "Pull request processing failed",
                task_id=task_id,
                error=str(e),
                error_type=type(e).__name__
            )
            return None

    async def generate_tests_for_pr(
        self,
        owner: str,
        repo: str,
        pr_number: int
    ) -> TestGenerationReport:
        """
        Generate tests for each eligible changed file and post each as its
        own comment-only review. One file failing does not stop the rest.
        """
        report = TestGenerationReport(pr_number=pr_number)
        github = self.reviewer.github

        pr = await github.get_pull_request(owner, repo, pr_number)
        files = await github.get_pull_request_files(owner, repo, pr_number)
        candidates = [f for f in files if is_test_candidate(f, self.test_extensions)]

        for file in candidates:
            try:
                self.logger.info("Generating tests", filename=file.filename, pr_number=pr_number)
                test_code = await self.reviewer.generate_tests(file.filename, owner, repo, pr.head.ref)

                await github.create_review(
                    owner,
                    repo,
                    pr_number,
                    pr.head.sha,
                    f"Generated tests for {file.filename}",
                    ReviewState.COMMENT,
                    [{
                        "path": file.filename,
                        "position": 1,
                        "body": format_test_comment(file.filename, test_code),
                    }]
                )
                report.outcomes.append(
                    FileTestOutcome(path=file.filename, success=True, test_code=test_code)
                )
            except Exception as e:
                self.logger.error(
                    "Error generating tests",
                    filename=file.filename,
                    pr_number=pr_number,
                    error=str(e)
                )
                report.outcomes.append(
                    FileTestOutcome(path=file.filename, success=False, error=str(e))
                )

        return report

    async def process_review_comment(self, event: ReviewCommentEvent) -> Optional[CommentReplyStatus]:
        """Hand a newly created review comment to the reply flow."""
        if event.action != "created":
            return None

        self.logger.info(
            "Received review comment",
            owner=event.owner,
            repo=event.repo,
            pr_number=event.pr_number,
            comment_id=event.comment.id
        )

        status = await self.reviewer.handle_comment_response(
            event.owner, event.repo, event.pr_number, event.comment
        )
        self.logger.debug("Review comment handled", comment_id=event.comment.id, status=status.value)
        return status
