"""
Code Reviewer Module

This module orchestrates a pull request review. It coordinates fetching PR
data and file contents from GitHub, asking the AI provider for a review,
and posting reviews, generated tests and comment replies back to GitHub.

Design Decisions:
- File contents are fetched concurrently; a failed fetch drops that file only
- A provider failure degrades to a placeholder review instead of raising,
  so a review is always submitted
- Comment replies are best effort: every failure is logged, never raised
"""

import asyncio
from dataclasses import dataclass
from typing import List, Optional

import structlog

from github_reviewer.logging_config import get_logger
from github_reviewer.models import (
    CodeReview,
    CommentReplyStatus,
    PullRequestFile,
    ReviewComment,
    ReviewCommentData,
    ReviewFile,
    ReviewState,
)
from github_reviewer.providers import AIProvider
from github_reviewer.services.github_client import GitHubClient

DEFAULT_POSITION = 1


class ReviewerError(Exception):
    """Custom exception for orchestration failures."""
    pass


@dataclass
class FileFetchResult:
    """Content of one changed file, or the error that prevented fetching it."""
    file: PullRequestFile
    content: str = ""
    error: Optional[Exception] = None

    @property
    def reviewable(self) -> bool:
        return self.error is None and bool(self.content)


class CodeReviewer:
    """
    Coordinates GitHub and an AI provider to review pull requests.

    Usage:
        reviewer = CodeReviewer(github_client, provider)
        review = await reviewer.review_pull_request("owner", "repo", 42)
        await reviewer.submit_review("owner", "repo", 42, review)
    """

    def __init__(
        self,
        github: GitHubClient,
        provider: AIProvider,
        logger: Optional[structlog.stdlib.BoundLogger] = None
    ):
        self.github = github
        self.provider = provider
        self.logger = logger or get_logger(__name__)

    async def _fetch_file(
        self,
        owner: str,
        repo: str,
        file: PullRequestFile,
        ref: str
    ) -> FileFetchResult:
        if file.is_removed:
            return FileFetchResult(file=file)

        try:
            content = await self.github.get_file_content(owner, repo, file.filename, ref)
            return FileFetchResult(file=file, content=content)
        except Exception as e:
            self.logger.warning(
                "Failed to fetch file content",
                filename=file.filename,
                ref=ref,
                error=str(e)
            )
            return FileFetchResult(file=file, error=e)

    async def review_pull_request(self, owner: str, repo: str, pr_number: int) -> CodeReview:
        """
        Review every reviewable file of a pull request.

        Returns an empty, unapproved review when no file could be fetched, and
        a placeholder review when the provider fails.
        """
        pr = await self.github.get_pull_request(owner, repo, pr_number)
        files = await self.github.get_pull_request_files(owner, repo, pr_number)

        results = await asyncio.gather(*[
            self._fetch_file(owner, repo, file, pr.head.sha) for file in files
        ])
        fetched = [r for r in results if r.reviewable]

        self.logger.info(
            "Fetched PR file contents",
            owner=owner,
            repo=repo,
            pr_number=pr_number,
            total_files=len(files),
            reviewable_files=len(fetched),
            failed_files=sum(1 for r in results if r.error is not None)
        )

        if not fetched:
            return CodeReview(
                comments=[],
                summary=f"No reviewable files found in PR #{pr_number}",
                approved=False
            )

        review_files = [
            ReviewFile(filename=r.file.filename, content=r.content, patch=r.file.patch)
            for r in fetched
        ]

        try:
            return await self.provider.review_pull_request(review_files)
        except Exception as e:
            self.logger.error(
                "AI review failed, falling back to placeholder review",
                owner=owner,
                repo=repo,
                pr_number=pr_number,
                error=str(e),
                error_type=type(e).__name__
            )
            return CodeReview(
                comments=[
                    ReviewComment(
                        path=r.file.filename,
                        body=f"Reviewed file: {r.file.filename}",
                        position=DEFAULT_POSITION
                    )
                    for r in fetched
                ],
                summary=(
                    f"AI review failed for PR #{pr_number} ({pr.title}): {e}. "
                    f"Marked {len(fetched)} files as reviewed."
                ),
                approved=False
            )

    async def submit_review(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        review: CodeReview
    ) -> None:
        """Post a review against the current head commit of the pull request."""
        pr = await self.github.get_pull_request(owner, repo, pr_number)

        await self.github.create_review(
            owner,
            repo,
            pr_number,
            pr.head.sha,
            review.summary,
            ReviewState.APPROVE if review.approved else ReviewState.COMMENT,
            [
                {
                    "path": comment.path,
                    "position": comment.position or DEFAULT_POSITION,
                    "body": comment.body,
                }
                for comment in review.comments
            ]
        )

    async def generate_tests(self, file_path: str, owner: str, repo: str, branch: str) -> str:
        """
        Generate tests for one file as it exists on ``branch``.

        Raises:
            ReviewerError: If fetching the file or generating tests fails
        """
        try:
            content = await self.github.get_file_content(owner, repo, file_path, branch)
            return await self.provider.generate_tests(file_path, content)
        except Exception as e:
            raise ReviewerError(f"Failed to generate tests for {file_path}: {e}") from e

    async def handle_comment_response(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        comment: ReviewCommentData
    ) -> CommentReplyStatus:
        """
        Reply to a developer who answered one of the bot's review comments.

        Never raises; the returned status says what happened.
        """
        if comment.in_reply_to_id is None:
            return CommentReplyStatus.NOT_A_REPLY

        # The bot's own replies come back as webhooks too
        if self.github.is_bot_comment(comment):
            return CommentReplyStatus.OWN_COMMENT

        try:
            existing = await self.github.get_review_comments(owner, repo, pr_number)

            original = next((c for c in existing if c.id == comment.in_reply_to_id), None)
            if original is None:
                self.logger.debug(
                    "Replied-to comment not found",
                    pr_number=pr_number,
                    in_reply_to_id=comment.in_reply_to_id
                )
                return CommentReplyStatus.PARENT_NOT_FOUND

            if not self.github.is_bot_comment(original):
                return CommentReplyStatus.NOT_BOT_THREAD

            self.logger.info(
                "Developer replied to bot comment",
                owner=owner,
                repo=repo,
                pr_number=pr_number,
                comment_id=comment.id,
                author=comment.author
            )

            code_context = await self._find_code_context(owner, repo, original, existing)
            reply = await self.provider.respond_to_comment(comment.body, code_context)

            await self.github.create_reply_comment(
                owner, repo, pr_number, reply, original.id
            )
            return CommentReplyStatus.REPLIED

        except Exception as e:
            self.logger.error(
                "Failed to respond to review comment",
                owner=owner,
                repo=repo,
                pr_number=pr_number,
                comment_id=comment.id,
                error=str(e),
                error_type=type(e).__name__
            )
            return CommentReplyStatus.FAILED

    async def _find_code_context(
        self,
        owner: str,
        repo: str,
        original: ReviewCommentData,
        known_comments: List[ReviewCommentData]
    ) -> Optional[str]:
        match = next(
            (
                c for c in known_comments
                if c.path and (c.id == original.id or c.body == original.body)
            ),
            None
        )
        path = match.path if match else original.path
        if not path:
            return None

        try:
            return await self.github.get_file_content(owner, repo, path, "HEAD")
        except Exception as e:
            self.logger.warning(
                "Could not fetch code context for reply",
                path=path,
                error=str(e)
            )
            return None
