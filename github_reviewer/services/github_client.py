"""
GitHub API Client Module

This module provides the client the reviewer uses to talk to the GitHub REST API:
pull request metadata, changed files, file contents, reviews and review comments.

Design Decisions:
- Use httpx for async HTTP requests
- Authenticate with a single token from configuration
- Support pagination for file and comment listings
- No retries or client-side rate limiting; failures surface as GitHubAPIError
"""

import base64
import binascii
from urllib.parse import quote
from typing import Any, Dict, List, Optional

import httpx
import structlog

from github_reviewer.config import Settings
from github_reviewer.logging_config import get_logger
from github_reviewer.models import (
    PullRequest,
    PullRequestFile,
    ReviewCommentData,
    ReviewState,
)


class GitHubAPIError(Exception):
    """Custom exception for GitHub API errors."""
    def __init__(self, message: str, status_code: Optional[int] = None, response_body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class GitHubClient:
    """
    Async GitHub API client.

    Usage:
        client = GitHubClient(token="ghp_...", bot_username="review-bot")
        files = await client.get_pull_request_files("owner", "repo", 42)
    """

    PER_PAGE = 100

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.github.com",
        bot_username: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[structlog.stdlib.BoundLogger] = None
    ):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.bot_username = bot_username
        self.timeout = timeout
        self._transport = transport
        self.logger = logger or get_logger(__name__)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        logger: Optional[structlog.stdlib.BoundLogger] = None
    ) -> "GitHubClient":
        return cls(
            token=settings.github_token,
            base_url=settings.github_api_url,
            bot_username=settings.bot_username,
            timeout=settings.github_timeout,
            logger=logger,
        )

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    async def _request(
        self,
        method: str,
        endpoint: str,
        **kwargs
    ) -> httpx.Response:
        """
        Make an authenticated request to the GitHub API.

        Raises:
            GitHubAPIError: On transport failure or any 4xx/5xx response
        """
        url = f"{self.base_url}{endpoint}"

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.request(
                    method,
                    url,
                    headers=self._headers(),
                    **kwargs
                )
            except httpx.HTTPError as e:
                raise GitHubAPIError(f"GitHub request failed: {e}") from e

        remaining = response.headers.get("x-ratelimit-remaining")
        if remaining and remaining.isdigit() and int(remaining) < 100:
            self.logger.warning(
                "GitHub API rate limit running low",
                remaining=int(remaining),
                reset_at=response.headers.get("x-ratelimit-reset")
            )

        if response.status_code >= 400:
            error_body = response.text
            self.logger.error(
                "GitHub API error",
                status_code=response.status_code,
                method=method,
                endpoint=endpoint,
                error=error_body[:500]
            )
            raise GitHubAPIError(
                f"GitHub API error: {response.status_code}",
                status_code=response.status_code,
                response_body=error_body
            )

        return response

    async def _paginate(self, endpoint: str) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        page = 1

        while True:
            response = await self._request(
                "GET",
                endpoint,
                params={"page": page, "per_page": self.PER_PAGE}
            )
            batch = response.json()
            items.extend(batch)

            if len(batch) < self.PER_PAGE:
                break
            page += 1

        return items

    async def get_pull_request(self, owner: str, repo: str, pr_number: int) -> PullRequest:
        response = await self._request("GET", f"/repos/{owner}/{repo}/pulls/{pr_number}")
        return PullRequest.model_validate(response.json())

    async def get_pull_request_files(
        self,
        owner: str,
        repo: str,
        pr_number: int
    ) -> List[PullRequestFile]:
        """Fetch every file changed in a pull request, following pagination."""
        data = await self._paginate(f"/repos/{owner}/{repo}/pulls/{pr_number}/files")
        files = [PullRequestFile.model_validate(item) for item in data]

        self.logger.debug(
            "Fetched PR files",
            owner=owner,
            repo=repo,
            pr_number=pr_number,
            num_files=len(files)
        )

        return files

    async def get_file_content(self, owner: str, repo: str, path: str, ref: str) -> str:
        """
        Fetch a file at ``ref`` and return it as text.

        Raises:
            GitHubAPIError: If the path is not a file with retrievable text content
        """
        response = await self._request(
            "GET",
            f"/repos/{owner}/{repo}/contents/{quote(path, safe='/')}",
            params={"ref": ref}
        )
        data = response.json()

        if not isinstance(data, dict) or not isinstance(data.get("content"), str):
            raise GitHubAPIError(f"Could not get content for {path}")

        try:
            return base64.b64decode(data["content"]).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise GitHubAPIError(f"Could not decode content for {path}: {e}") from e

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
        payload = {
            "commit_id": commit_sha,
            "body": body,
            "event": ReviewState(event).value,
            "comments": comments,
        }
        await self._request("POST", f"/repos/{owner}/{repo}/pulls/{pr_number}/reviews", json=payload)

        self.logger.info(
            "Review posted",
            owner=owner,
            repo=repo,
            pr_number=pr_number,
            review_state=payload["event"],
            num_comments=len(comments)
        )

    async def get_review_comments(
        self,
        owner: str,
        repo: str,
        pr_number: int
    ) -> List[ReviewCommentData]:
        data = await self._paginate(f"/repos/{owner}/{repo}/pulls/{pr_number}/comments")
        return [ReviewCommentData.model_validate(item) for item in data]

    async def create_reply_comment(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        body: str,
        comment_id: int
    ) -> None:
        await self._request(
            "POST",
            f"/repos/{owner}/{repo}/pulls/{pr_number}/comments/{comment_id}/replies",
            json={"body": body}
        )

    def is_bot_comment(self, comment: ReviewCommentData) -> bool:
        """True if the comment was written by the configured bot account."""
        if not self.bot_username:
            return False
        return comment.author == self.bot_username
