"""
Services Package

- github_client: GitHub REST API client
- reviewer: review orchestration over GitHub and an AI provider
"""

from github_reviewer.services.github_client import GitHubAPIError, GitHubClient
from github_reviewer.services.reviewer import CodeReviewer, ReviewerError

__all__ = [
    "GitHubAPIError",
    "GitHubClient",
    "CodeReviewer",
    "ReviewerError",
]
