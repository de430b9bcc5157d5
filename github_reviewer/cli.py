"""
Command-line entry point.

Commands:
    server          Run the webhook server with uvicorn
    review-pr       Review one pull request and optionally submit the review
    generate-tests  Generate tests for one file on a branch and print them
"""

import argparse
import asyncio
import json
import sys
from typing import List, Optional

import uvicorn

from github_reviewer.config import get_settings
from github_reviewer.logging_config import get_logger, setup_logging
from github_reviewer.providers import create_provider
from github_reviewer.services import CodeReviewer, GitHubClient

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="github-reviewer",
        description="AI-assisted GitHub pull request reviewer"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    server = commands.add_parser("server", help="Run the webhook server")
    server.add_argument("--host", help="Override HOST")
    server.add_argument("--port", type=int, help="Override PORT")

    review = commands.add_parser("review-pr", help="Review a pull request")
    review.add_argument("owner")
    review.add_argument("repo")
    review.add_argument("number", type=int)
    review.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the review instead of submitting it"
    )

    tests = commands.add_parser("generate-tests", help="Generate tests for a file")
    tests.add_argument("owner")
    tests.add_argument("repo")
    tests.add_argument("path")
    tests.add_argument("--branch", default="main", help="Branch to read the file from")

    return parser


def _build_reviewer() -> CodeReviewer:
    settings = get_settings()
    return CodeReviewer(
        GitHubClient.from_settings(settings),
        create_provider(settings)
    )


async def _review_pr(owner: str, repo: str, number: int, dry_run: bool) -> int:
    reviewer = _build_reviewer()
    review = await reviewer.review_pull_request(owner, repo, number)
    print(json.dumps(review.model_dump(), indent=2))

    if not dry_run:
        await reviewer.submit_review(owner, repo, number, review)
        logger.info("Submitted review", owner=owner, repo=repo, pr_number=number)
    return 0


async def _generate_tests(owner: str, repo: str, path: str, branch: str) -> int:
    reviewer = _build_reviewer()
    print(await reviewer.generate_tests(path, owner, repo, branch))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Parse arguments and run the selected command."""
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(settings)

    if args.command == "server":
        uvicorn.run(
            "github_reviewer.main:app",
            host=args.host or settings.host,
            port=args.port or settings.port,
            reload=False,
            log_level=settings.log_level.lower(),
            access_log=settings.log_requests
        )
        return 0

    try:
        if args.command == "review-pr":
            return asyncio.run(_review_pr(args.owner, args.repo, args.number, args.dry_run))
        return asyncio.run(_generate_tests(args.owner, args.repo, args.path, args.branch))
    except Exception as e:
        logger.error("Command failed", command=args.command, error=str(e), error_type=type(e).__name__)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
