"""
FastAPI Application Entry Point

This module creates and configures the FastAPI application.
It wires the GitHub client, AI provider, reviewer and webhook processor
together and sets up routes, middleware, and exception handlers.

Design Decisions:
- Collaborators live on app.state so tests can inject their own
- Use lifespan events for startup/shutdown logging
- Add CORS middleware for flexibility
- Expose health and analytics endpoints
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from github_reviewer import __version__
from github_reviewer.analytics import router as analytics_router
from github_reviewer.config import Settings, get_settings
from github_reviewer.logging_config import get_logger, setup_logging
from github_reviewer.providers import AIProvider, create_provider
from github_reviewer.services import CodeReviewer, GitHubClient
from github_reviewer.webhook import WebhookProcessor, create_webhook_router

logger = get_logger(__name__)

PROCESS_STARTED_AT = time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown events for the application.
    """
    settings: Settings = app.state.settings
    logger.info(
        "Starting GitHub reviewer",
        host=settings.host,
        port=settings.port,
        provider=app.state.provider.display_name,
        webhook_path=settings.webhook_path
    )

    yield

    logger.info("Shutting down GitHub reviewer")


def create_app(
    settings: Optional[Settings] = None,
    provider: Optional[AIProvider] = None,
    github: Optional[GitHubClient] = None
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Configuration; loaded from the environment when omitted
        provider: AI provider; built from settings when omitted
        github: GitHub client; built from settings when omitted

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or get_settings()
    setup_logging(settings)

    provider = provider or create_provider(settings, logger=get_logger("github_reviewer.providers"))
    github = github or GitHubClient.from_settings(settings, logger=get_logger("github_reviewer.github"))
    reviewer = CodeReviewer(github, provider, logger=get_logger("github_reviewer.reviewer"))
    processor = WebhookProcessor(
        reviewer,
        auto_generate_tests=settings.auto_generate_tests,
        test_extensions=tuple(settings.test_extensions_list),
        logger=get_logger("github_reviewer.processor")
    )

    app = FastAPI(
        title="GitHub Reviewer",
        description="AI-assisted GitHub Pull Request reviewer",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json"
    )

    app.state.settings = settings
    app.state.provider = provider
    app.state.github = github
    app.state.reviewer = reviewer
    app.state.processor = processor
    app.state.started_at = PROCESS_STARTED_AT

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routes
    app.include_router(create_webhook_router(settings.webhook_path))
    app.include_router(analytics_router)

    # Add global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request,
        exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            error_type=type(exc).__name__
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "Internal server error",
                "type": type(exc).__name__
            }
        )

    @app.get("/")
    async def root():
        """Root endpoint with basic info."""
        return {
            "name": "GitHub Reviewer",
            "version": __version__,
            "status": "running",
            "provider": app.state.provider.display_name,
            "docs": "/docs"
        }

    @app.get("/health")
    async def health_check():
        """
        Health check endpoint.

        Returns liveness, the current time and process uptime in seconds.
        """
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - app.state.started_at, 3)
        }

    return app


# Create the application instance
app = create_app()
