"""FastAPI application entry point."""

from __future__ import annotations

import asyncio
import contextlib
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from loandocs.api.schemas.integration import HealthResponse
from loandocs.api.v1 import generic_framework, integration
from loandocs.clients import create_client
from loandocs.core.config import Settings, settings as default_settings
from loandocs.core.logging import get_logger, setup_logging
from loandocs.handshake.protocol import HandshakeProtocol
from loandocs.handshake.sessions import SessionStore, run_sweeper
from loandocs.pipeline.orchestrator import Orchestrator
from loandocs.processing.document_processor import DocumentProcessor

API_PREFIX = "/api"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    settings: Settings = app.state.settings
    setup_logging(settings.log_level, json_logs=settings.APP_ENV != "development")
    logger = get_logger("startup")
    logger.info(
        "Application starting",
        env=settings.APP_ENV,
        mode=str(app.state.orchestrator.client.mode),
        stateless=settings.STATELESS,
    )

    sweeper: asyncio.Task | None = None
    if not settings.STATELESS:
        sweeper = asyncio.create_task(
            run_sweeper(app.state.sessions, settings.SESSION_SWEEP_INTERVAL_SECONDS),
            name="session-sweeper",
        )

    yield

    logger.info("Application shutting down")
    if sweeper is not None:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
    await app.state.orchestrator.aclose()


def create_app(
    settings: Settings | None = None,
    orchestrator: Orchestrator | None = None,
    sessions: SessionStore | None = None,
) -> FastAPI:
    """Build the app.  Collaborators can be injected (tests); otherwise built from settings."""
    settings = settings or default_settings

    app = FastAPI(
        title="Loan Document Integration API",
        description="Receive → process → return pipeline for loan documents",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    if orchestrator is None:
        orchestrator = Orchestrator(
            client=create_client(settings),
            processor=DocumentProcessor(delay_ms=settings.PROCESSING_DELAY_MS),
        )
    if sessions is None:
        sessions = SessionStore(ttl_seconds=settings.SESSION_TTL_MINUTES * 60)

    app.state.orchestrator = orchestrator
    app.state.sessions = sessions
    app.state.handshake = HandshakeProtocol(
        app.state.sessions,
        app.state.orchestrator,
        settings.public_base_url,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Restrict in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(integration.router, prefix=API_PREFIX)
    app.include_router(generic_framework.router, prefix=API_PREFIX)

    # Same payload as /api/health
    app.add_api_route("/health", integration.health, response_model=HealthResponse, tags=["Health"])

    return app


app = create_app()
