"""Application entry point for the reply agent HTTP service.

Runs the FastAPI app serving the Mailgun inbound webhook, telemetry
ingestion, conversation and agent-settings endpoints under uvicorn.

Configures:
- **structlog** with JSON rendering (production) or colored console (development)
- **Sentry** error forwarding through structlog-sentry (when a DSN is set)
- **Prometheus** HTTP and business metrics at ``/metrics``
- **Request IDs** bound into every log line of a request
- **Collaborators** (event store, settings provider, classifier, enhancer,
  mail sender) created once and shared through ``app.state.services``
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI, HTTPException, Request

from replyagent.agent_settings.provider import SQLiteSettingsProvider, init_settings_table
from replyagent.config import Settings, get_settings, validate_credentials
from replyagent.conversation.reconstruct import conversation_stage, reconstruct_conversation
from replyagent.domain.models import AgentSettings
from replyagent.email.client import MailgunClient
from replyagent.email.tracking import user_code_from_tracking_id
from replyagent.email.webhook import router as webhook_router
from replyagent.events.store import SQLiteEventStore, close_events_db, init_events_db
from replyagent.health import register_health_routes
from replyagent.llm.classifier import AnthropicClassifier, DefaultClassifier
from replyagent.llm.client import get_anthropic_client
from replyagent.observability.metrics import setup_metrics
from replyagent.observability.middleware import SERVICE_NAME, RequestIdMiddleware
from replyagent.observability.sentry import get_sentry_processor, init_sentry
from replyagent.templates.library import load_template_library

logger = structlog.get_logger()


def configure_logging(production: bool = False, sentry_enabled: bool = False) -> None:
    """Configure structlog for production (JSON) or development (console).

    Production mode (*production=True*): JSON rendering at INFO level.
    Development mode: colored console rendering at DEBUG level.

    Args:
        production: Enable production mode if ``True``.
        sentry_enabled: Forward ERROR events to Sentry if ``True``.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
    ]
    if sentry_enabled:
        shared_processors.append(get_sentry_processor())
    shared_processors += [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if production:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        log_level = logging.INFO
    else:
        renderer = structlog.dev.ConsoleRenderer()
        log_level = logging.DEBUG

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(service=SERVICE_NAME)


def initialize_services(settings: Settings | None = None) -> dict[str, Any]:
    """Set up all shared services for the application.

    Creates the SQLite event store and settings provider (sharing one
    database), loads the template library, and creates the Anthropic
    classifier/enhancer and the Mailgun sender when their credentials are
    configured.  Without an Anthropic key every reply is classified with the
    safe defaults.

    Args:
        settings: Application settings.  If ``None``, ``get_settings()`` is used.

    Returns:
        A dict of initialized service instances keyed by name.
    """
    if settings is None:
        settings = get_settings()

    services: dict[str, Any] = {"_settings": settings}

    # a. Event log and agent settings share one SQLite database
    db_path = settings.events_db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    db_conn = init_events_db(db_path)
    init_settings_table(db_conn)
    services["db_conn"] = db_conn
    services["event_store"] = SQLiteEventStore(db_conn)
    services["settings_provider"] = SQLiteSettingsProvider(db_conn)
    logger.info("event_store_initialized", path=str(db_path))

    # b. Reply templates
    services["template_library"] = load_template_library(settings.templates_path)

    # c. Anthropic classifier and enhancer
    api_key = settings.anthropic_api_key.get_secret_value()
    if api_key:
        anthropic_client = get_anthropic_client(api_key)
        services["anthropic_client"] = anthropic_client
        services["classifier"] = AnthropicClassifier(anthropic_client)
        services["enhancer_client"] = (
            anthropic_client if settings.enable_ai_enhancement else None
        )
        logger.info("anthropic_client_initialized", enhancement=settings.enable_ai_enhancement)
    else:
        services["classifier"] = DefaultClassifier()
        services["enhancer_client"] = None
        logger.warning("anthropic_client_not_configured")

    # d. Mailgun sender (only when replies are sent automatically)
    mailgun_key = settings.mailgun_api_key.get_secret_value()
    if settings.auto_send and mailgun_key and settings.mailgun_domain:
        services["mail_sender"] = MailgunClient(
            api_key=mailgun_key,
            domain=settings.mailgun_domain,
            sender=settings.mailgun_sender or f"AI Assistant <ai@{settings.mailgun_domain}>",
        )
        logger.info("mail_sender_initialized", domain=settings.mailgun_domain)
    else:
        services["mail_sender"] = None

    services["default_user_code"] = settings.default_user_code
    services["dedup_window"] = timedelta(seconds=settings.dedup_window_seconds)

    return services


def shutdown_services(services: dict[str, Any]) -> None:
    """Close connections opened by ``initialize_services``."""
    mail_sender = services.get("mail_sender")
    if mail_sender is not None:
        mail_sender.close()
    db_conn = services.pop("db_conn", None)
    if db_conn is not None:
        close_events_db(db_conn)
        logger.info("event_store_closed")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Lifespan context manager for FastAPI startup and shutdown.

    On shutdown: closes the database connection and HTTP clients.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control to the application.
    """
    logger.info("FastAPI application starting")
    yield
    shutdown_services(app.state.services)


def create_app(services: dict[str, Any]) -> FastAPI:
    """Create the FastAPI app with webhook, conversation and settings endpoints.

    Args:
        services: The initialized services dict from ``initialize_services``.

    Returns:
        The configured FastAPI application.
    """
    fastapi_app = FastAPI(title="Reply Agent", lifespan=lifespan)
    fastapi_app.state.services = services
    fastapi_app.add_middleware(RequestIdMiddleware)
    fastapi_app.include_router(webhook_router)
    register_health_routes(fastapi_app)
    setup_metrics(fastapi_app)

    @fastapi_app.get("/conversations/{tracking_id}")
    async def get_conversation(tracking_id: str, request: Request) -> dict[str, Any]:
        """Return the reconstructed turns of one conversation.

        The stage uses the question threshold of the conversation's settings owner.
        """
        svc = request.app.state.services
        events = await asyncio.to_thread(svc["event_store"].query, tracking_id=tracking_id)
        turns = reconstruct_conversation(events, tracking_id)
        user_code = user_code_from_tracking_id(tracking_id) or svc["default_user_code"]
        owner_settings = await asyncio.to_thread(svc["settings_provider"].get_settings, user_code)
        return {
            "tracking_id": tracking_id,
            "stage": conversation_stage(turns, owner_settings.question_threshold),
            "turns": [turn.model_dump(mode="json") for turn in turns],
        }

    @fastapi_app.get("/agent-settings/{user_id}")
    async def get_agent_settings(user_id: str, request: Request) -> dict[str, Any]:
        """Return a user's agent settings (defaults when none are stored)."""
        provider = request.app.state.services["settings_provider"]
        settings = await asyncio.to_thread(provider.get_settings, user_id)
        return {"user_id": user_id, "settings": settings.model_dump(mode="json")}

    @fastapi_app.put("/agent-settings/{user_id}")
    async def put_agent_settings(
        user_id: str, settings: AgentSettings, request: Request
    ) -> dict[str, Any]:
        """Replace a user's agent settings."""
        provider = request.app.state.services["settings_provider"]
        updated_at = await asyncio.to_thread(provider.save_settings, user_id, settings)
        return {
            "success": True,
            "user_id": user_id,
            "settings": settings.model_dump(mode="json"),
            "updated_at": updated_at,
        }

    @fastapi_app.delete("/agent-settings/{user_id}")
    async def delete_agent_settings(user_id: str, request: Request) -> dict[str, Any]:
        """Remove a user's stored settings so defaults apply again."""
        provider = request.app.state.services["settings_provider"]
        deleted = await asyncio.to_thread(provider.clear_settings, user_id)
        if not deleted:
            raise HTTPException(status_code=404, detail=f"No settings stored for {user_id}")
        return {"success": True, "user_id": user_id}

    return fastapi_app


async def main() -> None:
    """Main entry point: run the FastAPI app under uvicorn.

    1. Configure logging (and Sentry, when configured)
    2. Validate credentials
    3. Initialize services
    4. Serve until shutdown, then close the database
    """
    settings = get_settings()
    sentry_enabled = init_sentry(
        settings.sentry_dsn, "production" if settings.production else "development"
    )
    configure_logging(production=settings.production, sentry_enabled=sentry_enabled)
    logger.info("Application starting")

    validate_credentials(settings)

    services = initialize_services(settings)
    fastapi_app = create_app(services)

    config = uvicorn.Config(
        fastapi_app,
        host="0.0.0.0",
        port=settings.webhook_port,
        log_level="info",
    )
    server = uvicorn.Server(config)

    try:
        await server.serve()
    finally:
        shutdown_services(services)


def run() -> None:
    """Console-script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
