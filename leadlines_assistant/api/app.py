"""Application factory for the assistant HTTP surface."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from .. import __version__
from ..config import Settings, get_settings
from ..db.models import Base
from ..db.session import engine_from_settings, make_session_factory
from ..identity.principal import CredentialSource, StaticCredentials
from ..logging_utils import get_logger, setup_logging
from ..provider.client import AssistantProviderClient
from ..services.conversation import ConversationFacade
from ..services.run_orchestrator import RunOrchestrator
from .deps import TokenVerifier
from .errors import setup_exception_handlers
from .health import router as health_router
from .middleware import RequestIdMiddleware, RequestSizeLimitMiddleware
from .routes import router as v1_router

logger = get_logger(__name__)

# multipart framing on top of the largest accepted file
_REQUEST_OVERHEAD_BYTES = 64 * 1024


def create_app(
    token_verifier: TokenVerifier,
    settings: Settings | None = None,
    provider_client: AssistantProviderClient | None = None,
    provider_credentials: CredentialSource | None = None,
    orchestrator: RunOrchestrator | None = None,
    configure_logging: bool = True,
) -> FastAPI:
    """Build the app. The identity provider's token check is injected."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if configure_logging:
            setup_logging(settings.log_level, settings.log_json, settings.log_file)

        engine = engine_from_settings(settings)
        session_factory = make_session_factory(engine)

        # Dev convenience; production schemas come from Alembic
        if settings.auto_create_tables and not settings.is_production:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Tables created", data={"environment": settings.environment})

        client = provider_client or AssistantProviderClient(
            settings.provider_base_url,
            timeout=settings.provider_timeout_seconds,
            beta_header=settings.provider_beta_header,
        )

        app.state.settings = settings
        app.state.engine = engine
        app.state.session_factory = session_factory
        app.state.token_verifier = token_verifier
        app.state.provider_credentials = provider_credentials or StaticCredentials(
            settings.provider_api_key.get_secret_value()
        )
        app.state.facade = ConversationFacade(session_factory, client, settings, orchestrator=orchestrator)
        logger.info("Assistant API started", data={"environment": settings.environment})

        yield

        if provider_client is None:
            await client.aclose()
        await engine.dispose()
        logger.info("Assistant API stopped")

    app = FastAPI(title="LeadLines Assistant", version=__version__, lifespan=lifespan)
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.file_max_bytes + _REQUEST_OVERHEAD_BYTES)
    app.add_middleware(RequestIdMiddleware)
    setup_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(v1_router, prefix="/v1")
    return app
