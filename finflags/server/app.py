"""
FastAPI application for the feature-flag Context Store.

Proxies server-side flag evaluation to LaunchDarkly and falls back to
static defaults when the provider is unconfigured or unreachable.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from finflags.common.errors import NotFoundError
from finflags.common.logging import install_fastapi_request_id_middleware, utc_now_iso
from finflags.server.config import Settings, get_settings, validate_config
from finflags.server.evaluation import ContextStore
from finflags.server.provider import FlagProvider, init_provider
from finflags.server.routes import catalog, flags
from finflags.server.schemas import HealthResponse

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[Settings], Optional[FlagProvider]]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown events."""
    settings: Settings = app.state.settings
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    config_warnings = validate_config(settings)
    if config_warnings:
        logger.warning("Configuration issues detected:")
        for warning in config_warnings:
            logger.warning(f"  - {warning}")
    else:
        logger.info("Configuration validated successfully")

    # Startup blocks until the provider initializes (or gives up).
    provider = await asyncio.to_thread(app.state.provider_factory, settings)
    app.state.store = ContextStore(provider)

    yield

    logger.info(f"Shutting down {settings.APP_NAME}")
    if provider is not None:
        await asyncio.to_thread(provider.close)
        logger.info("LaunchDarkly client closed")


def create_app(
    settings: Optional[Settings] = None,
    *,
    provider_factory: ProviderFactory = init_provider,
) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Server-side feature flag evaluation with static fallback values",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.provider_factory = provider_factory
    # Fallback-only until the lifespan has initialized a provider.
    app.state.store = ContextStore(None)

    app.include_router(catalog.router, prefix="/api", tags=["catalog"])
    app.include_router(flags.router, prefix="/api", tags=["flags"])

    @app.exception_handler(NotFoundError)
    async def _not_found(request: Request, exc: NotFoundError):
        logger.info(f"Unknown selection requested: {request.url.path}")
        return JSONResponse(status_code=404, content={"error": exc.message})

    # --- Health Check ---

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request):
        """Health check endpoint."""
        store: ContextStore = request.app.state.store
        return {
            "status": "healthy",
            "timestamp": utc_now_iso(),
            "launchDarkly": "connected" if store.provider_connected else "disconnected",
        }

    # --- Root ---

    @app.get("/")
    async def root():
        return {
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "message": "Context Store - API Mode",
        }

    # CORS for the Presenter's dev origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.CLIENT_URL],
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    install_fastapi_request_id_middleware(app, service="context-store")

    return app


app = create_app()
