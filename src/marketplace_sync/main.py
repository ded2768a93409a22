"""FastAPI application factory.

Creates the app with logging middleware, metrics middleware, lifespan events
that wire the marketplace client, product repository, sync engine and publish
pipeline onto app.state, and the v1 API router.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.requests import Request
from fastapi.responses import Response

from src.marketplace_sync.api.v1.router import router as v1_router
from src.marketplace_sync.config import get_settings
from src.marketplace_sync.core.database import close_db, get_session, init_db
from src.marketplace_sync.core.logging import LoggingMiddleware, configure_structlog
from src.marketplace_sync.core.monitoring import MetricsMiddleware, get_metrics_response
from src.marketplace_sync.marketplace.errors import MarketplaceConfigurationError
from src.marketplace_sync.marketplace.prom import PromClient
from src.marketplace_sync.products.repository import PostgresProductRepository
from src.marketplace_sync.sync.engine import SyncEngine
from src.marketplace_sync.sync.publish import PublishPipeline


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: init DB and sync services on startup, close on shutdown."""
    log = structlog.get_logger(__name__)
    settings = get_settings()
    configure_structlog()

    try:
        await init_db()
    except Exception:
        log.warning("startup.database_init_failed", exc_info=True)

    repository = PostgresProductRepository(session_factory=get_session)
    app.state.product_repository = repository

    try:
        client = PromClient.from_settings(settings)
    except MarketplaceConfigurationError:
        log.warning("startup.marketplace_not_configured", exc_info=True)
        app.state.marketplace_client = None
        app.state.sync_engine = None
        app.state.publish_pipeline = None
    else:
        app.state.marketplace_client = client
        app.state.sync_engine = SyncEngine(
            client=client,
            repository=repository,
            marketplace_type=settings.MARKETPLACE_TYPE,
            max_concurrency=settings.SYNC_MAX_CONCURRENCY,
            default_currency=settings.MARKETPLACE_DEFAULT_CURRENCY,
        )
        app.state.publish_pipeline = PublishPipeline(
            client=client, currency=settings.MARKETPLACE_DEFAULT_CURRENCY
        )
        log.info(
            "startup.sync_engine_initialized",
            marketplace=settings.MARKETPLACE_TYPE,
            max_concurrency=settings.SYNC_MAX_CONCURRENCY,
        )

    yield

    await close_db()
    log.info("shutdown.complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Marketplace Sync API",
        version="0.1.0",
        description="Product and order synchronization between the CRM catalog and marketplaces",
        lifespan=lifespan,
    )

    # Middleware is added in reverse order (last added = outermost)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(MetricsMiddleware)

    app.include_router(v1_router)

    # Prometheus metrics endpoint (infrastructure route, outside v1 router)
    @app.get("/metrics", include_in_schema=False)
    async def metrics(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return get_metrics_response()

    return app


# Module-level app for uvicorn
app = create_app()
