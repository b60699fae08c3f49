"""FastAPI application entry point.

This module creates and configures the FastAPI application instance and
runs the background parts of the pipeline (worker pool, scan scheduler)
for the lifetime of the app.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from scout.api.router import create_router
from scout.core.config import get_config
from scout.core.container import container
from scout.core.logging import get_logger, setup_logging
from scout.services.discovery.pipeline import DiscoveryPipeline
from scout.services.discovery.sources.webhook import WebhookReceiver

# Setup logging
setup_logging()
logger = get_logger(__name__)


def get_pipeline() -> DiscoveryPipeline:
    """FastAPI dependency for the discovery pipeline."""
    return container.pipeline()


def get_webhook_receiver() -> WebhookReceiver:
    """FastAPI dependency for the webhook receiver."""
    return container.webhook_receiver()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events.

    Starts the worker pool, the webhook receiver and (when enabled) the scan
    scheduler; stops them in reverse order on shutdown.

    Args:
        app: FastAPI application instance

    Yields:
        None
    """
    config = get_config()
    logger.info("Starting SourceScout application", env=config.app_env)

    pool = container.worker_pool()
    receiver = container.webhook_receiver()
    scheduler = container.scan_scheduler() if config.scanner_enabled else None

    await pool.start()
    await receiver.start()
    if scheduler is not None:
        await scheduler.start()
    else:
        logger.info("Pattern scanner disabled")

    yield

    logger.info("Shutting down SourceScout application")
    if scheduler is not None:
        await scheduler.stop()
    await receiver.stop()
    await pool.stop()
    await container.http_client().close()
    logger.info("Cleanup complete")


# Create FastAPI application
_config = get_config()
app = FastAPI(
    title=_config.app_name,
    description="Discovery and relevance pipeline for Apache Spark ecosystem sources",
    version="0.1.0",
    docs_url="/docs" if _config.is_development else None,
    redoc_url="/redoc" if _config.is_development else None,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=_config.cors_origins,
    allow_credentials=_config.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(
    create_router(get_pipeline=get_pipeline, get_webhook_receiver=get_webhook_receiver)
)


# Health check endpoint
@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint.

    Returns:
        Health status
    """
    cfg = get_config()
    return {
        "status": "healthy",
        "app": cfg.app_name,
        "env": cfg.app_env,
    }


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint.

    Returns:
        Welcome message
    """
    return {
        "message": "SourceScout API",
        "version": "0.1.0",
        "docs": "/docs" if get_config().is_development else "disabled",
    }
