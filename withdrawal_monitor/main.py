from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from withdrawal_monitor import __version__
from withdrawal_monitor.core.config import get_settings
from withdrawal_monitor.core.logging import configure_logging, request_id_middleware
from withdrawal_monitor.core.services import get_services, set_services
from withdrawal_monitor.notifications.router import router as subscriptions_router
from withdrawal_monitor.scheduler.router import router as poller_router

logger = logging.getLogger(__name__)

settings = get_settings()
configure_logging(settings.ENV, settings.DEBUG)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events."""
    # Startup
    logger.info("=" * 70)
    logger.info("🚀 Starting withdrawal monitor...")
    logger.info(f"Environment: {settings.ENV}")
    logger.info(f"RPC endpoints: {len(settings.rpc_urls())}")
    logger.info("=" * 70)

    services = get_services()

    if services.scheduler.config.enabled:
        await services.scheduler.start()
        logger.info("✓ Poll scheduler started")
    else:
        logger.info("Poll scheduler not auto-started (POLLER_AUTOSTART=false)")
        logger.info("   Use POST /poller/start to begin polling")

    logger.info("✓ Startup complete - Ready to process requests")

    yield

    # Shutdown
    logger.info("🛑 Shutting down withdrawal monitor...")
    await services.aclose()
    set_services(None)
    logger.info("✓ Shutdown complete")


app = FastAPI(title="Withdrawal Monitor", version=__version__, lifespan=lifespan)
app.middleware("http")(request_id_middleware)
app.include_router(poller_router)
app.include_router(subscriptions_router)


@app.get("/")
def health_check():
    logger.debug("Health check endpoint called")
    return {"status": "ok"}


@app.get("/healthz")
def healthz():
    logger.debug(f"Healthz endpoint called (env: {settings.ENV})")
    return {"status": "healthy", "env": settings.ENV}
