"""Main FastAPI application for the delivery fee service."""

import asyncio
import logging
import traceback
from contextlib import asynccontextmanager, suppress
from typing import AsyncGenerator

import redis.asyncio as redis
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi_cache import FastAPICache
from fastapi_cache.backends.inmemory import InMemoryBackend
from fastapi_cache.backends.redis import RedisBackend

from delivery_fee.api.endpoints import invalidate_fee_cache, router as delivery_fee_router
from delivery_fee.config import (
    HOST, PORT, DEBUG, REDIS_URL, CACHE_PREFIX,
    OBSERVATION_STORE, FETCH_CRON, FETCH_ON_STARTUP
)
from delivery_fee.fees.service import QuoteService
from delivery_fee.logging_config import configure_logging
from delivery_fee.weather.scheduler import WeatherIngestionScheduler
from delivery_fee.weather.service import ObservationFetcher
from delivery_fee.weather.store import (
    InMemoryObservationStore, ObservationStore, RedisObservationStore
)

# Configure logging
configure_logging()
logger = logging.getLogger(__name__)


def create_store() -> ObservationStore:
    """Create the observation store selected by configuration.

    Raises:
        ValueError: If OBSERVATION_STORE names an unknown backend
    """
    if OBSERVATION_STORE == "memory":
        logger.info("Using in-memory observation store")
        return InMemoryObservationStore()
    if OBSERVATION_STORE == "redis":
        logger.info(f"Using Redis observation store at {REDIS_URL}")
        return RedisObservationStore(redis.from_url(REDIS_URL))
    raise ValueError(f"Unknown OBSERVATION_STORE: {OBSERVATION_STORE!r} (expected 'redis' or 'memory')")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager: wires the store, the quote service and the ingestion loop."""
    try:
        store = create_store()

        cache_client = None
        if OBSERVATION_STORE == "redis":
            cache_client = redis.from_url(REDIS_URL)
            FastAPICache.init(RedisBackend(cache_client), prefix=CACHE_PREFIX)
        else:
            FastAPICache.init(InMemoryBackend(), prefix=CACHE_PREFIX)
        logger.info(f"Cache backend active: {FastAPICache.get_backend()}")

        app.state.quote_service = QuoteService(store)

        fetcher = ObservationFetcher()
        scheduler = WeatherIngestionScheduler(fetcher, store, FETCH_CRON, on_stored=invalidate_fee_cache)
        scheduler_task = asyncio.create_task(scheduler.run(run_immediately=FETCH_ON_STARTUP))

        logger.info("Starting Delivery Fee Service")
    except Exception as e:
        logger.error(f"Startup error: {e}")
        logger.error(traceback.format_exc())
        raise

    try:
        yield
    finally:
        logger.info("Shutting down Delivery Fee Service")
        scheduler.stop()
        scheduler_task.cancel()
        with suppress(asyncio.CancelledError):
            await scheduler_task
        await fetcher.aclose()
        await store.close()
        if cache_client is not None:
            await cache_client.aclose()


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title="Delivery Fee Service",
        description="REST API that calculates courier delivery fees from regional base fees and current weather",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(delivery_fee_router)

    @app.get("/api", tags=["root"])
    async def api_info() -> dict:
        """API information endpoint.

        Returns:
            Basic service information
        """
        return {
            "message": "Delivery Fee Service",
            "docs": "/docs",
            "redoc": "/redoc",
            "delivery_fee": "/delivery-fee?city={city}&vehicle_type={vehicle_type}",
            "observations": "/delivery-fee/observations/{city}",
            "health": "/delivery-fee/health"
        }

    return app


# Create app instance for uvicorn
app = create_app()


def main() -> None:
    """Main entry point for the application."""
    logger.info(f"Starting server on {HOST}:{PORT}")
    uvicorn.run(
        "delivery_fee.main:app",
        host=HOST,
        port=PORT,
        reload=DEBUG,
        log_level="info" if not DEBUG else "debug"
    )


if __name__ == "__main__":
    main()
