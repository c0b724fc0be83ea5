"""
app/main.py

Purpose: Application entry point

- Builds the FastAPI app from a Settings object (create_app)
- Loads configuration and logging
- Registers API routes (auth, storefront, admin) and exception handlers
- Manages application lifecycle (service container, cache refresher)
- No business logic should be written here
"""

from contextlib import asynccontextmanager
from typing import Optional
import time

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api import admin, auth, shop
from app.core.config import Settings, settings, validate_settings
from app.core.errors import add_exception_handlers
from app.core.logging import get_logger, setup_logging
from app.db.collections import Collection, bin_id
from app.services.container import build_services

# Initialize logging first
setup_logging()
logger = get_logger(__name__)

APP_VERSION = "1.0.0"


def create_app(
    config: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Creates the application.

    Args:
        config: Settings to use (defaults to the environment-loaded settings)
        transport: Optional httpx transport for the store and bot clients
    """
    config = config or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.
        Handles startup and shutdown events.
        """
        logger.info("🚀 Starting Top-Up Shop API...")

        try:
            logger.info("Validating configuration...")
            validate_settings(config)
            logger.info("✅ Configuration validated")

            services = build_services(config, transport=transport)
            app.state.services = services

            main_bin = bin_id(Collection.MAIN, config)
            if main_bin and await services.storage.ping(main_bin):
                logger.info("✅ Document store reachable")
            else:
                logger.warning("⚠️ Document store health check failed during startup")

            services.refresher.start()

            logger.info("🎉 Top-Up Shop API started successfully!")
            logger.info(f"Environment: {config.ENVIRONMENT}")
            logger.info(f"Debug Mode: {config.DEBUG}")

        except Exception as e:
            logger.critical(f"Failed to start application: {str(e)}", exc_info=True)
            raise

        yield  # Application runs here

        logger.info("🛑 Shutting down Top-Up Shop API...")
        await app.state.services.refresher.stop()
        app.state.services.storage.invalidate()
        logger.info("👋 Top-Up Shop API shut down successfully")

    app = FastAPI(
        title="Top-Up Shop API",
        description="Telegram Mini App storefront for game top-ups",
        version=APP_VERSION,
        lifespan=lifespan,
        debug=config.DEBUG,
        docs_url="/docs" if config.is_development else None,  # Disable docs in production
        redoc_url="/redoc" if config.is_development else None,
    )
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        """Add processing time header to all responses."""
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)

        # Log slow requests
        if process_time > 5.0:
            logger.warning(
                f"Slow request detected: {request.method} {request.url.path}",
                extra={"process_time": process_time}
            )

        return response

    add_exception_handlers(app)

    app.include_router(auth.router, prefix=config.API_PREFIX, tags=["Auth"])
    app.include_router(shop.router, prefix=config.API_PREFIX, tags=["Storefront"])
    app.include_router(admin.router, prefix=config.API_PREFIX, tags=["Admin"])

    @app.get("/", tags=["Health"])
    async def root():
        """Root endpoint - basic info."""
        return {
            "name": "Top-Up Shop API",
            "version": APP_VERSION,
            "description": "Telegram Mini App storefront for game top-ups",
            "status": "running",
            "environment": config.ENVIRONMENT
        }

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """
        Checks document store reachability and bot configuration.
        """
        services = request.app.state.services
        health_status = {
            "status": "healthy",
            "timestamp": time.time(),
            "environment": config.ENVIRONMENT,
            "version": APP_VERSION,
            "checks": {}
        }

        store_healthy = await services.storage.ping(bin_id(Collection.MAIN, config))
        health_status["checks"]["document_store"] = "healthy" if store_healthy else "unhealthy"
        if not store_healthy:
            health_status["status"] = "degraded"

        health_status["checks"]["telegram_bot"] = "configured" if services.notifier.is_configured() else "not_configured"
        health_status["checks"]["cache_refresher"] = "running" if services.refresher.running else "stopped"

        status_code = 200 if health_status["status"] == "healthy" else 503
        return JSONResponse(content=health_status, status_code=status_code)

    @app.get("/ready", tags=["Health"])
    async def readiness_check(request: Request):
        """
        Readiness probe - indicates if app is ready to receive traffic.
        """
        services = request.app.state.services
        if await services.storage.ping(bin_id(Collection.MAIN, config)):
            return {"status": "ready"}
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "reason": "document_store_unavailable"}
        )

    @app.get("/live", tags=["Health"])
    async def liveness_check():
        """
        Liveness probe - indicates if app is alive.
        """
        return {"status": "alive"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower()
    )
