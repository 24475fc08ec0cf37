"""
app/main.py

Purpose: Application entry point

- Initializes FastAPI app
- Loads configuration and logging
- Registers API routes (webhook, health)
- Manages bot runtime lifecycle (startup/shutdown)
- No business logic should be written here
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
import time

from app.core.config import settings, validate_settings
from app.core.errors import add_exception_handlers
from app.core.logging import setup_logging, get_logger
from app.runtime import BotRuntime
from app.api import webhook

# Initialize logging first
setup_logging()
logger = get_logger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Startup failures are fatal: they are logged and re-raised so the
    server process exits instead of running half-initialized.
    """
    logger.info("🚀 Starting ReceiptBot...")

    try:
        validate_settings()
        logger.info("✅ Configuration validated")

        if getattr(app.state, "runtime", None) is None:
            app.state.runtime = BotRuntime()
        await app.state.runtime.start()

        logger.info("🎉 ReceiptBot started successfully!")
        logger.info(f"Environment: {settings.ENVIRONMENT}")

    except Exception as e:
        logger.critical(f"Failed to start application: {str(e)}", exc_info=True)
        raise

    yield  # Application runs here

    logger.info("🛑 Shutting down ReceiptBot...")
    try:
        await app.state.runtime.stop()
        logger.info("👋 ReceiptBot shut down successfully")
    except Exception as e:
        logger.error(f"Error during shutdown: {str(e)}", exc_info=True)


def create_app(runtime: Optional[BotRuntime] = None) -> FastAPI:
    """
    Builds the FastAPI application.

    Args:
        runtime: Pre-built runtime (tests); built from settings when omitted
    """
    app = FastAPI(
        title="ReceiptBot",
        description="WhatsApp receipt bot",
        version=VERSION,
        lifespan=lifespan,
        debug=settings.DEBUG,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )
    app.state.runtime = runtime

    add_exception_handlers(app)

    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        """Add processing time header to all responses."""
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)

        if process_time > 5.0:
            logger.warning(
                f"Slow request detected: {request.method} {request.url.path}",
                extra={"process_time": process_time}
            )

        return response

    app.include_router(webhook.router, prefix=settings.API_PREFIX, tags=["Webhook"])

    @app.get("/", tags=["Health"])
    async def root():
        """Root endpoint - basic info."""
        return {
            "name": "ReceiptBot API",
            "version": VERSION,
            "description": "WhatsApp receipt bot",
            "status": "running",
            "environment": settings.ENVIRONMENT
        }

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """
        Checks database connectivity and transport status.
        """
        runtime = request.app.state.runtime
        health_status = {
            "status": "healthy",
            "timestamp": time.time(),
            "environment": settings.ENVIRONMENT,
            "version": VERSION,
            "checks": {}
        }

        db_healthy = runtime is not None and await runtime.db.check_health()
        health_status["checks"]["database"] = "healthy" if db_healthy else "unhealthy"

        transport_ready = runtime is not None and runtime.transport.is_ready
        health_status["checks"]["transport"] = "ready" if transport_ready else "not_ready"

        if not (db_healthy and transport_ready):
            health_status["status"] = "degraded"

        status_code = 200 if health_status["status"] == "healthy" else 503
        return JSONResponse(content=health_status, status_code=status_code)

    @app.get("/ready", tags=["Health"])
    async def readiness_check(request: Request):
        """
        Readiness probe - indicates if app is ready to receive traffic.
        """
        runtime = request.app.state.runtime
        if runtime is not None and runtime.is_running:
            return {"status": "ready"}
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "reason": "runtime_not_started"}
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
