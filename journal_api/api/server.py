"""FastAPI application setup"""
import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from journal_api.api.routes import router, health_router
from journal_api.api.metrics_routes import router as metrics_router
from journal_api.api.middleware import setup_cors, setup_rate_limiting
from journal_api.config import LOG_LEVEL, settings
from journal_api.exceptions import JournalError
from journal_api.observability.metrics_middleware import setup_metrics_middleware
from journal_api.services.container import ServiceContainer, build_container

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL)
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for FastAPI application"""
    # Startup
    logger.info("Starting journal API...")
    container: ServiceContainer = app.state.container
    await container.startup()
    logger.info("Store ready")

    yield

    # Shutdown
    logger.info("Shutting down journal API...")
    await container.shutdown()
    logger.info("Store closed")


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))


def create_api_application(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Create and configure FastAPI application

    Args:
        container: Pre-built services (tests); built from settings otherwise
    """
    app = FastAPI(
        title="Journal API",
        description="REST API for the daily journal",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.container = container or build_container(settings)

    # Setup middleware
    setup_cors(app)
    setup_rate_limiting(app)
    setup_metrics_middleware(app, enabled=settings.enable_metrics)

    # Include routes
    app.include_router(router)
    app.include_router(health_router)
    if settings.enable_metrics:
        app.include_router(metrics_router)

    @app.exception_handler(JournalError)
    async def journal_exception_handler(request: Request, exc: JournalError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Request validation failed on {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=400,
            content={
                "message": _validation_message(exc),
                "error": "ValidationError",
                "details": jsonable_errors(exc),
            }
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": str(exc.detail), "error": "HTTPException"},
            headers=getattr(exc, "headers", None)
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"message": "Internal server error", "error": exc.__class__.__name__}
        )

    logger.info("FastAPI application created")

    return app


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validation errors reduced to JSON-safe loc/msg/type"""
    return [
        {
            "loc": [str(part) for part in error.get("loc", ())],
            "msg": str(error.get("msg")),
            "type": str(error.get("type")),
        }
        for error in exc.errors()
    ]
