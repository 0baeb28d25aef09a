"""FastAPI application setup"""
import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from schoolhub.api.routes import router
from schoolhub.api.middleware import setup_cors, setup_rate_limiting
from schoolhub.config import LOG_LEVEL, STORAGE_BACKEND, validate_config
from schoolhub.db.connection import db
from schoolhub.exceptions import PersistenceError, ValidationError
from schoolhub.services.progression_service import ProgressionService, create_progression_service

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
    logger.info("Starting API server...")
    owns_pool = False

    if app.state.progression_service is None:
        validate_config()
        if STORAGE_BACKEND == "postgres":
            await db.init_pool()
            owns_pool = True
            logger.info("Database pool initialized")
        app.state.progression_service = create_progression_service()

    yield

    # Shutdown
    logger.info("Shutting down API server...")
    if owns_pool:
        await db.close_pool()
        logger.info("Database pool closed")


def create_api_application(service: Optional[ProgressionService] = None) -> FastAPI:
    """
    Create and configure FastAPI application

    Args:
        service: Pre-built service (tests, embedding); built from config at startup if omitted
    """
    app = FastAPI(
        title="SchoolHub Progression API",
        description="Daily streaks, XP and levels for SchoolHub",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.progression_service = service

    # Setup middleware
    setup_cors(app)
    setup_rate_limiting(app)

    # Include routes
    app.include_router(router)

    @app.exception_handler(ValidationError)
    async def validation_exception_handler(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=422,
            content=exc.to_dict()
        )

    @app.exception_handler(PersistenceError)
    async def persistence_exception_handler(request: Request, exc: PersistenceError):
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=exc.to_dict()
        )

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "detail": str(exc)}
        )

    logger.info("FastAPI application created")

    return app
