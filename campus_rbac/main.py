import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from campus_rbac.api.v1.services.seeding import seed
from campus_rbac.core.bootstrap import bootstrap_app
from campus_rbac.core.config import settings
from campus_rbac.core.middlewares import (
    limiter,
    rate_limit_exceeded_handler,
    request_logging_middleware,
    security_headers_middleware,
)
from campus_rbac.core.models import AccessControlError
from campus_rbac.core.schemas import ApiResponse
from campus_rbac.db.session import db_manager

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.DEBUG else logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Creates the schema and seeds the permission catalog on startup (when
    enabled), and disposes of the connection pool on shutdown.
    """
    logger.info("Starting application...")

    if settings.AUTO_CREATE_TABLES:
        logger.info("Creating database tables...")
        await db_manager.create_all()

    if settings.SEED_PERMISSIONS_ON_STARTUP:
        report = await seed(db_manager.async_session_factory)
        logger.info(
            "Seed complete: %d permission(s), %d role(s) created",
            report.permissions_created, report.roles_created,
        )

    yield

    logger.info("Shutting down application...")
    await db_manager.dispose()
    logger.info("Database pool disposed.")


app = FastAPI(
    title=settings.PROJECT_NAME,
    debug=settings.DEBUG,
    version=settings.VERSION,
    lifespan=lifespan,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc"
)

# Add rate limiter state to app
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH", "HEAD"],
    allow_headers=["Authorization", "Content-Type", "X-Branch-Id"],
    max_age=600,
)


@app.exception_handler(AccessControlError)
async def access_control_exception_handler(request: Request, exc: AccessControlError):
    content = ApiResponse(status_code=exc.status_code, error=exc.__class__.__name__, detail=exc.message)
    return JSONResponse(status_code=exc.status_code, content=content.model_dump())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler with security considerations.
    """
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    response_content = {
        "status": "error",
        "error_type": exc.__class__.__name__,
        "message": "Internal server error",
    }

    # Only include traceback in development
    if not settings.is_production:
        response_content["message"] = str(exc)
        response_content["traceback"] = "".join(traceback.format_exception(exc))

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=response_content,
    )

# Security headers middleware
app.middleware("http")(security_headers_middleware)

# Request logging middleware
app.middleware("http")(request_logging_middleware)


bootstrap_app(app)


@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": settings.VERSION}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
