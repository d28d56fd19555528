"""
Operations Intelligence Engine - FastAPI entry point.

Run locally with `python main.py` or `uvicorn main:app --reload`.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings, check_connection
from exceptions import AppError
from routes import operations_router

API_VERSION = "0.1.0"


def configure_logging() -> None:
    """JSON log lines in production, colored console output elsewhere."""
    logging.basicConfig(format="%(message)s", level=settings.log_level)

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.is_production
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log the effective limits and probe the core tables on startup."""
    logger.info(
        "application_starting",
        environment=settings.environment,
        order_limit=settings.default_order_limit,
        customer_limit=settings.default_customer_limit,
        command_center_workers=settings.command_center_workers,
    )

    db_status = check_connection()
    if db_status["status"] == "healthy":
        logger.info("database_connected", **db_status["tables"])
    else:
        # The app still starts; every snapshot will fail until the database is back
        logger.error("database_connection_failed", error=db_status.get("error"))

    yield

    logger.info("application_shutting_down")


app = FastAPI(
    title="Operations Intelligence Engine",
    description=(
        "Read-only decision support for warehouse and sales operations: "
        "available-to-promise, pick waves, substitutes, customer intent, "
        "credit risk and catalog data quality."
    ),
    version=API_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.include_router(operations_router)


# ===================
# ROUTES
# ===================

@app.get("/health")
async def health_check():
    """
    Liveness plus a row count for each core table.

    Reports `degraded` instead of failing when the database is unreachable.
    """
    db_status = check_connection()

    return {
        "status": "healthy" if db_status["status"] == "healthy" else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "database": db_status
    }


@app.get("/")
async def root():
    """API information and the operations endpoints."""
    return {
        "name": "Operations Intelligence API",
        "version": API_VERSION,
        "docs": "/docs" if settings.debug else "Disabled in production",
        "health": "/health",
        "endpoints": {
            route.name.removeprefix("get_"): route.path
            for route in operations_router.routes
        }
    }


# ===================
# ERROR HANDLERS
# ===================

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """AppErrors that escape a route still get the standard envelope."""
    logger.warning(
        "app_error",
        path=request.url.path,
        code=exc.code,
        message=exc.message
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Anything else becomes INTERNAL_ERROR; details only in debug mode."""
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "details": str(exc) if settings.debug else None,
                "timestamp": datetime.now(timezone.utc).isoformat()
            }
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug
    )
