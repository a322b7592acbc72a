"""CampusCare: Main FastAPI Application.

Backend for the campus issue-reporting app: students file reports about
broken infrastructure, track them and discuss them with staff; staff
triage, resolve and watch the numbers.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import api_router
from .core import close_db, get_settings, init_db
from .core.dependencies import build_services
from .core.errors import CampusCareError, ErrorKind, ValidationError
from .schemas import ErrorDetail, ErrorResponse

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ErrorKind.CONFIGURATION: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.SCHEMA_MISSING: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.AUTHORIZATION: status.HTTP_403_FORBIDDEN,
    ErrorKind.STORAGE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.VALIDATION: 422,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.UNAVAILABLE: status.HTTP_502_BAD_GATEWAY,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    services = build_services(settings)
    app.state.services = services
    logger.info(f"Starting {settings.app_name} {settings.app_version} ({settings.environment})")

    # Startup - skip init_db in production (tables come from the setup SQL)
    if services.store is not None and settings.database_url and settings.environment != "production":
        try:
            await init_db()
        except Exception as e:
            logger.warning(f"Could not initialize database: {e}")

    if services.fanout is not None:
        services.fanout.start()
    yield
    # Shutdown
    if services.fanout is not None:
        await services.fanout.stop()
    if services.storage is not None:
        await services.storage.close()
    if services.identity is not None:
        await services.identity.close()
    await close_db()


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    ## CampusCare API

    Report, track and resolve campus infrastructure issues.

    ### Key Features

    - **Reports**: file issues with an optional photo, follow their status, withdraw unresolved ones.
    - **Comments**: discuss a report with campus staff.
    - **Notifications**: staff hear about new reports, reporters hear about progress.
    - **Admin**: triage every report, change status, view dashboard and insights.
    - **Live updates**: WebSocket feeds for report lists and comment threads.

    ### Authentication

    Endpoints require a Firebase ID token in the `Authorization: Bearer <token>` header.
    """,
    openapi_url=f"{settings.api_prefix}/openapi.json",
    docs_url=f"{settings.api_prefix}/docs",
    redoc_url=f"{settings.api_prefix}/redoc",
    lifespan=lifespan,
)

# CORS middleware with explicit origins (credentials require explicit origins, not "*")
cors_origins = [
    "http://localhost:5173",
    "http://localhost:8080",
]
for origin in settings.allowed_origins:
    if origin and origin not in cors_origins:
        cors_origins.append(origin)

logger.info(f"CORS allowed origins: {cors_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH", "HEAD"],
    allow_headers=["*"],
    max_age=86400,
)


@app.exception_handler(CampusCareError)
async def campus_care_exception_handler(request: Request, exc: CampusCareError):
    """Render a classified failure with its remediation text."""
    details = []
    if isinstance(exc, ValidationError):
        details = [
            ErrorDetail(field=name, message=message, code="invalid")
            for name, message in exc.field_errors.items()
        ]

    status_code = ERROR_STATUS.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed ({exc.kind.value}): {exc.message}")

    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=exc.kind.value,
            message=exc.message,
            details=details,
            remediation=exc.remediation,
        ).model_dump(),
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}")

    message = "An unexpected error occurred"
    if settings.debug or settings.environment != "production":
        message = f"{message}: {str(exc)[:200]}"

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="internal_error",
            message=message,
            details=[],
        ).model_dump(),
    )


# Health check endpoint
@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": settings.app_version}


# Include API routes
app.include_router(api_router, prefix=settings.api_prefix)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "campus_care.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
