"""
FastAPI application entry point.

This is the main application that ties together all components:
- API routes for issuing, rendering and converting documents
- Database lifecycle for the sequence counters
- Mapping of domain errors to HTTP responses
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from facturier import __version__
from facturier.api.routes import documents, health
from facturier.api.schemas import ErrorResponse, ValidationIssueResponse
from facturier.config import get_settings
from facturier.domain.errors import (
    DocumentNotFound,
    LayoutOverflow,
    SequenceConflict,
    SequenceExhausted,
    ValidationFailure,
)
from facturier.infrastructure.database import close_db, init_db

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Creates the counter table on startup when counters live in the
    database, and releases connections on shutdown.
    """
    settings = get_settings()

    logger.info(f"Starting Facturier v{__version__}")
    logger.info(f"Sequence backend: {settings.sequence_backend}")
    logger.info(f"Debug mode: {settings.debug}")

    if settings.sequence_backend == "database":
        # Numbers cannot be issued without the counter table
        await init_db()
        logger.info("Database initialized")

    yield  # Application runs here

    # Shutdown
    logger.info("Shutting down Facturier")
    await close_db()


def error_response(status_code: int, error: str, exc: Exception, detail: str | None = None) -> JSONResponse:
    """Build the {error, detail, issues} body shared by every error response."""
    issues = getattr(exc, "issues", [])
    body = ErrorResponse(
        error=error,
        detail=detail if detail is not None else str(exc),
        issues=[ValidationIssueResponse(field_path=i.field_path, message=i.message) for i in issues],
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance ready to serve requests.
    """
    settings = get_settings()

    app = FastAPI(
        title="Facturier API",
        description=(
            "Issuing core for invoices, quotes and delivery notes.\n\n"
            "Numbers documents per account and month, locks their totals "
            "and renders them as paginated PDF."
        ),
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # Register routers
    app.include_router(health.router)
    app.include_router(documents.router, prefix="/api/v1")
    app.include_router(documents.quotes_router, prefix="/api/v1")

    @app.exception_handler(ValidationFailure)
    async def validation_failure_handler(request: Request, exc: ValidationFailure):
        logger.info(f"Rejected {request.url.path}: {exc}")
        return error_response(422, "Validation Failure", exc)

    @app.exception_handler(DocumentNotFound)
    async def not_found_handler(request: Request, exc: DocumentNotFound):
        return error_response(404, "Not Found", exc)

    @app.exception_handler(SequenceExhausted)
    async def sequence_exhausted_handler(request: Request, exc: SequenceExhausted):
        logger.warning(f"{exc}")
        return error_response(409, "Sequence Exhausted", exc)

    @app.exception_handler(LayoutOverflow)
    async def layout_overflow_handler(request: Request, exc: LayoutOverflow):
        return error_response(422, "Layout Overflow", exc)

    @app.exception_handler(SequenceConflict)
    async def sequence_conflict_handler(request: Request, exc: SequenceConflict):
        logger.critical(f"Duplicate document number: {exc}")
        return error_response(500, "Sequence Conflict", exc)

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Catch-all exception handler for unhandled errors."""
        logger.exception(f"Unhandled error: {exc}")

        # Don't expose internal errors in production
        if settings.debug:
            detail = str(exc)
        else:
            detail = "An internal error occurred"

        return error_response(500, "Internal Server Error", exc, detail=detail)

    return app


# Create the application instance
app = create_app()


# Development server entry point
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "facturier.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
