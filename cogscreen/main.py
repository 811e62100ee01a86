"""FastAPI application entry point."""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cogscreen import __version__
from cogscreen.api.errors import to_http_exception
from cogscreen.api.v1.router import api_router
from cogscreen.catalog.loader import get_catalog
from cogscreen.core.config import settings
from cogscreen.core.errors import AssessmentError, ValidationError
from cogscreen.core.logging import setup_logging
from cogscreen.db.init_db import init_db

setup_logging()
logger = logging.getLogger(__name__)

INTERNAL_ERROR_AR = "حدث خطأ داخلي في الخادم"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Load the catalog before serving; a broken catalog stops startup."""
    catalog = get_catalog()
    logger.info(
        f"Starting cognitive screening API (env={settings.env}, "
        f"catalog={catalog.catalog_id} v{catalog.version})"
    )

    if settings.init_db_on_startup and settings.is_dev:
        await init_db()

    yield

    logger.info("Shutting down cognitive screening API")


app = FastAPI(
    title="Cognitive Screening API",
    description="Bilingual dementia screening questionnaire with clinical review",
    version=__version__,
    docs_url="/docs" if settings.is_dev else None,
    redoc_url="/redoc" if settings.is_dev else None,
    openapi_url="/openapi.json" if settings.is_dev else None,
    lifespan=lifespan,
)

# The form front end runs on its own origin in development
if settings.is_dev:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:3001"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*", "If-Match"],
    )


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Echo or assign X-Request-ID and log each request's outcome."""
    request_id = request.headers.get("X-Request-ID") or uuid4().hex
    request.state.request_id = request_id
    started = time.perf_counter()

    response = await call_next(request)

    response.headers["X-Request-ID"] = request_id
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(
        f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.0f} ms)",
        extra={"request_id": request_id},
    )
    return response


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed bodies get the same bilingual shape as domain validation."""
    fields = {
        ".".join(str(part) for part in error["loc"] if part != "body"): error["msg"]
        for error in exc.errors()
    }
    body = ValidationError("Invalid request", fields=fields).to_dict()
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": body},
    )


@app.exception_handler(AssessmentError)
async def assessment_error_handler(request: Request, exc: AssessmentError) -> JSONResponse:
    """Domain errors a route did not translate itself."""
    http_exc = to_http_exception(exc)
    return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions."""
    logger.exception(f"Unhandled exception: {exc}")

    # Internal details stay out of production responses
    error = "Internal server error" if settings.is_prod else str(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": {"error": error, "errorAr": INTERNAL_ERROR_AR, "details": {}}},
    )


app.include_router(api_router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
async def root() -> dict:
    """Service banner."""
    return {
        "service": "Cognitive Screening API",
        "version": __version__,
        "docs": "/docs" if settings.is_dev else None,
    }
