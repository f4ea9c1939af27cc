# This project was developed with assistance from AI tools.
"""FastAPI application entry point."""

import logging
import uuid
from contextlib import asynccontextmanager

from db import dispose_engine
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import settings
from .routes import analytics, case_progress, double_opt_in, health, hospitals, uploads
from .schemas.error import ErrorResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Application startup/shutdown lifecycle."""
    from .services.analytics import close_analytics_service, init_analytics_service
    from .services.double_opt_in import close_double_opt_in_service, init_double_opt_in_service
    from .services.sheet_mirror import close_sheet_mirror, init_sheet_mirror
    from .services.storage import init_storage_service

    init_storage_service(settings)
    init_sheet_mirror(settings)
    init_double_opt_in_service(settings)
    init_analytics_service(settings)
    yield
    await close_analytics_service()
    await close_double_opt_in_service()
    await close_sheet_mirror()
    await dispose_engine()


app = FastAPI(
    title="Bill Intake API",
    description="Backend for the medical bill intake widget",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_HOSTS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["Content-Type"],
)

_HTTP_STATUS_TITLES: dict[int, str] = {
    400: "Bad Request",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    413: "Payload Too Large",
    415: "Unsupported Media Type",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


def _build_error(status_code: int, detail: str, request_id: str) -> ErrorResponse:
    return ErrorResponse(
        type="about:blank",
        title=_HTTP_STATUS_TITLES.get(status_code, "Error"),
        status=status_code,
        detail=detail,
        request_id=request_id,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Convert HTTPException to RFC 7807 Problem Details."""
    request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
    body = _build_error(exc.status_code, str(exc.detail), request_id)
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Convert Pydantic validation errors to RFC 7807 Problem Details."""
    request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
    body = _build_error(422, str(exc.errors()), request_id)
    return JSONResponse(status_code=422, content=body.model_dump())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch-all for unhandled exceptions -- log and return 500."""
    request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
    logger.exception("Unhandled exception (request_id=%s)", request_id)
    body = _build_error(500, "An unexpected error occurred.", request_id)
    return JSONResponse(status_code=500, content=body.model_dump())


# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(case_progress.router, prefix="/api", tags=["case-progress"])
app.include_router(uploads.router, prefix="/api", tags=["uploads"])
app.include_router(double_opt_in.router, prefix="/api", tags=["double-opt-in"])
app.include_router(analytics.router, prefix="/api", tags=["analytics"])
app.include_router(hospitals.router, prefix="/api", tags=["hospitals"])


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint"""
    return {"message": "Bill Intake API"}
