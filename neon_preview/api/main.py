"""
FastAPI Application
===================

Main FastAPI application exposing the neon preview renderer over HTTP.
"""

from contextlib import asynccontextmanager
import uuid
from typing import AsyncGenerator, Any, Tuple

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.datastructures import Headers
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog
import uvicorn

from neon_preview import __version__
from neon_preview.config.settings import get_settings
from neon_preview.config.logging import get_logger
from neon_preview.core.rendering.html_generator import HTMLGenerationError
from neon_preview.core.rendering.image_generator import ImageGenerationError, close_browser
from neon_preview.api.routes.render import router as render_router
from neon_preview.api.routes.health import router as health_router
from neon_preview.models.schemas import ErrorResponse

logger = get_logger(__name__)

RENDER_FAILURE_MESSAGE = "Failed to render image"

# (message fragment, status code, error code); first match wins
RENDER_ERROR_CLASSES = (
    ("browser launch failed", 503, "BROWSER_LAUNCH_FAILED"),
    ("timeout", 504, "BROWSER_TIMEOUT"),
    ("timed out", 504, "BROWSER_TIMEOUT"),
)


def classify_render_error(message: str) -> Tuple[int, str]:
    """Map a render failure message onto an HTTP status and error code."""
    lowered = message.lower()
    for fragment, status_code, error_code in RENDER_ERROR_CLASSES:
        if fragment in lowered:
            return status_code, error_code
    return 500, "IMAGE_GENERATION_ERROR"


class PreflightCORSMiddleware(CORSMiddleware):
    """CORS middleware whose successful preflight responses have an empty body."""

    def preflight_response(self, request_headers: Headers) -> Response:
        response = super().preflight_response(request_headers)
        if response.status_code != 200:
            return response
        headers = {
            key: value
            for key, value in response.headers.items()
            if key not in ("content-length", "content-type")
        }
        return Response(status_code=200, headers=headers)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info(
        "Starting FastAPI application",
        close_browser_after_render=settings.close_browser_after_render,
    )

    try:
        yield
    finally:
        logger.info("Shutting down FastAPI application")

        try:
            await close_browser()
            logger.info("Browser closed")
        except Exception as e:
            logger.error("Error closing browser", error=str(e))


# Create FastAPI app
settings = get_settings()
app = FastAPI(
    title="Neon Preview Renderer",
    description="Render neon sign previews to PNG, JPEG or WEBP images",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.enable_docs else None,
    redoc_url="/redoc" if settings.enable_docs else None,
)

# Add middleware
app.add_middleware(
    PreflightCORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=False,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
    max_age=settings.cors_max_age,
)

app.include_router(render_router)
app.include_router(health_router)


# Request ID middleware
@app.middleware("http")
async def add_request_id(request: Request, call_next) -> JSONResponse:  # type: ignore
    """Tag the request and every log line it produces with a request ID."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    structlog.contextvars.bind_contextvars(request_id=request_id)

    try:
        response = await call_next(request)  # type: ignore
    finally:
        structlog.contextvars.unbind_contextvars("request_id")

    response.headers["X-Request-ID"] = request_id  # type: ignore
    if "*" in settings.allowed_origins:
        response.headers.setdefault("Access-Control-Allow-Origin", "*")  # type: ignore
    return response  # type: ignore


def _error_json(request: Request, status_code: int, **fields: Any) -> JSONResponse:
    error_response = ErrorResponse(request_id=getattr(request.state, "request_id", None), **fields)
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json", exclude_none=True),
    )


# Exception handlers
@app.exception_handler(StarletteHTTPException)
async def custom_http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """HTTP exception handler with structured error response."""
    if exc.status_code == 405:
        error = "Method not allowed"
    else:
        error = str(exc.detail)

    logger.warning(
        "HTTP exception",
        status_code=exc.status_code,
        detail=exc.detail,
        method=request.method,
        path=request.url.path,
    )
    return _error_json(request, exc.status_code, error=error)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Reject malformed request bodies with 400."""
    message = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    )
    logger.info("Invalid request body", path=request.url.path, message=message)
    return _error_json(request, 400, error="Invalid request body", message=message)


@app.exception_handler(ImageGenerationError)
async def image_generation_exception_handler(
    request: Request, exc: ImageGenerationError
) -> JSONResponse:
    """Handle render pipeline failures with 5xx responses."""
    error_message = str(exc)
    status_code, error_code = classify_render_error(error_message)

    logger.error(
        "Rendering error",
        error_code=error_code,
        status_code=status_code,
        error_message=error_message,
    )
    return _error_json(
        request,
        status_code,
        error=RENDER_FAILURE_MESSAGE,
        message=error_message,
        error_code=error_code,
    )


@app.exception_handler(HTMLGenerationError)
async def html_generation_exception_handler(
    request: Request, exc: HTMLGenerationError
) -> JSONResponse:
    logger.error("Template error", error_message=str(exc))
    return _error_json(
        request,
        500,
        error=RENDER_FAILURE_MESSAGE,
        message=str(exc),
        error_code="HTML_GENERATION_ERROR",
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """General exception handler for unexpected errors."""
    logger.error(
        "Unhandled exception",
        exception=str(exc),
        request_id=getattr(request.state, "request_id", None),
        exc_info=True,
    )
    return _error_json(
        request,
        500,
        error="Internal server error",
        message=str(exc) if settings.debug else None,
        error_code="INTERNAL_ERROR",
    )


# Root endpoint
@app.get("/", tags=["General"])
async def root() -> dict[str, Any]:
    """
    Root endpoint with basic API information.
    """
    return {
        "name": settings.app_name,
        "version": __version__,
        "description": "Render neon sign previews to images",
        "docs_url": "/docs" if settings.enable_docs else None,
        "health_check": "/api/health",
        "endpoints": {
            "generate_product_image": "POST /api/generate-product-image",
            "fonts": "GET /api/fonts",
            "health": "GET /api/health",
        },
    }


# Development server runner
def run_development_server() -> None:
    """Run development server with auto-reload."""
    uvicorn.run(
        "neon_preview.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )


def create_app() -> FastAPI:
    """
    Application factory function for creating FastAPI app instance.
    Used by integration tests and external deployment scripts.

    Returns:
        FastAPI application instance
    """
    return app


if __name__ == "__main__":
    run_development_server()
