"""
Render Routes
=============

FastAPI routes for neon sign preview rendering.
"""

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from neon_preview.config.logging import get_logger
from neon_preview.core.fonts import list_fonts
from neon_preview.core.neon import build_sign, render_sign
from neon_preview.models.schemas import (
    REQUIRED_FIELDS,
    ErrorResponse,
    NeonRenderRequest,
    NeonRenderResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["Rendering"])

NO_CACHE = "no-cache, no-store, must-revalidate"


@router.post("/generate-product-image", response_model=NeonRenderResponse)
async def generate_product_image(
    payload: NeonRenderRequest, request: Request, response: Response
) -> NeonRenderResponse | JSONResponse:
    """
    Render a neon sign preview and return it as a base64 data URL.

    Render failures propagate to the application exception handlers, which
    map them onto 5xx responses.
    """
    missing = payload.missing_fields()
    if missing:
        logger.info("Render request rejected", missing=missing)
        error_response = ErrorResponse(
            error="Missing required fields",
            required=REQUIRED_FIELDS,
            request_id=getattr(request.state, "request_id", None),
        )
        return JSONResponse(
            status_code=400, content=error_response.model_dump(mode="json", exclude_none=True)
        )

    sign = build_sign(payload)
    result = await render_sign(sign)

    response.headers["Cache-Control"] = NO_CACHE
    logger.info(
        "Render request completed",
        file_size=result.file_size,
        mime_type=result.mime_type,
    )
    return NeonRenderResponse(success=True, image=result.to_data_url(), mime_type=result.mime_type)


@router.options("/generate-product-image", include_in_schema=False)
async def generate_product_image_preflight() -> Response:
    """Answer bare preflight requests."""
    return Response(status_code=200)


@router.get("/fonts", tags=["Fonts"])
async def fonts() -> dict[str, str]:
    """List supported font ids and their font families."""
    return list_fonts()


@router.options("/fonts", include_in_schema=False)
async def fonts_preflight() -> Response:
    return Response(status_code=200)
