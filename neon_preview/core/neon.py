"""
Neon Sign Service
=================

Turns an API request into a normalised sign and drives it through the render
pipeline.
"""

from typing import Optional

from neon_preview.config.logging import get_logger
from neon_preview.config.settings import Settings, get_settings
from neon_preview.core.fonts import resolve_font_family
from neon_preview.core.rendering.html_generator import generate_sign_markup
from neon_preview.core.rendering.image_generator import render_neon_with_css
from neon_preview.models.schemas import (
    MULTICOLOR,
    MULTICOLOR_FALLBACK_COLOR,
    ImageFormat,
    NeonRenderRequest,
    NeonSign,
    PlexiglassStyle,
    RenderOptions,
    RenderResult,
    TextAlignment,
)

logger = get_logger(__name__)


def resolve_neon_color(color: str) -> str:
    """Map the multicolor sentinel to the fixed preview colour."""
    if color.lower() == MULTICOLOR:
        return MULTICOLOR_FALLBACK_COLOR
    return color


def build_sign(request: NeonRenderRequest, settings: Optional[Settings] = None) -> NeonSign:
    """
    Normalise a render request into a sign.

    The request must already carry every required field.
    """
    settings = settings or get_settings()
    missing = request.missing_fields()
    if missing:
        raise ValueError(f"Missing required fields: {', '.join(missing)}")

    return NeonSign(
        text=request.text,
        font_family=resolve_font_family(request.font_id),
        color=resolve_neon_color(request.color),
        plexiglass_style=request.plexiglass_style or PlexiglassStyle.STYLE1,
        alignment=request.alignment or TextAlignment.CENTER,
        width=request.width or settings.default_width,
        height=request.height or settings.default_height,
    )


def build_render_options(sign: NeonSign, settings: Optional[Settings] = None) -> RenderOptions:
    """Capture options for a sign preview: transparent page, settle delay from settings."""
    settings = settings or get_settings()
    return RenderOptions(
        width=sign.width,
        height=sign.height,
        delay=settings.render_delay_ms,
        format=ImageFormat(settings.render_format),
        quality=settings.render_quality,
        background_color=None,
        device_scale_factor=settings.device_scale_factor,
    )


async def render_sign(sign: NeonSign, settings: Optional[Settings] = None) -> RenderResult:
    """
    Render a neon sign preview.

    Args:
        sign: Normalised sign
        settings: Settings override

    Returns:
        RenderResult with the encoded preview
    """
    options = build_render_options(sign, settings)

    logger.info(
        "Rendering neon sign",
        font_family=sign.font_family,
        plexiglass=sign.plexiglass_style.value,
        alignment=sign.alignment.value,
        width=sign.width,
        height=sign.height,
    )

    fragment, css = await generate_sign_markup(sign)
    return await render_neon_with_css(fragment, css, options)
