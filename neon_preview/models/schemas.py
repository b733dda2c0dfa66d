"""
Pydantic Models and Schemas
===========================

Core data models for neon sign requests, render options, render results and
API responses. All models include validation and type hints.
"""

from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
from enum import Enum
import base64
import re

from pydantic import BaseModel, ConfigDict, Field, field_validator


MULTICOLOR = "multicolor"
MULTICOLOR_FALLBACK_COLOR = "#b3e1f1"

REQUIRED_FIELDS = ["text", "fontId", "color"]

# Hex, named, rgb()/hsl() and var()-free CSS colour syntax only
_CSS_COLOR_PATTERN = re.compile(r"^[#A-Za-z0-9(),.%/\s-]+$")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Enums
class PlexiglassStyle(str, Enum):
    """Plexiglass backing panel styles."""
    NONE = "none"
    STYLE1 = "style1"
    STYLE2 = "style2"


class TextAlignment(str, Enum):
    """Horizontal alignment of the sign text."""
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class ImageFormat(str, Enum):
    """Raster formats the renderer can produce."""
    PNG = "png"
    JPEG = "jpeg"
    WEBP = "webp"

    @property
    def mime_type(self) -> str:
        return f"image/{self.value}"

    @property
    def is_lossy(self) -> bool:
        return self is not ImageFormat.PNG


# Request Models
class NeonRenderRequest(BaseModel):
    """Request model for neon sign preview rendering."""
    model_config = ConfigDict(populate_by_name=True)

    text: Optional[str] = Field(None, description="Sign text, newlines start a new line")
    font_id: Optional[str] = Field(None, alias="fontId", description="Font identifier")
    color: Optional[str] = Field(None, description="Neon colour or 'multicolor'")
    plexiglass_style: Optional[PlexiglassStyle] = Field(
        None, alias="plexiglassStyle", description="Plexiglass backing style"
    )
    alignment: Optional[TextAlignment] = Field(None, description="Horizontal alignment")
    width: Optional[int] = Field(
        None, ge=0, description="Output width in pixels, 0 for the default"
    )
    height: Optional[int] = Field(
        None, ge=0, description="Output height in pixels, 0 for the default"
    )

    @field_validator("color")
    @classmethod
    def validate_color(cls, v: Optional[str]) -> Optional[str]:
        """Only accept characters that can appear in a CSS colour value."""
        if v and not _CSS_COLOR_PATTERN.match(v):
            raise ValueError("Color must be a CSS colour value")
        return v.strip() if v else v

    @field_validator("plexiglass_style", "alignment", mode="before")
    @classmethod
    def empty_as_default(cls, v: Any) -> Any:
        """Treat empty strings as 'not provided'."""
        if isinstance(v, str):
            v = v.strip().lower()
            return v or None
        return v

    def missing_fields(self) -> List[str]:
        """Return the wire names of required fields that are absent or empty."""
        values = {"text": self.text, "fontId": self.font_id, "color": self.color}
        return [name for name in REQUIRED_FIELDS if not values[name]]


# Domain Models
class NeonSign(BaseModel):
    """Normalised neon sign ready for HTML generation."""
    text: str = Field(..., min_length=1, description="Sign text")
    font_family: str = Field(..., description="Resolved font family name")
    color: str = Field(..., description="Neon colour")
    plexiglass_style: PlexiglassStyle = Field(PlexiglassStyle.STYLE1)
    alignment: TextAlignment = Field(TextAlignment.CENTER)
    width: int = Field(2000, gt=0, description="Canvas width in pixels")
    height: int = Field(1500, gt=0, description="Canvas height in pixels")

    @property
    def has_plexiglass(self) -> bool:
        return self.plexiglass_style is not PlexiglassStyle.NONE


# Rendering Models
class RenderOptions(BaseModel):
    """Options for capturing an HTML document as an image."""
    width: int = Field(2000, gt=0, description="Viewport width")
    height: int = Field(1500, gt=0, description="Viewport height")
    delay: int = Field(500, ge=0, le=30000, description="Settle delay before capture (ms)")
    format: ImageFormat = Field(ImageFormat.PNG, description="Output image format")
    quality: int = Field(100, ge=0, le=100, description="Quality for lossy formats")
    background_color: Optional[str] = Field(
        None, description="Page background colour, transparent when unset"
    )
    device_scale_factor: float = Field(2.0, gt=0, le=3.0, description="Device pixel ratio")
    full_page: bool = Field(False, description="Capture full page instead of viewport")

    @field_validator("background_color")
    @classmethod
    def validate_background_color(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not _CSS_COLOR_PATTERN.match(v):
            raise ValueError("Background color must be a CSS colour value")
        return v

    @property
    def transparent(self) -> bool:
        return self.background_color is None


class RenderResult(BaseModel):
    """Result of a browser capture."""
    image_data: bytes = Field(..., description="Encoded image bytes", exclude=True)
    mime_type: str = Field(..., description="MIME type of image_data")
    format: ImageFormat = Field(..., description="Image format")
    width: int = Field(..., description="Viewport width")
    height: int = Field(..., description="Viewport height")
    file_size: int = Field(..., description="File size in bytes")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Generation metadata")

    def to_base64(self) -> str:
        return base64.b64encode(self.image_data).decode("ascii")

    def to_data_url(self) -> str:
        """Encode the image as a data URL."""
        return f"data:{self.mime_type};base64,{self.to_base64()}"


# API Response Models
class NeonRenderResponse(BaseModel):
    """Response model for a successful render."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool = Field(True, description="Whether rendering succeeded")
    image: str = Field(..., description="Image as a base64 data URL")
    mime_type: str = Field(..., alias="mimeType", description="Image MIME type")


class HealthResponse(BaseModel):
    """Health check payload."""
    status: str = Field("OK", description="Service status")
    timestamp: datetime = Field(default_factory=_utcnow, description="Check timestamp")


class ErrorResponse(BaseModel):
    """Standard error response model."""
    error: str = Field(..., description="Error message")
    message: Optional[str] = Field(None, description="Underlying failure message")
    required: Optional[List[str]] = Field(None, description="Required request fields")
    error_code: Optional[str] = Field(None, description="Error code")
    request_id: Optional[str] = Field(None, description="Request identifier for tracking")
