"""
HTML Generator
==============

Convert neon sign descriptions into HTML markup and CSS for browser rendering.
Builds the stacked plexiglass, glow and foreground layers and wraps them in a
complete document that signals when fonts and images have settled.
"""

from typing import Dict, List, Any, Optional, Sequence, Union
from pathlib import Path
import jinja2

from neon_preview.config.logging import get_logger
from neon_preview.config.settings import get_settings
from neon_preview.core.fonts import google_fonts_url
from neon_preview.models.schemas import NeonSign, RenderOptions, TextAlignment

logger = get_logger(__name__)

# Text-shadow radii stacked on the glow layer, innermost first
GLOW_RADII = (2, 4, 8, 12, 24, 48)

SIGN_FONT_SIZE = "clamp(32px, 5vw, 80px)"

# Horizontal anchor shared by every layer: (left offset, translate arguments)
ALIGNMENT_ANCHORS: Dict[TextAlignment, Dict[str, str]] = {
    TextAlignment.LEFT: {"left": "0", "translate": "0, -50%"},
    TextAlignment.CENTER: {"left": "50%", "translate": "-50%, -50%"},
    TextAlignment.RIGHT: {"left": "100%", "translate": "-100%, -50%"},
}


class HTMLGenerationError(Exception):
    """Exception raised when HTML generation fails."""

    pass


def alignment_anchor(alignment: TextAlignment) -> Dict[str, str]:
    """Return the left offset and translate rule for an alignment."""
    return ALIGNMENT_ANCHORS[TextAlignment(alignment)]


class NeonHTMLGenerator:
    """Jinja2-based neon sign HTML generator."""

    def __init__(self) -> None:
        self.settings = get_settings()
        self.logger: Any = logger.bind(generator="jinja2")  # structlog.BoundLoggerBase
        self._setup_jinja2_environment()

    def _setup_jinja2_environment(self) -> None:
        """Setup Jinja2 template environment."""
        template_dir = Path(__file__).parent / "templates"
        self.env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            autoescape=jinja2.select_autoescape(["html", "xml"]),
            enable_async=True,
        )

        self._register_template_functions()

    def _register_template_functions(self) -> None:
        """Register custom Jinja2 filters."""

        def px(value: float) -> str:
            """Convert numeric value to CSS pixels."""
            return f"{value}px"

        def css_safe(value: str) -> str:
            """Make string safe for use in CSS."""
            return value.replace('"', '\\"').replace("'", "\\'")

        self.env.filters["px"] = px
        self.env.filters["css_safe"] = css_safe

    async def generate_fragment(self, sign: NeonSign) -> str:
        """
        Generate the layered sign markup.

        Args:
            sign: Normalised neon sign

        Returns:
            HTML fragment with the plexiglass, glow and foreground layers

        Raises:
            HTMLGenerationError: If template rendering fails
        """
        html = await self._render(
            "neon_sign.html", sign=sign, lines=sign.text.splitlines() or [sign.text]
        )
        self.logger.debug(
            "Sign fragment generated",
            plexiglass=sign.plexiglass_style.value,
            alignment=sign.alignment.value,
            html_length=len(html),
        )
        return html

    async def generate_css(self, sign: NeonSign) -> str:
        """
        Generate the stylesheet for a sign fragment.

        Args:
            sign: Normalised neon sign

        Returns:
            CSS text

        Raises:
            HTMLGenerationError: If template rendering fails
        """
        return await self._render(
            "neon_sign.css",
            sign=sign,
            align=sign.alignment.value,
            anchor=alignment_anchor(sign.alignment),
            font_size=SIGN_FONT_SIZE,
            glow_radii=GLOW_RADII,
            background_url=self.settings.preview_background_url,
        )

    async def compose_document(
        self,
        html: str,
        options: RenderOptions,
        css: Optional[Union[str, Sequence[str]]] = None,
    ) -> str:
        """
        Wrap an HTML fragment into a complete page.

        Args:
            html: Body markup
            options: Render options, used for page size and background
            css: Extra stylesheet text or list of stylesheets for the head

        Returns:
            Full HTML document including web font links and the readiness script

        Raises:
            HTMLGenerationError: If template rendering fails
        """
        if css is None:
            stylesheets: List[str] = []
        elif isinstance(css, str):
            stylesheets = [css]
        else:
            stylesheets = list(css)

        document = await self._render(
            "document.html",
            title="Neon Render",
            content=html,
            options=options,
            background=options.background_color or "transparent",
            fonts_url=google_fonts_url(),
            stylesheets=stylesheets,
        )

        self.logger.info(
            "HTML document composed",
            html_length=len(document),
            stylesheets=len(stylesheets),
        )
        return document

    async def _render(self, template_name: str, **context: Any) -> str:
        try:
            template = self.env.get_template(template_name)
            return await template.render_async(**context)
        except jinja2.TemplateError as e:
            error_msg = f"Template rendering failed: {e}"
            self.logger.error("HTML generation failed", template=template_name, error=error_msg)
            raise HTMLGenerationError(error_msg) from e
        except Exception as e:
            error_msg = f"Unexpected HTML generation error: {e}"
            self.logger.error("HTML generation failed", template=template_name, error=error_msg)
            raise HTMLGenerationError(error_msg) from e


async def generate_sign_markup(sign: NeonSign) -> tuple[str, str]:
    """
    Generate the HTML fragment and CSS for a neon sign.

    Args:
        sign: Normalised neon sign

    Returns:
        Tuple of (fragment, css)
    """
    generator = NeonHTMLGenerator()
    fragment = await generator.generate_fragment(sign)
    css = await generator.generate_css(sign)
    return fragment, css


async def compose_document(
    html: str, options: RenderOptions, css: Optional[Union[str, Sequence[str]]] = None
) -> str:
    """Wrap a fragment into a full HTML document."""
    return await NeonHTMLGenerator().compose_document(html, options, css)
