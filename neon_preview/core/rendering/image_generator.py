"""
Image Generator
===============

Playwright-based screenshot capture of neon sign documents.
Manages the Chromium lifecycle, waits for fonts, images and glow effects to
settle, and encodes the capture as PNG, JPEG or WEBP.
"""

from typing import Optional, Any, AsyncGenerator, Sequence, Tuple, Union
import asyncio
import io
from contextlib import asynccontextmanager

from playwright.async_api import (
    async_playwright,
    Browser,
    BrowserContext,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
)
from PIL import Image  # type: ignore

from neon_preview.config.logging import get_logger
from neon_preview.config.settings import Settings, get_settings
from neon_preview.core.rendering.html_generator import compose_document
from neon_preview.models.schemas import ImageFormat, RenderOptions, RenderResult

logger = get_logger(__name__)

HIDE_WEBDRIVER_SCRIPT = (
    "Object.defineProperty(navigator, 'webdriver', { get: () => false });"
)
RENDER_READY_PREDICATE = "() => window.renderReady === true"
FONTS_READY_SCRIPT = "() => document.fonts.ready.then(() => true)"


class ImageGenerationError(Exception):
    """Exception raised when image generation fails."""

    pass


class BrowserManager:
    """Chromium lifecycle management for the render pipeline."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.logger: Any = logger.bind(component="browser_manager")  # structlog.BoundLoggerBase
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    async def _launch(self) -> Tuple[Playwright, Browser]:
        """Start a Playwright driver and launch Chromium on it."""
        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(
                headless=self.settings.playwright_headless,
                executable_path=self.settings.chromium_executable_path,
                args=self.settings.chromium_args,
            )
        except Exception as e:
            await playwright.stop()
            self.logger.error("Failed to launch browser", error=str(e))
            raise ImageGenerationError(f"Browser launch failed: {e}") from e

        self.logger.info("Browser launched", headless=self.settings.playwright_headless)
        return playwright, browser

    async def _shutdown(self, playwright: Optional[Playwright], browser: Optional[Browser]) -> None:
        """Close a browser and its driver, logging rather than raising on failure."""
        if browser is not None:
            try:
                await browser.close()
            except Exception as e:
                self.logger.warning("Error closing browser", error=str(e))
        if playwright is not None:
            try:
                await playwright.stop()
            except Exception as e:
                self.logger.warning("Error stopping playwright", error=str(e))

    async def get_browser(self) -> Browser:
        """Get the shared browser, launching it when missing or disconnected."""
        async with self._lock:
            browser = self._browser
            if browser is None or not browser.is_connected():
                await self._shutdown(self._playwright, browser)
                self._playwright, browser = await self._launch()
                self._browser = browser
            return browser

    @asynccontextmanager
    async def acquire(self) -> AsyncGenerator[Browser, None]:
        """
        Get a browser for a single render.

        With close_browser_after_render the browser is private to the caller
        and torn down on exit; otherwise the shared instance is handed out.
        """
        if not self.settings.close_browser_after_render:
            yield await self.get_browser()
            return

        playwright, browser = await self._launch()
        try:
            yield browser
        finally:
            await self._shutdown(playwright, browser)
            self.logger.debug("Private browser closed")

    async def close(self) -> None:
        """Close the shared browser instance."""
        async with self._lock:
            await self._shutdown(self._playwright, self._browser)
            self._playwright = None
            self._browser = None
        self.logger.info("Browser manager closed")


class PlaywrightImageGenerator:
    """Playwright-based image generator implementation."""

    def __init__(self, browser_manager: Optional[BrowserManager] = None):
        self.settings = get_settings()
        self.logger: Any = logger.bind(generator="playwright")  # structlog.BoundLoggerBase
        self.browser_manager = browser_manager or BrowserManager(self.settings)

    async def generate_image(self, html_content: str, options: RenderOptions) -> RenderResult:
        """
        Capture an HTML document as an image.

        Args:
            html_content: Complete HTML document
            options: Rendering options

        Returns:
            RenderResult containing image bytes and MIME type

        Raises:
            ImageGenerationError: If navigation, readiness or capture fails
        """
        try:
            self.logger.info(
                "Generating image from HTML",
                html_length=len(html_content),
                width=options.width,
                height=options.height,
                format=options.format.value,
            )

            async with self.browser_manager.acquire() as browser:
                context = await self._create_browser_context(browser, options)

                try:
                    page = await context.new_page()
                    page.set_default_timeout(self.settings.navigation_timeout_ms)

                    await page.set_content(
                        html_content,
                        wait_until="networkidle",
                        timeout=self.settings.navigation_timeout_ms,
                    )

                    await self._wait_until_ready(page, options)

                    image_bytes = await self._capture(page, options)

                    result = RenderResult(
                        image_data=image_bytes,
                        mime_type=options.format.mime_type,
                        format=options.format,
                        width=options.width,
                        height=options.height,
                        file_size=len(image_bytes),
                        metadata={
                            "generator": "playwright",
                            "device_scale_factor": options.device_scale_factor,
                            "transparent": options.transparent,
                            "full_page": options.full_page,
                        },
                    )

                    self.logger.info(
                        "Image generation completed",
                        file_size=result.file_size,
                        mime_type=result.mime_type,
                    )

                    return result

                finally:
                    await context.close()

        except ImageGenerationError:
            raise
        except Exception as e:
            error_msg = f"Image generation failed: {e}"
            self.logger.error("Image generation error", error=error_msg)
            raise ImageGenerationError(error_msg) from e

    async def _create_browser_context(
        self, browser: Browser, options: RenderOptions
    ) -> BrowserContext:
        """Create browser context with a high-DPI viewport."""
        context = await browser.new_context(
            viewport={"width": options.width, "height": options.height},
            device_scale_factor=options.device_scale_factor,
        )
        await context.add_init_script(HIDE_WEBDRIVER_SCRIPT)
        return context

    async def _wait_until_ready(self, page: Page, options: RenderOptions) -> None:
        """Wait for fonts and images, then let the glow filters settle."""
        timeout_ms = self.settings.readiness_timeout_ms
        try:
            await page.wait_for_function(RENDER_READY_PREDICATE, timeout=timeout_ms)
        except PlaywrightTimeoutError:
            # Capture anyway with whatever has loaded
            self.logger.warning("Readiness signal timed out, continuing", timeout_ms=timeout_ms)

        try:
            await asyncio.wait_for(page.evaluate(FONTS_READY_SCRIPT), timeout=timeout_ms / 1000)
        except asyncio.TimeoutError:
            self.logger.warning("Font loading timed out, continuing", timeout_ms=timeout_ms)

        if options.delay > 0:
            await asyncio.sleep(options.delay / 1000)

    async def _capture(self, page: Page, options: RenderOptions) -> bytes:
        """Take the screenshot in the requested format."""
        if options.format is ImageFormat.JPEG:
            return await page.screenshot(
                type="jpeg", quality=options.quality, full_page=options.full_page
            )

        png_bytes = await page.screenshot(
            type="png", omit_background=options.transparent, full_page=options.full_page
        )
        if options.format is ImageFormat.WEBP:
            return self._transcode_webp(png_bytes, options.quality)
        return png_bytes

    def _transcode_webp(self, png_bytes: bytes, quality: int) -> bytes:
        """
        Re-encode a lossless PNG capture as WEBP.

        Chromium's screenshot API only emits PNG and JPEG, so WEBP goes
        through Pillow, keeping the alpha channel.
        """
        image = Image.open(io.BytesIO(png_bytes))
        if image.mode not in ("RGB", "RGBA"):
            image = image.convert("RGBA")

        output = io.BytesIO()
        image.save(output, format="WEBP", quality=quality)
        webp_bytes = output.getvalue()

        self.logger.debug(
            "WEBP transcode completed",
            original_size=len(png_bytes),
            webp_size=len(webp_bytes),
            quality=quality,
        )
        return webp_bytes


# Global browser manager instance
_browser_manager: Optional[BrowserManager] = None


def get_browser_manager() -> BrowserManager:
    """Get the global browser manager."""
    global _browser_manager
    if _browser_manager is None:
        _browser_manager = BrowserManager()
    return _browser_manager


async def close_browser() -> None:
    """Close the global browser manager and any shared browser it holds."""
    global _browser_manager
    if _browser_manager:
        await _browser_manager.close()
        _browser_manager = None


async def render_neon(html: str, options: Optional[RenderOptions] = None) -> RenderResult:
    """
    Render an HTML fragment to an image.

    Args:
        html: Body markup
        options: Rendering options, defaults when omitted

    Returns:
        RenderResult containing image bytes and MIME type
    """
    return await render_neon_with_css(html, None, options)


async def render_neon_with_css(
    html: str,
    css: Optional[Union[str, Sequence[str]]],
    options: Optional[RenderOptions] = None,
) -> RenderResult:
    """
    Render an HTML fragment with extra stylesheets injected into the page head.

    Args:
        html: Body markup
        css: Stylesheet text or list of stylesheets
        options: Rendering options, defaults when omitted

    Returns:
        RenderResult containing image bytes and MIME type
    """
    options = options or RenderOptions()
    document = await compose_document(html, options, css)
    generator = PlaywrightImageGenerator(get_browser_manager())
    return await generator.generate_image(document, options)
