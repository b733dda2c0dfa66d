"""
Unit Tests for Image Generator
==============================

Browser lifecycle, readiness gate, capture formats and failure handling.
Playwright is replaced with mocks throughout.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, Mock, patch

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from neon_preview.config.settings import Settings
from neon_preview.core.rendering import image_generator
from neon_preview.core.rendering.image_generator import (
    FONTS_READY_SCRIPT,
    HIDE_WEBDRIVER_SCRIPT,
    RENDER_READY_PREDICATE,
    BrowserManager,
    ImageGenerationError,
    PlaywrightImageGenerator,
    close_browser,
    get_browser_manager,
    render_neon,
    render_neon_with_css,
)
from neon_preview.models.schemas import ImageFormat, RenderOptions

from tests.utils.assertions import assert_is_png, assert_is_webp, assert_valid_render_result
from tests.utils.data_generators import make_render_result


@pytest.fixture
def mock_playwright(mock_browser):
    playwright = AsyncMock()
    playwright.chromium.launch = AsyncMock(return_value=mock_browser)
    return playwright


@pytest.fixture
def patched_async_playwright(mock_playwright):
    with patch.object(image_generator, "async_playwright") as factory:
        factory.return_value.start = AsyncMock(return_value=mock_playwright)
        yield factory


class TestImageGenerationError:
    def test_image_generation_error_creation(self):
        error = ImageGenerationError("Test error message")
        assert str(error) == "Test error message"
        assert isinstance(error, Exception)


class TestBrowserManager:
    """Test browser launch and teardown."""

    @pytest.mark.asyncio
    async def test_private_browser_closed_after_use(
        self, patched_async_playwright, mock_playwright, mock_browser
    ):
        manager = BrowserManager(Settings(close_browser_after_render=True))

        async with manager.acquire() as browser:
            assert browser is mock_browser
            mock_browser.close.assert_not_called()

        mock_browser.close.assert_awaited_once()
        mock_playwright.stop.assert_awaited_once()
        assert manager.is_running is False

    @pytest.mark.asyncio
    async def test_private_browser_closed_on_error(
        self, patched_async_playwright, mock_playwright, mock_browser
    ):
        manager = BrowserManager(Settings(close_browser_after_render=True))

        with pytest.raises(RuntimeError):
            async with manager.acquire():
                raise RuntimeError("render blew up")

        mock_browser.close.assert_awaited_once()
        mock_playwright.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_each_render_gets_its_own_browser(
        self, patched_async_playwright, mock_playwright
    ):
        manager = BrowserManager(Settings(close_browser_after_render=True))

        for _ in range(2):
            async with manager.acquire():
                pass

        assert mock_playwright.chromium.launch.await_count == 2

    @pytest.mark.asyncio
    async def test_launch_options_from_settings(self, patched_async_playwright, mock_playwright):
        settings = Settings(
            playwright_headless=False,
            chromium_executable_path="/opt/chromium/chrome",
            chromium_args=["--no-sandbox"],
        )

        async with BrowserManager(settings).acquire():
            pass

        mock_playwright.chromium.launch.assert_awaited_once_with(
            headless=False, executable_path="/opt/chromium/chrome", args=["--no-sandbox"]
        )

    @pytest.mark.asyncio
    async def test_launch_failure(self, patched_async_playwright, mock_playwright):
        mock_playwright.chromium.launch.side_effect = Exception("missing shared library")
        manager = BrowserManager(Settings())

        with pytest.raises(ImageGenerationError, match="Browser launch failed"):
            async with manager.acquire():
                pass

        mock_playwright.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_errors_are_swallowed(
        self, patched_async_playwright, mock_playwright, mock_browser
    ):
        mock_browser.close.side_effect = Exception("already gone")

        async with BrowserManager(Settings()).acquire():
            pass

        mock_playwright.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_shared_browser_reused(self, patched_async_playwright, mock_playwright):
        manager = BrowserManager(Settings(close_browser_after_render=False))

        async with manager.acquire() as first:
            pass
        async with manager.acquire() as second:
            pass

        assert first is second
        assert manager.is_running is True
        mock_playwright.chromium.launch.assert_awaited_once()
        first.close.assert_not_called()

    @pytest.mark.asyncio
    async def test_shared_browser_relaunched_when_disconnected(
        self, patched_async_playwright, mock_playwright, mock_browser
    ):
        manager = BrowserManager(Settings(close_browser_after_render=False))

        await manager.get_browser()
        mock_browser.is_connected.return_value = False
        await manager.get_browser()

        assert mock_playwright.chromium.launch.await_count == 2

    @pytest.mark.asyncio
    async def test_close_shared_browser(
        self, patched_async_playwright, mock_playwright, mock_browser
    ):
        manager = BrowserManager(Settings(close_browser_after_render=False))
        await manager.get_browser()

        await manager.close()

        mock_browser.close.assert_awaited_once()
        mock_playwright.stop.assert_awaited_once()
        assert manager.is_running is False


class TestPlaywrightImageGenerator:
    """Test the capture pipeline against a mocked browser."""

    @pytest.fixture
    def generator(self, mock_browser_manager):
        return PlaywrightImageGenerator(mock_browser_manager)

    @pytest.fixture
    def no_sleep(self):
        with patch.object(image_generator.asyncio, "sleep", new_callable=AsyncMock) as sleep:
            yield sleep

    @pytest.mark.asyncio
    async def test_png_capture(self, generator, mock_page, png_bytes, no_sleep):
        result = await generator.generate_image("<html></html>", RenderOptions(delay=0))

        assert_valid_render_result(result)
        assert result.image_data == png_bytes
        assert result.mime_type == "image/png"
        mock_page.screenshot.assert_awaited_once_with(
            type="png", omit_background=True, full_page=False
        )

    @pytest.mark.asyncio
    async def test_background_color_keeps_background(self, generator, mock_page, no_sleep):
        await generator.generate_image(
            "<html></html>", RenderOptions(background_color="#000000", full_page=True)
        )

        mock_page.screenshot.assert_awaited_once_with(
            type="png", omit_background=False, full_page=True
        )

    @pytest.mark.asyncio
    async def test_jpeg_capture_uses_quality(self, generator, mock_page, no_sleep):
        result = await generator.generate_image(
            "<html></html>", RenderOptions(format=ImageFormat.JPEG, quality=80)
        )

        assert result.mime_type == "image/jpeg"
        mock_page.screenshot.assert_awaited_once_with(type="jpeg", quality=80, full_page=False)

    @pytest.mark.asyncio
    async def test_webp_transcoded_from_png(self, generator, mock_page, no_sleep):
        result = await generator.generate_image(
            "<html></html>", RenderOptions(format=ImageFormat.WEBP, quality=90)
        )

        assert_is_webp(result.image_data)
        assert result.mime_type == "image/webp"
        assert result.file_size == len(result.image_data)
        mock_page.screenshot.assert_awaited_once_with(
            type="png", omit_background=True, full_page=False
        )

    @pytest.mark.asyncio
    async def test_viewport_and_scale(self, generator, mock_browser, mock_context, no_sleep):
        await generator.generate_image(
            "<html></html>", RenderOptions(width=1200, height=800, device_scale_factor=1.5)
        )

        mock_browser.new_context.assert_awaited_once_with(
            viewport={"width": 1200, "height": 800}, device_scale_factor=1.5
        )
        mock_context.add_init_script.assert_awaited_once_with(HIDE_WEBDRIVER_SCRIPT)

    @pytest.mark.asyncio
    async def test_content_loaded_with_network_idle(self, generator, mock_page, no_sleep):
        await generator.generate_image("<html>neon</html>", RenderOptions())

        mock_page.set_content.assert_awaited_once_with(
            "<html>neon</html>",
            wait_until="networkidle",
            timeout=generator.settings.navigation_timeout_ms,
        )

    @pytest.mark.asyncio
    async def test_readiness_gate_sequence(self, generator, mock_page, no_sleep):
        await generator.generate_image("<html></html>", RenderOptions(delay=250))

        mock_page.wait_for_function.assert_awaited_once_with(
            RENDER_READY_PREDICATE, timeout=generator.settings.readiness_timeout_ms
        )
        mock_page.evaluate.assert_awaited_once_with(FONTS_READY_SCRIPT)
        no_sleep.assert_awaited_once_with(0.25)

    @pytest.mark.asyncio
    async def test_zero_delay_skips_sleep(self, generator, no_sleep):
        await generator.generate_image("<html></html>", RenderOptions(delay=0))
        no_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_readiness_timeout_still_captures(self, generator, mock_page, no_sleep):
        mock_page.wait_for_function.side_effect = PlaywrightTimeoutError("Timeout 10000ms exceeded")

        result = await generator.generate_image("<html></html>", RenderOptions())

        assert_is_png(result.image_data)
        mock_page.evaluate.assert_awaited_once_with(FONTS_READY_SCRIPT)
        mock_page.screenshot.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stalled_font_loading_still_captures(self, generator, mock_page, no_sleep):
        generator.settings = generator.settings.model_copy(update={"readiness_timeout_ms": 50})
        mock_page.wait_for_function.side_effect = PlaywrightTimeoutError("Timeout 50ms exceeded")

        async def never_settles(*args, **kwargs):
            await asyncio.Event().wait()

        mock_page.evaluate.side_effect = never_settles

        result = await asyncio.wait_for(
            generator.generate_image("<html></html>", RenderOptions()), timeout=5
        )

        assert_is_png(result.image_data)
        mock_page.screenshot.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_navigation_failure(self, generator, mock_page, mock_context, no_sleep):
        mock_page.set_content.side_effect = PlaywrightTimeoutError("Timeout 30000ms exceeded")

        with pytest.raises(ImageGenerationError, match="Image generation failed: Timeout"):
            await generator.generate_image("<html></html>", RenderOptions())

        mock_page.screenshot.assert_not_awaited()
        mock_context.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_screenshot_failure(self, generator, mock_page, mock_context, no_sleep):
        mock_page.screenshot.side_effect = Exception("Target closed")

        with pytest.raises(ImageGenerationError, match="Target closed"):
            await generator.generate_image("<html></html>", RenderOptions())

        mock_context.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_launch_failure_propagates_unchanged(self, no_sleep):
        manager = Mock()
        manager.acquire.side_effect = ImageGenerationError("Browser launch failed: no chromium")

        with pytest.raises(ImageGenerationError, match="^Browser launch failed"):
            await PlaywrightImageGenerator(manager).generate_image("<html></html>", RenderOptions())


class TestModuleFunctions:
    """Test the module-level render entry points."""

    @pytest.fixture(autouse=True)
    def reset_manager(self, monkeypatch):
        monkeypatch.setattr(image_generator, "_browser_manager", None)

    @pytest.mark.asyncio
    async def test_get_browser_manager_singleton(self):
        assert get_browser_manager() is get_browser_manager()

    @pytest.mark.asyncio
    async def test_close_browser_resets_singleton(self):
        first = get_browser_manager()
        await close_browser()
        assert get_browser_manager() is not first

    @pytest.mark.asyncio
    async def test_render_neon_with_css_injects_stylesheet(self):
        with patch.object(
            PlaywrightImageGenerator,
            "generate_image",
            new_callable=AsyncMock,
            return_value=make_render_result(),
        ) as generate_image:
            result = await render_neon_with_css(
                "<div>sign</div>", ".neon { color: red; }", RenderOptions(width=800)
            )

        assert result.mime_type == "image/webp"
        document, options = generate_image.await_args.args
        assert document.index(".neon { color: red; }") < document.index("</head>")
        assert document.index("<div>sign</div>") > document.index("<body>")
        assert options.width == 800

    @pytest.mark.asyncio
    async def test_render_neon_uses_default_options(self):
        with patch.object(
            PlaywrightImageGenerator,
            "generate_image",
            new_callable=AsyncMock,
            return_value=make_render_result(),
        ) as generate_image:
            await render_neon("<div>sign</div>")

        _, options = generate_image.await_args.args
        assert options == RenderOptions()
