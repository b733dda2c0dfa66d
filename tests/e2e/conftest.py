"""
E2E Test Configuration
======================

Real Chromium fixtures. Tests are skipped when no Playwright browser is
installed.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from playwright.async_api import Page, Route, async_playwright


async def _abort(route: Route) -> None:
    await route.abort()


@pytest_asyncio.fixture
async def chromium_page() -> AsyncGenerator[Page, None]:
    """A fresh page with all network access blocked."""
    async with async_playwright() as playwright:
        try:
            browser = await playwright.chromium.launch(headless=True)
        except Exception as e:
            pytest.skip(f"Chromium not available: {e}")

        try:
            page = await browser.new_page()
            await page.route("**/*", _abort)
            yield page
        finally:
            await browser.close()
