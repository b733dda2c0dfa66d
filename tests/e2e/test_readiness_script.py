"""
E2E Readiness Script Tests
==========================

Runs composed documents in Chromium and checks the readiness flags the
capture pipeline waits on.
"""

import asyncio
from typing import List

import pytest
from playwright.async_api import Page, Route

from neon_preview.core.rendering.html_generator import compose_document
from neon_preview.core.rendering.image_generator import RENDER_READY_PREDICATE
from neon_preview.models.schemas import RenderOptions

pytestmark = [pytest.mark.e2e, pytest.mark.asyncio]

BROKEN_IMAGE = '<img src="data:image/png;base64,bm90IGFuIGltYWdl" alt="">'


async def _flags(page: Page) -> dict:
    return await page.evaluate(
        "() => ({fonts: window.fontsLoaded, images: window.imagesLoaded,"
        " ready: window.renderReady})"
    )


async def _load(page: Page, fragment: str) -> None:
    document = await compose_document(fragment, RenderOptions(width=400, height=300))
    await page.set_content(document, wait_until="domcontentloaded")


async def test_ready_without_images(chromium_page: Page):
    await _load(chromium_page, "<p>Open Late</p>")

    await chromium_page.wait_for_function(RENDER_READY_PREDICATE, timeout=10000)

    assert await _flags(chromium_page) == {"fonts": True, "images": True, "ready": True}


async def test_broken_image_counts_as_settled(chromium_page: Page):
    await _load(chromium_page, f"<p>Open Late</p>{BROKEN_IMAGE}")

    await chromium_page.wait_for_function(RENDER_READY_PREDICATE, timeout=10000)

    assert await _flags(chromium_page) == {"fonts": True, "images": True, "ready": True}


async def test_not_ready_until_images_settle(chromium_page: Page):
    held: List[Route] = []

    async def hold(route: Route) -> None:
        held.append(route)

    await chromium_page.route("https://images.example/**", hold)
    await _load(chromium_page, '<img src="https://images.example/wall.jpg" alt="">')

    await chromium_page.wait_for_function("() => window.fontsLoaded === true", timeout=10000)
    for _ in range(100):
        if held:
            break
        await asyncio.sleep(0.05)

    assert held
    assert await _flags(chromium_page) == {"fonts": True, "images": False, "ready": False}

    await held[0].abort()
    await chromium_page.wait_for_function(RENDER_READY_PREDICATE, timeout=10000)
    assert (await _flags(chromium_page))["images"] is True
