"""
Test Configuration
==================

Pytest configuration with fixtures shared by unit and integration tests.
"""

import os

# Must be set before neon_preview configures logging on import
os.environ.setdefault("NEON_PREVIEW_ENVIRONMENT", "testing")
os.environ.setdefault("NEON_PREVIEW_LOG_LEVEL", "DEBUG")

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Generator
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

from neon_preview.api.main import app
from neon_preview.config.settings import Settings, get_settings
from neon_preview.models.schemas import NeonSign

from tests.utils.data_generators import NeonRequestGenerator, NeonSignGenerator, make_png_bytes


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Settings the application was configured with."""
    return get_settings()


@pytest.fixture
def fastapi_client() -> Generator[TestClient, None, None]:
    """FastAPI test client."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def sample_payload() -> Dict[str, Any]:
    return NeonRequestGenerator.basic_payload()


@pytest.fixture
def sample_sign() -> NeonSign:
    return NeonSignGenerator.sign()


@pytest.fixture
def png_bytes() -> bytes:
    return make_png_bytes()


@pytest.fixture
def mock_page(png_bytes: bytes) -> AsyncMock:
    """Playwright page double that captures a real PNG."""
    page = AsyncMock()
    page.set_default_timeout = Mock()
    page.screenshot = AsyncMock(return_value=png_bytes)
    return page


@pytest.fixture
def mock_context(mock_page: AsyncMock) -> AsyncMock:
    context = AsyncMock()
    context.new_page = AsyncMock(return_value=mock_page)
    return context


@pytest.fixture
def mock_browser(mock_context: AsyncMock) -> AsyncMock:
    browser = AsyncMock()
    browser.new_context = AsyncMock(return_value=mock_context)
    browser.is_connected = Mock(return_value=True)
    return browser


@pytest.fixture
def mock_browser_manager(mock_browser: AsyncMock) -> Mock:
    """Browser manager double handing out the mock browser."""
    manager = Mock()

    @asynccontextmanager
    async def acquire() -> AsyncGenerator[AsyncMock, None]:
        yield mock_browser

    manager.acquire = acquire
    return manager
