"""
Tests for the shared BrowserSession (Playwright is mocked).
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from storeprobe.core.config import Viewport
from storeprobe.core.session import BrowserSession, SessionConfig


@pytest.fixture
def mock_playwright():
    context = MagicMock()
    context.close = AsyncMock()

    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()

    playwright = MagicMock()
    playwright.chromium.launch = AsyncMock(return_value=browser)
    playwright.stop = AsyncMock()

    starter = MagicMock()
    starter.start = AsyncMock(return_value=playwright)

    with patch("storeprobe.core.session.async_playwright", return_value=starter) as factory:
        yield SimpleNamespace(factory=factory, playwright=playwright, browser=browser, context=context)


class TestBrowserSession:
    """Tests for the shared browser session."""

    @pytest.mark.asyncio
    async def test_browser_launches_lazily_once(self, mock_playwright):
        """Test the browser is launched once on first use."""
        session = BrowserSession(SessionConfig(headless=True))
        assert session.is_running is False

        async with session.isolated_context(Viewport(1280, 720)) as context:
            assert context is mock_playwright.context
            assert session.active_contexts == 1
        async with session.isolated_context(Viewport()):
            pass

        assert mock_playwright.factory.call_count == 1
        mock_playwright.playwright.chromium.launch.assert_awaited_once()
        assert session.active_contexts == 0
        assert mock_playwright.context.close.await_count == 2
        mock_playwright.browser.new_context.assert_any_await(viewport={"width": 1280, "height": 720})

    @pytest.mark.asyncio
    async def test_mobile_context_options(self, mock_playwright):
        """Test mobile contexts get the mobile profile."""
        session = BrowserSession()

        async with session.isolated_context(Viewport(), mobile=True):
            pass

        mock_playwright.browser.new_context.assert_awaited_once_with(
            viewport={"width": 390, "height": 844},
            is_mobile=True,
            has_touch=True,
        )

    @pytest.mark.asyncio
    async def test_context_closed_when_body_raises(self, mock_playwright):
        """Test the context is closed when the body raises."""
        session = BrowserSession()

        with pytest.raises(ValueError):
            async with session.isolated_context(Viewport()):
                raise ValueError("page blew up")

        mock_playwright.context.close.assert_awaited_once()
        assert session.active_contexts == 0

    @pytest.mark.asyncio
    async def test_close_then_reuse_raises(self, mock_playwright):
        """Test a closed session refuses new contexts."""
        session = BrowserSession()
        async with session.isolated_context(Viewport()):
            pass

        await session.close()

        mock_playwright.browser.close.assert_awaited_once()
        mock_playwright.playwright.stop.assert_awaited_once()
        assert session.is_running is False
        with pytest.raises(RuntimeError, match="BROWSER_SESSION_CLOSED"):
            async with session.isolated_context(Viewport()):
                pass
