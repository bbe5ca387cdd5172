from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncGenerator, Optional

from playwright.async_api import Browser, BrowserContext, Playwright, async_playwright

from storeprobe.core.config import (
    MOBILE_VIEWPORT_HEIGHT,
    MOBILE_VIEWPORT_WIDTH,
    ProbeSettings,
    Viewport,
)

logger = logging.getLogger("storeprobe.session")


@dataclass(frozen=True)
class SessionConfig:
    headless: bool = True
    extra_chromium_args: tuple[str, ...] = (
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-dev-shm-usage",
    )

    @classmethod
    def from_settings(cls, settings: ProbeSettings) -> "SessionConfig":
        return cls(headless=settings.headless, extra_chromium_args=settings.extra_chromium_args)


class BrowserSession:
    """Shared headless browser process handed to every execution.

    The browser is launched on the first context request and stays up until
    ``close()``; each execution gets its own isolated context. The reference
    count tracks live contexts so shutdown can report what it interrupts.
    """

    def __init__(self, config: SessionConfig | None = None) -> None:
        self._config = config or SessionConfig()
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._lock = asyncio.Lock()
        self._refcount = 0
        self._closed = False

    @property
    def active_contexts(self) -> int:
        return self._refcount

    @property
    def is_running(self) -> bool:
        return self._browser is not None

    async def _ensure_browser(self) -> Browser:
        async with self._lock:
            if self._closed:
                raise RuntimeError("BROWSER_SESSION_CLOSED")
            if self._browser is None:
                logger.info("[Session] Launching headless browser")
                self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.launch(
                    headless=self._config.headless,
                    args=list(self._config.extra_chromium_args),
                )
            return self._browser

    @asynccontextmanager
    async def isolated_context(
        self,
        viewport: Viewport,
        mobile: bool = False,
    ) -> AsyncGenerator[BrowserContext, None]:
        browser = await self._ensure_browser()
        options: dict[str, object] = {"viewport": viewport.as_playwright()}
        if mobile:
            options = {
                "viewport": {"width": MOBILE_VIEWPORT_WIDTH, "height": MOBILE_VIEWPORT_HEIGHT},
                "is_mobile": True,
                "has_touch": True,
            }
        context = await browser.new_context(**options)
        self._refcount += 1
        try:
            yield context
        finally:
            self._refcount -= 1
            try:
                await context.close()
            except Exception as e:
                logger.warning(f"[Session] Error closing context: {e}")

    async def close(self) -> None:
        async with self._lock:
            self._closed = True
            if self._refcount:
                logger.warning(f"[Session] Closing browser with {self._refcount} live contexts")
            if self._browser:
                await self._browser.close()
                self._browser = None
            if self._playwright:
                await self._playwright.stop()
                self._playwright = None
            logger.info("[Session] Browser closed")
