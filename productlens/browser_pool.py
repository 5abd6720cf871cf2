"""Shared Playwright browser with one isolated context per extraction."""

from __future__ import annotations

import asyncio
import logging

from playwright.async_api import Browser, BrowserContext, Playwright, async_playwright

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
]


class BrowserPool:
    """
    Singleton pool around one headless Chromium process.

    Every extraction gets its own BrowserContext, so cookies, storage and
    in-page state are never shared between concurrent pipelines.
    Browser launch: seconds. Context creation: tens of milliseconds.
    """

    _instance: BrowserPool | None = None
    _lock = asyncio.Lock()
    # extractors currently sharing the browser; the last release shuts it down
    _users = 0

    def __init__(self, headless: bool = True):
        self.headless = headless
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._open_contexts: set[BrowserContext] = set()
        self._launch_lock = asyncio.Lock()

    @classmethod
    async def get_instance(cls) -> BrowserPool:
        """Get or create the singleton pool."""
        if cls._instance is None:
            async with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    async def _ensure_browser(self) -> Browser:
        async with self._launch_lock:
            if self._browser is not None and self._browser.is_connected():
                return self._browser
            if self._playwright is None:
                self._playwright = await async_playwright().start()
            logger.info("Launching headless Chromium")
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless, args=LAUNCH_ARGS
            )
            return self._browser

    async def open_context(
        self,
        *,
        user_agent: str | None = None,
        locale: str | None = None,
        viewport: dict[str, int] | None = None,
    ) -> BrowserContext:
        """Open a fresh isolated context. Pair with ``release_context``."""
        browser = await self._ensure_browser()
        context_kwargs: dict[str, object] = {}
        if user_agent:
            context_kwargs["user_agent"] = user_agent
        if locale:
            context_kwargs["locale"] = locale
        if viewport:
            context_kwargs["viewport"] = viewport
        context = await browser.new_context(**context_kwargs)
        self._open_contexts.add(context)
        return context

    async def release_context(self, context: BrowserContext) -> None:
        self._open_contexts.discard(context)
        try:
            await context.close()
        except Exception as exc:
            logger.debug("Context close failed: %r", exc)

    async def close(self) -> None:
        """Close every open context, the browser, and Playwright."""
        for context in list(self._open_contexts):
            await self.release_context(context)
        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception as exc:
                logger.debug("Browser close failed: %r", exc)
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    @property
    def active_contexts(self) -> int:
        """Number of open browser contexts."""
        return len(self._open_contexts)

    @classmethod
    async def shutdown(cls) -> None:
        """Shutdown the singleton instance."""
        if cls._instance is not None:
            await cls._instance.close()
            cls._instance = None

    @classmethod
    def acquire(cls) -> None:
        """Register one more owner of the shared browser."""
        cls._users += 1

    @classmethod
    async def release(cls) -> None:
        """Drop one owner. The last owner to release shuts the pool down."""
        if cls._users == 0:
            return
        cls._users -= 1
        if cls._users == 0:
            await cls.shutdown()
