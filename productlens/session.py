"""Renderer contract and its Playwright implementation.

Every pipeline stage receives a ``RenderSession`` explicitly; nothing reads
a global page.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from playwright.async_api import Page, TimeoutError as PlaywrightTimeoutError
from playwright_stealth import Stealth

from .browser_pool import BrowserPool
from .config import Settings
from .errors import RenderError
from .platforms import PlatformProfile

logger = logging.getLogger(__name__)


def location_selector(location: str) -> str:
    """Turn a structural location into a Playwright selector."""
    return f"xpath={location}"


# In-page ``pathOf(el)``: the element's location, same scheme as the indexer.
PATH_OF_JS = """const pathOf = (el) => {
    const parts = [];
    while (el && el.nodeType === 1 && el !== document.documentElement) {
      const tag = el.tagName.toLowerCase();
      let index = 1;
      let sib = el.previousElementSibling;
      while (sib) {
        if (sib.tagName.toLowerCase() === tag) index += 1;
        sib = sib.previousElementSibling;
      }
      parts.unshift(`${tag}[${index}]`);
      el = el.parentElement;
    }
    return '/html/' + parts.join('/').replace(/^body\\[1\\]/, 'body');
  };"""


def with_path_helper(script: str) -> str:
    return script.replace("__PATH_OF__", PATH_OF_JS)


class RenderSession(Protocol):
    """A live, queryable document in its own browser context."""

    url: str

    async def evaluate(self, script: str, arg: Any = None) -> Any: ...

    async def screenshot(self, *, full_page: bool = False) -> bytes: ...

    async def content(self) -> str: ...

    async def is_visible(self, selector: str) -> bool: ...

    async def click(self, selector: str) -> None: ...

    async def fill(self, selector: str, value: str) -> None: ...

    async def press(self, selector: str, key: str) -> None: ...

    async def text_of(self, selector: str) -> str | None: ...

    async def wait(self, ms: int) -> None: ...

    async def wait_for_navigation(self, timeout_ms: int) -> bool: ...

    async def close(self) -> None: ...


class Renderer(Protocol):
    async def render(
        self,
        url: str,
        *,
        platform: PlatformProfile,
        timeout_ms: int,
        viewport: dict[str, int] | None = None,
    ) -> RenderSession: ...


class PlaywrightSession:
    """RenderSession over a Playwright page and its pooled context."""

    ACTION_TIMEOUT_MS = 5_000

    def __init__(self, pool: BrowserPool, context, page: Page):
        self._pool = pool
        self._context = context
        self.page = page

    @property
    def url(self) -> str:
        return self.page.url

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        if arg is None:
            return await self.page.evaluate(script)
        return await self.page.evaluate(script, arg)

    async def screenshot(self, *, full_page: bool = False) -> bytes:
        return await self.page.screenshot(full_page=full_page, type="png")

    async def content(self) -> str:
        return await self.page.content()

    async def is_visible(self, selector: str) -> bool:
        try:
            handle = await self.page.query_selector(selector)
            return bool(handle and await handle.is_visible())
        except Exception:
            return False

    async def click(self, selector: str) -> None:
        await self.page.locator(selector).first.click(timeout=self.ACTION_TIMEOUT_MS)

    async def fill(self, selector: str, value: str) -> None:
        await self.page.locator(selector).first.fill(value, timeout=self.ACTION_TIMEOUT_MS)

    async def press(self, selector: str, key: str) -> None:
        await self.page.locator(selector).first.press(key, timeout=self.ACTION_TIMEOUT_MS)

    async def text_of(self, selector: str) -> str | None:
        try:
            handle = await self.page.query_selector(selector)
            if not handle:
                return None
            return (await handle.inner_text()).strip() or None
        except Exception:
            return None

    async def wait(self, ms: int) -> None:
        await self.page.wait_for_timeout(ms)

    async def wait_for_navigation(self, timeout_ms: int) -> bool:
        try:
            await self.page.wait_for_event("framenavigated", timeout=timeout_ms)
            return True
        except PlaywrightTimeoutError:
            return False

    async def close(self) -> None:
        await self._pool.release_context(self._context)


class PlaywrightRenderer:
    """Opens pages in isolated contexts of the shared browser pool."""

    def __init__(self, settings: Settings, pool: BrowserPool | None = None):
        self.settings = settings
        self._pool = pool

    async def render(
        self,
        url: str,
        *,
        platform: PlatformProfile,
        timeout_ms: int,
        viewport: dict[str, int] | None = None,
    ) -> PlaywrightSession:
        pool = self._pool or await BrowserPool.get_instance()
        context = await pool.open_context(
            user_agent=self.settings.user_agent,
            locale=platform.locale,
            viewport=viewport or self.settings.viewport,
        )
        try:
            page = await context.new_page()
            if platform.stealth:
                await Stealth().apply_stealth_async(page)
            logger.info("[%s] Loading %s...", platform.name, url)
            await page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
            try:
                await page.wait_for_load_state("networkidle", timeout=min(timeout_ms, 15_000))
            except PlaywrightTimeoutError:
                logger.debug("[%s] Network never went idle, continuing", platform.name)
        except Exception as exc:
            await pool.release_context(context)
            raise RenderError(f"Failed to render {url}: {exc}") from exc
        return PlaywrightSession(pool, context, page)
