"""Pipeline entry point: ``extract(url, options) -> ProductRecord``."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from .ai import AIService, build_service
from .browser_pool import BrowserPool
from .cache import ResultCache
from .config import Settings
from .delivery import check_delivery
from .errors import ExtractionError
from .indexer import index_page
from .models import ProductRecord
from .normalize import normalize, validate
from .obstacles import suppress_obstacles
from .orchestrator import Orchestrator
from .platforms import detect_platform
from .session import PlaywrightRenderer, Renderer, RenderSession
from .strategies import ExtractionContext, HtmlFetcher, default_strategies
from .utils import title_from_url
from .variants import select_variants

logger = logging.getLogger(__name__)

RENDER_ATTEMPTS = 2
DEFAULT_CONCURRENCY = 3

_DEFAULT = object()


@dataclass
class ExtractOptions:
    bypass_cache: bool = False
    # variant type -> desired value, e.g. {"size": "M", "color": "Blue"}
    variants: dict[str, str] = field(default_factory=dict)
    check_delivery: bool = True
    location_code: str | None = None
    # seconds for the whole pipeline; None means unbounded
    timeout: float | None = None


class Extractor:
    """Holds the collaborators shared by many extractions.

    Every ``extract`` call still gets its own renderer session.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        renderer: Renderer | None = None,
        ai_service: AIService | None | object = _DEFAULT,
        cache: ResultCache | None = None,
        fetch_html: HtmlFetcher | None = None,
    ):
        self.settings = settings or Settings.from_env()
        self._owns_browser = renderer is None
        self.renderer = renderer or PlaywrightRenderer(self.settings)
        self.ai_service = build_service(self.settings) if ai_service is _DEFAULT else ai_service
        self.cache = cache or ResultCache(self.settings.cache_dir, self.settings.cache_ttl_hours)
        self.orchestrator = Orchestrator(default_strategies(self.ai_service, fetch_html))
        if self._owns_browser:
            BrowserPool.acquire()

    async def _render(self, ctx: ExtractionContext) -> RenderSession | None:
        for attempt in range(1, RENDER_ATTEMPTS + 1):
            try:
                return await self.renderer.render(
                    ctx.url,
                    platform=ctx.platform,
                    timeout_ms=self.settings.page_timeout_ms,
                    viewport=self.settings.viewport,
                )
            except Exception as exc:
                logger.warning("[%s] Render attempt %d/%d failed: %s", ctx.tag, attempt, RENDER_ATTEMPTS, exc)
        logger.error("[%s] Could not render %s, falling back to basic heuristics", ctx.tag, ctx.url)
        return None

    async def _run(self, ctx: ExtractionContext, options: ExtractOptions, location_code: str) -> ProductRecord:
        session = await self._render(ctx)
        ctx.session = session
        try:
            if session is not None:
                await suppress_obstacles(session, ctx.platform, self.settings)
                if options.variants:
                    await select_variants(session, options.variants, self.settings, tag=ctx.tag)
                ctx.snapshot, ctx.index = await index_page(session)

            record = await self.orchestrator.run(ctx)

            if options.check_delivery and session is not None:
                record.delivery = await check_delivery(
                    session, ctx.platform, self.settings, location_code, self.ai_service
                )
                ctx.partial = record

            validate(record)
            return normalize(record, url=ctx.url, source=ctx.tag, location_code=location_code)
        finally:
            if session is not None:
                await session.close()

    def _partial_result(self, ctx: ExtractionContext, location_code: str) -> ProductRecord:
        partial = ctx.partial
        if not partial.title:
            partial.title = title_from_url(ctx.url)
        validate(partial)
        return normalize(partial, url=ctx.url, source=ctx.tag, location_code=location_code)

    async def extract(self, url: str, options: ExtractOptions | None = None) -> ProductRecord:
        options = options or ExtractOptions()
        platform = detect_platform(url)
        location_code = options.location_code or self.settings.location_code

        if not options.bypass_cache:
            if cached := self.cache.get(url):
                return cached

        ctx = ExtractionContext(url=url, platform=platform, settings=self.settings)
        logger.info("[%s] Extracting %s", ctx.tag, url)
        try:
            if options.timeout:
                try:
                    record = await asyncio.wait_for(self._run(ctx, options, location_code), options.timeout)
                except asyncio.TimeoutError:
                    logger.warning(
                        "[%s] Timed out after %.1fs at %s, returning partial record",
                        ctx.tag,
                        options.timeout,
                        ctx.states[-1] if ctx.states else "render",
                    )
                    return self._partial_result(ctx, location_code)
            else:
                record = await self._run(ctx, options, location_code)
        except ExtractionError:
            raise
        except Exception as exc:
            logger.exception("[%s] Unexpected extraction failure", ctx.tag)
            raise ExtractionError(f"Extraction failed: {exc}", status_code=500) from exc

        try:
            self.cache.put(url, record)
        except OSError as exc:
            logger.warning("[%s] Could not write cache entry: %r", ctx.tag, exc)
        logger.info("[%s] Extracted '%s'", ctx.tag, record.title)
        return record

    async def extract_many(
        self,
        urls: list[str],
        options: ExtractOptions | None = None,
        concurrency: int = DEFAULT_CONCURRENCY,
    ) -> list[ProductRecord | ExtractionError]:
        """Extract several URLs concurrently. Errors are returned in place."""
        semaphore = asyncio.Semaphore(max(1, concurrency))

        async def one(url: str) -> ProductRecord | ExtractionError:
            async with semaphore:
                try:
                    return await self.extract(url, options)
                except ExtractionError as exc:
                    logger.error("Extraction of %s failed: %s", url, exc)
                    return exc

        return list(await asyncio.gather(*(one(u) for u in urls)))

    async def close(self) -> None:
        """Release the shared browser. Safe to call more than once."""
        if self._owns_browser:
            self._owns_browser = False
            await BrowserPool.release()


async def extract(url: str, options: ExtractOptions | None = None, **kwargs) -> ProductRecord:
    """One-shot extraction. ``kwargs`` are passed to ``Extractor``."""
    extractor = Extractor(**kwargs)
    try:
        return await extractor.extract(url, options)
    finally:
        await extractor.close()
