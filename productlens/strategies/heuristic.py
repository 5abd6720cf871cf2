"""Basic visual heuristics, the terminal fallback tier.

Works from whatever is left:

1. a live snapshot: largest font near the top, currency text by font size,
   largest images, longest text block
2. no session: the raw HTML fetched over HTTP and parsed with BeautifulSoup
3. nothing at all: a title derived from the URL slug
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

import httpx
from bs4 import BeautifulSoup

from ..config import Settings
from ..indexer import take_snapshot
from ..merge import merge_records
from ..models import DocumentSnapshot, ProductRecord
from ..scoring import FieldScorers, PageView
from ..utils import (
    absolute_url,
    clean_text,
    first_currency_amount,
    is_junk_image,
    pick_srcset_url,
    title_from_url,
    word_count,
)
from .base import ExtractionContext, StrategyKind
from .structured_data import product_from_json_ld

logger = logging.getLogger(__name__)

HtmlFetcher = Callable[[str, Settings], Awaitable[str | None]]

MAX_FALLBACK_IMAGES = 3
MIN_BLOCK_CHARS = 100
MIN_BLOCK_WORDS = 20


async def fetch_page_html(url: str, settings: Settings) -> str | None:
    """Plain HTTP fetch used when the browser could not render the page."""
    headers = {
        "user-agent": settings.user_agent,
        "accept-language": "en-IN,en;q=0.9",
    }
    try:
        async with httpx.AsyncClient(
            follow_redirects=True,
            headers=headers,
            timeout=httpx.Timeout(settings.page_timeout_ms / 1000),
        ) as client:
            resp = await client.get(url)
            resp.raise_for_status()
            return resp.text
    except httpx.HTTPError as exc:
        logger.warning("Raw HTML fetch failed for %s: %r", url, exc)
        return None


def heuristic_from_snapshot(snapshot: DocumentSnapshot) -> ProductRecord:
    view = PageView(snapshot)
    top_third = snapshot.viewport_height / 3

    title = None
    headings = [
        n
        for n in snapshot.nodes
        if n.y < top_third and 3 <= len(n.text) < 200 and n.font_size > 0 and not view.in_chrome(n)
    ]
    if headings:
        # earliest node wins among equal font sizes
        title = clean_text(max(headings, key=lambda n: n.font_size).text)

    price = None
    priced = [(n, first_currency_amount(n.text)) for n in snapshot.nodes if len(n.text) <= 40]
    priced = [(n, amount) for n, amount in priced if amount]
    if priced:
        price = max(priced, key=lambda pair: pair[0].font_size)[1]

    images: list[str] = []
    for node in sorted(view.with_tag("img"), key=lambda n: n.area, reverse=True):
        url = FieldScorers.image_url(node)
        if not url or url.startswith(("data:", "blob:")) or url in images:
            continue
        if is_junk_image(url):
            continue
        images.append(url)
        if len(images) >= MAX_FALLBACK_IMAGES:
            break

    description = None
    blocks = [
        clean_text(n.text)
        for n in snapshot.nodes
        if n.tag not in ("body", "html", "main")
        and len(n.text) > MIN_BLOCK_CHARS
        and word_count(n.text) > MIN_BLOCK_WORDS
    ]
    if blocks:
        description = max(blocks, key=len)

    return ProductRecord(title=title, price=price, description=description, images=images)


def heuristic_from_html(html: str, url: str) -> ProductRecord:
    soup = BeautifulSoup(html, "lxml")

    structured = product_from_json_ld(
        s.string or s.get_text() for s in soup.find_all("script", type="application/ld+json")
    )

    def meta(*names: str) -> str | None:
        for name in names:
            tag = soup.find("meta", attrs={"property": name}) or soup.find("meta", attrs={"name": name})
            if tag and tag.get("content"):
                return clean_text(tag["content"])
        return None

    title = meta("og:title")
    if not title and (h1 := soup.find("h1")):
        title = clean_text(h1.get_text(" ")) or None
    if not title and soup.title and soup.title.string:
        title = clean_text(soup.title.string) or None

    price = None
    for el in soup.select('[class*="price" i], [id*="price" i], [itemprop="price"]'):
        if amount := first_currency_amount(el.get_text(" ")):
            price = amount
            break
    if price is None and soup.body:
        price = first_currency_amount(soup.body.get_text(" "))

    scored_images: list[tuple[int, str]] = []
    if og_image := meta("og:image"):
        scored_images.append((10**9, og_image))
    for img in soup.find_all("img"):
        src = pick_srcset_url(img.get("srcset")) or img.get("data-src") or img.get("src")
        src = absolute_url(src, url)
        if not src or src.startswith(("data:", "blob:")):
            continue
        if is_junk_image(src):
            continue
        try:
            area = int(img.get("width", 0)) * int(img.get("height", 0))
        except (TypeError, ValueError):
            area = 0
        scored_images.append((area, src))
    images: list[str] = []
    for _, src in sorted(scored_images, key=lambda pair: -pair[0]):
        if src not in images:
            images.append(src)
        if len(images) >= MAX_FALLBACK_IMAGES:
            break

    description = meta("og:description", "description")
    if not description:
        paragraphs = [clean_text(p.get_text(" ")) for p in soup.find_all("p")]
        paragraphs = [p for p in paragraphs if len(p) > MIN_BLOCK_CHARS and word_count(p) > MIN_BLOCK_WORDS]
        description = max(paragraphs, key=len) if paragraphs else None

    dom = ProductRecord(title=title, price=price, description=description, images=images)
    return merge_records(structured, dom)


class HeuristicStrategy:
    name = "heuristic"
    kind = StrategyKind.HEURISTIC

    def __init__(self, fetch_html: HtmlFetcher | None = None):
        self.fetch_html = fetch_html or fetch_page_html

    async def extract(self, ctx: ExtractionContext) -> ProductRecord | None:
        snapshot = ctx.snapshot
        if snapshot is None and ctx.session is not None:
            snapshot = await take_snapshot(ctx.session)

        record = ProductRecord()
        if snapshot is not None:
            logger.info("[%s] Running visual heuristics on the rendered page", ctx.tag)
            record = heuristic_from_snapshot(snapshot)
        else:
            html = await self.fetch_html(ctx.url, ctx.settings)
            if html:
                logger.info("[%s] Running heuristics on raw HTML", ctx.tag)
                try:
                    record = heuristic_from_html(html, ctx.url)
                except Exception as exc:
                    logger.warning("[%s] Raw HTML parse failed: %r", ctx.tag, exc)

        if not record.title:
            record.title = title_from_url(ctx.url)
            if record.title:
                logger.info("[%s] Title derived from URL: %s", ctx.tag, record.title)
        return record
