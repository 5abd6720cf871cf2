"""First-pass extraction from the document index."""

from __future__ import annotations

import logging

from ..merge import merge_records
from ..models import DocumentIndex, DocumentSnapshot, ProductRecord
from ..scoring import FieldScorers, PageView
from .base import ExtractionContext, StrategyKind
from .structured_data import product_from_json_ld

logger = logging.getLogger(__name__)


def extract_from_snapshot(snapshot: DocumentSnapshot, index: DocumentIndex | None) -> ProductRecord:
    """Best candidate per field, with JSON-LD and meta tags filling gaps."""
    scorers = FieldScorers(PageView(snapshot, index))

    title = scorers.best(scorers.title_candidates())
    prices = scorers.price_candidates()
    price = scorers.best(prices)
    description = scorers.best(scorers.description_candidates())
    weight = scorers.best(scorers.weight_candidates())
    category = scorers.best(scorers.category_candidates())

    record = ProductRecord(
        title=title.text if title else None,
        price=price.text if price else None,
        original_price=scorers.original_price(price, prices) if price else None,
        description=description.text if description else None,
        features=scorers.features(),
        images=scorers.best_images(),
        variants=scorers.available_variants(),
        weight=weight.text if weight else None,
        category=category.text if category else None,
    )

    record = merge_records(record, product_from_json_ld(snapshot.structured_data))

    meta = snapshot.meta
    fallback = ProductRecord(
        title=meta.get("og:title") or None,
        description=meta.get("og:description") or meta.get("description") or None,
        images=[meta["og:image"]] if meta.get("og:image") else [],
    )
    if record.images:
        # og:image only when the page yielded nothing
        fallback.images = []
    return merge_records(record, fallback)


class IndexStrategy:
    name = "index"
    kind = StrategyKind.INDEX

    async def extract(self, ctx: ExtractionContext) -> ProductRecord | None:
        if ctx.snapshot is None:
            logger.info("[%s] No document snapshot, skipping index extraction", ctx.tag)
            return None
        if ctx.index is None:
            logger.info("[%s] Index unavailable, scoring by direct scan", ctx.tag)
        record = extract_from_snapshot(ctx.snapshot, ctx.index)
        missing = record.missing_core_fields()
        logger.info(
            "[%s] Index extraction resolved %s",
            ctx.tag,
            "all core fields" if not missing else f"all but {', '.join(missing)}",
        )
        return record
