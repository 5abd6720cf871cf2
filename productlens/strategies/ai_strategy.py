"""Extraction through the external AI service."""

from __future__ import annotations

import logging

from ..ai import AIService, ask_json
from ..models import DeliveryInfo, ProductRecord
from .base import ExtractionContext, StrategyKind

logger = logging.getLogger(__name__)

HTML_EXCERPT_CHARS = 20_000

RECORD_SCHEMA = """{
  "title": "string",
  "price": "string with currency symbol",
  "originalPrice": "string or null",
  "description": "string",
  "features": ["array of strings"],
  "variants": {"sizes": ["..."], "colors": ["..."], "other": ["..."]},
  "images": ["array of absolute image URLs"],
  "weight": "string or null",
  "category": "string or null"
}"""


def build_prompt(platform: str, known: ProductRecord, missing: list[str]) -> str:
    lines = [
        f"Extract complete product information from this {platform} product page.",
        "Return only a valid JSON object with these fields:",
        RECORD_SCHEMA,
        "Use null for any field that is not on the page.",
    ]
    known_values = {
        k: v for k, v in known.to_dict().items() if k in ("title", "price", "description") and v
    }
    if missing:
        lines.append(f"These fields are still missing: {', '.join(missing)}.")
    if known_values:
        lines.append("Already extracted (for orientation):")
        lines.extend(f"- {k}: {v}" for k, v in known_values.items())
    return "\n".join(lines)


def build_text_prompt(platform: str, missing: list[str], html: str) -> str:
    fields = ", ".join(missing) if missing else "all product fields"
    return (
        f"Extract product data ({fields}) from this {platform} product page HTML.\n"
        f"Return only a JSON object shaped like:\n{RECORD_SCHEMA}\n\n{html[:HTML_EXCERPT_CHARS]}"
    )


class AIStrategy:
    """Screenshot call with the full prompt, then one text-only retry."""

    name = "ai"
    kind = StrategyKind.AI

    def __init__(self, service: AIService):
        self.service = service

    async def extract(self, ctx: ExtractionContext) -> ProductRecord | None:
        session = ctx.session
        if session is None:
            return None
        timeout_s = ctx.settings.ai_timeout_s
        missing = ctx.partial.missing_core_fields()

        screenshot = None
        try:
            screenshot = await session.screenshot(full_page=True)
        except Exception as exc:
            logger.warning("[%s] Screenshot failed: %r", ctx.tag, exc)

        data = None
        if screenshot:
            logger.info("[%s] Asking AI service for: %s", ctx.tag, ", ".join(missing) or "all fields")
            data = await ask_json(
                self.service,
                build_prompt(ctx.platform.display_name, ctx.partial, missing),
                image=screenshot,
                timeout_s=timeout_s,
                label=ctx.tag,
            )

        if not isinstance(data, dict):
            try:
                html = await session.content()
            except Exception as exc:
                logger.warning("[%s] Could not read page HTML: %r", ctx.tag, exc)
                return None
            logger.info("[%s] Retrying AI extraction from page text", ctx.tag)
            data = await ask_json(
                self.service,
                build_text_prompt(ctx.platform.display_name, missing, html),
                timeout_s=timeout_s,
                label=ctx.tag,
            )

        if not isinstance(data, dict):
            return None
        record = ProductRecord.from_dict(data)
        # delivery comes from the inquiry protocol only
        record.delivery = DeliveryInfo()
        return record
