"""schema.org ``Product`` data from JSON-LD blocks."""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable

from ..models import ProductRecord, Variants
from ..utils import clean_text

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = {"INR": "₹", "USD": "$", "EUR": "€", "GBP": "£"}


def _types(node: dict) -> list[str]:
    value = node.get("@type")
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [v for v in value if isinstance(v, str)]
    return []


def _iter_nodes(data: Any) -> Iterable[dict]:
    if isinstance(data, list):
        for item in data:
            yield from _iter_nodes(item)
    elif isinstance(data, dict):
        yield data
        if "@graph" in data:
            yield from _iter_nodes(data["@graph"])


def find_product_nodes(blobs: Iterable[str]) -> list[dict]:
    products = []
    for blob in blobs:
        try:
            data = json.loads(blob)
        except (json.JSONDecodeError, TypeError):
            continue
        products.extend(n for n in _iter_nodes(data) if "Product" in _types(n))
    return products


def _text(value: Any) -> str | None:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str):
        return clean_text(value) or None
    if isinstance(value, dict):
        return _text(value.get("name") or value.get("@value"))
    return None


def _images(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, dict):
        url = value.get("url") or value.get("contentUrl")
        return [url] if isinstance(url, str) else []
    if isinstance(value, list):
        out: list[str] = []
        for item in value:
            out.extend(_images(item))
        return out
    return []


def _price(offers: Any) -> str | None:
    if isinstance(offers, list):
        for offer in offers:
            if price := _price(offer):
                return price
        return None
    if not isinstance(offers, dict):
        return None
    amount = offers.get("price") or offers.get("lowPrice")
    if amount is None or amount == "":
        return None
    symbol = CURRENCY_SYMBOLS.get(str(offers.get("priceCurrency") or "").upper(), "")
    if symbol:
        return f"{symbol}{amount}"
    currency = offers.get("priceCurrency")
    return f"{amount} {currency}" if currency else str(amount)


def _weight(value: Any) -> str | None:
    if isinstance(value, dict):
        amount = value.get("value")
        unit = value.get("unitText") or value.get("unitCode") or ""
        if amount is None:
            return None
        return f"{amount} {unit}".strip()
    return _text(value)


def product_from_json_ld(blobs: Iterable[str]) -> ProductRecord | None:
    """Record from the first JSON-LD Product node, or None."""
    products = find_product_nodes(blobs)
    if not products:
        return None
    node = products[0]
    colors = [c for c in [_text(node.get("color"))] if c]
    sizes = [s for s in [_text(node.get("size"))] if s]
    category = _text(node.get("category"))
    if category and ">" in category:
        # "Home > Shoes > Running" style paths
        parts = [p.strip() for p in category.split(">") if p.strip()]
        category = parts[1] if len(parts) > 1 else parts[0]
    record = ProductRecord(
        title=_text(node.get("name")),
        price=_price(node.get("offers")),
        description=_text(node.get("description")),
        images=_images(node.get("image")),
        variants=Variants(sizes=sizes, colors=colors),
        weight=_weight(node.get("weight")),
        category=category,
    )
    logger.debug("JSON-LD product: %s", record.title)
    return record
