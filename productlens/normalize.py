"""Final validation and normalization of extracted records."""

from __future__ import annotations

import re
from dataclasses import replace
from datetime import UTC, datetime
from urllib.parse import urlparse

from .errors import IncompleteResultError
from .models import DeliveryInfo, ProductRecord, Variants
from .utils import absolute_url, clean_text, first_currency_amount, is_junk_image

DEFAULT_DESCRIPTION = "No description available"
DEFAULT_CATEGORY = "Uncategorized"
DEFAULT_LOCATION_CODE = "201001"
MAX_IMAGES = 5
MAX_FEATURES = 10

# Amazon size/crop modifiers: "._AC_SX38_SY50_CR,0,0,38,50_.jpg" -> ".jpg"
AMAZON_MODIFIER_RE = re.compile(r"\._[^/]*?_\.")


def validate(record: ProductRecord) -> None:
    if not record.title or not record.title.strip():
        raise IncompleteResultError("No product title could be extracted")


def normalize_price(text: str | None) -> str | None:
    text = clean_text(text)
    if not text:
        return None
    return first_currency_amount(text) or text


def normalize_images(images: list[str], base_url: str | None) -> list[str]:
    out: list[str] = []
    for raw in images:
        if not isinstance(raw, str):
            continue
        url = absolute_url(raw, base_url)
        if not url or not url.startswith(("http://", "https://")):
            continue
        if "amazon" in (urlparse(url).hostname or ""):
            url = AMAZON_MODIFIER_RE.sub(".", url)
        if is_junk_image(urlparse(url).path) or url in out:
            continue
        out.append(url)
        if len(out) >= MAX_IMAGES:
            break
    return out


def normalize_features(features: list[str]) -> list[str]:
    out: list[str] = []
    for feature in features:
        text = clean_text(feature)
        if text and text not in out:
            out.append(text)
        if len(out) >= MAX_FEATURES:
            break
    return out


def _clean_values(values: list[str]) -> list[str]:
    return [v for v in (clean_text(x) for x in values) if v]


def normalize(
    record: ProductRecord,
    *,
    url: str,
    source: str,
    location_code: str = DEFAULT_LOCATION_CODE,
    now: datetime | None = None,
) -> ProductRecord:
    """Fill every field with a value or its documented default."""
    now = now or datetime.now(UTC)
    delivery = record.delivery or DeliveryInfo()
    return replace(
        record,
        title=clean_text(record.title) or None,
        price=normalize_price(record.price),
        original_price=normalize_price(record.original_price),
        description=clean_text(record.description) or DEFAULT_DESCRIPTION,
        features=normalize_features(record.features or []),
        images=normalize_images(record.images or [], url),
        variants=Variants(
            sizes=_clean_values(record.variants.sizes),
            colors=_clean_values(record.variants.colors),
            other=_clean_values(record.variants.other),
        ),
        delivery=DeliveryInfo(
            available=delivery.available,
            estimated_date=clean_text(delivery.estimated_date) or None,
            charges=clean_text(delivery.charges) or None,
            location_code=location_code,
        ),
        weight=clean_text(record.weight) or None,
        category=clean_text(record.category) or DEFAULT_CATEGORY,
        source=source,
        scraped_at=record.scraped_at or now.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        original_url=url,
    )
