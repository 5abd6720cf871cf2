"""Field precedence when combining partial records.

This is the only place that decides which strategy's value wins:

- scalar fields: the primary value, unless it is empty
- images and features: union of both, primary order first, de-duplicated
- variants: per key, the primary list unless it is empty
- delivery: the primary terms if resolved, else the secondary
"""

from __future__ import annotations

from dataclasses import replace

from .models import DeliveryInfo, ProductRecord, Variants


def _union(first: list[str], second: list[str]) -> list[str]:
    out: list[str] = []
    for value in [*first, *second]:
        if value and value not in out:
            out.append(value)
    return out


def merge_variants(primary: Variants, secondary: Variants) -> Variants:
    return Variants(
        **{key: list(getattr(primary, key) or getattr(secondary, key)) for key in Variants.KEYS}
    )


def merge_delivery(primary: DeliveryInfo, secondary: DeliveryInfo) -> DeliveryInfo:
    chosen = primary if primary.is_resolved() or not secondary.is_resolved() else secondary
    return replace(chosen, location_code=primary.location_code or secondary.location_code)


def merge_records(primary: ProductRecord | None, secondary: ProductRecord | None) -> ProductRecord:
    """Combine two partial records; ``primary`` takes precedence."""
    if primary is None and secondary is None:
        return ProductRecord()
    if secondary is None:
        return replace(primary)
    if primary is None:
        return replace(secondary)

    merged = replace(primary)
    for name in ProductRecord.SCALAR_FIELDS:
        if not getattr(merged, name):
            setattr(merged, name, getattr(secondary, name))
    merged.images = _union(primary.images, secondary.images)
    merged.features = _union(primary.features, secondary.features)
    merged.variants = merge_variants(primary.variants, secondary.variants)
    merged.delivery = merge_delivery(primary.delivery, secondary.delivery)
    for name in ("source", "scraped_at", "original_url"):
        if not getattr(merged, name):
            setattr(merged, name, getattr(secondary, name))
    return merged
