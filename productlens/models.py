"""Data models for the extraction pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


def _unique(values: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for v in values:
        if v not in seen:
            seen.add(v)
            out.append(v)
    return out


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, (list, tuple, set)):
        return []
    return [str(v).strip() for v in value if v is not None and str(v).strip()]


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return None


@dataclass
class Variants:
    """Available variant values. Lists behave as ordered sets."""

    sizes: list[str] = field(default_factory=list)
    colors: list[str] = field(default_factory=list)
    other: list[str] = field(default_factory=list)

    KEYS = ("sizes", "colors", "other")

    def __post_init__(self):
        self.sizes = _unique(self.sizes)
        self.colors = _unique(self.colors)
        self.other = _unique(self.other)

    def is_empty(self) -> bool:
        return not (self.sizes or self.colors or self.other)

    def to_dict(self) -> dict:
        return {"sizes": list(self.sizes), "colors": list(self.colors), "other": list(self.other)}

    @classmethod
    def from_dict(cls, data: Any) -> Variants:
        if not isinstance(data, dict):
            return cls()
        return cls(
            sizes=_str_list(data.get("sizes")),
            colors=_str_list(data.get("colors")),
            other=_str_list(data.get("other")),
        )


@dataclass
class DeliveryInfo:
    """Delivery terms for one location code. Unresolved fields stay None."""

    available: bool | None = None
    estimated_date: str | None = None
    charges: str | None = None
    location_code: str = ""

    def is_resolved(self) -> bool:
        return self.available is not None or bool(self.estimated_date) or bool(self.charges)

    def to_dict(self) -> dict:
        return {
            "available": self.available,
            "estimatedDate": self.estimated_date,
            "charges": self.charges,
            "locationCode": self.location_code,
        }

    @classmethod
    def from_dict(cls, data: Any, location_code: str = "") -> DeliveryInfo:
        if not isinstance(data, dict):
            return cls(location_code=location_code)
        available = data.get("available")
        if isinstance(available, str):
            lowered = available.strip().lower()
            available = True if lowered == "true" else False if lowered == "false" else None
        elif not isinstance(available, bool):
            available = None
        code = data.get("locationCode") or data.get("pincode") or location_code
        return cls(
            available=available,
            estimated_date=_opt_str(data.get("estimatedDate")),
            charges=_opt_str(data.get("charges")),
            location_code=str(code or ""),
        )


@dataclass
class ProductRecord:
    """A product extracted from one page.

    Partial results produced by individual strategies use the same type with
    unresolved fields left as None or empty lists.
    """

    title: str | None = None
    price: str | None = None
    original_price: str | None = None
    description: str | None = None
    features: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)
    variants: Variants = field(default_factory=Variants)
    delivery: DeliveryInfo = field(default_factory=DeliveryInfo)
    weight: str | None = None
    category: str | None = None
    source: str | None = None
    scraped_at: str | None = None
    original_url: str | None = None

    SCALAR_FIELDS = ("title", "price", "original_price", "description", "weight", "category")

    def missing_core_fields(self) -> list[str]:
        """Fields whose absence triggers escalation."""
        missing = [name for name in ("title", "price", "description") if not getattr(self, name)]
        if not self.images:
            missing.append("images")
        return missing

    def is_complete(self) -> bool:
        return not self.missing_core_fields()

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "title": self.title,
            "price": self.price,
            "originalPrice": self.original_price,
            "description": self.description,
            "features": list(self.features),
            "images": list(self.images),
            "variants": self.variants.to_dict(),
            "delivery": self.delivery.to_dict(),
            "weight": self.weight,
            "category": self.category,
            "source": self.source,
            "scrapedAt": self.scraped_at,
            "originalUrl": self.original_url,
        }

    @classmethod
    def from_dict(cls, data: Any) -> ProductRecord:
        """Build a record from serialized or loosely-shaped (AI) data."""
        if not isinstance(data, dict):
            return cls()
        images = data.get("images")
        if isinstance(images, str):
            images = [images]
        features = data.get("features")
        if isinstance(features, str):
            features = [features]
        return cls(
            title=_opt_str(data.get("title")),
            price=_opt_str(data.get("price")),
            original_price=_opt_str(data.get("originalPrice")),
            description=_opt_str(data.get("description")),
            features=_str_list(features),
            images=_str_list(images),
            variants=Variants.from_dict(data.get("variants")),
            delivery=DeliveryInfo.from_dict(data.get("delivery")),
            weight=_opt_str(data.get("weight")),
            category=_opt_str(data.get("category")),
            source=_opt_str(data.get("source")),
            scraped_at=_opt_str(data.get("scrapedAt")),
            original_url=_opt_str(data.get("originalUrl")),
        )


@dataclass
class Candidate:
    """A scored guess at where one field's value lives in the document."""

    location: str
    score: int
    text: str | None = None
    url: str | None = None

    @property
    def value(self) -> str | None:
        return self.text if self.text is not None else self.url


@dataclass
class NodeInfo:
    """One visible element captured from the rendered document."""

    location: str
    parent: str | None
    tag: str
    text: str = ""
    classes: list[str] = field(default_factory=list)
    attributes: dict[str, str] = field(default_factory=dict)
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    font_size: float = 0.0
    src: str | None = None

    @property
    def area(self) -> float:
        return max(self.width, 0.0) * max(self.height, 0.0)

    def attr(self, name: str) -> str:
        return self.attributes.get(name, "") or ""

    def marker_text(self) -> str:
        """Lower-cased id, class and aria-label tokens, for hint matching."""
        parts = [self.attr("id"), " ".join(self.classes), self.attr("aria-label"), self.attr("itemprop")]
        return " ".join(p for p in parts if p).lower()

    @classmethod
    def from_dict(cls, data: dict) -> NodeInfo:
        rect = data.get("rect") or [0, 0, 0, 0]
        return cls(
            location=data["location"],
            parent=data.get("parent"),
            tag=(data.get("tag") or "").lower(),
            text=data.get("text") or "",
            classes=list(data.get("classes") or []),
            attributes=dict(data.get("attributes") or {}),
            x=float(rect[0] or 0),
            y=float(rect[1] or 0),
            width=float(rect[2] or 0),
            height=float(rect[3] or 0),
            font_size=float(data.get("fontSize") or 0),
            src=data.get("src") or None,
        )


@dataclass
class DocumentSnapshot:
    """Read-only capture of a rendered page, valid for one extraction pass."""

    url: str
    title: str = ""
    viewport_height: float = 768.0
    nodes: list[NodeInfo] = field(default_factory=list)
    structured_data: list[str] = field(default_factory=list)
    meta: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> DocumentSnapshot:
        return cls(
            url=data.get("url") or "",
            title=(data.get("title") or "").strip(),
            viewport_height=float(data.get("viewportHeight") or 768),
            nodes=[NodeInfo.from_dict(n) for n in data.get("nodes") or []],
            structured_data=[s for s in data.get("structuredData") or [] if isinstance(s, str)],
            meta={str(k).lower(): str(v) for k, v in (data.get("meta") or {}).items() if v},
        )


@dataclass
class DocumentIndex:
    """Inverted index over a snapshot. Keys are lower-cased."""

    text_content: dict[str, list[str]] = field(default_factory=dict)
    tag_names: dict[str, list[str]] = field(default_factory=dict)
    class_names: dict[str, list[str]] = field(default_factory=dict)
    attribute_values: dict[str, list[str]] = field(default_factory=dict)
    hierarchy: dict[str, list[str]] = field(default_factory=dict)

    @staticmethod
    def add(table: dict[str, list[str]], key: str, location: str) -> None:
        bucket = table.setdefault(key, [])
        if location not in bucket:
            bucket.append(location)

    def with_tag(self, tag: str) -> list[str]:
        return list(self.tag_names.get(tag.lower(), []))

    def with_class(self, class_name: str) -> list[str]:
        return list(self.class_names.get(class_name.lower(), []))

    def with_attribute(self, key: str) -> list[str]:
        return list(self.attribute_values.get(key.lower(), []))

    def find_text(self, term: str) -> list[str]:
        """Locations whose indexed text contains ``term``, in index order."""
        term = term.lower()
        found: list[str] = []
        seen: set[str] = set()
        for key, locations in self.text_content.items():
            if term not in key:
                continue
            for loc in locations:
                if loc not in seen:
                    seen.add(loc)
                    found.append(loc)
        return found

    def children(self, location: str) -> list[str]:
        return list(self.hierarchy.get(location, []))
