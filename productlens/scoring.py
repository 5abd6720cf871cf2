"""Per-field candidate scorers.

Each field is scored independently. Candidates are generated from the
inverted index (tag, class and text lookups) and from direct structural
scans of the snapshot, then ranked by an additive integer score. The best
candidate is the highest score; ties go to the node that comes first in
document order.

The weights below are tunable heuristics, not measured optima. They are
constants so that a given snapshot always produces the same record.
"""

from __future__ import annotations

import re
from typing import Callable, Iterable

from .models import Candidate, DocumentIndex, DocumentSnapshot, NodeInfo, Variants
from .utils import (
    PRICE_HINT_RE,
    clean_text,
    find_weight,
    first_currency_amount,
    is_junk_image,
    parse_price,
    pick_srcset_url,
    word_count,
)

# Title
TITLE_H1 = 5
TITLE_H2 = 3
TITLE_HINT = 2
TITLE_META_MATCH = 3
TITLE_LARGE_FONT = 1

# Price
PRICE_PATTERN = 3
PRICE_CURRENCY = 2
PRICE_NEAR_LABEL = 4
PRICE_HINT = 2
PRICE_COMPACT = 1
PRICE_STRUCK = -3

# Description
DESC_BLOCK = 2
DESC_NEAR_LABEL = 4
DESC_HINT = 3
DESC_PARAGRAPH = 1
DESC_OVERSIZED = -4

# Images
IMAGE_LARGE = 4
IMAGE_SMALL = 2
IMAGE_URL_HINT = 2
IMAGE_PRODUCT_CONTAINER = 2
IMAGE_THUMBNAIL = -5

# Weight
WEIGHT_TABLE_ROW = 7
WEIGHT_SIBLING = 5
WEIGHT_CONTAINER = 3
WEIGHT_FREE_TEXT = 1

# Category (breadcrumb position)
CATEGORY_SECOND_CRUMB = 5
CATEGORY_LATER_CRUMB = 3
CATEGORY_FIRST_CRUMB = 1

# Features
FEATURE_SECTION = 3
FEATURE_GENERIC = 1

MAX_IMAGES = 5
MAX_FEATURES = 10
LARGE_IMAGE_AREA = 10_000
MIN_IMAGE_SIDE = 50
OVERSIZED_TEXT = 2500

CHROME_TAGS = {"nav", "header", "footer"}
PRICE_TAGS = {"span", "div", "p", "strong", "b", "ins", "del", "s", "strike", "bdi", "td", "dd"}
STRUCK_TAGS = {"del", "s", "strike"}
DESC_TAGS = {"div", "p", "section", "article", "span"}
CLICKABLE_OPTION_TAGS = {"button", "li", "a", "option", "label"}

PRICE_LABEL_TERMS = ("price", "mrp", "discount", "offer", "deal", "sale")
DESC_LABEL_TERMS = (
    "description",
    "about this item",
    "about",
    "overview",
    "details",
    "product info",
    "specifications",
)
FEATURE_SECTION_TERMS = ("feature", "highlight", "bullet", "about this item", "key features")
IMAGE_URL_HINTS = ("product", "zoom", "large", "hires", "full")
IMAGE_CONTAINER_HINTS = ("product", "gallery", "image", "media", "carousel", "zoom")
STRUCK_HINTS = ("strike", "mrp", "original", "old-price", "was-price", "list-price")
WEIGHT_KEYWORDS = ("weight", "net wt", "net quantity")

VARIANT_LABELS = {
    "size": "sizes",
    "select size": "sizes",
    "choose size": "sizes",
    "color": "colors",
    "colour": "colors",
    "select color": "colors",
    "select colour": "colors",
    "style": "other",
    "pattern": "other",
    "storage": "other",
    "ram": "other",
    "capacity": "other",
    "flavour": "other",
    "material": "other",
}


def rank(candidates: Iterable[Candidate], order: dict[str, int]) -> list[Candidate]:
    """Sort by score descending, then document order."""
    return sorted(candidates, key=lambda c: (-c.score, order.get(c.location, len(order))))


class PageView:
    """Snapshot plus optional index, with structural navigation helpers.

    When the index is unavailable every lookup degrades to a linear scan of
    the snapshot.
    """

    def __init__(self, snapshot: DocumentSnapshot, index: DocumentIndex | None = None):
        self.snapshot = snapshot
        self.index = index
        self.nodes = snapshot.nodes
        self.by_location = {n.location: n for n in snapshot.nodes}
        self.order = {n.location: i for i, n in enumerate(snapshot.nodes)}

    def _resolve(self, locations: Iterable[str]) -> list[NodeInfo]:
        found = [self.by_location[loc] for loc in set(locations) if loc in self.by_location]
        return sorted(found, key=lambda n: self.order[n.location])

    def with_tag(self, *tags: str) -> list[NodeInfo]:
        if self.index is not None:
            locations: list[str] = []
            for tag in tags:
                locations.extend(self.index.with_tag(tag))
            return self._resolve(locations)
        wanted = set(tags)
        return [n for n in self.nodes if n.tag in wanted]

    def find_text(self, term: str) -> list[NodeInfo]:
        if self.index is not None:
            return self._resolve(self.index.find_text(term))
        term = term.lower()
        return [n for n in self.nodes if 0 < len(n.text) < 200 and term in n.text.lower()]

    def with_marker(self, term: str) -> list[NodeInfo]:
        """Nodes whose id, class, itemprop or aria-label mentions ``term``."""
        if self.index is not None:
            locations: list[str] = []
            for key, locs in self.index.class_names.items():
                if term in key:
                    locations.extend(locs)
            for key, locs in self.index.attribute_values.items():
                if key.startswith(("id=", "itemprop=", "aria-label=")) and term in key:
                    locations.extend(locs)
            return self._resolve(locations)
        return [n for n in self.nodes if term in n.marker_text()]

    def parent(self, node: NodeInfo) -> NodeInfo | None:
        return self.by_location.get(node.parent) if node.parent else None

    def ancestors(self, node: NodeInfo, limit: int = 50) -> list[NodeInfo]:
        out: list[NodeInfo] = []
        current = self.parent(node)
        while current is not None and len(out) < limit:
            out.append(current)
            current = self.parent(current)
        return out

    def closest(self, node: NodeInfo, predicate: Callable[[NodeInfo], bool], limit: int = 50) -> NodeInfo | None:
        for ancestor in self.ancestors(node, limit):
            if predicate(ancestor):
                return ancestor
        return None

    def children(self, node: NodeInfo) -> list[NodeInfo]:
        if self.index is not None:
            return self._resolve(self.index.children(node.location))
        return [n for n in self.nodes if n.parent == node.location]

    def descendants(self, node: NodeInfo) -> list[NodeInfo]:
        # Snapshot order is pre-order, so descendants are contiguous.
        prefix = node.location + "/"
        start = self.order[node.location] + 1
        out: list[NodeInfo] = []
        for candidate in self.nodes[start:]:
            if not candidate.location.startswith(prefix):
                break
            out.append(candidate)
        return out

    def next_siblings(self, node: NodeInfo) -> list[NodeInfo]:
        parent = self.parent(node)
        if parent is None:
            return []
        siblings = self.children(parent)
        idx = next((i for i, s in enumerate(siblings) if s.location == node.location), -1)
        return siblings[idx + 1 :] if idx >= 0 else []

    def in_chrome(self, node: NodeInfo) -> bool:
        """True for nodes inside site navigation, header or footer."""
        if node.tag in CHROME_TAGS:
            return True
        return self.closest(node, lambda a: a.tag in CHROME_TAGS or a.attr("role") == "navigation") is not None


class FieldScorers:
    """Generates and ranks candidates for every record field."""

    def __init__(self, view: PageView):
        self.view = view

    def best(self, candidates: list[Candidate]) -> Candidate | None:
        ranked = rank(candidates, self.view.order)
        return ranked[0] if ranked else None

    # Title

    def title_candidates(self) -> list[Candidate]:
        view = self.view
        pool: dict[str, NodeInfo] = {}
        for node in view.with_tag("h1", "h2"):
            pool.setdefault(node.location, node)
        for term in ("title", "name"):
            for node in view.with_marker(term):
                pool.setdefault(node.location, node)

        meta_titles = [
            t.lower()
            for t in (view.snapshot.meta.get("og:title", ""), view.snapshot.title)
            if t
        ]
        candidates: list[Candidate] = []
        for node in pool.values():
            text = clean_text(node.text)
            if not 3 <= len(text) < 200 or view.in_chrome(node):
                continue
            score = 0
            if node.tag == "h1":
                score += TITLE_H1
            elif node.tag == "h2":
                score += TITLE_H2
            markers = node.marker_text()
            if "title" in markers or "itemprop" in node.attributes and node.attr("itemprop") == "name":
                score += TITLE_HINT
            if len(text) >= 5 and any(text.lower() in t for t in meta_titles):
                score += TITLE_META_MATCH
            if node.font_size >= 20:
                score += TITLE_LARGE_FONT
            if score > 0:
                candidates.append(Candidate(node.location, score, text=text))
        return rank(candidates, view.order)

    # Price

    def _is_struck(self, node: NodeInfo) -> bool:
        if node.tag in STRUCK_TAGS:
            return True
        markers = node.marker_text()
        if any(h in markers for h in STRUCK_HINTS):
            return True
        parent = self.view.parent(node)
        return parent is not None and (
            parent.tag in STRUCK_TAGS or any(h in parent.marker_text() for h in STRUCK_HINTS)
        )

    def _price_nodes(self) -> list[NodeInfo]:
        out = []
        for node in self.view.with_tag(*PRICE_TAGS):
            text = node.text
            if not text or len(text) > 40 or not PRICE_HINT_RE.search(text):
                continue
            if "%" in text or self.view.in_chrome(node):
                continue
            amount, _ = parse_price(first_currency_amount(text) or text)
            if amount and amount > 0:
                out.append(node)
        return out

    def _near_label(self, terms: Iterable[str], max_label_len: int = 60) -> set[str]:
        """Locations inside the container of a short label mentioning any term."""
        near: set[str] = set()
        for term in terms:
            for label in self.view.find_text(term):
                if len(label.text) > max_label_len:
                    continue
                container = self.view.parent(label)
                if container is None:
                    continue
                near.update(n.location for n in self.view.descendants(container))
        return near

    def price_candidates(self) -> list[Candidate]:
        nodes = self._price_nodes()
        near = self._near_label(PRICE_LABEL_TERMS)
        candidates: list[Candidate] = []
        for node in nodes:
            text = clean_text(node.text)
            amount_text = first_currency_amount(text)
            score = PRICE_PATTERN
            if amount_text:
                score += PRICE_CURRENCY
            if node.location in near:
                score += PRICE_NEAR_LABEL
            parent = self.view.parent(node)
            if "price" in node.marker_text() or (parent is not None and "price" in parent.marker_text()):
                score += PRICE_HINT
            if amount_text and amount_text == text:
                score += PRICE_COMPACT
            if self._is_struck(node):
                score += PRICE_STRUCK
            candidates.append(Candidate(node.location, score, text=amount_text or text))
        return rank(candidates, self.view.order)

    def original_price(self, best: Candidate, candidates: list[Candidate]) -> str | None:
        """A second, higher or struck-through amount near the chosen price."""
        node = self.view.by_location.get(best.location)
        if node is None:
            return None
        best_amount, _ = parse_price(best.text)
        by_location = {c.location: c for c in candidates}
        for container in self.view.ancestors(node, limit=3):
            struck: list[Candidate] = []
            higher: list[Candidate] = []
            for desc in self.view.descendants(container):
                cand = by_location.get(desc.location)
                if cand is None or cand.text == best.text:
                    continue
                if self._is_struck(desc):
                    struck.append(cand)
                    continue
                amount, _ = parse_price(cand.text)
                if best_amount is not None and amount is not None and amount > best_amount:
                    higher.append(cand)
            if struck:
                return struck[0].text
            if higher:
                return higher[0].text
        return None

    # Description

    def description_candidates(self) -> list[Candidate]:
        view = self.view
        label_terms: dict[str, str] = {}
        for term in DESC_LABEL_TERMS:
            for label in view.find_text(term):
                if len(label.text) <= 60 and label.location not in label_terms:
                    label_terms[label.location] = label.text.lower()

        near: dict[str, list[str]] = {}
        for loc, label_text in label_terms.items():
            container = view.parent(view.by_location[loc])
            if container is None:
                continue
            for desc in view.descendants(container):
                near.setdefault(desc.location, []).append(label_text)

        candidates: list[Candidate] = []
        for node in view.with_tag(*DESC_TAGS):
            text = clean_text(node.text)
            if len(text) <= 50 or word_count(text) <= 15 or view.in_chrome(node):
                continue
            score = DESC_BLOCK
            labels = near.get(node.location, [])
            if labels and not any(label in text.lower() for label in labels):
                score += DESC_NEAR_LABEL
            if "desc" in node.marker_text():
                score += DESC_HINT
            if node.tag == "p":
                score += DESC_PARAGRAPH
            if len(text) > OVERSIZED_TEXT:
                score += DESC_OVERSIZED
            candidates.append(Candidate(node.location, score, text=text))
        return rank(candidates, view.order)

    # Images

    @staticmethod
    def image_url(node: NodeInfo) -> str | None:
        """Highest-resolution source of an <img>."""
        for attr in ("srcset", "data-srcset"):
            if url := pick_srcset_url(node.attr(attr)):
                return url
        for attr in ("data-old-hires", "data-zoom-image", "data-large"):
            if url := node.attr(attr):
                return url
        return node.src or node.attr("src") or node.attr("data-src") or None

    def image_candidates(self) -> list[Candidate]:
        view = self.view
        candidates: list[Candidate] = []
        for node in view.with_tag("img"):
            url = self.image_url(node)
            if not url or url.startswith(("data:", "blob:")):
                continue
            if 0 < node.width < MIN_IMAGE_SIDE or 0 < node.height < MIN_IMAGE_SIDE:
                continue
            lowered = url.lower()
            markers = node.marker_text() + " " + node.attr("alt").lower()
            score = IMAGE_LARGE if node.area > LARGE_IMAGE_AREA else IMAGE_SMALL
            if any(h in lowered for h in IMAGE_URL_HINTS):
                score += IMAGE_URL_HINT
            if view.closest(node, lambda a: any(h in a.marker_text() for h in IMAGE_CONTAINER_HINTS), limit=6):
                score += IMAGE_PRODUCT_CONTAINER
            if is_junk_image(url) or is_junk_image(markers):
                score += IMAGE_THUMBNAIL
            candidates.append(Candidate(node.location, score, url=url))
        return rank(candidates, view.order)

    def best_images(self) -> list[str]:
        urls: list[str] = []
        for cand in self.image_candidates():
            if cand.score <= 0:
                break
            if cand.url not in urls:
                urls.append(cand.url)
            if len(urls) >= MAX_IMAGES:
                break
        return urls

    # Weight

    def weight_candidates(self) -> list[Candidate]:
        view = self.view
        scored: dict[str, Candidate] = {}

        def offer(node: NodeInfo, score: int, text: str | None) -> None:
            value = find_weight(text)
            if not value:
                return
            current = scored.get(node.location)
            if current is None or score > current.score:
                scored[node.location] = Candidate(node.location, score, text=value)

        labels = [n for n in view.find_text("weight") if len(n.text) <= 40]
        for label in labels:
            row = view.closest(label, lambda a: a.tag == "tr", limit=3)
            if row is not None:
                for cell in view.descendants(row):
                    if cell.tag in ("td", "th") and "weight" not in cell.text.lower():
                        offer(cell, WEIGHT_TABLE_ROW, cell.text)
            offer(label, WEIGHT_SIBLING, label.text)
            for sibling in view.next_siblings(label)[:2]:
                offer(sibling, WEIGHT_SIBLING, sibling.text)
            container = view.parent(label)
            if container is not None and len(container.text) <= 300:
                offer(container, WEIGHT_CONTAINER, container.text)

        for node in view.nodes:
            lowered = node.text.lower()
            if len(node.text) <= 200 and any(k in lowered for k in WEIGHT_KEYWORDS):
                if node.location not in scored:
                    offer(node, WEIGHT_FREE_TEXT, node.text)
        return rank(scored.values(), view.order)

    # Category

    def breadcrumbs(self) -> list[str]:
        view = self.view
        trails = [
            n
            for n in view.nodes
            if n.tag == "nav" and "bread" in n.marker_text()
            or "bread" in n.attr("aria-label").lower()
            or any("bread" in c.lower() for c in n.classes)
        ]
        if not trails:
            trails = [n for n in view.nodes if n.tag == "nav"]
        crumbs: list[str] = []
        seen_locations: set[str] = set()
        for trail in trails:
            if trail.location in seen_locations:
                continue
            for link in view.descendants(trail):
                seen_locations.add(link.location)
                text = clean_text(link.text)
                if link.tag == "a" and 0 < len(text) < 50 and text not in crumbs:
                    crumbs.append(text)
            if len(crumbs) > 1:
                break
        return crumbs

    def category_candidates(self) -> list[Candidate]:
        crumbs = self.breadcrumbs()
        if len(crumbs) < 2:
            return []
        candidates = []
        for position, crumb in enumerate(crumbs):
            if position == 0:
                score = CATEGORY_FIRST_CRUMB
            elif position == 1:
                score = CATEGORY_SECOND_CRUMB
            else:
                score = CATEGORY_LATER_CRUMB
            candidates.append(Candidate(f"breadcrumb[{position}]", score, text=crumb))
        return sorted(candidates, key=lambda c: -c.score)

    # Features

    def features(self) -> list[str]:
        view = self.view
        section_nodes: set[str] = set()
        for term in FEATURE_SECTION_TERMS:
            for node in view.with_marker(term.replace(" ", "")) + view.find_text(term):
                container = node if node.tag in ("ul", "ol", "div", "section") and len(node.text) > 60 else view.parent(node)
                if container is not None:
                    section_nodes.update(d.location for d in view.descendants(container))

        scored: list[Candidate] = []
        for node in view.with_tag("li"):
            text = clean_text(node.text)
            if not 5 < len(text) < 200 or view.in_chrome(node):
                continue
            score = FEATURE_SECTION if node.location in section_nodes else FEATURE_GENERIC
            scored.append(Candidate(node.location, score, text=text))
        if not scored:
            return []
        top = max(c.score for c in scored)
        chosen = [c for c in scored if c.score == top]
        chosen.sort(key=lambda c: view.order[c.location])
        out: list[str] = []
        for cand in chosen:
            if cand.text not in out:
                out.append(cand.text)
            if len(out) >= MAX_FEATURES:
                break
        return out

    # Variants on offer

    def available_variants(self) -> Variants:
        view = self.view
        found = {"sizes": [], "colors": [], "other": []}
        for node in view.nodes:
            label = clean_text(node.text).lower().rstrip(":").strip()
            key = VARIANT_LABELS.get(label)
            if key is None or len(node.text) > 25:
                continue
            container = view.parent(node)
            if container is None or len(container.text) > 1500:
                continue
            label_prefix = node.location + "/"
            for option in view.descendants(container):
                if option.location == node.location or option.location.startswith(label_prefix):
                    continue
                clickable = (
                    option.tag in CLICKABLE_OPTION_TAGS
                    or option.attr("role") in ("button", "radio", "option")
                    or any(h in option.marker_text() for h in ("swatch", "option", "size-button"))
                )
                if not clickable:
                    continue
                text = clean_text(option.text) or option.attr("title") or option.attr("aria-label")
                text = re.sub(r"^click to select\s+", "", text, flags=re.I)
                if 0 < len(text) < 30 and text.lower() != label and text not in found[key]:
                    found[key].append(text)
        return Variants(sizes=found["sizes"], colors=found["colors"], other=found["other"])
