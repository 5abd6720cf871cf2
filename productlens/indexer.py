"""Document indexer.

A single in-page script walks the visible element tree and returns a flat,
document-ordered snapshot. The inverted index is then built in Python, so
scoring never needs another round trip to the browser.
"""

from __future__ import annotations

import logging

from .models import DocumentIndex, DocumentSnapshot
from .session import RenderSession

logger = logging.getLogger(__name__)

MAX_INDEXED_TEXT = 200
FUZZY_WINDOW = 10
FUZZY_STEP = 5
MAX_CAPTURED_TEXT = 4000
IDENTIFYING_ATTRIBUTES = ("id", "name", "placeholder", "title", "alt")

SNAPSHOT_SCRIPT = """
(maxText) => {
  const SKIP = new Set(['script', 'style', 'noscript', 'svg', 'template', 'iframe']);
  const nodes = [];
  const walk = (el, path, parentPath) => {
    const tag = el.tagName.toLowerCase();
    if (SKIP.has(tag)) return;
    const rect = el.getBoundingClientRect();
    if (el !== document.body && rect.width === 0 && rect.height === 0) return;
    const attributes = {};
    for (const attr of Array.from(el.attributes)) {
      if (attr.value && attr.value.trim()) attributes[attr.name] = attr.value.slice(0, 500);
    }
    const raw = (el.innerText || el.textContent || '').replace(/\\s+/g, ' ').trim();
    nodes.push({
      location: path,
      parent: parentPath,
      tag,
      text: raw.slice(0, maxText),
      classes: Array.from(el.classList || []),
      attributes,
      rect: [rect.left + window.scrollX, rect.top + window.scrollY, rect.width, rect.height],
      fontSize: parseFloat(window.getComputedStyle(el).fontSize) || 0,
      src: tag === 'img' ? (el.currentSrc || el.src || null) : null,
    });
    const counts = {};
    for (const child of Array.from(el.children)) {
      const childTag = child.tagName.toLowerCase();
      counts[childTag] = (counts[childTag] || 0) + 1;
      walk(child, `${path}/${childTag}[${counts[childTag]}]`, path);
    }
  };
  walk(document.body, '/html/body', null);
  const structuredData = Array.from(
    document.querySelectorAll('script[type="application/ld+json"]')
  ).map(s => s.textContent || '');
  const meta = {};
  for (const m of Array.from(document.querySelectorAll('meta[property], meta[name]'))) {
    const key = m.getAttribute('property') || m.getAttribute('name');
    const value = m.getAttribute('content');
    if (key && value && !(key in meta)) meta[key] = value;
  }
  return {
    url: window.location.href,
    title: document.title || '',
    viewportHeight: window.innerHeight,
    nodes,
    structuredData,
    meta,
  };
}
"""


async def take_snapshot(session: RenderSession) -> DocumentSnapshot | None:
    """Capture the visible document. Returns None when the page script fails."""
    try:
        raw = await session.evaluate(SNAPSHOT_SCRIPT, MAX_CAPTURED_TEXT)
        snapshot = DocumentSnapshot.from_dict(raw or {})
    except Exception as exc:
        logger.warning("Document snapshot failed: %r", exc)
        return None
    if not snapshot.nodes:
        logger.warning("Document snapshot is empty")
        return None
    return snapshot


def build_index(snapshot: DocumentSnapshot | None) -> DocumentIndex | None:
    """Build the inverted index. None means "index unavailable"."""
    if snapshot is None:
        return None
    try:
        index = DocumentIndex()
        for node in snapshot.nodes:
            loc = node.location
            text = node.text
            if 0 < len(text) < MAX_INDEXED_TEXT:
                lowered = text.lower()
                index.add(index.text_content, lowered, loc)
                if len(lowered) > FUZZY_WINDOW:
                    for i in range(0, len(lowered) - FUZZY_STEP, FUZZY_STEP):
                        index.add(index.text_content, lowered[i : i + FUZZY_WINDOW], loc)

            index.add(index.tag_names, node.tag, loc)

            for class_name in node.classes:
                index.add(index.class_names, class_name.lower(), loc)

            for name, value in node.attributes.items():
                if not value.strip():
                    continue
                index.add(index.attribute_values, f"{name}={value}".lower(), loc)
                if name in IDENTIFYING_ATTRIBUTES:
                    index.add(index.attribute_values, value.lower(), loc)

            if node.parent is not None:
                index.add(index.hierarchy, node.parent, loc)
        return index
    except Exception as exc:
        logger.warning("Index build failed: %r", exc)
        return None


async def index_page(session: RenderSession) -> tuple[DocumentSnapshot | None, DocumentIndex | None]:
    snapshot = await take_snapshot(session)
    index = build_index(snapshot)
    if index is not None:
        logger.debug(
            "Indexed %d nodes, %d text keys", len(snapshot.nodes), len(index.text_content)
        )
    return snapshot, index
