"""Test doubles for the renderer session, renderer and AI service.

``el(...)`` builds element trees; ``raw_snapshot(...)`` turns them into the
same dict shape the in-page snapshot script returns, with locations computed
the way the browser side computes them.
"""

from __future__ import annotations

from typing import Any, Callable

from productlens.errors import RenderError
from productlens.indexer import SNAPSHOT_SCRIPT
from productlens.models import DocumentSnapshot


def el(
    tag: str,
    *children: dict,
    text: str = "",
    cls: str = "",
    attrs: dict[str, str] | None = None,
    rect: tuple[float, float, float, float] = (0, 0, 200, 20),
    font: float = 14.0,
    src: str | None = None,
) -> dict:
    return {
        "tag": tag,
        "children": list(children),
        "own_text": text,
        "classes": cls.split(),
        "attributes": dict(attrs or {}),
        "rect": list(rect),
        "font": font,
        "src": src,
    }


def _collapsed_text(node: dict) -> str:
    parts = [node["own_text"]] + [_collapsed_text(c) for c in node["children"]]
    return " ".join(p for p in parts if p).strip()


def raw_snapshot(
    *children: dict,
    url: str = "https://www.flipkart.com/item/p/itm1",
    title: str = "",
    viewport_height: float = 768,
    structured_data: list[str] | None = None,
    meta: dict[str, str] | None = None,
) -> dict:
    nodes: list[dict] = []

    def walk(node: dict, location: str, parent: str | None) -> None:
        attributes = dict(node["attributes"])
        if node["classes"]:
            attributes["class"] = " ".join(node["classes"])
        nodes.append(
            {
                "location": location,
                "parent": parent,
                "tag": node["tag"],
                "text": _collapsed_text(node)[:4000],
                "classes": node["classes"],
                "attributes": attributes,
                "rect": node["rect"],
                "fontSize": node["font"],
                "src": node["src"],
            }
        )
        counts: dict[str, int] = {}
        for child in node["children"]:
            counts[child["tag"]] = counts.get(child["tag"], 0) + 1
            walk(child, f"{location}/{child['tag']}[{counts[child['tag']]}]", location)

    body = el("body", *children, rect=(0, 0, 1366, 3000), font=16)
    walk(body, "/html/body", None)
    return {
        "url": url,
        "title": title,
        "viewportHeight": viewport_height,
        "nodes": nodes,
        "structuredData": list(structured_data or []),
        "meta": dict(meta or {}),
    }


def snapshot_from_tree(*children: dict, **kwargs) -> DocumentSnapshot:
    return DocumentSnapshot.from_dict(raw_snapshot(*children, **kwargs))


class FakeSession:
    """Scriptable RenderSession that records every call."""

    def __init__(
        self,
        raw: dict | None = None,
        *,
        url: str = "https://www.flipkart.com/item/p/itm1",
        html: str = "<html><body></body></html>",
        visible: set[str] | None = None,
        texts: dict[str, str] | None = None,
        scripts: dict[str, Any] | None = None,
        navigates: bool = False,
        screenshot_bytes: bytes = b"\x89PNG fake",
        failing_clicks: set[str] | None = None,
    ):
        self.raw = raw
        self.url = url
        self.html = html
        self.visible = set(visible or ())
        self.texts = dict(texts or {})
        # script text -> result, or callable(arg) -> result
        self.scripts: dict[str, Any] = dict(scripts or {})
        self.navigates = navigates
        self.screenshot_bytes = screenshot_bytes
        self.failing_clicks = set(failing_clicks or ())
        self.calls: list[tuple] = []
        self.closed = False

    def called(self, method: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == method]

    def evaluated(self, script: str) -> bool:
        return any(c[1] == script for c in self.called("evaluate"))

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        self.calls.append(("evaluate", script, arg))
        if script == SNAPSHOT_SCRIPT:
            if isinstance(self.raw, Exception):
                raise self.raw
            return self.raw
        if script in self.scripts:
            result = self.scripts[script]
            if isinstance(result, Exception):
                raise result
            return result(arg) if callable(result) else result
        return None

    async def screenshot(self, *, full_page: bool = False) -> bytes:
        self.calls.append(("screenshot", full_page))
        return self.screenshot_bytes

    async def content(self) -> str:
        self.calls.append(("content",))
        return self.html

    async def is_visible(self, selector: str) -> bool:
        self.calls.append(("is_visible", selector))
        return selector in self.visible

    async def click(self, selector: str) -> None:
        self.calls.append(("click", selector))
        if selector in self.failing_clicks:
            raise RuntimeError(f"not clickable: {selector}")

    async def fill(self, selector: str, value: str) -> None:
        self.calls.append(("fill", selector, value))

    async def press(self, selector: str, key: str) -> None:
        self.calls.append(("press", selector, key))

    async def text_of(self, selector: str) -> str | None:
        self.calls.append(("text_of", selector))
        return self.texts.get(selector)

    async def wait(self, ms: int) -> None:
        self.calls.append(("wait", ms))

    async def wait_for_navigation(self, timeout_ms: int) -> bool:
        self.calls.append(("wait_for_navigation", timeout_ms))
        return self.navigates

    async def close(self) -> None:
        self.closed = True


class FakeRenderer:
    """Returns the queued outcomes in order: a session or an exception."""

    def __init__(self, *outcomes: FakeSession | Exception):
        self.outcomes = list(outcomes)
        self.calls: list[str] = []

    async def render(self, url, *, platform, timeout_ms, viewport=None):
        self.calls.append(url)
        if not self.outcomes:
            raise RenderError(f"Failed to render {url}: no page")
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeAIService:
    """Replays queued responses; an Exception entry is raised instead."""

    def __init__(self, *responses: str | Exception | Callable[[str], str]):
        self.responses = list(responses)
        self.calls: list[tuple[str, bytes | None]] = []

    async def infer(self, prompt: str, image: bytes | None = None) -> str:
        self.calls.append((prompt, image))
        if not self.responses:
            raise RuntimeError("no scripted response")
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response(prompt) if callable(response) else response
