"""Lenient JSON parsing for AI service responses.

Repair runs as a fixed pipeline of text passes, each usable on its own:

    strip_code_fences -> strip_comments -> remove_trailing_commas

and, only if the result still does not parse, an aggressive pass
(``quote_bare_tokens``) that quotes bare keys and values and converts
single-quoted strings.
"""

from __future__ import annotations

import json
import re
from typing import Any

from .errors import ParseError

_FENCE_RE = re.compile(r"```(?:json|javascript|js)?\s*(.*?)```", re.S | re.I)
_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?")
_LITERALS = {"true": "true", "false": "false", "null": "null", "True": "true", "False": "false", "None": "null"}


def _is_scheme_slash(text: str, i: int) -> bool:
    """True when the ``//`` at ``i`` belongs to a bare URL such as ``https://``."""
    return i > 1 and text[i - 1] == ":" and text[i - 2].isalpha()


def _scan_string(text: str, start: int, quote: str) -> int:
    """Index just past the string literal opening at ``start``."""
    i = start + 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        i += 1
    return n


def strip_code_fences(text: str) -> str:
    """Drop markdown fences and any prose around the outermost JSON value."""
    if match := _FENCE_RE.search(text):
        text = match.group(1)
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        return text.strip()
    start = min(starts)
    end = max(text.rfind("}"), text.rfind("]"))
    if end < start:
        return text[start:].strip()
    return text[start : end + 1]


def strip_comments(text: str) -> str:
    """Remove ``//`` and ``/* */`` comments outside string literals."""
    out: list[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch in "\"'":
            j = _scan_string(text, i, ch)
            out.append(text[i:j])
            i = j
        elif text.startswith("//", i) and not _is_scheme_slash(text, i):
            newline = text.find("\n", i)
            i = n if newline == -1 else newline
        elif text.startswith("/*", i):
            close = text.find("*/", i + 2)
            i = n if close == -1 else close + 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def remove_trailing_commas(text: str) -> str:
    """Drop commas directly before a closing brace or bracket."""
    out: list[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == '"':
            j = _scan_string(text, i, ch)
            out.append(text[i:j])
            i = j
            continue
        if ch == ",":
            j = i + 1
            while j < n and text[j].isspace():
                j += 1
            if j < n and text[j] in "}]":
                i += 1
                continue
        out.append(ch)
        i += 1
    return "".join(out)


def _last_significant(parts: list[str]) -> str:
    for part in reversed(parts):
        stripped = part.rstrip()
        if stripped:
            return stripped[-1]
    return ""


def quote_bare_tokens(text: str) -> str:
    """Quote unquoted keys and values; turn single-quoted strings into JSON strings."""
    out: list[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == '"':
            j = _scan_string(text, i, ch)
            out.append(text[i:j])
            i = j
        elif ch == "'":
            j = _scan_string(text, i, ch)
            inner = text[i + 1 : j - 1] if j <= n and text[j - 1] == "'" and j - 1 > i else text[i + 1 : j]
            out.append(json.dumps(inner.replace("\\'", "'"), ensure_ascii=False))
            i = j
        elif ch in "{}[],:" or ch.isspace():
            out.append(ch)
            i += 1
        else:
            stop = ",}]\n" if _last_significant(out) == ":" else ",}]:\n"
            j = i
            while j < n and (text[j] not in stop or text.startswith("://", j)):
                j += 3 if text.startswith("://", j) else 1
            token = text[i:j].strip()
            if token in _LITERALS:
                out.append(_LITERALS[token])
            elif _NUMBER_RE.fullmatch(token):
                out.append(token)
            else:
                out.append(json.dumps(token, ensure_ascii=False))
            out.append(text[i:j][len(text[i:j].rstrip()) :])
            i = j
    return "".join(out)


STANDARD_PASSES = (strip_code_fences, strip_comments, remove_trailing_commas)


def parse_lenient(raw: str | None) -> Any:
    """Parse possibly-malformed JSON text. Raises ParseError when repair fails."""
    if not raw or not raw.strip():
        raise ParseError("Empty AI response")
    text = raw
    for repair in STANDARD_PASSES:
        text = repair(text)
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        if not text.lstrip().startswith(("{", "[")):
            raise ParseError(f"Unparsable AI response: {exc}") from exc
    repaired = remove_trailing_commas(quote_bare_tokens(text))
    try:
        return json.loads(repaired)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Unparsable AI response: {exc}") from exc
