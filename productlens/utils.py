"""Shared text, price and URL helpers."""

from __future__ import annotations

import re
from urllib.parse import unquote, urljoin, urlparse

CURRENCY_MAP = {
    "₹": "INR",
    "rs.": "INR",
    "inr": "INR",
    "€": "EUR",
    "eur": "EUR",
    "$": "USD",
    "usd": "USD",
    "£": "GBP",
    "gbp": "GBP",
}

# Loose hint used when collecting price candidates.
PRICE_HINT_RE = re.compile(r"₹|rs\.|\$|€|£|\d+,\d+", re.I)
# A currency symbol followed by an amount.
CURRENCY_AMOUNT_RE = re.compile(r"(?:₹|rs\.?|inr|\$|€|£)\s?\d[\d,]*(?:\.\d+)?", re.I)
WEIGHT_RE = re.compile(
    r"\b(\d+(?:[.,]\d+)?)\s*(kilograms?|kgs?|grams?|gms?|g|pounds?|lbs?|lb|ounces?|oz)\b",
    re.I,
)

_WS_RE = re.compile(r"\s+")


def clean_text(text: str | None) -> str:
    """Collapse whitespace and strip."""
    if not text:
        return ""
    return _WS_RE.sub(" ", text.replace("\xa0", " ")).strip()


def word_count(text: str) -> int:
    return len(text.split())


def parse_price(price_text: str | None) -> tuple[float | None, str | None]:
    """Parse price text into (amount, currency).

    Handles formats like:
    - "₹1,299"
    - "Rs. 499.00"
    - "1.299,00 €"
    - "$19.95"
    """
    if not price_text:
        return None, None

    text = price_text.strip().lower()

    currency = None
    for symbol, normalized in CURRENCY_MAP.items():
        if symbol in text:
            currency = normalized
            text = text.replace(symbol, "")
            break

    text = re.sub(r"^(mrp|from|only|price)[:\s]+", "", text.strip())

    if not (match := re.search(r"[\d][\d\s.,]*", text)):
        return None, currency

    num = match.group(0).replace(" ", "").replace("\xa0", "").rstrip(".,")

    last_comma = num.rfind(",")
    last_dot = num.rfind(".")

    if last_comma != -1 and last_dot != -1:
        # Assume last separator is decimal; the other is thousands.
        if last_comma > last_dot:
            num = num.replace(".", "").replace(",", ".")
        else:
            num = num.replace(",", "")
    elif last_comma != -1:
        digits_after = len(num) - last_comma - 1
        if 1 <= digits_after <= 2:
            num = num.replace(".", "").replace(",", ".")
        else:
            num = num.replace(",", "")
    elif last_dot != -1:
        digits_after = len(num) - last_dot - 1
        if 1 <= digits_after <= 2:
            num = num.replace(",", "")
        else:
            num = num.replace(".", "")

    try:
        return float(num), currency
    except ValueError:
        return None, currency


def first_currency_amount(text: str | None) -> str | None:
    """Return the first "<symbol><amount>" substring, whitespace-normalized."""
    if not text:
        return None
    if match := CURRENCY_AMOUNT_RE.search(text):
        return clean_text(match.group(0))
    return None


def find_weight(text: str | None) -> str | None:
    """Return the first "<number> <unit>" weight expression in ``text``."""
    if not text:
        return None
    if match := WEIGHT_RE.search(text):
        return f"{match.group(1)} {match.group(2)}"
    return None


def absolute_url(url: str | None, base: str | None) -> str | None:
    if not url:
        return None
    url = url.strip()
    if url.startswith("//"):
        return f"https:{url}"
    if url.startswith(("http://", "https://", "data:", "blob:")):
        return url
    if base:
        return urljoin(base, url)
    return url


def pick_srcset_url(srcset: str | None) -> str | None:
    """Return the highest-resolution URL from a srcset attribute."""
    if not srcset:
        return None
    best_url = None
    best_weight = -1.0
    for order, part in enumerate(p.strip() for p in srcset.split(",")):
        if not part:
            continue
        pieces = part.split()
        url = pieces[0]
        weight = float(order)  # no descriptor: later entries are usually larger
        if len(pieces) > 1:
            descriptor = pieces[1].lower()
            try:
                if descriptor.endswith("w"):
                    weight = float(descriptor[:-1])
                elif descriptor.endswith("x"):
                    weight = float(descriptor[:-1]) * 1000
            except ValueError:
                pass
        if weight > best_weight:
            best_url, best_weight = url, weight
    return best_url


def title_from_url(url: str) -> str | None:
    """Derive a readable title from the longest slug in the URL path."""
    path = unquote(urlparse(url).path or "")
    segments = [s for s in path.split("/") if s and not re.fullmatch(r"[A-Za-z0-9]{1,3}|dp|p|buy", s)]
    slugs = [s for s in segments if "-" in s]
    if not slugs:
        return None
    words = [w for w in max(slugs, key=len).split("-") if w]
    if len(words) < 2:
        return None
    return " ".join(w.capitalize() if w.islower() else w for w in words)


# Thumbnails, icons, sprites and logos. No letter may precede the hint, so
# "silicone" is not an icon.
JUNK_IMAGE_RE = re.compile(
    r"(?<![a-z])(?:thumb|icon|sprite|logo|favicon|avatar|badge|placeholder|spacer|loader)",
    re.I,
)


def is_junk_image(url_or_markers: str | None) -> bool:
    return bool(url_or_markers) and bool(JUNK_IMAGE_RE.search(url_or_markers))
