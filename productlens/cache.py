"""TTL result cache: one JSON file per URL, named by the URL's md5 hex.

File layout: ``{"timestamp": <epoch ms>, "url": ..., "data": <record>}``.
Entries are replaced whole (temp file + rename), never edited in place.
There is no eviction beyond the TTL check; the directory grows unbounded.
"""

from __future__ import annotations

import hashlib
import json
import logging
import secrets
import time
from pathlib import Path
from typing import Any, Callable

from .models import ProductRecord

logger = logging.getLogger(__name__)

DEFAULT_TTL_HOURS = 24.0


def url_hash(url: str) -> str:
    return hashlib.md5(url.encode("utf-8")).hexdigest()


def _write_json_atomic(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + f".tmp.{secrets.token_hex(6)}")
    tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    tmp.replace(path)


def _read_json(path: Path) -> dict[str, Any] | None:
    if not path.exists():
        return None
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Unreadable cache entry %s: %r", path.name, exc)
        return None
    return payload if isinstance(payload, dict) else None


class ResultCache:
    def __init__(
        self,
        cache_dir: Path,
        ttl_hours: float = DEFAULT_TTL_HOURS,
        clock: Callable[[], float] = time.time,
    ):
        self.cache_dir = Path(cache_dir)
        self.ttl_ms = ttl_hours * 3600 * 1000
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def path_for(self, url: str) -> Path:
        return self.cache_dir / f"{url_hash(url)}.json"

    def get(self, url: str) -> ProductRecord | None:
        """Cached record for ``url`` if younger than the TTL, else None."""
        payload = _read_json(self.path_for(url))
        if payload is None:
            return None
        timestamp = payload.get("timestamp")
        if not isinstance(timestamp, (int, float)):
            return None
        age_ms = self._now_ms() - timestamp
        if age_ms >= self.ttl_ms:
            logger.info("Cache entry for %s expired (%.1f h old)", url, age_ms / 3_600_000)
            return None
        data = payload.get("data")
        if not isinstance(data, dict):
            return None
        logger.info("Cache hit for %s", url)
        return ProductRecord.from_dict(data)

    def put(self, url: str, record: ProductRecord) -> Path:
        path = self.path_for(url)
        _write_json_atomic(path, {"timestamp": self._now_ms(), "url": url, "data": record.to_dict()})
        logger.debug("Cached %s as %s", url, path.name)
        return path
