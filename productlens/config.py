"""Runtime settings read from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent.parent

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    """Pipeline configuration. All timeouts are bounded and have defaults."""

    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-flash"
    cache_dir: Path = field(default_factory=lambda: REPO_ROOT / "cache")
    cache_ttl_hours: float = 24.0
    page_timeout_ms: int = 60_000
    ai_timeout_s: float = 45.0
    obstacle_wait_ms: int = 30_000
    obstacle_settle_ms: int = 1_000
    delivery_settle_ms: int = 3_000
    variant_settle_ms: int = 2_000
    location_code: str = "201001"
    viewport: dict[str, int] = field(default_factory=lambda: {"width": 1366, "height": 768})
    user_agent: str = DEFAULT_USER_AGENT
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        cache_dir = os.environ.get("PRODUCTLENS_CACHE_DIR")
        return cls(
            gemini_api_key=os.environ.get("GEMINI_API_KEY", ""),
            gemini_model=os.environ.get("PRODUCTLENS_GEMINI_MODEL", "gemini-1.5-flash"),
            cache_dir=Path(cache_dir).expanduser() if cache_dir else REPO_ROOT / "cache",
            cache_ttl_hours=_env_float("PRODUCTLENS_CACHE_TTL_HOURS", 24.0),
            page_timeout_ms=_env_int("PRODUCTLENS_PAGE_TIMEOUT_MS", 60_000),
            ai_timeout_s=_env_float("PRODUCTLENS_AI_TIMEOUT_S", 45.0),
            obstacle_wait_ms=_env_int("PRODUCTLENS_OBSTACLE_WAIT_MS", 30_000),
            delivery_settle_ms=_env_int("PRODUCTLENS_DELIVERY_SETTLE_MS", 3_000),
            variant_settle_ms=_env_int("PRODUCTLENS_VARIANT_SETTLE_MS", 2_000),
            location_code=os.environ.get("PRODUCTLENS_LOCATION_CODE", "201001"),
            log_level=os.environ.get("PRODUCTLENS_LOG_LEVEL", "INFO"),
        )

    @property
    def ai_configured(self) -> bool:
        return bool(self.gemini_api_key)
