"""AI inference service contract and the Gemini adapter."""

from __future__ import annotations

import asyncio
import base64
import logging
from io import BytesIO
from typing import Any, Protocol

import httpx
from PIL import Image

from .config import Settings
from .errors import ParseError, ServiceUnavailableError
from .jsonrepair import parse_lenient

logger = logging.getLogger(__name__)

GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

MAX_IMAGE_WIDTH = 1280
MAX_IMAGE_HEIGHT = 6000
JPEG_QUALITY = 80


class AIService(Protocol):
    """Accepts a prompt and an optional screenshot, returns raw model text."""

    async def infer(self, prompt: str, image: bytes | None = None) -> str: ...


def prepare_image(image_bytes: bytes) -> bytes:
    """Re-encode a screenshot as a size-bounded RGB JPEG."""
    with Image.open(BytesIO(image_bytes)) as img:
        resample = Image.Resampling.LANCZOS if hasattr(Image, "Resampling") else Image.LANCZOS
        img = img.convert("RGB")
        img.thumbnail((MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT), resample)
        out = BytesIO()
        img.save(out, format="JPEG", quality=JPEG_QUALITY, optimize=True)
    return out.getvalue()


class GeminiService:
    """Gemini ``generateContent`` over REST."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None):
        if not settings.gemini_api_key:
            raise ServiceUnavailableError("GEMINI_API_KEY is not set")
        self.settings = settings
        self._client = client

    def _payload(self, prompt: str, image: bytes | None) -> dict[str, Any]:
        parts: list[dict[str, Any]] = [{"text": prompt}]
        if image:
            parts.append(
                {
                    "inline_data": {
                        "mime_type": "image/jpeg",
                        "data": base64.b64encode(prepare_image(image)).decode("ascii"),
                    }
                }
            )
        return {"contents": [{"role": "user", "parts": parts}]}

    @staticmethod
    def _response_text(data: dict[str, Any]) -> str:
        candidates = data.get("candidates") or []
        if not candidates:
            raise ServiceUnavailableError("Gemini returned no candidates")
        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
        if not text.strip():
            raise ServiceUnavailableError("Gemini returned an empty response")
        return text

    async def infer(self, prompt: str, image: bytes | None = None) -> str:
        url = GEMINI_ENDPOINT.format(model=self.settings.gemini_model)
        payload = self._payload(prompt, image)
        try:
            if self._client is not None:
                resp = await self._client.post(
                    url, params={"key": self.settings.gemini_api_key}, json=payload
                )
            else:
                async with httpx.AsyncClient(
                    timeout=httpx.Timeout(self.settings.ai_timeout_s)
                ) as client:
                    resp = await client.post(
                        url, params={"key": self.settings.gemini_api_key}, json=payload
                    )
            resp.raise_for_status()
            return self._response_text(resp.json())
        except httpx.HTTPError as exc:
            raise ServiceUnavailableError(f"Gemini request failed: {exc}") from exc


async def ask_json(
    service: AIService | None,
    prompt: str,
    *,
    image: bytes | None = None,
    timeout_s: float,
    label: str = "ai",
) -> Any | None:
    """One bounded AI round trip parsed leniently. None on any failure."""
    if service is None:
        return None
    try:
        raw = await asyncio.wait_for(service.infer(prompt, image), timeout=timeout_s)
        return parse_lenient(raw)
    except asyncio.TimeoutError:
        logger.warning("[%s] AI service timed out after %.0fs", label, timeout_s)
    except ParseError as exc:
        logger.warning("[%s] %s", label, exc)
    except ServiceUnavailableError as exc:
        logger.warning("[%s] AI service unavailable: %s", label, exc)
    except Exception as exc:
        logger.warning("[%s] AI service error: %r", label, exc)
    return None


def build_service(settings: Settings) -> AIService | None:
    """Gemini when a key is configured, else no AI tier."""
    if not settings.ai_configured:
        logger.info("No GEMINI_API_KEY set; AI extraction disabled")
        return None
    return GeminiService(settings)
