"""Best-effort dismissal of popups, overlays and verification challenges.

Nothing in here may abort the pipeline: every failure is logged as an
``ObstacleError`` and swallowed.
"""

from __future__ import annotations

import logging

from .config import Settings
from .errors import ObstacleError
from .platforms import PlatformProfile
from .session import RenderSession, location_selector, with_path_helper

logger = logging.getLogger(__name__)

CLOSE_WORDS = ("close", "dismiss", "skip", "cancel", "x", "×", "✕", "✖", "not now", "maybe later", "no thanks")
CONSENT_PATTERNS = ("accept cookies", "cookie", "consent")
MAX_DISMISSALS = 5

PAGE_TEXT_SCRIPT = "() => (document.body ? document.body.innerText.slice(0, 5000) : '').toLowerCase()"

# Returns locations (same path scheme as the indexer) of visible close controls,
# preferring those inside dialogs that mention an intrusive pattern.
FIND_CLOSE_CONTROLS_SCRIPT = with_path_helper("""
({closeWords, patterns, limit}) => {
  __PATH_OF__
  const visible = (el) => {
    const r = el.getBoundingClientRect();
    const s = window.getComputedStyle(el);
    return r.width > 0 && r.height > 0 && s.visibility !== 'hidden' && s.display !== 'none';
  };
  const isClose = (el) => {
    const text = (el.innerText || '').trim().toLowerCase();
    const label = ((el.getAttribute('aria-label') || '') + ' ' + (el.getAttribute('title') || '')).toLowerCase();
    const cls = (typeof el.className === 'string' ? el.className : '').toLowerCase();
    return closeWords.includes(text)
      || closeWords.some(w => w.length > 1 && label.includes(w))
      || /(^|[\\s_-])close([\\s_-]|$)/.test(cls);
  };
  const controls = Array.from(document.querySelectorAll(
    'button, [role="button"], a, span, div[class*="close" i], [aria-label]'
  )).filter(el => visible(el) && isClose(el));
  const containers = Array.from(document.querySelectorAll(
    '[role="dialog"], [aria-modal="true"], [class*="modal" i], [class*="popup" i], [class*="overlay" i], [id*="modal" i]'
  )).filter(visible);
  const intrusive = containers.filter(c => {
    const text = (c.innerText || '').toLowerCase();
    return patterns.some(p => text.includes(p));
  });
  const inIntrusive = controls.filter(el => intrusive.some(c => c.contains(el)));
  const inAnyDialog = controls.filter(el => containers.some(c => c.contains(el)));
  const ordered = [...new Set([...inIntrusive, ...inAnyDialog])];
  return ordered.slice(0, limit).map(pathOf);
}
""")


async def detect_challenge(session: RenderSession, platform: PlatformProfile) -> str | None:
    """Return the matched challenge marker, if the page shows one."""
    if not platform.challenge_markers:
        return None
    text = await session.evaluate(PAGE_TEXT_SCRIPT) or ""
    for marker in platform.challenge_markers:
        if marker in text:
            return marker
    return None


async def wait_out_challenge(session: RenderSession, platform: PlatformProfile, settings: Settings) -> bool:
    marker = await detect_challenge(session, platform)
    if marker is None:
        return False
    logger.warning(
        "[%s] Verification challenge detected (%r), waiting up to %d ms",
        platform.name,
        marker,
        settings.obstacle_wait_ms,
    )
    if await session.wait_for_navigation(settings.obstacle_wait_ms):
        logger.info("[%s] Page navigated after challenge", platform.name)
    else:
        logger.info("[%s] Challenge did not clear, continuing anyway", platform.name)
    return True


async def dismiss_popups(session: RenderSession, platform: PlatformProfile, settings: Settings) -> int:
    """Click visible close controls inside dialogs. Returns how many were clicked."""
    patterns = [p.lower() for p in (*platform.intrusive_patterns, *CONSENT_PATTERNS)]
    locations = await session.evaluate(
        FIND_CLOSE_CONTROLS_SCRIPT,
        {"closeWords": list(CLOSE_WORDS), "patterns": patterns, "limit": MAX_DISMISSALS},
    ) or []
    clicked = 0
    for location in locations:
        try:
            await session.click(location_selector(location))
            clicked += 1
        except Exception as exc:
            logger.debug("[%s] Close control %s not clickable: %r", platform.name, location, exc)
    if clicked:
        logger.info("[%s] Dismissed %d popup(s)", platform.name, clicked)
        await session.wait(settings.obstacle_settle_ms)
    return clicked


async def suppress_obstacles(session: RenderSession, platform: PlatformProfile, settings: Settings) -> int:
    """Wait out challenges and dismiss popups. Never raises."""
    clicked = 0
    try:
        await wait_out_challenge(session, platform, settings)
    except Exception as exc:
        logger.warning("[%s] %s", platform.name, ObstacleError(f"Challenge check failed: {exc!r}"))
    try:
        clicked = await dismiss_popups(session, platform, settings)
        if not clicked:
            await session.press("body", "Escape")
    except Exception as exc:
        logger.warning("[%s] %s", platform.name, ObstacleError(f"Popup dismissal failed: {exc!r}"))
    return clicked
