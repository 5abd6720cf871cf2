"""Variant selection (size, color, ...) before extraction."""

from __future__ import annotations

import logging

from .config import Settings
from .session import RenderSession, location_selector, with_path_helper

logger = logging.getLogger(__name__)

TYPE_ALIASES = {
    "color": ("color", "colour"),
    "colour": ("color", "colour"),
    "colors": ("color", "colour"),
    "size": ("size",),
    "sizes": ("size",),
}

# Search tiers, tried in order for every requested variant.
TIER_EXACT = "exact"
TIER_NEAR_LABEL = "near-label"
TIER_ANYWHERE = "anywhere"
TIERS = (TIER_EXACT, TIER_NEAR_LABEL, TIER_ANYWHERE)

FIND_OPTION_SCRIPT = with_path_helper("""
({tier, labels, value}) => {
  __PATH_OF__
  const wanted = value.trim().toLowerCase();
  const CLICKABLE = 'button, a, li, span, label, div[class*="swatch" i], div[class*="size" i], ' +
    '[role="button"], [role="radio"], [role="option"], input[type="radio"]';
  const visible = (el) => {
    const r = el.getBoundingClientRect();
    return r.width > 0 && r.height > 0;
  };
  const textOf = (el) => (el.innerText || '').replace(/\\s+/g, ' ').trim().toLowerCase();
  const names = (el) => [el.getAttribute('aria-label'), el.getAttribute('title'), el.getAttribute('data-value')]
    .filter(Boolean).map(v => v.trim().toLowerCase());
  const exact = (el) => textOf(el) === wanted || names(el).includes(wanted);
  const loose = (el) => {
    const text = textOf(el);
    return (text.length > 0 && text.length < 40 && text.includes(wanted))
      || names(el).some(n => n.includes(wanted));
  };
  const pick = (root, test) => {
    for (const el of Array.from(root.querySelectorAll(CLICKABLE))) {
      if (visible(el) && test(el)) return pathOf(el);
    }
    return null;
  };
  if (tier === 'exact') return pick(document, exact);
  if (tier === 'near-label') {
    const all = Array.from(document.querySelectorAll('body *'));
    for (const el of all) {
      const own = textOf(el);
      if (!own || own.length > 30 || !labels.some(l => own.includes(l)) || !visible(el)) continue;
      let scope = el.parentElement;
      for (let depth = 0; scope && depth < 3; depth += 1, scope = scope.parentElement) {
        const found = pick(scope, loose);
        if (found) return found;
      }
    }
    return null;
  }
  return pick(document, loose);
}
""")


async def find_variant_option(session: RenderSession, variant_type: str, value: str) -> tuple[str, str] | None:
    """Return (tier, location) of the control for ``value``, or None."""
    labels = list(TYPE_ALIASES.get(variant_type.lower(), (variant_type.lower(),)))
    for tier in TIERS:
        location = await session.evaluate(
            FIND_OPTION_SCRIPT, {"tier": tier, "labels": labels, "value": value}
        )
        if location:
            return tier, location
    return None


async def select_variants(
    session: RenderSession,
    selections: dict[str, str],
    settings: Settings,
    tag: str = "variants",
) -> bool:
    """Activate each requested variant. True only if all were activated.

    A False result is advisory; extraction proceeds either way.
    """
    all_selected = True
    for variant_type, value in selections.items():
        if not value:
            continue
        try:
            found = await find_variant_option(session, variant_type, str(value))
            if found is None:
                logger.info("[%s] No control found for %s=%s", tag, variant_type, value)
                all_selected = False
                continue
            tier, location = found
            await session.click(location_selector(location))
            logger.info("[%s] Selected %s=%s (%s match)", tag, variant_type, value, tier)
            await session.wait(settings.variant_settle_ms)
        except Exception as exc:
            logger.warning("[%s] Selecting %s=%s failed: %r", tag, variant_type, value, exc)
            all_selected = False
    return all_selected
