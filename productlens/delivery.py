"""Delivery-inquiry protocol.

One generic state machine driven by the platform's selector table:

    LocateInputField -> SubmitCode -> AwaitUpdate -> ParseResult -> Done
    LocateInputField (no input)     -> ScanPage
    ParseResult (nothing parsed)    -> ScanPage
    ScanPage (nothing found)        -> AskService -> Done

The result is always a complete ``DeliveryInfo`` with ``location_code`` set.
"""

from __future__ import annotations

import logging
import re
from enum import Enum

from .ai import AIService, ask_json
from .config import Settings
from .models import DeliveryInfo
from .platforms import PlatformProfile
from .session import RenderSession, location_selector, with_path_helper
from .utils import clean_text, first_currency_amount

logger = logging.getLogger(__name__)


class DeliveryState(str, Enum):
    LOCATE_INPUT = "LocateInputField"
    SUBMIT_CODE = "SubmitCode"
    AWAIT_UPDATE = "AwaitUpdate"
    PARSE_RESULT = "ParseResult"
    SCAN_PAGE = "ScanPage"
    ASK_SERVICE = "AskService"
    DONE = "Done"


INTERACTIVE_STATES = (
    DeliveryState.LOCATE_INPUT,
    DeliveryState.SUBMIT_CODE,
    DeliveryState.AWAIT_UPDATE,
    DeliveryState.PARSE_RESULT,
)

INPUT_KEYWORDS = ("pin", "pincode", "zip", "postal", "postcode", "delivery")
SUBMIT_WORDS = ("check", "apply", "submit", "go", "change")
DELIVERY_WORDS = ("deliver", "delivery", "shipping", "dispatch", "arrive", "get it by")
MONTHS = r"(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*"
WEEKDAYS = r"(?:mon|tue|tues|wed|thu|thur|thurs|fri|sat|sun)(?:day)?"

DATE_RE = re.compile(
    rf"\b(?:{WEEKDAYS},?\s+)?(?:\d{{1,2}}(?:st|nd|rd|th)?\s+{MONTHS}|{MONTHS}\s+\d{{1,2}}(?:st|nd|rd|th)?)\b"
    rf"|\b(?:today|tomorrow)\b"
    rf"|\bin\s+\d+(?:\s*-\s*\d+)?\s+(?:business\s+)?days?\b"
    rf"|\b\d+\s*-\s*\d+\s+(?:business\s+)?days?\b"
    rf"|\b{WEEKDAYS}\b",
    re.I,
)
UNAVAILABLE_RE = re.compile(
    r"not\s+(?:available|deliverable|serviceable)|cannot\s+be\s+delivered|does\s+not\s+deliver"
    r"|unavailable|out\s+of\s+stock|no\s+delivery",
    re.I,
)
AVAILABLE_RE = re.compile(
    r"deliver(?:y|ed|s)?\s+(?:by|on|in|within)\b|get\s+it\s+(?:by|on)\b|ships?\s+(?:in|within|by)\b"
    r"|dispatch(?:ed|es)?\s+(?:in|within|by)\b|arriv(?:es|ing)\s+(?:by|on)\b|\bin\s+stock\b",
    re.I,
)
# Widget labels such as "Enter Delivery Pincode" or "Check delivery availability".
PROMPT_RE = re.compile(r"\b(?:enter|check|pin\s?code|change)\b", re.I)
FREE_RE = re.compile(r"\bfree\b", re.I)
CHARGE_RE = re.compile(r"charge|fee|shipping|delivery\s+(?:at|for)", re.I)

DELIVERY_PROMPT = """Extract delivery information for location code {code} on this {platform} product page.
Return only a JSON object:
{{"available": true or false, "estimatedDate": "date or time frame or null", "charges": "delivery fee, 'Free' or null"}}"""

# Visible text inputs scored by delivery keywords. Returns [{location, score}] best first.
FIND_INPUT_SCRIPT = with_path_helper("""
(keywords) => {
  __PATH_OF__
  const has = (value) => {
    value = (value || '').toLowerCase();
    return keywords.some(k => value.includes(k));
  };
  const found = [];
  for (const input of Array.from(document.querySelectorAll('input'))) {
    const type = (input.getAttribute('type') || 'text').toLowerCase();
    if (['search', 'password', 'hidden', 'checkbox', 'radio', 'submit', 'button'].includes(type)) continue;
    const r = input.getBoundingClientRect();
    if (r.width === 0 || r.height === 0) continue;
    const ident = [input.name, input.id, input.placeholder].join(' ').toLowerCase();
    if (ident.includes('search')) continue;
    let score = 0;
    if (has(input.placeholder)) score += 3;
    if (has(input.getAttribute('aria-label'))) score += 3;
    if (has(input.name)) score += 2;
    if (has(input.id)) score += 2;
    let labelText = '';
    if (input.id) {
      const label = document.querySelector(`label[for="${CSS.escape(input.id)}"]`);
      if (label) labelText = label.innerText;
    }
    if (!labelText && input.parentElement) labelText = (input.parentElement.innerText || '').slice(0, 100);
    if (has(labelText)) score += 2;
    if (['tel', 'number'].includes(type) || input.inputMode === 'numeric') score += 1;
    if (score > 1) found.push({location: pathOf(input), score});
  }
  found.sort((a, b) => b.score - a.score);
  return found;
}
""")

# Clickable control near the input whose text looks like a submit action.
FIND_SUBMIT_SCRIPT = with_path_helper("""
({location, words}) => {
  const input = document.evaluate(location, document, null, XPathResult.FIRST_ORDERED_NODE_TYPE, null).singleNodeValue;
  if (!input) return null;
  __PATH_OF__
  let scope = input.parentElement;
  for (let depth = 0; scope && depth < 4; depth += 1, scope = scope.parentElement) {
    const controls = scope.querySelectorAll('button, [role="button"], input[type="submit"], a, span');
    for (const el of Array.from(controls)) {
      const text = ((el.innerText || el.value || '') + '').trim().toLowerCase();
      if (!text || text.length > 20) continue;
      if (words.some(w => text === w || text.split(/\\s+/).includes(w))) return pathOf(el);
    }
  }
  return null;
}
""")

# Short text blocks that mention delivery.
DELIVERY_BLOCKS_SCRIPT = """
(words) => {
  const out = [];
  for (const el of Array.from(document.querySelectorAll('div, span, p, li, td'))) {
    const text = (el.innerText || '').replace(/\\s+/g, ' ').trim();
    if (text.length < 10 || text.length > 200) continue;
    const lowered = text.toLowerCase();
    if (words.some(w => lowered.includes(w)) && !out.includes(text)) out.push(text);
    if (out.length >= 100) break;
  }
  return out;
}
"""


def parse_delivery_text(text: str | None, location_code: str = "") -> DeliveryInfo:
    """Availability, date and charges from one block of delivery text."""
    info = DeliveryInfo(location_code=location_code)
    text = clean_text(text)
    if not text:
        return info
    date = DATE_RE.search(text)
    if UNAVAILABLE_RE.search(text):
        info.available = False
    elif date or AVAILABLE_RE.search(text):
        info.available = True
    elif PROMPT_RE.search(text):
        return info
    if info.available is not False and date:
        info.estimated_date = clean_text(date.group(0))
    if FREE_RE.search(text):
        info.charges = "Free"
    elif CHARGE_RE.search(text) and (amount := first_currency_amount(text)):
        info.charges = amount
    return info


def rank_delivery_blocks(blocks: list[str]) -> list[str]:
    """Order text blocks by delivery keyword density, with a bonus for dates."""

    def score(block: str) -> float:
        lowered = block.lower()
        hits = sum(lowered.count(w) for w in DELIVERY_WORDS)
        density = hits / max(len(block.split()), 1)
        return density * 10 + (5 if DATE_RE.search(block) else 0)

    scored = [(score(b), i, b) for i, b in enumerate(blocks)]
    scored.sort(key=lambda item: (-item[0], item[1]))
    return [b for s, _, b in scored if s > 0]


class DeliveryInquiry:
    """Runs the inquiry for one page and one location code."""

    def __init__(
        self,
        session: RenderSession,
        platform: PlatformProfile,
        settings: Settings,
        ai_service: AIService | None = None,
    ):
        self.session = session
        self.platform = platform
        self.settings = settings
        self.ai_service = ai_service
        self.trace: list[str] = []
        self._input: str | None = None

    async def _first_visible(self, selectors: tuple[str, ...]) -> str | None:
        for selector in selectors:
            if await self.session.is_visible(selector):
                return selector
        return None

    async def locate_input(self) -> str | None:
        opener = await self._first_visible(self.platform.delivery.openers)
        if opener:
            try:
                await self.session.click(opener)
                await self.session.wait(1_000)
            except Exception as exc:
                logger.debug("[%s] Delivery opener click failed: %r", self.platform.name, exc)

        if selector := await self._first_visible(self.platform.delivery.inputs):
            return selector

        logger.info("[%s] No configured delivery input, trying generic finder", self.platform.name)
        self.trace.append("generic-input-finder")
        found = await self.session.evaluate(FIND_INPUT_SCRIPT, list(INPUT_KEYWORDS)) or []
        if found:
            return location_selector(found[0]["location"])
        return None

    async def submit(self, input_selector: str, code: str) -> None:
        await self.session.fill(input_selector, code)
        if submit := await self._first_visible(self.platform.delivery.submits):
            await self.session.click(submit)
            return
        if input_selector.startswith("xpath="):
            location = input_selector[len("xpath="):]
            nearby = await self.session.evaluate(
                FIND_SUBMIT_SCRIPT, {"location": location, "words": list(SUBMIT_WORDS)}
            )
            if nearby:
                await self.session.click(location_selector(nearby))
                return
        await self.session.press(input_selector, "Enter")

    async def parse_result(self, code: str) -> DeliveryInfo:
        for selector in self.platform.delivery.results:
            text = await self.session.text_of(selector)
            info = parse_delivery_text(text, code)
            if info.is_resolved():
                return info
        return DeliveryInfo(location_code=code)

    async def scan_page(self, code: str) -> DeliveryInfo:
        blocks = await self.session.evaluate(DELIVERY_BLOCKS_SCRIPT, list(DELIVERY_WORDS)) or []
        for block in rank_delivery_blocks(blocks)[:5]:
            info = parse_delivery_text(block, code)
            if info.is_resolved():
                return info
        return DeliveryInfo(location_code=code)

    async def ask_service(self, code: str) -> DeliveryInfo:
        if self.ai_service is None:
            return DeliveryInfo(location_code=code)
        try:
            screenshot = await self.session.screenshot(full_page=False)
        except Exception as exc:
            logger.warning("[%s] Delivery screenshot failed: %r", self.platform.name, exc)
            return DeliveryInfo(location_code=code)
        data = await ask_json(
            self.ai_service,
            DELIVERY_PROMPT.format(code=code, platform=self.platform.display_name),
            image=screenshot,
            timeout_s=self.settings.ai_timeout_s,
            label=self.platform.name,
        )
        info = DeliveryInfo.from_dict(data, location_code=code)
        info.location_code = code
        return info

    async def run(self, location_code: str) -> DeliveryInfo:
        state = DeliveryState.LOCATE_INPUT
        result = DeliveryInfo(location_code=location_code)
        while state is not DeliveryState.DONE:
            self.trace.append(state.value)
            try:
                if state is DeliveryState.LOCATE_INPUT:
                    self._input = await self.locate_input()
                    state = DeliveryState.SUBMIT_CODE if self._input else DeliveryState.SCAN_PAGE
                elif state is DeliveryState.SUBMIT_CODE:
                    await self.submit(self._input, location_code)
                    state = DeliveryState.AWAIT_UPDATE
                elif state is DeliveryState.AWAIT_UPDATE:
                    await self.session.wait(self.settings.delivery_settle_ms)
                    state = DeliveryState.PARSE_RESULT
                elif state is DeliveryState.PARSE_RESULT:
                    result = await self.parse_result(location_code)
                    state = DeliveryState.DONE if result.is_resolved() else DeliveryState.SCAN_PAGE
                elif state is DeliveryState.SCAN_PAGE:
                    result = await self.scan_page(location_code)
                    state = DeliveryState.DONE if result.is_resolved() else DeliveryState.ASK_SERVICE
                elif state is DeliveryState.ASK_SERVICE:
                    result = await self.ask_service(location_code)
                    state = DeliveryState.DONE
            except Exception as exc:
                logger.warning("[%s] Delivery step %s failed: %r", self.platform.name, state.value, exc)
                if state in INTERACTIVE_STATES:
                    state = DeliveryState.SCAN_PAGE
                elif state is DeliveryState.SCAN_PAGE:
                    state = DeliveryState.ASK_SERVICE
                else:
                    state = DeliveryState.DONE
        self.trace.append(DeliveryState.DONE.value)
        result.location_code = location_code
        logger.info(
            "[%s] Delivery for %s: available=%s date=%s charges=%s",
            self.platform.name,
            location_code,
            result.available,
            result.estimated_date,
            result.charges,
        )
        return result


async def check_delivery(
    session: RenderSession,
    platform: PlatformProfile,
    settings: Settings,
    location_code: str,
    ai_service: AIService | None = None,
) -> DeliveryInfo:
    return await DeliveryInquiry(session, platform, settings, ai_service).run(location_code)
