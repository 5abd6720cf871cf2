"""Per-platform configuration table.

Platform differences are data: domains, obstacle vocabulary, challenge
markers and delivery-inquiry selectors. The extraction code is generic and
looks everything up here by platform tag.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import urlparse

from .errors import UnsupportedSourceError

__all__ = [
    "DeliverySelectors",
    "PlatformProfile",
    "PLATFORMS",
    "detect_platform",
    "get_platform",
    "list_platforms",
]


@dataclass(frozen=True)
class DeliverySelectors:
    """CSS selectors for the delivery-inquiry widget, tried in order."""

    openers: tuple[str, ...] = ()
    inputs: tuple[str, ...] = ()
    submits: tuple[str, ...] = ()
    results: tuple[str, ...] = ()


@dataclass(frozen=True)
class PlatformProfile:
    name: str
    display_name: str
    domains: tuple[str, ...]
    # Text that marks an intrusive popup whose close control should be clicked.
    intrusive_patterns: tuple[str, ...] = ()
    # Text that marks a blocking verification challenge.
    challenge_markers: tuple[str, ...] = ()
    delivery: DeliverySelectors = field(default_factory=DeliverySelectors)
    stealth: bool = False
    locale: str = "en-IN"

    def matches_host(self, host: str) -> bool:
        host = host.lower().rstrip(".")
        return any(host == d or host.endswith("." + d) for d in self.domains)


_PROFILES = [
    PlatformProfile(
        name="amazon",
        display_name="Amazon India",
        domains=("amazon.in", "www.amazon.in", "amzn.in"),
        intrusive_patterns=("sign in for the best experience", "accept cookies"),
        challenge_markers=(
            "enter the characters you see below",
            "type the characters you see",
            "robot check",
        ),
        delivery=DeliverySelectors(
            openers=("#contextualIngressPtLabel_deliveryShortLine", "#glow-ingress-block"),
            inputs=("#GLUXZipUpdateInput",),
            submits=("#GLUXZipUpdate input", "#GLUXZipUpdate"),
            results=(
                "#mir-layout-DELIVERY_BLOCK",
                "#deliveryBlockMessage",
                "#delivery-message",
            ),
        ),
        stealth=True,
    ),
    PlatformProfile(
        name="flipkart",
        display_name="Flipkart",
        domains=("flipkart.com", "www.flipkart.com", "dl.flipkart.com"),
        intrusive_patterns=("login", "sign in", "log in"),
        challenge_markers=("are you a human", "verify you are human"),
        delivery=DeliverySelectors(
            openers=('span:has-text("Enter Delivery Pincode")',),
            inputs=("#pincodeInputId", 'input[placeholder*="pincode" i]'),
            submits=('span:has-text("Check")', 'span:has-text("Change")'),
            results=("._3XINqE", "._1KOFUF", 'div:has-text("Delivery by")'),
        ),
    ),
    PlatformProfile(
        name="myntra",
        display_name="Myntra",
        domains=("myntra.com", "www.myntra.com"),
        intrusive_patterns=("newsletter", "subscribe", "join us"),
        delivery=DeliverySelectors(
            openers=(".pincode-enterPincode", ".pincode-check-another-pincode"),
            inputs=("input.pincode-code", 'input[placeholder*="pincode" i]'),
            submits=("input.pincode-button", "button.pincode-button"),
            results=(".pincode-serviceability-list", ".pincode-deliveryContainer"),
        ),
    ),
    PlatformProfile(
        name="snapdeal",
        display_name="Snapdeal",
        domains=("snapdeal.com", "www.snapdeal.com"),
        intrusive_patterns=("allow notifications", "download app"),
        delivery=DeliverySelectors(
            inputs=("#pincode-check", 'input[placeholder*="pincode" i]'),
            submits=("#pincode-check-bttn", "button.pincode-check-bttn"),
            results=(".delivery-msg", ".pincode-delivery-msg", "#pincode-avail-msg"),
        ),
    ),
]

PLATFORMS: dict[str, PlatformProfile] = {p.name: p for p in _PROFILES}


def detect_platform(url: str) -> PlatformProfile:
    """Return the profile owning ``url`` or raise UnsupportedSourceError."""
    try:
        host = urlparse(url).hostname or ""
    except ValueError:
        host = ""
    if not host:
        raise UnsupportedSourceError(f"Invalid URL: {url!r}")
    for profile in PLATFORMS.values():
        if profile.matches_host(host):
            return profile
    supported = ", ".join(p.display_name for p in PLATFORMS.values())
    raise UnsupportedSourceError(f"Unsupported platform '{host}'. Supported: {supported}")


def get_platform(name: str) -> PlatformProfile:
    if name not in PLATFORMS:
        available = ", ".join(PLATFORMS.keys())
        raise ValueError(f"Unknown platform '{name}'. Available: {available}")
    return PLATFORMS[name]


def list_platforms() -> list[str]:
    return list(PLATFORMS.keys())
