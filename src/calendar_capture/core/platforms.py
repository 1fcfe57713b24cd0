"""
Platform detection for calendar event cards.

Each icon leaf is run through an ordered chain of strategies; the first one
that names a platform wins for that icon. Strategies are never combined or
scored. When a card has no icon evidence at all, the caller may fall back to
`infer_platform_from_label`.

The SVG fingerprints are literal path-data prefixes and brand colours copied
from the site's current rendering. They break when upstream icons change;
that is expected, and detection then degrades to the later strategies.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple

from bs4 import Tag

from calendar_capture.core import selectors as sel
from calendar_capture.core.utils import class_string, has_class

FACEBOOK = "Facebook"
INSTAGRAM = "Instagram"
YOUTUBE = "YouTube"
X = "X"
LINKEDIN = "LinkedIn"
EMAIL = "Email"
BLOG = "Blog"

Strategy = Callable[[Tag], str]

# Strategy 1: versioned class tokens, in priority order
CLASS_TOKENS: Sequence[Tuple[str, Tuple[str, ...]]] = (
    (FACEBOOK, ("Icon_facebook__d7da4", "ChannelIcon_facebook")),
    (INSTAGRAM, ("Icon_instagram__d7da4", "ChannelIcon_instagram")),
    (YOUTUBE, ("Icon_youtube__d7da4", "ChannelIcon_youtube")),
    (X, ("Icon_x__d7da4", "Icon_twitter__d7da4", "ChannelIcon_x__", "ChannelIcon_twitter")),
    (LINKEDIN, ("Icon_linkedin__d7da4", "ChannelIcon_linkedIn")),
)


@dataclass(frozen=True)
class SvgFingerprint:
    """
    A platform signature inside icon markup.

    Matches when any `paths` prefix occurs verbatim, or when every entry of
    `colors` occurs (case-insensitive) together with every `markers` word.
    """
    platform: str
    paths: Tuple[str, ...] = ()
    colors: Tuple[str, ...] = ()
    markers: Tuple[str, ...] = ()

    def matches(self, markup: str) -> bool:
        if any(p in markup for p in self.paths):
            return True
        if not self.colors:
            return False
        upper = markup.upper()
        lower = markup.lower()
        return all(c.upper() in upper for c in self.colors) and all(
            m.lower() in lower for m in self.markers
        )


# Strategy 2: path data first (most distinctive), then brand colours
SVG_FINGERPRINTS: Sequence[SvgFingerprint] = (
    SvgFingerprint(
        LINKEDIN,
        paths=(
            "M14.3921 4.77426",
            "M20.447 20.452h-3.554v-5.569c0-1.328-.027-3.037-1.852-3.037-1.853 0-2.136 1.445-2.136 2.939v5.667H9.351V9h3.414v1.561h.046c.477-.9 1.637-1.85 3.37-1.85 3.601 0 4.267 2.37 4.267 5.455v6.286z",
        ),
    ),
    SvgFingerprint(
        INSTAGRAM,
        paths=(
            "M12.0833 1H3.91667C2.30608 1 1 2.30608 1 3.91667V12.0833C1 13.6939 2.30608 15 3.91667 15H12.0833",
            "M14.9808 7.9989",
        ),
    ),
    SvgFingerprint(
        FACEBOOK,
        paths=("M24 12.073c0-6.627-5.373-12-12-12s-12 5.373-12 12c0 5.99 4.388 10.954 10.125 11.854v-8.385H7.078v-3.47h3.047V9.43",),
    ),
    SvgFingerprint(YOUTUBE, paths=("M23.498 6.186",)),
    SvgFingerprint(
        X,
        paths=("M18.244 2.25h3.308l-7.227 8.26 8.502 11.24H16.17l-5.214-6.817L4.99 21.75H1.68l7.73-8.835L1.254 2.25H8.08l4.713 6.231z",),
    ),
    SvgFingerprint(INSTAGRAM, colors=("#FFC800", "#F51780", "#8C3AAA")),
    SvgFingerprint(YOUTUBE, colors=("#FF0000",), markers=("youtube",)),
    SvgFingerprint(FACEBOOK, colors=("#1877F2",)),
    SvgFingerprint(LINKEDIN, colors=("#1275B1",)),
    SvgFingerprint(LINKEDIN, colors=("#0A66C2",)),
)

# Strategy 3: accessible names
ARIA_KEYWORDS: Sequence[Tuple[str, re.Pattern]] = (
    (LINKEDIN, re.compile(r"linkedin")),
    (FACEBOOK, re.compile(r"facebook")),
    (INSTAGRAM, re.compile(r"instagram")),
    (YOUTUBE, re.compile(r"youtube")),
    (X, re.compile(r"twitter|\bx\b")),
)

# Strategy 4: bare platform names in the class list
FALLBACK_NAMES: Sequence[Tuple[str, str]] = (
    (LINKEDIN, "linkedin"),
    (FACEBOOK, "facebook"),
    (INSTAGRAM, "instagram"),
    (YOUTUBE, "youtube"),
    (X, "twitter"),
)
GENERIC_CLASS_WORDS = ("icon", "social")

# Label inference, in priority order. "post" is deliberately absent.
LABEL_KEYWORDS: Sequence[Tuple[str, Tuple[str, ...]]] = (
    (EMAIL, ("email", "mail")),
    (BLOG, ("blog",)),
    (INSTAGRAM, ("story", "reel")),
)


def detect_by_class_tokens(icon: Tag) -> str:
    classes = class_string(icon)
    for platform, tokens in CLASS_TOKENS:
        if any(t in classes for t in tokens):
            return platform
    return ""


def detect_by_svg(icon: Tag) -> str:
    svg = icon if icon.name == "svg" else icon.find("svg")
    if svg is None:
        return ""
    markup = str(svg)
    for fp in SVG_FINGERPRINTS:
        if fp.matches(markup):
            return fp.platform
    return ""


def detect_by_accessible_name(icon: Tag) -> str:
    name = icon.get("aria-label") or icon.get("alt") or icon.get("title") or ""
    name = name.lower()
    if not name:
        return ""
    for platform, pattern in ARIA_KEYWORDS:
        if pattern.search(name):
            return platform
    return ""


def detect_by_class_fallback(icon: Tag) -> str:
    # Case-sensitive on purpose: "Icon_platformIcon" must not count as "icon".
    classes = class_string(icon)
    if any(w in classes for w in GENERIC_CLASS_WORDS):
        return ""
    for platform, name in FALLBACK_NAMES:
        if name in classes:
            return platform
    return ""


STRATEGIES: Sequence[Strategy] = (
    detect_by_class_tokens,
    detect_by_svg,
    detect_by_accessible_name,
    detect_by_class_fallback,
)


def detect_platform(icon: Tag | None, strategies: Sequence[Strategy] = STRATEGIES) -> str:
    """Platform name for a single icon element, or "" when no strategy recognises it."""
    if icon is None:
        return ""
    for strategy in strategies:
        platform = strategy(icon)
        if platform:
            return platform
    return ""


def find_platform_icons(container: Tag) -> List[Tag]:
    """Icon leaves under `container`, excluding the wrapper that shares the class prefix."""
    return [
        el
        for el in container.select(sel.PLATFORM_ICON_SEL)
        if has_class(el, sel.PLATFORM_ICON_CLASS)
        and not has_class(el, sel.PLATFORM_ICONS_CONTAINER_CLASS)
    ]


def detect_platforms(container: Tag | None, strategies: Sequence[Strategy] = STRATEGIES) -> List[str]:
    if container is None:
        return []
    found: List[str] = []
    for icon in find_platform_icons(container):
        platform = detect_platform(icon, strategies)
        if platform and platform not in found:
            found.append(platform)
    return found


def infer_platform_from_label(label: str) -> List[str]:
    lower = (label or "").lower()
    if not lower:
        return []
    for platform, keywords in LABEL_KEYWORDS:
        if any(k in lower for k in keywords):
            return [platform]
    return []
