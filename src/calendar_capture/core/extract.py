"""
Event extraction from the Blaze calendar week view.

`scan_events` performs the layout side effects on a live page (scroll every
day column so lazily mounted cards exist, expand truncated captions) and then
reads the serialized DOM with `extract_events`, which is pure and needs no
browser. Every field has a safe default; a card never fails extraction.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterator, List, Optional

from bs4 import BeautifulSoup, Tag

from calendar_capture.core import selectors as sel
from calendar_capture.core.models import UNRESOLVED_VIDEO, EventRecord
from calendar_capture.core.normalize import TIME_EXACT_RE, TIME_SEARCH_RE, format_duration
from calendar_capture.core.page import PageSession
from calendar_capture.core.platforms import detect_platforms, infer_platform_from_label
from calendar_capture.core.utils import absolutize, class_string, clean_text, is_hidden

log = logging.getLogger(__name__)

NO_LABEL = "No Label"

DESCRIPTION_MIN_CHARS = 10
FALLBACK_MIN_CHARS = 15

MORE_SUFFIX_RE = re.compile(r"\s*more\s*$", re.I)
LEADING_TIME_RE = re.compile(r"^\d{1,2}:\d{2}")
UI_LABEL_RE = re.compile(r"^(Post|Draft|Posted|Email|Story|Reel|more)$", re.I)


def scan_events(
    page: PageSession,
    *,
    scroll_pause_ms: int = 50,
    expand_pause_ms: int = 200,
) -> Iterator[EventRecord]:
    """
    One capture pass over a live page. Lazy: nothing touches the page until
    the first record is requested.
    """
    columns = page.scroll_through(sel.DAY_COLUMN_SEL, scroll_pause_ms)
    log.info("Scrolled %s day columns", columns)

    expanded = page.activate(sel.MORE_BUTTON_SEL, within=sel.EVENT_CARD_SEL)
    if expanded:
        log.info("Expanded %s truncated captions", expanded)
        page.wait(expand_pause_ms)

    yield from extract_events(page.soup(), page.url)


def extract_events(soup: BeautifulSoup, page_url: str = "") -> Iterator[EventRecord]:
    headers = [clean_text(h.get_text(" ")) for h in soup.select(sel.DAY_HEADER_SEL)]
    columns = soup.select(sel.DAY_COLUMN_SEL)
    column_dates = map_column_dates(headers, len(columns))
    if len(headers) != len(columns):
        log.debug("Header/column count mismatch: %s headers, %s columns", len(headers), len(columns))

    # Indices are fixed here for the rest of the pass.
    cards = find_event_cards(soup)
    log.info("Found %s event cards", len(cards))

    for index, card in enumerate(cards, start=1):
        yield extract_card(
            card,
            index,
            page_url=page_url,
            columns=columns,
            column_dates=column_dates,
            fallback_date=headers[0] if headers else "",
        )


def map_column_dates(headers: List[str], column_count: int) -> Dict[int, str]:
    return {i: (headers[i] if i < len(headers) else "") for i in range(column_count)}


def find_event_cards(soup: BeautifulSoup) -> List[Tag]:
    return [c for c in soup.select(sel.EVENT_CARD_SEL) if not is_hidden(c)]


def extract_card(
    card: Tag,
    index: int,
    *,
    page_url: str = "",
    columns: Optional[List[Tag]] = None,
    column_dates: Optional[Dict[int, str]] = None,
    fallback_date: str = "",
) -> EventRecord:
    label = extract_label(card)
    platforms = detect_platforms(card) or infer_platform_from_label(label)
    video_ref, has_video, duration = extract_video(card, page_url)
    classes = class_string(card)

    return EventRecord(
        label=label,
        platforms=platforms,
        timestamp=extract_timestamp(card),
        date=extract_date(card, columns or [], column_dates or {}, fallback_date),
        description=extract_description(card),
        image_ref=extract_image(card, page_url),
        video_ref=video_ref,
        has_video=has_video,
        video_duration=duration,
        is_new=sel.NEW_CARD_CLASS in classes,
        card_index=index,
        event_url=extract_event_url(card, page_url),
        raw_markup_classes=classes,
    )


def extract_label(card: Tag) -> str:
    channel = card.select_one(sel.CHANNEL_CONTAINER_SEL)
    span = (channel.select_one(sel.TEXT_ROOT_SEL) if channel else None) or card.select_one(sel.TEXT_ROOT_SEL)
    text = span.get_text().strip() if span else ""
    return text or NO_LABEL


def extract_timestamp(card: Tag) -> str:
    header = card.select_one(sel.EVENT_HEADER_SEL)
    if header is None:
        return ""

    for span in header.select(sel.TEXT_ROOT_SEL):
        text = span.get_text().strip()
        if text and TIME_EXACT_RE.match(text):
            return text

    m = TIME_SEARCH_RE.search(header.get_text(" "))
    return m.group(1) if m else ""


def extract_date(card: Tag, columns: List[Tag], column_dates: Dict[int, str], fallback_date: str) -> str:
    column = card.find_parent(lambda t: sel.DAY_COLUMN_CLASS in class_string(t))
    if column is not None:
        for i, c in enumerate(columns):
            if c is column:
                if column_dates.get(i):
                    return column_dates[i]
                break
    return fallback_date


def _strip_more(text: str) -> str:
    return MORE_SUFFIX_RE.sub("", text).strip()


def extract_description(card: Tag) -> str:
    for selector in sel.DESCRIPTION_SELS:
        el = card.select_one(selector)
        text = el.get_text().strip() if el else ""
        if len(text) > DESCRIPTION_MIN_CHARS:
            cleaned = _strip_more(text)
            if len(cleaned) > DESCRIPTION_MIN_CHARS:
                return cleaned

    # Longest plausible block anywhere in the card
    longest = ""
    for el in card.select(sel.DESCRIPTION_FALLBACK_SEL):
        text = el.get_text().strip()
        if len(text) <= FALLBACK_MIN_CHARS:
            continue
        if LEADING_TIME_RE.match(text) or UI_LABEL_RE.match(text):
            continue
        cleaned = _strip_more(text)
        if len(cleaned) > len(longest):
            longest = cleaned
    return longest


def extract_image(card: Tag, page_url: str = "") -> Optional[str]:
    for img in card.select(sel.IMAGE_SEL):
        src = (img.get("src") or "").strip()
        if src and not src.startswith("data:"):
            return absolutize(page_url, src)
    return None


def find_video_source(card: Tag, page_url: str = "") -> Optional[str]:
    video = card.select_one(sel.VIDEO_SEL)
    if video is not None:
        src = (video.get("src") or "").strip()
        if src and src != "about:blank":
            return absolutize(page_url, src)
        current = (video.get("data-current-src") or "").strip()
        if current:
            return absolutize(page_url, current)
        source = video.select_one(sel.VIDEO_SOURCE_SEL)
        if source is not None and source.get("src"):
            return absolutize(page_url, source["src"].strip())

    player = card.select_one(sel.VIDEO_CONTAINER_SEL)
    if player is not None:
        data_src = player.get("data-src") or player.get("data-video-src")
        if data_src:
            return absolutize(page_url, data_src.strip())
    return None


def find_video_duration(card: Tag) -> str:
    badge = card.select_one(sel.VIDEO_DURATION_SEL)
    if badge is not None and badge.get_text().strip():
        return badge.get_text().strip()

    video = card.select_one(sel.VIDEO_SEL)
    if video is not None and video.get("data-duration"):
        try:
            return format_duration(float(video["data-duration"]))
        except ValueError:
            return ""
    return ""


def extract_video(card: Tag, page_url: str = "") -> tuple[Optional[str], bool, str]:
    """(video_ref, has_video, duration). Cards without a video yield (None, False, "")."""
    has_video = (
        card.select_one(sel.PLAY_OVERLAY_SEL) is not None
        or card.select_one(sel.VIDEO_CONTAINER_SEL) is not None
        or card.select_one(sel.VIDEO_SEL) is not None
    )
    if not has_video:
        return None, False, ""
    src = find_video_source(card, page_url) or UNRESOLVED_VIDEO
    return src, True, find_video_duration(card)


def extract_event_url(card: Tag, page_url: str = "") -> Optional[str]:
    link = card.find_parent("a")
    if link is None or not link.get("href"):
        link = card.select_one("a[href]")
    if link is None or not link.get("href"):
        return None
    return absolutize(page_url, link["href"])
