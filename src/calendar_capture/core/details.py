"""
Detail pass: re-open video cards whose source is still unresolved and read
the real video from their detail view.

Cards are found again by `card_index`, the position among visible cards
that the extractor assigned. Each card is handled on its own; a card that
cannot be opened or read is logged and left as it was.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from bs4 import BeautifulSoup

from calendar_capture.core import selectors as sel
from calendar_capture.core.errors import PageAccessError
from calendar_capture.core.extract import extract_image, find_video_duration, find_video_source
from calendar_capture.core.models import EventRecord
from calendar_capture.core.page import PageSession

log = logging.getLogger(__name__)

DEFAULT_OPEN_PAUSE_MS = 2500
DEFAULT_CLOSE_PAUSE_MS = 500


@dataclass
class DetailView:
    video_src: Optional[str]
    video_duration: str
    image_src: Optional[str]
    description: str


def read_detail(soup: BeautifulSoup, page_url: str = "") -> Optional[DetailView]:
    view = soup.select_one(sel.DETAIL_VIEW_SEL)
    if view is None:
        return None
    desc = view.select_one(sel.DETAIL_DESCRIPTION_SEL)
    return DetailView(
        video_src=find_video_source(view, page_url),
        video_duration=find_video_duration(view),
        image_src=extract_image(view, page_url),
        description=desc.get_text().strip() if desc else "",
    )


def needs_details(record: EventRecord) -> bool:
    return record.has_video and not record.video_resolved


def apply_detail(record: EventRecord, detail: DetailView) -> bool:
    """Merge a detail view into the record. True when it supplied the video."""
    if detail.image_src and not record.image_ref:
        record.image_ref = detail.image_src
    if len(detail.description) > len(record.description):
        record.description = detail.description
    if not detail.video_src:
        return False
    record.video_ref = detail.video_src
    if not record.video_duration:
        record.video_duration = detail.video_duration
    return True


def resolve_details(
    page: PageSession,
    records: Sequence[EventRecord],
    *,
    open_pause_ms: int = DEFAULT_OPEN_PAUSE_MS,
    close_pause_ms: int = DEFAULT_CLOSE_PAUSE_MS,
) -> int:
    """Returns the number of records whose video was resolved."""
    pending = [r for r in records if needs_details(r)]
    if not pending:
        return 0
    log.info("Opening %s unresolved video cards", len(pending))

    resolved = 0
    for record in pending:
        try:
            if not page.open_card(record.card_index):
                log.warning("Card %s (%s) not found on page", record.card_index, record.label)
                continue
            try:
                page.wait(open_pause_ms)
                detail = read_detail(page.soup(), page.url)
            finally:
                page.close_detail()
                page.wait(close_pause_ms)
        except PageAccessError as e:
            log.warning("Detail view for card %s failed: %s", record.card_index, e)
            continue

        if detail is None:
            log.warning("Card %s opened no detail view", record.card_index)
            continue
        if apply_detail(record, detail):
            resolved += 1
            log.debug("Card %s <- %s", record.card_index, record.video_ref)

    log.info("Resolved %s videos from detail views", resolved)
    return resolved
