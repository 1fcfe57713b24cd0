"""CSS selectors and class tokens for the Blaze calendar week view.

The class names carry build hashes (``__335fa``, ``__d7da4``) and change when
the site ships a new frontend build. Substring selectors are used where the
hash is irrelevant; exact tokens only where a prefix would also match
wrapper elements.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Week view
# ---------------------------------------------------------------------------

DAY_HEADER_SEL = '[class*="WeekViewV2_weekDayHeaderContainer"]'
DAY_COLUMN_SEL = '[class*="WeekViewV2_weekDayColumn"]'
DAY_COLUMN_CLASS = "WeekViewV2_weekDayColumn"

# ---------------------------------------------------------------------------
# Event card
# ---------------------------------------------------------------------------

EVENT_CARD_SEL = '[class*="CalendarEventCard_eventContainer"]'
EVENT_HEADER_SEL = '[class*="CalendarEventCard_eventHeader"]'
CHANNEL_CONTAINER_SEL = '[class*="CalendarEventCard_channelContainer"]'
TEXT_ROOT_SEL = 'span[class*="Text_root_"]'
MORE_BUTTON_SEL = '[class*="TruncatedText_moreButton"]'
NEW_CARD_CLASS = "CalendarEventCard_new__335fa"

DESCRIPTION_SELS = (
    '[class*="TruncatedText_caption"]',
    '[class*="TruncatedText_text"]',
    '[class*="CalendarEventCard_content"]',
    '[class*="CalendarEventCard_description"]',
    '[class*="CalendarEventCard_captionContainer"]',
)
DESCRIPTION_FALLBACK_SEL = "span, p, div"

# ---------------------------------------------------------------------------
# Media
# ---------------------------------------------------------------------------

IMAGE_SEL = "img[src]"
PLAY_OVERLAY_SEL = ".CalendarEventCard_playButtonOverlay__335fa"
VIDEO_CONTAINER_SEL = '[class*="VideoPlayer_videoContainer"]'
VIDEO_SEL = "video"
VIDEO_SOURCE_SEL = "source[src]"
VIDEO_DURATION_SEL = '[data-testid="video-duration"]'

# ---------------------------------------------------------------------------
# Platform icons
# ---------------------------------------------------------------------------

PLATFORM_ICON_SEL = '[class*="Icon_platform"]'
PLATFORM_ICON_CLASS = "Icon_platformIcon__d7da4"
PLATFORM_ICONS_CONTAINER_CLASS = "Icon_platformIconsContainer__d7da4"

# ---------------------------------------------------------------------------
# Event detail view (opened by clicking a card)
# ---------------------------------------------------------------------------

DETAIL_VIEW_SEL = '[class*="DetailView"], [class*="Modal"]'
DETAIL_DESCRIPTION_SEL = '[class*="description"]'
DETAIL_CLOSE_SEL = '[class*="Modal"] button[class*="close"], [class*="DetailView"] button[class*="close"]'
