from typing import List, Optional

import pytest

PAGE_URL = "https://app.blaze.ai/calendar"

INSTAGRAM_GRADIENT_SVG = (
    '<svg viewBox="0 0 16 16"><defs><linearGradient id="ig">'
    '<stop stop-color="#FFC800"></stop><stop offset="0.5" stop-color="#F51780"></stop>'
    '<stop offset="1" stop-color="#8C3AAA"></stop></linearGradient></defs>'
    '<rect fill="url(#ig)" width="16" height="16"></rect></svg>'
)


def make_card(
    *,
    label: str = "Post",
    time: str = "10:30 AM",
    icons: Optional[List[str]] = None,
    body: str = "",
    classes: str = "CalendarEventCard_eventContainer__335fa",
    attrs: str = "",
) -> str:
    icon_html = "".join(icons or [])
    return (
        f'<div class="{classes}" {attrs}>'
        f'<div class="CalendarEventCard_eventHeader__335fa">'
        f'<span class="Text_root__a1b2c">{time}</span></div>'
        f'<div class="CalendarEventCard_channelContainer__335fa">'
        f'<div class="Icon_platformIconsContainer__d7da4">{icon_html}</div>'
        f'<span class="Text_root__a1b2c">{label}</span></div>'
        f"{body}"
        f"</div>"
    )


def make_icon(classes: str = "", inner: str = "", attrs: str = "") -> str:
    return f'<span class="Icon_platformIcon__d7da4 {classes}" {attrs}>{inner}</span>'


def make_week(columns: List[List[str]], headers: Optional[List[str]] = None) -> str:
    headers = headers if headers is not None else [f"Nov {i + 2} Sun" for i in range(len(columns))]
    head = "".join(f'<div class="WeekViewV2_weekDayHeaderContainer__9f1e2">{h}</div>' for h in headers)
    cols = "".join(
        f'<div class="WeekViewV2_weekDayColumn__9f1e2">{"".join(cards)}</div>' for cards in columns
    )
    return f"<html><body><div>{head}</div><div>{cols}</div></body></html>"


@pytest.fixture
def card():
    return make_card


@pytest.fixture
def icon():
    return make_icon


@pytest.fixture
def week():
    return make_week


@pytest.fixture
def page_url():
    return PAGE_URL


@pytest.fixture
def gradient_svg():
    return INSTAGRAM_GRADIENT_SVG
