from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional

import dateparser

# "10:30 AM", "5:00pm", "09:15 am"
TIME_EXACT_RE = re.compile(r"^\d{1,2}:\d{2}\s*(am|pm)$", re.I)
TIME_SEARCH_RE = re.compile(r"(\d{1,2}:\d{2}\s*(am|pm))", re.I)
TIME_PARTS_RE = re.compile(r"(\d{1,2}):(\d{2})\s*(am|pm)", re.I)

DURATION_CLOCK_RE = re.compile(r"^(?:(\d+):)?(\d+):(\d{2})$")
DURATION_SECONDS_RE = re.compile(r"^(\d+)\s*s?$", re.I)

ORDINAL_RE = re.compile(r"(\d+)(st|nd|rd|th)\b", re.I)
WEEKDAY_RE = re.compile(
    r"\b(Mon|Monday|Tue|Tues|Tuesday|Wed|Wednesday|Thu|Thur|Thurs|Thursday|"
    r"Fri|Friday|Sat|Saturday|Sun|Sunday)\b\.?",
    re.IGNORECASE,
)
MONTH_DAY_RE = re.compile(r"([A-Za-z]+)\s+(\d{1,2})\b")

MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}


def parse_duration(raw: Optional[str]) -> Optional[int]:
    """
    "1:30" -> 90, "1:02:03" -> 3723, "45" -> 45.
    Returns None for empty, zero or unparseable durations.
    """
    text = (raw or "").strip()
    if not text:
        return None

    m = DURATION_CLOCK_RE.match(text)
    if m:
        hours, minutes, seconds = m.groups()
        total = int(hours or 0) * 3600 + int(minutes) * 60 + int(seconds)
        return total or None

    m = DURATION_SECONDS_RE.match(text)
    if m:
        return int(m.group(1)) or None

    return None


def format_duration(seconds: Optional[float]) -> str:
    if not seconds or seconds <= 0:
        return ""
    total = int(seconds)
    return f"{total // 60}:{total % 60:02d}"


def parse_calendar_date(label: str, today: Optional[date] = None) -> Optional[date]:
    """
    Resolve a week-view header such as "Nov 2 Sun" to a date in the current year.
    The header carries no year; month name + day is tried first, then dateparser.
    """
    today = today or date.today()
    clean = " ".join((label or "").split())
    if not clean:
        return None

    clean = ORDINAL_RE.sub(r"\1", clean)
    m = MONTH_DAY_RE.search(clean)
    if m:
        month = MONTHS.get(m.group(1).lower()[:3])
        if month:
            try:
                return date(today.year, month, int(m.group(2)))
            except ValueError:
                return None

    no_weekday = WEEKDAY_RE.sub("", clean).strip()
    if not no_weekday:
        return None

    dt = dateparser.parse(
        no_weekday,
        settings={
            "DATE_ORDER": "MDY",
            "PREFER_DAY_OF_MONTH": "first",
            "RETURN_AS_TIMEZONE_AWARE": False,
            "RELATIVE_BASE": datetime(today.year, today.month, today.day),
        },
        languages=["en"],
    )
    return dt.date() if dt else None


def to_schedule_time(timestamp: str, date_label: str, now: Optional[datetime] = None) -> str:
    """
    Combine a card's date label and 12-hour timestamp into "YYYY-MM-DD HH:MM:SS".
    Missing parts fall back to `now`.
    """
    now = now or datetime.now()
    day = parse_calendar_date(date_label, now.date()) or now.date()
    prefix = day.isoformat()

    if not timestamp:
        return f"{prefix} {now:%H:%M:%S}"

    m = TIME_PARTS_RE.search(timestamp)
    if not m:
        return f"{prefix} {timestamp}"

    hours = int(m.group(1))
    minutes = m.group(2)
    meridiem = m.group(3).upper()
    if meridiem == "PM" and hours != 12:
        hours += 12
    elif meridiem == "AM" and hours == 12:
        hours = 0
    return f"{prefix} {hours:02d}:{minutes}:00"
