from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from bs4 import BeautifulSoup

from calendar_capture.core.models import VideoResource
from calendar_capture.core.utils import absolutize

log = logging.getLogger(__name__)

EMBED_HOSTS = ("youtube.com", "vimeo.com", "dailymotion.com", "twitch.tv")
VIDEO_LINK_SEL = ", ".join(
    f'a[href*=".{ext}"]' for ext in ("mp4", "webm", "avi", "mov", "mkv")
)

VIDEO_KINDS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("youtube.com", "youtu.be"), "YouTube"),
    (("vimeo.com",), "Vimeo"),
    (("twitch.tv",), "Twitch"),
    (("dailymotion.com",), "Dailymotion"),
    ((".mp4",), "MP4"),
    ((".webm",), "WebM"),
    ((".avi",), "AVI"),
    ((".mkv",), "MKV"),
)


def video_kind(url: str) -> str:
    for needles, kind in VIDEO_KINDS:
        if any(n in url for n in needles):
            return kind
    return "Video"


def _duration_attr(raw: Optional[str]) -> Optional[float]:
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if value > 0 else None


def discover_videos(soup: BeautifulSoup, base_url: str = "") -> List[Tuple[str, Optional[float]]]:
    """
    Every video source on the page as (url, duration_seconds), in page order.

    Covers <video> elements, embedded players and direct links to video files.
    Durations are only known for <video> elements annotated by the live page.
    """
    found: Dict[str, Optional[float]] = {}

    def add(url: Optional[str], duration: Optional[float] = None) -> None:
        url = (url or "").strip()
        if not url or url == "about:blank":
            return
        url = absolutize(base_url, url)
        if url not in found:
            found[url] = duration
        elif found[url] is None and duration is not None:
            found[url] = duration

    for video in soup.find_all("video"):
        src = video.get("src") or video.get("data-current-src")
        if not src:
            source = video.find("source", src=True)
            src = source["src"] if source is not None else None
        if not src:
            src = video.get("data-src") or video.get("data-url") or video.get("data-video")
        add(src, _duration_attr(video.get("data-duration")))

    for iframe in soup.find_all("iframe", src=True):
        if any(h in iframe["src"] for h in EMBED_HOSTS):
            add(iframe["src"])

    for a in soup.select(VIDEO_LINK_SEL):
        add(a.get("href"))

    return list(found.items())


class VideoPool:
    """
    Video resources captured during one session.

    Append-only and deduplicated by URL. `capture_order` is 1-based and keeps
    counting across discovery passes.
    """

    def __init__(self) -> None:
        self._resources: List[VideoResource] = []
        self._by_url: Dict[str, VideoResource] = {}

    def __len__(self) -> int:
        return len(self._resources)

    def __iter__(self):
        return iter(self._resources)

    @property
    def resources(self) -> List[VideoResource]:
        return list(self._resources)

    def add(self, url: str, duration_seconds: Optional[float] = None) -> Optional[VideoResource]:
        """Returns the new resource, or None when the URL is already pooled."""
        existing = self._by_url.get(url)
        if existing is not None:
            if existing.duration_seconds is None and duration_seconds is not None:
                existing.duration_seconds = duration_seconds
            return None
        res = VideoResource(url=url, capture_order=len(self._resources) + 1, duration_seconds=duration_seconds)
        self._resources.append(res)
        self._by_url[url] = res
        return res

    def extend(self, items: Iterable[Tuple[str, Optional[float]]]) -> List[VideoResource]:
        added = []
        for url, duration in items:
            res = self.add(url, duration)
            if res is not None:
                added.append(res)
        if added:
            log.info("Captured %s new videos (%s pooled)", len(added), len(self._resources))
        return added

    def unassigned(self) -> List[VideoResource]:
        return [r for r in self._resources if not r.already_assigned]

    def reset_assignments(self) -> None:
        """Free every resource for a new set of records. Discovery order is kept."""
        for r in self._resources:
            r.already_assigned = False
