"""
Export package: an HTML index, the data CSV, per-platform schedule CSVs and
every media asset, written through a `FileSink`.

Each file is one save request. A rejected request is logged and reported in
its `ExportResult`; the remaining requests still run.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Protocol, Sequence
from urllib.parse import urlparse

import httpx

from calendar_capture.core.errors import DOWNLOAD_FAILED, ExportError
from calendar_capture.core.fetch import Fetcher
from calendar_capture.core.models import EventRecord, MediaItem, VideoResource
from calendar_capture.core.output import group_by_platform, render_csv, render_gallery, render_schedule_csv
from calendar_capture.core.utils import is_http_url
from calendar_capture.core.videos import video_kind

log = logging.getLogger(__name__)

DEFAULT_FOLDER = "BlazeMedia"
IMAGE_EXT = "jpg"
VIDEO_EXT = "mp4"
MAX_LABEL_CHARS = 30

URL_EXT_RE = re.compile(r"\.([A-Za-z0-9]{1,5})$")
UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9]")


def resolve_extension(url: Optional[str], kind: str) -> str:
    default = VIDEO_EXT if kind == "video" else IMAGE_EXT
    if not url:
        return default
    m = URL_EXT_RE.search(urlparse(url).path)
    return m.group(1).lower() if m else default


def safe_label(label: str) -> str:
    return UNSAFE_CHARS_RE.sub("_", label or "Unknown")[:MAX_LABEL_CHARS]


def media_filename(record: EventRecord, url: str, kind: str, folder: str = DEFAULT_FOLDER) -> str:
    return f"{folder}/{record.card_index:03d}_{safe_label(record.label)}.{resolve_extension(url, kind)}"


def build_media_items(records: Sequence[EventRecord], folder: str = DEFAULT_FOLDER) -> List[MediaItem]:
    items: List[MediaItem] = []
    for r in records:
        if r.image_ref:
            items.append(MediaItem(media_filename(r, r.image_ref, "image", folder), r.image_ref, "image", r.label, r.card_index))
        if r.video_resolved:
            items.append(MediaItem(media_filename(r, r.video_ref, "video", folder), r.video_ref, "video", r.label, r.card_index))
    return items


def build_captured_video_items(
    resources: Sequence[VideoResource], stamp: str, folder: str = DEFAULT_FOLDER
) -> List[MediaItem]:
    """Pooled videos that no card claimed."""
    return [
        MediaItem(
            filename=f"{folder}/captured_video_{n}_{stamp}.mp4",
            source_url=res.url,
            kind="video",
            label=f"Captured video {n} ({video_kind(res.url)})",
        )
        for n, res in enumerate((r for r in resources if not r.already_assigned), start=1)
    ]


class FileSink(Protocol):
    def save_bytes(self, path: str, data: bytes) -> None: ...

    def save_url(self, path: str, url: str) -> None: ...


class DirectorySink:
    """Writes under `root`; URLs are downloaded with the Fetcher."""

    def __init__(self, root: str, fetcher: Optional[Fetcher] = None) -> None:
        self.root = root
        self.fetcher = fetcher

    def _target(self, path: str) -> str:
        target = os.path.join(self.root, path)
        os.makedirs(os.path.dirname(target) or ".", exist_ok=True)
        return target

    def save_bytes(self, path: str, data: bytes) -> None:
        with open(self._target(path), "wb") as f:
            f.write(data)

    def save_url(self, path: str, url: str) -> None:
        if self.fetcher is None:
            raise ExportError(f"{DOWNLOAD_FAILED}: downloads disabled ({url})")
        if not is_http_url(url):
            raise ExportError(f"{DOWNLOAD_FAILED}: unsupported URL {url}")
        try:
            res = self.fetcher.get_bytes(url)
        except httpx.HTTPError as e:
            raise ExportError(f"{DOWNLOAD_FAILED}: {url}: {e}") from e
        if res.status_code >= 400:
            raise ExportError(f"{DOWNLOAD_FAILED}: {url} -> HTTP {res.status_code}")
        self.save_bytes(path, res.content)


@dataclass
class ExportResult:
    path: str
    ok: bool
    error: str = ""


def _save(sink: FileSink, path: str, *, data: Optional[bytes] = None, url: Optional[str] = None) -> ExportResult:
    try:
        if url is not None:
            sink.save_url(path, url)
        else:
            sink.save_bytes(path, data or b"")
    except (ExportError, OSError) as e:
        log.warning("Save failed for %s: %s", path, e)
        return ExportResult(path, False, str(e))
    log.debug("Saved %s", path)
    return ExportResult(path, True)


def export_package(
    records: Sequence[EventRecord],
    resources: Sequence[VideoResource],
    sink: FileSink,
    *,
    folder: str = DEFAULT_FOLDER,
    stamp: Optional[str] = None,
    now: Optional[datetime] = None,
    download_assets: bool = True,
    schedule_csv: bool = True,
) -> List[ExportResult]:
    now = now or datetime.now()
    stamp = stamp or now.strftime("%Y%m%d_%H%M%S")

    media = build_media_items(records, folder) + build_captured_video_items(resources, stamp, folder)
    results = [
        _save(sink, f"{folder}/index_{stamp}.html", data=render_gallery(media, now).encode("utf-8")),
        _save(sink, f"{folder}/data_{stamp}.csv", data=render_csv(records).encode("utf-8")),
    ]

    if schedule_csv:
        for platform, group in group_by_platform(records).items():
            name = UNSAFE_CHARS_RE.sub("_", platform)
            results.append(
                _save(sink, f"{folder}/schedule_{name}_{stamp}.csv", data=render_schedule_csv(group, now).encode("utf-8"))
            )

    if download_assets:
        for item in media:
            results.append(_save(sink, item.filename, url=item.source_url))

    failed = sum(1 for r in results if not r.ok)
    log.info("Export finished: %s saved, %s failed", len(results) - failed, failed)
    return results
