from __future__ import annotations

import csv
import html
import io
import json
import os
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from .models import CSV_COLUMNS, EventRecord, MediaItem
from .normalize import to_schedule_time

UNKNOWN_PLATFORM = "Unknown"

SCHEDULE_COLUMNS = [
    "postAtSpecificTime (YYYY-MM-DD HH:mm:ss)",
    "content",
    "link (OGmetaUrl)",
    "imageUrls",
    "gifUrl",
    "videoUrls",
]


def _render(fieldnames: List[str], rows: List[Dict]) -> str:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=fieldnames, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow(row)
    return buf.getvalue()


def render_csv(records: Sequence[EventRecord]) -> str:
    return _render(CSV_COLUMNS, [r.to_row() for r in records])


def write_csv(path: str, records: Sequence[EventRecord]) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", newline="", encoding="utf-8") as f:
        f.write(render_csv(records))


def write_json(path: str, records: Sequence[EventRecord]) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump([r.to_json() for r in records], f, ensure_ascii=False, indent=2)


def group_by_platform(records: Sequence[EventRecord]) -> Dict[str, List[EventRecord]]:
    """Records keyed by platform in first-seen order. A multi-platform record lands in each group."""
    groups: Dict[str, List[EventRecord]] = {}
    for r in records:
        for platform in r.platforms or [UNKNOWN_PLATFORM]:
            groups.setdefault(platform, []).append(r)
    return groups


def schedule_row(record: EventRecord, now: Optional[datetime] = None) -> Dict[str, str]:
    return {
        SCHEDULE_COLUMNS[0]: to_schedule_time(record.timestamp, record.date, now),
        "content": record.description,
        "link (OGmetaUrl)": record.event_url or "",
        "imageUrls": record.image_ref or "",
        "gifUrl": "",
        "videoUrls": record.video_ref if record.video_resolved else "",
    }


def render_schedule_csv(records: Sequence[EventRecord], now: Optional[datetime] = None) -> str:
    return _render(SCHEDULE_COLUMNS, [schedule_row(r, now) for r in records])


_GALLERY_STYLE = """
body { font-family: -apple-system, "Segoe UI", Roboto, sans-serif; margin: 0; padding: 20px; background: #f5f5f5; }
.header { text-align: center; margin-bottom: 24px; }
.stats { display: flex; justify-content: center; gap: 24px; margin-bottom: 24px; }
.stat { background: white; padding: 12px 20px; border-radius: 8px; text-align: center; }
.media-grid { display: grid; grid-template-columns: repeat(auto-fill, minmax(280px, 1fr)); gap: 16px; }
.media-item { background: white; border-radius: 8px; overflow: hidden; }
.media-item img, .media-item video { width: 100%; height: 200px; object-fit: cover; }
.media-info { padding: 10px; }
.media-meta, .filename { color: #666; font-size: 12px; word-break: break-all; }
"""


def _media_element(item: MediaItem, filename: str) -> str:
    src = html.escape(filename, quote=True)
    if item.kind == "video":
        return f'<video controls preload="metadata" src="{src}"></video>'
    alt = html.escape(item.label, quote=True)
    return f'<img src="{src}" alt="{alt}" loading="lazy">'


def render_gallery(items: Sequence[MediaItem], generated_at: Optional[datetime] = None) -> str:
    """Standalone HTML index of saved media. Paths are relative to the index file."""
    generated_at = generated_at or datetime.now()
    images = sum(1 for i in items if i.kind == "image")
    videos = sum(1 for i in items if i.kind == "video")

    parts = [
        "<!DOCTYPE html>",
        '<html lang="en">',
        "<head>",
        '<meta charset="utf-8">',
        f"<title>Blaze Media Collection - {generated_at:%Y-%m-%d}</title>",
        f"<style>{_GALLERY_STYLE}</style>",
        "</head>",
        "<body>",
        '<div class="header">',
        "<h1>Blaze Media Collection</h1>",
        f"<p>Generated on {generated_at:%Y-%m-%d %H:%M:%S}</p>",
        "</div>",
        '<div class="stats">',
        f'<div class="stat"><strong>{len(items)}</strong><div>Total Files</div></div>',
        f'<div class="stat"><strong>{images}</strong><div>Images</div></div>',
        f'<div class="stat"><strong>{videos}</strong><div>Videos</div></div>',
        "</div>",
        '<div class="media-grid">',
    ]
    for n, item in enumerate(items, start=1):
        filename = item.filename.rsplit("/", 1)[-1]
        parts.extend([
            '<div class="media-item">',
            _media_element(item, filename),
            '<div class="media-info">',
            f'<div class="media-label">{html.escape(item.label)}</div>',
            f'<div class="media-meta">#{n:03d} &middot; {item.kind}</div>',
            f'<div class="filename">{html.escape(filename)}</div>',
            "</div>",
            "</div>",
        ])
    parts.extend(["</div>", "</body>", "</html>", ""])
    return "\n".join(parts)
