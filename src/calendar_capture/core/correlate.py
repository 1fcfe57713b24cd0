"""
Video correlation: attach captured video resources to video cards whose
source could not be read from the card itself.

Greedy and single pass, in record order. Duration proximity wins when both
sides have a duration; otherwise position among video cards decides. A record
that finds no eligible resource keeps its unresolved placeholder.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from calendar_capture.core.models import UNRESOLVED_VIDEO, EventRecord, VideoResource
from calendar_capture.core.normalize import format_duration, parse_duration

log = logging.getLogger(__name__)

DEFAULT_TOLERANCE_S = 3.0


def needs_video(record: EventRecord) -> bool:
    return record.has_video and (not record.video_ref or record.video_ref == UNRESOLVED_VIDEO)


def _closest_by_duration(
    duration: int, candidates: Iterable[VideoResource], tolerance_s: float
) -> Optional[VideoResource]:
    timed = [
        r for r in candidates
        if r.duration_seconds is not None and abs(r.duration_seconds - duration) <= tolerance_s
    ]
    if not timed:
        return None
    # min() keeps the first of equal distances, so ties go to capture order
    return min(timed, key=lambda r: abs(r.duration_seconds - duration))


def _closest_by_position(
    position: int, candidates: Iterable[VideoResource], after: int
) -> Optional[VideoResource]:
    following = [r for r in candidates if r.capture_order > after]
    if not following:
        return None
    # Prefer orders at or after the position, nearest first
    return min(
        following,
        key=lambda r: (r.capture_order < position, abs(r.capture_order - position), r.capture_order),
    )


def assign(record: EventRecord, resource: VideoResource) -> None:
    record.video_ref = resource.url
    if not record.video_duration and resource.duration_seconds:
        record.video_duration = format_duration(resource.duration_seconds)
    resource.already_assigned = True


def correlate_videos(
    records: Sequence[EventRecord],
    resources: Sequence[VideoResource],
    tolerance_s: float = DEFAULT_TOLERANCE_S,
) -> int:
    """Assign resources to unresolved video records in place. Returns the number of assignments."""
    assigned = 0
    last_positional = 0
    video_position = 0

    for record in records:
        if not record.has_video:
            continue
        video_position += 1
        if not needs_video(record):
            continue

        pool: List[VideoResource] = [r for r in resources if not r.already_assigned]
        if not pool:
            log.debug("Video pool exhausted at card %s", record.card_index)
            break

        duration = parse_duration(record.video_duration)
        match = None
        if duration is not None:
            match = _closest_by_duration(duration, pool, tolerance_s)
            if match is None:
                # Only resources with no duration can still be placed by position
                pool = [r for r in pool if r.duration_seconds is None]

        if match is None:
            match = _closest_by_position(video_position, pool, last_positional)
            if match is not None:
                last_positional = match.capture_order

        if match is None:
            log.debug("No video for card %s (%s)", record.card_index, record.label)
            continue

        assign(record, match)
        assigned += 1
        log.debug("Card %s <- video %s", record.card_index, match.capture_order)

    log.info("Correlated %s videos", assigned)
    return assigned
