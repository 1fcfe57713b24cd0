"""
Capture session: owns the records and the video pool for one run and
serializes every pass against the page.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import List, Optional

from calendar_capture.core.config import CaptureSettings
from calendar_capture.core.correlate import correlate_videos
from calendar_capture.core.details import resolve_details as resolve_card_details
from calendar_capture.core.errors import NO_EVENTS_FOUND, capture_success, video_connection_success
from calendar_capture.core.export import ExportResult, FileSink, export_package
from calendar_capture.core.extract import scan_events
from calendar_capture.core.models import EventRecord, VideoResource
from calendar_capture.core.page import PageSession, ensure_target_site
from calendar_capture.core.videos import VideoPool, discover_videos

log = logging.getLogger(__name__)


class CaptureSession:
    def __init__(self, settings: Optional[CaptureSettings] = None) -> None:
        self.settings = settings or CaptureSettings()
        self.records: List[EventRecord] = []
        self.pool = VideoPool()
        self._lock = threading.Lock()

    def scan(self, page: PageSession) -> List[EventRecord]:
        """
        Run one capture pass and replace `records` with its result.

        Raises PageAccessError when the page is not on the target site or
        cannot be scripted; `records` is left untouched in that case.
        """
        with self._lock:
            ensure_target_site(page.url, self.settings.target_host)
            records = list(
                scan_events(
                    page,
                    scroll_pause_ms=self.settings.scroll_pause_ms,
                    expand_pause_ms=self.settings.expand_pause_ms,
                )
            )
            self.records = records
            # Fresh records start unresolved, so earlier matches no longer hold
            self.pool.reset_assignments()

        if records:
            log.info(capture_success(len(records)))
        else:
            log.warning(NO_EVENTS_FOUND)
        return records

    def scan_videos(self, page: PageSession) -> List[VideoResource]:
        with self._lock:
            ensure_target_site(page.url, self.settings.target_host)
            return self.pool.extend(discover_videos(page.soup(), page.url))

    def correlate(self) -> int:
        with self._lock:
            count = correlate_videos(self.records, self.pool.resources, self.settings.duration_tolerance_s)
        if count:
            log.info(video_connection_success(count))
        return count

    def resolve_details(self, page: PageSession) -> int:
        """Read videos of still unresolved cards from their detail views on the live page."""
        with self._lock:
            ensure_target_site(page.url, self.settings.target_host)
            return resolve_card_details(
                page,
                self.records,
                open_pause_ms=self.settings.detail_pause_ms,
                close_pause_ms=self.settings.expand_pause_ms,
            )

    def export(self, sink: FileSink, stamp: Optional[str] = None, now: Optional[datetime] = None) -> List[ExportResult]:
        with self._lock:
            return export_package(
                self.records,
                self.pool.resources,
                sink,
                folder=self.settings.folder_name,
                stamp=stamp,
                now=now,
                download_assets=self.settings.download_assets,
                schedule_csv=self.settings.schedule_csv,
            )
