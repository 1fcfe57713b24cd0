from __future__ import annotations

# User-facing messages
TAB_ACCESS_FAILED = "Failed to access the calendar page"
INVALID_SITE = "This tool only works on Blaze calendar pages"
NO_EVENTS_FOUND = "No events found on this page"
CAPTURE_FAILED = "Capture failed"
DOWNLOAD_FAILED = "Download failed"


def capture_success(count: int) -> str:
    return f"Captured {count} events"


def video_connection_success(count: int) -> str:
    return f"Connected {count} videos to their events"


class CaptureError(Exception):
    """Base class for errors raised by calendar_capture."""


class PageAccessError(CaptureError):
    """
    The host page could not be reached or scripted, or it is not the target site.
    This is the only error that aborts a capture pass.
    """


class ExportError(CaptureError):
    """A single file-save request was rejected."""
