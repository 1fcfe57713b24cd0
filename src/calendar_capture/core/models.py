from dataclasses import dataclass, asdict, field
from typing import Optional, List, Dict, Any

# Placeholder for "video present on the card but its source is not resolved yet".
UNRESOLVED_VIDEO = "VIDEO DETECTED"

CSV_COLUMNS = [
    "Index",
    "Label",
    "Platforms",
    "Timestamp",
    "Description",
    "Image URL",
    "Video URL",
    "Event URL",
    "Has Video",
]


@dataclass
class EventRecord:
    """
    One calendar card as seen during a scan.

    Only the video correlator writes to a record after extraction, and only
    `video_ref` / `video_duration` of video cards whose source is unresolved.
    """
    label: str
    platforms: List[str]
    timestamp: str
    date: str
    description: str
    image_ref: Optional[str]
    video_ref: Optional[str]
    has_video: bool
    video_duration: str
    is_new: bool
    card_index: int
    event_url: Optional[str] = None
    raw_markup_classes: str = ""

    @property
    def video_resolved(self) -> bool:
        return bool(self.video_ref) and self.video_ref != UNRESOLVED_VIDEO

    def to_row(self) -> Dict[str, Any]:
        # CSV-friendly
        return {
            "Index": self.card_index,
            "Label": self.label,
            "Platforms": ", ".join(self.platforms),
            "Timestamp": self.timestamp,
            "Description": " ".join(self.description.splitlines()),
            "Image URL": self.image_ref or "",
            "Video URL": self.video_ref if self.video_resolved else "",
            "Event URL": self.event_url or "",
            "Has Video": "Yes" if self.has_video else "No",
        }

    def to_json(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class VideoResource:
    url: str
    capture_order: int
    duration_seconds: Optional[float] = None
    already_assigned: bool = field(default=False)


@dataclass(frozen=True)
class MediaItem:
    """One asset to save: `source_url` is downloaded into `filename`."""
    filename: str
    source_url: str
    kind: str  # "image" | "video"
    label: str
    card_index: Optional[int] = None
