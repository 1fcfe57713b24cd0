from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


@dataclass(frozen=True)
class CaptureSettings:
    target_host: str = "blaze.ai"
    calendar_url: str = ""
    cdp_endpoint: str = ""
    storage_state: str = ""
    headless: bool = True
    scroll_pause_ms: int = 50
    expand_pause_ms: int = 200
    duration_tolerance_s: float = 3.0
    output_dir: str = "out"
    folder_name: str = "BlazeMedia"
    video_passes: int = 1
    download_assets: bool = True
    schedule_csv: bool = True
    resolve_details: bool = False
    detail_pause_ms: int = 2500

    def merged(self, **overrides: Any) -> "CaptureSettings":
        """Copy with every non-None override applied (CLI flags win over the file)."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Missing config file: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_settings(path: Optional[str] = None) -> CaptureSettings:
    if not path:
        return CaptureSettings()

    raw = load_yaml(Path(path))
    if not isinstance(raw, dict):
        raise ValueError(f"{path} must contain a mapping of settings")

    known = {f.name for f in fields(CaptureSettings)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown settings in {path}: {unknown}")

    return CaptureSettings(**{k: v for k, v in raw.items() if v is not None})
