from __future__ import annotations

import argparse
import sys
import os
import logging
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from calendar_capture.core.config import CaptureSettings, load_settings
from calendar_capture.core.errors import CAPTURE_FAILED, PageAccessError
from calendar_capture.core.export import DirectorySink
from calendar_capture.core.fetch import Fetcher
from calendar_capture.core.models import EventRecord
from calendar_capture.core.output import write_csv, write_json
from calendar_capture.core.page import PageSession, StaticPage, open_page
from calendar_capture.core.selectors import DAY_COLUMN_SEL
from calendar_capture.session import CaptureSession

console = Console()


def parse_args(argv: List[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Capture events and media from a Blaze content calendar")
    p.add_argument("--config", default="", help="Path to capture.yml")
    p.add_argument("--url", default=None, help="Calendar URL (live mode) or source URL of --html")
    p.add_argument("--html", default="", help="Read a saved page instead of opening a browser")
    p.add_argument("--cdp", default=None, help="Attach to a running browser, e.g. http://localhost:9222")
    p.add_argument("--storage-state", default=None, help="Playwright storage state with a logged-in session")
    p.add_argument("--out", default="out/events.csv", help="CSV output path")
    p.add_argument("--json", default="", help="Optional JSON output path")
    p.add_argument("--log", default="out/capture.log", help="Log output path")
    p.add_argument("--no-download", action="store_true", help="Skip downloading images and videos")
    p.add_argument("--no-export", action="store_true", help="Only write --out/--json, no media package")
    p.add_argument("--video-passes", type=int, default=None, help="Number of video discovery passes")
    p.add_argument("--details", action="store_true", help="Open unresolved video cards to read their video")
    return p.parse_args(argv)


def setup_logging(log_path: str) -> logging.Logger:
    os.makedirs(os.path.dirname(log_path) or ".", exist_ok=True)
    logger = logging.getLogger("calendar_capture")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()

    fmt = logging.Formatter("%(asctime)s %(levelname)s %(message)s")

    # stdout
    sh = logging.StreamHandler(sys.stdout)
    sh.setFormatter(fmt)
    logger.addHandler(sh)

    # file
    fh = logging.FileHandler(log_path, encoding="utf-8")
    fh.setFormatter(fmt)
    logger.addHandler(fh)

    return logger


def render_preview(records: List[EventRecord], limit: int = 20) -> None:
    t = Table(title=f"Preview (first {min(limit, len(records))} of {len(records)})")
    t.add_column("#")
    t.add_column("label")
    t.add_column("platforms")
    t.add_column("date")
    t.add_column("time")
    t.add_column("video")
    for r in records[:limit]:
        video = ""
        if r.has_video:
            video = "resolved" if r.video_resolved else "unresolved"
        t.add_row(str(r.card_index), r.label, ", ".join(r.platforms), r.date, r.timestamp, video)
    console.print(t)


def settings_from_args(args: argparse.Namespace) -> CaptureSettings:
    settings = load_settings(args.config)
    return settings.merged(
        calendar_url=args.url,
        cdp_endpoint=args.cdp,
        storage_state=args.storage_state,
        video_passes=args.video_passes,
        download_assets=False if args.no_download else None,
        resolve_details=True if args.details else None,
    )


def run(session: CaptureSession, page: PageSession, log: logging.Logger) -> List[EventRecord]:
    records = session.scan(page)

    settings = session.settings
    for n in range(settings.video_passes):
        if n:
            # Scrolling again mounts players that were virtualized away
            page.scroll_through(DAY_COLUMN_SEL, settings.scroll_pause_ms)
        added = session.scan_videos(page)
        log.info("Video pass %s: %s new", n + 1, len(added))

    session.correlate()
    if settings.resolve_details:
        session.resolve_details(page)
    return records


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    log = setup_logging(args.log)

    try:
        settings = settings_from_args(args)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Bad config:[/red] {e}")
        return 2

    session = CaptureSession(settings)
    try:
        if args.html:
            page = StaticPage.from_file(args.html, url=args.url or "")
            records = run(session, page, log)
        else:
            with open_page(
                settings.calendar_url or None,
                target_host=settings.target_host,
                cdp_endpoint=settings.cdp_endpoint or None,
                storage_state=settings.storage_state or None,
                headless=settings.headless,
            ) as page:
                records = run(session, page, log)
    except PageAccessError as e:
        log.error("%s: %s", CAPTURE_FAILED, e)
        console.print(f"[red]{CAPTURE_FAILED}:[/red] {e}")
        return 2

    write_csv(args.out, records)
    if args.json:
        write_json(args.json, records)

    if not args.no_export:
        fetcher = Fetcher(log=log) if settings.download_assets else None
        try:
            results = session.export(DirectorySink(settings.output_dir, fetcher))
        finally:
            if fetcher is not None:
                fetcher.close()
        failed = [r for r in results if not r.ok]
        for r in failed:
            console.print(f"[yellow]Not saved:[/yellow] {r.path} ({r.error})")
        log.info("Wrote package: %s (%s files)", settings.output_dir, len(results) - len(failed))

    render_preview(records)
    log.info("Wrote CSV: %s", args.out)
    if args.json:
        log.info("Wrote JSON: %s", args.json)
    log.info("Wrote LOG: %s", args.log)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
