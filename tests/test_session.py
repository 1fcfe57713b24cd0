import csv
from datetime import datetime

import pytest
from bs4 import BeautifulSoup

from calendar_capture.cli import main
from calendar_capture.core.config import CaptureSettings, load_settings
from calendar_capture.core.errors import ExportError, PageAccessError
from calendar_capture.core.models import UNRESOLVED_VIDEO
from calendar_capture.core.page import StaticPage
from calendar_capture.core.videos import VideoPool, discover_videos, video_kind
from calendar_capture.session import CaptureSession

PAGE_URL = "https://app.blaze.ai/calendar"


class MemorySink:
    def __init__(self, fail_urls=()):
        self.files = {}
        self.fail_urls = set(fail_urls)

    def save_bytes(self, path, data):
        self.files[path] = data

    def save_url(self, path, url):
        if url in self.fail_urls:
            raise ExportError(f"Download failed: {url}")
        self.files[path] = url.encode("utf-8")


def _video_page(card, week):
    overlay = '<div class="CalendarEventCard_playButtonOverlay__335fa"></div><span data-testid="video-duration">0:30</span>'
    cards = [
        card(label="Clip", body=overlay + '<img src="https://cdn.blaze.ai/img/1.jpg">'),
        card(label="Photo", body='<img src="https://cdn.blaze.ai/img/2.png">'),
    ]
    players = (
        '<video data-current-src="https://cdn.blaze.ai/v/a.mp4" data-duration="31"></video>'
        '<video src="https://cdn.blaze.ai/v/b.mp4" data-duration="300"></video>'
    )
    return week([cards]).replace("</body>", players + "</body>")


def test_pool_dedupes_and_keeps_order():
    pool = VideoPool()
    first = pool.extend([("https://x/1.mp4", None), ("https://x/2.mp4", 12.0), ("https://x/1.mp4", 5.0)])
    again = pool.extend([("https://x/2.mp4", None), ("https://x/3.mp4", None)])
    assert [r.capture_order for r in first] == [1, 2]
    assert [r.url for r in again] == ["https://x/3.mp4"]
    assert [r.capture_order for r in pool] == [1, 2, 3]
    assert pool.resources[0].duration_seconds == 5.0
    assert len(pool.unassigned()) == 3


def test_pool_reset_assignments_keeps_order():
    pool = VideoPool()
    pool.extend([("https://x/1.mp4", None), ("https://x/2.mp4", None)])
    for r in pool:
        r.already_assigned = True
    assert pool.unassigned() == []
    pool.reset_assignments()
    assert [(r.url, r.capture_order) for r in pool.unassigned()] == [("https://x/1.mp4", 1), ("https://x/2.mp4", 2)]


def test_discover_videos():
    html = (
        "<html><body>"
        '<video src="/v/1.mp4" data-duration="12.5"></video>'
        '<video><source src="/v/2.webm"></video>'
        '<iframe src="https://www.youtube.com/embed/abc"></iframe>'
        '<iframe src="https://ads.example.com/frame"></iframe>'
        '<a href="/files/clip.mov">clip</a>'
        '<a href="/v/1.mp4">again</a>'
        "</body></html>"
    )
    found = discover_videos(BeautifulSoup(html, "lxml"), PAGE_URL)
    assert found == [
        ("https://app.blaze.ai/v/1.mp4", 12.5),
        ("https://app.blaze.ai/v/2.webm", None),
        ("https://www.youtube.com/embed/abc", None),
        ("https://app.blaze.ai/files/clip.mov", None),
    ]


def test_video_kind():
    assert video_kind("https://youtu.be/abc") == "YouTube"
    assert video_kind("https://cdn.blaze.ai/v/a.webm") == "WebM"
    assert video_kind("blob:https://app.blaze.ai/123") == "Video"


def test_scan_rejects_other_sites(card, week):
    session = CaptureSession()
    session.records = ["previous"]
    page = StaticPage(week([[card()]]), url="https://example.com/calendar")
    with pytest.raises(PageAccessError):
        session.scan(page)
    assert session.records == ["previous"]


def test_scan_correlate_export(card, week):
    session = CaptureSession()
    page = StaticPage(_video_page(card, week), url=PAGE_URL)

    records = session.scan(page)
    assert [r.label for r in records] == ["Clip", "Photo"]
    assert records[0].video_ref == UNRESOLVED_VIDEO

    added = session.scan_videos(page)
    assert [r.url for r in added] == ["https://cdn.blaze.ai/v/a.mp4", "https://cdn.blaze.ai/v/b.mp4"]
    assert session.scan_videos(page) == []

    assert session.correlate() == 1
    assert records[0].video_ref == "https://cdn.blaze.ai/v/a.mp4"

    sink = MemorySink(fail_urls={"https://cdn.blaze.ai/img/1.jpg"})
    results = session.export(sink, stamp="S", now=datetime(2025, 10, 30, 8, 0, 0))
    failed = [r for r in results if not r.ok]

    assert [r.path for r in failed] == ["BlazeMedia/001_Clip.jpg"]
    assert "BlazeMedia/index_S.html" in sink.files
    assert "BlazeMedia/data_S.csv" in sink.files
    assert "BlazeMedia/schedule_Unknown_S.csv" in sink.files
    assert "BlazeMedia/001_Clip.mp4" in sink.files
    assert "BlazeMedia/002_Photo.png" in sink.files
    assert "BlazeMedia/captured_video_1_S.mp4" in sink.files


def test_rescan_frees_pooled_videos(card, week):
    session = CaptureSession()
    page = StaticPage(_video_page(card, week), url=PAGE_URL)

    for _ in range(2):
        records = session.scan(page)
        session.scan_videos(page)
        assert session.correlate() == 1

    assert records[0].video_ref == "https://cdn.blaze.ai/v/a.mp4"
    assert [r.url for r in session.pool.unassigned()] == ["https://cdn.blaze.ai/v/b.mp4"]

    sink = MemorySink()
    session.export(sink, stamp="S")
    assert sink.files["BlazeMedia/001_Clip.mp4"] == b"https://cdn.blaze.ai/v/a.mp4"
    assert sink.files["BlazeMedia/captured_video_1_S.mp4"] == b"https://cdn.blaze.ai/v/b.mp4"
    assert "BlazeMedia/captured_video_2_S.mp4" not in sink.files


def test_export_without_downloads(card, week):
    session = CaptureSession(CaptureSettings(download_assets=False, schedule_csv=False, folder_name="Media"))
    session.scan(StaticPage(_video_page(card, week), url=PAGE_URL))
    sink = MemorySink()
    results = session.export(sink, stamp="S")
    assert [r.path for r in results] == ["Media/index_S.html", "Media/data_S.csv"]


def test_load_settings(tmp_path):
    path = tmp_path / "capture.yml"
    path.write_text("scroll_pause_ms: 0\nvideo_passes: 3\n", encoding="utf-8")
    settings = load_settings(str(path))
    assert settings.scroll_pause_ms == 0
    assert settings.video_passes == 3
    assert settings.target_host == "blaze.ai"
    assert settings.merged(video_passes=None, cdp_endpoint="http://localhost:9222").cdp_endpoint == "http://localhost:9222"


def test_load_settings_errors(tmp_path):
    bad = tmp_path / "bad.yml"
    bad.write_text("scrol_pause: 1\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_settings(str(bad))
    with pytest.raises(FileNotFoundError):
        load_settings(str(tmp_path / "missing.yml"))
    assert load_settings(None) == CaptureSettings()


def test_cli_offline_run(tmp_path, card, week):
    snapshot = tmp_path / "calendar.html"
    snapshot.write_text(f"<!-- URL: {PAGE_URL} -->\n" + _video_page(card, week), encoding="utf-8")
    config = tmp_path / "capture.yml"
    config.write_text(f"output_dir: {tmp_path / 'pkg'}\nscroll_pause_ms: 0\nexpand_pause_ms: 0\n", encoding="utf-8")
    out = tmp_path / "events.csv"

    code = main([
        "--config", str(config),
        "--html", str(snapshot),
        "--out", str(out),
        "--log", str(tmp_path / "capture.log"),
        "--no-download",
    ])

    assert code == 0
    with open(out, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert [r["Label"] for r in rows] == ["Clip", "Photo"]
    assert rows[0]["Video URL"] == "https://cdn.blaze.ai/v/a.mp4"
    assert list((tmp_path / "pkg" / "BlazeMedia").glob("index_*.html"))


def test_cli_wrong_site_exits_2(tmp_path, card, week):
    snapshot = tmp_path / "page.html"
    snapshot.write_text(week([[card()]]), encoding="utf-8")
    code = main([
        "--html", str(snapshot),
        "--url", "https://example.com/",
        "--out", str(tmp_path / "events.csv"),
        "--log", str(tmp_path / "capture.log"),
    ])
    assert code == 2
    assert not (tmp_path / "events.csv").exists()
