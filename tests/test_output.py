import csv
import io
from datetime import datetime

from calendar_capture.core.export import (
    build_captured_video_items,
    build_media_items,
    media_filename,
    resolve_extension,
)
from calendar_capture.core.models import CSV_COLUMNS, UNRESOLVED_VIDEO, EventRecord, VideoResource
from calendar_capture.core.normalize import parse_duration, to_schedule_time
from calendar_capture.core.output import (
    SCHEDULE_COLUMNS,
    group_by_platform,
    render_csv,
    render_gallery,
    render_schedule_csv,
)


def _rec(index=1, **kw) -> EventRecord:
    base = dict(
        label="Spring launch",
        platforms=["Facebook"],
        timestamp="2:15 PM",
        date="Nov 2 Sun",
        description="Line one\nLine two",
        image_ref="https://cdn.blaze.ai/img/a.png?w=200",
        video_ref=None,
        has_video=False,
        video_duration="",
        is_new=False,
        card_index=index,
    )
    base.update(kw)
    return EventRecord(**base)


def _parse(text: str):
    return list(csv.reader(io.StringIO(text)))


def test_csv_columns_and_values():
    rows = _parse(render_csv([_rec(platforms=["Facebook", "Instagram"])]))
    assert rows[0] == CSV_COLUMNS
    row = dict(zip(rows[0], rows[1]))
    assert row["Index"] == "1"
    assert row["Platforms"] == "Facebook, Instagram"
    assert row["Description"] == "Line one Line two"
    assert row["Has Video"] == "No"


def test_csv_quotes_round_trip():
    label = 'The "big" launch, part 2'
    text = render_csv([_rec(label=label)])
    assert '"The ""big"" launch, part 2"' in text
    assert _parse(text)[1][1] == label


def test_csv_writes_unresolved_video_as_empty():
    rows = _parse(render_csv([_rec(has_video=True, video_ref=UNRESOLVED_VIDEO)]))
    row = dict(zip(rows[0], rows[1]))
    assert row["Video URL"] == ""
    assert row["Has Video"] == "Yes"


def test_group_by_platform():
    a = _rec(1, platforms=["Facebook"])
    b = _rec(2, platforms=["Instagram", "Facebook"])
    c = _rec(3, platforms=[])
    groups = group_by_platform([a, b, c])
    assert list(groups) == ["Facebook", "Instagram", "Unknown"]
    assert groups["Facebook"] == [a, b]
    assert groups["Unknown"] == [c]


def test_schedule_time():
    now = datetime(2025, 10, 30, 8, 0, 0)
    assert to_schedule_time("2:15 PM", "Nov 2 Sun", now) == "2025-11-02 14:15:00"
    assert to_schedule_time("12:05 am", "Nov 2 Sun", now) == "2025-11-02 00:05:00"
    assert to_schedule_time("12:30 PM", "", now) == "2025-10-30 12:30:00"
    assert to_schedule_time("", "Nov 3 Mon", now) == "2025-11-03 08:00:00"


def test_schedule_csv_row():
    now = datetime(2025, 10, 30, 8, 0, 0)
    rows = _parse(render_schedule_csv([_rec(event_url="https://app.blaze.ai/events/1")], now))
    assert rows[0] == SCHEDULE_COLUMNS
    assert rows[1] == [
        "2025-11-02 14:15:00",
        "Line one\nLine two",
        "https://app.blaze.ai/events/1",
        "https://cdn.blaze.ai/img/a.png?w=200",
        "",
        "",
    ]


def test_parse_duration():
    assert parse_duration("0:30") == 30
    assert parse_duration("1:02:03") == 3723
    assert parse_duration("45") == 45
    assert parse_duration("0:00") is None
    assert parse_duration("") is None
    assert parse_duration("soon") is None


def test_extension_resolution():
    assert resolve_extension("https://cdn.blaze.ai/img/a.PNG?w=1", "image") == "png"
    assert resolve_extension("https://cdn.blaze.ai/img/raw", "image") == "jpg"
    assert resolve_extension("https://cdn.blaze.ai/v/stream", "video") == "mp4"
    assert resolve_extension(None, "video") == "mp4"


def test_media_filename_is_deterministic():
    r = _rec(7, label="Black Friday: 50% off everything in store today!")
    name = media_filename(r, r.image_ref, "image")
    assert name == "BlazeMedia/007_Black_Friday__50__off_everythi.png"
    assert media_filename(r, r.image_ref, "image") == name


def test_media_items_per_record():
    with_both = _rec(1, has_video=True, video_ref="https://cdn.blaze.ai/v/1.mp4")
    unresolved = _rec(2, image_ref=None, has_video=True, video_ref=UNRESOLVED_VIDEO)
    items = build_media_items([with_both, unresolved], folder="Out")
    assert [(i.filename, i.kind) for i in items] == [
        ("Out/001_Spring_launch.png", "image"),
        ("Out/001_Spring_launch.mp4", "video"),
    ]


def test_captured_video_items_skip_assigned():
    used = VideoResource("https://cdn.blaze.ai/v/1.mp4", 1, already_assigned=True)
    spare = VideoResource("https://cdn.blaze.ai/v/2.mp4", 2)
    items = build_captured_video_items([used, spare], stamp="20251030_080000")
    assert [i.filename for i in items] == ["BlazeMedia/captured_video_1_20251030_080000.mp4"]
    assert items[0].source_url == spare.url


def test_gallery_escapes_labels():
    items = build_media_items([_rec(1, label="<script>alert(1)</script>")])
    html = render_gallery(items, datetime(2025, 10, 30, 8, 0, 0))
    assert "<script>alert" not in html
    assert "&lt;script&gt;" in html
    assert "001__script_alert_1___script_.png" in html
    assert "<strong>1</strong><div>Images</div>" in html
