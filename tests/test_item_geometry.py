import datetime as dt
import logging

import pytest

from gantt_timeline.item_geometry import (
    SIDEBAR_WIDTH,
    BarGeometry,
    PointGeometry,
    chart_width,
    item_geometry,
    layout_items,
    layout_rows,
)
from gantt_timeline.timeline_models import TimelineData, TimelineItem, TimelineRow, ViewConfig
from gantt_timeline.validation import TimelineDataError

START = dt.date(2024, 7, 1)


def _timeline(items):
    return TimelineData(
        title="Plan",
        start_date=START,
        end_date=dt.date(2025, 12, 31),
        rows=(TimelineRow(id="ms", label="Milestones", height=120), TimelineRow(id="samples", label="Samples")),
        items=tuple(items),
    )


def test_milestone_is_a_point_centered_on_its_row():
    item = TimelineItem(id="m1", row_id="ms", label="Nomination", date=dt.date(2024, 7, 22))

    geometry = item_geometry(item, START, 3, row_center=60)

    assert isinstance(geometry, PointGeometry)
    assert geometry.x == 63
    assert geometry.y == 60
    assert geometry.date_label == "24/7/22"
    assert not geometry.has_critical_marker


def test_critical_flag_has_no_geometric_effect():
    plain = TimelineItem(id="m6", row_id="ms", label="PPAP", date=dt.date(2025, 10, 27))
    critical = TimelineItem(id="m6", row_id="ms", label="PPAP", date=dt.date(2025, 10, 27), is_critical=True)

    a = item_geometry(plain, START, 3)
    b = item_geometry(critical, START, 3)

    assert b.has_critical_marker
    assert (a.x, a.y) == (b.x, b.y)


def test_task_kind_ignores_end_date():
    item = TimelineItem(
        id="t", row_id="ms", label="T", date=dt.date(2024, 7, 2), end_date=dt.date(2024, 6, 1), kind="task"
    )
    geometry = item_geometry(item, START, 3)
    assert isinstance(geometry, PointGeometry)
    assert geometry.x == 3


def test_range_is_a_bar_with_edge_labels():
    item = TimelineItem(
        id="s3",
        row_id="samples",
        label="B build",
        date=dt.date(2025, 3, 1),
        end_date=dt.date(2025, 4, 16),
        kind="range",
    )

    geometry = item_geometry(item, START, 3)

    assert isinstance(geometry, BarGeometry)
    assert geometry.width == 138
    assert geometry.x_end == geometry.x + 138
    assert geometry.start_label == "25/3/1"
    assert geometry.end_label == "25/4/16"


def test_reversed_range_is_a_data_error():
    item = TimelineItem(
        id="bad", row_id="samples", label="Bad", date=dt.date(2025, 3, 1), end_date=dt.date(2025, 2, 1), kind="range"
    )
    with pytest.raises(TimelineDataError):
        item_geometry(item, START, 3)


def test_layout_items_skips_broken_elements(caplog):
    good = TimelineItem(id="m1", row_id="ms", label="A", date=dt.date(2024, 7, 22))
    reversed_range = TimelineItem(
        id="bad", row_id="samples", label="Bad", date=dt.date(2025, 3, 1), end_date=dt.date(2025, 2, 1), kind="range"
    )
    orphan = TimelineItem(id="orphan", row_id="nowhere", label="?", date=dt.date(2024, 8, 1))
    data = _timeline([good, reversed_range, orphan])

    with caplog.at_level(logging.WARNING):
        geometries = layout_items(data, ViewConfig(pixels_per_day=3))

    assert [g.item_id for g in geometries] == ["m1"]
    assert geometries[0].y == 60
    assert "bad" in caplog.text
    assert "orphan" in caplog.text


def test_rows_stack_in_order_with_extra_space():
    rows = _timeline([]).rows

    layouts = layout_rows(rows, top=80, extra_below={"ms": 150})

    assert layouts["ms"].top == 80
    assert layouts["ms"].center == 140
    assert layouts["samples"].top == 80 + 120 + 150
    assert layouts["samples"].bottom == 80 + 120 + 150 + 100


def test_viewport_resize_only_changes_derived_width():
    data = _timeline([TimelineItem(id="m1", row_id="ms", label="A", date=dt.date(2024, 7, 22))])
    view = ViewConfig(pixels_per_day=3)

    assert chart_width(data, view) == 548 * 3 + SIDEBAR_WIDTH
    assert chart_width(data, view, viewport_width=2500) == 2500
    assert chart_width(data, view.zoomed(2)) == 548 * 6 + SIDEBAR_WIDTH
    assert data.items[0].date == dt.date(2024, 7, 22)


def test_zoom_is_clamped():
    view = ViewConfig(pixels_per_day=3)
    assert view.zoomed(1000).pixels_per_day == 80.0
    assert view.zoomed(0.0001).pixels_per_day == 0.25
    with pytest.raises(ValueError):
        ViewConfig(pixels_per_day=0)
