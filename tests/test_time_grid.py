import datetime as dt

import pytest

from gantt_timeline.date_grid import date_to_x, days_between
from gantt_timeline.time_grid import build_gridlines, build_header_bands, build_time_grid, current_time_line
from gantt_timeline.timeline_models import ViewConfig

START = dt.date(2024, 7, 1)
END = dt.date(2025, 12, 31)


def _view(*granularities, ppd=3.0):
    return ViewConfig(pixels_per_day=ppd, granularities=frozenset(granularities))


def test_every_band_tiles_the_full_chart_width():
    view = _view("year", "month", "week", "day")
    expected = days_between(START, END) * 3

    bands = build_header_bands(START, END, view)

    assert [band.granularity for band in bands] == ["year", "month", "week", "day"]
    for band in bands:
        assert band.width == pytest.approx(expected)
        assert band.segments[0].x == 0
        for prev, nxt in zip(band.segments, band.segments[1:]):
            assert prev.x + prev.width == pytest.approx(nxt.x)
            assert prev.end == nxt.start


def test_year_band_groups_months_by_calendar_year():
    year_band, month_band = build_header_bands(START, END, _view("year", "month"))

    assert [s.label for s in year_band.segments] == ["2024", "2025"]
    assert year_band.segments[0].width == 184 * 3
    assert year_band.segments[1].width == 364 * 3
    assert len(month_band.segments) == 18
    assert month_band.segments[0].label == "Jul"
    assert month_band.segments[-1].width == 30 * 3  # window end is exclusive


def test_week_band_clips_first_partial_week():
    start = dt.date(2024, 7, 3)
    (week_band,) = build_header_bands(start, dt.date(2024, 8, 1), _view("week", ppd=10))

    first = week_band.segments[0]
    assert first.start == start
    assert first.x == 0
    assert first.width == 5 * 10
    assert week_band.segments[1].start.weekday() == 0


def test_numeric_labels_hidden_when_zoomed_out():
    (day_band,) = build_header_bands(START, dt.date(2024, 8, 1), _view("day", ppd=3))
    assert day_band.segments
    assert not any(s.show_label for s in day_band.segments)

    (day_band,) = build_header_bands(START, dt.date(2024, 8, 1), _view("day", ppd=20))
    assert all(s.show_label for s in day_band.segments)

    (month_band,) = build_header_bands(START, END, _view("month", ppd=0.5))
    assert all(s.show_label for s in month_band.segments)


def test_month_baseline_drawn_even_when_only_year_is_visible():
    lines = build_gridlines(START, END, _view("year"))

    assert lines
    assert all(line.granularity == "month" and line.date.day == 1 for line in lines)
    assert all(line.is_baseline for line in lines)


def test_week_lines_add_to_month_baseline():
    lines = build_gridlines(START, dt.date(2024, 9, 30), _view("week"))
    by_date = {line.date: line.granularity for line in lines}

    assert by_date[dt.date(2024, 8, 1)] == "month"
    assert by_date[dt.date(2024, 7, 8)] == "week"
    assert dt.date(2024, 7, 2) not in by_date


def test_day_visibility_keeps_week_lines_and_coarsest_on_ties():
    lines = build_gridlines(START, dt.date(2024, 9, 30), _view("day", "month"))
    by_date = {line.date: line.granularity for line in lines}

    assert by_date[dt.date(2024, 7, 2)] == "day"
    assert by_date[dt.date(2024, 7, 8)] == "week"
    assert by_date[dt.date(2024, 8, 1)] == "month"
    assert by_date[dt.date(2024, 9, 1)] == "month"
    assert len({line.x for line in lines}) == len(lines)
    assert [line.x for line in lines] == sorted(line.x for line in lines)


def test_current_time_line_is_independent_of_granularity():
    today = dt.date(2025, 2, 24)

    for view in (_view(), _view("day"), _view("year", "month")):
        line = current_time_line(START, END, view, today)
        assert line.x == 714
        assert line.in_range

    outside = current_time_line(START, END, _view(), dt.date(2026, 3, 1))
    assert not outside.in_range
    assert outside.x == date_to_x(dt.date(2026, 3, 1), START, 3)


def test_build_time_grid_bundles_everything():
    grid = build_time_grid(START, END, _view("year", "month"), today=dt.date(2025, 2, 24))

    assert grid.width == 548 * 3
    assert grid.band("year") is not None
    assert grid.band("day") is None
    assert grid.current_time.x == 714
    assert grid.gridlines


def test_degenerate_window_has_no_segments():
    grid = build_time_grid(START, START, _view("year", "month"), today=START)

    assert grid.width == 0
    assert all(not band.segments for band in grid.bands)
    assert grid.gridlines == ()
