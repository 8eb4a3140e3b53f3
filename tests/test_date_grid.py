import datetime as dt

import pytest

from gantt_timeline.date_grid import (
    add_months,
    date_to_x,
    days_between,
    enumerate_days,
    enumerate_months,
    enumerate_weeks,
    format_date_short,
    month_year_label,
    x_to_date,
)

START = dt.date(2024, 7, 1)


def test_milestone_offset_matches_reference_chart():
    assert date_to_x(dt.date(2024, 7, 22), START, 3) == 63


def test_range_width_matches_reference_chart():
    x0 = date_to_x(dt.date(2025, 3, 1), START, 3)
    x1 = date_to_x(dt.date(2025, 4, 16), START, 3)
    assert x1 - x0 == 138


@pytest.mark.parametrize("ppd", [0.25, 1, 3, 7.5, 80])
def test_mapping_is_linear_in_days(ppd):
    dates = [dt.date(2023, 12, 30), START, dt.date(2024, 10, 27), dt.date(2025, 3, 30), dt.date(2026, 1, 1)]
    for d1 in dates:
        for d2 in dates:
            if d1 > d2:
                continue
            assert date_to_x(d2, START, ppd) - date_to_x(d1, START, ppd) == pytest.approx(days_between(d1, d2) * ppd)


@pytest.mark.parametrize("ppd", [0.25, 1, 3, 7.5, 80])
def test_x_to_date_round_trips_whole_days(ppd):
    for offset in range(-40, 600, 7):
        day = START + dt.timedelta(days=offset)
        assert x_to_date(date_to_x(day, START, ppd), START, ppd) == day


def test_x_to_date_rounds_to_nearest_day():
    assert x_to_date(4, START, 3) == dt.date(2024, 7, 2)
    assert x_to_date(5, START, 3) == dt.date(2024, 7, 3)
    assert x_to_date(-4.5, START, 3) == dt.date(2024, 6, 29)


def test_days_between_ignores_dst_transitions():
    # Europe/US spring-forward and fall-back weekends.
    assert days_between(dt.date(2024, 3, 9), dt.date(2024, 3, 11)) == 2
    assert days_between(dt.date(2024, 10, 26), dt.date(2024, 10, 28)) == 2
    assert days_between(dt.date(2024, 10, 28), dt.date(2024, 10, 26)) == -2


def test_enumerate_months_covers_partial_boundary_months():
    months = enumerate_months(dt.date(2024, 7, 15), dt.date(2025, 2, 3))

    assert months[0] == dt.date(2024, 7, 1)
    assert months[-1] == dt.date(2025, 2, 1)
    assert len(months) == 8
    for prev, nxt in zip(months, months[1:]):
        assert (nxt.year * 12 + nxt.month) - (prev.year * 12 + prev.month) == 1
        assert nxt.day == 1


def test_enumerate_months_single_month():
    assert enumerate_months(dt.date(2024, 2, 10), dt.date(2024, 2, 20)) == [dt.date(2024, 2, 1)]


def test_enumerate_weeks_backs_up_to_monday():
    weeks = enumerate_weeks(dt.date(2024, 7, 3), dt.date(2024, 7, 29))

    assert weeks[0] == dt.date(2024, 7, 1)
    assert weeks[0] <= dt.date(2024, 7, 3)
    assert all(week.weekday() == 0 for week in weeks)
    assert weeks == [dt.date(2024, 7, d) for d in (1, 8, 15, 22, 29)]


def test_enumerate_days_is_inclusive():
    assert enumerate_days(dt.date(2024, 2, 27), dt.date(2024, 3, 1)) == [
        dt.date(2024, 2, 27),
        dt.date(2024, 2, 28),
        dt.date(2024, 2, 29),
        dt.date(2024, 3, 1),
    ]


def test_enumerations_are_deterministic():
    args = (dt.date(2024, 11, 13), dt.date(2025, 1, 9))
    assert enumerate_weeks(*args) == enumerate_weeks(*args)
    assert enumerate_months(*args) == enumerate_months(*args)


def test_add_months_rolls_over_year():
    assert add_months(dt.date(2024, 11, 15), 2) == dt.date(2025, 1, 1)
    assert add_months(dt.date(2024, 1, 31), -1) == dt.date(2023, 12, 1)


def test_date_labels():
    assert format_date_short(dt.date(2024, 7, 22)) == "24/7/22"
    assert format_date_short(dt.date(2005, 1, 3)) == "05/1/3"
    assert month_year_label(dt.date(2024, 7, 1)) == "2024 Jul"
