from __future__ import annotations

import datetime as dt
from dataclasses import dataclass

from .date_grid import (
    MONTHS,
    add_months,
    date_to_x,
    days_between,
    enumerate_days,
    enumerate_months,
    enumerate_weeks,
)
from .timeline_models import Granularity, ViewConfig

# Header/label tuning knobs.
HEADER_BAND_HEIGHT = 40
LABEL_MIN_PIXELS_PER_DAY: dict[Granularity, float] = {
    "week": 4.0,  # "W52" needs roughly 28px
    "day": 14.0,
}


@dataclass(frozen=True)
class HeaderSegment:
    """One labelled cell of a header band covering the half-open day range [start, end)."""

    granularity: Granularity
    start: dt.date
    end: dt.date
    x: float
    width: float
    label: str
    show_label: bool = True


@dataclass(frozen=True)
class HeaderBand:
    granularity: Granularity
    segments: tuple[HeaderSegment, ...]

    @property
    def width(self) -> float:
        return sum(segment.width for segment in self.segments)


@dataclass(frozen=True)
class GridLine:
    """Vertical line at the left edge of `date`; month lines are the always-on baseline."""

    x: float
    date: dt.date
    granularity: Granularity

    @property
    def is_baseline(self) -> bool:
        return self.granularity == "month"


@dataclass(frozen=True)
class CurrentTimeLine:
    x: float
    date: dt.date
    in_range: bool


@dataclass(frozen=True)
class TimeGrid:
    bands: tuple[HeaderBand, ...]
    gridlines: tuple[GridLine, ...]
    current_time: CurrentTimeLine
    width: float

    def band(self, granularity: Granularity) -> HeaderBand | None:
        for band in self.bands:
            if band.granularity == granularity:
                return band
        return None


def build_time_grid(
    start: dt.date,
    end: dt.date,
    view: ViewConfig,
    today: dt.date | None = None,
) -> TimeGrid:
    """Derive header bands, gridlines and the current-time line for the window start..end."""

    return TimeGrid(
        bands=tuple(build_header_bands(start, end, view)),
        gridlines=tuple(build_gridlines(start, end, view)),
        current_time=current_time_line(start, end, view, today),
        width=max(0, days_between(start, end)) * view.pixels_per_day,
    )


def build_header_bands(start: dt.date, end: dt.date, view: ViewConfig) -> list[HeaderBand]:
    """
    One band per enabled granularity, coarse to fine.

    Every segment is its calendar unit clipped to [start, end), so the
    segments of a band tile the chart exactly and sum to
    days_between(start, end) * pixels_per_day.
    """

    bands: list[HeaderBand] = []
    for granularity in view.ordered_granularities():
        if granularity == "year":
            segments = _year_segments(start, end, view)
        elif granularity == "month":
            segments = _month_segments(start, end, view)
        elif granularity == "week":
            segments = _week_segments(start, end, view)
        else:
            segments = _day_segments(start, end, view)
        bands.append(HeaderBand(granularity=granularity, segments=tuple(segments)))
    return bands


def build_gridlines(start: dt.date, end: dt.date, view: ViewConfig) -> list[GridLine]:
    """
    Vertical lines for the chart body.

    Month boundaries are always drawn. Week lines appear when week or day
    is visible and day lines when day is visible. Coincident lines keep
    the coarsest granularity.
    """

    if end <= start:
        return []

    candidates: list[tuple[Granularity, list[dt.date]]] = [("month", enumerate_months(start, end))]
    if view.shows("week") or view.shows("day"):
        candidates.append(("week", enumerate_weeks(start, end)))
    if view.shows("day"):
        candidates.append(("day", enumerate_days(start, end)))

    by_date: dict[dt.date, Granularity] = {}
    for granularity, boundaries in candidates:
        for boundary in boundaries:
            if boundary <= start or boundary in by_date:
                continue
            by_date[boundary] = granularity

    ppd = view.pixels_per_day
    return [
        GridLine(x=date_to_x(boundary, start, ppd), date=boundary, granularity=by_date[boundary])
        for boundary in sorted(by_date)
    ]


def current_time_line(
    start: dt.date,
    end: dt.date,
    view: ViewConfig,
    today: dt.date | None = None,
) -> CurrentTimeLine:
    today = today or dt.date.today()
    return CurrentTimeLine(
        x=date_to_x(today, start, view.pixels_per_day),
        date=today,
        in_range=start <= today <= end,
    )


def _show_label(granularity: Granularity, view: ViewConfig) -> bool:
    threshold = LABEL_MIN_PIXELS_PER_DAY.get(granularity)
    return threshold is None or view.pixels_per_day >= threshold


def _clipped(
    granularity: Granularity,
    unit_start: dt.date,
    unit_end: dt.date,
    start: dt.date,
    end: dt.date,
    label: str,
    view: ViewConfig,
) -> HeaderSegment | None:
    seg_start = max(unit_start, start)
    seg_end = min(unit_end, end)
    if seg_end <= seg_start:
        return None
    ppd = view.pixels_per_day
    return HeaderSegment(
        granularity=granularity,
        start=seg_start,
        end=seg_end,
        x=date_to_x(seg_start, start, ppd),
        width=days_between(seg_start, seg_end) * ppd,
        label=label,
        show_label=_show_label(granularity, view),
    )


def _month_segments(start: dt.date, end: dt.date, view: ViewConfig) -> list[HeaderSegment]:
    segments: list[HeaderSegment] = []
    for month in enumerate_months(start, end):
        segment = _clipped("month", month, add_months(month, 1), start, end, MONTHS[month.month - 1], view)
        if segment:
            segments.append(segment)
    return segments


def _year_segments(start: dt.date, end: dt.date, view: ViewConfig) -> list[HeaderSegment]:
    # Contiguous months of one calendar year collapse into a single segment.
    segments: list[HeaderSegment] = []
    for month in _month_segments(start, end, view):
        last = segments[-1] if segments else None
        if last is not None and last.start.year == month.start.year:
            segments[-1] = HeaderSegment(
                granularity="year",
                start=last.start,
                end=month.end,
                x=last.x,
                width=last.width + month.width,
                label=last.label,
                show_label=last.show_label,
            )
        else:
            segments.append(
                HeaderSegment(
                    granularity="year",
                    start=month.start,
                    end=month.end,
                    x=month.x,
                    width=month.width,
                    label=str(month.start.year),
                    show_label=_show_label("year", view),
                )
            )
    return segments


def _week_segments(start: dt.date, end: dt.date, view: ViewConfig) -> list[HeaderSegment]:
    segments: list[HeaderSegment] = []
    for monday in enumerate_weeks(start, end):
        label = f"W{monday.isocalendar()[1]:02d}"
        segment = _clipped("week", monday, monday + dt.timedelta(days=7), start, end, label, view)
        if segment:
            segments.append(segment)
    return segments


def _day_segments(start: dt.date, end: dt.date, view: ViewConfig) -> list[HeaderSegment]:
    segments: list[HeaderSegment] = []
    for day in enumerate_days(start, end):
        segment = _clipped("day", day, day + dt.timedelta(days=1), start, end, str(day.day), view)
        if segment:
            segments.append(segment)
    return segments
