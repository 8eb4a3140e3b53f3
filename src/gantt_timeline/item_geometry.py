from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Mapping, Union

from .date_grid import date_to_x, days_between, format_date_short
from .timeline_models import TimelineData, TimelineItem, TimelineRow, ViewConfig
from .validation import TimelineDataError

logger = logging.getLogger(__name__)

SIDEBAR_WIDTH = 160  # sticky row-label column to the left of the time axis


@dataclass(frozen=True)
class PointGeometry:
    """Milestone/task marker; the critical flag only adds a secondary marker."""

    item_id: str
    row_id: str
    x: float
    y: float
    label: str
    date_label: str
    has_critical_marker: bool = False


@dataclass(frozen=True)
class BarGeometry:
    """Range bar spanning x..x+width, with date labels under both edges."""

    item_id: str
    row_id: str
    x: float
    y: float
    width: float
    label: str
    start_label: str
    end_label: str

    @property
    def x_end(self) -> float:
        return self.x + self.width


ItemGeometry = Union[PointGeometry, BarGeometry]


@dataclass(frozen=True)
class RowLayout:
    row_id: str
    top: float
    height: float
    extra: float = 0.0  # space below the row, e.g. an open WBS panel

    @property
    def center(self) -> float:
        return self.top + self.height / 2

    @property
    def bottom(self) -> float:
        return self.top + self.height + self.extra


def item_geometry(
    item: TimelineItem,
    timeline_start: dt.date,
    pixels_per_day: float,
    row_center: float = 0.0,
) -> ItemGeometry:
    """
    Map one item to screen geometry.

    Points sit at date_to_x(item.date). Ranges span date..end_date and
    raise TimelineDataError when the end is missing or precedes the start.
    """

    x = date_to_x(item.date, timeline_start, pixels_per_day)
    if not item.is_range:
        return PointGeometry(
            item_id=item.id,
            row_id=item.row_id,
            x=x,
            y=row_center,
            label=item.label,
            date_label=format_date_short(item.date),
            has_critical_marker=item.is_critical,
        )

    if item.end_date is None:
        raise TimelineDataError(f"Range item '{item.id}' has no end_date")
    width = date_to_x(item.end_date, timeline_start, pixels_per_day) - x
    if width < 0:
        raise TimelineDataError(
            f"Range item '{item.id}' ends {item.end_date} before it starts {item.date}"
        )
    return BarGeometry(
        item_id=item.id,
        row_id=item.row_id,
        x=x,
        y=row_center,
        width=width,
        label=item.label,
        start_label=format_date_short(item.date),
        end_label=format_date_short(item.end_date),
    )


def layout_rows(
    rows: tuple[TimelineRow, ...] | list[TimelineRow],
    top: float = 0.0,
    extra_below: Mapping[str, float] | None = None,
) -> dict[str, RowLayout]:
    """Stack rows top to bottom in their fixed order; extra_below reserves space under a row."""

    extra_below = extra_below or {}
    layouts: dict[str, RowLayout] = {}
    cursor = top
    for row in rows:
        layout = RowLayout(row_id=row.id, top=cursor, height=row.height, extra=extra_below.get(row.id, 0.0))
        layouts[row.id] = layout
        cursor = layout.bottom
    return layouts


def layout_items(
    data: TimelineData,
    view: ViewConfig,
    rows: Mapping[str, RowLayout] | None = None,
) -> list[ItemGeometry]:
    """
    Geometry for every renderable item, in data order.

    Items on unknown rows or with broken dates are skipped with a warning
    so one bad element never takes down the whole chart.
    """

    rows = rows if rows is not None else layout_rows(data.rows)
    geometries: list[ItemGeometry] = []
    for item in data.items:
        row = rows.get(item.row_id)
        if row is None:
            logger.warning("Skipping item %r: unknown row %r", item.id, item.row_id)
            continue
        try:
            geometries.append(item_geometry(item, data.start_date, view.pixels_per_day, row.center))
        except TimelineDataError as exc:
            logger.warning("Skipping item %r: %s", item.id, exc)
    return geometries


def total_height(rows: Mapping[str, RowLayout]) -> float:
    return max((layout.bottom for layout in rows.values()), default=0.0)


def content_width(data: TimelineData, view: ViewConfig) -> float:
    return max(0, days_between(data.start_date, data.end_date)) * view.pixels_per_day


def chart_width(data: TimelineData, view: ViewConfig, viewport_width: float = 0.0) -> float:
    """Scrollable chart width; a wider viewport stretches the chart, the dates stay put."""
    return max(content_width(data, view) + SIDEBAR_WIDTH, viewport_width)
