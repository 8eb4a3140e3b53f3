from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import AbstractSet

from .item_geometry import ItemGeometry, RowLayout, chart_width, layout_items, layout_rows, total_height
from .store import TimelineStore
from .time_grid import HEADER_BAND_HEIGHT, TimeGrid, build_time_grid
from .timeline_models import TimelineData, ViewConfig
from .wbs_tree import WBSRenderRow, visible_wbs_rows, wbs_panel_height


@dataclass(frozen=True)
class ChartGeometry:
    """Everything a renderer needs for one frame; y values are below the header."""

    grid: TimeGrid
    rows: dict[str, RowLayout]
    items: list[ItemGeometry]
    header_height: float
    width: float
    height: float
    wbs_row_id: str | None = None
    wbs_rows: list[WBSRenderRow] = field(default_factory=list)


def build_chart(
    data: TimelineData,
    view: ViewConfig,
    today: dt.date | None = None,
    expanded_row_id: str | None = None,
    wbs_expanded: AbstractSet[str] = frozenset(),
    viewport_width: float = 0.0,
) -> ChartGeometry:
    """Derive the full view geometry from timeline data and ephemeral view state."""

    grid = build_time_grid(data.start_date, data.end_date, view, today)
    header_height = HEADER_BAND_HEIGHT * len(grid.bands)

    wbs_rows: list[WBSRenderRow] = []
    extra: dict[str, float] = {}
    row_ids = data.row_ids()
    if expanded_row_id is not None and expanded_row_id in row_ids:
        row = next(r for r in data.rows if r.id == expanded_row_id)
        wbs_rows = visible_wbs_rows(row.wbs, wbs_expanded, data.start_date, view.pixels_per_day)
        extra[expanded_row_id] = wbs_panel_height(len(wbs_rows))
    else:
        expanded_row_id = None

    rows = layout_rows(data.rows, top=header_height, extra_below=extra)
    return ChartGeometry(
        grid=grid,
        rows=rows,
        items=layout_items(data, view, rows),
        header_height=header_height,
        width=chart_width(data, view, viewport_width),
        height=max(total_height(rows), header_height),
        wbs_row_id=expanded_row_id,
        wbs_rows=wbs_rows,
    )


def build_chart_for_store(
    store: TimelineStore,
    view: ViewConfig,
    today: dt.date | None = None,
    viewport_width: float = 0.0,
) -> ChartGeometry:
    row_id = store.expanded_row_id
    return build_chart(
        store.data,
        view,
        today=today,
        expanded_row_id=row_id,
        wbs_expanded=store.expanded_wbs(row_id) if row_id else frozenset(),
        viewport_width=viewport_width,
    )
