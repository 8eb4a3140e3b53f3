from __future__ import annotations

import datetime as dt
import logging
from importlib import metadata
from pathlib import Path
from typing import AbstractSet

import matplotlib

matplotlib.use("Agg")  # ensure headless, deterministic output
import matplotlib.pyplot as plt
from matplotlib.patches import Polygon, Rectangle

from .chart import ChartGeometry, build_chart
from .item_geometry import SIDEBAR_WIDTH, BarGeometry, PointGeometry
from .time_grid import HEADER_BAND_HEIGHT
from .timeline_models import TimelineData, ViewConfig
from .wbs_tree import WBS_ROW_HEIGHT, WBS_TOOLBAR_HEIGHT

logger = logging.getLogger(__name__)

# Drawing knobs; all sizes in chart pixels.
DPI = 100
MAX_FIGURE_INCHES = 200.0
BOTTOM_PAD = 48
DIAMOND_HALF = 8
BAR_HEIGHT = 24
WBS_BAR_HEIGHT = 32
DEFAULT_POINT_COLOR = "#2563eb"
DEFAULT_RANGE_COLOR = "#84cc16"
EDGE_MARKER_COLOR = "#3b82f6"
WBS_PARENT_COLOR = "#6366f1"
WBS_LEAF_COLOR = "#3b82f6"
CRITICAL_COLOR = "#dc2626"
NOW_LINE_COLOR = "#60a5fa"
TITLE_FONT = 14
LABEL_FONT = 9
SMALL_FONT = 7


def render_timeline(
    data: TimelineData,
    out_path: str,
    view: ViewConfig,
    today: dt.date | None = None,
    expanded_row_id: str | None = None,
    wbs_expanded: AbstractSet[str] = frozenset(),
) -> ChartGeometry:
    """
    Render a static SVG snapshot of the chart to `out_path` and return the geometry used.

    - Header bands for every visible granularity, gridlines and the current-time line.
    - Row labels in the left sidebar; milestones as diamonds, ranges as bars.
    - The WBS panel of `expanded_row_id`, if any, below its row.
    """

    chart = build_chart(data, view, today=today, expanded_row_id=expanded_row_id, wbs_expanded=wbs_expanded)
    width = chart.width
    height = chart.height + BOTTOM_PAD

    scale = min(1.0, MAX_FIGURE_INCHES * DPI / max(width, height))
    if scale < 1.0:
        logger.warning("Chart is %.0fx%.0f px; scaling figure by %.3f", width, height, scale)
    fig = plt.figure(figsize=(width * scale / DPI, height * scale / DPI), dpi=DPI)
    ax = fig.add_axes([0, 0, 1, 1])
    ax.set_xlim(0, width)
    ax.set_ylim(height, 0)
    ax.axis("off")

    colors = {item.id: item.color for item in data.items}

    _draw_header(ax, chart)
    _draw_gridlines(ax, chart)
    _draw_rows(ax, chart, data, width)
    for geometry in chart.items:
        if isinstance(geometry, BarGeometry):
            _draw_bar(ax, geometry, colors.get(geometry.item_id) or DEFAULT_RANGE_COLOR)
        else:
            _draw_point(ax, geometry, colors.get(geometry.item_id) or DEFAULT_POINT_COLOR)
    _draw_wbs_panel(ax, chart)

    ax.text(SIDEBAR_WIDTH / 2, chart.header_height / 2, data.title, ha="center", va="center",
            fontsize=TITLE_FONT * scale, fontweight="bold", wrap=True)
    footer = f"gantt-timeline v{_tool_version()}"
    fig.text(0.99, 0.005, footer, ha="right", va="bottom", fontsize=SMALL_FONT, alpha=0.8)

    Path(out_path).parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_path, format="svg")
    plt.close(fig)
    return chart


def _tool_version() -> str:
    try:
        return metadata.version("gantt-timeline")
    except metadata.PackageNotFoundError:
        return "0.0.0"


def _draw_header(ax: plt.Axes, chart: ChartGeometry) -> None:
    for idx, band in enumerate(chart.grid.bands):
        y0 = idx * HEADER_BAND_HEIGHT
        for segment in band.segments:
            ax.add_patch(
                Rectangle(
                    (SIDEBAR_WIDTH + segment.x, y0),
                    segment.width,
                    HEADER_BAND_HEIGHT,
                    facecolor="white" if idx % 2 == 0 else "#f9fafb",
                    edgecolor="#d1d5db",
                    linewidth=0.5,
                )
            )
            if segment.show_label:
                ax.text(
                    SIDEBAR_WIDTH + segment.x + segment.width / 2,
                    y0 + HEADER_BAND_HEIGHT / 2,
                    segment.label,
                    ha="center",
                    va="center",
                    fontsize=LABEL_FONT,
                    fontweight="bold" if band.granularity == "year" else "normal",
                    color="#374151",
                )


def _draw_gridlines(ax: plt.Axes, chart: ChartGeometry) -> None:
    top, bottom = chart.header_height, chart.height
    for line in chart.grid.gridlines:
        ax.vlines(
            SIDEBAR_WIDTH + line.x,
            top,
            bottom,
            colors="#e5e7eb" if line.is_baseline else "#f3f4f6",
            linewidth=0.8 if line.is_baseline else 0.5,
            zorder=0,
        )
    now = chart.grid.current_time
    if now.in_range:
        ax.vlines(SIDEBAR_WIDTH + now.x, top, bottom, colors=NOW_LINE_COLOR, linestyles="--", linewidth=1.5, zorder=1)


def _draw_rows(ax: plt.Axes, chart: ChartGeometry, data: TimelineData, width: float) -> None:
    for row in data.rows:
        layout = chart.rows[row.id]
        ax.hlines(layout.top + layout.height, 0, width, colors="#e5e7eb", linewidth=0.8, zorder=0)
        ax.text(SIDEBAR_WIDTH / 2, layout.center, row.label, ha="center", va="center",
                fontsize=LABEL_FONT, fontweight="bold", color="#374151")
    ax.vlines(SIDEBAR_WIDTH, 0, chart.height, colors="#d1d5db", linewidth=0.8)


def _draw_point(ax: plt.Axes, geometry: PointGeometry, color: str) -> None:
    x = SIDEBAR_WIDTH + geometry.x
    y = geometry.y
    diamond = [(x - DIAMOND_HALF, y), (x, y - DIAMOND_HALF), (x + DIAMOND_HALF, y), (x, y + DIAMOND_HALF)]
    ax.add_patch(Polygon(diamond, closed=True, facecolor=color, edgecolor="white", zorder=3))
    if geometry.has_critical_marker:
        ax.plot([x], [y - 3 * DIAMOND_HALF], marker="*", markersize=12, color=CRITICAL_COLOR, zorder=3)
    ax.text(x, y + 2 * DIAMOND_HALF, geometry.date_label, ha="center", va="top", fontsize=SMALL_FONT, zorder=4)
    ax.text(x, y + 3.5 * DIAMOND_HALF, geometry.label, ha="center", va="top", fontsize=LABEL_FONT,
            fontweight="bold", zorder=4)


def _draw_bar(ax: plt.Axes, geometry: BarGeometry, color: str) -> None:
    x = SIDEBAR_WIDTH + geometry.x
    top = geometry.y - BAR_HEIGHT / 2
    ax.add_patch(Rectangle((x, top), geometry.width, BAR_HEIGHT, facecolor=color, alpha=0.85, zorder=2))
    ax.text(x + geometry.width / 2, geometry.y, geometry.label, ha="center", va="center",
            fontsize=SMALL_FONT, color="white", fontweight="bold", zorder=4)
    for edge_x, label in ((x, geometry.start_label), (x + geometry.width, geometry.end_label)):
        ax.plot([edge_x], [top + BAR_HEIGHT + 8], marker="D", markersize=5, color=EDGE_MARKER_COLOR, zorder=3)
        ax.text(edge_x, top + BAR_HEIGHT + 14, label, ha="center", va="top", fontsize=SMALL_FONT, zorder=4)


def _draw_wbs_panel(ax: plt.Axes, chart: ChartGeometry) -> None:
    if chart.wbs_row_id is None:
        return
    layout = chart.rows[chart.wbs_row_id]
    panel_top = layout.top + layout.height
    ax.add_patch(Rectangle((0, panel_top), chart.width, layout.extra, facecolor="#f9fafb", zorder=0))
    if not chart.wbs_rows:
        ax.text(chart.width / 2, panel_top + layout.extra / 2, "No breakdown yet.", ha="center", va="center",
                fontsize=LABEL_FONT, style="italic", color="#9ca3af")
        return
    for wbs_row in chart.wbs_rows:
        row_top = panel_top + WBS_TOOLBAR_HEIGHT + wbs_row.order * WBS_ROW_HEIGHT
        center = row_top + WBS_ROW_HEIGHT / 2
        bar = wbs_row.bar
        marker = ("v " if wbs_row.is_expanded else "> ") if wbs_row.has_children else ""
        ax.text(wbs_row.indent, center, marker, ha="left", va="center", fontsize=LABEL_FONT, color="#6b7280")
        ax.add_patch(
            Rectangle(
                (SIDEBAR_WIDTH + bar.x, center - WBS_BAR_HEIGHT / 2),
                bar.width,
                WBS_BAR_HEIGHT,
                facecolor=WBS_PARENT_COLOR if wbs_row.has_children else WBS_LEAF_COLOR,
                zorder=2,
            )
        )
        ax.text(
            SIDEBAR_WIDTH + bar.label_x + (4 if bar.label_inside else 0),
            center,
            wbs_row.node.task_name,
            ha="left",
            va="center",
            fontsize=SMALL_FONT,
            color="white" if bar.label_inside else "#6b7280",
            fontweight="bold" if bar.label_inside else "normal",
            zorder=4,
        )
