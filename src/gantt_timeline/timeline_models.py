from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Literal


ItemKind = Literal["milestone", "task", "range"]
"""Allowed timeline item kinds: milestone and task render as points, range renders as a bar."""

WBSStatus = Literal["Pending", "In Progress", "Done"]

Granularity = Literal["year", "month", "week", "day"]

DragMode = Literal["move", "resize_start", "resize_end"]

GRANULARITY_ORDER: tuple[Granularity, ...] = ("year", "month", "week", "day")
"""Coarse to fine; header bands are emitted in this order."""

DEFAULT_PIXELS_PER_DAY = 3.0
MIN_PIXELS_PER_DAY = 0.25
MAX_PIXELS_PER_DAY = 80.0
DEFAULT_ROW_HEIGHT = 100


@dataclass(frozen=True)
class WBSItem:
    """Node of a row's work breakdown structure; children live in sub_tasks."""

    id: str
    task_name: str
    start_date: date
    end_date: date
    duration: str = ""
    owner: str = ""
    status: WBSStatus = "Pending"
    sub_tasks: tuple["WBSItem", ...] = ()

    @property
    def has_sub_tasks(self) -> bool:
        return bool(self.sub_tasks)


@dataclass(frozen=True)
class TimelineItem:
    """Schedule entry placed on a row, either a point (milestone/task) or a range bar."""

    id: str
    row_id: str
    label: str
    date: date
    end_date: date | None = None
    kind: ItemKind = "milestone"
    is_critical: bool = False
    color: str | None = None

    @property
    def is_range(self) -> bool:
        return self.kind == "range"


@dataclass(frozen=True)
class TimelineRow:
    """Project phase lane with a fixed pixel height and its own WBS forest."""

    id: str
    label: str
    height: int = DEFAULT_ROW_HEIGHT
    wbs: tuple[WBSItem, ...] = ()


@dataclass(frozen=True)
class TimelineData:
    """Root chart container: overall date window, ordered rows and their items."""

    title: str
    start_date: date
    end_date: date
    rows: tuple[TimelineRow, ...] = ()
    items: tuple[TimelineItem, ...] = ()

    def row_ids(self) -> set[str]:
        return {row.id for row in self.rows}


@dataclass(frozen=True)
class ViewConfig:
    """
    Ephemeral view settings used only for geometry derivation.

    Zooming produces a new config; the timeline data is never touched.
    """

    pixels_per_day: float = DEFAULT_PIXELS_PER_DAY
    granularities: frozenset[Granularity] = field(default_factory=lambda: frozenset({"year", "month"}))

    def __post_init__(self) -> None:
        if self.pixels_per_day <= 0:
            raise ValueError(f"pixels_per_day must be positive, got {self.pixels_per_day}")
        unknown = set(self.granularities) - set(GRANULARITY_ORDER)
        if unknown:
            raise ValueError(f"unknown granularities {sorted(unknown)}")

    def shows(self, granularity: Granularity) -> bool:
        return granularity in self.granularities

    def ordered_granularities(self) -> list[Granularity]:
        return [g for g in GRANULARITY_ORDER if g in self.granularities]

    def zoomed(self, factor: float) -> "ViewConfig":
        """Return a copy scaled by factor, clamped to the supported zoom range."""
        if factor <= 0:
            raise ValueError(f"zoom factor must be positive, got {factor}")
        ppd = min(MAX_PIXELS_PER_DAY, max(MIN_PIXELS_PER_DAY, self.pixels_per_day * factor))
        return replace(self, pixels_per_day=ppd)

    def with_granularity(self, granularity: Granularity, visible: bool) -> "ViewConfig":
        current = set(self.granularities)
        if visible:
            current.add(granularity)
        else:
            current.discard(granularity)
        return replace(self, granularities=frozenset(current))


@dataclass(frozen=True)
class DragSession:
    """State captured at pointer-press; lives for a single gesture."""

    active: bool
    target_item_id: str
    pointer_origin_x: float
    origin_date: date
    origin_end_date: date | None = None
    mode: DragMode = "move"
