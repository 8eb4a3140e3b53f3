from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, replace
from typing import AbstractSet, Any, Iterable, Mapping, Sequence, Union

from .date_grid import date_to_x
from .timeline_models import WBSItem
from .validation import walk_wbs

logger = logging.getLogger(__name__)

MIN_BAR_WIDTH = 20.0  # keeps zero-length tasks clickable
LABEL_INSIDE_MIN_WIDTH = 60.0
LABEL_GAP = 8.0
INDENT_STEP = 16
WBS_ROW_HEIGHT = 48
WBS_TOOLBAR_HEIGHT = 40
WBS_PANEL_MIN_HEIGHT = 150

EDITABLE_FIELDS = frozenset({"task_name", "start_date", "end_date", "duration", "owner", "status"})


class _Delete:
    def __repr__(self) -> str:  # pragma: no cover - trivial
        return "DELETE"


DELETE = _Delete()
"""Pass as the transform to find_and_transform to remove the node."""

Transform = Union[Mapping[str, Any], _Delete]


@dataclass(frozen=True)
class WBSBar:
    node_id: str
    x: float
    width: float
    label_inside: bool
    label_x: float
    clamped: bool = False


@dataclass(frozen=True)
class WBSRenderRow:
    """Flattened WBS node ready for drawing; level drives indentation."""

    order: int
    level: int
    node: WBSItem
    is_expanded: bool
    bar: WBSBar

    @property
    def has_children(self) -> bool:
        return self.node.has_sub_tasks

    @property
    def indent(self) -> int:
        return self.level * INDENT_STEP + INDENT_STEP


def find_and_transform(forest: Sequence[WBSItem], target_id: str, transform: Transform) -> tuple[WBSItem, ...]:
    """
    Return a new forest with the first node whose id matches transformed.

    A mapping is shallow-merged into the node (sub_tasks are kept); DELETE
    removes the node and its subtree from the parent. Ids are assumed
    unique: with duplicates only the first node in depth-first order is
    touched. Subtrees off the path to the target are shared with the input,
    which is never mutated. An unknown id returns the forest unchanged.
    """

    if not isinstance(transform, _Delete):
        unknown = set(transform) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"cannot edit WBS fields {sorted(unknown)}")

    items = tuple(forest)
    result, found = _transform(items, target_id, transform)
    if not found:
        logger.debug("WBS node %r not found; forest unchanged", target_id)
    return result


def _transform(items: tuple[WBSItem, ...], target_id: str, transform: Transform) -> tuple[tuple[WBSItem, ...], bool]:
    for index, item in enumerate(items):
        if item.id == target_id:
            if isinstance(transform, _Delete):
                replacement: tuple[WBSItem, ...] = ()
            else:
                replacement = (replace(item, **transform),)
            return items[:index] + replacement + items[index + 1 :], True
        if item.sub_tasks:
            children, found = _transform(item.sub_tasks, target_id, transform)
            if found:
                return items[:index] + (replace(item, sub_tasks=children),) + items[index + 1 :], True
    return items, False


def find_node(forest: Iterable[WBSItem], node_id: str) -> WBSItem | None:
    for node in walk_wbs(forest):
        if node.id == node_id:
            return node
    return None


def toggle_expansion(expanded: AbstractSet[str], node_id: str) -> frozenset[str]:
    if node_id in expanded:
        return frozenset(expanded - {node_id})
    return frozenset(expanded | {node_id})


def auto_expand(expanded: AbstractSet[str], forest: Iterable[WBSItem]) -> frozenset[str]:
    """Expand every node that has children, used right after a fresh breakdown arrives."""
    return frozenset(expanded) | {node.id for node in walk_wbs(forest) if node.has_sub_tasks}


def wbs_bar(node: WBSItem, timeline_start: dt.date, pixels_per_day: float) -> WBSBar:
    x = date_to_x(node.start_date, timeline_start, pixels_per_day)
    raw_width = date_to_x(node.end_date, timeline_start, pixels_per_day) - x
    clamped = raw_width < 0
    if clamped:
        logger.warning("WBS node %r ends %s before it starts %s; clamping", node.id, node.end_date, node.start_date)
    width = max(raw_width, MIN_BAR_WIDTH)
    label_inside = width >= LABEL_INSIDE_MIN_WIDTH
    return WBSBar(
        node_id=node.id,
        x=x,
        width=width,
        label_inside=label_inside,
        label_x=x if label_inside else x + width + LABEL_GAP,
        clamped=clamped,
    )


def visible_wbs_rows(
    forest: Sequence[WBSItem],
    expanded: AbstractSet[str],
    timeline_start: dt.date,
    pixels_per_day: float,
) -> list[WBSRenderRow]:
    """
    Flatten a forest into render rows.

    Parents precede their children; children are emitted only when the
    parent is expanded, one level deeper.
    """

    rows: list[WBSRenderRow] = []
    for node in forest:
        _append_node(node, rows, 0, expanded, timeline_start, pixels_per_day)
    return rows


def _append_node(
    node: WBSItem,
    rows: list[WBSRenderRow],
    level: int,
    expanded: AbstractSet[str],
    timeline_start: dt.date,
    pixels_per_day: float,
) -> None:
    is_expanded = node.id in expanded
    rows.append(
        WBSRenderRow(
            order=len(rows),
            level=level,
            node=node,
            is_expanded=is_expanded,
            bar=wbs_bar(node, timeline_start, pixels_per_day),
        )
    )
    if node.has_sub_tasks and is_expanded:
        for child in node.sub_tasks:
            _append_node(child, rows, level + 1, expanded, timeline_start, pixels_per_day)


def wbs_panel_height(visible_rows: int) -> float:
    return max(WBS_PANEL_MIN_HEIGHT, WBS_TOOLBAR_HEIGHT + visible_rows * WBS_ROW_HEIGHT)
