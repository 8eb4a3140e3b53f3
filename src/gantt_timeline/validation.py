from __future__ import annotations

from typing import Iterable

from .timeline_models import TimelineData, TimelineItem, TimelineRow, WBSItem


class TimelineValidationError(Exception):
    """Raised when timeline structure is invalid (duplicates, bad refs, reversed dates)."""


class TimelineDataError(Exception):
    """Raised when a single element cannot be turned into geometry (e.g. negative range width)."""


def validate_timeline(data: TimelineData) -> TimelineData:
    """
    Validate a complete timeline and return it unchanged.

    - Detects duplicate row ids, duplicate item ids and duplicate WBS ids within a row.
    - Rejects items that reference unknown rows.
    - Rejects ranges without an end date or ending before they start.
    - Rejects a chart window that ends before it starts.
    """

    if data.end_date < data.start_date:
        raise TimelineValidationError(
            f"Timeline end {data.end_date} precedes start {data.start_date}"
        )

    row_ids = _validate_unique_rows(data.rows)
    _validate_unique_items(data.items)
    for item in data.items:
        if item.row_id not in row_ids:
            raise TimelineValidationError(f"Item '{item.id}' references unknown row '{item.row_id}'")
        _validate_item_dates(item)
    for row in data.rows:
        _validate_unique_wbs(row)
    return data


def _validate_unique_rows(rows: Iterable[TimelineRow]) -> set[str]:
    seen: set[str] = set()
    for row in rows:
        if row.id in seen:
            raise TimelineValidationError(f"Duplicate row id '{row.id}'")
        seen.add(row.id)
    return seen


def _validate_unique_items(items: Iterable[TimelineItem]) -> None:
    seen: dict[str, TimelineItem] = {}
    for item in items:
        if item.id in seen:
            raise TimelineValidationError(
                f"Duplicate item id '{item.id}' (rows '{seen[item.id].row_id}' and '{item.row_id}')"
            )
        seen[item.id] = item


def _validate_item_dates(item: TimelineItem) -> None:
    if not item.is_range:
        return
    if item.end_date is None:
        raise TimelineValidationError(f"Range item '{item.id}' has no end_date")
    if item.end_date < item.date:
        raise TimelineValidationError(
            f"Range item '{item.id}' ends {item.end_date} before it starts {item.date}"
        )


def _validate_unique_wbs(row: TimelineRow) -> None:
    validate_wbs_ids(row.id, row.wbs)


def validate_wbs_ids(row_id: str, nodes: Iterable[WBSItem]) -> None:
    """Reject a WBS forest that reuses a node id at any depth."""
    seen: set[str] = set()
    for node in walk_wbs(nodes):
        if node.id in seen:
            raise TimelineValidationError(f"Row '{row_id}' has duplicate WBS id '{node.id}'")
        seen.add(node.id)


def walk_wbs(items: Iterable[WBSItem]) -> Iterable[WBSItem]:
    """Depth-first, parents before children."""
    for item in items:
        yield item
        yield from walk_wbs(item.sub_tasks)
