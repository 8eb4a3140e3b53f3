from __future__ import annotations

import datetime as dt
import logging
from dataclasses import replace
from typing import Any, Callable, Sequence

from .timeline_models import TimelineData, TimelineItem, TimelineRow, WBSItem
from .validation import TimelineValidationError, validate_timeline, validate_wbs_ids
from .wbs_tree import DELETE, auto_expand, find_and_transform, toggle_expansion

logger = logging.getLogger(__name__)

Listener = Callable[[TimelineData], None]


class TimelineStore:
    """
    Authoritative in-memory timeline and the single place mutations are applied.

    Besides the data it carries the UI signals around it: the open WBS panel,
    per-row WBS expansion, the last user-visible error and the pending
    external calls. None of those are part of TimelineData.
    """

    def __init__(self, data: TimelineData) -> None:
        self._data = validate_timeline(data)
        self._listeners: list[Listener] = []
        self.error: str | None = None
        self.expanded_row_id: str | None = None
        self.wbs_expanded: dict[str, frozenset[str]] = {}
        self.pending_imports = 0
        self.generating: set[str] = set()

    @property
    def data(self) -> TimelineData:
        return self._data

    @property
    def is_importing(self) -> bool:
        return self.pending_imports > 0

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a callback run after every mutation; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -- lookups -------------------------------------------------------

    def get_item(self, item_id: str) -> TimelineItem | None:
        for item in self._data.items:
            if item.id == item_id:
                return item
        return None

    def get_row(self, row_id: str) -> TimelineRow | None:
        for row in self._data.rows:
            if row.id == row_id:
                return row
        return None

    def items_for_row(self, row_id: str) -> list[TimelineItem]:
        return [item for item in self._data.items if item.row_id == row_id]

    # -- item mutations ------------------------------------------------

    def commit_item_dates(self, item_id: str, date: dt.date, end_date: dt.date | None = None) -> bool:
        """
        Write new dates for one item; the entry point used by drag gestures.

        end_date only applies to ranges. Returns False when the item no
        longer exists.
        """

        item = self.get_item(item_id)
        if item is None:
            return False
        if item.is_range:
            if end_date is None or end_date < date:
                raise TimelineValidationError(f"Range item '{item_id}' needs end_date >= {date}, got {end_date}")
            updated = replace(item, date=date, end_date=end_date)
        else:
            updated = replace(item, date=date)
        if updated == item:
            return True
        self._set_items([updated if existing.id == item_id else existing for existing in self._data.items])
        logger.debug("Committed %r dates %s..%s", item_id, updated.date, updated.end_date)
        return True

    def update_item(self, item_id: str, **changes: Any) -> TimelineItem:
        """Explicit edit of one item; the result is validated against the whole timeline."""
        if "id" in changes:
            raise ValueError("item id is immutable")
        item = self.get_item(item_id)
        if item is None:
            raise KeyError(item_id)
        updated = replace(item, **changes)
        items = [updated if existing.id == item_id else existing for existing in self._data.items]
        self._apply(validate_timeline(replace(self._data, items=tuple(items))))
        return updated

    def _set_items(self, items: Sequence[TimelineItem]) -> None:
        self._apply(replace(self._data, items=tuple(items)))

    # -- WBS mutations -------------------------------------------------

    def update_row_wbs(self, row_id: str, wbs: Sequence[WBSItem]) -> bool:
        row = self.get_row(row_id)
        if row is None:
            logger.warning("Dropping WBS update for unknown row %r", row_id)
            return False
        validate_wbs_ids(row_id, wbs)
        rows = tuple(replace(r, wbs=tuple(wbs)) if r.id == row_id else r for r in self._data.rows)
        self._apply(replace(self._data, rows=rows))
        return True

    def edit_wbs_node(self, row_id: str, node_id: str, **changes: Any) -> bool:
        row = self.get_row(row_id)
        if row is None:
            return False
        return self.update_row_wbs(row_id, find_and_transform(row.wbs, node_id, changes))

    def delete_wbs_node(self, row_id: str, node_id: str) -> bool:
        row = self.get_row(row_id)
        if row is None:
            return False
        self.wbs_expanded[row_id] = self.expanded_wbs(row_id) - {node_id}
        return self.update_row_wbs(row_id, find_and_transform(row.wbs, node_id, DELETE))

    def merge_breakdown(self, row_id: str, wbs: Sequence[WBSItem]) -> bool:
        """Install a freshly generated breakdown and expand its parent nodes."""
        if not self.update_row_wbs(row_id, wbs):
            return False
        self.wbs_expanded[row_id] = auto_expand(self.expanded_wbs(row_id), wbs)
        return True

    # -- whole-timeline replacement ------------------------------------

    def replace_data(self, data: TimelineData) -> None:
        data = validate_timeline(data)
        row_ids = data.row_ids()
        if self.expanded_row_id not in row_ids:
            self.expanded_row_id = None
        self.wbs_expanded = {rid: ids for rid, ids in self.wbs_expanded.items() if rid in row_ids}
        self._apply(data)

    # -- presentation state --------------------------------------------

    def toggle_row_panel(self, row_id: str) -> str | None:
        """Open the WBS panel for row_id, or close it if already open; one panel at a time."""
        self.expanded_row_id = None if self.expanded_row_id == row_id else row_id
        return self.expanded_row_id

    def expanded_wbs(self, row_id: str) -> frozenset[str]:
        return self.wbs_expanded.get(row_id, frozenset())

    def toggle_wbs_node(self, row_id: str, node_id: str) -> frozenset[str]:
        expanded = toggle_expansion(self.expanded_wbs(row_id), node_id)
        self.wbs_expanded[row_id] = expanded
        return expanded

    def set_error(self, message: str) -> None:
        self.error = message

    def clear_error(self) -> None:
        self.error = None

    def _apply(self, data: TimelineData) -> None:
        self._data = data
        for listener in list(self._listeners):
            listener(data)
