from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass
from typing import Any

import yaml

from .timeline_models import (
    DEFAULT_PIXELS_PER_DAY,
    DEFAULT_ROW_HEIGHT,
    GRANULARITY_ORDER,
    TimelineData,
    TimelineItem,
    TimelineRow,
    ViewConfig,
    WBSItem,
)
from .validation import TimelineValidationError, validate_timeline

ITEM_KINDS = ("milestone", "task", "range")
WBS_STATUSES = ("Pending", "In Progress", "Done")


@dataclass(frozen=True)
class _Path:
    """Helper to produce readable path strings like rows[0].wbs[1]."""

    parts: tuple[str, ...] = ()

    def child(self, segment: str) -> "_Path":
        return _Path(self.parts + (segment,))

    def __str__(self) -> str:  # pragma: no cover - trivial
        return ".".join(self.parts) if self.parts else "root"


def load_timeline(path: str) -> tuple[TimelineData, ViewConfig | None]:
    """Load a timeline and its optional `view` settings from a YAML file."""

    with open(path, "r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)

    data = parse_timeline_data(raw)
    view = None
    if isinstance(raw, dict) and raw.get("view") is not None:
        view = parse_view_config(raw["view"], _Path(("view",)))
    return data, view


def parse_timeline_data(data: Any, path: _Path | None = None) -> TimelineData:
    """
    Build and validate TimelineData from a plain mapping.

    Used for YAML files and for results returned by the image parser, so
    nothing half-formed ever reaches the store.
    """

    path = path or _Path()
    if not isinstance(data, dict):
        raise TimelineValidationError(f"{path}: expected mapping at top level")

    _assert_allowed_keys(data, {"title", "startDate", "endDate", "rows", "items", "view"}, path)
    title = _require_str(data, "title", path)
    start_date = _parse_date(_require_value(data, "startDate", path), path.child("startDate"))
    end_date = _parse_date(_require_value(data, "endDate", path), path.child("endDate"))

    rows_raw = _require_list(data, "rows", path)
    rows = tuple(_parse_row(row_raw, path.child(f"rows[{idx}]")) for idx, row_raw in enumerate(rows_raw))

    items_raw = _require_list(data, "items", path)
    items = tuple(_parse_item(item_raw, path.child(f"items[{idx}]")) for idx, item_raw in enumerate(items_raw))

    return validate_timeline(
        TimelineData(title=title, start_date=start_date, end_date=end_date, rows=rows, items=items)
    )


def parse_view_config(data: Any, path: _Path | None = None) -> ViewConfig:
    path = path or _Path(("view",))
    if not isinstance(data, dict):
        raise TimelineValidationError(f"{path}: expected mapping for view")
    _assert_allowed_keys(data, {"pixelsPerDay", "granularities"}, path)

    ppd = data.get("pixelsPerDay", DEFAULT_PIXELS_PER_DAY)
    if isinstance(ppd, bool) or not isinstance(ppd, (int, float)) or ppd <= 0:
        raise TimelineValidationError(f"{path.child('pixelsPerDay')}: expected positive number")

    granularities_raw = data.get("granularities")
    if granularities_raw is None:
        return ViewConfig(pixels_per_day=float(ppd))
    if not isinstance(granularities_raw, list):
        raise TimelineValidationError(f"{path.child('granularities')}: expected list")
    for idx, value in enumerate(granularities_raw):
        if value not in GRANULARITY_ORDER:
            raise TimelineValidationError(
                f"{path.child(f'granularities[{idx}]')}: expected one of {list(GRANULARITY_ORDER)}"
            )
    return ViewConfig(pixels_per_day=float(ppd), granularities=frozenset(granularities_raw))


def parse_wbs_item(data: Any, path: _Path | None = None) -> WBSItem:
    path = path or _Path()
    if not isinstance(data, dict):
        raise TimelineValidationError(f"{path}: expected mapping for WBS item")

    _assert_allowed_keys(
        data,
        {"id", "taskName", "startDate", "endDate", "duration", "owner", "status", "subTasks"},
        path,
    )
    status = data.get("status", "Pending")
    if status not in WBS_STATUSES:
        raise TimelineValidationError(f"{path.child('status')}: expected one of {list(WBS_STATUSES)}")

    sub_tasks_raw = data.get("subTasks") or []
    if not isinstance(sub_tasks_raw, list):
        raise TimelineValidationError(f"{path}.subTasks: expected list")

    return WBSItem(
        id=_require_str(data, "id", path),
        task_name=_require_str(data, "taskName", path),
        start_date=_parse_date(_require_value(data, "startDate", path), path.child("startDate")),
        end_date=_parse_date(_require_value(data, "endDate", path), path.child("endDate")),
        duration=_optional_str(data, "duration", path),
        owner=_optional_str(data, "owner", path),
        status=status,
        sub_tasks=tuple(
            parse_wbs_item(sub_raw, path.child(f"subTasks[{idx}]")) for idx, sub_raw in enumerate(sub_tasks_raw)
        ),
    )


def _parse_row(data: Any, path: _Path) -> TimelineRow:
    if not isinstance(data, dict):
        raise TimelineValidationError(f"{path}: expected mapping for row")

    _assert_allowed_keys(data, {"id", "label", "height", "wbs"}, path)
    height = data.get("height", DEFAULT_ROW_HEIGHT)
    if isinstance(height, bool) or not isinstance(height, int) or height <= 0:
        raise TimelineValidationError(f"{path.child('height')}: expected positive integer")

    wbs_raw = data.get("wbs") or []
    if not isinstance(wbs_raw, list):
        raise TimelineValidationError(f"{path}.wbs: expected list")

    return TimelineRow(
        id=_require_str(data, "id", path),
        label=_require_str(data, "label", path),
        height=height,
        wbs=tuple(parse_wbs_item(node_raw, path.child(f"wbs[{idx}]")) for idx, node_raw in enumerate(wbs_raw)),
    )


def _parse_item(data: Any, path: _Path) -> TimelineItem:
    if not isinstance(data, dict):
        raise TimelineValidationError(f"{path}: expected mapping for item")

    _assert_allowed_keys(
        data,
        {"id", "rowId", "label", "date", "endDate", "type", "isCritical", "color"},
        path,
    )
    kind = data.get("type", "milestone")
    if kind not in ITEM_KINDS:
        raise TimelineValidationError(f"{path.child('type')}: expected one of {list(ITEM_KINDS)}")

    end_date = None
    if data.get("endDate") is not None:
        end_date = _parse_date(data["endDate"], path.child("endDate"))
    if kind == "range" and end_date is None:
        raise TimelineValidationError(f"{path}: range items require endDate")

    is_critical = data.get("isCritical", False)
    if not isinstance(is_critical, bool):
        raise TimelineValidationError(f"{path.child('isCritical')}: expected boolean")

    color = data.get("color")
    if color is not None and not isinstance(color, str):
        raise TimelineValidationError(f"{path.child('color')}: expected string")

    return TimelineItem(
        id=_require_str(data, "id", path),
        row_id=_require_str(data, "rowId", path),
        label=_require_str(data, "label", path),
        date=_parse_date(_require_value(data, "date", path), path.child("date")),
        end_date=end_date,
        kind=kind,
        is_critical=is_critical,
        color=color,
    )


def _assert_allowed_keys(data: dict[str, Any], allowed: set[str], path: _Path) -> None:
    extras = sorted(set(data.keys()) - allowed)
    if extras:
        raise TimelineValidationError(f"{path}: unexpected fields {extras}")


def _require_str(data: dict[str, Any], key: str, path: _Path) -> str:
    value = _require_value(data, key, path)
    if not isinstance(value, str) or not value.strip():
        raise TimelineValidationError(f"{path.child(key)}: expected non-empty string")
    return value


def _optional_str(data: dict[str, Any], key: str, path: _Path) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TimelineValidationError(f"{path.child(key)}: expected string")
    return value


def _require_list(data: dict[str, Any], key: str, path: _Path) -> list[Any]:
    value = _require_value(data, key, path)
    if not isinstance(value, list):
        raise TimelineValidationError(f"{path}.{key}: expected list")
    return value


def _require_value(data: dict[str, Any], key: str, path: _Path) -> Any:
    if key not in data:
        raise TimelineValidationError(f"{path}: missing required field '{key}'")
    return data[key]


def _parse_date(value: Any, path: _Path) -> _dt.date:
    # YAML turns unquoted ISO dates into date objects already.
    if isinstance(value, _dt.datetime):
        return value.date()
    if isinstance(value, _dt.date):
        return value
    if not isinstance(value, str):
        raise TimelineValidationError(f"{path}: expected YYYY-MM-DD string")
    try:
        parsed = _dt.date.fromisoformat(value)
    except ValueError as exc:
        raise TimelineValidationError(f"{path}: expected YYYY-MM-DD string") from exc
    return parsed


def parse_breakdown(nodes: Any) -> tuple[WBSItem, ...]:
    """Validate a generated breakdown; WBSItem instances pass through as-is."""
    if nodes is None:
        return ()
    if not isinstance(nodes, (list, tuple)):
        raise TimelineValidationError("breakdown: expected list")
    path = _Path(("breakdown",))
    return tuple(
        node if isinstance(node, WBSItem) else parse_wbs_item(node, path.child(f"[{idx}]"))
        for idx, node in enumerate(nodes)
    )
